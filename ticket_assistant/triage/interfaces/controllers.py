"""
Triage Controllers (API Routes)
================================

FastAPI routes for the triage pipeline: manual re-runs and pipeline
status.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from ticket_assistant.accounts.domain.entities import User
from ticket_assistant.config import settings, PENDING_TRIAGE_STATES
from ticket_assistant.core import ResourceNotFoundException
from ticket_assistant.infrastructure.database import get_session
from ticket_assistant.shared.api.dependencies import require_staff
from ticket_assistant.shared.infrastructure.logging import get_logger
from ticket_assistant.tickets.infrastructure import SQLAlchemyTicketRepository
from ticket_assistant.triage.application import (
    ClassifierAdapter, TriageOrchestrator,
    TriageOutcomeResponse, TriageStatusResponse
)

logger = get_logger(__name__)
router = APIRouter(tags=["Ticket Triage"])


# ========== Dependencies ==========

def get_orchestrator(request: Request) -> TriageOrchestrator:
    orchestrator = getattr(request.app.state, "triage_orchestrator", None)
    if orchestrator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Triage pipeline not initialized"
        )
    return orchestrator


def get_classifier(request: Request) -> ClassifierAdapter:
    classifier = getattr(request.app.state, "classifier", None)
    if classifier is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Classifier not initialized"
        )
    return classifier


# ========== Route Handlers ==========

@router.post(
    "/tickets/{ticket_id}/triage",
    response_model=TriageOutcomeResponse,
    summary="Re-run triage for a ticket (moderator/admin)",
    description="""
    Runs the full pipeline again: classification, assignment and
    notification. Fields written by the previous run are overwritten.
    """
)
async def retriage_ticket(
    request: Request,
    ticket_id: str,
    user: User = Depends(require_staff),
    orchestrator: TriageOrchestrator = Depends(get_orchestrator)
):
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    logger.info(
        "Manual triage requested",
        extra={"correlation_id": correlation_id, "ticket_id": ticket_id, "requested_by": user.id}
    )

    outcome = await orchestrator.run(ticket_id, force=True)
    if outcome.skipped:
        raise ResourceNotFoundException("Ticket", ticket_id)
    return TriageOutcomeResponse.from_domain(outcome)


@router.get(
    "/triage/status",
    response_model=TriageStatusResponse,
    summary="Triage pipeline status (moderator/admin)"
)
async def triage_status(
    _: User = Depends(require_staff),
    session: AsyncSession = Depends(get_session),
    classifier: ClassifierAdapter = Depends(get_classifier)
):
    pending = await SQLAlchemyTicketRepository(session).count_by_triage_state(PENDING_TRIAGE_STATES)
    return TriageStatusResponse(
        policy=classifier.policy,
        processing_mode=settings.processing_mode,
        providers=classifier.provider_names,
        pending_by_state=pending,
    )


triage_router = router
