"""
Triage Dispatch Strategies
==========================

How triage starts once a ticket has been created. The strategy is chosen
at startup from ``processing_mode`` and handed to the ticket service.
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict

from ticket_assistant.config import TICKET_CREATED_EVENT
from ticket_assistant.shared.infrastructure.logging import get_logger
from ticket_assistant.triage.application.dto import TicketCreatedEvent
from ticket_assistant.triage.application.services import IEventPublisher, TriageOrchestrator

logger = get_logger(__name__)


class ITriageDispatcher(ABC):
    """Starts triage for a freshly created ticket."""

    @abstractmethod
    async def dispatch(self, event: TicketCreatedEvent) -> None:
        """Hand the ticket over to the triage pipeline."""


class InlineTriageDispatcher(ITriageDispatcher):
    """Runs the pipeline inside the creating request."""

    def __init__(self, orchestrator: TriageOrchestrator):
        self._orchestrator = orchestrator

    async def dispatch(self, event: TicketCreatedEvent) -> None:
        try:
            await self._orchestrator.run(event.ticket_id)
        except Exception:
            # The ticket is already stored; the recovery job retries the run.
            logger.exception("Inline triage failed", extra={"ticket_id": event.ticket_id})


class QueuedTriageDispatcher(ITriageDispatcher):
    """Publishes ``ticket/created`` and returns immediately."""

    def __init__(self, publisher: IEventPublisher):
        self._publisher = publisher

    async def dispatch(self, event: TicketCreatedEvent) -> None:
        await self._publisher.publish(TICKET_CREATED_EVENT, event.model_dump())
        logger.info("Ticket queued for triage", extra={"ticket_id": event.ticket_id})


def ticket_created_handler(orchestrator: TriageOrchestrator) -> Callable[[Dict[str, Any]], Awaitable[None]]:
    """Event handler for ``ticket/created``; store errors propagate so delivery is retried."""

    async def handle(payload: Dict[str, Any]) -> None:
        event = TicketCreatedEvent(**payload)
        await orchestrator.run(event.ticket_id)

    return handle
