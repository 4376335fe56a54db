"""
Triage Application DTOs
========================

Event payloads and API response models for the triage module.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ticket_assistant.triage.domain import TriageOutcome


class TicketCreatedEvent(BaseModel):
    """Payload of the ``ticket/created`` event."""
    ticket_id: str = Field(..., min_length=1)
    title: str
    description: str
    created_by: str


class TriageOutcomeResponse(BaseModel):
    """Response model for a triage run."""
    ticket_id: str
    state: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    assigned_to: Optional[str] = None
    classification_source: Optional[str] = None
    classification_error: Optional[str] = None
    notified: bool = False
    notification_error: Optional[str] = None
    skipped: bool = False

    @classmethod
    def from_domain(cls, outcome: TriageOutcome) -> "TriageOutcomeResponse":
        return cls(**outcome.__dict__)


class TriageStatusResponse(BaseModel):
    """Classifier wiring, reported by /triage/status."""
    policy: str
    processing_mode: str
    providers: List[str]
    pending_by_state: Dict[str, int]
