"""
Tickets Domain Entities
=======================

Pure Python ticket entity shared by the CRUD handlers and the triage
pipeline.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from ticket_assistant.config import TriageState, TERMINAL_TRIAGE_STATES


@dataclass
class Ticket:
    """
    A request for help.

    ``status`` is None until triage marks the ticket TODO. ``priority``,
    ``helpful_notes`` and ``related_skills`` are filled by the classifier,
    afterwards only moderators and admins change them.
    """
    id: str
    title: str
    description: str
    created_by: str
    status: Optional[str] = None
    priority: Optional[str] = None
    summary: Optional[str] = None
    helpful_notes: Optional[str] = None
    related_skills: List[str] = field(default_factory=list)
    assigned_to: Optional[str] = None
    assigned_to_email: Optional[str] = None
    triage_state: str = TriageState.CREATED
    triage_error: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if not self.title or not self.title.strip():
            raise ValueError("title must not be empty")
        if not self.description or not self.description.strip():
            raise ValueError("description must not be empty")

    @property
    def is_triaged(self) -> bool:
        """True once the pipeline reached a terminal state."""
        return self.triage_state in TERMINAL_TRIAGE_STATES
