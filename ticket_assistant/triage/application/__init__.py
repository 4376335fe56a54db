"""
Triage Application Layer
=========================

Application layer for ticket triage module.

Contains:
- Services: classifier adapter, assignment resolver, triage orchestrator
- Dispatch: inline vs queued triage start
- DTOs: event payloads and API models
"""

from ticket_assistant.triage.application.dto import (
    TicketCreatedEvent,
    TriageOutcomeResponse,
    TriageStatusResponse,
)
from ticket_assistant.triage.application.services import (
    IClassificationProvider,
    ITicketStore,
    IUserDirectory,
    INotifier,
    IEventPublisher,
    ClassifierAdapter,
    AssignmentResolver,
    TriageOrchestrator,
    TriageRecoveryService,
    skills_overlap,
)
from ticket_assistant.triage.application.dispatch import (
    ITriageDispatcher,
    InlineTriageDispatcher,
    QueuedTriageDispatcher,
    ticket_created_handler,
)

__all__ = [
    # DTOs
    "TicketCreatedEvent",
    "TriageOutcomeResponse",
    "TriageStatusResponse",
    # Services
    "ClassifierAdapter",
    "AssignmentResolver",
    "TriageOrchestrator",
    "TriageRecoveryService",
    "skills_overlap",
    # Dispatch
    "ITriageDispatcher",
    "InlineTriageDispatcher",
    "QueuedTriageDispatcher",
    "ticket_created_handler",
    # Collaborator Interfaces
    "IClassificationProvider",
    "ITicketStore",
    "IUserDirectory",
    "INotifier",
    "IEventPublisher",
]
