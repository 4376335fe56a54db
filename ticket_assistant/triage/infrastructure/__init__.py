"""
Triage Infrastructure Layer
============================

Infrastructure implementations for the ticket triage module.

Contains:
- Repositories: ticket store and user directory backed by SQLAlchemy
- External: LLM classification providers, email notifier, recovery scheduler
"""

from ticket_assistant.triage.infrastructure.repositories import (
    SQLAlchemyTicketStore,
    SQLAlchemyUserDirectory,
)
from ticket_assistant.triage.infrastructure.external import (
    LLMClassificationProvider,
    build_classification_providers,
    CircuitBreaker,
    CircuitState,
    EmailNotifier,
    TriageRecoveryScheduler,
)

__all__ = [
    "SQLAlchemyTicketStore",
    "SQLAlchemyUserDirectory",
    "LLMClassificationProvider",
    "build_classification_providers",
    "CircuitBreaker",
    "CircuitState",
    "EmailNotifier",
    "TriageRecoveryScheduler",
]
