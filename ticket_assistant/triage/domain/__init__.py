"""
Triage Domain Layer
===================

Domain layer for ticket triage module.

Contains:
- Entities: ClassificationResult, TicketText, TriageOutcome
- Prompt building for classification providers
- The keyword-based heuristic classifier

This layer is framework-agnostic and contains pure business logic.
"""

from ticket_assistant.triage.domain.entities import (
    ClassificationResult,
    TicketText,
    TriageOutcome,
    ClassificationPromptBuilder,
    HEURISTIC_SOURCE,
    normalize_priority,
)
from ticket_assistant.triage.domain.heuristics import (
    heuristic_classify,
    HIGH_SEVERITY_KEYWORDS,
    LOW_SEVERITY_KEYWORDS,
    SKILL_VOCABULARY,
    HEURISTIC_NOTES,
)

__all__ = [
    "ClassificationResult",
    "TicketText",
    "TriageOutcome",
    "ClassificationPromptBuilder",
    "HEURISTIC_SOURCE",
    "normalize_priority",
    "heuristic_classify",
    "HIGH_SEVERITY_KEYWORDS",
    "LOW_SEVERITY_KEYWORDS",
    "SKILL_VOCABULARY",
    "HEURISTIC_NOTES",
]
