"""
Heuristic Classifier
====================

Keyword-based fallback used when no classification provider is available
or every provider failed. Pure and deterministic: same ticket, same result.
"""

from ticket_assistant.config import Priority
from ticket_assistant.triage.domain.entities import (
    ClassificationResult, TicketText, HEURISTIC_SOURCE
)


HIGH_SEVERITY_KEYWORDS = (
    "crash", "critical", "down", "security", "data loss", "urgent", "production",
)

LOW_SEVERITY_KEYWORDS = (
    "typo", "minor", "feature request", "css", "style",
)

SKILL_VOCABULARY = (
    "react",
    "node",
    "node.js",
    "express",
    "mongodb",
    "mongoose",
    "vite",
    "tailwind",
    "auth",
    "jwt",
    "email",
    "api",
    "docker",
)

HEURISTIC_NOTES = (
    "AI service unavailable; generated using heuristic analysis. "
    "Provide logs, steps to reproduce, and expected behavior."
)

SUMMARY_LENGTH = 160


def heuristic_priority(text: str) -> str:
    """
    Priority from keywords in lowercased ticket text.

    The low-severity check runs last and wins when both keyword sets match.
    """
    priority = Priority.MEDIUM
    if any(word in text for word in HIGH_SEVERITY_KEYWORDS):
        priority = Priority.HIGH
    if any(word in text for word in LOW_SEVERITY_KEYWORDS):
        priority = Priority.LOW
    return priority


def heuristic_skills(text: str) -> list[str]:
    """Vocabulary tags found as substrings of the text, in vocabulary order."""
    matched: list[str] = []
    for skill in SKILL_VOCABULARY:
        if skill in text and skill not in matched:
            matched.append(skill)
    return matched


def heuristic_classify(ticket: TicketText) -> ClassificationResult:
    """Classify a ticket without calling any external service."""
    title = ticket.title or ""
    description = ticket.description or ""
    text = ticket.full_text.lower()

    summary = description[:SUMMARY_LENGTH] or title or "Ticket"

    return ClassificationResult(
        summary=summary,
        priority=heuristic_priority(text),
        helpful_notes=HEURISTIC_NOTES,
        related_skills=heuristic_skills(text),
        source=HEURISTIC_SOURCE,
    )
