"""
Triage Domain Entities
======================

Domain entities for the ticket triage module.

Contains pure Python business objects for ticket classification and the
outcome of a triage run.
"""

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from ticket_assistant.config import Priority, VALID_PRIORITIES


HEURISTIC_SOURCE = "heuristic"


@dataclass(frozen=True)
class TicketText:
    """The part of a ticket the classifiers look at."""
    title: str
    description: str

    @property
    def full_text(self) -> str:
        return f"{self.title or ''} {self.description or ''}"


def normalize_priority(value: Any) -> str:
    """Map anything that is not low/medium/high onto medium."""
    if isinstance(value, str) and value.strip().lower() in VALID_PRIORITIES:
        return value.strip().lower()
    return Priority.MEDIUM


def _unique_strings(values: Any) -> List[str]:
    if not isinstance(values, (list, tuple)):
        return []
    seen = []
    for value in values:
        if isinstance(value, str) and value.strip() and value.strip() not in seen:
            seen.append(value.strip())
    return seen


@dataclass(frozen=True)
class ClassificationResult:
    """
    Result of ticket classification.

    Built in one go from a provider payload or by the heuristic classifier,
    never field by field.
    """
    summary: str
    priority: str
    helpful_notes: str
    related_skills: List[str] = field(default_factory=list)
    source: str = HEURISTIC_SOURCE

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], source: str) -> "ClassificationResult":
        """
        Build a result from a decoded provider JSON object.

        Providers answer in camelCase as instructed, but snake_case keys are
        accepted too. A non-blank ``summary``, a string ``helpfulNotes`` and a
        ``relatedSkills`` list are required; ``priority`` falls back to medium.

        Raises:
            ValueError: if a required field is missing or has the wrong type
        """
        def pick(*keys: str) -> Any:
            for key in keys:
                if key in payload and payload[key] is not None:
                    return payload[key]
            return None

        summary = pick("summary")
        notes = pick("helpfulNotes", "helpful_notes")
        skills = pick("relatedSkills", "related_skills")
        if not isinstance(summary, str) or not summary.strip():
            raise ValueError("payload has no summary")
        if not isinstance(notes, str):
            raise ValueError("payload has no helpfulNotes string")
        if not isinstance(skills, (list, tuple)):
            raise ValueError("payload has no relatedSkills list")

        return cls(
            summary=summary.strip(),
            priority=normalize_priority(pick("priority")),
            helpful_notes=notes,
            related_skills=_unique_strings(skills),
            source=source,
        )


@dataclass
class TriageOutcome:
    """What a single triage run did to a ticket."""
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


class ClassificationPromptBuilder:
    """
    Builds prompts for ticket classification.

    All prompt wording lives here.
    """

    SYSTEM_PROMPT = """You are an expert AI assistant that processes technical support tickets.

Your job is to:
1. Summarize the issue.
2. Estimate its priority.
3. Provide helpful notes and resource links for human moderators.
4. List relevant technical skills required.

IMPORTANT:
- Respond with *only* valid raw JSON.
- Do NOT include markdown, code fences, comments, or any extra formatting.
- The format must be a raw JSON object.

Repeat: Do not wrap your output in markdown or code fences."""

    @classmethod
    def build_prompt(cls, title: str, description: str) -> str:
        """Build the ticket-specific prompt; title and description are embedded verbatim."""
        return f"""You are a ticket triage agent. Only return a strict JSON object with no extra text, headers, or markdown.

Analyze the following support ticket and provide a JSON object with:

- summary: A short 1-2 sentence summary of the issue.
- priority: One of "low", "medium", or "high".
- helpfulNotes: A detailed technical explanation that a moderator can use to solve this issue. Include useful external links or resources if possible.
- relatedSkills: An array of relevant skills required to solve the issue (e.g., ["React", "MongoDB"]).

Respond ONLY in this JSON format and do not include any other text or markdown in the answer:

{{
"summary": "Short summary of the ticket",
"priority": "high",
"helpfulNotes": "Here are useful tips...",
"relatedSkills": ["React", "Node.js"]
}}

---

Ticket information:

- Title: {title}
- Description: {description}"""

    @classmethod
    def get_system_prompt(cls) -> str:
        """Get the system prompt for classification."""
        return cls.SYSTEM_PROMPT
