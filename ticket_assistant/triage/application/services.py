"""
Triage Application Services
============================

Application services for ticket classification, assignment and the
triage pipeline that drives them.

Orchestrates business logic between domain entities and the collaborators
(ticket store, user directory, notifier, classification providers), which
are only known through the interfaces below.
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

from ticket_assistant.accounts.domain.entities import User
from ticket_assistant.config import (
    TicketStatus, TriageState, TriagePolicy, PENDING_TRIAGE_STATES, TICKET_CREATED_EVENT
)
from ticket_assistant.core import (
    ProviderError, ParseError, ClassificationFailed, NoProviderConfigured
)
from ticket_assistant.shared.infrastructure.events import IEventPublisher
from ticket_assistant.shared.infrastructure.logging import (
    get_logger, get_context_logger, log_latency
)
from ticket_assistant.tickets.domain.entities import Ticket
from ticket_assistant.triage.application.normalization import extract_payloads, decode_payload
from ticket_assistant.triage.domain import (
    ClassificationResult, ClassificationPromptBuilder, TicketText, TriageOutcome,
    heuristic_classify,
)

logger = get_logger(__name__)


# ========== Collaborator Interfaces ==========

class IClassificationProvider(ABC):
    """An external text-classification service."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name used in logs and error summaries."""

    @abstractmethod
    async def generate(self, system_prompt: str, prompt: str) -> Any:
        """Send the prompts and return the provider's raw response."""


class ITicketStore(ABC):
    """Ticket persistence as seen by the triage pipeline."""

    @abstractmethod
    async def create(self, ticket: Ticket) -> Ticket:
        """Persist a new ticket."""

    @abstractmethod
    async def find_by_id(self, ticket_id: str) -> Optional[Ticket]:
        """Get ticket by ID."""

    @abstractmethod
    async def update_by_id(self, ticket_id: str, fields: Dict[str, Any]) -> Optional[Ticket]:
        """Apply a partial update; other fields may be changed concurrently."""

    @abstractmethod
    async def find_stale(self, states: Sequence[str], older_than: datetime) -> List[Ticket]:
        """Tickets in one of ``states`` not touched since ``older_than``."""


class IUserDirectory(ABC):
    """Read-only user queries needed for assignment."""

    @abstractmethod
    async def find_moderators(self) -> List[User]:
        """All moderators in a stable order."""

    @abstractmethod
    async def find_admin(self) -> Optional[User]:
        """First admin in a stable order, if any."""


class INotifier(ABC):
    """Outbound notification channel."""

    @abstractmethod
    async def send(self, to_address: str, subject: str, body: str) -> bool:
        """Send a message; returns False when the channel is not configured."""


# ========== Classifier Adapter ==========

def _status_of(error: Exception) -> str:
    status = getattr(error, "status_code", None) or getattr(error, "status", None)
    return str(status) if status is not None else type(error).__name__


class ClassifierAdapter:
    """
    Classifies tickets with the configured providers.

    Providers are tried in order (primary, then secondary), each attempt
    bounded by ``timeout_seconds``. A malformed response counts as a failed
    attempt. Once every provider failed the ``policy`` decides:
    ``lenient`` degrades to heuristic classification, ``strict`` raises
    ClassificationFailed. With no provider at all, ``lenient`` classifies
    heuristically and ``strict`` refuses to start.
    """

    def __init__(
        self,
        providers: Sequence[IClassificationProvider],
        policy: str = TriagePolicy.LENIENT,
        timeout_seconds: float = 20.0
    ):
        self._providers = list(providers)
        self._policy = policy
        self._timeout = timeout_seconds

        if not self._providers and policy == TriagePolicy.STRICT:
            raise NoProviderConfigured(
                "Strict triage policy needs PRIMARY_API_KEY or SECONDARY_API_KEY"
            )

    @property
    def provider_names(self) -> List[str]:
        return [p.name for p in self._providers]

    @property
    def policy(self) -> str:
        return self._policy

    async def classify(self, ticket: TicketText) -> ClassificationResult:
        """
        Classify a ticket.

        Raises:
            ClassificationFailed: strict policy and every provider failed
        """
        if not self._providers:
            logger.info("No classification provider configured, using heuristic classification")
            return heuristic_classify(ticket)

        attempts: List[ProviderError] = []
        for provider in self._providers:
            try:
                return await self._attempt(provider, ticket)
            except ProviderError as e:
                attempts.append(e)
                logger.warning(
                    "Classification provider failed",
                    extra={"provider": e.provider, "status": e.status, "error": e.reason}
                )

        if self._policy == TriagePolicy.STRICT:
            raise ClassificationFailed(attempts)

        logger.warning(
            "All classification providers failed, using heuristic classification",
            extra={"attempts": [a.summary() for a in attempts]}
        )
        return heuristic_classify(ticket)

    async def _attempt(self, provider: IClassificationProvider, ticket: TicketText) -> ClassificationResult:
        system_prompt = ClassificationPromptBuilder.get_system_prompt()
        prompt = ClassificationPromptBuilder.build_prompt(ticket.title, ticket.description)

        try:
            with log_latency(logger, "classification_attempt", provider=provider.name):
                response = await asyncio.wait_for(
                    provider.generate(system_prompt, prompt),
                    timeout=self._timeout
                )
        except asyncio.TimeoutError as e:
            raise ProviderError(
                provider.name, "timeout", f"no response within {self._timeout}s"
            ) from e
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(provider.name, _status_of(e), str(e) or type(e).__name__) from e

        return self._normalize(provider.name, response)

    def _normalize(self, provider_name: str, response: Any) -> ClassificationResult:
        payloads = extract_payloads(response)
        if not payloads:
            raise ParseError(provider_name, "response contained no text payload")

        last_error = ""
        for raw in payloads:
            try:
                return ClassificationResult.from_payload(decode_payload(raw), source=provider_name)
            except ValueError as e:
                last_error = str(e)

        raise ParseError(provider_name, f"no payload parsed as a classification: {last_error}")


# ========== Assignment Resolver ==========

def skills_overlap(moderator_skills: Sequence[str], related_skills: Sequence[str]) -> bool:
    """True when any moderator skill contains any related skill, ignoring case."""
    wanted = [s.strip().lower() for s in related_skills if isinstance(s, str) and s.strip()]
    if not wanted:
        return False
    for skill in moderator_skills or []:
        if not isinstance(skill, str):
            continue
        lowered = skill.lower()
        if any(w in lowered for w in wanted):
            return True
    return False


class AssignmentResolver:
    """Selects who a classified ticket goes to."""

    def __init__(self, directory: IUserDirectory):
        self._directory = directory

    async def resolve(self, related_skills: Sequence[str]) -> Optional[User]:
        """
        Pick an assignee.

        First moderator (directory order) with overlapping skills, else the
        first admin, else None. None is a valid outcome: the ticket stays
        unassigned.
        """
        if related_skills:
            for moderator in await self._directory.find_moderators():
                if skills_overlap(moderator.skills, related_skills):
                    return moderator

        return await self._directory.find_admin()


# ========== Triage Orchestrator ==========

class TriageOrchestrator:
    """
    Drives one ticket through the triage pipeline.

    CREATED -> CLASSIFYING -> ASSIGNING -> NOTIFYING -> ASSIGNED
                                        \\-> UNASSIGNED

    Every step is persisted as its own partial update, so an interrupted run
    leaves visible progress and can be replayed from the start. Classifier
    and notifier failures are contained in their step; only ticket store
    failures propagate (and are retried by event delivery).
    """

    def __init__(
        self,
        store: ITicketStore,
        classifier: ClassifierAdapter,
        resolver: AssignmentResolver,
        notifier: INotifier
    ):
        self._store = store
        self._classifier = classifier
        self._resolver = resolver
        self._notifier = notifier

    async def run(self, ticket_id: str, *, force: bool = False) -> TriageOutcome:
        """
        Triage a ticket.

        Args:
            ticket_id: Ticket to triage
            force: Re-run even when the ticket already finished triage

        Returns:
            TriageOutcome describing what this run did
        """
        log = get_context_logger(__name__, ticket_id)

        ticket = await self._store.find_by_id(ticket_id)
        if ticket is None:
            log.warning("Ticket not found, nothing to triage")
            return TriageOutcome(ticket_id=ticket_id, skipped=True)

        if ticket.is_triaged and not force:
            log.info("Ticket already triaged, skipping", extra={"triage_state": ticket.triage_state})
            return TriageOutcome(
                ticket_id=ticket_id,
                state=ticket.triage_state,
                status=ticket.status,
                priority=ticket.priority,
                assigned_to=ticket.assigned_to,
                skipped=True,
            )

        outcome = TriageOutcome(ticket_id=ticket_id, status=TicketStatus.TODO)

        await self._store.update_by_id(
            ticket_id, {"status": TicketStatus.TODO, "triage_state": TriageState.CREATED}
        )

        related_skills = await self._classify(ticket, outcome, log)
        assignee = await self._assign(ticket_id, related_skills, outcome, log)
        if assignee is not None:
            await self._notify(ticket, assignee, outcome, log)
            await self._store.update_by_id(ticket_id, {"triage_state": TriageState.ASSIGNED})
            outcome.state = TriageState.ASSIGNED

        log.info(
            "Triage finished",
            extra={
                "triage_state": outcome.state,
                "priority": outcome.priority,
                "assigned_to": outcome.assigned_to,
                "classification_source": outcome.classification_source,
            }
        )
        return outcome

    async def _classify(self, ticket: Ticket, outcome: TriageOutcome, log) -> List[str]:
        await self._store.update_by_id(ticket.id, {"triage_state": TriageState.CLASSIFYING})

        try:
            result = await self._classifier.classify(TicketText(ticket.title, ticket.description))
        except ClassificationFailed as e:
            log.error("Classification failed, ticket needs manual triage", extra={"error": e.message})
            outcome.classification_error = e.message
            await self._store.update_by_id(
                ticket.id,
                {
                    "priority": None,
                    "summary": None,
                    "helpful_notes": None,
                    "related_skills": [],
                    "triage_error": e.message,
                }
            )
            return []

        await self._store.update_by_id(
            ticket.id,
            {
                "priority": result.priority,
                "summary": result.summary,
                "helpful_notes": result.helpful_notes,
                "related_skills": list(result.related_skills),
                "status": TicketStatus.IN_PROGRESS,
                "triage_error": None,
            }
        )
        outcome.status = TicketStatus.IN_PROGRESS
        outcome.priority = result.priority
        outcome.classification_source = result.source
        return list(result.related_skills)

    async def _assign(self, ticket_id: str, related_skills: List[str], outcome: TriageOutcome, log) -> Optional[User]:
        await self._store.update_by_id(ticket_id, {"triage_state": TriageState.ASSIGNING})

        assignee = await self._resolver.resolve(related_skills)
        if assignee is not None and not assignee.is_assignable:
            log.error("Resolver returned a non-staff user, leaving ticket unassigned", extra={"user_id": assignee.id})
            assignee = None

        next_state = TriageState.NOTIFYING if assignee else TriageState.UNASSIGNED
        await self._store.update_by_id(
            ticket_id,
            {"assigned_to": assignee.id if assignee else None, "triage_state": next_state}
        )
        outcome.assigned_to = assignee.id if assignee else None
        outcome.state = next_state
        return assignee

    async def _notify(self, ticket: Ticket, assignee: User, outcome: TriageOutcome, log) -> None:
        subject = f"Ticket assigned: {ticket.title}"
        body = build_assignment_body(ticket, outcome)
        try:
            outcome.notified = bool(await self._notifier.send(assignee.email, subject, body))
        except Exception as e:
            log.error("Assignment notification failed", extra={"to": assignee.email, "error": str(e)})
            outcome.notification_error = str(e)


def build_assignment_body(ticket: Ticket, outcome: TriageOutcome) -> str:
    lines = [
        "Hi,",
        "",
        "A ticket has been assigned to you.",
        f"Title: {ticket.title}",
        f"Priority: {outcome.priority or 'unclassified'}",
    ]
    if outcome.classification_error:
        lines.append("Automatic classification failed; this ticket needs manual triage.")
    lines.extend(["", "Check the dashboard for the full description and notes."])
    return "\n".join(lines)


# ========== Recovery ==========

class TriageRecoveryService:
    """
    Re-publishes ``ticket/created`` for tickets whose triage stalled.

    A ticket stuck in a non-terminal triage state for longer than
    ``stale_seconds`` is assumed to belong to a run that died with the
    process.
    """

    def __init__(self, store: ITicketStore, publisher: IEventPublisher, stale_seconds: int):
        self._store = store
        self._publisher = publisher
        self._stale_seconds = stale_seconds

    async def requeue_stalled(self, now: Optional[datetime] = None) -> int:
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(seconds=self._stale_seconds)
        tickets = await self._store.find_stale(PENDING_TRIAGE_STATES, cutoff)

        for ticket in tickets:
            await self._publisher.publish(
                TICKET_CREATED_EVENT,
                {
                    "ticket_id": ticket.id,
                    "title": ticket.title,
                    "description": ticket.description,
                    "created_by": ticket.created_by,
                }
            )

        if tickets:
            logger.info("Requeued stalled triage runs", extra={"count": len(tickets)})
        return len(tickets)
