"""
pytest configuration and shared fixtures
"""
import os

# Settings are read once at import time
os.environ["ENVIRONMENT"] = "test"
os.environ["PROCESSING_MODE"] = "direct"
os.environ["TRIAGE_POLICY"] = "lenient"
os.environ["PRIMARY_API_KEY"] = ""
os.environ["SECONDARY_API_KEY"] = ""
os.environ["MAIL_API_URL"] = ""
os.environ["TRIAGE_RECOVERY_INTERVAL_SECONDS"] = "0"
os.environ["BOOTSTRAP_ADMIN_EMAIL"] = ""
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

import asyncio
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4

import pytest
import pytest_asyncio

from ticket_assistant.accounts.domain.entities import User
from ticket_assistant.core import NotificationError
from ticket_assistant.tickets.domain.entities import Ticket
from ticket_assistant.triage.application import (
    IClassificationProvider, INotifier, ITicketStore, IUserDirectory
)

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


# ========== Fakes ==========

class InMemoryTicketStore(ITicketStore):
    """Dict-backed ticket store recording every partial update."""

    def __init__(self):
        self.tickets: Dict[str, Ticket] = {}
        self.updates: List[tuple] = []
        self.fail_updates = 0

    async def create(self, ticket: Ticket) -> Ticket:
        self.tickets[ticket.id] = replace(ticket)
        return replace(ticket)

    async def find_by_id(self, ticket_id: str) -> Optional[Ticket]:
        ticket = self.tickets.get(ticket_id)
        return replace(ticket) if ticket else None

    async def update_by_id(self, ticket_id: str, fields: Dict[str, Any]) -> Optional[Ticket]:
        if self.fail_updates:
            self.fail_updates -= 1
            raise RuntimeError("store unavailable")
        ticket = self.tickets.get(ticket_id)
        if ticket is None:
            return None
        self.updates.append((ticket_id, dict(fields)))
        for key, value in fields.items():
            setattr(ticket, key, value)
        ticket.updated_at = datetime.now(timezone.utc)
        return replace(ticket)

    async def find_stale(self, states: Sequence[str], older_than: datetime) -> List[Ticket]:
        return [
            replace(t) for t in self.tickets.values()
            if t.triage_state in states and t.updated_at < older_than
        ]

    def states(self, ticket_id: str) -> List[str]:
        """triage_state values written for a ticket, in order."""
        return [f["triage_state"] for tid, f in self.updates if tid == ticket_id and "triage_state" in f]


class InMemoryUserDirectory(IUserDirectory):
    def __init__(self, users: Sequence[User] = ()):
        self.users = list(users)

    async def find_moderators(self) -> List[User]:
        moderators = [u for u in self.users if u.role == "moderator"]
        return sorted(moderators, key=lambda u: (u.created_at, u.email))

    async def find_admin(self) -> Optional[User]:
        admins = sorted((u for u in self.users if u.role == "admin"), key=lambda u: (u.created_at, u.email))
        return admins[0] if admins else None


class RecordingNotifier(INotifier):
    def __init__(self, fail: bool = False, configured: bool = True):
        self.sent: List[Dict[str, str]] = []
        self.fail = fail
        self.configured = configured

    async def send(self, to_address: str, subject: str, body: str) -> bool:
        if self.fail:
            raise NotificationError("mail API returned 503", {"to": to_address})
        if not self.configured:
            return False
        self.sent.append({"to": to_address, "subject": subject, "body": body})
        return True


class StubProvider(IClassificationProvider):
    """Provider returning a canned response or raising a canned error."""

    def __init__(self, name: str, response: Any = None, error: Optional[Exception] = None, delay: float = 0):
        self._name = name
        self.response = response
        self.error = error
        self.delay = delay
        self.calls: List[tuple] = []

    @property
    def name(self) -> str:
        return self._name

    async def generate(self, system_prompt: str, prompt: str) -> Any:
        self.calls.append((system_prompt, prompt))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.response


# ========== Builders ==========

def make_user(email: str, role: str = "user", skills: Sequence[str] = (), minutes: int = 0) -> User:
    return User(
        id=str(uuid4()),
        email=email,
        role=role,
        skills=list(skills),
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )


def make_ticket(title: str = "Site down", description: str = "Production is down after deploy", **kwargs) -> Ticket:
    return Ticket(
        id=kwargs.pop("id", str(uuid4())),
        title=title,
        description=description,
        created_by=kwargs.pop("created_by", str(uuid4())),
        **kwargs,
    )


# ========== Fixtures ==========

@pytest.fixture
def store():
    return InMemoryTicketStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def admin():
    return make_user("admin@example.com", "admin", minutes=0)


@pytest.fixture
def react_moderator():
    return make_user("mod-react@example.com", "moderator", ["React", "Node.js"], minutes=1)


@pytest.fixture
def devops_moderator():
    return make_user("mod-ops@example.com", "moderator", ["Docker", "Kubernetes"], minutes=2)


@pytest.fixture
def directory(admin, react_moderator, devops_moderator):
    return InMemoryUserDirectory([devops_moderator, admin, react_moderator])


class ApiContext:
    """HTTP client plus the seeded users, keyed by role name."""

    def __init__(self, client, users: Dict[str, User]):
        self.client = client
        self.users = users

    def headers(self, name: str) -> Dict[str, str]:
        return {"X-User-ID": self.users[name].id}


@pytest_asyncio.fixture
async def api(tmp_path):
    """
    The FastAPI app on a fresh SQLite database with the triage pipeline
    wired in direct mode (no providers, mail disabled).
    """
    import httpx

    from ticket_assistant.accounts.infrastructure import SQLAlchemyUserRepository
    from ticket_assistant.infrastructure.database import (
        close_database, create_tables, get_session_context, init_database
    )
    from ticket_assistant.main import app, build_triage_pipeline

    init_database(f"sqlite+aiosqlite:///{tmp_path / 'tickets.db'}")
    await create_tables()
    build_triage_pipeline(app)

    async with get_session_context() as session:
        repo = SQLAlchemyUserRepository(session)
        users = {
            "admin": await repo.create("admin@example.com", "admin", []),
            "moderator": await repo.create("mod@example.com", "moderator", ["React", "Node.js"]),
            "user": await repo.create("user@example.com", "user", []),
            "other": await repo.create("other@example.com", "user", []),
        }

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield ApiContext(client, users)

    await close_database()
