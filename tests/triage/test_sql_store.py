"""Tests for the SQLAlchemy-backed ticket store and user directory (SQLite)"""
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
import pytest_asyncio

from ticket_assistant.accounts.infrastructure import SQLAlchemyUserRepository
from ticket_assistant.config import PENDING_TRIAGE_STATES
from ticket_assistant.infrastructure.database import (
    close_database, create_tables, get_session_context, init_database
)
from ticket_assistant.tickets.domain.entities import Ticket
from ticket_assistant.triage.infrastructure import SQLAlchemyTicketStore, SQLAlchemyUserDirectory


@pytest_asyncio.fixture
async def database(tmp_path):
    init_database(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}")
    await create_tables()
    yield
    await close_database()


async def seed_user(email, role, skills=()):
    async with get_session_context() as session:
        return await SQLAlchemyUserRepository(session).create(email, role, list(skills))


def new_ticket(created_by):
    return Ticket(id=str(uuid4()), title="Site down", description="Production is down", created_by=created_by)


class TestSQLAlchemyTicketStore:
    @pytest.mark.asyncio
    async def test_create_and_find(self, database):
        user = await seed_user("user@example.com", "user")
        store = SQLAlchemyTicketStore()

        created = await store.create(new_ticket(user.id))
        found = await store.find_by_id(created.id)

        assert found.title == "Site down"
        assert found.created_by == user.id
        assert found.triage_state == "CREATED"
        assert found.status is None

    @pytest.mark.asyncio
    async def test_partial_update(self, database):
        user = await seed_user("user@example.com", "user")
        moderator = await seed_user("mod@example.com", "moderator", ["React"])
        store = SQLAlchemyTicketStore()
        ticket = await store.create(new_ticket(user.id))

        updated = await store.update_by_id(ticket.id, {
            "priority": "high",
            "related_skills": ["React"],
            "assigned_to": moderator.id,
            "triage_state": "NOTIFYING",
        })

        assert updated.priority == "high"
        assert updated.related_skills == ["React"]
        assert updated.assigned_to == moderator.id
        assert updated.assigned_to_email == "mod@example.com"
        assert updated.title == "Site down"

    @pytest.mark.asyncio
    async def test_update_missing_ticket(self, database):
        assert await SQLAlchemyTicketStore().update_by_id(str(uuid4()), {"status": "TODO"}) is None
        assert await SQLAlchemyTicketStore().update_by_id("garbage", {"status": "TODO"}) is None

    @pytest.mark.asyncio
    async def test_find_stale(self, database):
        user = await seed_user("user@example.com", "user")
        store = SQLAlchemyTicketStore()
        pending = await store.create(new_ticket(user.id))
        done = await store.create(new_ticket(user.id))
        await store.update_by_id(done.id, {"triage_state": "ASSIGNED"})

        future = datetime.now(timezone.utc) + timedelta(minutes=5)
        past = datetime.now(timezone.utc) - timedelta(minutes=5)

        assert [t.id for t in await store.find_stale(PENDING_TRIAGE_STATES, future)] == [pending.id]
        assert await store.find_stale(PENDING_TRIAGE_STATES, past) == []


class TestSQLAlchemyUserDirectory:
    @pytest.mark.asyncio
    async def test_moderators_and_first_admin(self, database):
        first_admin = await seed_user("admin-a@example.com", "admin")
        await seed_user("admin-b@example.com", "admin")
        moderator = await seed_user("mod@example.com", "moderator", ["Docker"])
        await seed_user("user@example.com", "user")
        directory = SQLAlchemyUserDirectory()

        moderators = await directory.find_moderators()
        admin = await directory.find_admin()

        assert [m.id for m in moderators] == [moderator.id]
        assert moderators[0].skills == ["Docker"]
        assert admin.id == first_admin.id
