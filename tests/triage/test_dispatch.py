"""Unit tests for the event bus, dispatch strategies and stalled-triage recovery"""
from datetime import datetime, timedelta, timezone

import pytest

from ticket_assistant.shared.infrastructure.events import InProcessEventBus
from ticket_assistant.triage.application import (
    AssignmentResolver, ClassifierAdapter, InlineTriageDispatcher, QueuedTriageDispatcher,
    TicketCreatedEvent, TriageOrchestrator, TriageRecoveryService, ticket_created_handler
)

from tests.conftest import make_ticket


def created_event(ticket):
    return TicketCreatedEvent(
        ticket_id=ticket.id,
        title=ticket.title,
        description=ticket.description,
        created_by=ticket.created_by,
    )


@pytest.fixture
def orchestrator(store, directory, notifier):
    return TriageOrchestrator(store, ClassifierAdapter([]), AssignmentResolver(directory), notifier)


class TestInProcessEventBus:
    @pytest.mark.asyncio
    async def test_delivers_to_subscribers(self):
        received = []

        async def handler(payload):
            received.append(payload)

        bus = InProcessEventBus(workers=2)
        bus.subscribe("ticket/created", handler)
        await bus.start()
        try:
            await bus.publish("ticket/created", {"ticket_id": "1"})
            await bus.publish("ticket/created", {"ticket_id": "2"})
            await bus.drain()
        finally:
            await bus.stop()

        assert sorted(p["ticket_id"] for p in received) == ["1", "2"]

    @pytest.mark.asyncio
    async def test_retries_until_success(self):
        attempts = []

        async def flaky(payload):
            attempts.append(payload)
            if len(attempts) < 3:
                raise RuntimeError("transient")

        bus = InProcessEventBus(workers=1, max_attempts=3, retry_base_seconds=0)
        bus.subscribe("ticket/created", flaky)
        await bus.start()
        try:
            await bus.publish("ticket/created", {"ticket_id": "1"})
            await bus.drain()
        finally:
            await bus.stop()

        assert len(attempts) == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        attempts = []

        async def broken(payload):
            attempts.append(payload)
            raise RuntimeError("permanent")

        bus = InProcessEventBus(workers=1, max_attempts=2, retry_base_seconds=0)
        bus.subscribe("ticket/created", broken)
        await bus.start()
        try:
            await bus.publish("ticket/created", {"ticket_id": "1"})
            await bus.drain()
        finally:
            await bus.stop()

        assert len(attempts) == 2
        assert not bus.is_running

    @pytest.mark.asyncio
    async def test_buffers_events_published_before_start(self):
        received = []

        async def handler(payload):
            received.append(payload)

        bus = InProcessEventBus()
        bus.subscribe("ticket/created", handler)
        await bus.publish("ticket/created", {"ticket_id": "early"})
        await bus.start()
        try:
            await bus.drain()
        finally:
            await bus.stop()

        assert received == [{"ticket_id": "early"}]


class TestDispatchers:
    @pytest.mark.asyncio
    async def test_inline_runs_pipeline(self, store, orchestrator):
        ticket = await store.create(make_ticket())

        await InlineTriageDispatcher(orchestrator).dispatch(created_event(ticket))

        assert store.tickets[ticket.id].triage_state == "ASSIGNED"

    @pytest.mark.asyncio
    async def test_inline_swallows_store_errors(self, store, orchestrator):
        ticket = await store.create(make_ticket())
        store.fail_updates = 1

        await InlineTriageDispatcher(orchestrator).dispatch(created_event(ticket))

        assert store.tickets[ticket.id].triage_state == "CREATED"

    @pytest.mark.asyncio
    async def test_queued_reaches_same_terminal_state(self, store, directory, notifier, orchestrator):
        direct_ticket = await store.create(make_ticket("Site down", "Production is down"))
        queued_ticket = await store.create(make_ticket("Site down", "Production is down"))

        await InlineTriageDispatcher(orchestrator).dispatch(created_event(direct_ticket))

        bus = InProcessEventBus(workers=1, retry_base_seconds=0)
        bus.subscribe("ticket/created", ticket_created_handler(orchestrator))
        await bus.start()
        try:
            await QueuedTriageDispatcher(bus).dispatch(created_event(queued_ticket))
            await bus.drain()
        finally:
            await bus.stop()

        direct = store.tickets[direct_ticket.id]
        queued = store.tickets[queued_ticket.id]
        assert (queued.triage_state, queued.status, queued.priority, queued.assigned_to) == \
            (direct.triage_state, direct.status, direct.priority, direct.assigned_to)

    @pytest.mark.asyncio
    async def test_queued_store_failure_retried(self, store, orchestrator):
        ticket = await store.create(make_ticket())
        store.fail_updates = 1

        bus = InProcessEventBus(workers=1, max_attempts=3, retry_base_seconds=0)
        bus.subscribe("ticket/created", ticket_created_handler(orchestrator))
        await bus.start()
        try:
            await QueuedTriageDispatcher(bus).dispatch(created_event(ticket))
            await bus.drain()
        finally:
            await bus.stop()

        assert store.tickets[ticket.id].triage_state == "ASSIGNED"


class RecordingPublisher:
    def __init__(self):
        self.events = []

    async def publish(self, name, payload):
        self.events.append((name, payload))


class TestTriageRecovery:
    @pytest.mark.asyncio
    async def test_requeues_only_stalled_pending_tickets(self, store):
        old = datetime.now(timezone.utc) - timedelta(hours=1)
        stalled = await store.create(make_ticket(triage_state="CLASSIFYING", updated_at=old))
        await store.create(make_ticket(triage_state="ASSIGNED", updated_at=old))
        await store.create(make_ticket(triage_state="CREATED"))

        publisher = RecordingPublisher()
        count = await TriageRecoveryService(store, publisher, stale_seconds=300).requeue_stalled()

        assert count == 1
        name, payload = publisher.events[0]
        assert name == "ticket/created"
        assert payload["ticket_id"] == stalled.id
        assert payload["created_by"] == stalled.created_by
