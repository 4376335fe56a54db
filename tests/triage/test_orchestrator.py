"""Unit tests for assignment and the triage orchestrator"""
import json

import pytest

from ticket_assistant.triage.application import (
    AssignmentResolver, ClassifierAdapter, TriageOrchestrator, skills_overlap
)

from tests.conftest import (
    InMemoryUserDirectory, RecordingNotifier, StubProvider, make_ticket, make_user
)


def classification(skills, priority="medium"):
    return json.dumps({
        "summary": "Summary from the model",
        "priority": priority,
        "helpfulNotes": "Notes from the model",
        "relatedSkills": skills,
    })


def build_orchestrator(store, directory, notifier, providers=(), policy="lenient"):
    return TriageOrchestrator(
        store=store,
        classifier=ClassifierAdapter(list(providers), policy=policy),
        resolver=AssignmentResolver(directory),
        notifier=notifier,
    )


class TestSkillsOverlap:
    def test_moderator_skill_contains_related_skill(self):
        assert skills_overlap(["React Native"], ["react"])

    def test_case_insensitive(self):
        assert skills_overlap(["node.js"], ["Node.js"])

    def test_one_direction_only(self):
        assert not skills_overlap(["React"], ["React Native"])

    def test_empty_related_skills(self):
        assert not skills_overlap(["React"], [])
        assert not skills_overlap(["React"], ["  "])


class TestAssignmentResolver:
    @pytest.mark.asyncio
    async def test_first_matching_moderator(self, directory, react_moderator):
        later = make_user("late-react@example.com", "moderator", ["react"], minutes=30)
        directory.users.append(later)

        assignee = await AssignmentResolver(directory).resolve(["React"])

        assert assignee.id == react_moderator.id

    @pytest.mark.asyncio
    async def test_falls_back_to_admin(self, directory, admin):
        assignee = await AssignmentResolver(directory).resolve(["Kotlin"])
        assert assignee.id == admin.id

    @pytest.mark.asyncio
    async def test_empty_skills_go_to_admin(self, directory, admin):
        assignee = await AssignmentResolver(directory).resolve([])
        assert assignee.id == admin.id

    @pytest.mark.asyncio
    async def test_nobody_to_assign(self):
        assert await AssignmentResolver(InMemoryUserDirectory()).resolve(["React"]) is None


class TestTriageOrchestrator:
    @pytest.mark.asyncio
    async def test_site_down_without_providers(self, store, directory, notifier, admin):
        ticket = await store.create(make_ticket("Site down", "Production is down after deploy"))
        orchestrator = build_orchestrator(store, directory, notifier)

        outcome = await orchestrator.run(ticket.id)

        stored = store.tickets[ticket.id]
        assert stored.priority == "high"
        assert stored.status == "IN_PROGRESS"
        assert stored.assigned_to == admin.id
        assert stored.triage_state == "ASSIGNED"
        assert stored.triage_error is None
        assert outcome.classification_source == "heuristic"
        assert outcome.notified is True
        assert notifier.sent[0]["to"] == admin.email
        assert "Site down" in notifier.sent[0]["subject"]
        assert store.states(ticket.id) == ["CREATED", "CLASSIFYING", "ASSIGNING", "NOTIFYING", "ASSIGNED"]

    @pytest.mark.asyncio
    async def test_skill_match_assigns_moderator(self, store, directory, notifier, react_moderator):
        ticket = await store.create(make_ticket("Form bug", "The signup form re-renders forever"))
        provider = StubProvider("primary", response=classification(["React"], "low"))
        orchestrator = build_orchestrator(store, directory, notifier, [provider])

        outcome = await orchestrator.run(ticket.id)

        stored = store.tickets[ticket.id]
        assert stored.assigned_to == react_moderator.id
        assert stored.priority == "low"
        assert stored.summary == "Summary from the model"
        assert stored.helpful_notes == "Notes from the model"
        assert stored.related_skills == ["React"]
        assert outcome.classification_source == "primary"
        assert notifier.sent[0]["to"] == react_moderator.email

    @pytest.mark.asyncio
    async def test_status_todo_written_first(self, store, directory, notifier):
        ticket = await store.create(make_ticket())
        await build_orchestrator(store, directory, notifier).run(ticket.id)

        first_update = store.updates[0][1]
        assert first_update == {"status": "TODO", "triage_state": "CREATED"}

    @pytest.mark.asyncio
    async def test_unassigned_when_no_staff(self, store, notifier):
        ticket = await store.create(make_ticket())
        orchestrator = build_orchestrator(store, InMemoryUserDirectory(), notifier)

        outcome = await orchestrator.run(ticket.id)

        assert store.tickets[ticket.id].assigned_to is None
        assert store.tickets[ticket.id].triage_state == "UNASSIGNED"
        assert outcome.state == "UNASSIGNED"
        assert notifier.sent == []
        assert store.states(ticket.id) == ["CREATED", "CLASSIFYING", "ASSIGNING", "UNASSIGNED"]

    @pytest.mark.asyncio
    async def test_non_staff_assignee_rejected(self, store, notifier):
        class BrokenDirectory(InMemoryUserDirectory):
            async def find_admin(self):
                return make_user("someone@example.com", "user")

        ticket = await store.create(make_ticket())
        outcome = await build_orchestrator(store, BrokenDirectory(), notifier).run(ticket.id)

        assert outcome.assigned_to is None
        assert store.tickets[ticket.id].triage_state == "UNASSIGNED"

    @pytest.mark.asyncio
    async def test_strict_classification_failure(self, store, directory, notifier, admin):
        ticket = await store.create(make_ticket())
        provider = StubProvider("primary", error=RuntimeError("quota exceeded"))
        orchestrator = build_orchestrator(store, directory, notifier, [provider], policy="strict")

        outcome = await orchestrator.run(ticket.id)

        stored = store.tickets[ticket.id]
        assert stored.status == "TODO"
        assert stored.priority is None
        assert "quota exceeded" in stored.triage_error
        assert stored.assigned_to == admin.id
        assert stored.triage_state == "ASSIGNED"
        assert outcome.classification_error == stored.triage_error
        assert "manual triage" in notifier.sent[0]["body"]

    @pytest.mark.asyncio
    async def test_notification_failure_is_contained(self, store, directory, admin):
        ticket = await store.create(make_ticket())
        notifier = RecordingNotifier(fail=True)

        outcome = await build_orchestrator(store, directory, notifier).run(ticket.id)

        assert store.tickets[ticket.id].triage_state == "ASSIGNED"
        assert store.tickets[ticket.id].assigned_to == admin.id
        assert outcome.notified is False
        assert "503" in outcome.notification_error

    @pytest.mark.asyncio
    async def test_unconfigured_notifier(self, store, directory):
        ticket = await store.create(make_ticket())
        outcome = await build_orchestrator(store, directory, RecordingNotifier(configured=False)).run(ticket.id)

        assert outcome.notified is False
        assert outcome.notification_error is None
        assert outcome.state == "ASSIGNED"

    @pytest.mark.asyncio
    async def test_duplicate_delivery_skipped(self, store, directory, notifier):
        ticket = await store.create(make_ticket())
        orchestrator = build_orchestrator(store, directory, notifier)

        await orchestrator.run(ticket.id)
        second = await orchestrator.run(ticket.id)

        assert second.skipped is True
        assert second.state == "ASSIGNED"
        assert len(notifier.sent) == 1

    @pytest.mark.asyncio
    async def test_forced_rerun_overwrites(self, store, directory, notifier, react_moderator):
        ticket = await store.create(make_ticket())
        provider = StubProvider("primary", error=RuntimeError("down"))
        orchestrator = build_orchestrator(store, directory, notifier, [provider])
        await orchestrator.run(ticket.id)

        provider.error = None
        provider.response = classification(["react"], "low")
        outcome = await orchestrator.run(ticket.id, force=True)

        assert outcome.skipped is False
        assert store.tickets[ticket.id].priority == "low"
        assert store.tickets[ticket.id].assigned_to == react_moderator.id
        assert len(notifier.sent) == 2

    @pytest.mark.asyncio
    async def test_failed_rerun_clears_previous_classification(self, store, directory, notifier, admin):
        ticket = await store.create(make_ticket())
        provider = StubProvider("primary", response=classification(["react"], "high"))
        orchestrator = build_orchestrator(store, directory, notifier, [provider], policy="strict")
        await orchestrator.run(ticket.id)
        assert store.tickets[ticket.id].priority == "high"

        provider.error = RuntimeError("down")
        outcome = await orchestrator.run(ticket.id, force=True)

        stored = store.tickets[ticket.id]
        assert stored.status == "TODO"
        assert (stored.priority, stored.summary, stored.helpful_notes) == (None, None, None)
        assert stored.related_skills == []
        assert "down" in stored.triage_error
        assert stored.assigned_to == admin.id
        assert outcome.classification_error == stored.triage_error

    @pytest.mark.asyncio
    async def test_interrupted_run_is_replayed(self, store, directory, notifier):
        ticket = await store.create(make_ticket(triage_state="ASSIGNING"))

        outcome = await build_orchestrator(store, directory, notifier).run(ticket.id)

        assert outcome.skipped is False
        assert store.tickets[ticket.id].triage_state == "ASSIGNED"

    @pytest.mark.asyncio
    async def test_missing_ticket(self, store, directory, notifier):
        outcome = await build_orchestrator(store, directory, notifier).run("does-not-exist")
        assert outcome.skipped is True
        assert store.updates == []

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, store, directory, notifier):
        ticket = await store.create(make_ticket())
        store.fail_updates = 1

        with pytest.raises(RuntimeError):
            await build_orchestrator(store, directory, notifier).run(ticket.id)
