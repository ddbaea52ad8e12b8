"""Tests for the tracker session facade."""
from __future__ import annotations

import asyncio
from datetime import date
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

from core.models import HistoryStore, RuleUnavailableError, UnknownRuleError
from services.state_store import DebouncedWriter, StateStoreClient, StateStoreError, StoreUnavailableError
from services.tracker import DisciplineTracker
from tests.helpers import build_store, moment
from utils.datetime_utils import FixedClock

WEDNESDAY_MORNING = moment(2024, 1, 3, 9, 0)


@pytest.fixture
def store_client():
    client = AsyncMock(spec=StateStoreClient)
    client.load.return_value = HistoryStore.empty()
    client.save.return_value = True
    return client


@pytest.fixture
def analyst():
    analyst = Mock()
    analyst.summarize = AsyncMock(return_value="Сэр, всё под контролем.")
    analyst.close = AsyncMock()
    return analyst


@pytest_asyncio.fixture
async def tracker(store_client, analyst):
    tracker = DisciplineTracker(
        client=store_client,
        clock=FixedClock(WEDNESDAY_MORNING),
        analyst=analyst,
        writer=DebouncedWriter(store_client.save, delay=0.01)
    )
    await tracker.load()
    yield tracker
    await tracker.close()


class TestTrackerLoading:
    """Test session startup."""

    @pytest.mark.asyncio
    async def test_load_success(self, tracker, store_client):
        assert tracker.loaded
        assert not tracker.load_failed
        store_client.load.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_load_failure_sets_flag(self, store_client):
        store_client.load.side_effect = StoreUnavailableError("load_failed")
        tracker = DisciplineTracker(client=store_client, clock=FixedClock(WEDNESDAY_MORNING))

        assert await tracker.load() is False
        assert tracker.load_failed
        assert not tracker.loaded
        assert tracker.store == HistoryStore.empty()
        await tracker.close()

    @pytest.mark.asyncio
    async def test_failed_load_blocks_writes(self, store_client):
        store_client.load.side_effect = StoreUnavailableError("load_failed")
        tracker = DisciplineTracker(
            client=store_client,
            clock=FixedClock(WEDNESDAY_MORNING),
            writer=DebouncedWriter(store_client.save, delay=0.01)
        )
        await tracker.load()

        with pytest.raises(StateStoreError):
            tracker.toggle_task(date(2024, 1, 3), "exercise")
        with pytest.raises(StateStoreError):
            tracker.toggle_fine(date(2024, 1, 3), "alcohol")
        tracker.progress()
        await tracker.close()

        store_client.save.assert_not_awaited()
        assert tracker.store == HistoryStore.empty()

    @pytest.mark.asyncio
    async def test_unlocks_before_load_are_not_saved(self, store_client):
        tracker = DisciplineTracker(
            client=store_client,
            clock=FixedClock(WEDNESDAY_MORNING),
            writer=DebouncedWriter(store_client.save, delay=0.01)
        )
        tracker.store = build_store({date(2024, 1, 2): ["cleanFood", "noPorn", "jarvisV2", "english", "reading"]})

        _, newly_unlocked = tracker.progress()
        await tracker.close()

        assert [definition.achievement_id for definition in newly_unlocked] == ["first_thousand"]
        store_client.save.assert_not_awaited()


class TestTrackerMarks:
    """Test toggling task and fine marks."""

    @pytest.mark.asyncio
    async def test_toggle_task_persists_under_derived_week(self, tracker, store_client):
        assert tracker.toggle_task(date(2024, 1, 7), "exercise") is True
        await asyncio.sleep(0.05)

        saved = store_client.save.await_args.args[0]
        assert saved.weeks == {"2024-01-01": {"2024-01-07": {"exercise": True}}}
        assert tracker.is_marked(date(2024, 1, 7), "exercise")

    @pytest.mark.asyncio
    async def test_toggle_twice_clears_mark(self, tracker, store_client):
        tracker.toggle_task(date(2024, 1, 2), "reading")
        assert tracker.toggle_task(date(2024, 1, 2), "reading") is False
        await asyncio.sleep(0.05)

        store_client.save.assert_awaited_once()
        assert not store_client.save.await_args.args[0].is_marked(date(2024, 1, 2), "reading")

    @pytest.mark.asyncio
    async def test_persisted_snapshot_is_a_copy(self, tracker, store_client):
        tracker.toggle_task(date(2024, 1, 2), "reading")
        await asyncio.sleep(0.05)
        tracker.store.set_mark(date(2024, 1, 2), "english", True)

        saved = store_client.save.await_args.args[0]
        assert not saved.is_marked(date(2024, 1, 2), "english")

    @pytest.mark.asyncio
    async def test_unknown_task(self, tracker):
        with pytest.raises(UnknownRuleError):
            tracker.toggle_task(date(2024, 1, 2), "meditation")
        with pytest.raises(UnknownRuleError):
            tracker.toggle_task(date(2024, 1, 2), "smoking")

    @pytest.mark.asyncio
    async def test_unavailable_task(self, tracker, store_client):
        with pytest.raises(RuleUnavailableError):
            tracker.toggle_task(date(2024, 1, 1), "strength")
        with pytest.raises(RuleUnavailableError):
            tracker.toggle_task(date(2024, 1, 3), "wake730")
        assert not tracker.writer.has_pending

    @pytest.mark.asyncio
    async def test_past_wake_up_still_allowed(self, tracker):
        assert tracker.toggle_task(date(2024, 1, 2), "wake730") is True

    @pytest.mark.asyncio
    async def test_toggle_fine(self, tracker):
        assert tracker.toggle_fine(date(2024, 1, 6), "smoking") is True
        assert tracker.is_marked(date(2024, 1, 6), "smoking")
        with pytest.raises(UnknownRuleError):
            tracker.toggle_fine(date(2024, 1, 6), "exercise")


class TestTrackerProgress:
    """Test progress and achievement unlocking."""

    @pytest.mark.asyncio
    async def test_progress_unlocks_and_persists(self, tracker, store_client):
        tracker.store = build_store({
            date(2024, 1, 2): ["exercise", "cleanFood", "noPorn", "jarvisV2", "english", "reading"],
        })

        result, newly_unlocked = tracker.progress()
        await asyncio.sleep(0.05)

        assert result.balance == 1100
        assert [definition.achievement_id for definition in newly_unlocked] == ["first_thousand"]
        assert tracker.store.unlocked == ["first_thousand"]
        assert store_client.save.await_args.args[0].unlocked == ["first_thousand"]

    @pytest.mark.asyncio
    async def test_repeated_progress_reports_nothing_new(self, tracker, store_client):
        tracker.store = build_store({date(2024, 1, 2): ["cleanFood", "noPorn", "jarvisV2", "english", "reading"]})
        tracker.progress()
        _, newly_unlocked = tracker.progress()

        assert newly_unlocked == []

    @pytest.mark.asyncio
    async def test_unlocked_survive_balance_drop(self, tracker):
        tracker.store = build_store({date(2024, 1, 2): ["smoking"]}, unlocked=["first_thousand"])

        result, newly_unlocked = tracker.progress()

        assert result.balance == -3000
        assert newly_unlocked == []
        assert tracker.store.unlocked == ["first_thousand"]
        assert not tracker.writer.has_pending

    @pytest.mark.asyncio
    async def test_week_view_flags(self, tracker):
        tracker.toggle_task(date(2024, 1, 2), "exercise")
        view = tracker.week_view()

        assert view.week_key == "2024-01-01"
        rows = {row.task.rule_id: row for row in view.rows}
        assert [cell.enabled for cell in rows["wake730"].cells] == [True, True, False, True, True, False, False]
        assert [cell.enabled for cell in rows["strength"].cells] == [False, False, True, False, False, True, False]
        assert rows["exercise"].cells[1].checked
        assert view.to_dict()["rows"][0]["task_id"] == "wake730"

    @pytest.mark.asyncio
    async def test_week_view_offset(self, tracker):
        assert tracker.week_view(-1).week_key == "2023-12-25"
        assert tracker.week_view(1).week_key == "2024-01-08"

    @pytest.mark.asyncio
    async def test_analyze_uses_recent_series(self, tracker, analyst):
        tracker.toggle_task(date(2024, 1, 2), "exercise")

        assert await tracker.analyze() == "Сэр, всё под контролем."
        series = analyst.summarize.await_args.args[0]
        assert series == [{"date": "2024-01-02", "reward": 100, "fine": 0, "delta": 100, "balance": 100}]

    @pytest.mark.asyncio
    async def test_close_flushes_pending_write(self, store_client, analyst):
        tracker = DisciplineTracker(
            client=store_client,
            clock=FixedClock(WEDNESDAY_MORNING),
            analyst=analyst,
            writer=DebouncedWriter(store_client.save, delay=10)
        )
        await tracker.load()
        tracker.toggle_fine(date(2024, 1, 3), "alcohol")

        await tracker.close()

        store_client.save.assert_awaited_once()
        store_client.close.assert_awaited_once()
        analyst.close.assert_awaited_once()
