"""Tests for candidate selection logic."""

import pytest

from niche_bot.selection import DAILY_PICKS_TABLE, select_candidates
from niche_bot.store import StoreError
from tests.helpers import FakeStore, make_pick_row


def make_store(count: int) -> FakeStore:
    """Store with `count` daily picks named app-0 .. app-N."""
    rows = [make_pick_row(f"id-{i}", f"App {i}") for i in range(count)]
    return FakeStore({DAILY_PICKS_TABLE: rows})


class TestSelectCandidates:
    """Tests for select_candidates function."""

    def test_returns_at_most_limit(self):
        """Test that no more than `limit` candidates are returned."""
        store = make_store(10)

        result = select_candidates(store, limit=3)

        assert [c.app_id for c in result] == ["id-0", "id-1", "id-2"]

    def test_never_returns_excluded(self):
        """Test that excluded ids are dropped."""
        store = make_store(10)

        result = select_candidates(store, limit=5, excluded_ids={"id-0", "id-2"})

        ids = [c.app_id for c in result]
        assert "id-0" not in ids
        assert "id-2" not in ids
        assert ids == ["id-1", "id-3", "id-4", "id-5", "id-6"]

    def test_oversamples_by_exclusion_count(self):
        """Test that the fetch limit compensates for exclusions."""
        store = make_store(10)

        select_candidates(store, limit=4, excluded_ids={"id-1", "id-5", "id-9"})

        table, _, limit = store.select_calls[0]
        assert table == DAILY_PICKS_TABLE
        assert limit == 7

    def test_returns_all_when_fewer_than_limit(self):
        """Test that all eligible items are returned when short of limit."""
        store = make_store(4)

        result = select_candidates(store, limit=30, excluded_ids={"id-3"})

        assert [c.app_id for c in result] == ["id-0", "id-1", "id-2"]

    def test_preserves_store_order(self):
        """Test that candidates are not re-sorted."""
        rows = [
            make_pick_row("b", "Bravo", best_rank=50),
            make_pick_row("a", "Alpha", best_rank=1),
            make_pick_row("c", "Charlie", best_rank=20),
        ]
        store = FakeStore({DAILY_PICKS_TABLE: rows})

        result = select_candidates(store, limit=3)

        assert [c.app_id for c in result] == ["b", "a", "c"]

    def test_empty_when_everything_excluded(self):
        """Test that an all-excluded pick list yields no candidates."""
        store = make_store(2)

        result = select_candidates(store, limit=5, excluded_ids={"id-0", "id-1"})

        assert result == []

    def test_empty_store(self):
        """Test that an empty table yields no candidates."""
        result = select_candidates(FakeStore(), limit=5)

        assert result == []

    def test_store_failure_propagates(self):
        """Test that a failing query is not swallowed."""
        store = make_store(3)
        store.fail_select.add(DAILY_PICKS_TABLE)

        with pytest.raises(StoreError):
            select_candidates(store, limit=5)

    def test_rows_become_candidate_items(self):
        """Test that raw rows are normalized."""
        store = FakeStore({DAILY_PICKS_TABLE: [
            make_pick_row("x1", "Sleep Cycle: Sleep Tracker", category_name="Health & Fitness"),
        ]})

        result = select_candidates(store, limit=1)

        assert result[0].name == "Sleep Cycle: Sleep Tracker"
        assert result[0].category == "Health & Fitness"
        assert result[0].best_country == "US"
