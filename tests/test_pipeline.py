"""Tests for the end-to-end newsletter pipeline."""

import json
from datetime import date
from unittest.mock import MagicMock

import pytest

from niche_bot import pipeline
from niche_bot.analyzer import AnalysisError
from niche_bot.cooldown import COOLDOWN_TABLE
from niche_bot.dispatcher import NEWSLETTERS_TABLE, NICHE_DRAFTS_TABLE, SUBSCRIBERS_TABLE
from niche_bot.pipeline import (
    STATUS_SENT,
    STATUS_SKIPPED,
    RunInProgressError,
    is_running,
    run_newsletter,
)
from niche_bot.ports import Ports
from niche_bot.selection import DAILY_PICKS_TABLE
from niche_bot.store import StoreError
from tests.helpers import (
    FakeEmailClient,
    FakeNotifier,
    FakeReasoner,
    FakeStore,
    make_analysis_payload,
    make_pick_row,
)


TODAY = date(2026, 10, 19)


def make_store(pick_names=("Sleep Cycle", "Rain Sounds", "Pet Pal", "Fast Habit"), subscribers=3):
    picks = [make_pick_row(f"id-{i + 1}", name) for i, name in enumerate(pick_names)]
    subs = [
        {"id": f"s{i}", "email": f"user{i}@test.com", "status": "subscribed"}
        for i in range(subscribers)
    ]
    return FakeStore({DAILY_PICKS_TABLE: picks, SUBSCRIBERS_TABLE: subs})


def make_ports(store, reasoner=None, email_client=None, notifier=None):
    return Ports(
        store=store,
        reasoner=reasoner or FakeReasoner(json.dumps(make_analysis_payload())),
        email_client=email_client or FakeEmailClient(),
        notifier=notifier or FakeNotifier(),
    )


class TestSuccessfulRun:
    """Tests for a run that sends the newsletter."""

    def test_full_run(self, config):
        store = make_store()
        ports = make_ports(store)

        result = run_newsletter(ports, config, today=TODAY, sleep=MagicMock())

        assert result.status == STATUS_SENT
        assert result.title == "Sleep Apps Are Printing Money 💤"
        assert result.niche_app_ids == [["id-1", "id-2"], ["id-3"]]
        assert (result.report.sent, result.report.failed) == (3, 0)

        newsletters = store.rows(NEWSLETTERS_TABLE)
        assert len(newsletters) == 1
        assert newsletters[0]["run_date"] == "2026-10-19"
        assert newsletters[0]["content"].startswith("<!DOCTYPE html>")
        assert len(store.rows(NICHE_DRAFTS_TABLE)) == 2
        assert len(store.rows(COOLDOWN_TABLE)) == 3

        assert len(ports.notifier.messages) == 1
        assert "Newsletter Sent!" in ports.notifier.messages[0]

    def test_prompt_contains_candidates(self, config):
        ports = make_ports(make_store())

        run_newsletter(ports, config, today=TODAY, sleep=MagicMock())

        prompt = ports.reasoner.prompts[0]
        assert "Fast Habit" in prompt
        assert "October 19, 2026" in prompt

    def test_featured_apps_excluded_next_run(self, config):
        store = make_store()

        run_newsletter(make_ports(store), config, today=TODAY, sleep=MagicMock())
        second = make_ports(store)
        result = run_newsletter(second, config, today=TODAY, sleep=MagicMock())

        prompt = second.reasoner.prompts[0]
        assert "📲 Sleep Cycle" not in prompt
        assert "📲 Pet Pal" not in prompt
        assert "📲 Fast Habit" in prompt
        # Same run date replaces the stored newsletter
        assert len(store.rows(NEWSLETTERS_TABLE)) == 1
        assert result.niche_app_ids == [[], []]

    def test_partial_delivery_still_succeeds(self, config):
        store = make_store(subscribers=5)
        client = FakeEmailClient(failing={"user1@test.com", "user2@test.com"})
        ports = make_ports(store, email_client=client)

        result = run_newsletter(ports, config, today=TODAY, sleep=MagicMock())

        assert result.status == STATUS_SENT
        assert (result.report.sent, result.report.failed) == (3, 2)
        assert "Failed: 2" in ports.notifier.messages[0]

    def test_notifier_failure_does_not_mask_result(self, config):
        ports = make_ports(make_store(), notifier=FakeNotifier(raises=True))

        result = run_newsletter(ports, config, today=TODAY, sleep=MagicMock())

        assert result.status == STATUS_SENT


class TestSkippedRun:
    """Tests for a run with nothing eligible."""

    def test_no_picks_skips(self, config):
        store = make_store(pick_names=())
        ports = make_ports(store)

        result = run_newsletter(ports, config, today=TODAY)

        assert result.status == STATUS_SKIPPED
        assert ports.notifier.messages == [pipeline.SKIP_MESSAGE]
        assert "skipped" in ports.notifier.messages[0]
        assert store.rows(NEWSLETTERS_TABLE) == []
        assert ports.reasoner.prompts == []
        assert ports.email_client.attempted == []

    def test_all_picks_in_cooldown_skips(self, config):
        store = make_store(pick_names=("Sleep Cycle",))
        store.rows(COOLDOWN_TABLE).append({
            "niche_pattern": "Sleep Sound Apps",
            "source_app_ids": ["id-1"],
            "cooldown_until": "2999-01-01T00:00:00+00:00",
        })
        ports = make_ports(store)

        result = run_newsletter(ports, config, today=TODAY)

        assert result.status == STATUS_SKIPPED
        assert len(ports.notifier.messages) == 1
        assert store.rows(NEWSLETTERS_TABLE) == []


class TestFailedRun:
    """Tests for runs that stop on an error."""

    def test_malformed_analysis_notifies_and_raises(self, config):
        store = make_store()
        ports = make_ports(store, reasoner=FakeReasoner("Sorry, I cannot help with that."))

        with pytest.raises(AnalysisError) as exc_info:
            run_newsletter(ports, config, today=TODAY)

        assert len(ports.notifier.messages) == 1
        assert "FAILED" in ports.notifier.messages[0]
        assert str(exc_info.value) in ports.notifier.messages[0]
        assert store.rows(NEWSLETTERS_TABLE) == []
        assert store.rows(COOLDOWN_TABLE) == []
        assert ports.email_client.attempted == []

    def test_store_failure_notifies_and_raises(self, config):
        store = make_store()
        store.fail_select.add(DAILY_PICKS_TABLE)
        ports = make_ports(store)

        with pytest.raises(StoreError):
            run_newsletter(ports, config, today=TODAY)

        assert len(ports.notifier.messages) == 1
        assert "FAILED" in ports.notifier.messages[0]

    def test_failure_with_broken_notifier_raises_original_error(self, config):
        ports = make_ports(
            make_store(),
            reasoner=FakeReasoner(""),
            notifier=FakeNotifier(raises=True),
        )

        with pytest.raises(AnalysisError):
            run_newsletter(ports, config, today=TODAY)

    def test_lock_released_after_failure(self, config):
        ports = make_ports(make_store(), reasoner=FakeReasoner(""))

        with pytest.raises(AnalysisError):
            run_newsletter(ports, config, today=TODAY)

        assert not is_running()


class TestSingleFlight:
    """Tests for rejecting overlapping runs."""

    def test_concurrent_run_rejected(self, config):
        ports = make_ports(make_store())

        pipeline._run_lock.acquire()
        try:
            assert is_running()
            with pytest.raises(RunInProgressError):
                run_newsletter(ports, config, today=TODAY)
        finally:
            pipeline._run_lock.release()

        assert ports.notifier.messages == []
        assert ports.reasoner.prompts == []
