"""Tests for the monitoring cycle.

**Feature: price-alerts**
"""

import tempfile
import threading
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from pricealert.db import AlertFilter, AlertStore, DataStore
from pricealert.engine import MonitoringCycle
from pricealert.errors import StoreUnavailableError
from pricealert.feeds import StaticPriceFeed
from pricealert.models import Alert
from pricealert.notifiers import BaseNotifier

NOW = datetime(2026, 6, 1, 12, 0, 0)


class RecordingNotifier(BaseNotifier):
    """Notifier that records messages and fails for chosen substrings."""

    def __init__(self, fail_on: tuple[str, ...] = (), raise_on: tuple[str, ...] = ()):
        self.messages: list[str] = []
        self._fail_on = fail_on
        self._raise_on = raise_on
        self._lock = threading.Lock()

    def send(self, message: str) -> bool:
        with self._lock:
            self.messages.append(message)
        if any(marker in message for marker in self._raise_on):
            raise RuntimeError("sink exploded")
        return not any(marker in message for marker in self._fail_on)


class FailingListStore(AlertStore):
    def list_alerts(self, alert_filter: AlertFilter) -> list[Alert]:
        raise StoreUnavailableError("database is locked")

    def update_status(self, alert_id, status, triggered_at=None) -> bool:
        raise AssertionError("update_status must not be called")


@pytest.fixture
def store():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield DataStore(Path(tmpdir) / "test.db")


def add_alert(store: DataStore, **overrides) -> int:
    fields = {
        "instrument_key": "EUR/USD",
        "display_label": "EURUSD",
        "threshold": Decimal("1.2000"),
        "direction": "crossing_up",
        "created_at": NOW - timedelta(days=1),
    }
    fields.update(overrides)
    return store.save_alert(Alert(**fields))


def make_cycle(store, feed, notifier, **kwargs) -> MonitoringCycle:
    return MonitoringCycle(store, feed, notifier, clock=lambda: NOW, **kwargs)


class TestTriggerRoundTrip:
    """
    **Feature: price-alerts, Property 9: Trigger Round Trip**

    *For any* active alert whose condition is met, one cycle marks it
    triggered and sends exactly one notification.
    """

    def test_single_alert_triggers(self, store: DataStore):
        alert_id = add_alert(store)
        feed = StaticPriceFeed({"EUR/USD": Decimal("1.2050")})
        notifier = RecordingNotifier()

        report = make_cycle(store, feed, notifier).run()

        assert report.ok
        assert report.eligible == 1
        assert len(report.outcomes) == 1
        outcome = report.outcomes[0]
        assert outcome.alert_id == alert_id
        assert outcome.matched and outcome.notified
        assert outcome.error_kind is None
        assert outcome.current_price == Decimal("1.2050")

        alert = store.get_alert_by_id(alert_id)
        assert alert.status == "triggered"
        assert alert.triggered_at == NOW

        assert len(notifier.messages) == 1
        assert "1.2000" in notifier.messages[0]
        assert "1.2050" in notifier.messages[0]

    def test_second_cycle_does_not_renotify(self, store: DataStore):
        add_alert(store)
        feed = StaticPriceFeed({"EUR/USD": Decimal("1.2050")})
        notifier = RecordingNotifier()
        cycle = make_cycle(store, feed, notifier)

        cycle.run()
        second = cycle.run()

        assert second.eligible == 0
        assert second.outcomes == []
        assert len(notifier.messages) == 1

    def test_escaped_instrument_key_resolves_quote(self, store: DataStore):
        alert_id = add_alert(store, instrument_key="EUR%2FUSD")
        feed = StaticPriceFeed({"EUR/USD": Decimal("1.25")})

        report = make_cycle(store, feed, RecordingNotifier()).run()

        assert report.outcomes[0].matched
        assert feed.requests == [{"EUR/USD"}]
        assert store.get_alert_by_id(alert_id).status == "triggered"


class TestSharedSnapshot:
    """
    **Feature: price-alerts, Property 10: One Snapshot Per Cycle**

    *For any* set of eligible alerts, the feed is called once with the
    distinct instruments and every alert is evaluated against that result.
    """

    def test_one_fetch_for_many_alerts(self, store: DataStore):
        add_alert(store)
        add_alert(store, threshold=Decimal("1.1000"))
        add_alert(store, instrument_key="GBP/USD", display_label="GBPUSD")
        add_alert(store, instrument_key="GBP%2FUSD", display_label="GBPUSD")
        feed = StaticPriceFeed({"EUR/USD": "1.0", "GBP/USD": "1.0"})

        make_cycle(store, feed, RecordingNotifier()).run()

        assert feed.requests == [{"EUR/USD", "GBP/USD"}]

    def test_band_on_same_instrument_does_not_trigger(self, store: DataStore):
        up_id = add_alert(store, threshold=Decimal("1.3000"), direction="crossing_up")
        down_id = add_alert(store, threshold=Decimal("1.1000"), direction="crossing_down")
        feed = StaticPriceFeed({"EUR/USD": Decimal("1.2000")})
        notifier = RecordingNotifier()

        report = make_cycle(store, feed, notifier).run()

        assert [o.matched for o in report.outcomes] == [False, False]
        assert store.get_alert_by_id(up_id).status == "active"
        assert store.get_alert_by_id(down_id).status == "active"
        assert notifier.messages == []

    def test_inverted_band_triggers_both(self, store: DataStore):
        add_alert(store, threshold=Decimal("1.1000"), direction="crossing_up")
        add_alert(store, threshold=Decimal("1.3000"), direction="crossing_down")
        feed = StaticPriceFeed({"EUR/USD": Decimal("1.2000")})

        report = make_cycle(store, feed, RecordingNotifier()).run()

        assert report.triggered_count == 2

    @given(
        thresholds=st.lists(
            st.tuples(
                st.decimals(min_value=Decimal("0.5"), max_value=Decimal("2"), places=4),
                st.sampled_from(["crossing_up", "crossing_down"]),
            ),
            min_size=1,
            max_size=8,
        ),
        price=st.decimals(min_value=Decimal("0.5"), max_value=Decimal("2"), places=4),
    )
    @settings(max_examples=25, deadline=None)
    def test_triggered_set_matches_conditions(self, thresholds, price: Decimal):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = DataStore(Path(tmpdir) / "test.db")
            expected = set()
            for threshold, direction in thresholds:
                alert_id = add_alert(store, threshold=threshold, direction=direction)
                if (direction == "crossing_up" and price >= threshold) or (
                    direction == "crossing_down" and price <= threshold
                ):
                    expected.add(alert_id)

            notifier = RecordingNotifier()
            report = make_cycle(store, StaticPriceFeed({"EUR/USD": price}), notifier).run()

            assert {o.alert_id for o in report.outcomes if o.matched} == expected
            assert {a.id for a in store.get_alerts(status="triggered")} == expected
            assert len(notifier.messages) == len(expected)


class TestEligibility:
    """
    **Feature: price-alerts, Property 11: Eligibility**

    *For any* expired or non-active alert, no evaluation or outcome occurs.
    """

    def test_no_alerts_is_noop(self, store: DataStore):
        feed = StaticPriceFeed({"EUR/USD": "1.5"})
        notifier = RecordingNotifier()

        report = make_cycle(store, feed, notifier).run()

        assert report.ok
        assert report.eligible == 0
        assert report.outcomes == []
        assert feed.requests == []
        assert notifier.messages == []

    def test_expired_alert_excluded(self, store: DataStore):
        expired_id = add_alert(store, expires_at=NOW - timedelta(minutes=1))
        live_id = add_alert(store, expires_at=NOW + timedelta(minutes=1))
        feed = StaticPriceFeed({"EUR/USD": "1.5"})

        report = make_cycle(store, feed, RecordingNotifier()).run()

        assert [o.alert_id for o in report.outcomes] == [live_id]
        assert store.get_alert_by_id(expired_id).status == "active"
        assert store.get_alert_by_id(live_id).status == "triggered"

    def test_only_expired_alerts_skip_feed(self, store: DataStore):
        add_alert(store, expires_at=NOW - timedelta(days=1))
        feed = StaticPriceFeed({"EUR/USD": "1.5"})

        report = make_cycle(store, feed, RecordingNotifier()).run()

        assert report.outcomes == []
        assert feed.requests == []

    def test_non_active_statuses_excluded(self, store: DataStore):
        add_alert(store, status="triggered", triggered_at=NOW - timedelta(hours=1))
        add_alert(store, status="expired")
        notifier = RecordingNotifier()

        report = make_cycle(store, StaticPriceFeed({"EUR/USD": "1.5"}), notifier).run()

        assert report.outcomes == []
        assert notifier.messages == []

    def test_aware_expiry_mixed_with_naive_alerts(self, store: DataStore):
        plain_id = add_alert(store)
        aware_id = add_alert(
            store, expires_at=(NOW + timedelta(days=1)).astimezone(timezone.utc)
        )
        lapsed_id = add_alert(
            store, expires_at=(NOW - timedelta(hours=1)).astimezone(timezone.utc)
        )
        notifier = RecordingNotifier()

        report = make_cycle(store, StaticPriceFeed({"EUR/USD": "1.25"}), notifier).run()

        assert report.ok
        assert sorted(o.alert_id for o in report.outcomes) == sorted([plain_id, aware_id])
        assert len(notifier.messages) == 2
        assert store.get_alert_by_id(aware_id).expires_at == NOW + timedelta(days=1)
        assert store.get_alert_by_id(lapsed_id).status == "active"

    def test_aware_clock_stamps_local_time(self, store: DataStore):
        alert_id = add_alert(store, expires_at=NOW + timedelta(minutes=5))
        cycle = MonitoringCycle(
            store,
            StaticPriceFeed({"EUR/USD": "1.25"}),
            RecordingNotifier(),
            clock=lambda: NOW.astimezone(timezone.utc),
        )

        report = cycle.run()

        assert report.triggered_count == 1
        assert store.get_alert_by_id(alert_id).triggered_at == NOW


class TestMissingPrices:
    def test_missing_quote_leaves_alert_active(self, store: DataStore):
        alert_id = add_alert(store, instrument_key="XAU/USD", display_label="XAUUSD")
        feed = StaticPriceFeed({"EUR/USD": "1.5"})

        report = make_cycle(store, feed, RecordingNotifier()).run()

        assert report.ok
        outcome = report.outcomes[0]
        assert not outcome.matched
        assert outcome.error_kind is None
        assert outcome.current_price is None
        assert store.get_alert_by_id(alert_id).status == "active"


class TestCycleLevelFailures:
    """
    **Feature: price-alerts, Property 12: Fail-Soft Cycle**

    *For any* feed or store outage, no alert is transitioned and the
    failure is reported once for the cycle.
    """

    def test_feed_unavailable(self, store: DataStore):
        ids = [add_alert(store), add_alert(store, threshold=Decimal("1.0"))]
        feed = StaticPriceFeed({}, error="HTTP 503")
        notifier = RecordingNotifier()

        report = make_cycle(store, feed, notifier).run()

        assert not report.ok
        assert report.error_kind == "feed_unavailable"
        assert report.error_message == "HTTP 503"
        assert sorted(o.alert_id for o in report.outcomes) == sorted(ids)
        assert all(not o.matched for o in report.outcomes)
        assert all(o.error_kind == "feed_unavailable" for o in report.outcomes)
        assert all(a.status == "active" for a in store.get_alerts())
        assert notifier.messages == []

    def test_feed_raising_is_treated_as_unavailable(self, store: DataStore):
        add_alert(store)

        class ExplodingFeed(StaticPriceFeed):
            def fetch_prices(self, instrument_keys):
                raise RuntimeError("boom")

        report = make_cycle(store, ExplodingFeed({}), RecordingNotifier()).run()

        assert report.error_kind == "feed_unavailable"
        assert store.get_alerts()[0].status == "active"

    def test_empty_feed_without_error_is_not_a_failure(self, store: DataStore):
        add_alert(store)

        report = make_cycle(store, StaticPriceFeed({}), RecordingNotifier()).run()

        assert report.ok
        assert not report.outcomes[0].matched

    def test_store_unavailable(self):
        feed = StaticPriceFeed({"EUR/USD": "1.5"})
        notifier = RecordingNotifier()

        report = make_cycle(FailingListStore(), feed, notifier).run()

        assert report.error_kind == "store_unavailable"
        assert "locked" in report.error_message
        assert report.outcomes == []
        assert feed.requests == []
        assert notifier.messages == []


class TestPerAlertIsolation:
    """
    **Feature: price-alerts, Property 13: Per-Alert Failure Isolation**

    *For any* alert whose notification or transition fails, the other
    alerts in the cycle are processed normally.
    """

    def test_notification_failure_does_not_block_others(self, store: DataStore):
        a_id = add_alert(store, display_label="FAILME")
        b_id = add_alert(store, display_label="EURUSD")
        notifier = RecordingNotifier(fail_on=("FAILME",))

        report = make_cycle(store, StaticPriceFeed({"EUR/USD": "1.3"}), notifier).run()

        by_id = {o.alert_id: o for o in report.outcomes}
        assert by_id[a_id].matched and not by_id[a_id].notified
        assert by_id[a_id].error_kind == "notification_failed"
        assert by_id[b_id].matched and by_id[b_id].notified
        # A failed send does not revert the transition
        assert store.get_alert_by_id(a_id).status == "triggered"
        assert store.get_alert_by_id(b_id).status == "triggered"
        assert report.ok

    def test_notifier_exception_is_contained(self, store: DataStore):
        a_id = add_alert(store, display_label="BOOM")
        b_id = add_alert(store)
        notifier = RecordingNotifier(raise_on=("BOOM",))

        report = make_cycle(store, StaticPriceFeed({"EUR/USD": "1.3"}), notifier).run()

        by_id = {o.alert_id: o for o in report.outcomes}
        assert by_id[a_id].error_kind == "notification_failed"
        assert by_id[b_id].notified

    def test_transition_failure_skips_notification(self, store: DataStore):
        a_id = add_alert(store)
        b_id = add_alert(store)

        class FlakyStore(AlertStore):
            def list_alerts(self, alert_filter):
                return store.list_alerts(alert_filter)

            def update_status(self, alert_id, status, triggered_at=None):
                if alert_id == a_id:
                    raise StoreUnavailableError("disk I/O error")
                return store.update_status(alert_id, status, triggered_at)

        notifier = RecordingNotifier()
        report = make_cycle(FlakyStore(), StaticPriceFeed({"EUR/USD": "1.3"}), notifier).run()

        by_id = {o.alert_id: o for o in report.outcomes}
        assert by_id[a_id].error_kind == "processing_error"
        assert not by_id[a_id].notified
        assert by_id[b_id].notified
        assert len(notifier.messages) == 1
        assert store.get_alert_by_id(a_id).status == "active"


class TestTransitionConflict:
    """
    **Feature: price-alerts, Property 14: Overlapping Runs**

    *For any* alert already moved out of 'active' by another run, the
    cycle reports it as handled and does not notify again.
    """

    def test_conflict_is_benign(self, store: DataStore):
        alert_id = add_alert(store)

        class RacingStore(AlertStore):
            def list_alerts(self, alert_filter):
                alerts = store.list_alerts(alert_filter)
                # Another run wins the race after we listed
                store.update_status(alert_id, "triggered", NOW - timedelta(seconds=1))
                return alerts

            def update_status(self, alert_id, status, triggered_at=None):
                return store.update_status(alert_id, status, triggered_at)

        notifier = RecordingNotifier()
        report = make_cycle(RacingStore(), StaticPriceFeed({"EUR/USD": "1.3"}), notifier).run()

        outcome = report.outcomes[0]
        assert outcome.matched
        assert outcome.error_kind == "transition_conflict"
        assert not outcome.notified
        assert not outcome.triggered
        assert notifier.messages == []
        assert report.ok

    def test_concurrent_cycles_notify_once(self, store: DataStore):
        for _ in range(5):
            add_alert(store)
        notifier = RecordingNotifier()
        feed = StaticPriceFeed({"EUR/USD": "1.3"})
        cycles = [make_cycle(store, feed, notifier) for _ in range(3)]

        threads = [threading.Thread(target=cycle.run) for cycle in cycles]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(notifier.messages) == 5
        assert len(store.get_alerts(status="triggered")) == 5


class TestParallelProcessing:
    def test_parallel_workers_process_all_alerts(self, store: DataStore):
        ids = [add_alert(store, display_label=f"SYM{i}") for i in range(6)]
        notifier = RecordingNotifier(fail_on=("SYM3",))

        report = make_cycle(
            store, StaticPriceFeed({"EUR/USD": "1.3"}), notifier, max_workers=3
        ).run()

        assert sorted(o.alert_id for o in report.outcomes) == sorted(ids)
        assert report.triggered_count == 6
        assert report.notified_count == 5
        assert len(store.get_alerts(status="triggered")) == 6

    def test_invalid_worker_count(self, store: DataStore):
        with pytest.raises(ValueError):
            MonitoringCycle(store, StaticPriceFeed({}), RecordingNotifier(), max_workers=0)


class TestCancellation:
    def test_cancelled_cycle_starts_no_new_work(self, store: DataStore):
        alert_id = add_alert(store)
        cancel = threading.Event()
        cancel.set()
        notifier = RecordingNotifier()

        report = make_cycle(store, StaticPriceFeed({"EUR/USD": "1.3"}), notifier).run(
            cancel_event=cancel
        )

        assert report.outcomes[0].error_kind == "cancelled"
        assert report.outcomes[0].matched
        assert notifier.messages == []
        assert store.get_alert_by_id(alert_id).status == "active"

    def test_cancel_mid_cycle_keeps_finished_work(self, store: DataStore):
        add_alert(store, display_label="FIRST")
        add_alert(store, display_label="SECOND")
        cancel = threading.Event()

        class CancellingNotifier(RecordingNotifier):
            def send(self, message: str) -> bool:
                cancel.set()
                return super().send(message)

        notifier = CancellingNotifier()
        report = make_cycle(store, StaticPriceFeed({"EUR/USD": "1.3"}), notifier).run(
            cancel_event=cancel
        )

        done, skipped = report.outcomes
        assert done.notified
        assert skipped.error_kind == "cancelled"
        assert len(notifier.messages) == 1
        assert store.get_alert_by_id(done.alert_id).status == "triggered"
        assert store.get_alert_by_id(skipped.alert_id).status == "active"
