"""Monitoring cycle orchestration.

One cycle lists the eligible alerts, fetches every needed price in a single
batched request, evaluates each alert against that snapshot and, for each
match, commits the ``triggered`` status before sending the notification.
A failed notification never reverts the status: an alert is notified at
most once, and may be missed if the send fails.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from pricealert.db.base import AlertFilter, AlertStore
from pricealert.engine.evaluator import matches
from pricealert.feeds.base import BasePriceFeed, FeedResult
from pricealert.models import Alert, CycleOutcome, CycleReport, to_local_naive
from pricealert.notifiers.base import BaseNotifier
from pricealert.notifiers.messages import format_alert_message

logger = logging.getLogger(__name__)


class MonitoringCycle:
    """Runs end-to-end alert checks against injected collaborators.

    Construct once and call ``run()`` on every scheduler tick. Overlapping
    runs are safe: the store only moves an alert out of ``active`` once.
    """

    def __init__(
        self,
        store: AlertStore,
        feed: BasePriceFeed,
        notifier: BaseNotifier,
        max_workers: int = 1,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the cycle.

        Args:
            store: Alert store to read and transition alerts.
            feed: Price feed for the batched quote request.
            notifier: Sink for triggered-alert messages.
            max_workers: Matched alerts processed in parallel (1 = sequential).
            clock: Returns the current time, defaults to ``datetime.now``.
                Aware results are converted to naive local time.
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._store = store
        self._feed = feed
        self._notifier = notifier
        self._max_workers = max_workers
        self._clock = clock or datetime.now

    def run(self, cancel_event: Optional[threading.Event] = None) -> CycleReport:
        """Run one monitoring cycle.

        Args:
            cancel_event: When set, no further matched alert is processed.
                Transitions already started complete normally.

        Returns:
            CycleReport with one outcome per eligible alert, or a cycle-level
            error if the store or the feed was unavailable.
        """
        now = to_local_naive(self._clock())
        logger.info("Checking alerts at %s", now.isoformat(timespec="seconds"))

        try:
            alerts = self._store.list_alerts(AlertFilter.eligible(now))
        except Exception as e:
            logger.error("Alert store unavailable, cycle aborted: %s", e)
            return CycleReport(
                started_at=now,
                finished_at=self._clock(),
                error_kind="store_unavailable",
                error_message=str(e),
            )

        alerts = [alert for alert in alerts if alert.id is not None and alert.is_eligible(now)]
        if not alerts:
            logger.info("No active alerts to check")
            return CycleReport(started_at=now, finished_at=self._clock())

        logger.info("Found %d active alerts", len(alerts))
        feed_result = self._fetch(alerts)

        if not feed_result.ok:
            logger.warning(
                "Price feed unavailable (%s), %d alerts left unevaluated",
                feed_result.error,
                len(alerts),
            )
            outcomes = [
                CycleOutcome(
                    alert_id=alert.id,
                    display_label=alert.display_label,
                    error_kind="feed_unavailable",
                )
                for alert in alerts
            ]
            return CycleReport(
                started_at=now,
                finished_at=self._clock(),
                eligible=len(alerts),
                outcomes=outcomes,
                error_kind="feed_unavailable",
                error_message=feed_result.error,
            )

        outcomes: dict[int, CycleOutcome] = {}
        pending: list[tuple[Alert, Decimal]] = []

        for alert in alerts:
            quote = feed_result.get_quote(alert.instrument_key)
            if quote is None:
                logger.info("No price data for %s (%s)", alert.display_label, alert.instrument_key)
                outcomes[alert.id] = CycleOutcome(
                    alert_id=alert.id, display_label=alert.display_label
                )
            elif matches(alert.direction, alert.threshold, quote.price):
                logger.info(
                    "Alert %s triggered: %s %s @ %s (current %s)",
                    alert.id,
                    alert.display_label,
                    alert.direction,
                    alert.threshold,
                    quote.price,
                )
                pending.append((alert, quote.price))
            else:
                outcomes[alert.id] = CycleOutcome(
                    alert_id=alert.id,
                    display_label=alert.display_label,
                    current_price=quote.price,
                )

        for outcome in self._process_matches(pending, now, cancel_event):
            outcomes[outcome.alert_id] = outcome

        report = CycleReport(
            started_at=now,
            finished_at=self._clock(),
            eligible=len(alerts),
            outcomes=[outcomes[alert.id] for alert in alerts],
        )
        logger.info(
            "Alert check completed: %d eligible, %d triggered, %d notified",
            report.eligible,
            report.triggered_count,
            report.notified_count,
        )
        return report

    def _fetch(self, alerts: list[Alert]) -> FeedResult:
        """Fetch one price snapshot for all distinct instruments."""
        keys = {alert.instrument_key for alert in alerts}
        try:
            return self._feed.fetch_prices(keys)
        except Exception as e:
            logger.exception("Price feed raised unexpectedly")
            return FeedResult.failed(str(e) or type(e).__name__)

    def _process_matches(
        self,
        pending: list[tuple[Alert, Decimal]],
        now: datetime,
        cancel_event: Optional[threading.Event],
    ) -> list[CycleOutcome]:
        if not pending:
            return []
        if self._max_workers == 1 or len(pending) == 1:
            return [
                self._process_alert(alert, price, now, cancel_event)
                for alert, price in pending
            ]

        workers = min(self._max_workers, len(pending))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="pricealert") as pool:
            futures = [
                pool.submit(self._process_alert, alert, price, now, cancel_event)
                for alert, price in pending
            ]
            return [future.result() for future in futures]

    def _process_alert(
        self,
        alert: Alert,
        price: Decimal,
        now: datetime,
        cancel_event: Optional[threading.Event],
    ) -> CycleOutcome:
        """Transition a matched alert, then notify. Never raises."""
        base = {
            "alert_id": alert.id,
            "display_label": alert.display_label,
            "matched": True,
            "current_price": price,
        }

        if cancel_event is not None and cancel_event.is_set():
            logger.info("Cycle cancelled, alert %s left active", alert.id)
            return CycleOutcome(**base, error_kind="cancelled")

        try:
            transitioned = self._store.update_status(alert.id, "triggered", now)
        except Exception:
            logger.exception("Failed to mark alert %s as triggered", alert.id)
            return CycleOutcome(**base, error_kind="processing_error")

        if not transitioned:
            logger.info("Alert %s already handled by another run", alert.id)
            return CycleOutcome(**base, error_kind="transition_conflict")

        try:
            sent = self._notifier.send(format_alert_message(alert, price, now))
        except Exception:
            logger.exception("Notifier raised for alert %s", alert.id)
            sent = False

        if not sent:
            logger.warning("Notification failed for alert %s (%s)", alert.id, alert.display_label)
            return CycleOutcome(**base, error_kind="notification_failed")

        logger.info("Notification sent for %s", alert.display_label)
        return CycleOutcome(**base, notified=True)
