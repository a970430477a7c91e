"""
Item exposure ledger for adaptive sessions.

Over-exposure occurs when a small subset of items is administered
disproportionately often, making sessions predictable and wearing out the
items. ExposureMonitor counts selections and observed response times per
item; the weighted selection strategy reads it to penalise heavily used items
and to estimate response time, and operators poll it for alerts.

The ledger is an explicit object injected into the session controller, never
module-global state.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from adaptive_assessment.core.config import settings

logger = logging.getLogger(__name__)

# Items selected less than this fraction of the average are under-utilized
UNDERUTILIZED_RATIO = 0.5
# Items selected more than this multiple of the average are over-utilized
OVERUTILIZED_RATIO = 2.0


@dataclass
class ExposureStatistics:
    """Snapshot of item usage across all recorded sessions."""

    total_selections: int
    exposed_items: int
    average_exposure: float
    max_exposure: int
    underutilized: List[str] = field(default_factory=list)
    overutilized: List[str] = field(default_factory=list)
    overexposed: List[Tuple[str, float]] = field(default_factory=list)


class ExposureMonitor:
    """
    Tracks per-item selection counts and response times.

    Thread-safe. Uses in-memory counters.

    Exposure rate is defined as:
        rate_i = (selections_i) / (total_selections)

    Items exceeding the alert_threshold are logged as warnings by
    check_and_alert().

    Attributes:
        alert_threshold: Exposure rate above which items are flagged (0.0-1.0).
    """

    def __init__(self, alert_threshold: Optional[float] = None):
        """
        Initialize the exposure monitor.

        Args:
            alert_threshold: Exposure rate threshold for alerts. Defaults to
                settings.EXPOSURE_ALERT_THRESHOLD.

        Raises:
            ValueError: If alert_threshold is not in range [0.0, 1.0].
        """
        if alert_threshold is None:
            alert_threshold = settings.EXPOSURE_ALERT_THRESHOLD
        if not (0.0 <= alert_threshold <= 1.0):
            raise ValueError(
                f"alert_threshold must be in [0.0, 1.0], got {alert_threshold}"
            )

        self._lock = threading.Lock()
        self._item_counts: Dict[str, int] = {}
        self._total_selections = 0
        self._response_time_totals: Dict[str, float] = {}
        self._response_time_counts: Dict[str, int] = {}
        self.alert_threshold = alert_threshold

    def record_selection(self, item_id: str) -> None:
        """Record that an item was presented in a session."""
        with self._lock:
            self._item_counts[item_id] = self._item_counts.get(item_id, 0) + 1
            self._total_selections += 1

    def record_response_time(self, item_id: str, seconds: float) -> None:
        """Record how long a respondent took to answer an item."""
        if seconds < 0:
            raise ValueError(f"Response time must be non-negative, got {seconds}")
        with self._lock:
            self._response_time_totals[item_id] = (
                self._response_time_totals.get(item_id, 0.0) + seconds
            )
            self._response_time_counts[item_id] = (
                self._response_time_counts.get(item_id, 0) + 1
            )

    def get_selection_count(self, item_id: str) -> int:
        with self._lock:
            return self._item_counts.get(item_id, 0)

    def get_average_response_time(self, item_id: str) -> Optional[float]:
        """Mean observed response time in seconds, or None if never answered."""
        with self._lock:
            count = self._response_time_counts.get(item_id, 0)
            if count == 0:
                return None
            return self._response_time_totals[item_id] / count

    def get_exposure_rate(self, item_id: str) -> float:
        """
        Get the exposure rate for a specific item.

        Returns:
            Exposure rate (selections / total), or 0.0 if item has never been selected.
        """
        with self._lock:
            if self._total_selections == 0:
                return 0.0
            count = self._item_counts.get(item_id, 0)
            return count / self._total_selections

    def get_exposure_rates(self) -> Dict[str, float]:
        """
        Get exposure rates for all tracked items.

        Returns:
            Dict mapping item_id -> exposure_rate for all items that have
            been selected at least once.
        """
        with self._lock:
            if self._total_selections == 0:
                return {}
            return {
                item_id: count / self._total_selections
                for item_id, count in self._item_counts.items()
            }

    def get_overexposed_items(self) -> List[Tuple[str, float]]:
        """
        Get items exceeding the alert threshold.

        Returns:
            List of (item_id, exposure_rate) tuples for items above the
            threshold, sorted by exposure rate (descending).
        """
        rates = self.get_exposure_rates()
        overexposed = [
            (item_id, rate)
            for item_id, rate in rates.items()
            if rate > self.alert_threshold
        ]
        overexposed.sort(key=lambda x: x[1], reverse=True)
        return overexposed

    def check_and_alert(self) -> List[Tuple[str, float]]:
        """
        Check for overexposed items and log warnings.

        Snapshots counts under the lock and logs outside it.

        Returns:
            List of (item_id, exposure_rate) tuples for overexposed items.
        """
        with self._lock:
            if self._total_selections == 0:
                return []
            total = self._total_selections
            overexposed = sorted(
                (
                    (item_id, count / total)
                    for item_id, count in self._item_counts.items()
                    if count / total > self.alert_threshold
                ),
                key=lambda x: x[1],
                reverse=True,
            )
            log_entries = [
                (item_id, rate, self._item_counts[item_id])
                for item_id, rate in overexposed[:10]
            ]

        if overexposed:
            logger.warning(
                f"Exposure alert: {len(overexposed)} items exceed "
                f"{self.alert_threshold:.1%} threshold"
            )
            for item_id, rate, count in log_entries:
                logger.warning(
                    f"  Item {item_id}: {rate:.1%} exposure ({count}/{total} selections)"
                )
            if len(overexposed) > len(log_entries):
                logger.warning(
                    f"  ... and {len(overexposed) - len(log_entries)} more items"
                )

        return overexposed

    def get_exposure_statistics(self) -> ExposureStatistics:
        """
        Summarise item usage.

        Under-utilized items are selected less than half the average count;
        over-utilized items more than twice the average. Only items selected
        at least once are considered.
        """
        with self._lock:
            counts = dict(self._item_counts)
            total = self._total_selections

        if not counts:
            return ExposureStatistics(
                total_selections=0,
                exposed_items=0,
                average_exposure=0.0,
                max_exposure=0,
            )

        average = sum(counts.values()) / len(counts)
        return ExposureStatistics(
            total_selections=total,
            exposed_items=len(counts),
            average_exposure=average,
            max_exposure=max(counts.values()),
            underutilized=[
                item_id
                for item_id, count in counts.items()
                if count < average * UNDERUTILIZED_RATIO
            ],
            overutilized=[
                item_id
                for item_id, count in counts.items()
                if count > average * OVERUTILIZED_RATIO
            ],
            overexposed=self.get_overexposed_items(),
        )

    @property
    def total_selections(self) -> int:
        """Total number of item selections recorded."""
        with self._lock:
            return self._total_selections

    def reset(self) -> None:
        """
        Reset all counters.

        Useful when rotating items out of the bank or starting a new cohort.
        """
        with self._lock:
            self._item_counts.clear()
            self._total_selections = 0
            self._response_time_totals.clear()
            self._response_time_counts.clear()
            logger.info("ExposureMonitor counters reset")
