"""
Test Result Registry - In-memory store of test statuses, reports and history
"""
import logging
import threading
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from ..models import TestHistoryItem, TestReport, TestStatus
from ..utils.helpers import timestamp_now

logger = logging.getLogger(__name__)

RECENT_TESTS_IN_SUMMARY = 10


class TestResultRegistry:
    """
    Tracks every test from pending to a terminal state.

    Records are replaced whole under a single lock, so readers never see a
    partially updated entry. Once a test is completed or failed its entry
    is frozen and later writes are ignored.
    """

    __test__ = False

    def __init__(self):
        self._lock = threading.Lock()
        self._statuses: Dict[str, TestStatus] = {}
        self._urls: Dict[str, str] = {}
        self._history: Dict[str, TestHistoryItem] = {}

    def begin(self, test_id: str, url: str) -> TestStatus:
        """Register a new pending test."""
        with self._lock:
            current = self._statuses.get(test_id)
            if current is not None and current.is_terminal:
                logger.warning(f"Test {test_id} already finished, ignoring begin")
                return current
            status = TestStatus(test_id=test_id, status="pending", progress=0)
            self._statuses[test_id] = status
            self._urls[test_id] = url
        logger.info(f"Test {test_id} registered for {url}")
        return status

    def mark_running(self, test_id: str) -> Optional[TestStatus]:
        return self._update(test_id, status="running")

    def record_progress(self, test_id: str, completed: int, total: int) -> Optional[TestStatus]:
        """
        Record step progress; stays below 100 until the test is terminal.

        Args:
            test_id: Test identifier
            completed: Steps finished so far
            total: Steps planned for the run
        """
        progress = int(completed / total * 100) if total > 0 else 0
        return self._update(test_id, progress=max(0, min(99, progress)))

    def complete(self, test_id: str, report: TestReport) -> TestStatus:
        """
        Store the final report and add a history entry.

        Args:
            test_id: Test identifier
            report: Final report of the run

        Returns:
            The terminal status (or the existing one if already terminal)
        """
        history_item = TestHistoryItem(
            id=test_id,
            url=report.url,
            success=report.success,
            primary_cta_found=report.primary_cta_found,
            interaction_successful=report.interaction_successful,
            error=None if report.success or not report.errors else report.errors[0].message,
        )
        with self._lock:
            current = self._statuses.get(test_id)
            if current is not None and current.is_terminal:
                logger.warning(f"Test {test_id} already {current.status}, ignoring completion")
                return current
            status = TestStatus(test_id=test_id, status="completed", progress=100, result=report)
            self._statuses[test_id] = status
            self._urls[test_id] = report.url
            self._history[test_id] = history_item

        logger.info(f"Test {test_id} completed (success={report.success})")
        return status

    def fail(
        self,
        test_id: str,
        message: str,
        step: str = "run",
        details: Optional[str] = None,
        total_duration: int = 0
    ) -> TestReport:
        """
        Terminate a test with a zero-step report carrying one error.

        Args:
            test_id: Test identifier
            message: Error message
            step: Phase the error belongs to
            details: Optional error details
            total_duration: Elapsed time in ms

        Returns:
            The stored report (the existing one if already terminal)
        """
        with self._lock:
            current = self._statuses.get(test_id)
            if current is not None and current.is_terminal:
                logger.warning(f"Test {test_id} already {current.status}, ignoring failure: {message}")
                return current.result

            url = self._urls.get(test_id, "")
            report = TestReport.failed(
                test_id, url, message, step=step, details=details, total_duration=total_duration
            )
            self._statuses[test_id] = TestStatus(
                test_id=test_id, status="failed", progress=100, result=report, error=message
            )
            self._history[test_id] = TestHistoryItem(id=test_id, url=url, success=False, error=message)

        logger.error(f"Test {test_id} failed during {step}: {message}")
        return report

    def get_status(self, test_id: str) -> Optional[TestStatus]:
        with self._lock:
            return self._statuses.get(test_id)

    def get_report(self, test_id: str) -> Optional[TestReport]:
        status = self.get_status(test_id)
        return status.result if status else None

    def get_history(self, test_id: str) -> Optional[TestHistoryItem]:
        with self._lock:
            return self._history.get(test_id)

    def list_history(self) -> List[TestHistoryItem]:
        """All history items, newest first."""
        with self._lock:
            items = list(self._history.values())
        # Insertion order breaks timestamp ties
        items.reverse()
        items.sort(key=lambda item: item.timestamp, reverse=True)
        return items

    def summary(self) -> Dict[str, Any]:
        """
        Aggregate statistics over the history.

        Returns:
            Totals, success rate, per-domain counts and the latest tests
        """
        history = self.list_history()
        total = len(history)
        successful = sum(1 for item in history if item.success)

        domains: Dict[str, Dict[str, Any]] = {}
        for item in history:
            domain = urlparse(item.url).hostname
            if not domain:
                continue
            stats = domains.setdefault(domain, {
                "domain": domain,
                "totalTests": 0,
                "successfulTests": 0,
                "failedTests": 0,
            })
            stats["totalTests"] += 1
            if item.success:
                stats["successfulTests"] += 1
            else:
                stats["failedTests"] += 1

        return {
            "generatedAt": timestamp_now(),
            "summary": {
                "totalTests": total,
                "successfulTests": successful,
                "failedTests": total - successful,
                "successRate": round(successful / total * 100) if total else 0,
            },
            "domainStats": list(domains.values()),
            "recentTests": [
                item.model_dump(mode="json", by_alias=True) for item in history[:RECENT_TESTS_IN_SUMMARY]
            ],
        }

    def clear(self):
        with self._lock:
            self._statuses.clear()
            self._urls.clear()
            self._history.clear()
        logger.info("Registry cleared")

    def _update(self, test_id: str, **changes) -> Optional[TestStatus]:
        with self._lock:
            current = self._statuses.get(test_id)
            if current is None:
                logger.warning(f"Unknown test {test_id}, ignoring update {changes}")
                return None
            if current.is_terminal:
                logger.warning(f"Test {test_id} already {current.status}, ignoring update {changes}")
                return current
            updated = current.model_copy(update=changes)
            self._statuses[test_id] = updated
            return updated
