"""Bounded retry around one full import attempt."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from graph_import.config import DEFAULT_MAX_RETRIES, DEFAULT_RETRY_BACKOFF_SECONDS
from graph_import.errors import ImportCancelledError, RetryableImportError
from graph_import.events import (
    EventReporter,
    ImportGraphRecordsEvent,
    ImportTarget,
    target_kind,
    target_name,
)
from graph_import.telemetry import import_metrics

logger = logging.getLogger(__name__)


class RetryController:
    """Re-runs an import attempt after transient connectivity failures.

    Only ``RetryableImportError`` is retried, with a fixed backoff between
    attempts. The final failure, any other error, and a cancellation during
    backoff are reported once as a failure event and turn into a zero count;
    nothing propagates to the caller.
    """

    def __init__(
        self,
        reporter: EventReporter,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS,
        cancel_event: Optional[threading.Event] = None,
    ):
        """Configure the retry bound and the run's cancellation signal."""
        self.reporter = reporter
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self.cancel_event = cancel_event or threading.Event()

    def run(self, target: ImportTarget, attempted: int, attempt: Callable[[], int]) -> int:
        """Invoke ``attempt`` until it succeeds or the retry budget is spent."""
        retries = 0
        while True:
            try:
                return attempt()
            except RetryableImportError as exc:
                if retries >= self.max_retries:
                    logger.error(
                        "Giving up on %s after %d retries: %s",
                        target_name(target),
                        retries,
                        exc,
                    )
                    self._fail(target, attempted, exc)
                    return 0
                retries += 1
                import_metrics.record_retry(target_kind(target))
                logger.warning(
                    "Transient failure importing %s (retry %d/%d): %s",
                    target_name(target),
                    retries,
                    self.max_retries,
                    exc,
                )
                if not self._backoff():
                    self._fail(target, attempted, ImportCancelledError())
                    return 0
            except Exception as exc:
                logger.exception("Import of %s failed", target_name(target))
                self._fail(target, attempted, exc)
                return 0

    def _backoff(self) -> bool:
        """Sleep between attempts; return False when the run was cancelled."""
        cancelled = self.cancel_event.wait(self.backoff_seconds)
        if cancelled:
            logger.info("Retry backoff interrupted by cancellation")
        return not cancelled

    def _fail(self, target: ImportTarget, attempted: int, error: BaseException) -> None:
        self.reporter.report(ImportGraphRecordsEvent(target=target, count=attempted, error=error))
