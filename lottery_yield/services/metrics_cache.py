"""Single refreshable snapshot shared by every metrics consumer.

Each refresh takes a monotonically increasing request id and cancels the
token of the refresh before it. Only the most recently started refresh may
commit; anything older that finishes later is discarded. Until the first
successful commit the cache holds nothing, never placeholder values.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from threading import Condition, Thread
from typing import Generic, TypeVar

from lottery_yield.errors import AppError, MetricsUnavailableError
from lottery_yield.utils.concurrency import CancelToken, RefreshCancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MetricsCache(Generic[T]):
    def __init__(
        self,
        compute: Callable[[int, CancelToken], T | None],
        ttl_seconds: float = 300.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        wait_timeout: float = 30.0,
    ) -> None:
        self._compute = compute
        self._ttl = float(ttl_seconds)
        self._clock = clock
        self._wait_timeout = wait_timeout

        self._cond = Condition()
        self._latest_id = 0
        self._committed_id = 0
        self._in_flight = 0
        self._token: CancelToken | None = None
        self._snapshot: T | None = None
        self._stored_at: float | None = None
        self._last_error: str | None = None
        self._background: Thread | None = None

    @property
    def snapshot(self) -> T | None:
        with self._cond:
            return self._snapshot

    @property
    def committed_request_id(self) -> int:
        with self._cond:
            return self._committed_id

    @property
    def last_error(self) -> str | None:
        with self._cond:
            return self._last_error

    def is_fresh(self) -> bool:
        with self._cond:
            return self._is_fresh_locked()

    def _is_fresh_locked(self) -> bool:
        return (
            self._snapshot is not None
            and self._stored_at is not None
            and self._clock() - self._stored_at < self._ttl
        )

    def _begin(self) -> tuple[int, CancelToken]:
        with self._cond:
            self._latest_id += 1
            if self._token is not None:
                self._token.cancel()
            token = CancelToken()
            self._token = token
            self._in_flight += 1
            return self._latest_id, token

    def _finish(self) -> None:
        with self._cond:
            self._in_flight -= 1
            self._cond.notify_all()

    def refresh(self) -> bool:
        """Run one refresh cycle. Returns True when its result was committed."""

        request_id, token = self._begin()
        started = self._clock()
        logger.info("Starting refresh #%s", request_id)
        try:
            try:
                value = self._compute(request_id, token)
            except RefreshCancelled:
                logger.info("Refresh #%s cancelled", request_id)
                return False
            except AppError as exc:
                self._record_error(request_id, exc.message)
                return False
            except Exception as exc:
                logger.exception("Refresh #%s crashed", request_id)
                self._record_error(request_id, f"Unexpected error: {exc}")
                return False

            if value is None:
                self._record_error(request_id, "Failed to calculate metrics")
                return False
            return self._commit(request_id, value, started)
        finally:
            self._finish()

    def _commit(self, request_id: int, value: T, started: float) -> bool:
        with self._cond:
            if request_id != self._latest_id:
                logger.info("Refresh #%s is stale, discarding (latest #%s)", request_id, self._latest_id)
                return False
            self._snapshot = value
            self._committed_id = request_id
            self._stored_at = self._clock()
            self._last_error = None
        logger.info("Refresh #%s committed in %.0fms", request_id, (self._clock() - started) * 1000)
        return True

    def _record_error(self, request_id: int, message: str) -> None:
        with self._cond:
            if request_id != self._latest_id:
                logger.info("Refresh #%s error ignored (stale): %s", request_id, message)
                return
            self._last_error = message
        logger.warning("Refresh #%s failed: %s", request_id, message)

    def _run_background(self) -> None:
        try:
            self.refresh()
        except Exception:
            logger.exception("Background refresh crashed")

    def refresh_in_background(self) -> None:
        with self._cond:
            if self._background is not None and self._background.is_alive():
                return
            self._background = Thread(target=self._run_background, name="metrics-refresh", daemon=True)
            self._background.start()

    def get(self) -> T:
        """Fresh snapshot, or a stale one while a background refresh runs.

        Raises MetricsUnavailableError when no valid snapshot exists.
        """

        with self._cond:
            if self._is_fresh_locked():
                return self._snapshot  # type: ignore[return-value]
            stale = self._snapshot

        if stale is not None:
            self.refresh_in_background()
            return stale

        self.refresh()
        with self._cond:
            # A newer refresh may have superseded ours; wait for it to land.
            self._cond.wait_for(lambda: self._snapshot is not None or self._in_flight == 0, timeout=self._wait_timeout)
            if self._snapshot is not None:
                return self._snapshot
            error = self._last_error

        raise MetricsUnavailableError(details={"reason": error or "No metrics computed yet"})

    def invalidate(self) -> None:
        with self._cond:
            self._stored_at = None
