"""Bounded fan-out helpers for upstream calls."""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from threading import Event
from typing import Generic, TypeVar

from lottery_yield.errors import AppError, UpstreamUnavailableError

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class RefreshCancelled(Exception):
    """Raised at a checkpoint once the owning token was cancelled."""


class CancelToken:
    """Cooperative cancellation flag shared by one refresh cycle."""

    def __init__(self) -> None:
        self._event = Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RefreshCancelled()


@dataclass
class BatchResult(Generic[K, V]):
    """Per-key outcome of a batched fetch. Failed keys map to None."""

    values: dict[K, V | None] = field(default_factory=dict)
    errors: dict[K, str] = field(default_factory=dict)

    def get(self, key: K) -> V | None:
        return self.values.get(key)


def fetch_batched(
    fetch: Callable[[K], V | None],
    keys: Iterable[K],
    *,
    batch_size: int = 10,
    token: CancelToken | None = None,
) -> BatchResult[K, V]:
    """Run `fetch` over keys, at most `batch_size` outstanding at a time.

    A failing key never aborts the batch: upstream errors are logged and
    recorded in `errors`, the key maps to None.
    """

    ordered = list(dict.fromkeys(keys))
    size = max(1, int(batch_size))
    result: BatchResult[K, V] = BatchResult()

    with ThreadPoolExecutor(max_workers=size) as pool:
        for i in range(0, len(ordered), size):
            if token is not None:
                token.raise_if_cancelled()

            batch = ordered[i : i + size]
            futures = {key: pool.submit(fetch, key) for key in batch}
            for key, fut in futures.items():
                try:
                    result.values[key] = fut.result()
                except AppError as exc:
                    logger.warning("Fetch failed for %s: %s", key, exc.message)
                    result.values[key] = None
                    result.errors[key] = exc.message

    return result


def run_parallel(calls: dict[str, Callable[[], V]], *, token: CancelToken | None = None) -> dict[str, V | UpstreamUnavailableError]:
    """Run independent collaborator calls concurrently.

    Upstream failures are returned in place of the value so callers can decide
    which ones are fatal.
    """

    out: dict[str, V | UpstreamUnavailableError] = {}
    if token is not None:
        token.raise_if_cancelled()

    with ThreadPoolExecutor(max_workers=max(1, len(calls))) as pool:
        futures = {name: pool.submit(fn) for name, fn in calls.items()}
        for name, fut in futures.items():
            try:
                out[name] = fut.result()
            except UpstreamUnavailableError as exc:
                logger.warning("Upstream call %s failed: %s", name, exc.message)
                out[name] = exc

    if token is not None:
        token.raise_if_cancelled()
    return out
