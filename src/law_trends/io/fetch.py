from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Generic, TypeVar

from law_trends.io.read import load_raw_dataset
from law_trends.query import ViewQuery
from law_trends.taxonomy import Snapshot, parse_snapshot

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
Loader = Callable[[ViewQuery], Any]

_SUPERSEDED = object()


class LatestRequestGate(Generic[T]):
    """Issues increasing request ids and only accepts the result of the newest one."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._latest_id = 0
        self._accepted_id = 0
        self._value: T | None = None

    def begin(self) -> int:
        with self._lock:
            self._latest_id += 1
            return self._latest_id

    def is_current(self, request_id: int) -> bool:
        with self._lock:
            return request_id == self._latest_id

    def complete(self, request_id: int, value: T) -> bool:
        with self._lock:
            if request_id != self._latest_id:
                LOGGER.info(
                    "Discarding result of request %s; request %s supersedes it",
                    request_id,
                    self._latest_id,
                )
                return False
            self._accepted_id = request_id
            self._value = value
            return True

    @property
    def latest(self) -> T | None:
        with self._lock:
            return self._value

    @property
    def accepted_request_id(self) -> int:
        with self._lock:
            return self._accepted_id


@dataclass(frozen=True)
class FetchResult:
    request_id: int
    query: ViewQuery
    snapshot: Snapshot


def file_loader(path: Path) -> Loader:
    def _load(_query: ViewQuery) -> dict[str, Any]:
        return load_raw_dataset(path)

    return _load


class SnapshotFetcher:
    def __init__(
        self,
        loader: Loader,
        gate: LatestRequestGate[FetchResult] | None = None,
        retries: int = 2,
        backoff_seconds: float = 0.5,
        sample_limit: int = 2,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.loader = loader
        self.gate: LatestRequestGate[FetchResult] = gate or LatestRequestGate()
        self.retries = max(0, int(retries))
        self.backoff_seconds = max(0.0, float(backoff_seconds))
        self.sample_limit = sample_limit
        self._sleep = sleep

    def _load_with_retry(self, query: ViewQuery, request_id: int) -> Any:
        for attempt in range(self.retries + 1):
            if not self.gate.is_current(request_id):
                return _SUPERSEDED
            try:
                return self.loader(query)
            except (OSError, ValueError) as exc:
                if attempt >= self.retries:
                    raise
                delay = self.backoff_seconds * (2**attempt)
                LOGGER.warning(
                    "Snapshot load failed for request %s (attempt %s/%s): %s; retrying in %.2fs",
                    request_id,
                    attempt + 1,
                    self.retries + 1,
                    exc,
                    delay,
                )
                self._sleep(delay)

    def fetch(self, query: ViewQuery) -> FetchResult | None:
        """Load and parse a snapshot; None when a newer fetch has superseded this one."""
        request_id = self.gate.begin()
        raw = self._load_with_retry(query, request_id)
        if raw is _SUPERSEDED:
            LOGGER.info("Request %s superseded before loading finished", request_id)
            return None
        result = FetchResult(
            request_id=request_id,
            query=query,
            snapshot=parse_snapshot(raw, sample_limit=self.sample_limit),
        )
        if not self.gate.complete(request_id, result):
            return None
        return result
