"""
Identifier generation for ledger records.

Ids are opaque strings.  ``TimestampIdGenerator`` produces
``<epoch-millis>-<random hex>`` tokens: monotonic enough to sort roughly by
creation time, with a random suffix so two records created in the same
millisecond do not collide.  Collision handling beyond that is not attempted.

Only ``LedgerStore`` calls ``next()``; no other component mints ids.
"""

from __future__ import annotations

import itertools
import threading
from abc import ABC, abstractmethod
from uuid import uuid4

from fee_ledger.domain.clock import Clock, SystemClock


class IdGenerator(ABC):
    """Source of unique record ids."""

    @abstractmethod
    def next(self) -> str:
        ...


class TimestampIdGenerator(IdGenerator):
    """Production generator: clock milliseconds plus a random suffix."""

    def __init__(self, clock: Clock | None = None, suffix_length: int = 8):
        self._clock = clock or SystemClock()
        self._suffix_length = suffix_length

    def next(self) -> str:
        millis = int(self._clock.now_utc().timestamp() * 1000)
        return f"{millis}-{uuid4().hex[: self._suffix_length]}"


class SequentialIdGenerator(IdGenerator):
    """
    Deterministic generator for tests: ``<prefix>1``, ``<prefix>2``, ...

    Thread-safe so concurrency tests can share one instance.
    """

    def __init__(self, prefix: str = "id-", start: int = 1):
        self._prefix = prefix
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def next(self) -> str:
        with self._lock:
            return f"{self._prefix}{next(self._counter)}"
