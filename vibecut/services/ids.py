"""Identifier generation.

Ids are produced by an injected generator instead of ad-hoc
``time``/``random`` calls so that tests can assert exact ids.
"""

import itertools
import time
from datetime import datetime, timezone
from typing import Protocol
from uuid import uuid4


class IdGenerator(Protocol):
    def new_id(self, prefix: str) -> str: ...

    def timestamp_ms(self) -> int: ...


class UuidIdGenerator:
    """Default generator: ``{prefix}-{uuid hex}`` ids, wall-clock timestamps."""

    def new_id(self, prefix: str) -> str:
        return f"{prefix}-{uuid4().hex[:12]}"

    def timestamp_ms(self) -> int:
        return time.time_ns() // 1_000_000


class SequentialIdGenerator:
    """Deterministic generator: ``page-1``, ``element-2`` ... and a fixed clock."""

    def __init__(self, start: int = 1, timestamp: int = 1_700_000_000_000):
        self._counter = itertools.count(start)
        self._timestamp = timestamp

    def new_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._counter)}"

    def timestamp_ms(self) -> int:
        return self._timestamp


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
