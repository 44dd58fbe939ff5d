"""Node id generation strategies."""

from __future__ import annotations

import itertools
import uuid
from typing import Protocol, runtime_checkable


@runtime_checkable
class IdProvider(Protocol):
    """Generate an id unique within one filter tree."""

    def new_id(self) -> str: ...


class UuidIdProvider:
    """Uses uuid4 for node ids."""

    def new_id(self) -> str:
        return str(uuid.uuid4())


class SequentialIdProvider:
    """Predictable ids ("n1", "n2", ...) for logs and tests."""

    def __init__(self, prefix: str = "n"):
        self.prefix = prefix
        self._counter = itertools.count(1)

    def new_id(self) -> str:
        return f"{self.prefix}{next(self._counter)}"
