"""Shared state handed to request handlers and scheduled actions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol


class _Engine(Protocol):
    """The storage engine interface the server relies on."""

    async def get(self, key: bytes) -> Optional[bytes]: ...

    def put(self, key: bytes, value: bytes) -> None: ...

    def delete(self, key: bytes) -> None: ...

    def capacity(self) -> int: ...

    def statistics(self) -> Any: ...


@dataclass(frozen=True)
class PercasContext:
    """Holds the storage engine serving cache requests."""

    engine: _Engine