"""Domain layer: Core business entities and rules.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from locshare.common.models import KeyPair, PositionMarker


@dataclass(frozen=True)
class SessionContext:
    """Everything an authenticated cycle needs, captured once per cycle."""

    server_url: str
    token: str
    key_pair: KeyPair

    @property
    def private_key(self) -> str:
        return self.key_pair.private_key_armored


@dataclass
class FanoutReport:
    """Outcome of one fan-out invocation, per group id."""

    delivered: list[str | int] = field(default_factory=list)
    failed: dict[str | int, str] = field(default_factory=dict)
    skipped: list[str | int] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.delivered) + len(self.failed)

    @property
    def partial(self) -> bool:
        return bool(self.delivered) and bool(self.failed)

    @property
    def all_failed(self) -> bool:
        return self.attempted > 0 and not self.delivered


@dataclass
class RetrievalReport:
    """Outcome of one retrieval cycle."""

    markers: list[PositionMarker] = field(default_factory=list)
    fetched: int = 0
    dropped: int = 0
