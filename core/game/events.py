"""Audit log entries recorded for every round transition."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from core.cards import Card


class LogAction(Enum):
    """Types of audited round actions."""

    START = "start"
    HIT = "hit"
    STAND = "stand"
    BUST = "bust"


def _new_log_id() -> str:
    return f"log_{uuid4().hex}"


def utcnow() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RoundLogEntry:
    """
    Immutable audit record of one round action.

    Entries are append-only and exist for fraud review; the engine never
    reads them back.
    """

    round_id: str
    action: LogAction
    card: Card | None = None
    nonce: int | None = None
    total_after: int | None = None
    created_at: datetime = field(default_factory=utcnow)
    id: str = field(default_factory=_new_log_id)

    def __str__(self) -> str:
        card = f" {self.card.code}" if self.card else ""
        return f"{self.action.value.upper()}{card} (nonce={self.nonce}, total={self.total_after})"
