"""Round, wallet and snapshot value records."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any
from uuid import uuid4

from core.game.events import utcnow
from core.game.state import RoundState
from core.hand import Hand, wallet_credit


def new_round_id() -> str:
    """Generate a unique round identifier."""
    return f"rnd_{uuid4().hex}"


def new_wallet_id() -> str:
    """Generate a unique wallet identifier."""
    return f"wal_{uuid4().hex}"


@dataclass(frozen=True)
class Round:
    """
    A single round of play.

    ``nonce`` counts the cards drawn so far and doubles as the version
    number for optimistic concurrency.
    """

    id: str
    user_id: str
    seed: str
    state: RoundState = RoundState.IDLE
    nonce: int = 0
    hand: Hand = field(default_factory=Hand)
    total: int = 0
    points: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    finished_at: datetime | None = None

    def evolve(self, **changes: Any) -> "Round":
        """Return a copy with changes applied and ``updated_at`` refreshed."""
        changes.setdefault("updated_at", utcnow())
        return replace(self, **changes)

    @property
    def points_last_round(self) -> int:
        """Points to report; always 0 until the round is over."""
        return self.points if self.state.is_terminal else 0


@dataclass(frozen=True)
class Wallet:
    """Per-user balance. Only ever grows."""

    user_id: str
    balance: int = 0
    id: str = field(default_factory=new_wallet_id)

    def credit(self, earned: int) -> "Wallet":
        """Return a wallet with the earned points added."""
        return replace(self, balance=wallet_credit(self.balance, earned))


@dataclass(frozen=True)
class RoundSnapshot:
    """The externally visible view of a round. Never includes the deck."""

    round_id: str | None
    state: RoundState
    seed: str
    nonce: int
    hand: tuple[str, ...]
    total: int
    points_last_round: int
    balance: int

    @classmethod
    def of(cls, round_: Round, balance: int) -> "RoundSnapshot":
        """Build the snapshot for a stored round."""
        return cls(
            round_id=round_.id,
            state=round_.state,
            seed=round_.seed,
            nonce=round_.nonce,
            hand=tuple(round_.hand.codes),
            total=round_.total,
            points_last_round=round_.points_last_round,
            balance=balance,
        )

    @classmethod
    def idle(cls, balance: int = 0) -> "RoundSnapshot":
        """Snapshot for a user who has not started a round yet."""
        return cls(
            round_id=None,
            state=RoundState.IDLE,
            seed="",
            nonce=0,
            hand=(),
            total=0,
            points_last_round=0,
            balance=balance,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase wire shape."""
        return {
            "roundId": self.round_id,
            "state": self.state.value,
            "seed": self.seed,
            "nonce": self.nonce,
            "hand": list(self.hand),
            "total": self.total,
            "pointsLastRound": self.points_last_round,
            "balance": self.balance,
        }
