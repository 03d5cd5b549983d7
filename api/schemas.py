"""Pydantic schemas for API requests and responses."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from core.game.events import RoundLogEntry
from core.game.round import RoundSnapshot


class CamelModel(BaseModel):
    """Base model using camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Game schemas
class StartRequest(CamelModel):
    """Request to start a round."""

    deal_one: bool | None = Field(default=None, description="Deal the first card immediately")


class ActionRequest(CamelModel):
    """Request for a hit or stand on a round."""

    round_id: str = Field(..., min_length=1, description="Round to act on")
    expected_nonce: int | None = Field(
        default=None,
        ge=0,
        description="Nonce the client last saw; rejected with 409 if stale",
    )


class RoundStateResponse(CamelModel):
    """Current round state. The undrawn deck is never included."""

    round_id: str | None
    state: Literal["idle", "playing", "bust", "finished"]
    seed: str
    nonce: int
    hand: list[str]
    total: int
    points_last_round: int
    balance: int

    @classmethod
    def from_snapshot(cls, snapshot: RoundSnapshot) -> "RoundStateResponse":
        return cls(
            round_id=snapshot.round_id,
            state=snapshot.state.value,
            seed=snapshot.seed,
            nonce=snapshot.nonce,
            hand=list(snapshot.hand),
            total=snapshot.total,
            points_last_round=snapshot.points_last_round,
            balance=snapshot.balance,
        )


class ConflictResponse(CamelModel):
    """Body of a 409/410 response."""

    error: str
    reason: str | None = None
    current: RoundStateResponse | None = None


class RoundLogResponse(CamelModel):
    """One audit entry."""

    action: Literal["start", "hit", "stand", "bust"]
    card: str | None
    nonce: int | None
    total_after: int | None
    created_at: datetime

    @classmethod
    def from_entry(cls, entry: RoundLogEntry) -> "RoundLogResponse":
        return cls(
            action=entry.action.value,
            card=entry.card.code if entry.card else None,
            nonce=entry.nonce,
            total_after=entry.total_after,
            created_at=entry.created_at,
        )


# Auth schemas
class TokenResponse(CamelModel):
    """A freshly issued player token."""

    token: str
    user_id: str
