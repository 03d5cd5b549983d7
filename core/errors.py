"""Domain errors raised by the round engine and its guard."""

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from core.game.round import RoundSnapshot


class GameError(Exception):
    """Base class for all domain errors."""

    message = "Game error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message


class Unauthenticated(GameError):
    """No valid caller identity was supplied."""

    message = "Unauthorized"


class NotFound(GameError):
    """A round (or other resource) does not exist for this caller."""

    message = "Round not found"


class InvalidInput(GameError):
    """A request body is malformed or misses a required field."""

    message = "Invalid request"


class InvalidCardCode(GameError, ValueError):
    """A card code does not match the card grammar."""

    message = "Invalid card code"

    def __init__(self, code: object) -> None:
        super().__init__(f"Invalid card code: {code!r}")
        self.code = code


class ConflictReason(Enum):
    """Why an action was refused against the current round."""

    ILLEGAL_STATE = "illegal_state"
    STALE_NONCE = "stale_nonce"
    LOST_RACE = "lost_race"


class StateConflict(GameError):
    """
    The action cannot be applied to the round as it currently stands.

    Carries the authoritative snapshot so the caller can resynchronize.
    """

    messages = {
        ConflictReason.ILLEGAL_STATE: "Action not allowed in current round state",
        ConflictReason.STALE_NONCE: "Round changed since client last sync",
        ConflictReason.LOST_RACE: "Round was already updated by another request",
    }

    def __init__(
        self,
        reason: ConflictReason,
        snapshot: "RoundSnapshot | None" = None,
    ) -> None:
        super().__init__(self.messages[reason])
        self.reason = reason
        self.snapshot = snapshot


class DeckExhausted(GameError):
    """Every card of the deck is already in the hand."""

    message = "Deck exhausted. Start a new round."

    def __init__(self, snapshot: "RoundSnapshot | None" = None) -> None:
        super().__init__()
        self.snapshot = snapshot
