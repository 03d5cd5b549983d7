"""Round engine, state machine and concurrency guard."""

from core.game.events import LogAction, RoundLogEntry
from core.game.state import RoundAction, RoundLifecycle, RoundState
from core.game.round import Round, RoundSnapshot, Wallet
from core.game.engine import Transition, draw_next_card, hit_round, stand_round, start_round
from core.game.service import RoundService, RoundStore

__all__ = [
    "LogAction",
    "RoundLogEntry",
    "RoundAction",
    "RoundLifecycle",
    "RoundState",
    "Round",
    "RoundSnapshot",
    "Wallet",
    "Transition",
    "draw_next_card",
    "hit_round",
    "stand_round",
    "start_round",
    "RoundService",
    "RoundStore",
]
