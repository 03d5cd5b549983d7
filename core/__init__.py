"""Arcade 21 round engine - framework-agnostic."""

from core.cards import Card, Rank, Suit, build_deck
from core.hand import Hand, best_total, is_bust, points, wallet_credit
from core.rng import create_shuffled_deck, seeded_stream

__all__ = [
    "Card",
    "Rank",
    "Suit",
    "build_deck",
    "Hand",
    "best_total",
    "is_bust",
    "points",
    "wallet_credit",
    "create_shuffled_deck",
    "seeded_stream",
]
