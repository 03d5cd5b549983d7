"""Hand evaluation and arcade scoring."""

import math
from dataclasses import dataclass
from typing import Iterator, NamedTuple

from core.cards import Card

BLACKJACK = 21
MAX_POINTS = 100


class HandTotal(NamedTuple):
    """Best total of a hand and whether an ace is counted as 11."""

    total: int
    soft: bool


def best_total(cards: tuple[Card, ...] | list[Card]) -> HandTotal:
    """
    Calculate the best hand total.

    Aces start at 1 and are promoted to 11 one at a time for as long as
    the promotion keeps the total at or below 21.
    """
    total = 0
    aces = 0

    for card in cards:
        if card.is_ace:
            aces += 1
        total += card.value

    soft = False
    while aces > 0 and total + 10 <= BLACKJACK:
        total += 10
        aces -= 1
        soft = True

    return HandTotal(total, soft)


def is_bust(total: int) -> bool:
    """Check if a total has busted (over 21)."""
    return total > BLACKJACK


def points(total: int) -> int:
    """
    Convert a final total into arcade points.

    Returns:
        0 on bust or an empty hand, 100 on exactly 21,
        otherwise floor(total / 21 * 100)
    """
    if total > BLACKJACK:
        return 0
    if total == BLACKJACK:
        return MAX_POINTS
    if total > 0:
        return math.floor(total / BLACKJACK * MAX_POINTS)
    return 0


def wallet_credit(balance: int, earned: int) -> int:
    """Add earned points to a balance. Never subtracts."""
    if earned > 0:
        return balance + earned
    return balance


@dataclass(frozen=True)
class Hand:
    """An immutable hand of cards in draw order."""

    cards: tuple[Card, ...] = ()

    def with_card(self, card: Card) -> "Hand":
        """Return a new hand with the card appended."""
        return Hand(self.cards + (card,))

    @property
    def total(self) -> int:
        """Best total for the hand."""
        return best_total(self.cards).total

    @property
    def is_soft(self) -> bool:
        """Check if an ace is currently counted as 11."""
        return best_total(self.cards).soft

    @property
    def is_busted(self) -> bool:
        """Check if the hand has busted (value > 21)."""
        return is_bust(self.total)

    @property
    def codes(self) -> list[str]:
        """Card codes in draw order."""
        return [card.code for card in self.cards]

    def __len__(self) -> int:
        return len(self.cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self.cards)

    def __contains__(self, card: object) -> bool:
        return card in self.cards

    def __str__(self) -> str:
        cards_str = " ".join(str(card) for card in self.cards)
        value_str = f"({self.total})"
        if self.is_soft:
            value_str = f"(soft {self.total})"
        if self.is_busted:
            value_str = "(BUST)"
        return f"{cards_str} {value_str}"

    def __repr__(self) -> str:
        return f"Hand({list(self.cards)!r}, total={self.total})"
