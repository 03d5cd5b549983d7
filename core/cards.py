"""Card, Rank and Suit types plus the canonical 52-card deck."""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from core.errors import InvalidCardCode


class Suit(Enum):
    """Card suits, in canonical deck order."""

    SPADES = "S"
    HEARTS = "H"
    DIAMONDS = "D"
    CLUBS = "C"

    def __str__(self) -> str:
        symbols = {
            Suit.SPADES: "♠",
            Suit.HEARTS: "♥",
            Suit.DIAMONDS: "♦",
            Suit.CLUBS: "♣",
        }
        return symbols[self]


class Rank(Enum):
    """Card ranks, in canonical deck order. Values are the code tokens."""

    ACE = "A"
    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "10"
    JACK = "J"
    QUEEN = "Q"
    KING = "K"

    def __str__(self) -> str:
        return self.value

    @property
    def base_value(self) -> int:
        """Return the point value with Ace counted as 1 (face cards = 10)."""
        if self == Rank.ACE:
            return 1
        if self in (Rank.JACK, Rank.QUEEN, Rank.KING):
            return 10
        return int(self.value)

    @property
    def is_ace(self) -> bool:
        """Check if this rank is an Ace."""
        return self == Rank.ACE


CARD_CODE_PATTERN = re.compile(r"(A|[2-9]|10|J|Q|K)([SHDC])")


@dataclass(frozen=True, slots=True)
class Card:
    """Immutable playing card."""

    rank: Rank
    suit: Suit

    def __str__(self) -> str:
        return f"{self.rank}{self.suit}"

    def __repr__(self) -> str:
        return f"Card({self.rank.name}, {self.suit.name})"

    @property
    def code(self) -> str:
        """Return the wire code, e.g. 'AS', '10H', 'QD'."""
        return f"{self.rank.value}{self.suit.value}"

    @property
    def value(self) -> int:
        """Return the base point value (Ace = 1)."""
        return self.rank.base_value

    @property
    def is_ace(self) -> bool:
        """Check if this card is an Ace."""
        return self.rank.is_ace

    @classmethod
    def from_code(cls, code: str) -> "Card":
        """
        Decode a card code such as 'AS', '10H' or 'QD'.

        The grammar is exact: an uppercase rank token immediately followed
        by one of S, H, D, C. No whitespace, no lowercase, no symbols.

        Raises:
            InvalidCardCode: If the string does not match the grammar
        """
        if not isinstance(code, str):
            raise InvalidCardCode(code)
        match = CARD_CODE_PATTERN.fullmatch(code)
        if match is None:
            raise InvalidCardCode(code)
        rank_str, suit_str = match.groups()
        return cls(Rank(rank_str), Suit(suit_str))


def is_card_code(code: str) -> bool:
    """Check whether a string is a valid card code."""
    return isinstance(code, str) and CARD_CODE_PATTERN.fullmatch(code) is not None


def decode_cards(codes: Iterable[str]) -> tuple[Card, ...]:
    """Decode a sequence of card codes, failing on the first bad one."""
    return tuple(Card.from_code(code) for code in codes)


def build_deck() -> list[Card]:
    """Build the canonical ordered deck: ranks A..K, each in suits S, H, D, C."""
    return [Card(rank, suit) for rank in Rank for suit in Suit]


DECK_SIZE = 52
