"""Pytest fixtures for arcade 21 tests."""

import pytest
from hypothesis import strategies as st

from api.store import InMemoryRoundStore
from core.cards import Card, Rank, Suit, decode_cards
from core.game.round import Round
from core.game.service import RoundService
from core.game.state import RoundState
from core.hand import Hand

TEST_SEED = "s1"


def hand_of(*codes: str) -> Hand:
    """Build a hand from card codes."""
    return Hand(decode_cards(codes))


def make_round(
    *codes: str,
    user_id: str = "user-1",
    round_id: str = "rnd_test",
    seed: str = TEST_SEED,
    state: RoundState = RoundState.PLAYING,
    nonce: int | None = None,
) -> Round:
    """Build a round holding the given cards, nonce defaulting to the hand size."""
    hand = hand_of(*codes)
    return Round(
        id=round_id,
        user_id=user_id,
        seed=seed,
        state=state,
        nonce=len(hand) if nonce is None else nonce,
        hand=hand,
        total=hand.total,
    )


@pytest.fixture
def store():
    """A fresh in-memory round store."""
    return InMemoryRoundStore()


@pytest.fixture
def service(store):
    """A round service that always seeds rounds with TEST_SEED."""
    return RoundService(store, seed_factory=lambda user_id: TEST_SEED)


@pytest.fixture
def blackjack_hand():
    """A two-card 21 (A-K)."""
    return hand_of("AS", "KH")


@pytest.fixture
def soft_17_hand():
    """A soft 17 hand (A-6)."""
    return hand_of("AS", "6H")


@pytest.fixture
def hard_16_hand():
    """A hard 16 hand (10-6)."""
    return hand_of("10S", "6H")


@pytest.fixture
def bust_hand():
    """A busted hand."""
    return hand_of("10S", "6H", "KC")


# Hypothesis strategies for property-based testing
@st.composite
def card_strategy(draw):
    """Generate a random card."""
    rank = draw(st.sampled_from(list(Rank)))
    suit = draw(st.sampled_from(list(Suit)))
    return Card(rank, suit)


@st.composite
def hand_strategy(draw, min_cards=0, max_cards=8):
    """Generate a hand of distinct cards."""
    cards = draw(
        st.lists(card_strategy(), min_size=min_cards, max_size=max_cards, unique=True)
    )
    return Hand(tuple(cards))
