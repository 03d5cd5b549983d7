"""Round engine: pure start, hit and stand transitions.

Every function takes a round value and returns a new one together with
the audit entries the transition produced. Nothing here touches storage;
the guard in ``core.game.service`` decides whether a transition commits.
"""

from dataclasses import dataclass, field

from core.cards import Card
from core.errors import DeckExhausted
from core.game.events import LogAction, RoundLogEntry, utcnow
from core.game.round import Round, new_round_id
from core.game.state import IllegalTransition, RoundAction, RoundLifecycle, RoundState
from core.hand import Hand, best_total, is_bust, points
from core.rng import create_shuffled_deck

# All draws of a round index into the deck shuffled with this nonce.
BASE_DECK_NONCE = 0


@dataclass(frozen=True)
class Transition:
    """Result of applying one action to a round."""

    round: Round
    logs: tuple[RoundLogEntry, ...] = field(default_factory=tuple)
    card: Card | None = None
    points: int = 0


def start_round(
    seed: str,
    user_id: str,
    deal_one: bool = True,
    round_id: str | None = None,
) -> Transition:
    """
    Create a new playing round.

    Args:
        seed: Public seed for the deck order
        user_id: Owner of the round
        deal_one: Deal the first card immediately
        round_id: Explicit identifier (generated if omitted)

    Returns:
        Transition holding the new round and its start (and hit) log entries
    """
    round_id = round_id or new_round_id()
    now = utcnow()
    lifecycle = RoundLifecycle(RoundState.IDLE)
    state = lifecycle.advance("start")

    logs = [RoundLogEntry(round_id=round_id, action=LogAction.START, nonce=0, created_at=now)]
    hand = Hand()
    card = None
    if deal_one:
        card = create_shuffled_deck(seed, BASE_DECK_NONCE)[0]
        hand = hand.with_card(card)
        logs.append(
            RoundLogEntry(
                round_id=round_id,
                action=LogAction.HIT,
                card=card,
                nonce=1,
                total_after=hand.total,
                created_at=now,
            )
        )

    round_ = Round(
        id=round_id,
        user_id=user_id,
        seed=seed,
        state=state,
        nonce=len(hand),
        hand=hand,
        total=hand.total,
        points=0,
        created_at=now,
        updated_at=now,
    )
    return Transition(round=round_, logs=tuple(logs), card=card)


def draw_next_card(seed: str, nonce: int, hand: Hand) -> Card:
    """
    Pick the next card for a hand without storing the deck.

    The candidate is ``deck[nonce]`` of the base deck. If it is out of range
    or already held (nonce and hand drifted apart), scan forward from there
    and then from the top for the first card not in the hand.

    Raises:
        DeckExhausted: If every card is already in the hand
    """
    deck = create_shuffled_deck(seed, BASE_DECK_NONCE)
    held = set(hand.cards)

    if 0 <= nonce < len(deck) and deck[nonce] not in held:
        return deck[nonce]

    start = max(nonce, 0)
    for card in deck[start:]:
        if card not in held:
            return card
    for card in deck:
        if card not in held:
            return card

    raise DeckExhausted()


def hit_round(round_: Round) -> Transition:
    """
    Draw one card into a playing round.

    The round busts automatically when the new total goes over 21.

    Raises:
        IllegalTransition: If the round is not playing
        DeckExhausted: If no undealt card remains
    """
    lifecycle = RoundLifecycle(round_.state)
    if not lifecycle.can(RoundAction.HIT):
        raise IllegalTransition(f"Cannot hit from {round_.state}")

    card = draw_next_card(round_.seed, round_.nonce, round_.hand)
    hand = round_.hand.with_card(card)
    total = hand.total
    busted = is_bust(total)
    state = lifecycle.advance("bust" if busted else "hit")

    now = utcnow()
    next_nonce = round_.nonce + 1
    updated = round_.evolve(
        hand=hand,
        total=total,
        nonce=next_nonce,
        state=state,
        points=0,
        finished_at=now if busted else None,
        updated_at=now,
    )
    log = RoundLogEntry(
        round_id=round_.id,
        action=LogAction.BUST if busted else LogAction.HIT,
        card=card,
        nonce=next_nonce,
        total_after=total,
        created_at=now,
    )
    return Transition(round=updated, logs=(log,), card=card)


def stand_round(round_: Round) -> Transition:
    """
    Finish a playing round and freeze its points.

    The wallet credit is not applied here; it has to commit atomically with
    the state change, which is the store's job.

    Raises:
        IllegalTransition: If the round is not playing
    """
    lifecycle = RoundLifecycle(round_.state)
    state = lifecycle.advance("stand")

    total = best_total(round_.hand.cards).total
    earned = points(total)
    now = utcnow()
    updated = round_.evolve(
        state=state,
        total=total,
        points=earned,
        finished_at=now,
        updated_at=now,
    )
    log = RoundLogEntry(
        round_id=round_.id,
        action=LogAction.STAND,
        nonce=round_.nonce,
        total_after=total,
        created_at=now,
    )
    return Transition(round=updated, logs=(log,), points=earned)
