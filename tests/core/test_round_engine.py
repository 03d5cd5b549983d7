"""Tests for the round lifecycle and the pure start/hit/stand transitions."""

import pytest

from conftest import TEST_SEED, hand_of, make_round
from core.cards import build_deck
from core.errors import DeckExhausted
from core.game.engine import draw_next_card, hit_round, stand_round, start_round
from core.game.events import LogAction
from core.game.state import (
    IllegalTransition,
    RoundAction,
    RoundLifecycle,
    RoundState,
    can_perform,
)
from core.hand import Hand
from core.rng import create_shuffled_deck


class TestRoundLifecycle:
    """Tests for the state machine."""

    @pytest.mark.parametrize(
        "state, action, allowed",
        [
            (RoundState.IDLE, RoundAction.START, True),
            (RoundState.BUST, RoundAction.START, True),
            (RoundState.FINISHED, RoundAction.START, True),
            (RoundState.PLAYING, RoundAction.START, False),
            (RoundState.PLAYING, RoundAction.HIT, True),
            (RoundState.PLAYING, RoundAction.STAND, True),
            (RoundState.IDLE, RoundAction.HIT, False),
            (RoundState.BUST, RoundAction.HIT, False),
            (RoundState.FINISHED, RoundAction.STAND, False),
            (RoundState.IDLE, RoundAction.STAND, False),
        ],
    )
    def test_legal_actions(self, state, action, allowed):
        """Test the legal-action predicate."""
        assert can_perform(state, action) is allowed

    def test_bust_only_from_playing(self):
        """Test the automatic bust edge."""
        assert RoundLifecycle(RoundState.PLAYING).advance("bust") == RoundState.BUST
        with pytest.raises(IllegalTransition):
            RoundLifecycle(RoundState.FINISHED).advance("bust")

    def test_full_flow(self):
        """Test idle -> playing -> finished -> playing."""
        lifecycle = RoundLifecycle()
        assert lifecycle.state == RoundState.IDLE
        assert lifecycle.advance("start") == RoundState.PLAYING
        assert lifecycle.advance("hit") == RoundState.PLAYING
        assert lifecycle.advance("stand") == RoundState.FINISHED
        assert lifecycle.advance("start") == RoundState.PLAYING

    def test_terminal_states(self):
        """Test which states end a round."""
        assert RoundState.BUST.is_terminal
        assert RoundState.FINISHED.is_terminal
        assert not RoundState.PLAYING.is_terminal
        assert not RoundState.IDLE.is_terminal


class TestStartRound:
    """Tests for start_round."""

    def test_deal_one(self):
        """Test the first card is deck[0] of the base deck."""
        transition = start_round(TEST_SEED, "user-1", deal_one=True)
        round_ = transition.round
        deck = create_shuffled_deck(TEST_SEED, 0)

        assert round_.state == RoundState.PLAYING
        assert round_.hand.cards == (deck[0],)
        assert round_.nonce == 1
        assert round_.total == round_.hand.total
        assert round_.points == 0
        assert round_.id.startswith("rnd_")
        assert [log.action for log in transition.logs] == [LogAction.START, LogAction.HIT]
        assert transition.logs[1].card == deck[0]
        assert transition.logs[1].nonce == 1

    def test_no_deal(self):
        """Test an empty opening hand."""
        transition = start_round(TEST_SEED, "user-1", deal_one=False)
        assert transition.round.hand == Hand()
        assert transition.round.nonce == 0
        assert transition.round.total == 0
        assert [log.action for log in transition.logs] == [LogAction.START]

    def test_explicit_round_id(self):
        """Test a caller-provided id is kept."""
        transition = start_round(TEST_SEED, "user-1", round_id="rnd_fixed")
        assert transition.round.id == "rnd_fixed"
        assert all(log.round_id == "rnd_fixed" for log in transition.logs)


class TestDrawNextCard:
    """Tests for recompute-by-index drawing."""

    def test_draws_card_at_nonce(self):
        """Test the card at index nonce is dealt."""
        deck = create_shuffled_deck(TEST_SEED, 0)
        hand = Hand(deck[:3])
        assert draw_next_card(TEST_SEED, 3, hand) == deck[3]

    def test_skips_held_card_on_drift(self):
        """Test a held candidate is skipped forward."""
        deck = create_shuffled_deck(TEST_SEED, 0)
        hand = Hand((deck[0], deck[1]))
        # nonce lags behind the hand
        assert draw_next_card(TEST_SEED, 1, hand) == deck[2]

    def test_wraps_to_start_when_tail_is_held(self):
        """Test the scan restarts from the top of the deck."""
        deck = create_shuffled_deck(TEST_SEED, 0)
        hand = Hand(deck[1:])
        assert draw_next_card(TEST_SEED, 51, hand) == deck[0]

    def test_nonce_past_end(self):
        """Test an out-of-range nonce still finds a free card."""
        deck = create_shuffled_deck(TEST_SEED, 0)
        assert draw_next_card(TEST_SEED, 60, Hand()) == deck[0]

    def test_exhausted(self):
        """Test a full hand cannot draw."""
        with pytest.raises(DeckExhausted):
            draw_next_card(TEST_SEED, 52, Hand(tuple(build_deck())))


class TestHitRound:
    """Tests for hit_round."""

    def test_hit_deals_next_card(self):
        """Test start then hit deals deck[0] then deck[1]."""
        deck = create_shuffled_deck(TEST_SEED, 0)
        started = start_round(TEST_SEED, "user-1").round
        transition = hit_round(started)

        assert transition.round.hand.cards == (deck[0], deck[1])
        assert transition.round.nonce == 2
        assert transition.card == deck[1]
        assert started.hand.cards == (deck[0],)

    def test_hit_to_bust(self):
        """Test a hard 21 busts on any further card."""
        round_ = make_round("KS", "QH", "AD")
        transition = hit_round(round_)

        assert transition.round.state == RoundState.BUST
        assert transition.round.total > 21
        assert transition.round.points == 0
        assert transition.round.points_last_round == 0
        assert transition.round.finished_at is not None
        assert transition.logs[0].action == LogAction.BUST
        assert transition.logs[0].nonce == 4

    def test_hit_stays_playing(self):
        """Test a low hand keeps playing."""
        round_ = make_round("2S", "2H")
        transition = hit_round(round_)
        assert transition.round.state == RoundState.PLAYING
        assert transition.round.finished_at is None
        assert transition.logs[0].action == LogAction.HIT
        assert transition.logs[0].total_after == transition.round.total

    def test_hit_never_duplicates(self):
        """Test repeated hits never deal a held card."""
        round_ = make_round("2S", "2H", "2D", "2C", "AS", "AH", "AD", "AC", nonce=0)
        for _ in range(3):
            if round_.state != RoundState.PLAYING:
                break
            before = set(round_.hand.cards)
            round_ = hit_round(round_).round
            assert round_.hand.cards[-1] not in before

    def test_hit_on_full_hand_raises(self):
        """Test DeckExhausted instead of a duplicate card."""
        codes = [card.code for card in build_deck()]
        round_ = make_round(*codes)
        with pytest.raises(DeckExhausted):
            hit_round(round_)

    @pytest.mark.parametrize("state", [RoundState.IDLE, RoundState.BUST, RoundState.FINISHED])
    def test_hit_requires_playing(self, state):
        """Test hits outside playing are illegal."""
        with pytest.raises(IllegalTransition):
            hit_round(make_round("2S", state=state))


class TestStandRound:
    """Tests for stand_round."""

    def test_stand_on_21(self):
        """Test 21 scores 100 points."""
        transition = stand_round(make_round("AS", "KH"))
        assert transition.round.state == RoundState.FINISHED
        assert transition.points == 100
        assert transition.round.points == 100
        assert transition.round.points_last_round == 100
        assert transition.logs[0].action == LogAction.STAND
        assert transition.logs[0].nonce == 2
        assert transition.logs[0].card is None

    def test_stand_on_18(self):
        """Test 18 scores 85 points."""
        assert stand_round(make_round("10S", "8H")).points == 85

    def test_stand_on_empty_hand(self):
        """Test an empty hand scores nothing."""
        transition = stand_round(make_round())
        assert transition.points == 0
        assert transition.round.state == RoundState.FINISHED

    def test_stand_requires_playing(self):
        """Test standing twice is illegal."""
        finished = stand_round(make_round("10S", "8H")).round
        with pytest.raises(IllegalTransition):
            stand_round(finished)

    def test_stand_leaves_input_untouched(self):
        """Test transitions return new values."""
        round_ = make_round("10S", "8H")
        stand_round(round_)
        assert round_.state == RoundState.PLAYING
        assert round_.points == 0
        assert round_.hand == hand_of("10S", "8H")
