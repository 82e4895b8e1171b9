"""
Unit tests for the poker and Dead Man's Draw circuits.
"""

import pytest

from zkarena.circuits import get_circuit
from zkarena.circuits.draw import DECK_SIZE as DRAW_DECK_SIZE
from zkarena.circuits.draw import SUIT_BITS, deck_order
from zkarena.circuits.poker import (
    HandRanking,
    compare_hands,
    deal_hand,
    deal_positions,
    evaluate_hand,
    shared_deck_seed,
)
from zkarena.errors import ConstraintViolation, WitnessUnsatisfiable
from zkarena.witness import DrawPlayer, PokerPlayer

TABLE_SEED = 987654321
DECK_SEED = 192837465


def synthesize(inputs):
    return get_circuit(inputs.circuit_id).synthesize(inputs.public_inputs, inputs.private_witness)


def card(rank: int, suit: int) -> int:
    return suit * 13 + rank


class TestHandEvaluation:
    """Tests for five-card hand ranking."""

    @pytest.mark.parametrize(
        "cards,expected",
        [
            ([card(r, 0) for r in (8, 9, 10, 11, 12)], HandRanking.ROYAL_FLUSH),
            ([card(r, 2) for r in (3, 4, 5, 6, 7)], HandRanking.STRAIGHT_FLUSH),
            ([card(7, s) for s in range(4)] + [card(0, 0)], HandRanking.FOUR_OF_A_KIND),
            ([card(5, 0), card(5, 1), card(5, 2), card(2, 0), card(2, 1)], HandRanking.FULL_HOUSE),
            ([card(r, 0) for r in (0, 2, 4, 6, 8)], HandRanking.FLUSH),
            ([card(0, 0), card(1, 1), card(2, 0), card(3, 0), card(4, 0)], HandRanking.STRAIGHT),
            ([card(9, 0), card(9, 1), card(9, 2), card(2, 0), card(4, 1)], HandRanking.THREE_OF_A_KIND),
            ([card(9, 0), card(9, 1), card(4, 2), card(4, 0), card(0, 1)], HandRanking.TWO_PAIR),
            ([card(9, 0), card(9, 1), card(4, 2), card(3, 0), card(0, 1)], HandRanking.ONE_PAIR),
            ([card(0, 0), card(2, 1), card(4, 2), card(6, 3), card(8, 0)], HandRanking.HIGH_CARD),
        ],
    )
    def test_rankings(self, cards: list[int], expected: HandRanking) -> None:
        """Test every ranking category."""
        ranking, _ = evaluate_hand(cards)
        assert ranking == expected

    def test_wheel_is_five_high(self) -> None:
        """Test that A-2-3-4-5 loses to 2-3-4-5-6."""
        wheel = evaluate_hand([card(12, 0), card(0, 1), card(1, 0), card(2, 0), card(3, 0)])
        six_high = evaluate_hand([card(0, 0), card(1, 1), card(2, 0), card(3, 0), card(4, 0)])

        assert wheel[0] == HandRanking.STRAIGHT
        assert compare_hands(six_high, wheel) == 1

    def test_kicker_breaks_tie(self) -> None:
        """Test that equal pairs compare on kickers."""
        high_kicker = evaluate_hand([card(9, 0), card(9, 1), card(12, 2), card(3, 0), card(0, 1)])
        low_kicker = evaluate_hand([card(9, 2), card(9, 3), card(11, 2), card(3, 1), card(0, 2)])
        assert compare_hands(high_kicker, low_kicker) == 1
        assert compare_hands(low_kicker, high_kicker) == -1

    def test_split(self) -> None:
        """Test that identical ranks in other suits split."""
        a = evaluate_hand([card(r, 0) for r in (0, 2, 4, 6, 8)])
        b = evaluate_hand([card(r, 1) for r in (0, 2, 4, 6, 8)])
        assert compare_hands(a, b) == 0

    def test_invalid_hands(self) -> None:
        """Test that duplicates and out-of-deck cards are rejected."""
        with pytest.raises(ValueError):
            evaluate_hand([0, 0, 1, 2, 3])
        with pytest.raises(ValueError):
            evaluate_hand([0, 1, 2, 3, 52])


class TestPokerCircuit:
    """Tests for the shared deck and the showdown circuit."""

    def test_deal_is_distinct(self) -> None:
        """Test that a deal is five distinct sorted cards."""
        hand = deal_hand(42, DECK_SEED, 0)
        assert len(set(hand)) == 5
        assert hand == sorted(hand)
        assert all(0 <= c < 52 for c in hand)

    @pytest.mark.parametrize("hand_seeds", [(1, 2), (7, 7), (123456789, 987654321)])
    def test_seats_never_share_cards(self, hand_seeds: tuple[int, int]) -> None:
        """Test that the two seats are dealt disjoint cards from one deck."""
        for deck_seed in (12345, DECK_SEED, shared_deck_seed(TABLE_SEED, [11, 22])):
            first = deal_hand(hand_seeds[0], deck_seed, 0)
            second = deal_hand(hand_seeds[1], deck_seed, 1)
            assert not set(first) & set(second)

    def test_seats_take_alternate_positions(self) -> None:
        """Test that seat 0 holds even deck positions and seat 1 odd ones."""
        assert all(p % 2 == 0 for p in deal_positions(5, DECK_SEED, 0))
        assert all(p % 2 == 1 for p in deal_positions(5, DECK_SEED, 1))

    def test_invalid_seat(self) -> None:
        """Test that only two seats are dealt."""
        with pytest.raises(ConstraintViolation):
            deal_hand(5, DECK_SEED, 2)

    def test_deck_seed_depends_on_commitments(self) -> None:
        """Test that either hand commitment changes the shared deck."""
        base = shared_deck_seed(TABLE_SEED, [11, 22])
        assert shared_deck_seed(TABLE_SEED, [11, 23]) != base
        assert shared_deck_seed(TABLE_SEED, [22, 11]) != base

    def test_reveal_matches_deal(self) -> None:
        """Test that the proven hand is the dealt hand."""
        player = PokerPlayer()
        result = synthesize(player.reveal_hand(DECK_SEED, 1))
        hand = player.hand(DECK_SEED, 1)
        ranking, tiebreak = evaluate_hand(hand)

        assert [result.outputs[f"card_{i}"] for i in range(5)] == hand
        assert result.outputs["ranking"] == ranking
        assert result.outputs["tiebreak"] == tiebreak

    def test_deck_seed_changes_deal(self) -> None:
        """Test that the same hand seed deals differently from another deck."""
        player = PokerPlayer(private_seed=7)
        assert player.hand(1, 0) != player.hand(2, 0)

    def test_wrong_seed_rejected(self) -> None:
        """Test that the hand seed must open the commitment."""
        player = PokerPlayer()
        inputs = player.reveal_hand(DECK_SEED, 0)
        inputs.private_witness["hand_seed"] += 1

        with pytest.raises(WitnessUnsatisfiable) as exc_info:
            synthesize(inputs)
        assert "hand_seed" in exc_info.value.reason

    def test_seat_out_of_range_unsatisfiable(self) -> None:
        """Test that a proof for a third seat cannot be produced."""
        inputs = PokerPlayer().reveal_hand(DECK_SEED, 0)
        inputs.public_inputs["seat"] = 2

        with pytest.raises(WitnessUnsatisfiable):
            synthesize(inputs)


class TestDrawCircuit:
    """Tests for the Dead Man's Draw card circuit."""

    def test_deck_is_permutation(self) -> None:
        """Test that the shuffled deck holds every card once."""
        assert sorted(deck_order(5, TABLE_SEED)) == list(range(DRAW_DECK_SIZE))

    def test_draw_reveals_next_card(self) -> None:
        """Test the card, value and suit mask of a safe draw."""
        player = DrawPlayer()
        result = synthesize(player.draw(TABLE_SEED, 0, 0))
        card_id = player.deck(TABLE_SEED)[0]

        assert result.outputs["card_id"] == card_id
        assert result.outputs["card_value"] == card_id % 10 + 1
        assert result.outputs["is_bust"] == 0
        assert result.outputs["new_suits_mask"] == SUIT_BITS[card_id // 10]

    def test_repeated_suit_busts(self) -> None:
        """Test that a suit already in the mask busts and clears the mask."""
        player = DrawPlayer()
        card_id = player.deck(TABLE_SEED)[3]
        mask = SUIT_BITS[card_id // 10]

        assert player.would_bust(TABLE_SEED, 3, mask)
        result = synthesize(player.draw(TABLE_SEED, 3, mask))
        assert result.outputs["is_bust"] == 1
        assert result.outputs["new_suits_mask"] == 0

    def test_invalid_mask(self) -> None:
        """Test that masks are four bits."""
        with pytest.raises(WitnessUnsatisfiable):
            synthesize(DrawPlayer().draw(TABLE_SEED, 0, 16))

    def test_position_bounds(self) -> None:
        """Test that positions past the deck are refused."""
        with pytest.raises(ValueError):
            DrawPlayer().draw(TABLE_SEED, DRAW_DECK_SIZE, 0)

    def test_wrong_seed_rejected(self) -> None:
        """Test that the deck seed must open the commitment."""
        inputs = DrawPlayer().draw(TABLE_SEED, 0, 0)
        inputs.private_witness["salt"] += 1

        with pytest.raises(WitnessUnsatisfiable) as exc_info:
            synthesize(inputs)
        assert "deck_seed" in exc_info.value.reason
