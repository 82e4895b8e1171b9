"""
Poker Hand Circuit
==================

Showdown proof for five-card poker.

Both seats are dealt from one 52-card deck ordered by a public deck seed,
Poseidon(table_seed, hand_seed_commitment_0, hand_seed_commitment_1).
Seats take alternate deck positions (even positions to seat 0, odd to
seat 1), so the two hands never share a card. Within its 26 positions a
seat's five cards are picked by a permutation seeded with
Poseidon(hand_seed, deck_seed). The hand seed is committed before the
shared seed is revealed, so neither player can choose cards and the
opponent learns nothing about the pick until showdown.

Cards are 0-51: rank = card % 13 (0 = deuce, 12 = ace), suit = card // 13.

Tie-break: ranks ordered by (multiplicity desc, rank desc) are packed as
4-bit nibbles; straights use only their top card and the wheel
(A-2-3-4-5) is five-high. Equal ranking and tiebreak splits the pot.

Version: 0.1.0
"""

from collections import Counter
from collections.abc import Sequence
from enum import IntEnum
from typing import Any

from zkarena.circuits.base import ActionCircuit, CircuitId, register
from zkarena.circuits.gadgets import (
    commitment_matches,
    divmod_checked,
    permutation_from_seed,
    range_check,
    select_by_index,
)
from zkarena.crypto.poseidon import poseidon_hash

DECK_SIZE = 52
HAND_SIZE = 5
RANKS = 13
SEATS = 2
SEAT_CARDS = DECK_SIZE // SEATS

ACE = 12
WHEEL = [ACE, 3, 2, 1, 0]


class HandRanking(IntEnum):
    HIGH_CARD = 0
    ONE_PAIR = 1
    TWO_PAIR = 2
    THREE_OF_A_KIND = 3
    STRAIGHT = 4
    FLUSH = 5
    FULL_HOUSE = 6
    FOUR_OF_A_KIND = 7
    STRAIGHT_FLUSH = 8
    ROYAL_FLUSH = 9


def shared_deck_seed(table_seed: int, hand_seed_commitments: Sequence[int]) -> int:
    """Seed of the single deck every seat is dealt from, commitments in seat order."""
    return poseidon_hash([table_seed, *hand_seed_commitments])


def deal_positions(hand_seed: int, deck_seed: int, seat: int) -> list[int]:
    """Deck positions of a seat's hand: five of its alternate positions."""
    picks = permutation_from_seed(poseidon_hash([hand_seed, deck_seed]), SEAT_CARDS)
    return [SEATS * p + seat for p in picks[:HAND_SIZE]]


def deal_hand(hand_seed: int, deck_seed: int, seat: int) -> list[int]:
    """Five distinct cards, sorted ascending."""
    range_check(seat, 0, SEATS - 1, "seat")
    deck = permutation_from_seed(deck_seed, DECK_SIZE)
    return sorted(
        select_by_index(deck, position, "deal_position")
        for position in deal_positions(hand_seed, deck_seed, seat)
    )


def _pack(ranks: Sequence[int]) -> int:
    packed = 0
    for i in range(HAND_SIZE):
        packed = packed * 16 + (ranks[i] if i < len(ranks) else 0)
    return packed


def evaluate_hand(cards: Sequence[int]) -> tuple[HandRanking, int]:
    """
    Rank a five-card hand.

    Returns:
        (ranking, tiebreak)

    Raises:
        ValueError: If the hand is not five distinct cards in 0-51
    """
    if len(cards) != HAND_SIZE or len(set(cards)) != HAND_SIZE:
        raise ValueError("A hand is five distinct cards")
    if any(c < 0 or c >= DECK_SIZE for c in cards):
        raise ValueError("Cards must be in 0-51")

    suits = []
    ranks = []
    for card in cards:
        suit, rank = divmod_checked(card, RANKS, "card")
        suits.append(suit)
        ranks.append(rank)

    counts = Counter(ranks)
    groups = sorted(counts.items(), key=lambda kv: (kv[1], kv[0]), reverse=True)
    shape = [count for _, count in groups]
    distinct = sorted(counts, reverse=True)
    is_flush = len(set(suits)) == 1

    straight_high = None
    if len(distinct) == HAND_SIZE:
        if distinct[0] - distinct[-1] == HAND_SIZE - 1:
            straight_high = distinct[0]
        elif distinct == WHEEL:
            straight_high = 3

    if straight_high is not None and is_flush:
        ranking = HandRanking.ROYAL_FLUSH if straight_high == ACE else HandRanking.STRAIGHT_FLUSH
    elif shape[0] == 4:
        ranking = HandRanking.FOUR_OF_A_KIND
    elif shape == [3, 2]:
        ranking = HandRanking.FULL_HOUSE
    elif is_flush:
        ranking = HandRanking.FLUSH
    elif straight_high is not None:
        ranking = HandRanking.STRAIGHT
    elif shape[0] == 3:
        ranking = HandRanking.THREE_OF_A_KIND
    elif shape[:2] == [2, 2]:
        ranking = HandRanking.TWO_PAIR
    elif shape[0] == 2:
        ranking = HandRanking.ONE_PAIR
    else:
        ranking = HandRanking.HIGH_CARD

    if straight_high is not None:
        tiebreak = _pack([straight_high])
    else:
        tiebreak = _pack([rank for rank, _ in groups])
    return ranking, tiebreak


def compare_hands(a: tuple[int, int], b: tuple[int, int]) -> int:
    """1 if a wins, -1 if b wins, 0 for a split pot."""
    if a == b:
        return 0
    return 1 if a > b else -1


@register
class PokerHandRankCircuit(ActionCircuit):
    """Reveal a dealt hand and its ranking at showdown."""

    circuit_id = CircuitId.POKER_HAND_RANK
    public_inputs = ("hand_seed_commitment", "deck_seed", "seat")
    private_inputs = ("hand_seed", "salt")
    outputs = ("card_0", "card_1", "card_2", "card_3", "card_4", "ranking", "tiebreak")

    def constrain(self, pub: dict[str, int], priv: dict[str, Any]) -> tuple[dict, dict]:
        cards = deal_hand(priv["hand_seed"], pub["deck_seed"], pub["seat"])
        ranking, tiebreak = evaluate_hand(cards)

        checks = {
            "hand_seed": commitment_matches(
                [priv["hand_seed"]], priv["salt"], pub["hand_seed_commitment"]
            ),
        }
        outputs = {f"card_{i}": card for i, card in enumerate(cards)}
        outputs["ranking"] = int(ranking)
        outputs["tiebreak"] = tiebreak
        return outputs, checks
