"""
Dead Man's Draw Circuit
=======================

Push-your-luck draw from a hidden, seed-shuffled 40-card deck.

The deck order is a permutation seeded by Poseidon(deck_seed, table_seed)
where deck_seed was committed before the shared seed was revealed.
Cards are suit * 10 + (rank - 1): 4 suits of ranks 1-10.

Drawing a suit already present in the turn's suit mask busts the turn;
a bust clears the mask.

Version: 0.1.0
"""

from typing import Any

from zkarena.circuits.base import ActionCircuit, CircuitId, register
from zkarena.circuits.gadgets import (
    commitment_matches,
    divmod_checked,
    num_bits,
    permutation_from_seed,
    range_check,
    select_by_index,
)
from zkarena.crypto.poseidon import poseidon_hash

DECK_SIZE = 40
SUIT_COUNT = 4
RANKS_PER_SUIT = 10

SUIT_BITS = tuple(1 << s for s in range(SUIT_COUNT))


def deck_order(deck_seed: int, table_seed: int) -> list[int]:
    return permutation_from_seed(poseidon_hash([deck_seed, table_seed]), DECK_SIZE)


@register
class DrawCardCircuit(ActionCircuit):
    """Reveal the card at the next deck position and report a bust."""

    circuit_id = CircuitId.DRAW_CARD
    public_inputs = ("deck_seed_commitment", "table_seed", "draw_position", "suits_mask")
    private_inputs = ("deck_seed", "salt")
    outputs = ("card_id", "card_value", "is_bust", "new_suits_mask")

    def constrain(self, pub: dict[str, int], priv: dict[str, Any]) -> tuple[dict, dict]:
        position = range_check(pub["draw_position"], 0, DECK_SIZE - 1, "draw_position")
        mask = pub["suits_mask"]
        mask_bits = num_bits(mask, SUIT_COUNT, "suits_mask")

        card_id = select_by_index(deck_order(priv["deck_seed"], pub["table_seed"]), position)
        suit, rank = divmod_checked(card_id, RANKS_PER_SUIT, "card_id")
        is_bust = select_by_index(mask_bits, suit, "suit")
        suit_bit = select_by_index(SUIT_BITS, suit, "suit")

        checks = {
            "deck_seed": commitment_matches([priv["deck_seed"]], priv["salt"], pub["deck_seed_commitment"]),
        }
        outputs = {
            "card_id": card_id,
            "card_value": rank + 1,
            "is_bust": is_bust,
            "new_suits_mask": (1 - is_bust) * (mask + suit_bit),
        }
        return outputs, checks
