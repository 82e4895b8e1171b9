"""
Card Duel Circuits
==================

Transitions for the monster card duel: deck commitment, drawing,
summoning, battle resolution and direct attacks.

A deck is 20 catalog cards committed as a depth-5 Merkle tree over
Poseidon(card_id, deck_salt, position). A hand is 7 slots (0 = empty)
committed as Poseidon(slots..., salt).

Battle policy:
    - defender in ATTACK position: the weaker monster is destroyed and its
      controller takes the difference; equal ATK destroys both, no damage
    - defender in DEFENSE or SET position: ATK > DEF destroys the defender
      with no damage; ATK < DEF destroys the attacker and deals the
      difference to the attacker only when the defender was SET; equal
      changes nothing
    - life points clamp at 0

Version: 0.1.0
"""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from zkarena.circuits.base import ActionCircuit, CircuitId, register
from zkarena.circuits.gadgets import (
    all_of,
    clamped_sub,
    commitment_matches,
    compare,
    in_range,
    is_equal,
    is_zero,
    less_equal,
    merkle_root,
    one_hot,
    range_check,
    select_by_index,
)
from zkarena.crypto.commitment import commit
from zkarena.crypto.merkle import MerkleTree
from zkarena.crypto.poseidon import poseidon_hash

DECK_SIZE = 20
DECK_DEPTH = 5
HAND_SLOTS = 7
MAX_LP = 1 << 32


class MonsterPosition(IntEnum):
    """Battle position of a summoned monster."""

    ATTACK = 0
    DEFENSE = 1
    SET = 2


@dataclass(frozen=True)
class MonsterCard:
    card_id: int
    name: str
    attack: int
    defense: int


CARD_CATALOG = (
    MonsterCard(1, "Warrior", 2000, 1500),
    MonsterCard(2, "Mage", 1500, 1000),
    MonsterCard(3, "Archer", 1800, 1200),
    MonsterCard(4, "Giant", 2500, 2000),
    MonsterCard(5, "Assassin", 1700, 800),
    MonsterCard(6, "Paladin", 1600, 1800),
    MonsterCard(7, "Necromancer", 1900, 1100),
    MonsterCard(8, "Dragon", 3000, 2500),
    MonsterCard(9, "Knight", 2200, 1600),
    MonsterCard(10, "Rogue", 1400, 900),
    MonsterCard(11, "Vampire", 2100, 1300),
    MonsterCard(12, "Elemental", 2300, 1700),
    MonsterCard(13, "Berserker", 2400, 1400),
    MonsterCard(14, "Druid", 1600, 1900),
    MonsterCard(15, "Shapeshifter", 2000, 2000),
    MonsterCard(16, "Summoner", 1800, 1600),
    MonsterCard(17, "Monk", 1700, 1500),
    MonsterCard(18, "Samurai", 2200, 1800),
    MonsterCard(19, "Ninja", 1900, 1200),
    MonsterCard(20, "Priest", 1500, 2000),
)

CATALOG_SIZE = len(CARD_CATALOG)
CARD_ATTACK = tuple(card.attack for card in CARD_CATALOG)
CARD_DEFENSE = tuple(card.defense for card in CARD_CATALOG)


def deck_leaf(card_id: int, deck_salt: int, position: int) -> int:
    return poseidon_hash([card_id, deck_salt, position])


def build_deck_tree(cards: Sequence[int], deck_salt: int) -> MerkleTree:
    """Deck tree with the card at position i stored at leaf i."""
    return MerkleTree([deck_leaf(c, deck_salt, i) for i, c in enumerate(cards)], DECK_DEPTH)


def card_stats(card_id: int) -> tuple[int, int]:
    """(attack, defense) via selector sums over the catalog."""
    index = card_id - 1
    return (
        select_by_index(CARD_ATTACK, index, "card_id"),
        select_by_index(CARD_DEFENSE, index, "card_id"),
    )


# ============================================================================
# Deck and hand
# ============================================================================


@register
class DuelDeckCircuit(ActionCircuit):
    """Commit to a legal deck and an empty hand before seeds are revealed."""

    circuit_id = CircuitId.DUEL_DECK
    public_inputs = ("max_copies",)
    private_inputs = ("cards", "deck_salt", "hand_salt")
    outputs = ("deck_root", "hand_commitment")
    array_inputs = {"cards": DECK_SIZE}

    def constrain(self, pub: dict[str, int], priv: dict[str, Any]) -> tuple[dict, dict]:
        cards = priv["cards"]
        range_check(pub["max_copies"], 1, DECK_SIZE, "max_copies")

        copies_ok = []
        for card_id in range(1, CATALOG_SIZE + 1):
            count = sum(is_equal(c, card_id) for c in cards)
            copies_ok.append(less_equal(count, pub["max_copies"]))

        checks = {
            "catalog_cards": all_of([in_range(c, 1, CATALOG_SIZE) for c in cards]),
            "max_copies": all_of(copies_ok),
        }
        outputs = {
            "deck_root": build_deck_tree(cards, priv["deck_salt"]).root,
            "hand_commitment": commit([0] * HAND_SLOTS, priv["hand_salt"]),
        }
        return outputs, checks


@register
class DuelDrawCircuit(ActionCircuit):
    """Move the card at a committed deck position into the first empty hand slot."""

    circuit_id = CircuitId.DUEL_DRAW
    public_inputs = ("deck_root", "draw_position", "old_hand_commitment", "new_hand_commitment")
    private_inputs = (
        "card_id",
        "deck_salt",
        "path_elements",
        "path_indices",
        "old_hand",
        "old_hand_salt",
        "new_hand",
        "new_hand_salt",
    )
    outputs = ("hand_size",)
    array_inputs = {
        "path_elements": DECK_DEPTH,
        "path_indices": DECK_DEPTH,
        "old_hand": HAND_SLOTS,
        "new_hand": HAND_SLOTS,
    }

    def constrain(self, pub: dict[str, int], priv: dict[str, Any]) -> tuple[dict, dict]:
        card_id = priv["card_id"]
        old_hand = priv["old_hand"]
        new_hand = priv["new_hand"]

        leaf = deck_leaf(card_id, priv["deck_salt"], pub["draw_position"])
        root, position = merkle_root(leaf, priv["path_elements"], priv["path_indices"], DECK_DEPTH)

        # First empty slot receives the card
        seen = 0
        first_empty = []
        for slot in old_hand:
            take = is_zero(slot) * (1 - seen)
            first_empty.append(take)
            seen += take
        expected = [slot + take * card_id for slot, take in zip(old_hand, first_empty)]

        checks = {
            "in_deck": is_equal(root, pub["deck_root"]),
            "position": is_equal(position, pub["draw_position"]),
            "card_range": in_range(card_id, 1, CATALOG_SIZE),
            "old_hand": commitment_matches(old_hand, priv["old_hand_salt"], pub["old_hand_commitment"]),
            "hand_slots": all_of([in_range(s, 0, CATALOG_SIZE) for s in old_hand]),
            "hand_not_full": seen,
            "hand_update": all_of([is_equal(a, b) for a, b in zip(new_hand, expected)]),
            "new_hand": commitment_matches(new_hand, priv["new_hand_salt"], pub["new_hand_commitment"]),
        }
        return {"hand_size": sum(1 - is_zero(s) for s in expected)}, checks


# ============================================================================
# Summon
# ============================================================================


@register
class DuelSummonCircuit(ActionCircuit):
    """
    Summon the monster in a hand slot.

    ATTACK and DEFENSE summons reveal the card; a SET summon publishes
    zeros and keeps only the monster commitment.
    """

    circuit_id = CircuitId.DUEL_SUMMON
    public_inputs = ("old_hand_commitment", "new_hand_commitment", "position")
    private_inputs = ("hand", "old_hand_salt", "slot", "new_hand_salt", "monster_salt")
    outputs = ("monster_commitment", "card_id", "attack", "defense")
    array_inputs = {"hand": HAND_SLOTS}

    def constrain(self, pub: dict[str, int], priv: dict[str, Any]) -> tuple[dict, dict]:
        hand = priv["hand"]
        position = range_check(pub["position"], 0, len(MonsterPosition) - 1, "position")

        card_id = select_by_index(hand, priv["slot"], "slot")
        removed = one_hot(priv["slot"], HAND_SLOTS, "slot")
        remaining = [c * (1 - r) for c, r in zip(hand, removed)]

        checks = {
            "old_hand": commitment_matches(hand, priv["old_hand_salt"], pub["old_hand_commitment"]),
            "card_present": 1 - is_zero(card_id),
            "new_hand": commitment_matches(remaining, priv["new_hand_salt"], pub["new_hand_commitment"]),
        }
        attack, defense = card_stats(card_id)
        revealed = 1 - is_equal(position, MonsterPosition.SET)

        outputs = {
            "monster_commitment": commit([card_id], priv["monster_salt"]),
            "card_id": revealed * card_id,
            "attack": revealed * attack,
            "defense": revealed * defense,
        }
        return outputs, checks


# ============================================================================
# Battle
# ============================================================================


@register
class DuelBattleCircuit(ActionCircuit):
    """Resolve an attack on a monster. Proven by the defender."""

    circuit_id = CircuitId.DUEL_BATTLE
    public_inputs = (
        "attacker_attack",
        "attacker_lp",
        "defender_lp",
        "defender_commitment",
        "defender_position",
        "attack_index",
    )
    private_inputs = ("card_id", "monster_salt")
    outputs = (
        "defender_card_id",
        "attacker_destroyed",
        "defender_destroyed",
        "new_attacker_lp",
        "new_defender_lp",
    )

    def constrain(self, pub: dict[str, int], priv: dict[str, Any]) -> tuple[dict, dict]:
        card_id = priv["card_id"]
        attack = range_check(pub["attacker_attack"], 0, MAX_LP, "attacker_attack")
        attacker_lp = range_check(pub["attacker_lp"], 0, MAX_LP, "attacker_lp")
        defender_lp = range_check(pub["defender_lp"], 0, MAX_LP, "defender_lp")
        position = range_check(
            pub["defender_position"], 0, len(MonsterPosition) - 1, "defender_position"
        )

        defender_attack, defender_defense = card_stats(card_id)
        in_attack = is_equal(position, MonsterPosition.ATTACK)
        face_down = is_equal(position, MonsterPosition.SET)
        value = in_attack * defender_attack + (1 - in_attack) * defender_defense
        c = compare(attack, value)

        attacker_destroyed = in_attack * (c.lt + c.eq) + (1 - in_attack) * c.lt
        defender_destroyed = in_attack * (c.gt + c.eq) + (1 - in_attack) * c.gt
        damage_to_attacker = c.lt * (value - attack) * (in_attack + (1 - in_attack) * face_down)
        damage_to_defender = in_attack * c.gt * (attack - value)

        new_attacker_lp, _ = clamped_sub(attacker_lp, damage_to_attacker)
        new_defender_lp, _ = clamped_sub(defender_lp, damage_to_defender)

        checks = {
            "defender": commitment_matches([card_id], priv["monster_salt"], pub["defender_commitment"]),
        }
        outputs = {
            "defender_card_id": card_id,
            "attacker_destroyed": attacker_destroyed,
            "defender_destroyed": defender_destroyed,
            "new_attacker_lp": new_attacker_lp,
            "new_defender_lp": new_defender_lp,
        }
        return outputs, checks


@register
class DuelDirectAttackCircuit(ActionCircuit):
    """Attack life points directly when the defender controls no monsters."""

    circuit_id = CircuitId.DUEL_DIRECT_ATTACK
    public_inputs = ("attacker_attack", "defender_lp", "defender_monsters", "attack_index")
    outputs = ("new_defender_lp", "is_defeated")

    def constrain(self, pub: dict[str, int], priv: dict[str, Any]) -> tuple[dict, dict]:
        attack = range_check(pub["attacker_attack"], 0, MAX_LP, "attacker_attack")
        defender_lp = range_check(pub["defender_lp"], 0, MAX_LP, "defender_lp")

        new_lp, _ = clamped_sub(defender_lp, attack)
        checks = {"open_field": is_zero(pub["defender_monsters"])}
        return {"new_defender_lp": new_lp, "is_defeated": is_zero(new_lp)}, checks
