"""
Witness Builders
================

Client-side hidden state and the circuit inputs derived from it.

Each player object owns its secrets (positions, hands, seeds, salts) and
builds the public inputs and private witness for its next transition.
Builders update the held state as if the transition is accepted; a client
whose submission is rejected should rebuild from its last accepted state.

Usage:
    player = ArenaPlayer(slot=0)
    inputs = player.spawn(game_seed, spawn_index=0, arena_size=500, max_health=100)
    proof = await prover.prove(inputs.circuit_id, inputs.public_inputs, inputs.private_witness)

Version: 0.1.0
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from zkarena.circuits import CircuitId
from zkarena.circuits.arena import ArenaItem, Weapon, item_health, shot_hits, spawn_point
from zkarena.circuits.draw import DECK_SIZE as DRAW_DECK_SIZE
from zkarena.circuits.draw import RANKS_PER_SUIT, SUIT_BITS, deck_order
from zkarena.circuits.duel import HAND_SLOTS, build_deck_tree
from zkarena.circuits.poker import deal_hand
from zkarena.crypto.commitment import commit, generate_salt
from zkarena.crypto.merkle import MerkleTree

Point = tuple[int, int, int]


@dataclass
class TransitionInputs:
    """Everything the prover needs for one transition."""

    circuit_id: CircuitId
    public_inputs: dict[str, Any]
    private_witness: dict[str, Any] = field(default_factory=dict)


# ============================================================================
# Arena
# ============================================================================


class ArenaPlayer:
    """Hidden position and health of one arena player."""

    def __init__(self, slot: int):
        self.slot = slot
        self.position: Point = (0, 0, 0)
        self.position_salt = 0
        self.health = 0
        self.health_salt = 0

    @property
    def position_commitment(self) -> int:
        return commit(self.position, self.position_salt)

    @property
    def health_commitment(self) -> int:
        return commit([self.health], self.health_salt)

    def spawn(self, game_seed: int, spawn_index: int, arena_size: int, max_health: int) -> TransitionInputs:
        self.position = spawn_point(game_seed, self.slot + 1, spawn_index, arena_size)
        self.position_salt = generate_salt()
        self.health = max_health
        self.health_salt = generate_salt()

        x, y, z = self.position
        return TransitionInputs(
            CircuitId.ARENA_SPAWN,
            {
                "game_seed": game_seed,
                "player_tag": self.slot + 1,
                "spawn_index": spawn_index,
                "arena_size": arena_size,
                "max_health": max_health,
            },
            {
                "x": x,
                "y": y,
                "z": z,
                "position_salt": self.position_salt,
                "health": self.health,
                "health_salt": self.health_salt,
            },
        )

    def move(self, target: Point, max_speed: int, delta_time: int, arena_size: int) -> TransitionInputs:
        old, old_salt = self.position, self.position_salt
        new_salt = generate_salt()
        inputs = TransitionInputs(
            CircuitId.ARENA_MOVE,
            {
                "old_commitment": commit(old, old_salt),
                "new_commitment": commit(target, new_salt),
                "max_speed": max_speed,
                "delta_time": delta_time,
                "arena_size": arena_size,
            },
            {
                "old_x": old[0],
                "old_y": old[1],
                "old_z": old[2],
                "old_salt": old_salt,
                "new_x": target[0],
                "new_y": target[1],
                "new_z": target[2],
                "new_salt": new_salt,
            },
        )
        self.position, self.position_salt = tuple(target), new_salt
        return inputs

    def shoot(self, direction: Point, weapon: Weapon, shot_index: int) -> TransitionInputs:
        x, y, z = self.position
        return TransitionInputs(
            CircuitId.ARENA_SHOOT,
            {
                "position_commitment": self.position_commitment,
                "direction_x": direction[0],
                "direction_y": direction[1],
                "direction_z": direction[2],
                "max_range": weapon.max_range,
                "damage": weapon.damage,
                "shot_index": shot_index,
            },
            {"x": x, "y": y, "z": z, "salt": self.position_salt},
        )

    def take_shot(self, shot: Mapping[str, int], hit_radius: int) -> TransitionInputs:
        """Resolve a pending shot against this player's hidden position."""
        origin = (shot["origin_x"], shot["origin_y"], shot["origin_z"])
        direction = (shot["direction_x"], shot["direction_y"], shot["direction_z"])
        hit = shot_hits(origin, direction, self.position, shot["max_range"], hit_radius)

        old_health, old_salt = self.health, self.health_salt
        new_health = max(old_health - shot["damage"], 0) if hit else old_health
        new_salt = generate_salt()

        x, y, z = self.position
        inputs = TransitionInputs(
            CircuitId.ARENA_DAMAGE,
            {
                **{name: shot[name] for name in ("origin_x", "origin_y", "origin_z")},
                **{name: shot[name] for name in ("direction_x", "direction_y", "direction_z")},
                "max_range": shot["max_range"],
                "hit_radius": hit_radius,
                "damage": shot["damage"],
                "shot_index": shot["shot_index"],
                "position_commitment": self.position_commitment,
                "old_health_commitment": commit([old_health], old_salt),
                "new_health_commitment": commit([new_health], new_salt),
            },
            {
                "x": x,
                "y": y,
                "z": z,
                "position_salt": self.position_salt,
                "old_health": old_health,
                "old_health_salt": old_salt,
                "new_health": new_health,
                "new_health_salt": new_salt,
            },
        )
        self.health, self.health_salt = new_health, new_salt
        return inputs

    def collect(
        self,
        item: ArenaItem,
        tree: MerkleTree,
        collection_radius: int,
        max_health: int,
    ) -> TransitionInputs:
        proof = tree.proof(item.item_id)
        old_health, old_salt = self.health, self.health_salt
        new_health = item_health(old_health, item.item_type, max_health)
        new_salt = generate_salt()

        x, y, z = self.position
        inputs = TransitionInputs(
            CircuitId.ARENA_ITEM_COLLECT,
            {
                "position_commitment": self.position_commitment,
                "items_root": tree.root,
                "item_id": item.item_id,
                "collection_radius": collection_radius,
                "max_health": max_health,
                "old_health_commitment": commit([old_health], old_salt),
                "new_health_commitment": commit([new_health], new_salt),
            },
            {
                "x": x,
                "y": y,
                "z": z,
                "position_salt": self.position_salt,
                "item_type": int(item.item_type),
                "item_x": item.x,
                "item_y": item.y,
                "item_z": item.z,
                "path_elements": list(proof.path_elements),
                "path_indices": list(proof.path_indices),
                "old_health": old_health,
                "old_health_salt": old_salt,
                "new_health": new_health,
                "new_health_salt": new_salt,
            },
        )
        self.health, self.health_salt = new_health, new_salt
        return inputs


def arena_win_inputs(
    player1_kills: int, player2_kills: int, kill_limit: int, turn_limit: int, turns_elapsed: int
) -> TransitionInputs:
    return TransitionInputs(
        CircuitId.ARENA_WIN,
        {
            "player1_kills": player1_kills,
            "player2_kills": player2_kills,
            "kill_limit": kill_limit,
            "turn_limit": turn_limit,
            "turns_elapsed": turns_elapsed,
        },
    )


# ============================================================================
# Duel
# ============================================================================


class DuelPlayer:
    """Hidden deck, hand and face-down monsters of one duelist."""

    def __init__(self, cards: Sequence[int]):
        self.cards = list(cards)
        self.deck_salt = generate_salt()
        self.tree = build_deck_tree(self.cards, self.deck_salt)
        self.hand = [0] * HAND_SLOTS
        self.hand_salt = generate_salt()

        # monster commitment -> (card_id, salt)
        self.monsters: dict[int, tuple[int, int]] = {}

    @property
    def hand_commitment(self) -> int:
        return commit(self.hand, self.hand_salt)

    def commit_deck(self, max_copies: int) -> TransitionInputs:
        self.hand = [0] * HAND_SLOTS
        return TransitionInputs(
            CircuitId.DUEL_DECK,
            {"max_copies": max_copies},
            {"cards": self.cards, "deck_salt": self.deck_salt, "hand_salt": self.hand_salt},
        )

    def draw(self, position: int) -> TransitionInputs:
        """Draw the card at a committed deck position into the first empty slot."""
        card_id = self.cards[position]
        proof = self.tree.proof(position)

        old_hand, old_salt = list(self.hand), self.hand_salt
        new_hand = list(old_hand)
        new_hand[new_hand.index(0)] = card_id
        new_salt = generate_salt()

        inputs = TransitionInputs(
            CircuitId.DUEL_DRAW,
            {
                "deck_root": self.tree.root,
                "draw_position": position,
                "old_hand_commitment": commit(old_hand, old_salt),
                "new_hand_commitment": commit(new_hand, new_salt),
            },
            {
                "card_id": card_id,
                "deck_salt": self.deck_salt,
                "path_elements": list(proof.path_elements),
                "path_indices": list(proof.path_indices),
                "old_hand": old_hand,
                "old_hand_salt": old_salt,
                "new_hand": new_hand,
                "new_hand_salt": new_salt,
            },
        )
        self.hand, self.hand_salt = new_hand, new_salt
        return inputs

    def summon(self, hand_slot: int, position: int) -> TransitionInputs:
        old_hand, old_salt = list(self.hand), self.hand_salt
        card_id = old_hand[hand_slot]
        new_hand = list(old_hand)
        new_hand[hand_slot] = 0
        new_salt = generate_salt()
        monster_salt = generate_salt()

        self.monsters[commit([card_id], monster_salt)] = (card_id, monster_salt)
        inputs = TransitionInputs(
            CircuitId.DUEL_SUMMON,
            {
                "old_hand_commitment": commit(old_hand, old_salt),
                "new_hand_commitment": commit(new_hand, new_salt),
                "position": position,
            },
            {
                "hand": old_hand,
                "old_hand_salt": old_salt,
                "slot": hand_slot,
                "new_hand_salt": new_salt,
                "monster_salt": monster_salt,
            },
        )
        self.hand, self.hand_salt = new_hand, new_salt
        return inputs

    def defend(
        self,
        monster_commitment: int,
        defender_position: int,
        attacker_attack: int,
        attacker_lp: int,
        defender_lp: int,
        attack_index: int,
    ) -> TransitionInputs:
        card_id, salt = self.monsters[monster_commitment]
        return TransitionInputs(
            CircuitId.DUEL_BATTLE,
            {
                "attacker_attack": attacker_attack,
                "attacker_lp": attacker_lp,
                "defender_lp": defender_lp,
                "defender_commitment": monster_commitment,
                "defender_position": defender_position,
                "attack_index": attack_index,
            },
            {"card_id": card_id, "monster_salt": salt},
        )


def direct_attack_inputs(
    attacker_attack: int, defender_lp: int, defender_monsters: int, attack_index: int
) -> TransitionInputs:
    return TransitionInputs(
        CircuitId.DUEL_DIRECT_ATTACK,
        {
            "attacker_attack": attacker_attack,
            "defender_lp": defender_lp,
            "defender_monsters": defender_monsters,
            "attack_index": attack_index,
        },
    )


# ============================================================================
# Poker and Dead Man's Draw
# ============================================================================


class SeededPlayer:
    """A private seed committed before the shared table seed exists."""

    def __init__(self, private_seed: int | None = None):
        self.private_seed = generate_salt() if private_seed is None else private_seed
        self.salt = generate_salt()

    @property
    def commitment(self) -> int:
        return commit([self.private_seed], self.salt)


class PokerPlayer(SeededPlayer):
    """Deck seed and seat come from the session board once play starts."""

    def hand(self, deck_seed: int, seat: int) -> list[int]:
        return deal_hand(self.private_seed, deck_seed, seat)

    def reveal_hand(self, deck_seed: int, seat: int) -> TransitionInputs:
        return TransitionInputs(
            CircuitId.POKER_HAND_RANK,
            {"hand_seed_commitment": self.commitment, "deck_seed": deck_seed, "seat": seat},
            {"hand_seed": self.private_seed, "salt": self.salt},
        )


class DrawPlayer(SeededPlayer):
    def deck(self, table_seed: int) -> list[int]:
        return deck_order(self.private_seed, table_seed)

    def would_bust(self, table_seed: int, position: int, suits_mask: int) -> bool:
        card_id = self.deck(table_seed)[position]
        return bool(suits_mask & SUIT_BITS[card_id // RANKS_PER_SUIT])

    def draw(self, table_seed: int, position: int, suits_mask: int) -> TransitionInputs:
        if not 0 <= position < DRAW_DECK_SIZE:
            raise ValueError(f"Draw position out of range: {position}")
        return TransitionInputs(
            CircuitId.DRAW_CARD,
            {
                "deck_seed_commitment": self.commitment,
                "table_seed": table_seed,
                "draw_position": position,
                "suits_mask": suits_mask,
            },
            {"deck_seed": self.private_seed, "salt": self.salt},
        )
