"""
Arena Shooter Circuits
======================

Transitions for the arena shooter: spawning, movement, shooting, damage,
item collection and the win condition.

Hidden per-player state is the position commitment Poseidon(x, y, z, salt)
and the health commitment Poseidon(health, salt).

Boundary policy:
    - movement bound |delta|^2 * 1000^2 <= (max_speed * delta_ms)^2 is inclusive
    - a shot hits when the target lies in front of the muzzle, within
      max_range and within hit_radius of the ray (all inclusive)
    - item collection radius is inclusive
    - equal kills at the end of the game is a draw (winner 0)

Version: 0.1.0
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from zkarena.circuits.base import ActionCircuit, CircuitId, register
from zkarena.circuits.gadgets import (
    WIDE_BITS,
    any_of,
    clamped_sub,
    commitment_matches,
    compare,
    cross,
    dot,
    in_range,
    is_equal,
    is_zero,
    less_equal,
    merkle_inclusion,
    min_of,
    one_hot,
    range_check,
    squared_distance,
    sub,
)
from zkarena.crypto.commitment import commit
from zkarena.crypto.merkle import MerkleTree
from zkarena.crypto.poseidon import poseidon_hash

# Milliseconds per second; speeds are units per second
TIME_SCALE = 1000

# Direction vectors are unit vectors scaled by 1000
DIRECTION_SCALE = 1000

MAX_ARENA_SIZE = 1 << 20
MAX_HEALTH_CAP = 1 << 16

ITEM_TREE_DEPTH = 4
HEALTH_PACK_AMOUNT = 25
SHIELD_AMOUNT = 50
AMMO_PACK_AMOUNT = 30
MAX_WEAPON_TIER = 3


class ItemType(IntEnum):
    """Collectible item kinds."""

    HEALTH_PACK = 0
    AMMO = 1
    WEAPON_UPGRADE = 2
    SHIELD = 3


class WinReason(IntEnum):
    """Why an arena match ended."""

    KILLS = 0
    TIME = 1


@dataclass(frozen=True)
class Weapon:
    """Public weapon stats by tier."""

    name: str
    damage: int
    max_range: int


WEAPONS = (
    Weapon("pistol", 15, 60),
    Weapon("rifle", 25, 100),
    Weapon("shotgun", 40, 40),
    Weapon("sniper", 50, 200),
)


@dataclass(frozen=True)
class ArenaItem:
    """A spawned collectible. Positions and types are public."""

    item_id: int
    item_type: ItemType
    x: int
    y: int
    z: int

    @property
    def leaf(self) -> int:
        return item_leaf(self.item_id, self.item_type, self.x, self.y, self.z)


def item_leaf(item_id: int, item_type: int, x: int, y: int, z: int) -> int:
    return poseidon_hash([item_id, item_type, x, y, z])


def build_item_tree(items: list[ArenaItem]) -> MerkleTree:
    """Items tree with item i stored at leaf i."""
    return MerkleTree([item.leaf for item in items], ITEM_TREE_DEPTH)


def spawn_point(game_seed: int, player_tag: int, spawn_index: int, arena_size: int) -> tuple[int, int, int]:
    """Spawn coordinates derived from the shared game seed."""
    h = poseidon_hash([game_seed, player_tag, spawn_index])
    side = arena_size + 1
    return h % side, (h >> 64) % side, 0


def shot_hits(
    origin: tuple[int, int, int],
    direction: tuple[int, int, int],
    target: tuple[int, int, int],
    max_range: int,
    hit_radius: int,
) -> bool:
    """Hit test the damage circuit enforces, over plain integers."""
    v = sub(target, origin)
    offset = cross(v, direction)
    return (
        dot(v, direction) >= 0
        and dot(v, v) <= max_range**2
        and dot(offset, offset) <= hit_radius**2 * dot(direction, direction)
    )


def item_health(health: int, item_type: int, cap: int) -> int:
    """Health after collecting an item."""
    if item_type == ItemType.HEALTH_PACK:
        return health if health >= cap else min(health + HEALTH_PACK_AMOUNT, cap)
    if item_type == ItemType.SHIELD:
        return min(health + SHIELD_AMOUNT, cap + SHIELD_AMOUNT)
    return health


def _direction(pub: dict[str, int]) -> tuple[int, int, int]:
    d = (pub["direction_x"], pub["direction_y"], pub["direction_z"])
    for axis, value in zip("xyz", d):
        range_check(value, -DIRECTION_SCALE, DIRECTION_SCALE, f"direction_{axis}")
    return d


# ============================================================================
# Spawn
# ============================================================================


@register
class ArenaSpawnCircuit(ActionCircuit):
    """Place a player at the seed-derived spawn point with full health."""

    circuit_id = CircuitId.ARENA_SPAWN
    public_inputs = ("game_seed", "player_tag", "spawn_index", "arena_size", "max_health")
    private_inputs = ("x", "y", "z", "position_salt", "health", "health_salt")
    outputs = ("position_commitment", "health_commitment")

    def constrain(self, pub: dict[str, int], priv: dict[str, Any]) -> tuple[dict, dict]:
        range_check(pub["arena_size"], 1, MAX_ARENA_SIZE, "arena_size")
        range_check(pub["max_health"], 1, MAX_HEALTH_CAP, "max_health")

        ex, ey, ez = spawn_point(
            pub["game_seed"], pub["player_tag"], pub["spawn_index"], pub["arena_size"]
        )
        checks = {
            "spawn_x": is_equal(priv["x"], ex),
            "spawn_y": is_equal(priv["y"], ey),
            "spawn_z": is_equal(priv["z"], ez),
            "full_health": is_equal(priv["health"], pub["max_health"]),
        }
        outputs = {
            "position_commitment": commit([priv["x"], priv["y"], priv["z"]], priv["position_salt"]),
            "health_commitment": commit([priv["health"]], priv["health_salt"]),
        }
        return outputs, checks


# ============================================================================
# Movement
# ============================================================================


@register
class ArenaMoveCircuit(ActionCircuit):
    """Move within the speed bound and the arena."""

    circuit_id = CircuitId.ARENA_MOVE
    public_inputs = ("old_commitment", "new_commitment", "max_speed", "delta_time", "arena_size")
    private_inputs = ("old_x", "old_y", "old_z", "old_salt", "new_x", "new_y", "new_z", "new_salt")

    def constrain(self, pub: dict[str, int], priv: dict[str, Any]) -> tuple[dict, dict]:
        size = range_check(pub["arena_size"], 1, MAX_ARENA_SIZE, "arena_size")
        range_check(pub["max_speed"], 0, 1 << 32, "max_speed")
        range_check(pub["delta_time"], 0, 1 << 32, "delta_time")

        old = (priv["old_x"], priv["old_y"], priv["old_z"])
        new = (priv["new_x"], priv["new_y"], priv["new_z"])
        for axis, value in zip("xyz", new):
            range_check(value, 0, size, f"new_{axis}")
        for axis, value in zip("xyz", old):
            range_check(value, 0, size, f"old_{axis}")

        reach = pub["max_speed"] * pub["delta_time"]
        travelled = squared_distance(old, new) * TIME_SCALE * TIME_SCALE

        checks = {
            "old_commitment": commitment_matches(old, priv["old_salt"], pub["old_commitment"]),
            "speed": less_equal(travelled, reach * reach, WIDE_BITS),
            "new_commitment": commitment_matches(new, priv["new_salt"], pub["new_commitment"]),
        }
        return {}, checks


# ============================================================================
# Shooting
# ============================================================================


@register
class ArenaShootCircuit(ActionCircuit):
    """Fire from the committed position, revealing the muzzle origin."""

    circuit_id = CircuitId.ARENA_SHOOT
    public_inputs = (
        "position_commitment",
        "direction_x",
        "direction_y",
        "direction_z",
        "max_range",
        "damage",
        "shot_index",
    )
    private_inputs = ("x", "y", "z", "salt")
    outputs = ("origin_x", "origin_y", "origin_z")
    signed_inputs = frozenset({"direction_x", "direction_y", "direction_z"})

    def constrain(self, pub: dict[str, int], priv: dict[str, Any]) -> tuple[dict, dict]:
        d = _direction(pub)
        range_check(pub["max_range"], 1, MAX_ARENA_SIZE, "max_range")
        range_check(pub["damage"], 0, MAX_HEALTH_CAP, "damage")

        origin = (priv["x"], priv["y"], priv["z"])
        checks = {
            "position": commitment_matches(origin, priv["salt"], pub["position_commitment"]),
            "direction": 1 - is_zero(dot(d, d)),
        }
        outputs = {"origin_x": origin[0], "origin_y": origin[1], "origin_z": origin[2]}
        return outputs, checks


@register
class ArenaDamageCircuit(ActionCircuit):
    """
    Resolve a pending shot against the target's hidden position.

    Proven by the target. new_health = max(old_health - hit * damage, 0).
    """

    circuit_id = CircuitId.ARENA_DAMAGE
    public_inputs = (
        "origin_x",
        "origin_y",
        "origin_z",
        "direction_x",
        "direction_y",
        "direction_z",
        "max_range",
        "hit_radius",
        "damage",
        "shot_index",
        "position_commitment",
        "old_health_commitment",
        "new_health_commitment",
    )
    private_inputs = (
        "x",
        "y",
        "z",
        "position_salt",
        "old_health",
        "old_health_salt",
        "new_health",
        "new_health_salt",
    )
    outputs = ("hit", "is_dead", "damage_dealt")
    signed_inputs = frozenset({"direction_x", "direction_y", "direction_z"})

    def constrain(self, pub: dict[str, int], priv: dict[str, Any]) -> tuple[dict, dict]:
        d = _direction(pub)
        range_check(pub["max_range"], 1, MAX_ARENA_SIZE, "max_range")
        range_check(pub["hit_radius"], 0, MAX_ARENA_SIZE, "hit_radius")
        range_check(pub["damage"], 0, MAX_HEALTH_CAP, "damage")
        old_health = range_check(priv["old_health"], 0, MAX_HEALTH_CAP, "old_health")

        origin = (pub["origin_x"], pub["origin_y"], pub["origin_z"])
        target = (priv["x"], priv["y"], priv["z"])
        v = sub(target, origin)
        offset = cross(v, d)

        forward = less_equal(0, dot(v, d), WIDE_BITS)
        in_reach = less_equal(dot(v, v), pub["max_range"] ** 2, WIDE_BITS)
        on_line = less_equal(dot(offset, offset), pub["hit_radius"] ** 2 * dot(d, d), WIDE_BITS)
        hit = forward * in_reach * on_line

        expected, _ = clamped_sub(old_health, hit * pub["damage"])

        checks = {
            "position": commitment_matches(target, priv["position_salt"], pub["position_commitment"]),
            "old_health": commitment_matches(
                [old_health], priv["old_health_salt"], pub["old_health_commitment"]
            ),
            "health_update": is_equal(priv["new_health"], expected),
            "new_health": commitment_matches(
                [priv["new_health"]], priv["new_health_salt"], pub["new_health_commitment"]
            ),
        }
        outputs = {
            "hit": hit,
            "is_dead": is_zero(expected),
            "damage_dealt": old_health - expected,
        }
        return outputs, checks


# ============================================================================
# Items
# ============================================================================


@register
class ArenaItemCollectCircuit(ActionCircuit):
    """Collect a spawned item within reach and apply its health effect."""

    circuit_id = CircuitId.ARENA_ITEM_COLLECT
    public_inputs = (
        "position_commitment",
        "items_root",
        "item_id",
        "collection_radius",
        "max_health",
        "old_health_commitment",
        "new_health_commitment",
    )
    private_inputs = (
        "x",
        "y",
        "z",
        "position_salt",
        "item_type",
        "item_x",
        "item_y",
        "item_z",
        "path_elements",
        "path_indices",
        "old_health",
        "old_health_salt",
        "new_health",
        "new_health_salt",
    )
    outputs = ("item_type", "collected")
    array_inputs = {"path_elements": ITEM_TREE_DEPTH, "path_indices": ITEM_TREE_DEPTH}

    def constrain(self, pub: dict[str, int], priv: dict[str, Any]) -> tuple[dict, dict]:
        range_check(pub["collection_radius"], 0, MAX_ARENA_SIZE, "collection_radius")
        cap = range_check(pub["max_health"], 1, MAX_HEALTH_CAP, "max_health")
        item_type = range_check(priv["item_type"], 0, len(ItemType) - 1, "item_type")
        health = range_check(priv["old_health"], 0, cap + SHIELD_AMOUNT, "old_health")

        position = (priv["x"], priv["y"], priv["z"])
        item_position = (priv["item_x"], priv["item_y"], priv["item_z"])
        leaf = item_leaf(pub["item_id"], item_type, *item_position)

        member = merkle_inclusion(
            leaf, priv["path_elements"], priv["path_indices"], pub["items_root"], ITEM_TREE_DEPTH
        )
        near = less_equal(
            squared_distance(position, item_position), pub["collection_radius"] ** 2, WIDE_BITS
        )

        # A health pack never lowers shield-boosted health
        saturated = less_equal(cap, health)
        pack = saturated * health + (1 - saturated) * min_of(health + HEALTH_PACK_AMOUNT, cap)
        shield = min_of(health + SHIELD_AMOUNT, cap + SHIELD_AMOUNT)

        kind = one_hot(item_type, len(ItemType), "item_type")
        expected = (
            kind[ItemType.HEALTH_PACK] * pack
            + kind[ItemType.AMMO] * health
            + kind[ItemType.WEAPON_UPGRADE] * health
            + kind[ItemType.SHIELD] * shield
        )

        checks = {
            "position": commitment_matches(position, priv["position_salt"], pub["position_commitment"]),
            "item_spawned": member,
            "within_radius": near,
            "old_health": commitment_matches(
                [health], priv["old_health_salt"], pub["old_health_commitment"]
            ),
            "health_update": is_equal(priv["new_health"], expected),
            "new_health": commitment_matches(
                [priv["new_health"]], priv["new_health_salt"], pub["new_health_commitment"]
            ),
        }
        return {"item_type": item_type, "collected": member * near}, checks


# ============================================================================
# Win condition
# ============================================================================


@register
class ArenaWinCircuit(ActionCircuit):
    """Settle the match once the kill limit or turn limit is reached."""

    circuit_id = CircuitId.ARENA_WIN
    public_inputs = ("player1_kills", "player2_kills", "kill_limit", "turn_limit", "turns_elapsed")
    outputs = ("winner", "reason")

    def constrain(self, pub: dict[str, int], priv: dict[str, Any]) -> tuple[dict, dict]:
        p1 = pub["player1_kills"]
        p2 = pub["player2_kills"]
        limit = pub["kill_limit"]

        limit_reached = any_of([less_equal(limit, p1), less_equal(limit, p2)])
        time_up = less_equal(pub["turn_limit"], pub["turns_elapsed"])
        kills = compare(p1, p2)

        outputs = {
            "winner": kills.gt * 1 + kills.lt * 2,
            "reason": limit_reached * WinReason.KILLS + (1 - limit_reached) * WinReason.TIME,
        }
        checks = {
            "game_over": any_of([limit_reached, time_up]),
            "kills_in_range": in_range(p1, 0, limit) * in_range(p2, 0, limit),
        }
        return outputs, checks
