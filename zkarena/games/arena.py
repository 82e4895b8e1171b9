"""
Arena Rules
===========

Turn-based arena shooter over hidden positions and health.

Sub-phases:
    spawn         both players prove a spawn
    play          the active player may move once, collect items, shoot
                  or end the turn
    resolve_shot  the target proves the damage of a pending shot
    respawn       a killed player proves a new spawn
    settle        kill or turn limit reached; anyone proves the result

Version: 0.1.0
"""

from zkarena.circuits import CircuitId
from zkarena.circuits.arena import (
    AMMO_PACK_AMOUNT,
    ITEM_TREE_DEPTH,
    MAX_ARENA_SIZE,
    MAX_HEALTH_CAP,
    MAX_WEAPON_TIER,
    WEAPONS,
    ArenaItem,
    ItemType,
    WinReason,
    build_item_tree,
)
from zkarena.config import Settings
from zkarena.games.base import (
    GameAction,
    GameRules,
    check_param,
    consume,
    expect_commitment,
    expect_value,
    finish,
    require_actor,
    require_substate,
)
from zkarena.ledger.models import GameKind, Session
from zkarena.randomness import derive_int, first_actor, seed_to_field


def generate_items(seed: bytes, count: int, arena_size: int) -> list[ArenaItem]:
    """Item layout derived from the shared seed. Item ids are list indices."""
    return [
        ArenaItem(
            item_id=i,
            item_type=ItemType(derive_int(seed, "arena-item-type", i, len(ItemType))),
            x=derive_int(seed, "arena-item-x", i, arena_size + 1),
            y=derive_int(seed, "arena-item-y", i, arena_size + 1),
            z=0,
        )
        for i in range(count)
    ]


class ArenaRules(GameRules):
    kind = GameKind.ARENA
    circuits = (
        CircuitId.ARENA_SPAWN,
        CircuitId.ARENA_MOVE,
        CircuitId.ARENA_SHOOT,
        CircuitId.ARENA_DAMAGE,
        CircuitId.ARENA_ITEM_COLLECT,
        CircuitId.ARENA_WIN,
    )

    def default_params(self, settings: Settings) -> dict[str, int]:
        arena = settings.arena
        return {
            "arena_size": arena.arena_size,
            "max_health": arena.max_health,
            "max_speed": arena.max_speed,
            "move_delta_ms": arena.move_delta_ms,
            "hit_radius": arena.hit_radius,
            "collection_radius": arena.collection_radius,
            "kill_limit": arena.kill_limit,
            "turn_limit": arena.turn_limit,
            "item_count": arena.item_count,
            "initial_ammo": arena.initial_ammo,
        }

    def validate_params(self, params: dict[str, int]) -> None:
        check_param(params, "arena_size", 1, MAX_ARENA_SIZE)
        check_param(params, "max_health", 1, MAX_HEALTH_CAP)
        check_param(params, "max_speed", 0, 1 << 32)
        check_param(params, "move_delta_ms", 0, 1 << 32)
        check_param(params, "hit_radius", 0, MAX_ARENA_SIZE)
        check_param(params, "collection_radius", 0, MAX_ARENA_SIZE)
        check_param(params, "item_count", 0, 1 << ITEM_TREE_DEPTH)
        check_param(params, "kill_limit", 1)
        check_param(params, "turn_limit", 1)

    def start(self, session: Session, seed: bytes) -> None:
        items = generate_items(seed, session.params["item_count"], session.params["arena_size"])
        session.board["game_seed"] = seed_to_field(seed)
        session.board["items"] = [
            {"item_id": i.item_id, "item_type": int(i.item_type), "x": i.x, "y": i.y, "z": i.z}
            for i in items
        ]
        session.board["items_root"] = build_item_tree(items).root
        session.board["pending_shot"] = None
        session.board["respawn_slot"] = None

        for slot in range(len(session.participants)):
            for name in ("kills", "deaths", "spawns", "shots", "weapon", "moved"):
                session.set_counter(slot, name, 0)
            session.set_counter(slot, "ammo", session.params["initial_ammo"])

        session.accumulators["turns"] = 0
        session.substate = "spawn"
        session.active_slot = first_actor(seed)

    def allowed_circuits(self, session: Session, slot: int) -> set[CircuitId]:
        substate = session.substate
        if substate == "spawn":
            if "position" not in session.participants[slot].commitments:
                return {CircuitId.ARENA_SPAWN}
            return set()
        if substate == "play" and slot == session.active_slot:
            allowed = {CircuitId.ARENA_ITEM_COLLECT}
            if session.counter(slot, "moved") == 0:
                allowed.add(CircuitId.ARENA_MOVE)
            if session.counter(slot, "ammo") > 0:
                allowed.add(CircuitId.ARENA_SHOOT)
            return allowed
        if substate == "resolve_shot" and slot == session.board["pending_shot"]["target"]:
            return {CircuitId.ARENA_DAMAGE}
        if substate == "respawn" and slot == session.board["respawn_slot"]:
            return {CircuitId.ARENA_SPAWN}
        if substate == "settle":
            return {CircuitId.ARENA_WIN}
        return set()

    def apply_transition(
        self, session: Session, slot: int, circuit_id: CircuitId, values: dict[str, int]
    ) -> None:
        handler = {
            CircuitId.ARENA_SPAWN: self._spawn,
            CircuitId.ARENA_MOVE: self._move,
            CircuitId.ARENA_SHOOT: self._shoot,
            CircuitId.ARENA_DAMAGE: self._damage,
            CircuitId.ARENA_ITEM_COLLECT: self._collect,
            CircuitId.ARENA_WIN: self._win,
        }[circuit_id]
        handler(session, slot, values)

    def handle_action(self, session: Session, slot: int, action: GameAction) -> None:
        if action.action != "end_turn":
            super().handle_action(session, slot, action)
            return
        require_substate(session, "play")
        require_actor(session, slot)
        self._end_turn(session)

    def awaiting(self, session: Session) -> set[int]:
        substate = session.substate
        if substate == "spawn":
            return {
                slot
                for slot, p in enumerate(session.participants)
                if "position" not in p.commitments
            }
        if substate == "resolve_shot":
            return {session.board["pending_shot"]["target"]}
        if substate == "respawn":
            return {session.board["respawn_slot"]}
        if substate == "settle":
            return {0, 1}
        return super().awaiting(session)

    # ------------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------------

    def _spawn(self, session: Session, slot: int, values: dict[str, int]) -> None:
        params = session.params
        expect_value("game_seed", values["game_seed"], session.board["game_seed"])
        expect_value("player_tag", values["player_tag"], slot + 1)
        expect_value("spawn_index", values["spawn_index"], session.counter(slot, "spawns"))
        expect_value("arena_size", values["arena_size"], params["arena_size"])
        expect_value("max_health", values["max_health"], params["max_health"])

        commitments = session.participants[slot].commitments
        commitments["position"] = values["position_commitment"]
        commitments["health"] = values["health_commitment"]
        session.add_counter(slot, "spawns", 1)

        if session.substate == "spawn":
            if all("position" in p.commitments for p in session.participants):
                session.substate = "play"
        else:
            # A respawn ends the turn in which the player was killed
            session.board["respawn_slot"] = None
            session.substate = "play"
            self._end_turn(session)

    def _move(self, session: Session, slot: int, values: dict[str, int]) -> None:
        params = session.params
        expect_commitment(session, slot, "position", values["old_commitment"])
        expect_value("max_speed", values["max_speed"], params["max_speed"])
        expect_value("delta_time", values["delta_time"], params["move_delta_ms"])
        expect_value("arena_size", values["arena_size"], params["arena_size"])

        session.participants[slot].commitments["position"] = values["new_commitment"]
        session.set_counter(slot, "moved", 1)

    def _shoot(self, session: Session, slot: int, values: dict[str, int]) -> None:
        weapon = WEAPONS[session.counter(slot, "weapon")]
        expect_commitment(session, slot, "position", values["position_commitment"])
        expect_value("max_range", values["max_range"], weapon.max_range)
        expect_value("damage", values["damage"], weapon.damage)
        expect_value("shot_index", values["shot_index"], session.counter(slot, "shots"))

        session.add_counter(slot, "ammo", -1)
        session.add_counter(slot, "shots", 1)
        session.board["pending_shot"] = {
            "shooter": slot,
            "target": session.opponent(slot),
            "origin_x": values["origin_x"],
            "origin_y": values["origin_y"],
            "origin_z": values["origin_z"],
            "direction_x": values["direction_x"],
            "direction_y": values["direction_y"],
            "direction_z": values["direction_z"],
            "max_range": values["max_range"],
            "damage": values["damage"],
            "shot_index": values["shot_index"],
        }
        session.substate = "resolve_shot"

    def _damage(self, session: Session, slot: int, values: dict[str, int]) -> None:
        shot = session.board["pending_shot"]
        for name in (
            "origin_x",
            "origin_y",
            "origin_z",
            "direction_x",
            "direction_y",
            "direction_z",
            "max_range",
            "damage",
            "shot_index",
        ):
            expect_value(name, values[name], shot[name])
        expect_value("hit_radius", values["hit_radius"], session.params["hit_radius"])
        expect_commitment(session, slot, "position", values["position_commitment"])
        expect_commitment(session, slot, "health", values["old_health_commitment"])

        commitments = session.participants[slot].commitments
        commitments["health"] = values["new_health_commitment"]
        session.board["pending_shot"] = None
        session.board["last_shot"] = {
            "shooter": shot["shooter"],
            "target": slot,
            "hit": values["hit"],
            "damage_dealt": values["damage_dealt"],
            "is_dead": values["is_dead"],
        }

        if not values["is_dead"]:
            session.substate = "play"
            self._end_turn(session)
            return

        shooter = shot["shooter"]
        kills = session.add_counter(shooter, "kills", 1)
        session.add_counter(slot, "deaths", 1)
        del commitments["position"]
        del commitments["health"]

        if kills >= session.params["kill_limit"]:
            session.substate = "settle"
        else:
            session.substate = "respawn"
            session.board["respawn_slot"] = slot

    def _collect(self, session: Session, slot: int, values: dict[str, int]) -> None:
        params = session.params
        expect_commitment(session, slot, "position", values["position_commitment"])
        expect_value("items_root", values["items_root"], session.board["items_root"])
        expect_value("collection_radius", values["collection_radius"], params["collection_radius"])
        expect_value("max_health", values["max_health"], params["max_health"])
        expect_commitment(session, slot, "health", values["old_health_commitment"])
        consume(session, f"item:{values['item_id']}")

        session.participants[slot].commitments["health"] = values["new_health_commitment"]
        item_type = values["item_type"]
        if item_type == ItemType.AMMO:
            session.add_counter(slot, "ammo", AMMO_PACK_AMOUNT)
        elif item_type == ItemType.WEAPON_UPGRADE:
            session.set_counter(slot, "weapon", min(session.counter(slot, "weapon") + 1, MAX_WEAPON_TIER))

    def _win(self, session: Session, slot: int, values: dict[str, int]) -> None:
        params = session.params
        expect_value("player1_kills", values["player1_kills"], session.counter(0, "kills"))
        expect_value("player2_kills", values["player2_kills"], session.counter(1, "kills"))
        expect_value("kill_limit", values["kill_limit"], params["kill_limit"])
        expect_value("turn_limit", values["turn_limit"], params["turn_limit"])
        expect_value("turns_elapsed", values["turns_elapsed"], session.accumulators["turns"])

        winner = values["winner"]
        reason = "kills" if values["reason"] == WinReason.KILLS else "time"
        finish(session, winner - 1 if winner else None, reason)

    def _end_turn(self, session: Session) -> None:
        turns = session.accumulators["turns"] + 1
        session.accumulators["turns"] = turns
        if turns >= session.params["turn_limit"]:
            session.substate = "settle"
            session.active_slot = None
            return
        session.active_slot = session.opponent(session.active_slot)
        session.set_counter(session.active_slot, "moved", 0)
