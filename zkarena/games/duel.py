"""
Duel Rules
==========

Two-player monster card duel with hidden decks and hands.

Each player commits a deck (Merkle root over positions) and an empty hand
during COMMIT. Draw positions come from a per-player shuffle of the shared
seed, so neither side chooses which committed card comes next.

Sub-phases:
    opening  both players draw their opening hands
    draw     the active player draws; an empty deck loses the duel
    main     summon (once per turn), declare attacks, end the turn
    battle   a declared attack awaits its proof

Version: 0.1.0
"""

from typing import Any

from zkarena.circuits import CircuitId
from zkarena.circuits.duel import CARD_CATALOG, DECK_SIZE, HAND_SLOTS, MAX_LP, MonsterPosition
from zkarena.config import Settings
from zkarena.errors import PhaseViolation
from zkarena.games.base import (
    GameAction,
    GameRules,
    check_param,
    expect_commitment,
    expect_value,
    finish,
    require_actor,
    require_substate,
)
from zkarena.ledger.models import GameKind, Session
from zkarena.randomness import first_actor, shuffle


def draw_order(seed: bytes, slot: int) -> list[int]:
    """Deck positions in the order a player draws them."""
    return shuffle(seed, DECK_SIZE, f"duel-deck-{slot}")


class DuelRules(GameRules):
    kind = GameKind.DUEL
    circuits = (
        CircuitId.DUEL_DECK,
        CircuitId.DUEL_DRAW,
        CircuitId.DUEL_SUMMON,
        CircuitId.DUEL_BATTLE,
        CircuitId.DUEL_DIRECT_ATTACK,
    )
    setup_circuits = (CircuitId.DUEL_DECK,)
    setup_fields = ("deck", "hand")

    def default_params(self, settings: Settings) -> dict[str, int]:
        duel = settings.duel
        return {
            "initial_lp": duel.initial_lp,
            "initial_hand_size": duel.initial_hand_size,
            "max_monster_zones": duel.max_monster_zones,
            "max_copies": duel.max_copies,
        }

    def validate_params(self, params: dict[str, int]) -> None:
        check_param(params, "initial_lp", 1, MAX_LP)
        check_param(params, "initial_hand_size", 1, min(HAND_SLOTS, DECK_SIZE))
        check_param(params, "max_monster_zones", 1)
        check_param(params, "max_copies", 1, DECK_SIZE)

    def apply_setup(self, session: Session, slot: int, circuit_id: CircuitId, values: dict[str, int]) -> None:
        if circuit_id != CircuitId.DUEL_DECK:
            super().apply_setup(session, slot, circuit_id, values)
        expect_value("max_copies", values["max_copies"], session.params["max_copies"])
        commitments = session.participants[slot].commitments
        commitments["deck"] = values["deck_root"]
        commitments["hand"] = values["hand_commitment"]

    def start(self, session: Session, seed: bytes) -> None:
        session.board["draw_orders"] = [draw_order(seed, slot) for slot in range(len(session.participants))]
        session.board["fields"] = [[] for _ in session.participants]
        session.board["pending_attack"] = None

        for slot in range(len(session.participants)):
            session.set_counter(slot, "lp", session.params["initial_lp"])
            session.set_counter(slot, "draws", 0)
            session.set_counter(slot, "hand_size", 0)
            session.set_counter(slot, "summoned", 0)

        session.accumulators["turn"] = 1
        session.accumulators["attacks"] = 0
        session.substate = "opening"
        session.active_slot = first_actor(seed)

    def allowed_circuits(self, session: Session, slot: int) -> set[CircuitId]:
        substate = session.substate
        if substate == "opening":
            if session.counter(slot, "draws") < session.params["initial_hand_size"]:
                return {CircuitId.DUEL_DRAW}
            return set()
        if slot != session.active_slot and substate != "battle":
            return set()
        if substate == "draw":
            return {CircuitId.DUEL_DRAW}
        if substate == "main":
            zones = len(session.board["fields"][slot])
            if session.counter(slot, "summoned") == 0 and zones < session.params["max_monster_zones"]:
                return {CircuitId.DUEL_SUMMON}
            return set()
        if substate == "battle":
            attack = session.board["pending_attack"]
            if attack["target_zone"] is None:
                return {CircuitId.DUEL_DIRECT_ATTACK} if slot == attack["attacker"] else set()
            return {CircuitId.DUEL_BATTLE} if slot == attack["defender"] else set()
        return set()

    def apply_transition(
        self, session: Session, slot: int, circuit_id: CircuitId, values: dict[str, int]
    ) -> None:
        handler = {
            CircuitId.DUEL_DRAW: self._draw,
            CircuitId.DUEL_SUMMON: self._summon,
            CircuitId.DUEL_BATTLE: self._battle,
            CircuitId.DUEL_DIRECT_ATTACK: self._direct_attack,
        }.get(circuit_id)
        if handler is None:
            raise PhaseViolation(f"{circuit_id.value} not allowed in play")
        handler(session, slot, values)

    def handle_action(self, session: Session, slot: int, action: GameAction) -> None:
        if action.action == "declare_attack":
            self._declare_attack(session, slot, action)
        elif action.action == "end_turn":
            require_substate(session, "main")
            require_actor(session, slot)
            self._end_turn(session)
        else:
            super().handle_action(session, slot, action)

    def awaiting(self, session: Session) -> set[int]:
        if session.substate == "opening":
            target = session.params["initial_hand_size"]
            return {s for s in range(len(session.participants)) if session.counter(s, "draws") < target}
        if session.substate == "battle":
            attack = session.board["pending_attack"]
            if attack["target_zone"] is None:
                return {attack["attacker"]}
            return {attack["defender"]}
        return super().awaiting(session)

    # ------------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------------

    def _draw(self, session: Session, slot: int, values: dict[str, int]) -> None:
        draws = session.counter(slot, "draws")
        expect_commitment(session, slot, "deck", values["deck_root"])
        expect_value("draw_position", values["draw_position"], session.board["draw_orders"][slot][draws])
        expect_commitment(session, slot, "hand", values["old_hand_commitment"])

        session.participants[slot].commitments["hand"] = values["new_hand_commitment"]
        session.set_counter(slot, "draws", draws + 1)
        session.set_counter(slot, "hand_size", values["hand_size"])

        if session.substate == "opening":
            target = session.params["initial_hand_size"]
            if all(session.counter(s, "draws") >= target for s in range(len(session.participants))):
                session.substate = "draw"
        else:
            session.substate = "main"

    def _summon(self, session: Session, slot: int, values: dict[str, int]) -> None:
        expect_commitment(session, slot, "hand", values["old_hand_commitment"])
        position = values["position"]

        session.participants[slot].commitments["hand"] = values["new_hand_commitment"]
        session.add_counter(slot, "hand_size", -1)
        session.set_counter(slot, "summoned", 1)

        field = session.board["fields"][slot]
        used = {m["zone"] for m in field}
        zone = min(z for z in range(session.params["max_monster_zones"]) if z not in used)
        field.append(
            {
                "zone": zone,
                "commitment": values["monster_commitment"],
                "position": position,
                "card_id": values["card_id"],
                "attack": values["attack"],
                "defense": values["defense"],
                "attacked": False,
            }
        )

    def _declare_attack(self, session: Session, slot: int, action: GameAction) -> None:
        require_substate(session, "main")
        require_actor(session, slot)
        if session.accumulators["turn"] == 1:
            raise PhaseViolation("no attacks on the first turn")

        attacker = self._monster(session, slot, action.attacker_zone)
        if attacker["position"] != MonsterPosition.ATTACK or attacker["attacked"]:
            raise PhaseViolation("monster cannot attack")

        defender = session.opponent(slot)
        if action.target_zone is None:
            if session.board["fields"][defender]:
                raise PhaseViolation("direct attack with monsters on the field")
        else:
            self._monster(session, defender, action.target_zone)

        session.board["pending_attack"] = {
            "attacker": slot,
            "defender": defender,
            "attacker_zone": action.attacker_zone,
            "target_zone": action.target_zone,
            "attack_index": session.accumulators["attacks"],
        }
        session.substate = "battle"

    def _battle(self, session: Session, slot: int, values: dict[str, int]) -> None:
        pending = session.board["pending_attack"]
        attacker_slot = pending["attacker"]
        attacker = self._monster(session, attacker_slot, pending["attacker_zone"])
        target = self._monster(session, slot, pending["target_zone"])

        expect_value("attacker_attack", values["attacker_attack"], attacker["attack"])
        expect_value("attacker_lp", values["attacker_lp"], session.counter(attacker_slot, "lp"))
        expect_value("defender_lp", values["defender_lp"], session.counter(slot, "lp"))
        expect_value("defender_commitment", values["defender_commitment"], target["commitment"])
        expect_value("defender_position", values["defender_position"], target["position"])
        expect_value("attack_index", values["attack_index"], pending["attack_index"])

        session.set_counter(attacker_slot, "lp", values["new_attacker_lp"])
        session.set_counter(slot, "lp", values["new_defender_lp"])
        attacker["attacked"] = True

        if target["position"] == MonsterPosition.SET:
            card = CARD_CATALOG[values["defender_card_id"] - 1]
            target.update(
                position=int(MonsterPosition.DEFENSE),
                card_id=card.card_id,
                attack=card.attack,
                defense=card.defense,
            )
        if values["defender_destroyed"]:
            self._remove(session, slot, target["zone"])
        if values["attacker_destroyed"]:
            self._remove(session, attacker_slot, attacker["zone"])

        self._after_attack(session)
        if values["new_attacker_lp"] == 0:
            finish(session, slot, "life_points")
        elif values["new_defender_lp"] == 0:
            finish(session, attacker_slot, "life_points")

    def _direct_attack(self, session: Session, slot: int, values: dict[str, int]) -> None:
        pending = session.board["pending_attack"]
        defender = pending["defender"]
        attacker = self._monster(session, slot, pending["attacker_zone"])

        expect_value("attacker_attack", values["attacker_attack"], attacker["attack"])
        expect_value("defender_lp", values["defender_lp"], session.counter(defender, "lp"))
        expect_value("defender_monsters", values["defender_monsters"], len(session.board["fields"][defender]))
        expect_value("attack_index", values["attack_index"], pending["attack_index"])

        session.set_counter(defender, "lp", values["new_defender_lp"])
        attacker["attacked"] = True
        self._after_attack(session)
        if values["is_defeated"]:
            finish(session, slot, "life_points")

    # ------------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------------

    @staticmethod
    def _monster(session: Session, slot: int, zone: int | None) -> dict[str, Any]:
        for monster in session.board["fields"][slot]:
            if monster["zone"] == zone:
                return monster
        raise PhaseViolation(f"no monster in zone {zone} for slot {slot}")

    @staticmethod
    def _remove(session: Session, slot: int, zone: int) -> None:
        session.board["fields"][slot] = [m for m in session.board["fields"][slot] if m["zone"] != zone]

    @staticmethod
    def _after_attack(session: Session) -> None:
        session.board["pending_attack"] = None
        session.accumulators["attacks"] += 1
        session.substate = "main"

    def _end_turn(self, session: Session) -> None:
        slot = session.active_slot
        session.set_counter(slot, "summoned", 0)
        for monster in session.board["fields"][slot]:
            monster["attacked"] = False

        nxt = session.opponent(slot)
        session.active_slot = nxt
        session.accumulators["turn"] += 1
        if session.counter(nxt, "draws") >= DECK_SIZE:
            finish(session, slot, "deck_out")
            return
        session.substate = "draw"
