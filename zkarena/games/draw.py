"""
Dead Man's Draw Rules
=====================

Push-your-luck card game. On their turn a player draws from their own
hidden deck until they bank the turn's points or draw a second card of a
suit already showing this turn (a bust, losing the turn's points).

The game ends when a player reaches the winning score, busts too often,
or both decks run out (higher banked score wins).

Version: 0.1.0
"""

from zkarena.circuits import CircuitId
from zkarena.circuits.draw import DECK_SIZE
from zkarena.config import Settings
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
from zkarena.randomness import first_actor, seed_to_field


class DrawRules(GameRules):
    kind = GameKind.DRAW
    circuits = (CircuitId.DRAW_CARD,)
    required_commitments = ("deck_seed",)
    setup_fields = ("deck_seed",)

    def default_params(self, settings: Settings) -> dict[str, int]:
        return {
            "win_score": settings.draw.win_score,
            "max_busts": settings.draw.max_busts,
        }

    def validate_params(self, params: dict[str, int]) -> None:
        check_param(params, "win_score", 1)
        check_param(params, "max_busts", 1)

    def start(self, session: Session, seed: bytes) -> None:
        for slot in range(len(session.participants)):
            for name in ("score", "busts", "draws"):
                session.set_counter(slot, name, 0)
        session.board["table_seed"] = seed_to_field(seed)
        self._reset_turn(session)
        session.substate = "turn"
        session.active_slot = first_actor(seed)

    def allowed_circuits(self, session: Session, slot: int) -> set[CircuitId]:
        if session.substate == "turn" and slot == session.active_slot:
            if session.counter(slot, "draws") < DECK_SIZE:
                return {CircuitId.DRAW_CARD}
        return set()

    def apply_transition(
        self, session: Session, slot: int, circuit_id: CircuitId, values: dict[str, int]
    ) -> None:
        draws = session.counter(slot, "draws")
        expect_commitment(session, slot, "deck_seed", values["deck_seed_commitment"])
        expect_value("table_seed", values["table_seed"], session.board["table_seed"])
        expect_value("draw_position", values["draw_position"], draws)
        expect_value("suits_mask", values["suits_mask"], session.accumulators["suits_mask"])

        session.set_counter(slot, "draws", draws + 1)
        session.board["last_card"] = {"slot": slot, "card_id": values["card_id"], "bust": values["is_bust"]}

        if values["is_bust"]:
            busts = session.add_counter(slot, "busts", 1)
            self._reset_turn(session)
            if busts >= session.params["max_busts"]:
                finish(session, session.opponent(slot), "busts")
                return
            self._next_turn(session)
            return

        session.board["turn_cards"].append(values["card_id"])
        session.accumulators["turn_score"] += values["card_value"]
        session.accumulators["suits_mask"] = values["new_suits_mask"]

    def handle_action(self, session: Session, slot: int, action: GameAction) -> None:
        if action.action != "bank":
            super().handle_action(session, slot, action)
            return
        require_substate(session, "turn")
        require_actor(session, slot)

        score = session.add_counter(slot, "score", session.accumulators["turn_score"])
        self._reset_turn(session)
        if score >= session.params["win_score"]:
            finish(session, slot, "score")
            return
        self._next_turn(session)

    @staticmethod
    def _reset_turn(session: Session) -> None:
        session.accumulators["turn_score"] = 0
        session.accumulators["suits_mask"] = 0
        session.board["turn_cards"] = []

    def _next_turn(self, session: Session) -> None:
        exhausted = [session.counter(s, "draws") >= DECK_SIZE for s in (0, 1)]
        if all(exhausted):
            scores = [session.counter(s, "score") for s in (0, 1)]
            if scores[0] == scores[1]:
                finish(session, None, "exhausted")
            else:
                finish(session, 0 if scores[0] > scores[1] else 1, "exhausted")
            return
        nxt = session.opponent(session.active_slot)
        if not exhausted[nxt]:
            session.active_slot = nxt
