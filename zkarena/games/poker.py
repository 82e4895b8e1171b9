"""
Poker Rules
===========

Heads-up five-card poker with one betting round and a proven showdown.

Each player commits a private hand seed with their seed hash. Once the
shared seed is known the ledger fixes one deck seed from the table seed
and both commitments; each seat is dealt from its own alternate positions
of that deck, picked by its hidden hand seed. Hands never overlap and
neither player can steer their own deal.

Sub-phases:
    betting   fold / check / call / bet / raise / all_in
    showdown  each remaining player proves their hand ranking

Version: 0.1.0
"""

from zkarena.circuits import CircuitId
from zkarena.circuits.poker import compare_hands, shared_deck_seed
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
from zkarena.randomness import first_actor, seed_to_field

BETTING_ACTIONS = ("fold", "check", "call", "bet", "raise", "all_in")

# Actions after which equal bets close the round
CLOSING_ACTIONS = ("check", "call", "all_in")


class PokerRules(GameRules):
    kind = GameKind.POKER
    circuits = (CircuitId.POKER_HAND_RANK,)
    required_commitments = ("hand_seed",)
    setup_fields = ("hand_seed",)

    def default_params(self, settings: Settings) -> dict[str, int]:
        return {
            "starting_stack": settings.poker.starting_stack,
            "ante": settings.poker.ante,
        }

    def validate_params(self, params: dict[str, int]) -> None:
        check_param(params, "starting_stack", 1)
        if params["ante"] >= params["starting_stack"]:
            raise ValueError("ante must be below the starting stack")

    def start(self, session: Session, seed: bytes) -> None:
        ante = session.params["ante"]
        for slot in range(len(session.participants)):
            session.set_counter(slot, "stack", session.params["starting_stack"] - ante)
            session.set_counter(slot, "bet", 0)

        table_seed = seed_to_field(seed)
        commitments = [p.commitments["hand_seed"] for p in session.participants]
        session.board["table_seed"] = table_seed
        session.board["deck_seed"] = shared_deck_seed(table_seed, commitments)
        session.board["last_action"] = None
        session.board["hands"] = [None for _ in session.participants]
        session.accumulators["pot"] = ante * len(session.participants)
        session.accumulators["last_raise"] = 0
        session.accumulators["actions"] = 0
        session.substate = "betting"
        session.active_slot = first_actor(seed)

    def allowed_circuits(self, session: Session, slot: int) -> set[CircuitId]:
        if session.substate == "showdown" and session.board["hands"][slot] is None:
            return {CircuitId.POKER_HAND_RANK}
        return set()

    def awaiting(self, session: Session) -> set[int]:
        if session.substate == "showdown":
            return {s for s, hand in enumerate(session.board["hands"]) if hand is None}
        return super().awaiting(session)

    # ------------------------------------------------------------------------
    # Betting
    # ------------------------------------------------------------------------

    def handle_action(self, session: Session, slot: int, action: GameAction) -> None:
        if action.action not in BETTING_ACTIONS:
            super().handle_action(session, slot, action)
            return
        require_substate(session, "betting")
        require_actor(session, slot)

        opponent = session.opponent(slot)
        my_bet = session.counter(slot, "bet")
        their_bet = session.counter(opponent, "bet")
        stack = session.counter(slot, "stack")

        if action.action == "fold":
            self._award(session, opponent)
            finish(session, opponent, "fold")
            return

        if action.action == "check":
            if my_bet != their_bet:
                raise PhaseViolation("cannot check facing a bet")
        elif action.action == "call":
            if their_bet <= my_bet:
                raise PhaseViolation("nothing to call")
            self._put(session, slot, min(their_bet - my_bet, stack))
        elif action.action == "bet":
            if my_bet or their_bet:
                raise PhaseViolation("bet already open, raise instead")
            amount = self._amount(action)
            if amount > stack:
                raise PhaseViolation("bet exceeds stack")
            self._put(session, slot, amount)
            session.accumulators["last_raise"] = amount
        elif action.action == "raise":
            if their_bet == 0:
                raise PhaseViolation("nothing to raise")
            total = self._amount(action)
            minimum = their_bet + max(session.accumulators["last_raise"], their_bet)
            if total < minimum:
                raise PhaseViolation(f"raise to {total} below minimum {minimum}")
            if total - my_bet > stack:
                raise PhaseViolation("raise exceeds stack")
            self._put(session, slot, total - my_bet)
            session.accumulators["last_raise"] = total - their_bet
        else:
            if stack == 0:
                raise PhaseViolation("already all in")
            self._put(session, slot, stack)
            total = my_bet + stack
            if total > their_bet:
                session.accumulators["last_raise"] = max(session.accumulators["last_raise"], total - their_bet)

        session.accumulators["actions"] += 1
        session.board["last_action"] = action.action

        if self._round_complete(session):
            session.substate = "showdown"
            session.active_slot = None
        else:
            session.active_slot = opponent

    @staticmethod
    def _amount(action: GameAction) -> int:
        if action.amount is None or action.amount <= 0:
            raise PhaseViolation(f"{action.action} needs a positive amount")
        return action.amount

    @staticmethod
    def _put(session: Session, slot: int, amount: int) -> None:
        session.add_counter(slot, "stack", -amount)
        session.add_counter(slot, "bet", amount)
        session.accumulators["pot"] += amount

    @staticmethod
    def _round_complete(session: Session) -> bool:
        if session.accumulators["actions"] < 2:
            return False
        bets_equal = session.counter(0, "bet") == session.counter(1, "bet")
        return bets_equal and session.board["last_action"] in CLOSING_ACTIONS

    @staticmethod
    def _award(session: Session, slot: int) -> None:
        session.add_counter(slot, "stack", session.accumulators["pot"])
        session.accumulators["pot"] = 0

    # ------------------------------------------------------------------------
    # Showdown
    # ------------------------------------------------------------------------

    def apply_transition(
        self, session: Session, slot: int, circuit_id: CircuitId, values: dict[str, int]
    ) -> None:
        expect_commitment(session, slot, "hand_seed", values["hand_seed_commitment"])
        expect_value("deck_seed", values["deck_seed"], session.board["deck_seed"])
        expect_value("seat", values["seat"], slot)

        session.board["hands"][slot] = {
            "cards": [values[f"card_{i}"] for i in range(5)],
            "ranking": values["ranking"],
            "tiebreak": values["tiebreak"],
        }
        hands = session.board["hands"]
        if any(hand is None for hand in hands):
            return

        result = compare_hands(
            (hands[0]["ranking"], hands[0]["tiebreak"]),
            (hands[1]["ranking"], hands[1]["tiebreak"]),
        )
        if result == 0:
            pot = session.accumulators["pot"]
            session.add_counter(0, "stack", pot // 2)
            session.add_counter(1, "stack", pot // 2)
            # Odd chip to the player who acted first
            session.add_counter(first_actor(bytes.fromhex(session.shared_seed)), "stack", pot % 2)
            session.accumulators["pot"] = 0
            finish(session, None, "split")
            return

        winner = 0 if result > 0 else 1
        self._award(session, winner)
        finish(session, winner, "showdown")
