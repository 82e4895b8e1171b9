"""
Game Rules Base
===============

Per-game rules plugged into the session state machine.

A rules object never verifies proofs itself. The state machine hands it
the decoded public signals of a verified proof and the rules check them
against the session record, then apply the effects.

Version: 0.1.0
"""

from abc import ABC, abstractmethod
from typing import ClassVar

from pydantic import BaseModel

from zkarena.circuits import CircuitId
from zkarena.config import Settings
from zkarena.errors import CommitmentMismatch, PhaseViolation, ResourceAlreadyConsumed
from zkarena.ledger.models import GameKind, Phase, Session


class GameAction(BaseModel):
    """A proof-free public action (betting, banking, attack declaration)."""

    action: str
    amount: int | None = None
    attacker_zone: int | None = None
    target_zone: int | None = None


# ============================================================================
# Helpers
# ============================================================================


def expect_commitment(session: Session, slot: int, field: str, value: int) -> None:
    """
    Raises:
        CommitmentMismatch: If the stored commitment differs
    """
    stored = session.participants[slot].commitments.get(field)
    if stored is None or stored != value:
        raise CommitmentMismatch(f"{field} commitment does not match slot {slot}")


def expect_value(name: str, actual: int, expected: int) -> None:
    """
    Public parameter check.

    Raises:
        PhaseViolation: If a public input differs from the session record
    """
    if actual != expected:
        raise PhaseViolation(f"{name} is {actual}, expected {expected}")


def consume(session: Session, identifier: str) -> None:
    """
    Raises:
        ResourceAlreadyConsumed: If the identifier was used before
    """
    if identifier in session.consumed:
        raise ResourceAlreadyConsumed(f"{identifier} already consumed")
    session.consumed.add(identifier)


def finish(session: Session, winner_slot: int | None, outcome: str) -> None:
    """Complete the session and settle the escrowed stakes."""
    session.advance(Phase.COMPLETE)
    session.winner_slot = winner_slot
    session.outcome = outcome
    session.active_slot = None
    settle_escrow(session, winner_slot)


def settle_escrow(session: Session, winner_slot: int | None) -> None:
    """Winner takes the escrow; without a winner each stake is refunded."""
    escrow = session.accumulators.get("escrow", 0)
    for slot in range(len(session.participants)):
        if winner_slot is None:
            payout = session.counter(slot, "contributed")
        else:
            payout = escrow if slot == winner_slot else 0
        session.set_counter(slot, "payout", payout)
    session.accumulators["escrow"] = 0


def check_param(params: dict[str, int], name: str, lo: int, hi: int | None = None) -> None:
    """
    Raises:
        ValueError: If the parameter is outside [lo, hi]
    """
    value = params[name]
    if value < lo or (hi is not None and value > hi):
        bound = f"at least {lo}" if hi is None else f"between {lo} and {hi}"
        raise ValueError(f"{name} must be {bound}, got {value}")


def require_actor(session: Session, slot: int) -> None:
    """
    Raises:
        PhaseViolation: If it is not this slot's turn
    """
    if session.active_slot != slot:
        raise PhaseViolation(f"slot {slot} acted out of turn")


def require_substate(session: Session, *substates: str) -> None:
    """
    Raises:
        PhaseViolation: If the game is in another sub-phase
    """
    if session.substate not in substates:
        raise PhaseViolation(f"not allowed in {session.substate}")


# ============================================================================
# Rules
# ============================================================================


class GameRules(ABC):
    """Rules for one game kind."""

    kind: ClassVar[GameKind]

    # Every circuit a session of this game may verify
    circuits: ClassVar[tuple[CircuitId, ...]]

    # Circuits proven during the COMMIT phase
    setup_circuits: ClassVar[tuple[CircuitId, ...]] = ()

    # Plain commitments supplied alongside the seed hash
    required_commitments: ClassVar[tuple[str, ...]] = ()

    # Commitments that must exist before the session leaves COMMIT
    setup_fields: ClassVar[tuple[str, ...]] = ()

    @abstractmethod
    def default_params(self, settings: Settings) -> dict[str, int]:
        """Game parameters from configuration."""

    def validate_params(self, params: dict[str, int]) -> None:
        """
        Check merged parameters before a session is stored.

        Raises:
            ValueError: A value no circuit or rule of this game accepts
        """

    def setup_complete(self, session: Session, slot: int) -> bool:
        commitments = session.participants[slot].commitments
        return all(field in commitments for field in self.setup_fields)

    def apply_setup(self, session: Session, slot: int, circuit_id: CircuitId, values: dict[str, int]) -> None:
        """Apply a COMMIT-phase proof."""
        raise PhaseViolation(f"{circuit_id.value} is not a setup circuit")

    @abstractmethod
    def start(self, session: Session, seed: bytes) -> None:
        """Initialize public game state from the shared seed."""

    @abstractmethod
    def allowed_circuits(self, session: Session, slot: int) -> set[CircuitId]:
        """Circuits this slot may submit right now."""

    @abstractmethod
    def apply_transition(
        self, session: Session, slot: int, circuit_id: CircuitId, values: dict[str, int]
    ) -> None:
        """Check a verified proof's signals against the session and apply them."""

    def apply_action(self, session: Session, slot: int, action: GameAction) -> None:
        """Apply a proof-free action. Surrender is accepted in every game."""
        if action.action == "surrender":
            finish(session, session.opponent(slot), "surrender")
            return
        self.handle_action(session, slot, action)

    def handle_action(self, session: Session, slot: int, action: GameAction) -> None:
        raise PhaseViolation(f"unknown action {action.action}")

    def awaiting(self, session: Session) -> set[int]:
        """Slots the game is waiting on."""
        if session.active_slot is None:
            return set()
        return {session.active_slot}
