"""
Ledger Models
=============

Session records owned by the state machine.

Version: 0.1.0
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from zkarena.errors import NotParticipant, PhaseViolation
from zkarena.randomness import SeedCommitment, SeedState


class Phase(str, Enum):
    """Session lifecycle stage."""

    CREATED = "created"
    COMMIT = "commit"
    REVEAL = "reveal"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    ABANDONED = "abandoned"


TERMINAL_PHASES = frozenset({Phase.COMPLETE, Phase.ABANDONED})

# Legal phase transitions: (from_phase, to_phase)
PHASE_TRANSITIONS: frozenset[tuple[Phase, Phase]] = frozenset(
    {
        (Phase.CREATED, Phase.COMMIT),
        (Phase.COMMIT, Phase.REVEAL),
        (Phase.REVEAL, Phase.IN_PROGRESS),
        (Phase.IN_PROGRESS, Phase.COMPLETE),
        # Expiry from any active phase
        (Phase.CREATED, Phase.ABANDONED),
        (Phase.COMMIT, Phase.ABANDONED),
        (Phase.REVEAL, Phase.ABANDONED),
        (Phase.IN_PROGRESS, Phase.ABANDONED),
    }
)


class GameKind(str, Enum):
    """Supported two-party games."""

    ARENA = "arena"
    DUEL = "duel"
    POKER = "poker"
    DRAW = "draw"


class ParticipantState(BaseModel):
    """One participant slot."""

    participant_id: str
    joined: bool = False
    seed: SeedCommitment = Field(default_factory=SeedCommitment)

    # Hidden-state commitments by field name
    commitments: dict[str, int] = Field(default_factory=dict)

    # Public per-participant counters (kills, life points, score, ...)
    counters: dict[str, int] = Field(default_factory=dict)


class TranscriptEntry(BaseModel):
    """An accepted operation."""

    version: int
    slot: int | None
    kind: str
    name: str
    digest: str | None = None
    at: datetime


class Session(BaseModel):
    """Authoritative record for one game."""

    session_id: str
    game: GameKind
    phase: Phase = Phase.CREATED
    substate: str | None = None

    participants: list[ParticipantState]
    params: dict[str, int] = Field(default_factory=dict)

    # Public session-wide state
    accumulators: dict[str, int] = Field(default_factory=dict)
    board: dict[str, Any] = Field(default_factory=dict)

    # One-time identifiers already used (items, proof digests)
    consumed: set[str] = Field(default_factory=set)

    shared_seed: str | None = None
    verification_keys: dict[str, str] = Field(default_factory=dict)

    active_slot: int | None = None
    winner_slot: int | None = None
    outcome: str | None = None

    version: int = 0
    transcript: list[TranscriptEntry] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    last_activity_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES

    def slot_of(self, participant_id: str) -> int:
        """
        Raises:
            NotParticipant: If the caller holds no slot
        """
        for slot, participant in enumerate(self.participants):
            if participant.participant_id == participant_id:
                return slot
        raise NotParticipant(f"{participant_id} is not in session {self.session_id}")

    @staticmethod
    def opponent(slot: int) -> int:
        return 1 - slot

    def advance(self, target: Phase) -> None:
        """
        Move to another phase along the fixed phase graph.

        Raises:
            PhaseViolation: If the transition is not in the graph
        """
        if (self.phase, target) not in PHASE_TRANSITIONS:
            raise PhaseViolation(f"illegal phase transition {self.phase.value} -> {target.value}")
        self.phase = target

    def counter(self, slot: int, name: str) -> int:
        return self.participants[slot].counters.get(name, 0)

    def set_counter(self, slot: int, name: str, value: int) -> None:
        self.participants[slot].counters[name] = value

    def add_counter(self, slot: int, name: str, delta: int) -> int:
        value = self.counter(slot, name) + delta
        self.participants[slot].counters[name] = value
        return value

    def seeds_in(self, state: SeedState) -> bool:
        return all(p.seed.state == state for p in self.participants)
