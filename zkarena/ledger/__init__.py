"""
Session Ledger
==============

Session records and their store. The state machine that mutates them
lives in zkarena.ledger.machine.

Version: 0.1.0
"""

from zkarena.ledger.models import (
    PHASE_TRANSITIONS,
    TERMINAL_PHASES,
    GameKind,
    ParticipantState,
    Phase,
    Session,
    TranscriptEntry,
)
from zkarena.ledger.store import SessionStore


__all__ = [
    "PHASE_TRANSITIONS",
    "TERMINAL_PHASES",
    "GameKind",
    "ParticipantState",
    "Phase",
    "Session",
    "SessionStore",
    "TranscriptEntry",
]
