"""
Session Routes
==============

API endpoints for the session lifecycle and proof-gated transitions.

Callers identify themselves with the X-Participant-Id header. Every
rejected submission answers 409 with the same public message; the
specific reason is only logged.
"""

from collections.abc import Awaitable
from typing import Any

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from pydantic import BaseModel, Field

from zkarena.errors import (
    CircuitArtifactMissing,
    SessionNotFound,
    TransitionRejected,
)
from zkarena.games import GameAction
from zkarena.ledger import GameKind, Session, TranscriptEntry
from zkarena.ledger.machine import SessionStateMachine, get_state_machine
from zkarena.logging import get_logger
from zkarena.models import PaginatedResponse, Pagination
from zkarena.proofs import ZKProof


logger = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class CreateSessionRequest(BaseModel):
    """Request to open a session between two participants."""

    game: GameKind
    participants: list[str] = Field(..., min_length=2, max_length=2)
    params: dict[str, int] | None = Field(default=None, description="Overrides for configured defaults")
    stake: int | None = Field(default=None, ge=0)

    model_config = {
        "json_schema_extra": {
            "examples": [{"game": "arena", "participants": ["alice", "bob"], "params": {"kill_limit": 3}}]
        }
    }


class CommitSeedRequest(BaseModel):
    """Seed hash plus any plain commitments the game requires."""

    seed_hash: str = Field(..., description="Hex SHA-256 of the participant's seed")
    commitments: dict[str, str] = Field(default_factory=dict)


class RevealSeedRequest(BaseModel):
    """The seed behind a committed hash."""

    seed: str = Field(..., description="Seed bytes as hex")


class TransitionRequest(BaseModel):
    """A proven transition."""

    circuit_id: str
    proof: ZKProof
    public_signals: list[str]


class SessionView(Session):
    """Session record plus the slots it is waiting on."""

    awaiting: list[int] = Field(default_factory=list)


class SessionSummary(BaseModel):
    """Session listing entry."""

    session_id: str
    game: GameKind
    phase: str
    substate: str | None
    version: int


# ============================================================================
# Helpers
# ============================================================================


async def _run(operation: Awaitable[Session], machine: SessionStateMachine) -> SessionView:
    """Await a ledger operation and map ledger errors to HTTP errors."""
    try:
        session = await operation
    except SessionNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except TransitionRejected as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=TransitionRejected.public_message) from e
    except CircuitArtifactMissing as e:
        logger.error("circuit_files_not_found", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Circuit keys not available. Run key setup first.",
        ) from e
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    return SessionView(**session.model_dump(), awaiting=sorted(machine.awaiting(session)))


ParticipantHeader = Header(..., alias="X-Participant-Id", description="Caller's participant id")


# ============================================================================
# Endpoints
# ============================================================================


@router.post("", response_model=SessionView, status_code=status.HTTP_201_CREATED)
async def create_session(
    request: CreateSessionRequest,
    machine: SessionStateMachine = Depends(get_state_machine),
) -> SessionView:
    """Create a session; both participants must then join."""
    return await _run(
        machine.create_session(request.game, request.participants, request.params, request.stake),
        machine,
    )


@router.get("", response_model=PaginatedResponse[SessionSummary])
async def list_sessions(
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
    machine: SessionStateMachine = Depends(get_state_machine),
) -> PaginatedResponse[SessionSummary]:
    """List sessions in creation order."""
    pagination = Pagination(page=page, page_size=page_size)
    session_ids = await machine.store.session_ids()
    window = session_ids[pagination.offset : pagination.offset + pagination.limit]

    items = []
    for session_id in window:
        session = await machine.get_session(session_id)
        items.append(
            SessionSummary(
                session_id=session.session_id,
                game=session.game,
                phase=session.phase.value,
                substate=session.substate,
                version=session.version,
            )
        )

    total = len(session_ids)
    return PaginatedResponse[SessionSummary](
        items=items,
        total=total,
        page=pagination.page,
        page_size=pagination.page_size,
        pages=max(1, -(-total // pagination.page_size)),
    )


@router.get("/{session_id}", response_model=SessionView)
async def get_session(
    session_id: str,
    machine: SessionStateMachine = Depends(get_state_machine),
) -> SessionView:
    """Current session record."""
    return await _run(machine.get_session(session_id), machine)


@router.get("/{session_id}/transcript", response_model=list[TranscriptEntry])
async def get_transcript(
    session_id: str,
    machine: SessionStateMachine = Depends(get_state_machine),
) -> list[TranscriptEntry]:
    """Accepted operations in order."""
    view = await _run(machine.get_session(session_id), machine)
    return view.transcript


@router.post("/{session_id}/join", response_model=SessionView)
async def join_session(
    session_id: str,
    participant_id: str = ParticipantHeader,
    machine: SessionStateMachine = Depends(get_state_machine),
) -> SessionView:
    """Join a session and escrow the stake."""
    return await _run(machine.join(session_id, participant_id), machine)


@router.post("/{session_id}/seed/commit", response_model=SessionView)
async def commit_seed(
    session_id: str,
    request: CommitSeedRequest,
    participant_id: str = ParticipantHeader,
    machine: SessionStateMachine = Depends(get_state_machine),
) -> SessionView:
    """Commit a seed hash and the game's plain commitments."""
    return await _run(
        machine.commit_seed(session_id, participant_id, request.seed_hash, request.commitments),
        machine,
    )


@router.post("/{session_id}/seed/reveal", response_model=SessionView)
async def reveal_seed(
    session_id: str,
    request: RevealSeedRequest,
    participant_id: str = ParticipantHeader,
    machine: SessionStateMachine = Depends(get_state_machine),
) -> SessionView:
    """Reveal a committed seed."""
    try:
        seed = bytes.fromhex(request.seed)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Seed must be hex") from e
    return await _run(machine.reveal_seed(session_id, participant_id, seed), machine)


@router.post("/{session_id}/transitions", response_model=SessionView)
async def submit_transition(
    session_id: str,
    request: TransitionRequest,
    participant_id: str = ParticipantHeader,
    machine: SessionStateMachine = Depends(get_state_machine),
) -> SessionView:
    """Submit a proven transition."""
    return await _run(
        machine.submit_transition(
            session_id, participant_id, request.circuit_id, request.proof, request.public_signals
        ),
        machine,
    )


@router.post("/{session_id}/actions", response_model=SessionView)
async def submit_action(
    session_id: str,
    action: GameAction,
    participant_id: str = ParticipantHeader,
    machine: SessionStateMachine = Depends(get_state_machine),
) -> SessionView:
    """Submit a proof-free action such as a bet or end of turn."""
    return await _run(machine.submit_action(session_id, participant_id, action), machine)


@router.get("/{session_id}/awaiting", response_model=dict[str, Any])
async def get_awaiting(
    session_id: str,
    machine: SessionStateMachine = Depends(get_state_machine),
) -> dict[str, Any]:
    """Who the session is waiting on."""
    view = await _run(machine.get_session(session_id), machine)
    return {
        "session_id": session_id,
        "phase": view.phase.value,
        "substate": view.substate,
        "awaiting": [view.participants[s].participant_id for s in view.awaiting],
    }
