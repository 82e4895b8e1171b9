"""
Session State Machine
=====================

The authoritative ledger for two-party game sessions.

Every operation runs under the session's lock against a private copy of
the stored record. The copy replaces the record only when the operation
is accepted, so a rejected submission leaves no trace in the session.

Checks run in a fixed order:
    1. caller holds a slot
    2. signals are well formed and not a replayed statement
    3. phase, sub-phase and turn allow the circuit
    4. proof verifies under the key pinned at session creation
    5. public signals match the session record (game rules)

Version: 0.1.0
"""

import hashlib
import uuid
from collections.abc import Awaitable, Callable, Mapping, Sequence
from datetime import UTC, datetime, timedelta
from functools import lru_cache

from zkarena.circuits import CircuitId, get_circuit
from zkarena.config import Settings, get_settings
from zkarena.crypto.field import parse_field
from zkarena.errors import (
    CommitmentMismatch,
    PhaseViolation,
    ProofVerificationFailed,
    TransitionRejected,
)
from zkarena.games import GameAction, GameRules, get_rules
from zkarena.games.base import settle_escrow
from zkarena.ledger.models import (
    GameKind,
    ParticipantState,
    Phase,
    Session,
    TranscriptEntry,
)
from zkarena.ledger.store import SessionStore
from zkarena.logging import get_logger
from zkarena.proofs import GameVerifier, ZKProof, get_toolkit
from zkarena.randomness import SeedState, shared_seed


logger = get_logger(__name__)

Clock = Callable[[], datetime]

# Applies an operation to a session copy; returns (kind, name, digest)
Operation = Callable[[Session, int], Awaitable[tuple[str, str, str | None]]]


def proof_digest(circuit_id: CircuitId, signals: Sequence[int]) -> str:
    """Identifier of a proven statement, independent of the proof bytes."""
    payload = ",".join([circuit_id.value, *(str(s) for s in signals)])
    return hashlib.sha256(payload.encode()).hexdigest()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SessionStateMachine:
    """
    Session lifecycle, proof-gated transitions and expiry.

    Usage:
        machine = SessionStateMachine(toolkit.verifier)
        session = await machine.create_session(GameKind.ARENA, ["alice", "bob"])
        await machine.join(session.session_id, "alice")
    """

    def __init__(
        self,
        verifier: GameVerifier,
        store: SessionStore | None = None,
        settings: Settings | None = None,
        clock: Clock | None = None,
    ):
        self.verifier = verifier
        self.store = store or SessionStore()
        self.settings = settings or get_settings()
        self._clock = clock or _utcnow
        self.inactivity_timeout = timedelta(seconds=self.settings.ledger.inactivity_timeout_seconds)
        self.retention = timedelta(seconds=self.settings.ledger.retention_seconds)

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def create_session(
        self,
        game: GameKind | str,
        participant_ids: Sequence[str],
        params: Mapping[str, int] | None = None,
        stake: int | None = None,
        session_id: str | None = None,
    ) -> Session:
        """
        Create a session in CREATED.

        Parameters default from configuration. The fingerprint of every
        circuit the game uses is pinned for the life of the session.

        Raises:
            ValueError: Bad participants, parameters or stake
            CircuitArtifactMissing: A circuit the game needs has no key
        """
        game = GameKind(game)
        rules = get_rules(game)

        if len(participant_ids) != 2 or len(set(participant_ids)) != 2 or not all(participant_ids):
            raise ValueError("A session needs two distinct participants")

        merged = rules.default_params(self.settings)
        unknown = set(params or {}) - set(merged)
        if unknown:
            raise ValueError(f"Unknown parameters for {game.value}: {', '.join(sorted(unknown))}")
        for name, value in (params or {}).items():
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ValueError(f"Parameter {name} must be a non-negative integer")
            merged[name] = value
        rules.validate_params(merged)

        stake = self.settings.ledger.default_stake if stake is None else stake
        if stake < 0:
            raise ValueError("Stake must be non-negative")
        merged["stake"] = stake

        fingerprints = {c.value: self.verifier.registry.fingerprint(c) for c in rules.circuits}

        session_id = session_id or uuid.uuid4().hex
        if await self.store.exists(session_id):
            raise ValueError(f"Session already exists: {session_id}")
        stats = await self.store.health_check()
        if stats["active"] >= self.settings.ledger.max_sessions:
            raise ValueError("Session limit reached")

        now = self._clock()
        session = Session(
            session_id=session_id,
            game=game,
            participants=[ParticipantState(participant_id=p) for p in participant_ids],
            params=merged,
            accumulators={"escrow": 0},
            verification_keys=fingerprints,
            created_at=now,
            last_activity_at=now,
        )
        session.transcript.append(
            TranscriptEntry(version=0, slot=None, kind="lifecycle", name="created", at=now)
        )
        await self.store.put(session)

        logger.info(
            "session_created",
            session_id=session_id,
            game=game.value,
            participants=list(participant_ids),
            stake=stake,
        )
        return session

    async def join(self, session_id: str, participant_id: str) -> Session:
        """
        Mark a participant as joined and escrow their stake.

        Raises:
            SessionNotFound, NotParticipant, PhaseViolation
        """

        async def apply(session: Session, slot: int) -> tuple[str, str, str | None]:
            if session.phase != Phase.CREATED:
                raise PhaseViolation("join outside CREATED")
            participant = session.participants[slot]
            if participant.joined:
                raise PhaseViolation("already joined")

            participant.joined = True
            stake = session.params["stake"]
            session.set_counter(slot, "contributed", stake)
            session.accumulators["escrow"] += stake

            if all(p.joined for p in session.participants):
                session.advance(Phase.COMMIT)
            return "lifecycle", "joined", None

        return await self._mutate(session_id, participant_id, "join", apply)

    async def commit_seed(
        self,
        session_id: str,
        participant_id: str,
        seed_hash: str,
        commitments: Mapping[str, int | str] | None = None,
    ) -> Session:
        """
        Commit a seed hash plus any plain commitments the game requires.

        Raises:
            SessionNotFound, NotParticipant, PhaseViolation
            ValueError: Malformed hash or wrong commitment fields
        """

        async def apply(session: Session, slot: int) -> tuple[str, str, str | None]:
            if session.phase != Phase.COMMIT:
                raise PhaseViolation("seed commit outside COMMIT")
            rules = get_rules(session.game)
            supplied = dict(commitments or {})
            if set(supplied) != set(rules.required_commitments):
                raise ValueError(
                    f"{session.game.value} expects commitments: {', '.join(rules.required_commitments) or 'none'}"
                )

            participant = session.participants[slot]
            participant.seed.commit(seed_hash)
            for name, value in supplied.items():
                participant.commitments[name] = parse_field(value)

            self._maybe_enter_reveal(session, rules)
            return "lifecycle", "seed_committed", None

        return await self._mutate(session_id, participant_id, "commit_seed", apply)

    async def reveal_seed(self, session_id: str, participant_id: str, seed: bytes) -> Session:
        """
        Reveal a committed seed. The last reveal starts the game.

        Raises:
            SessionNotFound, NotParticipant, PhaseViolation, CommitmentMismatch
        """

        async def apply(session: Session, slot: int) -> tuple[str, str, str | None]:
            if session.phase != Phase.REVEAL:
                raise PhaseViolation("seed reveal outside REVEAL")
            session.participants[slot].seed.reveal(seed)

            if session.seeds_in(SeedState.REVEALED):
                combined = shared_seed([p.seed for p in session.participants])
                session.shared_seed = combined.hex()
                session.advance(Phase.IN_PROGRESS)
                get_rules(session.game).start(session, combined)
                logger.info(
                    "game_started",
                    session_id=session.session_id,
                    game=session.game.value,
                    first_slot=session.active_slot,
                )
            return "lifecycle", "seed_revealed", None

        return await self._mutate(session_id, participant_id, "reveal_seed", apply)

    # ========================================================================
    # Transitions
    # ========================================================================

    async def submit_transition(
        self,
        session_id: str,
        participant_id: str,
        circuit_id: CircuitId | str,
        proof: ZKProof,
        public_signals: Sequence[str],
    ) -> Session:
        """
        Accept a proven transition.

        Raises:
            SessionNotFound
            NotParticipant: Caller holds no slot
            CommitmentMismatch: Replayed statement or stale commitment
            PhaseViolation: Wrong phase, sub-phase, turn or parameters
            ProofVerificationFailed: Proof does not verify
            ResourceAlreadyConsumed: One-time resource reused
        """

        async def apply(session: Session, slot: int) -> tuple[str, str, str | None]:
            rules = get_rules(session.game)
            try:
                cid = CircuitId(circuit_id)
                parsed = [parse_field(s) for s in public_signals]
            except ValueError as e:
                raise ProofVerificationFailed(f"malformed submission: {e}") from e
            if cid not in rules.circuits:
                raise PhaseViolation(f"{cid.value} is not part of {session.game.value}")

            digest = proof_digest(cid, parsed)
            if f"proof:{digest}" in session.consumed:
                raise CommitmentMismatch("statement already submitted")

            is_setup = self._check_phase(session, rules, slot, cid)
            values = await self._verify(session, cid, proof, public_signals)

            if is_setup:
                rules.apply_setup(session, slot, cid, values)
                self._maybe_enter_reveal(session, rules)
            else:
                rules.apply_transition(session, slot, cid, values)
            session.consumed.add(f"proof:{digest}")
            return "transition", cid.value, digest

        return await self._mutate(session_id, participant_id, "submit_transition", apply)

    async def submit_action(self, session_id: str, participant_id: str, action: GameAction) -> Session:
        """
        Accept a proof-free action.

        Raises:
            SessionNotFound, NotParticipant, PhaseViolation
        """

        async def apply(session: Session, slot: int) -> tuple[str, str, str | None]:
            if session.phase != Phase.IN_PROGRESS:
                raise PhaseViolation("action outside IN_PROGRESS")
            get_rules(session.game).apply_action(session, slot, action)
            return "action", action.action, None

        return await self._mutate(session_id, participant_id, "submit_action", apply)

    # ========================================================================
    # Queries and expiry
    # ========================================================================

    async def get_session(self, session_id: str) -> Session:
        """
        Current session record, after applying any pending expiry.

        Raises:
            SessionNotFound: If no session has this id
        """
        async with self.store.lock(session_id):
            session = await self.store.get(session_id)
            now = self._clock()
            if self._is_expired(session, now):
                self._abandon(session, now)
                await self.store.put(session)
            return session

    async def expire_inactive(self, now: datetime | None = None) -> list[str]:
        """Abandon every active session idle past the timeout."""
        now = now or self._clock()
        expired = []
        for session_id in await self.store.session_ids():
            async with self.store.lock(session_id):
                session = await self.store.get(session_id)
                if self._is_expired(session, now):
                    self._abandon(session, now)
                    await self.store.put(session)
                    expired.append(session_id)
        return expired

    async def prune_finished(self, now: datetime | None = None) -> list[str]:
        """Delete complete or abandoned sessions idle past the retention window."""
        now = now or self._clock()
        pruned = []
        for session_id in await self.store.session_ids():
            async with self.store.lock(session_id):
                session = await self.store.get(session_id)
                if session.is_terminal and now - session.last_activity_at > self.retention:
                    await self.store.delete(session_id)
                    pruned.append(session_id)
        if pruned:
            logger.info("sessions_pruned", count=len(pruned))
        return pruned

    def awaiting(self, session: Session) -> set[int]:
        """Slots the session is waiting on."""
        if session.phase == Phase.CREATED:
            return {s for s, p in enumerate(session.participants) if not p.joined}
        if session.phase == Phase.COMMIT:
            rules = get_rules(session.game)
            return {
                s
                for s, p in enumerate(session.participants)
                if p.seed.state == SeedState.UNCOMMITTED or not rules.setup_complete(session, s)
            }
        if session.phase == Phase.REVEAL:
            return {s for s, p in enumerate(session.participants) if p.seed.state != SeedState.REVEALED}
        if session.phase == Phase.IN_PROGRESS:
            return get_rules(session.game).awaiting(session)
        return set()

    # ========================================================================
    # Internals
    # ========================================================================

    async def _mutate(
        self,
        session_id: str,
        participant_id: str,
        operation: str,
        apply: Operation,
    ) -> Session:
        async with self.store.lock(session_id):
            session = await self.store.get(session_id)
            now = self._clock()
            log = logger.bind(session_id=session_id, participant=participant_id, operation=operation)

            if self._is_expired(session, now):
                self._abandon(session, now)
                await self.store.put(session)
                log.warning("transition_rejected", reason="session expired", error_type="PhaseViolation")
                raise PhaseViolation("session expired")

            try:
                if session.is_terminal:
                    raise PhaseViolation(f"session is {session.phase.value}")
                slot = session.slot_of(participant_id)
                kind, name, digest = await apply(session, slot)
            except TransitionRejected as e:
                log.warning("transition_rejected", reason=e.reason, error_type=type(e).__name__)
                raise

            session.version += 1
            session.last_activity_at = now
            session.transcript.append(
                TranscriptEntry(version=session.version, slot=slot, kind=kind, name=name, digest=digest, at=now)
            )
            await self.store.put(session)

            log.info("transition_accepted", kind=kind, name=name, version=session.version, phase=session.phase.value)
            if session.phase == Phase.COMPLETE:
                logger.info(
                    "session_completed",
                    session_id=session_id,
                    winner_slot=session.winner_slot,
                    outcome=session.outcome,
                )
            return session

    def _check_phase(self, session: Session, rules: GameRules, slot: int, circuit_id: CircuitId) -> bool:
        """True for a COMMIT-phase setup proof."""
        if session.phase == Phase.COMMIT and circuit_id in rules.setup_circuits:
            if rules.setup_complete(session, slot):
                raise PhaseViolation("setup already submitted")
            return True
        if session.phase != Phase.IN_PROGRESS:
            raise PhaseViolation(f"{circuit_id.value} not allowed in {session.phase.value}")
        if circuit_id not in rules.allowed_circuits(session, slot):
            raise PhaseViolation(f"{circuit_id.value} not allowed for slot {slot} in {session.substate}")
        return False

    async def _verify(
        self,
        session: Session,
        circuit_id: CircuitId,
        proof: ZKProof,
        public_signals: Sequence[str],
    ) -> dict[str, int]:
        pinned = session.verification_keys.get(circuit_id.value)
        if pinned is None or self.verifier.registry.fingerprint(circuit_id) != pinned:
            raise ProofVerificationFailed(f"verification key for {circuit_id.value} changed")

        result = await self.verifier.verify_detailed(circuit_id, proof, public_signals)
        if not result.valid:
            raise ProofVerificationFailed(result.error or "proof did not verify")

        values = get_circuit(circuit_id).decode_signals(public_signals)
        if values["valid"] != 1:
            raise ProofVerificationFailed("proof attests an invalid transition")
        return values

    @staticmethod
    def _maybe_enter_reveal(session: Session, rules: GameRules) -> None:
        committed = session.seeds_in(SeedState.COMMITTED)
        if committed and all(rules.setup_complete(session, s) for s in range(len(session.participants))):
            session.advance(Phase.REVEAL)

    def _is_expired(self, session: Session, now: datetime) -> bool:
        return not session.is_terminal and now - session.last_activity_at > self.inactivity_timeout

    def _abandon(self, session: Session, now: datetime) -> None:
        """Forfeit against a single delinquent slot; otherwise refund."""
        delinquent = self.awaiting(session)
        winner = session.opponent(next(iter(delinquent))) if len(delinquent) == 1 else None

        session.advance(Phase.ABANDONED)
        session.winner_slot = winner
        session.outcome = "timeout"
        session.active_slot = None
        settle_escrow(session, winner)

        session.version += 1
        session.last_activity_at = now
        session.transcript.append(
            TranscriptEntry(version=session.version, slot=None, kind="lifecycle", name="expired", at=now)
        )
        logger.warning(
            "session_expired",
            session_id=session.session_id,
            delinquent=sorted(delinquent),
            winner_slot=winner,
        )


@lru_cache
def get_state_machine() -> SessionStateMachine:
    """Process-wide state machine over the global toolkit."""
    return SessionStateMachine(get_toolkit().verifier)
