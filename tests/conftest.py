"""
Test Configuration
==================

Pytest fixtures for zkarena tests.
"""

import os
import tempfile
from collections.abc import AsyncGenerator, Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment
os.environ["ENVIRONMENT"] = "testing"
os.environ["ZK_BACKEND"] = "local"
os.environ["ZK_AUTO_SETUP"] = "true"
os.environ["ZK_BUILD_DIR"] = tempfile.mkdtemp(prefix="zkarena-keys-")

from zkarena.circuits import CircuitId  # noqa: E402
from zkarena.config import Settings  # noqa: E402
from zkarena.games import GameAction  # noqa: E402
from zkarena.ledger import GameKind, Session  # noqa: E402
from zkarena.ledger.machine import SessionStateMachine  # noqa: E402
from zkarena.proofs import (  # noqa: E402
    CircuitKeys,
    GameProver,
    GameVerifier,
    KeyRegistry,
    LocalAttestationBackend,
    ProofWithMetadata,
    registry_from_keys,
    run_local_setup,
)
from zkarena.randomness import generate_seed, hash_seed  # noqa: E402
from zkarena.witness import TransitionInputs  # noqa: E402

PLAYERS = ("alice", "bob")


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self) -> None:
        self.now = datetime(2025, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class SessionDriver:
    """Drives a session through the state machine the way two clients would."""

    def __init__(self, machine: SessionStateMachine, prover: GameProver):
        self.machine = machine
        self.prover = prover
        self.seeds: dict[int, bytes] = {}

    async def create(self, game: GameKind, params: Mapping[str, int] | None = None, stake: int = 0) -> Session:
        return await self.machine.create_session(game, PLAYERS, params=params, stake=stake)

    async def join_all(self, session_id: str) -> Session:
        await self.machine.join(session_id, PLAYERS[0])
        return await self.machine.join(session_id, PLAYERS[1])

    async def commit_all(
        self,
        session_id: str,
        commitments: Mapping[int, Mapping[str, int]] | None = None,
    ) -> Session:
        session = None
        for slot, participant in enumerate(PLAYERS):
            self.seeds[slot] = generate_seed()
            session = await self.machine.commit_seed(
                session_id,
                participant,
                hash_seed(self.seeds[slot]),
                (commitments or {}).get(slot),
            )
        return session

    async def reveal_all(self, session_id: str) -> Session:
        await self.machine.reveal_seed(session_id, PLAYERS[0], self.seeds[0])
        return await self.machine.reveal_seed(session_id, PLAYERS[1], self.seeds[1])

    async def start(
        self,
        game: GameKind,
        params: Mapping[str, int] | None = None,
        stake: int = 0,
        commitments: Mapping[int, Mapping[str, int]] | None = None,
        setup: Mapping[int, TransitionInputs] | None = None,
    ) -> Session:
        """Create, join, commit (plus setup proofs) and reveal."""
        session = await self.create(game, params, stake)
        await self.join_all(session.session_id)
        await self.commit_all(session.session_id, commitments)
        for slot, inputs in (setup or {}).items():
            await self.submit(session.session_id, slot, inputs)
        return await self.reveal_all(session.session_id)

    async def prove(self, inputs: TransitionInputs) -> ProofWithMetadata:
        return await self.prover.prove(inputs.circuit_id, inputs.public_inputs, inputs.private_witness)

    async def submit(self, session_id: str, slot: int, inputs: TransitionInputs) -> Session:
        proof = await self.prove(inputs)
        return await self.submit_proof(session_id, slot, inputs.circuit_id, proof)

    async def submit_proof(
        self, session_id: str, slot: int, circuit_id: CircuitId, proof: ProofWithMetadata
    ) -> Session:
        return await self.machine.submit_transition(
            session_id, PLAYERS[slot], circuit_id, proof.proof, proof.public_signals.signals
        )

    async def act(self, session_id: str, slot: int, action: str, **fields: Any) -> Session:
        return await self.machine.submit_action(session_id, PLAYERS[slot], GameAction(action=action, **fields))


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest.fixture(scope="session")
def circuit_keys() -> dict[CircuitId, CircuitKeys]:
    """Attestation keys for every circuit, generated once per run."""
    return run_local_setup()


@pytest.fixture(scope="session")
def registry(circuit_keys: dict[CircuitId, CircuitKeys]) -> KeyRegistry:
    return registry_from_keys(circuit_keys)


@pytest.fixture(scope="session")
def backend(circuit_keys: dict[CircuitId, CircuitKeys]) -> LocalAttestationBackend:
    return LocalAttestationBackend(keys=circuit_keys)


@pytest.fixture(scope="session")
def prover(backend: LocalAttestationBackend, registry: KeyRegistry) -> GameProver:
    return GameProver(backend, registry)


@pytest.fixture(scope="session")
def verifier(backend: LocalAttestationBackend, registry: KeyRegistry) -> GameVerifier:
    return GameVerifier(registry, [backend])


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def machine(verifier: GameVerifier, clock: FakeClock) -> SessionStateMachine:
    """A fresh state machine with its own store."""
    return SessionStateMachine(verifier, settings=Settings(), clock=clock)


@pytest.fixture
def driver(machine: SessionStateMachine, prover: GameProver) -> SessionDriver:
    return SessionDriver(machine, prover)


@pytest_asyncio.fixture
async def prover_client() -> AsyncGenerator[AsyncClient, None]:
    """Create test client for the Prover Service."""
    from services.prover.main import app

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


@pytest_asyncio.fixture
async def ledger_client() -> AsyncGenerator[AsyncClient, None]:
    """Create test client for the Ledger Service."""
    from services.ledger.main import app

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
