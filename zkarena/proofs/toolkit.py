"""
Proof Toolkit
=============

Wires registry, prover and verifier from settings.

Version: 0.1.0
"""

from dataclasses import dataclass
from functools import lru_cache

from zkarena.circuits import CircuitId, registered_circuits
from zkarena.config import ProofBackendKind, Settings, get_settings
from zkarena.logging import get_logger
from zkarena.proofs.backends import LocalAttestationBackend, ProofBackend, SnarkjsBackend
from zkarena.proofs.dev_setup import run_local_setup
from zkarena.proofs.keys import KeyRegistry, KeyStore
from zkarena.proofs.prover import GameProver
from zkarena.proofs.verifier import GameVerifier


logger = get_logger(__name__)


@dataclass
class ProofToolkit:
    """Everything needed to prove and verify transitions."""

    registry: KeyRegistry
    prover: GameProver
    verifier: GameVerifier


def build_toolkit(settings: Settings | None = None) -> ProofToolkit:
    """
    Build a toolkit from configuration.

    With the local backend and `zk.auto_setup` enabled, missing keys are
    generated into the build directory first.
    """
    settings = settings or get_settings()
    key_store = KeyStore(settings.zk.build_dir)
    circuits: list[CircuitId] = registered_circuits()

    if settings.zk.backend == ProofBackendKind.LOCAL and settings.zk.auto_setup:
        run_local_setup(circuits, key_store=key_store)

    registry = KeyRegistry()
    registry.load_from(key_store, circuits)

    backend: ProofBackend
    if settings.zk.backend == ProofBackendKind.SNARKJS:
        backend = SnarkjsBackend(
            key_store,
            command=settings.zk.snarkjs_argv,
            timeout=settings.zk.prove_timeout_seconds,
        )
    else:
        backend = LocalAttestationBackend(key_store=key_store)

    missing = [c.value for c in circuits if c not in registry]
    if missing:
        logger.warning("verification_keys_missing", circuits=missing, build_dir=str(key_store.build_dir))

    return ProofToolkit(
        registry=registry,
        prover=GameProver(backend, registry),
        verifier=GameVerifier(registry, [backend]),
    )


@lru_cache
def get_toolkit() -> ProofToolkit:
    """Process-wide toolkit built from the global settings."""
    return build_toolkit()
