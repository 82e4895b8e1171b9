"""
Proof Service
=============

Proof generation and verification for transition circuits.

Usage:
    from zkarena.proofs import get_toolkit

    toolkit = get_toolkit()
    proof = await toolkit.prover.prove(circuit_id, public_inputs, private_witness)
    ok = await toolkit.verifier.verify(circuit_id, proof.proof, proof.public_signals.signals)

Version: 1.0.0
"""

from zkarena.proofs.backends import LocalAttestationBackend, ProofBackend, SnarkjsBackend
from zkarena.proofs.dev_setup import registry_from_keys, run_local_setup
from zkarena.proofs.keys import CircuitKeys, KeyRegistry, KeyStore
from zkarena.proofs.models import (
    ProofMetadata,
    ProofWithMetadata,
    PublicSignals,
    VerificationKey,
    VerificationResult,
    ZKProof,
)
from zkarena.proofs.prover import GameProver
from zkarena.proofs.toolkit import ProofToolkit, build_toolkit, get_toolkit
from zkarena.proofs.verifier import GameVerifier


__all__ = [
    # Prover / verifier
    "GameProver",
    "GameVerifier",
    "ProofToolkit",
    "build_toolkit",
    "get_toolkit",
    # Backends and keys
    "ProofBackend",
    "LocalAttestationBackend",
    "SnarkjsBackend",
    "CircuitKeys",
    "KeyRegistry",
    "KeyStore",
    "run_local_setup",
    "registry_from_keys",
    # Models
    "ZKProof",
    "PublicSignals",
    "ProofMetadata",
    "ProofWithMetadata",
    "VerificationKey",
    "VerificationResult",
]
