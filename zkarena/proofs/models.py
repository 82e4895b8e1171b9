"""
Proof Data Models
=================

Pydantic models for proofs, public signals and verification keys.

Version: 0.1.0
"""

import hashlib
import json
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from zkarena.circuits.base import CircuitId


class ZKProof(BaseModel):
    """
    A transition proof: three group elements.

    Groth16 proofs use the snarkjs layout. Attestation proofs carry the
    signature halves in pi_a and pi_c and the transcript nonce in pi_b.
    """

    pi_a: list[str] = Field(..., description="Proof element A")
    pi_b: list[list[str]] = Field(..., description="Proof element B")
    pi_c: list[str] = Field(..., description="Proof element C")

    # Protocol info
    protocol: str = Field(default="groth16")
    curve: str = Field(default="bn128")


class PublicSignals(BaseModel):
    """Public outputs followed by public inputs."""

    signals: list[str] = Field(..., description="Public signals as decimal strings")

    def to_int_list(self) -> list[int]:
        """Convert to list of integers."""
        return [int(s) for s in self.signals]


class ProofMetadata(BaseModel):
    """Metadata about a generated proof."""

    circuit_id: CircuitId
    backend: str
    key_fingerprint: str
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    proving_time_ms: int = Field(..., ge=0)


class ProofWithMetadata(BaseModel):
    """Complete proof with metadata and decoded outputs."""

    proof: ZKProof
    public_signals: PublicSignals
    metadata: ProofMetadata
    outputs: dict[str, int] = Field(default_factory=dict)


class VerificationResult(BaseModel):
    """Result of proof verification."""

    valid: bool
    circuit_id: CircuitId | None = None
    verified_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    verification_time_ms: int = Field(..., ge=0)

    # Error info
    error: str | None = None


class VerificationKey(BaseModel):
    """Public verification parameters for one circuit."""

    circuit_id: CircuitId
    protocol: str
    key_data: dict[str, Any]

    @property
    def fingerprint(self) -> str:
        """SHA-256 over the canonical JSON form of the key."""
        canonical = json.dumps(
            {"circuit_id": self.circuit_id.value, "protocol": self.protocol, "key": self.key_data},
            sort_keys=True,
            separators=(",", ":"),
        )
        return hashlib.sha256(canonical.encode()).hexdigest()
