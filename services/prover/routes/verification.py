"""
Proof Verification Routes
=========================

API endpoints for verifying transition proofs.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from zkarena.circuits import CircuitId
from zkarena.errors import CircuitArtifactMissing
from zkarena.logging import get_logger
from zkarena.proofs import ProofToolkit, ZKProof, get_toolkit


logger = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class VerifyRequest(BaseModel):
    """Request to verify a proof."""

    circuit_id: str = Field(..., description="Circuit the proof claims to satisfy")
    proof: ZKProof
    public_signals: list[str] = Field(..., description="Ordered public signals")


class VerifyResponse(BaseModel):
    """Verification outcome."""

    valid: bool
    circuit_id: str
    verification_time_ms: int
    error: str | None = None


class VerificationKeyResponse(BaseModel):
    """A registered verification key."""

    circuit_id: str
    protocol: str
    fingerprint: str
    key_data: dict[str, Any]


# ============================================================================
# Endpoints
# ============================================================================


@router.post("", response_model=VerifyResponse)
async def verify_proof(
    request: VerifyRequest,
    toolkit: ProofToolkit = Depends(get_toolkit),
) -> VerifyResponse:
    """
    Verify a proof against the registered key for its circuit.

    Malformed proofs, unknown circuits and wrong-length signal vectors all
    report valid=false rather than an error.
    """
    result = await toolkit.verifier.verify_detailed(request.circuit_id, request.proof, request.public_signals)
    return VerifyResponse(
        valid=result.valid,
        circuit_id=request.circuit_id,
        verification_time_ms=result.verification_time_ms,
        error=result.error,
    )


@router.get("/keys/{circuit_id}", response_model=VerificationKeyResponse)
async def get_verification_key(
    circuit_id: CircuitId,
    toolkit: ProofToolkit = Depends(get_toolkit),
) -> VerificationKeyResponse:
    """Fetch the verification key registered for a circuit."""
    try:
        key = toolkit.registry.get(circuit_id)
    except CircuitArtifactMissing as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No verification key registered for {circuit_id.value}",
        ) from e

    return VerificationKeyResponse(
        circuit_id=circuit_id.value,
        protocol=key.protocol,
        fingerprint=key.fingerprint,
        key_data=key.key_data,
    )
