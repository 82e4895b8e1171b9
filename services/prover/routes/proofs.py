"""
Proof Generation Routes
=======================

API endpoints for proving transitions and describing circuits.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from zkarena.circuits import CircuitId, get_circuit, registered_circuits
from zkarena.errors import CircuitArtifactMissing, WitnessUnsatisfiable
from zkarena.logging import get_logger
from zkarena.proofs import ProofToolkit, get_toolkit


logger = get_logger(__name__)
router = APIRouter()

WitnessValue = int | str | list[int | str]


# ============================================================================
# Request/Response Models
# ============================================================================


class ProveRequest(BaseModel):
    """Inputs for one transition proof. Large field elements may be decimal strings."""

    public_inputs: dict[str, WitnessValue] = Field(..., description="Values the verifier sees")
    private_witness: dict[str, WitnessValue] = Field(
        default_factory=dict, description="Hidden state, salts and Merkle paths"
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "public_inputs": {
                        "old_commitment": "1234",
                        "new_commitment": "5678",
                        "max_speed": 15,
                        "delta_time": 1000,
                        "arena_size": 500,
                    },
                    "private_witness": {
                        "old_x": 0,
                        "old_y": 0,
                        "old_z": 0,
                        "old_salt": "42",
                        "new_x": 9,
                        "new_y": 12,
                        "new_z": 0,
                        "new_salt": "43",
                    },
                }
            ]
        }
    }


class ProofResponse(BaseModel):
    """A generated proof with its public signal vector."""

    success: bool
    circuit_id: str
    proof: dict[str, Any]
    public_signals: list[str]
    outputs: dict[str, str]
    proving_time_ms: int
    key_fingerprint: str


class CircuitInfo(BaseModel):
    """Interface of one circuit."""

    circuit_id: str
    public_inputs: list[str]
    private_inputs: list[str]
    outputs: list[str]
    signal_names: list[str]
    registered: bool
    key_fingerprint: str | None = None


def _coerce(name: str, value: WitnessValue) -> int | list[int]:
    try:
        if isinstance(value, list):
            return [int(v) for v in value]
        return int(value)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer or decimal string") from e


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/circuits", response_model=list[CircuitInfo])
async def list_circuits(toolkit: ProofToolkit = Depends(get_toolkit)) -> list[CircuitInfo]:
    """List every circuit with its signal layout and key status."""
    infos = []
    for circuit_id in registered_circuits():
        circuit = get_circuit(circuit_id)
        registered = circuit_id in toolkit.registry
        infos.append(
            CircuitInfo(
                circuit_id=circuit_id.value,
                public_inputs=list(circuit.public_inputs),
                private_inputs=list(circuit.private_inputs),
                outputs=list(circuit.outputs),
                signal_names=list(circuit.signal_names()),
                registered=registered,
                key_fingerprint=toolkit.registry.fingerprint(circuit_id) if registered else None,
            )
        )
    return infos


@router.post("/{circuit_id}", response_model=ProofResponse)
async def generate_proof(
    circuit_id: CircuitId,
    request: ProveRequest,
    toolkit: ProofToolkit = Depends(get_toolkit),
) -> ProofResponse:
    """
    Prove one transition.

    Fails with 400 when the inputs describe an illegal transition; no proof
    of an invalid transition is ever produced.

    Args:
        circuit_id: Circuit to execute
        request: Public inputs and private witness

    Returns:
        ProofResponse containing the proof and public signals
    """
    logger.info("generating_proof", circuit=circuit_id.value)

    try:
        public_inputs = {k: _coerce(k, v) for k, v in request.public_inputs.items()}
        private_witness = {k: _coerce(k, v) for k, v in request.private_witness.items()}
        result = await toolkit.prover.prove(circuit_id, public_inputs, private_witness)

    except ValueError as e:
        logger.warning("proof_request_invalid", circuit=circuit_id.value, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e
    except WitnessUnsatisfiable as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Witness does not satisfy {e.circuit_id}: {e.reason}",
        ) from e
    except CircuitArtifactMissing as e:
        logger.error("circuit_files_not_found", circuit=circuit_id.value, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Circuit keys not available. Run key setup first.",
        ) from e

    return ProofResponse(
        success=True,
        circuit_id=circuit_id.value,
        proof=result.proof.model_dump(),
        public_signals=result.public_signals.signals,
        outputs={k: str(v) for k, v in result.outputs.items()},
        proving_time_ms=result.metadata.proving_time_ms,
        key_fingerprint=result.metadata.key_fingerprint,
    )
