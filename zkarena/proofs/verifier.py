"""
Transition Proof Verification
=============================

Checks proofs against registered verification keys. Safe for untrusted
input: malformed proofs and signal vectors verify as False.

Version: 1.0.0
"""

import asyncio
import time
from collections.abc import Mapping, Sequence

from zkarena.circuits import CircuitId, get_circuit
from zkarena.errors import CircuitArtifactMissing
from zkarena.logging import get_logger
from zkarena.proofs.backends import ProofBackend
from zkarena.proofs.keys import KeyRegistry
from zkarena.proofs.models import VerificationResult, ZKProof


logger = get_logger(__name__)


class GameVerifier:
    """
    Proof verifier keyed on circuit identifier.

    Dispatches on the proof's protocol to the matching backend.
    """

    def __init__(self, registry: KeyRegistry, backends: Sequence[ProofBackend]):
        """
        Initialize the verifier.

        Args:
            registry: Registered verification keys
            backends: Proof backends able to check proofs
        """
        self.registry = registry
        self._backends: Mapping[str, ProofBackend] = {b.protocol: b for b in backends}

    def _check_signals(self, circuit_id: CircuitId, signals: Sequence[str]) -> str | None:
        try:
            get_circuit(circuit_id).decode_signals(signals)
        except ValueError as e:
            return str(e)
        return None

    async def verify_detailed(
        self,
        circuit_id: CircuitId | str,
        proof: ZKProof,
        public_signals: Sequence[str],
    ) -> VerificationResult:
        """
        Verify a proof and report timing and failure reason.

        Args:
            circuit_id: Circuit the proof claims to satisfy
            proof: Proof elements
            public_signals: Ordered decimal-string signals

        Returns:
            VerificationResult
        """
        start_time = time.time()

        try:
            circuit_id = CircuitId(circuit_id)
            key = self.registry.get(circuit_id)
        except (ValueError, CircuitArtifactMissing) as e:
            return VerificationResult(valid=False, verification_time_ms=0, error=str(e))

        error = self._check_signals(circuit_id, public_signals)
        backend = self._backends.get(proof.protocol)
        if error is None and backend is None:
            error = f"Unsupported proof protocol: {proof.protocol}"

        is_valid = False
        if error is None:
            is_valid = await asyncio.to_thread(backend.verify, key, proof, list(public_signals))
            if not is_valid:
                error = "Proof did not verify"

        verification_time_ms = int((time.time() - start_time) * 1000)
        logger.info(
            "zk_proof_verified",
            circuit=circuit_id.value,
            valid=is_valid,
            verification_time_ms=verification_time_ms,
        )

        return VerificationResult(
            valid=is_valid,
            circuit_id=circuit_id,
            verification_time_ms=verification_time_ms,
            error=error,
        )

    async def verify(
        self,
        circuit_id: CircuitId | str,
        proof: ZKProof,
        public_signals: Sequence[str],
    ) -> bool:
        """Verify a proof. Returns False for any invalid or malformed input."""
        result = await self.verify_detailed(circuit_id, proof, public_signals)
        return result.valid
