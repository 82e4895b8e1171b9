"""
Transition Proof Generation
===========================

Executes a transition circuit against concrete inputs and produces a
proof plus the ordered public signal vector.

Proving is CPU-bound and runs in a worker thread so it never blocks the
event loop.

Version: 1.0.0
"""

import asyncio
import time
from collections.abc import Mapping
from typing import Any

from zkarena.circuits import CircuitId, get_circuit
from zkarena.errors import WitnessUnsatisfiable
from zkarena.logging import get_logger
from zkarena.proofs.backends import ProofBackend
from zkarena.proofs.keys import KeyRegistry
from zkarena.proofs.models import ProofMetadata, ProofWithMetadata, PublicSignals


logger = get_logger(__name__)


class GameProver:
    """
    Proof generator for transition circuits.

    Usage:
        prover = GameProver(backend, registry)

        proof = await prover.prove(
            CircuitId.ARENA_MOVE,
            public_inputs={"old_commitment": old, "new_commitment": new, ...},
            private_witness={"old_x": 10, "old_salt": salt, ...},
        )
    """

    def __init__(self, backend: ProofBackend, registry: KeyRegistry):
        """
        Initialize the prover.

        Args:
            backend: Proving system producing the proof elements
            registry: Verification keys the proofs are bound to
        """
        self.backend = backend
        self.registry = registry

    def prove_sync(
        self,
        circuit_id: CircuitId | str,
        public_inputs: Mapping[str, Any],
        private_witness: Mapping[str, Any],
    ) -> ProofWithMetadata:
        """
        Blocking form of `prove`.

        Raises:
            WitnessUnsatisfiable: If the inputs describe an illegal transition
            CircuitArtifactMissing: If key material is unavailable
        """
        circuit = get_circuit(circuit_id)
        fingerprint = self.registry.fingerprint(circuit.circuit_id)

        start_time = time.time()
        try:
            result = circuit.synthesize(public_inputs, private_witness)
        except WitnessUnsatisfiable as e:
            logger.info("witness_unsatisfiable", circuit=e.circuit_id, constraint=e.reason)
            raise

        proof = self.backend.prove(result, private_witness, fingerprint)
        proving_time_ms = int((time.time() - start_time) * 1000)

        logger.info(
            "zk_proof_generated",
            circuit=circuit.circuit_id.value,
            backend=self.backend.protocol,
            proving_time_ms=proving_time_ms,
        )

        return ProofWithMetadata(
            proof=proof,
            public_signals=PublicSignals(signals=result.signal_strings),
            metadata=ProofMetadata(
                circuit_id=circuit.circuit_id,
                backend=self.backend.protocol,
                key_fingerprint=fingerprint,
                proving_time_ms=proving_time_ms,
            ),
            outputs=result.outputs,
        )

    async def prove(
        self,
        circuit_id: CircuitId | str,
        public_inputs: Mapping[str, Any],
        private_witness: Mapping[str, Any],
    ) -> ProofWithMetadata:
        """
        Generate a proof for one transition.

        Args:
            circuit_id: Circuit to execute
            public_inputs: Values the verifier will see
            private_witness: Hidden state, salts and authentication paths

        Returns:
            ProofWithMetadata with proof, public signals and decoded outputs

        Raises:
            WitnessUnsatisfiable: If the inputs describe an illegal transition
            CircuitArtifactMissing: If key material is unavailable
        """
        return await asyncio.to_thread(self.prove_sync, circuit_id, public_inputs, private_witness)
