"""
Proof Backends
==============

Pluggable proving systems behind GameProver and GameVerifier.

- LocalAttestationBackend: Ed25519 attestation by a trusted prover over
  (circuit, key, signals, nonce). Runs anywhere, no compiled circuits.
  It attests that the prover's synthesis succeeded; it is not a
  zero-knowledge argument.
- SnarkjsBackend: Groth16 via the snarkjs CLI against compiled circuit
  artifacts in the build directory.

Version: 0.1.0
"""

import hashlib
import json
import secrets
import subprocess
import tempfile
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, ClassVar

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from zkarena.circuits.base import CircuitId, CircuitResult
from zkarena.errors import CircuitArtifactMissing
from zkarena.logging import get_logger
from zkarena.proofs.keys import CircuitKeys, KeyStore
from zkarena.proofs.models import VerificationKey, ZKProof


logger = get_logger(__name__)

ATTESTATION_PROTOCOL = "ed25519-attestation"
GROTH16_PROTOCOL = "groth16"


class ProofBackend(ABC):
    """Proving system interface."""

    protocol: ClassVar[str]

    @abstractmethod
    def prove(
        self,
        result: CircuitResult,
        witness: Mapping[str, Any],
        fingerprint: str,
    ) -> ZKProof:
        """Produce a proof for a synthesized circuit."""

    @abstractmethod
    def verify(self, key: VerificationKey, proof: ZKProof, signals: Sequence[str]) -> bool:
        """Check a proof. Must return False rather than raise on bad input."""


# ============================================================================
# Local attestation
# ============================================================================


def generate_attestation_keys(circuit_id: CircuitId) -> CircuitKeys:
    """Fresh Ed25519 key pair for one circuit."""
    private_key = ed25519.Ed25519PrivateKey.generate()
    private_bytes = private_key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_bytes = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return CircuitKeys(
        circuit_id=circuit_id,
        proving_key={"protocol": ATTESTATION_PROTOCOL, "private_key": private_bytes.hex()},
        verification_key=VerificationKey(
            circuit_id=circuit_id,
            protocol=ATTESTATION_PROTOCOL,
            key_data={"public_key": public_bytes.hex()},
        ),
    )


def _transcript(circuit_id: str, fingerprint: str, signals: Sequence[str], nonce: int) -> bytes:
    canonical = json.dumps(
        {
            "circuit_id": circuit_id,
            "key": fingerprint,
            "nonce": str(nonce),
            "signals": list(signals),
        },
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(canonical.encode()).digest()


class LocalAttestationBackend(ProofBackend):
    """
    Ed25519 attestation backend.

    Usage:
        backend = LocalAttestationBackend(keys=run_local_setup())
    """

    protocol = ATTESTATION_PROTOCOL

    def __init__(
        self,
        keys: Mapping[CircuitId, CircuitKeys] | None = None,
        key_store: KeyStore | None = None,
    ):
        self._keys = dict(keys or {})
        self._key_store = key_store
        self._signers: dict[CircuitId, ed25519.Ed25519PrivateKey] = {}

    def _signer(self, circuit_id: CircuitId) -> ed25519.Ed25519PrivateKey:
        if circuit_id not in self._signers:
            if circuit_id in self._keys:
                proving_key = self._keys[circuit_id].proving_key
            elif self._key_store is not None:
                proving_key = self._key_store.load_proving_key(circuit_id)
            else:
                raise CircuitArtifactMissing(f"No proving key for {circuit_id.value}")
            self._signers[circuit_id] = ed25519.Ed25519PrivateKey.from_private_bytes(
                bytes.fromhex(proving_key["private_key"])
            )
        return self._signers[circuit_id]

    def prove(
        self,
        result: CircuitResult,
        witness: Mapping[str, Any],
        fingerprint: str,
    ) -> ZKProof:
        signer = self._signer(result.circuit_id)
        nonce = int.from_bytes(secrets.token_bytes(16), "big")
        signature = signer.sign(
            _transcript(result.circuit_id.value, fingerprint, result.signal_strings, nonce)
        )
        return ZKProof(
            pi_a=[str(int.from_bytes(signature[:32], "big"))],
            pi_b=[[str(nonce)]],
            pi_c=[str(int.from_bytes(signature[32:], "big"))],
            protocol=self.protocol,
            curve="ed25519",
        )

    def verify(self, key: VerificationKey, proof: ZKProof, signals: Sequence[str]) -> bool:
        if proof.protocol != self.protocol or key.protocol != self.protocol:
            return False
        try:
            public_key = ed25519.Ed25519PublicKey.from_public_bytes(
                bytes.fromhex(key.key_data["public_key"])
            )
            signature = int(proof.pi_a[0]).to_bytes(32, "big") + int(proof.pi_c[0]).to_bytes(32, "big")
            nonce = int(proof.pi_b[0][0])
            public_key.verify(
                signature,
                _transcript(key.circuit_id.value, key.fingerprint, signals, nonce),
            )
            return True
        except InvalidSignature:
            return False
        except (KeyError, IndexError, ValueError, OverflowError):
            # Malformed proof elements or key data
            return False


# ============================================================================
# snarkjs Groth16
# ============================================================================


def flatten_inputs(public_inputs: Mapping[str, Any], witness: Mapping[str, Any]) -> dict[str, Any]:
    """snarkjs input.json form: decimal strings, arrays kept as lists."""

    def encode(value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return [encode(v) for v in value]
        return str(value)

    merged = {**public_inputs, **witness}
    return {name: encode(value) for name, value in merged.items()}


class SnarkjsBackend(ProofBackend):
    """
    Groth16 backend using the snarkjs CLI.

    Expects compiled artifacts per circuit (see zkarena.proofs.keys).
    """

    protocol = GROTH16_PROTOCOL

    def __init__(self, key_store: KeyStore, command: Sequence[str] = ("npx", "snarkjs"), timeout: int = 120):
        self.key_store = key_store
        self.command = list(command)
        self.timeout = timeout

    def prove(
        self,
        result: CircuitResult,
        witness: Mapping[str, Any],
        fingerprint: str,
    ) -> ZKProof:
        wasm_path = self.key_store.wasm_path(result.circuit_id)
        zkey_path = self.key_store.zkey_path(result.circuit_id)

        if not wasm_path.exists():
            raise CircuitArtifactMissing(f"Circuit WASM not found: {wasm_path}")
        if not zkey_path.exists():
            raise CircuitArtifactMissing(f"Proving key not found: {zkey_path}")

        with tempfile.TemporaryDirectory(prefix="zkarena-prove-") as tmp:
            workdir = Path(tmp)
            input_file = workdir / "input.json"
            proof_file = workdir / "proof.json"
            public_file = workdir / "public.json"

            with open(input_file, "w") as f:
                json.dump(flatten_inputs(result.public_inputs, witness), f)

            completed = subprocess.run(
                [
                    *self.command,
                    "groth16",
                    "fullprove",
                    str(input_file),
                    str(wasm_path),
                    str(zkey_path),
                    str(proof_file),
                    str(public_file),
                ],
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )

            if completed.returncode != 0:
                logger.error(
                    "snarkjs_proof_generation_failed",
                    stderr=completed.stderr,
                    circuit=result.circuit_id.value,
                )
                raise RuntimeError(f"Proof generation failed: {completed.stderr}")

            with open(proof_file) as f:
                proof_json = json.load(f)
            with open(public_file) as f:
                public_signals = json.load(f)

        if public_signals != result.signal_strings:
            raise CircuitArtifactMissing(
                f"Compiled circuit for {result.circuit_id.value} disagrees with its signal layout"
            )
        return ZKProof(**proof_json)

    def verify(self, key: VerificationKey, proof: ZKProof, signals: Sequence[str]) -> bool:
        if proof.protocol != self.protocol or key.protocol != self.protocol:
            return False

        with tempfile.TemporaryDirectory(prefix="zkarena-verify-") as tmp:
            workdir = Path(tmp)
            vkey_file = workdir / "verification_key.json"
            proof_file = workdir / "proof.json"
            public_file = workdir / "public.json"

            with open(vkey_file, "w") as f:
                json.dump(key.key_data, f)
            with open(proof_file, "w") as f:
                json.dump(proof.model_dump(), f)
            with open(public_file, "w") as f:
                json.dump(list(signals), f)

            try:
                completed = subprocess.run(
                    [*self.command, "groth16", "verify", str(vkey_file), str(public_file), str(proof_file)],
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                )
            except (OSError, subprocess.TimeoutExpired) as e:
                logger.error("snarkjs_verify_failed", circuit=key.circuit_id.value, error=str(e))
                return False

        return completed.returncode == 0 and "OK" in completed.stdout
