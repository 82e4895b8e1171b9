"""
Key Management
==============

Filesystem key store and the immutable verification-key registry.

Layout under the build directory, one folder per circuit:

    <build_dir>/<circuit_id>/verification_key.json
    <build_dir>/<circuit_id>/proving_key.json            (local backend)
    <build_dir>/<circuit_id>/proving_key.zkey            (snarkjs backend)
    <build_dir>/<circuit_id>/<circuit_id>_js/<circuit_id>.wasm

Version: 0.1.0
"""

import json
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from zkarena.circuits.base import CircuitId
from zkarena.errors import CircuitArtifactMissing, KeyRegistrationError
from zkarena.logging import get_logger
from zkarena.proofs.models import VerificationKey


logger = get_logger(__name__)


@dataclass
class CircuitKeys:
    """Proving and verification material for one circuit."""

    circuit_id: CircuitId
    proving_key: dict[str, Any]
    verification_key: VerificationKey


class KeyStore:
    """Reads and writes circuit key material under a build directory."""

    def __init__(self, build_dir: str | Path):
        self.build_dir = Path(build_dir)

    def circuit_dir(self, circuit_id: CircuitId) -> Path:
        return self.build_dir / CircuitId(circuit_id).value

    def wasm_path(self, circuit_id: CircuitId) -> Path:
        name = CircuitId(circuit_id).value
        return self.circuit_dir(circuit_id) / f"{name}_js" / f"{name}.wasm"

    def zkey_path(self, circuit_id: CircuitId) -> Path:
        return self.circuit_dir(circuit_id) / "proving_key.zkey"

    def verification_key_path(self, circuit_id: CircuitId) -> Path:
        return self.circuit_dir(circuit_id) / "verification_key.json"

    def proving_key_path(self, circuit_id: CircuitId) -> Path:
        return self.circuit_dir(circuit_id) / "proving_key.json"

    def has_keys(self, circuit_id: CircuitId) -> bool:
        return self.verification_key_path(circuit_id).exists()

    def save(self, keys: CircuitKeys) -> None:
        """Write both halves of a key pair."""
        circuit_dir = self.circuit_dir(keys.circuit_id)
        circuit_dir.mkdir(parents=True, exist_ok=True)

        with open(self.proving_key_path(keys.circuit_id), "w") as f:
            json.dump(keys.proving_key, f)
        with open(self.verification_key_path(keys.circuit_id), "w") as f:
            json.dump(keys.verification_key.model_dump(mode="json"), f, indent=2)

        logger.info(
            "circuit_keys_saved",
            circuit=keys.circuit_id.value,
            fingerprint=keys.verification_key.fingerprint,
        )

    def load_verification_key(self, circuit_id: CircuitId) -> VerificationKey:
        """
        Load a verification key.

        Accepts both the stored model form and a raw snarkjs key file.

        Raises:
            CircuitArtifactMissing: If no key file exists
        """
        circuit_id = CircuitId(circuit_id)
        path = self.verification_key_path(circuit_id)
        if not path.exists():
            raise CircuitArtifactMissing(f"Verification key not found: {path}")

        with open(path) as f:
            data = json.load(f)

        if "key_data" in data:
            return VerificationKey(**data)
        return VerificationKey(
            circuit_id=circuit_id,
            protocol=data.get("protocol", "groth16"),
            key_data=data,
        )

    def load_proving_key(self, circuit_id: CircuitId) -> dict[str, Any]:
        """
        Load a local proving key.

        Raises:
            CircuitArtifactMissing: If no key file exists
        """
        path = self.proving_key_path(circuit_id)
        if not path.exists():
            raise CircuitArtifactMissing(f"Proving key not found: {path}")
        with open(path) as f:
            return json.load(f)


class KeyRegistry:
    """
    Verification keys by circuit.

    A key is registered once and never replaced, so every session that
    snapshots a fingerprint keeps verifying against the same key.
    """

    def __init__(self) -> None:
        self._keys: dict[CircuitId, VerificationKey] = {}

    def __contains__(self, circuit_id: object) -> bool:
        try:
            return CircuitId(circuit_id) in self._keys
        except ValueError:
            return False

    def register(self, key: VerificationKey) -> None:
        """
        Register a verification key.

        Raises:
            KeyRegistrationError: If the circuit already has a key
        """
        if key.circuit_id in self._keys:
            raise KeyRegistrationError(f"Verification key already registered for {key.circuit_id.value}")
        self._keys[key.circuit_id] = key
        logger.info(
            "verification_key_registered",
            circuit=key.circuit_id.value,
            protocol=key.protocol,
            fingerprint=key.fingerprint,
        )

    def get(self, circuit_id: CircuitId | str) -> VerificationKey:
        """
        Raises:
            CircuitArtifactMissing: If no key is registered
        """
        try:
            return self._keys[CircuitId(circuit_id)]
        except (KeyError, ValueError) as e:
            raise CircuitArtifactMissing(f"No verification key registered for {circuit_id}") from e

    def fingerprint(self, circuit_id: CircuitId | str) -> str:
        return self.get(circuit_id).fingerprint

    def circuits(self) -> list[CircuitId]:
        return list(self._keys)

    def load_from(self, store: KeyStore, circuit_ids: Iterable[CircuitId]) -> None:
        """Register every available key from a store, skipping missing ones."""
        for circuit_id in circuit_ids:
            if store.has_keys(circuit_id) and circuit_id not in self:
                self.register(store.load_verification_key(circuit_id))
