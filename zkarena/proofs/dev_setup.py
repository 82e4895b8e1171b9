"""
Local Key Setup
===============

Development key generation for the attestation backend. This is not a
trusted-setup ceremony: whoever runs it holds every proving key.

Version: 0.1.0
"""

from collections.abc import Iterable

from zkarena.circuits import CircuitId, registered_circuits
from zkarena.logging import get_logger
from zkarena.proofs.backends import generate_attestation_keys
from zkarena.proofs.keys import CircuitKeys, KeyRegistry, KeyStore


logger = get_logger(__name__)


def run_local_setup(
    circuit_ids: Iterable[CircuitId] | None = None,
    key_store: KeyStore | None = None,
    overwrite: bool = False,
) -> dict[CircuitId, CircuitKeys]:
    """
    Generate attestation keys for circuits.

    Args:
        circuit_ids: Circuits to set up (defaults to every registered circuit)
        key_store: Optional store to persist keys into
        overwrite: Replace keys already present in the store

    Returns:
        Keys by circuit, including any loaded unchanged from the store
    """
    keys: dict[CircuitId, CircuitKeys] = {}
    for circuit_id in circuit_ids or registered_circuits():
        circuit_id = CircuitId(circuit_id)
        if key_store is not None and key_store.has_keys(circuit_id) and not overwrite:
            keys[circuit_id] = CircuitKeys(
                circuit_id=circuit_id,
                proving_key=key_store.load_proving_key(circuit_id),
                verification_key=key_store.load_verification_key(circuit_id),
            )
            continue

        keys[circuit_id] = generate_attestation_keys(circuit_id)
        if key_store is not None:
            key_store.save(keys[circuit_id])

    logger.info("local_setup_complete", circuits=len(keys))
    return keys


def registry_from_keys(keys: dict[CircuitId, CircuitKeys]) -> KeyRegistry:
    """Register the verification half of every key pair."""
    registry = KeyRegistry()
    for circuit_keys in keys.values():
        registry.register(circuit_keys.verification_key)
    return registry
