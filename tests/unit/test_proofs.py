"""
Unit Tests for Transition Proofs
================================

Tests for proof generation, verification and key management.

Version: 0.1.0
"""

from pathlib import Path

import pytest

from zkarena.circuits import CircuitId
from zkarena.config import Settings
from zkarena.config.settings import ZKSettings
from zkarena.crypto import generate_salt
from zkarena.errors import CircuitArtifactMissing, KeyRegistrationError, WitnessUnsatisfiable
from zkarena.proofs import (
    GameProver,
    GameVerifier,
    KeyRegistry,
    KeyStore,
    LocalAttestationBackend,
    ZKProof,
    build_toolkit,
    registry_from_keys,
    run_local_setup,
)
from zkarena.proofs.backends import generate_attestation_keys
from zkarena.witness import ArenaPlayer, TransitionInputs


def move_inputs() -> TransitionInputs:
    player = ArenaPlayer(slot=0)
    player.position = (10, 10, 0)
    player.position_salt = generate_salt()
    return player.move((13, 14, 0), 15, 1000, 500)


class TestProver:
    """Tests for GameProver."""

    @pytest.mark.asyncio
    async def test_prove_returns_signals(self, prover: GameProver, registry: KeyRegistry) -> None:
        """Test that a proof carries signals, outputs and the key fingerprint."""
        inputs = move_inputs()
        proof = await prover.prove(inputs.circuit_id, inputs.public_inputs, inputs.private_witness)

        assert proof.public_signals.signals[0] == "1"
        assert proof.outputs["valid"] == 1
        assert proof.metadata.circuit_id == CircuitId.ARENA_MOVE
        assert proof.metadata.key_fingerprint == registry.fingerprint(CircuitId.ARENA_MOVE)
        assert proof.proof.protocol == "ed25519-attestation"

    @pytest.mark.asyncio
    async def test_invalid_transition_yields_no_proof(self, prover: GameProver) -> None:
        """Test that an illegal move cannot be proven."""
        inputs = move_inputs()
        inputs.private_witness["new_x"] = 400

        with pytest.raises(WitnessUnsatisfiable):
            await prover.prove(inputs.circuit_id, inputs.public_inputs, inputs.private_witness)

    @pytest.mark.asyncio
    async def test_missing_input(self, prover: GameProver) -> None:
        """Test that missing inputs are unsatisfiable."""
        inputs = move_inputs()
        del inputs.private_witness["old_salt"]

        with pytest.raises(WitnessUnsatisfiable):
            await prover.prove(inputs.circuit_id, inputs.public_inputs, inputs.private_witness)

    @pytest.mark.asyncio
    async def test_unregistered_circuit(self, backend: LocalAttestationBackend) -> None:
        """Test that proving without a registered key fails."""
        prover = GameProver(backend, KeyRegistry())
        inputs = move_inputs()

        with pytest.raises(CircuitArtifactMissing):
            await prover.prove(inputs.circuit_id, inputs.public_inputs, inputs.private_witness)

    @pytest.mark.asyncio
    async def test_proofs_are_unique(self, prover: GameProver) -> None:
        """Test that proving the same statement twice gives different proofs."""
        inputs = move_inputs()
        first = await prover.prove(inputs.circuit_id, inputs.public_inputs, inputs.private_witness)
        second = await prover.prove(inputs.circuit_id, inputs.public_inputs, inputs.private_witness)

        assert first.public_signals == second.public_signals
        assert first.proof != second.proof


class TestVerifier:
    """Tests for GameVerifier."""

    @pytest.mark.asyncio
    async def test_valid_proof(self, prover: GameProver, verifier: GameVerifier) -> None:
        """Test that an honest proof verifies."""
        inputs = move_inputs()
        proof = await prover.prove(inputs.circuit_id, inputs.public_inputs, inputs.private_witness)

        result = await verifier.verify_detailed(CircuitId.ARENA_MOVE, proof.proof, proof.public_signals.signals)
        assert result.valid is True
        assert result.error is None

    @pytest.mark.asyncio
    async def test_tampered_signal(self, prover: GameProver, verifier: GameVerifier) -> None:
        """Test that changing any public signal breaks verification."""
        inputs = move_inputs()
        proof = await prover.prove(inputs.circuit_id, inputs.public_inputs, inputs.private_witness)
        signals = list(proof.public_signals.signals)
        signals[-1] = "501"

        assert await verifier.verify(CircuitId.ARENA_MOVE, proof.proof, signals) is False

    @pytest.mark.asyncio
    async def test_wrong_circuit(self, prover: GameProver, verifier: GameVerifier) -> None:
        """Test that a proof does not verify under another circuit."""
        inputs = move_inputs()
        proof = await prover.prove(inputs.circuit_id, inputs.public_inputs, inputs.private_witness)

        assert await verifier.verify(CircuitId.ARENA_SPAWN, proof.proof, proof.public_signals.signals) is False

    @pytest.mark.asyncio
    async def test_wrong_signal_count(self, prover: GameProver, verifier: GameVerifier) -> None:
        """Test that a short signal vector is reported, not raised."""
        inputs = move_inputs()
        proof = await prover.prove(inputs.circuit_id, inputs.public_inputs, inputs.private_witness)

        result = await verifier.verify_detailed(CircuitId.ARENA_MOVE, proof.proof, proof.public_signals.signals[:-1])
        assert result.valid is False
        assert "expects" in result.error

    @pytest.mark.asyncio
    async def test_malformed_proof(self, verifier: GameVerifier) -> None:
        """Test that garbage proof elements verify as False."""
        proof = ZKProof(pi_a=["x"], pi_b=[], pi_c=[], protocol="ed25519-attestation")
        signals = ["1", "0", "0", "15", "1000", "500"]

        assert await verifier.verify(CircuitId.ARENA_MOVE, proof, signals) is False

    @pytest.mark.asyncio
    async def test_unknown_protocol(self, verifier: GameVerifier) -> None:
        """Test that proofs for an unconfigured protocol are rejected."""
        proof = ZKProof(pi_a=["1"], pi_b=[["1"]], pi_c=["1"], protocol="plonk")
        signals = ["1", "0", "0", "15", "1000", "500"]

        result = await verifier.verify_detailed(CircuitId.ARENA_MOVE, proof, signals)
        assert result.valid is False
        assert "plonk" in result.error

    @pytest.mark.asyncio
    async def test_unknown_circuit(self, verifier: GameVerifier) -> None:
        """Test that unknown circuit ids verify as False."""
        proof = ZKProof(pi_a=["1"], pi_b=[["1"]], pi_c=["1"], protocol="ed25519-attestation")
        assert await verifier.verify("no_such_circuit", proof, ["1"]) is False

    @pytest.mark.asyncio
    async def test_foreign_key(self, prover: GameProver, backend: LocalAttestationBackend) -> None:
        """Test that a proof made under another key does not verify."""
        inputs = move_inputs()
        proof = await prover.prove(inputs.circuit_id, inputs.public_inputs, inputs.private_witness)

        other = registry_from_keys({CircuitId.ARENA_MOVE: generate_attestation_keys(CircuitId.ARENA_MOVE)})
        verifier = GameVerifier(other, [backend])
        assert await verifier.verify(CircuitId.ARENA_MOVE, proof.proof, proof.public_signals.signals) is False


class TestKeys:
    """Tests for key storage and registration."""

    def test_registry_is_immutable(self) -> None:
        """Test that a registered key cannot be replaced."""
        registry = KeyRegistry()
        registry.register(generate_attestation_keys(CircuitId.DRAW_CARD).verification_key)

        with pytest.raises(KeyRegistrationError):
            registry.register(generate_attestation_keys(CircuitId.DRAW_CARD).verification_key)

    def test_registry_missing_key(self) -> None:
        """Test lookups of unregistered circuits."""
        registry = KeyRegistry()
        assert CircuitId.DRAW_CARD not in registry
        assert "no_such_circuit" not in registry
        with pytest.raises(CircuitArtifactMissing):
            registry.get(CircuitId.DRAW_CARD)

    def test_store_round_trip(self, tmp_path: Path) -> None:
        """Test that saved keys load back with the same fingerprint."""
        store = KeyStore(tmp_path)
        keys = generate_attestation_keys(CircuitId.POKER_HAND_RANK)
        store.save(keys)

        assert store.has_keys(CircuitId.POKER_HAND_RANK)
        loaded = store.load_verification_key(CircuitId.POKER_HAND_RANK)
        assert loaded.fingerprint == keys.verification_key.fingerprint
        assert store.load_proving_key(CircuitId.POKER_HAND_RANK) == keys.proving_key

    def test_store_missing(self, tmp_path: Path) -> None:
        """Test that absent key files raise CircuitArtifactMissing."""
        store = KeyStore(tmp_path)
        with pytest.raises(CircuitArtifactMissing):
            store.load_verification_key(CircuitId.DUEL_DRAW)
        with pytest.raises(CircuitArtifactMissing):
            store.load_proving_key(CircuitId.DUEL_DRAW)

    def test_local_setup_keeps_existing(self, tmp_path: Path) -> None:
        """Test that setup reuses stored keys unless overwriting."""
        store = KeyStore(tmp_path)
        first = run_local_setup([CircuitId.DRAW_CARD], key_store=store)
        again = run_local_setup([CircuitId.DRAW_CARD], key_store=store)
        replaced = run_local_setup([CircuitId.DRAW_CARD], key_store=store, overwrite=True)

        fingerprint = first[CircuitId.DRAW_CARD].verification_key.fingerprint
        assert again[CircuitId.DRAW_CARD].verification_key.fingerprint == fingerprint
        assert replaced[CircuitId.DRAW_CARD].verification_key.fingerprint != fingerprint

    @pytest.mark.asyncio
    async def test_build_toolkit(self, tmp_path: Path) -> None:
        """Test wiring a toolkit from settings with auto setup."""
        settings = Settings(zk=ZKSettings(build_dir=tmp_path, auto_setup=True))
        toolkit = build_toolkit(settings)
        inputs = move_inputs()

        proof = await toolkit.prover.prove(inputs.circuit_id, inputs.public_inputs, inputs.private_witness)
        assert await toolkit.verifier.verify(inputs.circuit_id, proof.proof, proof.public_signals.signals)
        assert len(toolkit.registry.circuits()) == len(list(CircuitId))

    def test_build_toolkit_without_keys(self, tmp_path: Path) -> None:
        """Test that a toolkit without keys has an empty registry."""
        settings = Settings(zk=ZKSettings(build_dir=tmp_path, auto_setup=False))
        toolkit = build_toolkit(settings)
        assert toolkit.registry.circuits() == []
