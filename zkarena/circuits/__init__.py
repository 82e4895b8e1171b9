"""
State-Transition Circuits
=========================

One ActionCircuit per action kind, dispatched by CircuitId.

Usage:
    from zkarena.circuits import CircuitId, get_circuit

    circuit = get_circuit(CircuitId.ARENA_MOVE)
    result = circuit.synthesize(public_inputs, private_witness)
    print(result.signal_strings)
"""

from zkarena.circuits import arena, draw, duel, poker  # noqa: F401  (registers circuits)
from zkarena.circuits.base import (
    ActionCircuit,
    CircuitId,
    CircuitResult,
    get_circuit,
    registered_circuits,
)


__all__ = [
    "ActionCircuit",
    "CircuitId",
    "CircuitResult",
    "get_circuit",
    "registered_circuits",
]
