"""
Action Circuit Framework
========================

Every transition kind is an ActionCircuit: a pure mapping from
(public inputs, private witness) to (public outputs, validity).

Signal layout follows the snarkjs convention: public outputs first
(with `valid` last among them), then public inputs, each in declared
order.

Version: 0.1.0
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

from zkarena.circuits.gadgets import all_of
from zkarena.crypto.field import parse_field, to_field, to_signed
from zkarena.errors import ConstraintViolation, WitnessUnsatisfiable


class CircuitId(str, Enum):
    """Closed set of transition circuits."""

    ARENA_SPAWN = "arena_spawn"
    ARENA_MOVE = "arena_move"
    ARENA_SHOOT = "arena_shoot"
    ARENA_DAMAGE = "arena_damage"
    ARENA_ITEM_COLLECT = "arena_item_collect"
    ARENA_WIN = "arena_win"
    DUEL_DECK = "duel_deck"
    DUEL_DRAW = "duel_draw"
    DUEL_SUMMON = "duel_summon"
    DUEL_BATTLE = "duel_battle"
    DUEL_DIRECT_ATTACK = "duel_direct_attack"
    POKER_HAND_RANK = "poker_hand_rank"
    DRAW_CARD = "draw_card"


Witness = Mapping[str, int | Sequence[int]]


@dataclass(frozen=True)
class CircuitResult:
    """Outcome of a successful synthesis."""

    circuit_id: CircuitId
    outputs: dict[str, int]
    public_inputs: dict[str, int]
    signals: list[int] = field(default_factory=list)

    @property
    def signal_strings(self) -> list[str]:
        """Signals as decimal strings (snarkjs public.json form)."""
        return [str(s) for s in self.signals]


class ActionCircuit(ABC):
    """
    Base class for transition circuits.

    Subclasses declare their schema as class attributes and implement
    `constrain`, which returns the public outputs and a mapping of named
    check bits. Synthesis fails unless every check bit is 1.
    """

    circuit_id: ClassVar[CircuitId]
    public_inputs: ClassVar[tuple[str, ...]]
    private_inputs: ClassVar[tuple[str, ...]] = ()
    outputs: ClassVar[tuple[str, ...]] = ()

    # Inputs that carry negative values (encoded as p - |x| on the wire)
    signed_inputs: ClassVar[frozenset[str]] = frozenset()

    # Private array inputs and their fixed lengths
    array_inputs: ClassVar[dict[str, int]] = {}

    @abstractmethod
    def constrain(
        self,
        pub: dict[str, int],
        priv: dict[str, Any],
    ) -> tuple[dict[str, int], dict[str, int]]:
        """Return (outputs, checks) for the given inputs."""

    @classmethod
    def signal_names(cls) -> tuple[str, ...]:
        return (*cls.outputs, "valid", *cls.public_inputs)

    @classmethod
    def signal_count(cls) -> int:
        return len(cls.outputs) + 1 + len(cls.public_inputs)

    @classmethod
    def decode_signals(cls, signals: Sequence[int | str]) -> dict[str, int]:
        """
        Map an ordered signal vector back to names.

        Raises:
            ValueError: If the vector has the wrong length or a bad element
        """
        if len(signals) != cls.signal_count():
            raise ValueError(
                f"{cls.circuit_id.value} expects {cls.signal_count()} signals, got {len(signals)}"
            )
        decoded = {}
        for name, raw in zip(cls.signal_names(), signals):
            value = parse_field(raw)
            decoded[name] = to_signed(value) if name in cls.signed_inputs else value
        return decoded

    def _normalize(self, public_inputs: Witness, private_witness: Witness) -> tuple[dict, dict]:
        missing = [n for n in self.public_inputs if n not in public_inputs]
        missing += [n for n in self.private_inputs if n not in private_witness]
        if missing:
            raise ConstraintViolation(f"missing inputs: {', '.join(missing)}")

        pub = {}
        for name in self.public_inputs:
            value = public_inputs[name]
            if not isinstance(value, int) or isinstance(value, bool):
                raise ConstraintViolation(f"{name} must be an integer")
            pub[name] = to_signed(value) if name in self.signed_inputs else to_field(value)

        priv: dict[str, Any] = {}
        for name in self.private_inputs:
            value = private_witness[name]
            if name in self.array_inputs:
                if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
                    raise ConstraintViolation(f"{name} must be a sequence")
                if len(value) != self.array_inputs[name]:
                    raise ConstraintViolation(f"{name} must have {self.array_inputs[name]} entries")
                if not all(isinstance(v, int) and not isinstance(v, bool) for v in value):
                    raise ConstraintViolation(f"{name} entries must be integers")
                priv[name] = [int(v) for v in value]
            else:
                if not isinstance(value, int) or isinstance(value, bool):
                    raise ConstraintViolation(f"{name} must be an integer")
                priv[name] = int(value)
        return pub, priv

    def synthesize(self, public_inputs: Witness, private_witness: Witness) -> CircuitResult:
        """
        Build the public signal vector for a satisfying witness.

        Raises:
            WitnessUnsatisfiable: If any constraint fails
        """
        try:
            pub, priv = self._normalize(public_inputs, private_witness)
            outputs, checks = self.constrain(pub, priv)
            valid = all_of(list(checks.values()))
            if valid != 1:
                failed = [label for label, bit in checks.items() if bit != 1]
                raise ConstraintViolation(", ".join(failed))
        except ConstraintViolation as e:
            raise WitnessUnsatisfiable(self.circuit_id.value, e.label) from e

        ordered_outputs = {name: outputs[name] for name in self.outputs}
        signals = [to_field(ordered_outputs[n]) for n in self.outputs]
        signals.append(valid)
        signals.extend(to_field(pub[n]) for n in self.public_inputs)

        return CircuitResult(
            circuit_id=self.circuit_id,
            outputs={**ordered_outputs, "valid": valid},
            public_inputs=pub,
            signals=signals,
        )


# ============================================================================
# Registry
# ============================================================================

_REGISTRY: dict[CircuitId, ActionCircuit] = {}


def register(cls: type[ActionCircuit]) -> type[ActionCircuit]:
    """Class decorator adding a circuit to the dispatch table."""
    _REGISTRY[cls.circuit_id] = cls()
    return cls


def get_circuit(circuit_id: CircuitId | str) -> ActionCircuit:
    """
    Look up a circuit by identifier.

    Raises:
        ValueError: If the identifier is unknown
    """
    return _REGISTRY[CircuitId(circuit_id)]


def registered_circuits() -> list[CircuitId]:
    return list(_REGISTRY)
