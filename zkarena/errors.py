"""
Error Taxonomy
==============

Exception classes shared by the prover, verifier and session ledger.

Ledger rejections all derive from TransitionRejected and carry the same
public message. The specific reason is kept on the instance for internal
logging only.

Version: 0.1.0
"""


class ZKArenaError(Exception):
    """Base exception for all zkarena errors."""


# ============================================================================
# Off-chain (prover side)
# ============================================================================


class ConstraintViolation(ZKArenaError):
    """A gadget could not be satisfied by the supplied witness."""

    def __init__(self, label: str) -> None:
        super().__init__(f"Constraint violated: {label}")
        self.label = label


class WitnessUnsatisfiable(ZKArenaError):
    """No witness satisfies the circuit for the supplied inputs."""

    def __init__(self, circuit_id: str, reason: str) -> None:
        super().__init__(f"Witness unsatisfiable for {circuit_id}: {reason}")
        self.circuit_id = circuit_id
        self.reason = reason


class CircuitArtifactMissing(ZKArenaError):
    """Proving or verification material for a circuit is unavailable."""


class KeyRegistrationError(ZKArenaError):
    """A verification key could not be registered."""


# ============================================================================
# Ledger side
# ============================================================================


class SessionNotFound(ZKArenaError):
    """No session exists for the given identifier."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class TransitionRejected(ZKArenaError):
    """
    A submitted transition or action was rejected.

    str(exc) is always the same public message; `reason` is internal.
    """

    public_message = "Transition rejected"

    def __init__(self, reason: str) -> None:
        super().__init__(self.public_message)
        self.reason = reason


class ProofVerificationFailed(TransitionRejected):
    """A well-formed proof failed verification."""


class PhaseViolation(TransitionRejected):
    """The action is not legal in the session's current phase."""


class CommitmentMismatch(TransitionRejected):
    """A stale, replayed or tampered state reference."""


class ResourceAlreadyConsumed(TransitionRejected):
    """A one-time identifier was used twice."""


class NotParticipant(TransitionRejected):
    """The caller does not hold a participant slot in the session."""
