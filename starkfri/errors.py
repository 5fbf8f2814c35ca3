"""Error types and verification outcomes.

Prover-side problems are raised as exceptions before any cryptographic work
starts. Verifier-side problems are carried internally by VerificationError and
surface to callers as a VerificationResult, so a hostile proof never crashes
the verifier.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class StarkError(Exception):
    """Base class for all errors raised by this package."""


class InvalidParameters(StarkError, ValueError):
    """Configuration or prover input is unusable (raised before proving starts)."""


class EmptyInputError(StarkError, ValueError):
    """A commitment was requested over an empty sequence."""


class IndexOutOfRangeError(StarkError, IndexError):
    """A leaf index lies outside the committed tree."""


class MalformedProofError(StarkError, ValueError):
    """A proof byte stream could not be decoded."""


class TranscriptDesyncError(StarkError):
    """Prover-side transcript ordering bug."""


class RejectReason(Enum):
    """Why the verifier rejected a proof."""
    MALFORMED_PROOF = "MalformedProof"
    MERKLE_INCONSISTENCY = "MerkleInconsistency"
    FOLDING_MISMATCH = "FoldingMismatch"
    DEGREE_VIOLATION = "DegreeViolation"
    COMPOSITION_MISMATCH = "CompositionMismatch"
    TRANSCRIPT_DESYNC = "TranscriptDesync"

    def __str__(self) -> str:
        return self.value


class VerificationError(StarkError):
    """A verification check failed.

    Raised inside the verifier and converted to a rejected VerificationResult
    at its public boundary.
    """

    def __init__(self, reason: RejectReason, detail: str = ""):
        super().__init__(f"{reason}: {detail}" if detail else str(reason))
        self.reason = reason
        self.detail = detail


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a verification: Accept, or Reject(reason)."""
    accepted: bool
    reason: Optional[RejectReason] = None
    detail: str = ""

    @classmethod
    def accept(cls) -> "VerificationResult":
        return cls(accepted=True)

    @classmethod
    def reject(cls, reason: RejectReason, detail: str = "") -> "VerificationResult":
        return cls(accepted=False, reason=reason, detail=detail)

    @classmethod
    def from_error(cls, error: VerificationError) -> "VerificationResult":
        return cls.reject(error.reason, error.detail)

    def __bool__(self) -> bool:
        return self.accepted

    def __str__(self) -> str:
        if self.accepted:
            return "Accept"
        return f"Reject({self.reason}: {self.detail})" if self.detail else f"Reject({self.reason})"
