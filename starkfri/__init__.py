"""starkfri - Merkle commitments, Fiat-Shamir, FRI and a minimal STARK."""

from starkfri.errors import (
    InvalidParameters,
    MalformedProofError,
    RejectReason,
    StarkError,
    VerificationResult,
)
from starkfri.protocol import (
    StarkParameters,
    StarkProof,
    StarkProver,
    StarkVerifier,
    gen_proof,
    stark_verify,
    verify_proof_bytes,
)

__version__ = "0.1.0"

__all__ = [
    "StarkError",
    "InvalidParameters",
    "MalformedProofError",
    "RejectReason",
    "VerificationResult",
    "StarkParameters",
    "StarkProof",
    "StarkProver",
    "StarkVerifier",
    "gen_proof",
    "stark_verify",
    "verify_proof_bytes",
]
