"""Protocol - FRI and the STARK prover/verifier built on it."""

from starkfri.protocol.fri import FriParameters, FriProver, FriVerifier, fold
from starkfri.protocol.parameters import StarkParameters
from starkfri.protocol.proof import (
    FriLayerOpening,
    FriProof,
    FriQuery,
    Opening,
    StarkProof,
    StarkQuery,
    from_bytes,
    proof_to_json,
    to_bytes,
)
from starkfri.protocol.prover import StarkProver, gen_proof
from starkfri.protocol.verifier import StarkVerifier, stark_verify, verify_proof_bytes

__all__ = [
    # FRI
    "FriParameters",
    "FriProver",
    "FriVerifier",
    "fold",
    # Configuration
    "StarkParameters",
    # Proof
    "Opening",
    "FriLayerOpening",
    "FriQuery",
    "FriProof",
    "StarkQuery",
    "StarkProof",
    "to_bytes",
    "from_bytes",
    "proof_to_json",
    # STARK
    "StarkProver",
    "gen_proof",
    "StarkVerifier",
    "stark_verify",
    "verify_proof_bytes",
]
