"""Primitives - field, domains, polynomials, hashing, Merkle commitments, transcript."""

from starkfri.primitives.domain import EvaluationDomain
from starkfri.primitives.field import (
    DEFAULT_MODULUS,
    coset_offset,
    element_size,
    get_field,
    get_root_of_unity,
    two_adicity,
)
from starkfri.primitives.hasher import (
    HASHER_REGISTRY,
    Hasher,
    Sha256Hasher,
    get_hasher,
    register_hasher,
)
from starkfri.primitives.merkle_tree import (
    Digest,
    MerklePath,
    MerkleRoot,
    MerkleTree,
    next_power_of_two,
)
from starkfri.primitives.transcript import Transcript

__all__ = [
    # Field
    "DEFAULT_MODULUS",
    "get_field",
    "two_adicity",
    "coset_offset",
    "get_root_of_unity",
    "element_size",
    # Domain
    "EvaluationDomain",
    # Hashing
    "Hasher",
    "Sha256Hasher",
    "HASHER_REGISTRY",
    "get_hasher",
    "register_hasher",
    # Merkle Tree
    "MerkleTree",
    "MerklePath",
    "MerkleRoot",
    "Digest",
    "next_power_of_two",
    # Transcript
    "Transcript",
]
