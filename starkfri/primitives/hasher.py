"""Pluggable collision-resistant hashing for commitments and the transcript."""

import hashlib
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Type

# --- Domain Separation Prefixes ---

LEAF_PREFIX = b"\x00"
NODE_PREFIX = b"\x01"


# --- Hasher Interface ---

class Hasher(ABC):
    """Maps bytes to a fixed-size digest.

    Subclasses only implement hash_bytes; leaf and node hashing are derived
    from it so every hasher commits to the same layouts.
    """

    hasher_id: str = ""
    digest_size: int = 0

    @abstractmethod
    def hash_bytes(self, data: bytes) -> bytes:
        """Digest of data (digest_size bytes)."""

    def hash_pair(self, left: bytes, right: bytes) -> bytes:
        """Internal Merkle node: H(0x01 ++ left ++ right)."""
        return self.hash_bytes(NODE_PREFIX + left + right)

    def hash_leaf(self, values: Iterable[int], element_size: int) -> bytes:
        """Merkle leaf digest of a row of field elements.

        Each value is encoded as element_size little-endian bytes. Leaf and
        node preimages start with different prefix bytes, so they never
        coincide even when their lengths match.
        """
        encoded = b"".join(int(v).to_bytes(element_size, "little") for v in values)
        return self.hash_bytes(LEAF_PREFIX + encoded)


class Sha256Hasher(Hasher):
    """SHA-256 from hashlib."""

    hasher_id = "sha256"
    digest_size = 32

    def hash_bytes(self, data: bytes) -> bytes:
        return hashlib.sha256(data).digest()


# --- Registry ---

HASHER_REGISTRY: Dict[str, Type[Hasher]] = {
    Sha256Hasher.hasher_id: Sha256Hasher,
}

DEFAULT_HASHER_ID = Sha256Hasher.hasher_id


def register_hasher(cls: Type[Hasher]) -> Type[Hasher]:
    """Register a Hasher subclass under its hasher_id (usable as a decorator)."""
    if not cls.hasher_id or cls.digest_size <= 0:
        raise ValueError(f"{cls.__name__} must define hasher_id and digest_size")
    HASHER_REGISTRY[cls.hasher_id] = cls
    return cls


def get_hasher(hasher_id: str = DEFAULT_HASHER_ID) -> Hasher:
    """Instantiate the hasher registered under hasher_id.

    Raises:
        KeyError: If no hasher is registered under that id
    """
    if hasher_id not in HASHER_REGISTRY:
        raise KeyError(
            f"No hasher registered as '{hasher_id}'. "
            f"Available: {list(HASHER_REGISTRY.keys())}"
        )
    return HASHER_REGISTRY[hasher_id]()
