"""Prime field GF(p) construction and helpers.

Uses galois for all field arithmetic. Field classes are cached per modulus so
that prover, verifier and transcript share one FieldArray subclass and their
elements compare and combine freely.
"""

from functools import lru_cache
from typing import Type

import galois

from starkfri.errors import InvalidParameters

# --- Constants ---

DEFAULT_MODULUS = 3 * 2**30 + 1
"""3221225473: 30-bit two-adicity, small enough for fast galois lookups."""

FieldClass = Type[galois.FieldArray]


# --- Field Construction ---

@lru_cache(maxsize=None)
def get_field(modulus: int) -> FieldClass:
    """Return the galois field class GF(modulus).

    Raises:
        InvalidParameters: If modulus is not an odd prime.
    """
    if modulus < 3 or not galois.is_prime(modulus):
        raise InvalidParameters(f"field modulus must be an odd prime, got {modulus}")
    return galois.GF(modulus)


def two_adicity(modulus: int) -> int:
    """Largest k such that 2^k divides modulus - 1."""
    k = 0
    m = modulus - 1
    while m % 2 == 0:
        m //= 2
        k += 1
    return k


def coset_offset(field: FieldClass) -> int:
    """Offset of the evaluation coset (the field's primitive element).

    A generator of the full multiplicative group lies outside every proper
    subgroup, so the coset never meets the trace domain.
    """
    return int(field.primitive_element)


def get_root_of_unity(field: FieldClass, n: int) -> int:
    """Return a primitive n-th root of unity for a power-of-two n.

    All roots are powers of the primitive element, so a root of order n is
    the square of the root of order 2n. This keeps the trace domain a
    subgroup of the extended domain.
    """
    p = field.order
    if n < 1 or n & (n - 1):
        raise InvalidParameters(f"domain size must be a power of two, got {n}")
    if (p - 1) % n:
        raise InvalidParameters(f"no subgroup of order {n} in GF({p})")
    return pow(int(field.primitive_element), (p - 1) // n, p)


# --- Byte Encoding ---

def element_size(modulus: int) -> int:
    """Bytes per field element in the canonical encoding."""
    return (modulus.bit_length() + 7) // 8


def element_to_bytes(value: int, size: int) -> bytes:
    """Fixed-width little-endian encoding of a field element."""
    return int(value).to_bytes(size, "little")


def element_from_bytes(data: bytes, modulus: int) -> int:
    """Decode a fixed-width little-endian field element.

    Raises:
        ValueError: If the encoded integer is not reduced modulo p.
    """
    value = int.from_bytes(data, "little")
    if value >= modulus:
        raise ValueError(f"encoded value {value} is not below the modulus {modulus}")
    return value
