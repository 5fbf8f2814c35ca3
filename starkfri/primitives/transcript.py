"""
Fiat-Shamir transcript over a running hash.

The transcript absorbs public data and commitments and produces challenges in
a deterministic, pseudorandom manner. Prover and verifier must perform the
same absorb/challenge calls in the same order; given identical histories, two
transcripts produce identical challenge sequences.

State is a running digest plus a counter. Every absorb and every challenge
advances the counter exactly once, and the counter is hashed into every
state update, so two challenges drawn back to back come from different
digests. Field challenges drawn back to back with no absorb in between are
also distinct as values (see challenge_field_element).
"""

import struct
from typing import Iterable, List, Optional, Union

from starkfri.primitives.field import element_size, get_field
from starkfri.primitives.hasher import Hasher, get_hasher

# --- Domain Separation Tags ---

_INIT_TAG = b"starkfri.transcript.init"
_BYTES_TAG = b"\x01"
_ELEMENTS_TAG = b"\x02"
_CHALLENGE_TAG = b"\x03"


class Transcript:
    """
    Fiat-Shamir state machine: absorb public data, squeeze challenges.

    Attributes:
        modulus: Field order challenges are sampled below
        hasher: Hash function driving the state
        state: Current running digest
        counter: Number of absorb/challenge operations performed so far
    """

    def __init__(self, label: Union[str, bytes], modulus: int, hasher: Optional[Hasher] = None):
        """
        Initialize transcript.

        Args:
            label: Domain-separation label (protocol name)
            modulus: Prime field order for challenge_field_element
            hasher: Hash function (SHA-256 when omitted)
        """
        if isinstance(label, str):
            label = label.encode("utf-8")
        self.hasher = hasher or get_hasher()
        self.modulus = modulus
        self.field = get_field(modulus)
        self.element_size = element_size(modulus)
        self.counter = 0
        self._last_field_challenge: Optional[int] = None
        self.state = self.hasher.hash_bytes(_INIT_TAG + struct.pack("<Q", len(label)) + label)

    # --- Absorption ---

    def absorb(self, data: Union[bytes, Iterable]) -> None:
        """
        Absorb a digest/byte string or a sequence of field elements.

        Field elements may be ints or galois scalars/arrays; they are reduced
        modulo p and encoded at fixed width.
        """
        if isinstance(data, (bytes, bytearray)):
            payload = _BYTES_TAG + struct.pack("<Q", len(data)) + bytes(data)
        else:
            values = [int(v) % self.modulus for v in _flatten(data)]
            encoded = b"".join(v.to_bytes(self.element_size, "little") for v in values)
            payload = _ELEMENTS_TAG + struct.pack("<Q", len(values)) + encoded
        self.state = self.hasher.hash_bytes(self.state + struct.pack("<Q", self.counter) + payload)
        self.counter += 1
        self._last_field_challenge = None

    # --- Challenges ---

    def challenge_field_element(self):
        """Derive a field element (galois scalar).

        Uniform over GF(p) after an absorb. When the previous operation was
        also a field challenge, its value is excluded and the result is
        uniform over the other p - 1 elements, so consecutive challenges
        never repeat. In small fields this bias is visible (GF(97) would
        otherwise repeat about once in 97 draws); for large p it is
        negligible.
        """
        value = self._sample_below(self.modulus, exclude=self._last_field_challenge)
        self._last_field_challenge = value
        return self.field(value)

    def challenge_index(self, bound: int) -> int:
        """Derive a uniformly distributed integer in [0, bound)."""
        if bound < 1:
            raise ValueError(f"index bound must be positive, got {bound}")
        value = self._sample_below(bound)
        self._last_field_challenge = None
        return value

    def challenge_indices(self, count: int, bound: int) -> List[int]:
        """Derive count indices in [0, bound), one challenge_index call each."""
        return [self.challenge_index(bound) for _ in range(count)]

    # --- Internal ---

    def _sample_below(self, bound: int, exclude: Optional[int] = None) -> int:
        """
        Rejection-sample an integer below bound.

        Each attempt masks a fresh digest down to bit_length(bound - 1) bits
        and retries when the result is >= bound, so the output carries no
        modulo bias. A value equal to exclude is rejected the same way when
        bound > 1. All attempts share one counter value; the counter advances
        once per call.
        """
        n_bits = (bound - 1).bit_length()
        n_bytes = max((n_bits + 7) // 8, 1)
        mask = (1 << n_bits) - 1
        prefix = self.state + struct.pack("<Q", self.counter) + _CHALLENGE_TAG

        attempt = 0
        while True:
            digest = self._expand(prefix + struct.pack("<Q", attempt), n_bytes)
            value = int.from_bytes(digest[:n_bytes], "little") & mask
            if value < bound and (value != exclude or bound == 1):
                break
            attempt += 1

        self.state = self.hasher.hash_bytes(prefix + struct.pack("<Q", attempt) + b"\xff")
        self.counter += 1
        return value

    def _expand(self, seed: bytes, n_bytes: int) -> bytes:
        """Hash seed into at least n_bytes bytes (counter-mode for wide moduli)."""
        out = self.hasher.hash_bytes(seed)
        block = 1
        while len(out) < n_bytes:
            out += self.hasher.hash_bytes(seed + struct.pack("<Q", block))
            block += 1
        return out


def _flatten(data: Iterable) -> List:
    """Flatten scalars, lists and (possibly 0-d) galois arrays into one list."""
    if hasattr(data, "ndim"):
        if data.ndim == 0:
            return [data]
        return list(data.reshape(-1))
    result = []
    for item in data:
        if hasattr(item, "ndim") or isinstance(item, (list, tuple)):
            result.extend(_flatten(item))
        else:
            result.append(item)
    return result
