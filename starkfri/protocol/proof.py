"""STARK proof data structures and serialization.

Binary layout (all integers u64 little-endian, digests digest_size bytes,
field elements element_size bytes little-endian):

    trace_root | composition_root
    num_fri_layers | fri_layer_roots...
    fri_final_constant
    num_queries
    per query:
        index
        num_trace_openings | trace openings...
        composition opening
        per FRI layer: lo opening | hi opening

    opening := index | num_values | values... | num_siblings | siblings...

The encoding carries no header: digest_size and element_size are fixed by
the parameters (hasher and field modulus) that the decoder is given.
"""

import struct
from dataclasses import dataclass, field
from typing import Any

from starkfri.errors import MalformedProofError
from starkfri.primitives.merkle_tree import MerklePath

# --- Constants ---

_U64 = struct.Struct("<Q")


# --- Proof Data Structures ---

@dataclass
class Opening:
    """Leaf content at index in a committed tree, with its authentication path."""
    index: int
    values: list[int] = field(default_factory=list)
    siblings: list[bytes] = field(default_factory=list)

    def path(self) -> MerklePath:
        return MerklePath(self.index, tuple(self.siblings))


@dataclass
class FriLayerOpening:
    """The pair {x, -x} opened in one FRI layer (positions i and i + size/2)."""
    lo: Opening
    hi: Opening


@dataclass
class FriQuery:
    """All layer openings for one query index into the initial FRI domain."""
    index: int
    layers: list[FriLayerOpening] = field(default_factory=list)


@dataclass
class FriProof:
    """FRI low-degree proof: layer commitments, final constant, query openings."""
    layer_roots: list[bytes] = field(default_factory=list)
    final_constant: int = 0
    queries: list[FriQuery] = field(default_factory=list)


@dataclass
class StarkQuery:
    """Trace rows and composition value opened at one query index.

    trace[k] is the LDE row at index + k * blowup (mod lde_size).
    """
    index: int
    trace: list[Opening] = field(default_factory=list)
    composition: Opening = field(default_factory=lambda: Opening(0))


@dataclass
class StarkProof:
    """Complete STARK proof.

    Attributes:
        trace_root: Merkle root of the LDE trace rows
        composition_root: Merkle root of the composition evaluations
        fri: FRI proof for the composition polynomial; fri.queries[i] is
             opened at the same index as queries[i]
        queries: Trace and composition openings
        digest_size: Bytes per digest
        element_size: Bytes per encoded field element
    """
    trace_root: bytes = b""
    composition_root: bytes = b""
    fri: FriProof = field(default_factory=FriProof)
    queries: list[StarkQuery] = field(default_factory=list)
    digest_size: int = 32
    element_size: int = 8


# --- Binary Serialization ---

def to_bytes(proof: StarkProof) -> bytes:
    """Serialize a proof to its canonical byte encoding.

    Raises:
        ValueError: If the STARK and FRI query lists disagree
    """
    if len(proof.queries) != len(proof.fri.queries):
        raise ValueError(
            f"{len(proof.queries)} STARK queries but {len(proof.fri.queries)} FRI queries"
        )
    writer = _ProofWriter(proof.digest_size, proof.element_size)

    writer.digest(proof.trace_root)
    writer.digest(proof.composition_root)

    writer.u64(len(proof.fri.layer_roots))
    for root in proof.fri.layer_roots:
        writer.digest(root)
    writer.element(proof.fri.final_constant)

    writer.u64(len(proof.queries))
    for query, fri_query in zip(proof.queries, proof.fri.queries):
        if query.index != fri_query.index:
            raise ValueError(f"query index mismatch: {query.index} vs FRI {fri_query.index}")
        if len(fri_query.layers) != len(proof.fri.layer_roots):
            raise ValueError(f"FRI query {fri_query.index} has {len(fri_query.layers)} layers")
        writer.u64(query.index)
        writer.u64(len(query.trace))
        for opening in query.trace:
            writer.opening(opening)
        writer.opening(query.composition)
        for layer in fri_query.layers:
            writer.opening(layer.lo)
            writer.opening(layer.hi)

    return writer.getvalue()


def from_bytes(data: bytes, digest_size: int, elem_size: int) -> StarkProof:
    """Decode a proof from its canonical byte encoding.

    Args:
        data: Encoded proof
        digest_size: Bytes per digest (the hasher's digest size)
        elem_size: Bytes per field element (see field.element_size)

    Raises:
        MalformedProofError: On truncation, trailing data or impossible counts
        ValueError: If a size is not positive
    """
    if digest_size <= 0 or elem_size <= 0:
        raise ValueError("digest_size and elem_size must be positive")

    reader = _ProofReader(data, 0, digest_size, elem_size)
    proof = StarkProof(digest_size=digest_size, element_size=elem_size)
    proof.trace_root = reader.digest()
    proof.composition_root = reader.digest()

    n_layers = reader.count(digest_size)
    proof.fri.layer_roots = [reader.digest() for _ in range(n_layers)]
    proof.fri.final_constant = reader.element()

    n_queries = reader.count(_U64.size)
    for _ in range(n_queries):
        index = reader.u64()
        n_trace = reader.count(_U64.size)
        trace = [reader.opening() for _ in range(n_trace)]
        composition = reader.opening()
        layers = []
        for _ in range(n_layers):
            lo = reader.opening()
            hi = reader.opening()
            layers.append(FriLayerOpening(lo, hi))
        proof.queries.append(StarkQuery(index, trace, composition))
        proof.fri.queries.append(FriQuery(index, layers))

    if reader.remaining():
        raise MalformedProofError(f"{reader.remaining()} trailing bytes after proof")
    return proof


class _ProofWriter:
    """Accumulates the canonical encoding."""

    def __init__(self, digest_size: int, elem_size: int):
        self._parts: list[bytes] = []
        self._digest_size = digest_size
        self._elem_size = elem_size

    def u64(self, value: int) -> None:
        self._parts.append(_U64.pack(value))

    def digest(self, value: bytes) -> None:
        if len(value) != self._digest_size:
            raise ValueError(f"digest has {len(value)} bytes, expected {self._digest_size}")
        self._parts.append(value)

    def element(self, value: int) -> None:
        self._parts.append(int(value).to_bytes(self._elem_size, "little"))

    def opening(self, opening: Opening) -> None:
        self.u64(opening.index)
        self.u64(len(opening.values))
        for v in opening.values:
            self.element(v)
        self.u64(len(opening.siblings))
        for s in opening.siblings:
            self.digest(s)

    def getvalue(self) -> bytes:
        return b"".join(self._parts)


class _ProofReader:
    """Cursor over an encoded proof; every read is bounds-checked."""

    def __init__(self, data: bytes, offset: int, digest_size: int, elem_size: int):
        self._data = data
        self._pos = offset
        self._digest_size = digest_size
        self._elem_size = elem_size

    def remaining(self) -> int:
        return len(self._data) - self._pos

    def read(self, n: int) -> bytes:
        if n > self.remaining():
            raise MalformedProofError(f"truncated proof: wanted {n} bytes at offset {self._pos}")
        chunk = self._data[self._pos:self._pos + n]
        self._pos += n
        return chunk

    def u64(self) -> int:
        return _U64.unpack(self.read(_U64.size))[0]

    def count(self, min_item_size: int) -> int:
        """Read an item count that must fit in the remaining bytes."""
        n = self.u64()
        if n * min_item_size > self.remaining():
            raise MalformedProofError(f"count {n} exceeds remaining proof data")
        return n

    def digest(self) -> bytes:
        return bytes(self.read(self._digest_size))

    def element(self) -> int:
        return int.from_bytes(self.read(self._elem_size), "little")

    def opening(self) -> Opening:
        index = self.u64()
        values = [self.element() for _ in range(self.count(self._elem_size))]
        siblings = [self.digest() for _ in range(self.count(self._digest_size))]
        return Opening(index, values, siblings)


# --- JSON View ---

def proof_to_json(proof: StarkProof) -> dict[str, Any]:
    """Convert a STARK proof to a JSON-serializable dictionary (hex digests)."""

    def opening_to_json(o: Opening) -> dict[str, Any]:
        return {"index": o.index, "values": [str(v) for v in o.values],
                "siblings": [s.hex() for s in o.siblings]}

    j: dict[str, Any] = {
        "traceRoot": proof.trace_root.hex(),
        "compositionRoot": proof.composition_root.hex(),
        "friLayerRoots": [r.hex() for r in proof.fri.layer_roots],
        "friFinalConstant": str(proof.fri.final_constant),
        "queries": [],
    }
    for query, fri_query in zip(proof.queries, proof.fri.queries):
        j["queries"].append({
            "index": query.index,
            "trace": [opening_to_json(o) for o in query.trace],
            "composition": opening_to_json(query.composition),
            "fri": [{"lo": opening_to_json(layer.lo), "hi": opening_to_json(layer.hi)}
                    for layer in fri_query.layers],
        })
    return j
