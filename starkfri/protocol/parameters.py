"""STARK configuration."""

import json
import struct
from dataclasses import asdict, dataclass

from starkfri.constraints import CONSTRAINT_REGISTRY, ConstraintModule, get_constraint_module
from starkfri.errors import InvalidParameters
from starkfri.primitives.field import DEFAULT_MODULUS, FieldClass, element_size, get_field, two_adicity
from starkfri.primitives.hasher import DEFAULT_HASHER_ID, HASHER_REGISTRY, Hasher, get_hasher
from starkfri.primitives.merkle_tree import next_power_of_two

# --- Constants ---

TRANSCRIPT_LABEL = b"starkfri.stark.v1"

# JSON key aliases (camelCase as written by other tooling -> field name)
_KEY_ALIASES = {
    "fieldModulus": "field_modulus",
    "traceLength": "trace_length",
    "blowupFactor": "blowup_factor",
    "numFriQueries": "num_fri_queries",
    "nQueries": "num_fri_queries",
    "hasherId": "hasher_id",
    "constraintSet": "constraint_set",
}


def _is_power_of_two(n: int) -> bool:
    return n > 0 and n & (n - 1) == 0


# --- Parameters ---

@dataclass(frozen=True)
class StarkParameters:
    """Public protocol parameters shared by prover and verifier.

    Attributes:
        field_modulus: Prime field order p
        trace_length: Rows in the execution trace (power of two)
        blowup_factor: LDE domain size / trace length (power of two, >= 2)
        num_fri_queries: Query rounds Q
        hasher_id: Registered Hasher for commitments and transcript
        constraint_set: Registered ConstraintModule name
    """
    field_modulus: int = DEFAULT_MODULUS
    trace_length: int = 8
    blowup_factor: int = 4
    num_fri_queries: int = 3
    hasher_id: str = DEFAULT_HASHER_ID
    constraint_set: str = "fibonacci"

    # --- Derived Values ---

    @property
    def lde_size(self) -> int:
        """Size of the low-degree-extension (and initial FRI) domain."""
        return self.trace_length * self.blowup_factor

    @property
    def field(self) -> FieldClass:
        return get_field(self.field_modulus)

    @property
    def hasher(self) -> Hasher:
        return get_hasher(self.hasher_id)

    @property
    def element_size(self) -> int:
        """Bytes per field element in proofs and leaves."""
        return element_size(self.field_modulus)

    @property
    def constraints(self) -> ConstraintModule:
        return get_constraint_module(self.constraint_set)

    @property
    def degree_bound(self) -> int:
        """Claimed degree bound of the composition polynomial (power of two)."""
        return next_power_of_two(self.trace_length * self.constraints.constraint_degree)

    @property
    def num_fri_layers(self) -> int:
        """Merkle-committed FRI layers: folds needed to bring the bound to 1."""
        return self.degree_bound.bit_length() - 1

    # --- Validation ---

    def validate(self) -> None:
        """Check the parameters are usable.

        Raises:
            InvalidParameters: Describing the first problem found
        """
        if self.hasher_id not in HASHER_REGISTRY:
            raise InvalidParameters(f"unknown hasher '{self.hasher_id}'")
        if self.constraint_set not in CONSTRAINT_REGISTRY:
            raise InvalidParameters(
                f"unknown constraint set '{self.constraint_set}', "
                f"available: {list(CONSTRAINT_REGISTRY.keys())}"
            )
        get_field(self.field_modulus)

        air = self.constraints
        if not _is_power_of_two(self.trace_length) or self.trace_length <= air.max_offset:
            raise InvalidParameters(
                f"trace_length must be a power of two greater than {air.max_offset}, "
                f"got {self.trace_length}"
            )
        if not _is_power_of_two(self.blowup_factor) or self.blowup_factor < 2:
            raise InvalidParameters(f"blowup_factor must be a power of two >= 2, got {self.blowup_factor}")
        if self.num_fri_queries < 1:
            raise InvalidParameters(f"num_fri_queries must be positive, got {self.num_fri_queries}")

        lde_bits = self.lde_size.bit_length() - 1
        if lde_bits > two_adicity(self.field_modulus):
            raise InvalidParameters(
                f"GF({self.field_modulus}) has no multiplicative subgroup of order {self.lde_size}"
            )
        if self.lde_size < 2 * self.degree_bound:
            raise InvalidParameters(
                f"blowup_factor {self.blowup_factor} is too small for constraint degree "
                f"{air.constraint_degree}: FRI needs lde_size ({self.lde_size}) >= "
                f"2 * degree_bound ({self.degree_bound})"
            )

    def check_public_inputs(self, public_inputs) -> list:
        """Validate public inputs against the constraint set and the field.

        Each value must be a canonical field element in [0, p); values are not
        reduced, so 98 is not accepted as a claim about 1 in GF(97).

        Returns:
            The public inputs as plain ints

        Raises:
            InvalidParameters: On a count the constraint set does not take, or
                a value outside [0, p)
        """
        air = self.constraints
        if not air.check_public_inputs(public_inputs):
            raise InvalidParameters(
                f"'{air.name}' takes {' or '.join(map(str, air.public_input_counts))} "
                f"public inputs, got {len(public_inputs)}"
            )
        values = [int(v) for v in public_inputs]
        for i, v in enumerate(values):
            if not 0 <= v < self.field_modulus:
                raise InvalidParameters(
                    f"public input {i} = {v} is not a canonical element of GF({self.field_modulus})"
                )
        return values

    # --- Serialization ---

    def to_bytes(self) -> bytes:
        """Canonical encoding absorbed into the transcript before anything else."""
        modulus = self.field_modulus.to_bytes((self.field_modulus.bit_length() + 7) // 8, "little")
        hasher_id = self.hasher_id.encode("utf-8")
        constraint_set = self.constraint_set.encode("utf-8")
        return b"".join([
            struct.pack("<Q", len(modulus)), modulus,
            struct.pack("<QQQ", self.trace_length, self.blowup_factor, self.num_fri_queries),
            struct.pack("<Q", len(hasher_id)), hasher_id,
            struct.pack("<Q", len(constraint_set)), constraint_set,
        ])

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "StarkParameters":
        """Build parameters from a dict with snake_case or camelCase keys.

        Raises:
            InvalidParameters: On unknown keys
        """
        kwargs = {}
        for key, value in data.items():
            name = _KEY_ALIASES.get(key, key)
            if name not in cls.__dataclass_fields__:
                raise InvalidParameters(f"unknown parameter '{key}'")
            kwargs[name] = value
        if "field_modulus" in kwargs:
            # Large moduli are often written as strings in JSON
            kwargs["field_modulus"] = int(kwargs["field_modulus"])
        return cls(**kwargs)

    @classmethod
    def from_json(cls, path: str) -> "StarkParameters":
        """Load parameters from a JSON file."""
        with open(path) as f:
            return cls.from_dict(json.load(f))
