"""Base classes for constraint evaluation.

ConstraintContext provides a uniform interface for constraint evaluation that
works for both prover (returns arrays) and verifier (returns scalars). The same
constraint code serves both sides thanks to galois broadcasting.

Example:
    def transition_constraints(self, ctx):
        return [ctx.col(0, 2) - ctx.col(0, 1) - ctx.col(0)]

    # Prover: one value per LDE point
    prover_result = module.transition_constraints(ProverConstraintContext(lde, blowup))

    # Verifier: one value at the queried point
    verifier_result = module.transition_constraints(VerifierConstraintContext(field, rows))
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from starkfri.primitives.field import FieldClass


@dataclass(frozen=True)
class BoundaryConstraint:
    """Asserts trace[row][column] == value."""
    column: int
    row: int
    value: int


class ConstraintContext(ABC):
    """Uniform interface for constraint evaluation - works for prover and verifier."""

    @abstractmethod
    def col(self, column: int, offset: int = 0):
        """Get a trace column, offset rows ahead of the current one.

        Args:
            column: Column index
            offset: Row offset (0 = current row, 1 = next row, ...)

        Returns:
            Prover: array of values at all LDE points
            Verifier: scalar value at the queried point
        """

    @abstractmethod
    def const(self, value: int):
        """Lift an integer constant into the field (galois does not mix ints into +/-)."""


class ProverConstraintContext(ConstraintContext):
    """Prover implementation - returns arrays over the LDE domain.

    On the extended domain the trace generator is generator_lde^blowup, so a
    row offset of k is a shift of k * blowup positions.
    """

    def __init__(self, lde_columns: Sequence, blowup: int):
        self._columns = lde_columns
        self._blowup = blowup

    def col(self, column: int, offset: int = 0):
        values = self._columns[column]
        if offset == 0:
            return values
        return type(values)(np.roll(np.asarray(values), -offset * self._blowup))

    def const(self, value: int):
        field = type(self._columns[0])
        return field(value % field.order)


class VerifierConstraintContext(ConstraintContext):
    """Verifier implementation - returns scalars from opened trace rows.

    rows[k] holds the opened row at x * trace_generator^k.
    """

    def __init__(self, field: FieldClass, rows: Sequence[Sequence[int]]):
        self._field = field
        self._rows = rows

    def col(self, column: int, offset: int = 0):
        return self._field(self._rows[offset][column])

    def const(self, value: int):
        return self._field(value % self._field.order)


class ConstraintModule(ABC):
    """An AIR: trace shape, transition and boundary constraints.

    Attributes:
        name: Registry name
        n_columns: Trace width
        max_offset: Largest row offset a transition constraint reads; the last
                    max_offset rows are exempt from transition constraints
        constraint_degree: Max total degree of transition constraints in the
                           trace columns
        num_transition_constraints: Length of transition_constraints() output
        public_input_counts: Accepted lengths of the public input vector
    """

    name: str = ""
    n_columns: int = 1
    max_offset: int = 1
    constraint_degree: int = 1
    num_transition_constraints: int = 1
    public_input_counts: Tuple[int, ...] = ()

    @abstractmethod
    def transition_constraints(self, ctx: ConstraintContext) -> List:
        """Constraint values; zero on every non-exempt row of a valid trace."""

    @abstractmethod
    def boundary_constraints(self, public_inputs: Sequence[int], trace_length: int) -> List[BoundaryConstraint]:
        """Boundary assertions implied by the public inputs."""

    @abstractmethod
    def generate_trace(self, public_inputs: Sequence[int], trace_length: int, field: FieldClass) -> List[List[int]]:
        """Honest execution trace (trace_length rows of n_columns ints)."""

    def check_public_inputs(self, public_inputs: Sequence[int]) -> bool:
        """True if the number of public inputs is one this AIR accepts."""
        return len(public_inputs) in self.public_input_counts
