"""Fibonacci AIR.

Single column a with a[i+2] = a[i+1] + a[i] (mod p).

Public inputs: [a0, a1], optionally followed by the claimed last value
a[n-1]. Each public input becomes a boundary constraint.
"""

from typing import List, Sequence

from starkfri.primitives.field import FieldClass
from .base import BoundaryConstraint, ConstraintContext, ConstraintModule


class FibonacciConstraints(ConstraintModule):
    """Constraint evaluation for the Fibonacci recurrence."""

    name = "fibonacci"
    n_columns = 1
    max_offset = 2
    constraint_degree = 1
    num_transition_constraints = 1
    public_input_counts = (2, 3)

    def transition_constraints(self, ctx: ConstraintContext) -> List:
        return [ctx.col(0, 2) - ctx.col(0, 1) - ctx.col(0, 0)]

    def boundary_constraints(self, public_inputs: Sequence[int], trace_length: int) -> List[BoundaryConstraint]:
        boundaries = [
            BoundaryConstraint(column=0, row=0, value=int(public_inputs[0])),
            BoundaryConstraint(column=0, row=1, value=int(public_inputs[1])),
        ]
        if len(public_inputs) == 3:
            boundaries.append(BoundaryConstraint(column=0, row=trace_length - 1, value=int(public_inputs[2])))
        return boundaries

    def generate_trace(self, public_inputs: Sequence[int], trace_length: int, field: FieldClass) -> List[List[int]]:
        p = field.order
        column = [int(public_inputs[0]) % p, int(public_inputs[1]) % p]
        while len(column) < trace_length:
            column.append((column[-1] + column[-2]) % p)
        return [[v] for v in column[:trace_length]]
