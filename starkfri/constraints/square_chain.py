"""SquareChain AIR: a[i+1] = a[i]^2 + 1.

A degree-2 recurrence. Its composition polynomial has roughly twice the
degree of the trace, which exercises the degree-bound bookkeeping.

Public inputs: [a0], optionally followed by the claimed last value a[n-1].
"""

from typing import List, Sequence

from starkfri.primitives.field import FieldClass
from .base import BoundaryConstraint, ConstraintContext, ConstraintModule


class SquareChainConstraints(ConstraintModule):
    """Constraint evaluation for the squaring chain."""

    name = "square_chain"
    n_columns = 1
    max_offset = 1
    constraint_degree = 2
    num_transition_constraints = 1
    public_input_counts = (1, 2)

    def transition_constraints(self, ctx: ConstraintContext) -> List:
        a = ctx.col(0)
        return [ctx.col(0, 1) - a * a - ctx.const(1)]

    def boundary_constraints(self, public_inputs: Sequence[int], trace_length: int) -> List[BoundaryConstraint]:
        boundaries = [BoundaryConstraint(column=0, row=0, value=int(public_inputs[0]))]
        if len(public_inputs) == 2:
            boundaries.append(BoundaryConstraint(column=0, row=trace_length - 1, value=int(public_inputs[1])))
        return boundaries

    def generate_trace(self, public_inputs: Sequence[int], trace_length: int, field: FieldClass) -> List[List[int]]:
        p = field.order
        column = [int(public_inputs[0]) % p]
        while len(column) < trace_length:
            column.append((column[-1] * column[-1] + 1) % p)
        return [[v] for v in column]
