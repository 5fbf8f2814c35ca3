"""Composition polynomial.

Combines every transition and boundary constraint into a single polynomial
with random coefficients drawn from the transcript:

    C(x) = sum_j a_j * c_j(x) * E(x) / (x^n - 1)
         + sum_k b_k * (t_col(x) - v_k) / (x - w^row_k)

where w generates the trace domain and E(x) = prod_{k=1..max_offset}(x - w^(n-k))
re-admits the last max_offset rows, on which transition constraints would
otherwise read past the end of the trace. C is a polynomial exactly when the
trace satisfies all constraints.

The same function runs on the prover (x is the whole LDE coset, ctx returns
arrays) and on the verifier (x is one point, ctx returns scalars).
"""

from typing import List, Sequence

from starkfri.constraints import BoundaryConstraint, ConstraintContext, ConstraintModule


def exemption_points(trace_length: int, trace_generator: int, max_offset: int, modulus: int) -> List[int]:
    """Trace-domain points of the rows exempt from transition constraints."""
    return [pow(trace_generator, trace_length - k, modulus) for k in range(1, max_offset + 1)]


def composition_values(
    air: ConstraintModule,
    ctx: ConstraintContext,
    x,
    boundaries: Sequence[BoundaryConstraint],
    trace_length: int,
    trace_generator: int,
    coefficients: Sequence,
):
    """Evaluate C at x.

    Args:
        air: Constraint module providing the transition constraints
        ctx: Prover or verifier constraint context positioned at x
        x: Field array (prover) or field scalar (verifier)
        boundaries: Boundary constraints from the public inputs
        trace_length: n
        trace_generator: Generator of the trace domain
        coefficients: num_transition_constraints + len(boundaries) field
                      elements, transition coefficients first

    Returns:
        C(x), shaped like x
    """
    field = type(x)
    p = field.order
    n_transition = air.num_transition_constraints
    if len(coefficients) != n_transition + len(boundaries):
        raise ValueError(
            f"expected {n_transition + len(boundaries)} coefficients, got {len(coefficients)}"
        )

    exemption = field(1)
    for point in exemption_points(trace_length, trace_generator, air.max_offset, p):
        exemption = exemption * (x - field(point))
    transition_quotient = exemption / (x ** trace_length - field(1))

    result = ctx.const(0)
    for coeff, value in zip(coefficients[:n_transition], air.transition_constraints(ctx)):
        result = result + coeff * value * transition_quotient

    for coeff, b in zip(coefficients[n_transition:], boundaries):
        numerator = ctx.col(b.column) - ctx.const(b.value)
        denominator = x - field(pow(trace_generator, b.row, p))
        result = result + coeff * numerator / denominator

    return result
