"""Abstract polynomial operations.

Protocol code goes through these helpers instead of calling galois directly,
so the field or polynomial backend can change without touching the FRI,
Merkle or transcript logic.
"""

import galois

from starkfri.primitives.domain import EvaluationDomain
from starkfri.primitives.field import FieldClass


def interpolate(points, values) -> galois.Poly:
    """Lowest-degree polynomial through (points[i], values[i]).

    Args:
        points: Distinct field elements (FieldArray)
        values: Field elements of the same length and field

    Returns:
        Polynomial of degree < len(points)
    """
    return galois.lagrange_poly(points, values)


def evaluate(poly: galois.Poly, points):
    """Evaluate poly at a scalar or at every element of an array."""
    return poly(points)


def evaluate_on_domain(poly: galois.Poly, domain: EvaluationDomain):
    """Evaluate poly at every point of domain, in index order."""
    return poly(domain.elements())


def low_degree_extension(values, trace_domain: EvaluationDomain, lde_domain: EvaluationDomain):
    """Extend values given on trace_domain to evaluations on lde_domain.

    Interpolates over the trace domain, then evaluates the interpolant on the
    (larger) LDE domain.
    """
    poly = interpolate(trace_domain.elements(), trace_domain.field(values))
    return evaluate_on_domain(poly, lde_domain)


def zerofier(points, field: FieldClass) -> galois.Poly:
    """Monic polynomial vanishing exactly on points."""
    return galois.Poly.Roots(field(points), field=field)


def degree(poly: galois.Poly) -> int:
    """Degree of poly (0 for constants, including the zero polynomial)."""
    return poly.degree
