"""Constraint evaluation modules.

Each AIR has its own ConstraintModule that evaluates its transition
constraints directly in readable Python code, and derives its boundary
constraints from the public inputs. StarkParameters.constraint_set names an
entry of CONSTRAINT_REGISTRY.
"""

from .base import (
    BoundaryConstraint,
    ConstraintContext,
    ConstraintModule,
    ProverConstraintContext,
    VerifierConstraintContext,
)
from .fibonacci import FibonacciConstraints
from .square_chain import SquareChainConstraints

# Registry mapping constraint-set names to constraint module classes
CONSTRAINT_REGISTRY: dict[str, type[ConstraintModule]] = {
    FibonacciConstraints.name: FibonacciConstraints,
    SquareChainConstraints.name: SquareChainConstraints,
}


def get_constraint_module(name: str) -> ConstraintModule:
    """Get constraint module instance for a constraint set.

    Args:
        name: Name of the constraint set (e.g., 'fibonacci')

    Returns:
        ConstraintModule instance

    Raises:
        KeyError: If no constraint module is registered under that name
    """
    if name in CONSTRAINT_REGISTRY:
        return CONSTRAINT_REGISTRY[name]()
    raise KeyError(
        f"No constraint module for '{name}'. "
        f"Available: {list(CONSTRAINT_REGISTRY.keys())}"
    )


__all__ = [
    "BoundaryConstraint",
    "ConstraintContext",
    "ProverConstraintContext",
    "VerifierConstraintContext",
    "ConstraintModule",
    "FibonacciConstraints",
    "SquareChainConstraints",
    "CONSTRAINT_REGISTRY",
    "get_constraint_module",
]
