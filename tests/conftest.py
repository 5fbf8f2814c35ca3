"""
Shared fixtures for starkfri tests.

Two parameter sets recur: the small p = 97 Fibonacci scenario, where every
value can be checked by hand, and the default 3 * 2^30 + 1 field, large
enough that soundness checks fail with overwhelming probability.
"""

import pytest

from starkfri.primitives.field import DEFAULT_MODULUS, get_field
from starkfri.protocol.parameters import StarkParameters

SMALL_MODULUS = 97


@pytest.fixture
def small_field():
    return get_field(SMALL_MODULUS)


@pytest.fixture
def large_field():
    return get_field(DEFAULT_MODULUS)


@pytest.fixture
def fib97_params() -> StarkParameters:
    """p = 97, trace length 8, blowup 4, 3 queries."""
    return StarkParameters(
        field_modulus=SMALL_MODULUS,
        trace_length=8,
        blowup_factor=4,
        num_fri_queries=3,
        constraint_set="fibonacci",
    )


@pytest.fixture
def fib_large_params() -> StarkParameters:
    return StarkParameters(trace_length=8, blowup_factor=4, num_fri_queries=16)


@pytest.fixture
def square_chain_params() -> StarkParameters:
    return StarkParameters(trace_length=8, blowup_factor=4, num_fri_queries=8,
                           constraint_set="square_chain")
