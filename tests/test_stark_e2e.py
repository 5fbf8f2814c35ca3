"""
STARK End-to-End Tests
======================

Run: python -m pytest tests/test_stark_e2e.py -v

Proves with StarkProver and checks the result with StarkVerifier:
    - p = 97 Fibonacci scenario: accept [1, 1], reject a tampered boundary
    - Tampered proofs: composition root, trace openings, composition openings
    - Unsatisfying traces are caught by the low-degree test
    - Degree-2 constraints (square_chain) over the default field
"""

import dataclasses
from concurrent.futures import ThreadPoolExecutor

import pytest

from starkfri.errors import InvalidParameters, RejectReason, TranscriptDesyncError
from starkfri.protocol.parameters import StarkParameters
from starkfri.protocol.proof import to_bytes
from starkfri.protocol.prover import StarkProver, expected_transcript_ops, gen_proof, trace_positions
from starkfri.protocol.verifier import StarkVerifier, stark_verify, verify_proof_bytes

# Offset of the composition root in the canonical encoding (after the trace root)
COMPOSITION_ROOT_OFFSET = 32


class TestFibonacci97:

    def test_accepts_honest_proof(self, fib97_params):
        proof = gen_proof(fib97_params, [1, 1])
        result = stark_verify([1, 1], proof, fib97_params)
        assert result.accepted, str(result)
        assert str(result) == "Accept"

    def test_rejects_tampered_boundary(self, fib97_params):
        proof = gen_proof(fib97_params, [1, 1])
        result = stark_verify([2, 1], proof, fib97_params)
        assert not result.accepted
        assert str(result).startswith("Reject(")

    def test_claimed_result(self, fib97_params):
        proof = gen_proof(fib97_params, [1, 1, 21])
        assert stark_verify([1, 1, 21], proof, fib97_params).accepted
        assert not stark_verify([1, 1, 22], proof, fib97_params).accepted

    def test_proof_shape(self, fib97_params):
        proof = gen_proof(fib97_params, [1, 1])
        assert len(proof.queries) == 3
        assert proof.fri.layer_roots[0] == proof.composition_root
        for query in proof.queries:
            assert [o.index for o in query.trace] == trace_positions(query.index, fib97_params)

    def test_expected_transcript_ops(self, fib97_params):
        # 2 + 1 + (1 transition + 2 boundary) + 1 + 2 * 3 layers + 1 + 3 queries
        assert expected_transcript_ops(fib97_params, 2) == 17

    def test_serialized_round_trip(self, fib97_params):
        data = to_bytes(gen_proof(fib97_params, [1, 1]))
        assert verify_proof_bytes([1, 1], data, fib97_params).accepted

    @pytest.mark.parametrize("byte", [0, 13, 31])
    def test_flipped_composition_root(self, fib97_params, byte):
        data = bytearray(to_bytes(gen_proof(fib97_params, [1, 1])))
        data[COMPOSITION_ROOT_OFFSET + byte] ^= 0x01
        result = verify_proof_bytes([1, 1], bytes(data), fib97_params)
        assert not result.accepted
        assert result.reason in (RejectReason.MERKLE_INCONSISTENCY, RejectReason.MALFORMED_PROOF)

    def test_undecodable_bytes(self, fib97_params):
        result = verify_proof_bytes([1, 1], bytes(40), fib97_params)
        assert result.reason == RejectReason.MALFORMED_PROOF

    def test_other_parameters_reject(self, fib97_params):
        proof = gen_proof(fib97_params, [1, 1])
        other = dataclasses.replace(fib97_params, num_fri_queries=4)
        assert not stark_verify([1, 1], proof, other).accepted


class TestTampering:

    @pytest.fixture
    def proof(self, fib97_params):
        return gen_proof(fib97_params, [1, 1])

    def test_trace_value(self, fib97_params, proof):
        opening = proof.queries[0].trace[1]
        opening.values[0] = (opening.values[0] + 1) % 97
        result = stark_verify([1, 1], proof, fib97_params)
        assert result.reason == RejectReason.MERKLE_INCONSISTENCY

    def test_composition_value(self, fib97_params, proof):
        opening = proof.queries[1].composition
        opening.values[0] = (opening.values[0] + 1) % 97
        result = stark_verify([1, 1], proof, fib97_params)
        assert result.reason == RejectReason.MERKLE_INCONSISTENCY

    def test_value_out_of_field(self, fib97_params, proof):
        proof.queries[0].trace[0].values[0] = 97
        result = stark_verify([1, 1], proof, fib97_params)
        assert result.reason == RejectReason.MALFORMED_PROOF

    def test_dropped_query(self, fib97_params, proof):
        proof.queries.pop()
        proof.fri.queries.pop()
        result = stark_verify([1, 1], proof, fib97_params)
        assert result.reason == RejectReason.MALFORMED_PROOF

    def test_shifted_query_index(self, fib97_params, proof):
        index = (proof.queries[0].index + 1) % fib97_params.lde_size
        proof.queries[0].index = index
        proof.fri.queries[0].index = index
        result = stark_verify([1, 1], proof, fib97_params)
        assert result.reason == RejectReason.MALFORMED_PROOF

    def test_short_path(self, fib97_params, proof):
        proof.queries[2].trace[0].siblings.pop()
        result = stark_verify([1, 1], proof, fib97_params)
        assert result.reason == RejectReason.MALFORMED_PROOF


class TestProverInputs:

    def test_wrong_public_input_count(self, fib97_params):
        with pytest.raises(InvalidParameters):
            gen_proof(fib97_params, [1])

    def test_wrong_trace_length(self, fib97_params):
        with pytest.raises(InvalidParameters):
            StarkProver(fib97_params).prove([[1]] * 4, [1, 1])

    def test_wrong_trace_width(self, fib97_params):
        with pytest.raises(InvalidParameters):
            StarkProver(fib97_params).prove([[1, 2]] * 8, [1, 1])

    def test_invalid_parameters_before_proving(self):
        with pytest.raises(InvalidParameters):
            StarkProver(StarkParameters(field_modulus=97, trace_length=16))

    def test_verifier_wrong_public_input_count(self, fib97_params):
        proof = gen_proof(fib97_params, [1, 1])
        with pytest.raises(InvalidParameters):
            StarkVerifier(fib97_params).verify([1, 1, 2, 3], proof)
        with pytest.raises(InvalidParameters, match="public inputs"):
            stark_verify([1], proof, fib97_params)

    @pytest.mark.parametrize("public", [[98, 1], [1, 97], [-1, 1]])
    def test_non_canonical_public_inputs_refused_by_prover(self, fib97_params, public):
        with pytest.raises(InvalidParameters, match="canonical"):
            gen_proof(fib97_params, public)

    def test_non_canonical_public_inputs_refused_with_trace(self, fib97_params):
        trace = fib97_params.constraints.generate_trace([1, 1], 8, fib97_params.field)
        with pytest.raises(InvalidParameters):
            StarkProver(fib97_params).prove(trace, [98, 1])

    def test_public_input_congruent_to_proved_one_is_refused(self, fib97_params):
        """98 = 1 (mod 97) but names a different statement than [1, 1]."""
        proof = gen_proof(fib97_params, [1, 1])
        with pytest.raises(InvalidParameters):
            stark_verify([98, 1], proof, fib97_params)
        with pytest.raises(InvalidParameters):
            verify_proof_bytes([98, 1], to_bytes(proof), fib97_params)
        assert stark_verify([1, 1], proof, fib97_params).accepted

    def test_largest_canonical_public_input(self, fib97_params):
        proof = gen_proof(fib97_params, [96, 1])
        assert stark_verify([96, 1], proof, fib97_params).accepted

    def test_transcript_desync_is_distinct_error(self):
        assert not issubclass(TranscriptDesyncError, ValueError)


class TestDefaultField:

    def test_fibonacci(self, fib_large_params):
        proof = gen_proof(fib_large_params, [3, 7])
        assert stark_verify([3, 7], proof, fib_large_params).accepted
        assert not stark_verify([3, 8], proof, fib_large_params).accepted

    def test_square_chain(self, square_chain_params):
        proof = gen_proof(square_chain_params, [2])
        assert stark_verify([2], proof, square_chain_params).accepted
        assert len(proof.fri.layer_roots) == 4
        assert len(proof.queries[0].trace) == 2

    def test_executor_does_not_change_proof(self, fib_large_params):
        with ThreadPoolExecutor(max_workers=2) as pool:
            parallel = gen_proof(fib_large_params, [1, 2], executor=pool)
        assert to_bytes(parallel) == to_bytes(gen_proof(fib_large_params, [1, 2]))

    def test_unsatisfying_trace_fails_low_degree_test(self, fib_large_params):
        """A trace breaking the recurrence gives a composition far from low degree."""
        air = fib_large_params.constraints
        trace = air.generate_trace([1, 1], fib_large_params.trace_length, fib_large_params.field)
        trace[4] = [trace[4][0] + 1]
        proof = StarkProver(fib_large_params).prove(trace, [1, 1])
        result = stark_verify([1, 1], proof, fib_large_params)
        assert not result.accepted
        assert result.reason == RejectReason.DEGREE_VIOLATION
