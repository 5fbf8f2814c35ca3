"""STARK proof verification.

Replays the prover's transcript in lockstep from the proof's commitments,
then checks at every query:

1. Trace and composition openings authenticate against their roots
2. The opened trace rows reproduce the opened composition value
3. The composition value is the FRI layer-0 value
4. FRI folding is consistent down to the final constant

Checks raise VerificationError internally; the public entry points convert the
first failure into a rejected VerificationResult, so adversarial input never
escapes as an exception.
"""

import logging
from typing import Sequence

from starkfri.constraints import VerifierConstraintContext
from starkfri.errors import (
    MalformedProofError,
    RejectReason,
    VerificationError,
    VerificationResult,
)
from starkfri.primitives.domain import EvaluationDomain
from starkfri.primitives.field import element_size
from starkfri.primitives.merkle_tree import MerkleTree
from starkfri.primitives.transcript import Transcript
from starkfri.protocol.composition import composition_values
from starkfri.protocol.fri import FriParameters, FriVerifier
from starkfri.protocol.parameters import TRANSCRIPT_LABEL, StarkParameters
from starkfri.protocol.proof import Opening, StarkProof, from_bytes
from starkfri.protocol.prover import expected_transcript_ops, trace_positions

logger = logging.getLogger(__name__)


class StarkVerifier:
    """Verifies STARK proofs for one parameter set."""

    def __init__(self, parameters: StarkParameters):
        parameters.validate()
        self.parameters = parameters
        self.field = parameters.field
        self.hasher = parameters.hasher
        self.air = parameters.constraints
        self.element_size = element_size(parameters.field_modulus)
        self.trace_domain = EvaluationDomain.subgroup(self.field, parameters.trace_length)
        self.lde_domain = EvaluationDomain.coset(self.field, parameters.lde_size)
        self.fri = FriVerifier(
            FriParameters(self.lde_domain, parameters.degree_bound, parameters.num_fri_queries),
            self.hasher,
        )

    def verify(self, public_inputs: Sequence[int], proof: StarkProof) -> VerificationResult:
        """Accept or Reject(reason) a proof for public_inputs.

        Raises:
            InvalidParameters: If public_inputs has a length the constraint set
                does not accept, or holds a value outside [0, p). These are
                caller errors, not properties of the proof.
        """
        public = self.parameters.check_public_inputs(public_inputs)
        try:
            self._check(public, proof)
        except VerificationError as e:
            logger.info("proof rejected: %s", e)
            return VerificationResult.from_error(e)
        logger.debug("proof accepted")
        return VerificationResult.accept()

    # --- Checks ---

    def _check(self, public: Sequence[int], proof: StarkProof) -> None:
        params = self.parameters
        p = params.field_modulus
        self._check_structure(proof)

        # Transcript replay
        transcript = Transcript(TRANSCRIPT_LABEL, p, self.hasher)
        transcript.absorb(params.to_bytes())
        transcript.absorb(public)
        transcript.absorb(proof.trace_root)
        boundaries = self.air.boundary_constraints(public, params.trace_length)
        coefficients = [transcript.challenge_field_element()
                        for _ in range(self.air.num_transition_constraints + len(boundaries))]
        transcript.absorb(proof.composition_root)
        alphas = self.fri.read_commitments(proof.fri, transcript)
        indices = transcript.challenge_indices(params.num_fri_queries, params.lde_size)

        for query in proof.queries:
            for opening in query.trace:
                self._check_opening(proof.trace_root, opening, f"query {query.index}: trace row")
            self._check_opening(proof.composition_root, query.composition,
                                f"query {query.index}: composition")

        recorded = [q.index for q in proof.queries]
        if recorded != indices:
            raise VerificationError(
                RejectReason.MALFORMED_PROOF,
                f"recorded query indices {recorded} differ from transcript-derived {indices}",
            )

        expected = expected_transcript_ops(params, len(boundaries))
        if transcript.counter != expected:
            raise VerificationError(
                RejectReason.TRANSCRIPT_DESYNC,
                f"verifier transcript performed {transcript.counter} operations, expected {expected}",
            )

        for query in proof.queries:
            ctx = VerifierConstraintContext(self.field, [o.values for o in query.trace])
            expected_value = composition_values(
                self.air, ctx, self.lde_domain.element(query.index), boundaries,
                params.trace_length, self.trace_domain.generator, coefficients,
            )
            if int(expected_value) != query.composition.values[0]:
                raise VerificationError(
                    RejectReason.COMPOSITION_MISMATCH,
                    f"query {query.index}: trace rows give C(x) = {int(expected_value)}, "
                    f"opened {query.composition.values[0]}",
                )

        if proof.fri.layer_roots[0] != proof.composition_root:
            raise VerificationError(RejectReason.MERKLE_INCONSISTENCY,
                                    "FRI layer 0 is not the committed composition")
        for query, fri_query in zip(proof.queries, proof.fri.queries):
            if fri_query.layers[0].lo.index == query.index:
                fri_value = fri_query.layers[0].lo.values[0]
            else:
                fri_value = fri_query.layers[0].hi.values[0]
            if fri_value != query.composition.values[0]:
                raise VerificationError(
                    RejectReason.COMPOSITION_MISMATCH,
                    f"query {query.index}: FRI layer 0 value differs from the composition opening",
                )

        self.fri.check_queries(proof.fri, alphas)

    def _check_structure(self, proof: StarkProof) -> None:
        """Shape checks, before any hashing."""
        params = self.parameters
        p = params.field_modulus
        digest_size = self.hasher.digest_size
        depth = params.lde_size.bit_length() - 1

        if proof.digest_size != digest_size or proof.element_size != self.element_size:
            raise VerificationError(
                RejectReason.MALFORMED_PROOF,
                f"proof uses {proof.digest_size}-byte digests and {proof.element_size}-byte elements",
            )
        for name, root in (("trace", proof.trace_root), ("composition", proof.composition_root)):
            if len(root) != digest_size:
                raise VerificationError(RejectReason.MALFORMED_PROOF, f"{name} root has {len(root)} bytes")
        if any(len(r) != digest_size for r in proof.fri.layer_roots):
            raise VerificationError(RejectReason.MALFORMED_PROOF, "bad FRI layer root size")
        if len(proof.queries) != params.num_fri_queries:
            raise VerificationError(
                RejectReason.MALFORMED_PROOF,
                f"expected {params.num_fri_queries} queries, got {len(proof.queries)}",
            )

        n_rows = self.air.max_offset + 1
        for query in proof.queries:
            if not 0 <= query.index < params.lde_size:
                raise VerificationError(RejectReason.MALFORMED_PROOF, f"query index {query.index} out of range")
            if len(query.trace) != n_rows:
                raise VerificationError(
                    RejectReason.MALFORMED_PROOF,
                    f"query {query.index} opens {len(query.trace)} trace rows, expected {n_rows}",
                )
            for opening, position in zip(query.trace, trace_positions(query.index, params)):
                if opening.index != position or len(opening.values) != self.air.n_columns:
                    raise VerificationError(RejectReason.MALFORMED_PROOF,
                                            f"query {query.index}: bad trace opening at {opening.index}")
                self._check_opening_shape(opening, depth, p, query.index)
            comp = query.composition
            if comp.index != query.index or len(comp.values) != 1:
                raise VerificationError(RejectReason.MALFORMED_PROOF,
                                        f"query {query.index}: bad composition opening")
            self._check_opening_shape(comp, depth, p, query.index)

        if [q.index for q in proof.fri.queries] != [q.index for q in proof.queries]:
            raise VerificationError(RejectReason.MALFORMED_PROOF, "FRI and trace query indices differ")
        self.fri.check_structure(proof.fri)

    @staticmethod
    def _check_opening_shape(opening: Opening, depth: int, p: int, index: int) -> None:
        if any(not 0 <= v < p for v in opening.values):
            raise VerificationError(RejectReason.MALFORMED_PROOF, f"query {index}: value out of field range")
        if len(opening.siblings) != depth:
            raise VerificationError(
                RejectReason.MALFORMED_PROOF,
                f"query {index}: path length {len(opening.siblings)}, expected {depth}",
            )

    def _check_opening(self, root: bytes, opening: Opening, what: str) -> None:
        leaf = self.hasher.hash_leaf(opening.values, self.element_size)
        if not MerkleTree.verify(root, opening.index, leaf, opening.path(), self.hasher):
            raise VerificationError(RejectReason.MERKLE_INCONSISTENCY,
                                    f"{what} {opening.index} does not authenticate")


# --- Entry Points ---

def stark_verify(public_inputs: Sequence[int], proof: StarkProof,
                 parameters: StarkParameters) -> VerificationResult:
    """Verify proof against public_inputs under parameters.

    Every property of the proof, however malformed, comes back as a
    VerificationResult. Only caller errors raise.

    Raises:
        InvalidParameters: If parameters do not validate, or public_inputs has
            the wrong length or a value outside [0, p)
    """
    return StarkVerifier(parameters).verify(public_inputs, proof)


def verify_proof_bytes(public_inputs: Sequence[int], data: bytes,
                       parameters: StarkParameters) -> VerificationResult:
    """Decode and verify a serialized proof; decode failures are MalformedProof rejections.

    The byte layout has no header, so digest and element sizes come from
    parameters.

    Raises:
        InvalidParameters: Same caller errors as stark_verify
    """
    verifier = StarkVerifier(parameters)
    parameters.check_public_inputs(public_inputs)
    try:
        proof = from_bytes(data, parameters.hasher.digest_size, parameters.element_size)
    except MalformedProofError as e:
        logger.info("proof rejected: undecodable: %s", e)
        return VerificationResult.reject(RejectReason.MALFORMED_PROOF, str(e))
    return verifier.verify(public_inputs, proof)
