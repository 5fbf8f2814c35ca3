"""STARK proof generation.

Pipeline: trace -> interpolation -> low-degree extension -> Merkle commit ->
constraint coefficients -> composition polynomial -> Merkle commit -> FRI ->
query indices -> openings.

Every absorb and challenge goes through one Transcript in a fixed order that
StarkVerifier replays exactly.
"""

import logging
from concurrent.futures import Executor
from typing import List, Optional, Sequence

from starkfri.constraints import ProverConstraintContext
from starkfri.errors import InvalidParameters, TranscriptDesyncError
from starkfri.primitives.domain import EvaluationDomain
from starkfri.primitives.field import element_size
from starkfri.primitives.merkle_tree import MerkleTree
from starkfri.primitives.polynomial import low_degree_extension
from starkfri.primitives.transcript import Transcript
from starkfri.protocol.composition import composition_values
from starkfri.protocol.fri import FriParameters, FriProver
from starkfri.protocol.parameters import TRANSCRIPT_LABEL, StarkParameters
from starkfri.protocol.proof import FriProof, Opening, StarkProof, StarkQuery

logger = logging.getLogger(__name__)


def expected_transcript_ops(parameters: StarkParameters, num_boundaries: int) -> int:
    """Absorb/challenge operations in a complete proof transcript."""
    air = parameters.constraints
    return (
        2                                   # parameters, public inputs
        + 1                                 # trace root
        + air.num_transition_constraints + num_boundaries
        + 1                                 # composition root
        + 2 * parameters.num_fri_layers     # layer roots and alphas
        + 1                                 # final constant
        + parameters.num_fri_queries
    )


def trace_positions(index: int, parameters: StarkParameters) -> List[int]:
    """LDE positions of the rows a query at index opens (x, x*w, x*w^2, ...)."""
    n = parameters.lde_size
    beta = parameters.blowup_factor
    return [(index + k * beta) % n for k in range(parameters.constraints.max_offset + 1)]


class StarkProver:
    """Generates STARK proofs for one parameter set."""

    def __init__(self, parameters: StarkParameters, executor: Optional[Executor] = None):
        """
        Args:
            parameters: Protocol parameters (validated here)
            executor: Optional executor for Merkle level hashing
        """
        parameters.validate()
        self.parameters = parameters
        self.executor = executor
        self.field = parameters.field
        self.hasher = parameters.hasher
        self.air = parameters.constraints
        self.element_size = element_size(parameters.field_modulus)
        self.trace_domain = EvaluationDomain.subgroup(self.field, parameters.trace_length)
        self.lde_domain = EvaluationDomain.coset(self.field, parameters.lde_size)
        self.fri_params = FriParameters(self.lde_domain, parameters.degree_bound, parameters.num_fri_queries)

    def prove(self, trace: Sequence[Sequence[int]], public_inputs: Sequence[int]) -> StarkProof:
        """Generate a proof that trace satisfies the constraint set under public_inputs.

        Args:
            trace: trace_length rows of n_columns integers
            public_inputs: Values the boundary constraints pin

        Raises:
            InvalidParameters: If the trace or public inputs have the wrong shape,
                or a public input is not a canonical field element
        """
        public = self._check_inputs(trace, public_inputs)
        params = self.parameters
        p = params.field_modulus

        transcript = Transcript(TRANSCRIPT_LABEL, p, self.hasher)
        transcript.absorb(params.to_bytes())
        transcript.absorb(public)

        # === Trace commitment ===
        columns = [[int(row[c]) % p for row in trace] for c in range(self.air.n_columns)]
        lde_columns = [low_degree_extension(col, self.trace_domain, self.lde_domain) for col in columns]
        lde_rows = [[int(col[i]) for col in lde_columns] for i in range(params.lde_size)]
        trace_tree = MerkleTree.build(
            [self.hasher.hash_leaf(row, self.element_size) for row in lde_rows],
            self.hasher, self.executor,
        )
        transcript.absorb(trace_tree.root())
        logger.debug("trace committed: %d columns, lde_size %d, root %s",
                     len(columns), params.lde_size, trace_tree.root().hex())

        # === Composition ===
        boundaries = self.air.boundary_constraints(public, params.trace_length)
        coefficients = [transcript.challenge_field_element()
                        for _ in range(self.air.num_transition_constraints + len(boundaries))]
        ctx = ProverConstraintContext(lde_columns, params.blowup_factor)
        composition = composition_values(
            self.air, ctx, self.lde_domain.elements(), boundaries,
            params.trace_length, self.trace_domain.generator, coefficients,
        )

        fri_prover = FriProver(self.fri_params, self.hasher, self.executor)
        composition_tree = fri_prover.commit_values(composition)
        transcript.absorb(composition_tree.root())
        logger.debug("composition committed: degree bound %d, root %s",
                     params.degree_bound, composition_tree.root().hex())

        # === FRI ===
        commitment = fri_prover.commit(composition, transcript)
        logger.debug("FRI committed %d layers, final constant %d",
                     len(commitment.layers), commitment.final_constant)

        # === Queries ===
        indices = transcript.challenge_indices(params.num_fri_queries, params.lde_size)
        expected = expected_transcript_ops(params, len(boundaries))
        if transcript.counter != expected:
            raise TranscriptDesyncError(
                f"prover transcript performed {transcript.counter} operations, expected {expected}"
            )
        logger.debug("query indices %s", indices)

        queries = []
        for index in indices:
            trace_openings = [
                Opening(pos, lde_rows[pos], list(trace_tree.open(pos).siblings))
                for pos in trace_positions(index, params)
            ]
            comp_opening = Opening(index, [int(composition[index])],
                                   list(composition_tree.open(index).siblings))
            queries.append(StarkQuery(index, trace_openings, comp_opening))

        return StarkProof(
            trace_root=trace_tree.root(),
            composition_root=composition_tree.root(),
            fri=FriProof(
                layer_roots=commitment.layer_roots,
                final_constant=commitment.final_constant,
                queries=fri_prover.open(commitment, indices),
            ),
            queries=queries,
            digest_size=self.hasher.digest_size,
            element_size=self.element_size,
        )

    def _check_inputs(self, trace: Sequence[Sequence[int]], public_inputs: Sequence[int]) -> List[int]:
        n = self.parameters.trace_length
        if len(trace) != n:
            raise InvalidParameters(f"trace has {len(trace)} rows, expected trace_length {n}")
        for i, row in enumerate(trace):
            if len(row) != self.air.n_columns:
                raise InvalidParameters(
                    f"trace row {i} has {len(row)} columns, '{self.air.name}' expects {self.air.n_columns}"
                )
        return self.parameters.check_public_inputs(public_inputs)


def gen_proof(parameters: StarkParameters, public_inputs: Sequence[int],
              trace: Optional[Sequence[Sequence[int]]] = None,
              executor: Optional[Executor] = None) -> StarkProof:
    """Prove with an honest trace generated by the constraint module when none is given."""
    if trace is None:
        parameters.validate()
        public_inputs = parameters.check_public_inputs(public_inputs)
        trace = parameters.constraints.generate_trace(public_inputs, parameters.trace_length, parameters.field)
    return StarkProver(parameters, executor).prove(trace, public_inputs)
