"""FRI folding protocol.

Folding factor 2: a layer over domain D is paired as {x, -x} at positions
(i, i + |D|/2) and folded with the transcript challenge alpha into a layer over
{x^2}, halving both the domain and the degree bound:

    f'(x^2) = (f(x) + f(-x)) / 2 + alpha * (f(x) - f(-x)) / (2x)

Layers are committed while the degree bound exceeds 1. The last layer is then
a constant, which is absorbed into the transcript directly instead of being
Merkle-committed.
"""

import logging
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from starkfri.errors import RejectReason, VerificationError, VerificationResult
from starkfri.primitives.domain import EvaluationDomain
from starkfri.primitives.field import element_size
from starkfri.primitives.hasher import Hasher, get_hasher
from starkfri.primitives.merkle_tree import MerkleTree
from starkfri.primitives.transcript import Transcript
from starkfri.protocol.proof import FriLayerOpening, FriProof, FriQuery, Opening

logger = logging.getLogger(__name__)


# --- Configuration ---

@dataclass(frozen=True)
class FriParameters:
    """FRI parameters.

    Attributes:
        domain: Initial evaluation domain (coset of a 2-power subgroup)
        degree_bound: Claimed bound d, deg(f) < d (power of two)
        num_queries: Query rounds Q
    """
    domain: EvaluationDomain
    degree_bound: int
    num_queries: int

    @property
    def num_layers(self) -> int:
        """Committed layers, one per fold."""
        return self.degree_bound.bit_length() - 1

    def layer_domains(self) -> List[EvaluationDomain]:
        """Domains of the committed layers followed by the final layer's domain."""
        domains = [self.domain]
        for _ in range(self.num_layers):
            domains.append(domains[-1].square())
        return domains

    def validate(self) -> None:
        d = self.degree_bound
        if d < 2 or d & (d - 1):
            raise ValueError(f"degree_bound must be a power of two >= 2, got {d}")
        if self.domain.size < 2 * d:
            raise ValueError(f"domain size {self.domain.size} gives blowup < 2 for degree bound {d}")
        if self.num_queries < 1:
            raise ValueError(f"num_queries must be positive, got {self.num_queries}")


@dataclass
class FriLayer:
    """Prover-side state of one committed layer."""
    domain: EvaluationDomain
    values: object  # FieldArray of evaluations
    tree: MerkleTree
    alpha: object   # folding challenge drawn after committing this layer


@dataclass
class FriCommitment:
    """Result of the commit phase."""
    layers: List[FriLayer] = field(default_factory=list)
    final_values: object = None

    @property
    def layer_roots(self) -> List[bytes]:
        return [layer.tree.root() for layer in self.layers]

    @property
    def final_constant(self) -> int:
        return int(self.final_values[0])


# --- Folding ---

def fold(f_x, f_neg_x, x, alpha):
    """One FRI fold. Works element-wise on arrays (prover) and on scalars (verifier)."""
    field = type(f_x)
    two_inv = field(2) ** -1
    return (f_x + f_neg_x) * two_inv + alpha * (f_x - f_neg_x) * two_inv / x


def fold_layer(values, domain: EvaluationDomain, alpha):
    """Fold a whole layer; result is indexed by the squared domain."""
    half = domain.size // 2
    x = domain.elements()[:half]
    return fold(values[:half], values[half:], x, alpha)


def layer_positions(index: int, layer_size: int) -> tuple:
    """Positions (lo, hi) of the {x, -x} pair a query touches in a layer."""
    half = layer_size // 2
    lo = index % half
    return lo, lo + half


# --- Prover ---

class FriProver:
    """FRI prover: commit-fold, finalize, query."""

    def __init__(self, params: FriParameters, hasher: Optional[Hasher] = None,
                 executor: Optional[Executor] = None):
        params.validate()
        self.params = params
        self.hasher = hasher or get_hasher()
        self.executor = executor
        self._element_size = element_size(params.domain.field.order)

    def commit(self, evaluations, transcript: Transcript) -> FriCommitment:
        """Commit phase: merkelize -> absorb root -> derive alpha -> fold, per layer."""
        domain = self.params.domain
        if len(evaluations) != domain.size:
            raise ValueError(f"expected {domain.size} evaluations, got {len(evaluations)}")

        commitment = FriCommitment()
        values = domain.field(evaluations)
        for _ in range(self.params.num_layers):
            tree = self.commit_values(values)
            transcript.absorb(tree.root())
            alpha = transcript.challenge_field_element()
            commitment.layers.append(FriLayer(domain, values, tree, alpha))
            logger.debug("FRI layer %d: size %d root %s", len(commitment.layers) - 1,
                         domain.size, tree.root().hex())

            values = fold_layer(values, domain, alpha)
            domain = domain.square()

        commitment.final_values = values
        transcript.absorb([commitment.final_constant])
        return commitment

    def commit_values(self, values) -> MerkleTree:
        """Merkle tree with one leaf per evaluation."""
        leaves = [self.hasher.hash_leaf([v], self._element_size) for v in values]
        return MerkleTree.build(leaves, self.hasher, self.executor)

    def open(self, commitment: FriCommitment, indices: Sequence[int]) -> List[FriQuery]:
        """Query phase: open the {x, -x} pair in every layer for each index."""
        queries = []
        for index in indices:
            layers = []
            for layer in commitment.layers:
                lo, hi = layer_positions(index, layer.domain.size)
                layers.append(FriLayerOpening(
                    lo=self._open_position(layer, lo),
                    hi=self._open_position(layer, hi),
                ))
            queries.append(FriQuery(index, layers))
        return queries

    def prove(self, evaluations, transcript: Transcript) -> FriProof:
        """Standalone FRI proof: commit, draw query indices, open."""
        commitment = self.commit(evaluations, transcript)
        indices = transcript.challenge_indices(self.params.num_queries, self.params.domain.size)
        return FriProof(
            layer_roots=commitment.layer_roots,
            final_constant=commitment.final_constant,
            queries=self.open(commitment, indices),
        )

    @staticmethod
    def _open_position(layer: FriLayer, position: int) -> Opening:
        path = layer.tree.open(position)
        return Opening(position, [int(layer.values[position])], list(path.siblings))


# --- Verifier ---

class FriVerifier:
    """FRI verifier: replay commitments, check every query at every layer."""

    def __init__(self, params: FriParameters, hasher: Optional[Hasher] = None):
        params.validate()
        self.params = params
        self.hasher = hasher or get_hasher()
        self._element_size = element_size(params.domain.field.order)

    def verify(self, proof: FriProof, transcript: Transcript) -> VerificationResult:
        """Verify a standalone FRI proof; Accept or Reject(reason)."""
        try:
            self.check(proof, transcript)
        except VerificationError as e:
            logger.info("FRI proof rejected: %s", e)
            return VerificationResult.from_error(e)
        return VerificationResult.accept()

    def check(self, proof: FriProof, transcript: Transcript) -> None:
        """Raising form of verify()."""
        self.check_structure(proof)
        alphas = self.read_commitments(proof, transcript)
        indices = transcript.challenge_indices(self.params.num_queries, self.params.domain.size)
        if [q.index for q in proof.queries] != indices:
            raise VerificationError(RejectReason.MALFORMED_PROOF,
                                    "query indices do not match the transcript")
        self.check_queries(proof, alphas)

    def check_structure(self, proof: FriProof) -> None:
        """Shape checks that need no cryptography."""
        p = self.params.domain.field.order
        n_layers = self.params.num_layers
        if len(proof.layer_roots) != n_layers:
            raise VerificationError(RejectReason.MALFORMED_PROOF,
                                    f"expected {n_layers} FRI layers, got {len(proof.layer_roots)}")
        if not 0 <= proof.final_constant < p:
            raise VerificationError(RejectReason.MALFORMED_PROOF, "final constant out of range")
        if len(proof.queries) != self.params.num_queries:
            raise VerificationError(RejectReason.MALFORMED_PROOF,
                                    f"expected {self.params.num_queries} FRI queries, got {len(proof.queries)}")

        domains = self.params.layer_domains()
        for query in proof.queries:
            if not 0 <= query.index < self.params.domain.size:
                raise VerificationError(RejectReason.MALFORMED_PROOF, f"query index {query.index} out of range")
            if len(query.layers) != n_layers:
                raise VerificationError(RejectReason.MALFORMED_PROOF,
                                        f"query {query.index} opens {len(query.layers)} layers")
            for layer, opening in enumerate(query.layers):
                lo, hi = layer_positions(query.index, domains[layer].size)
                depth = domains[layer].size.bit_length() - 1
                for position, o in ((lo, opening.lo), (hi, opening.hi)):
                    if o.index != position:
                        raise VerificationError(
                            RejectReason.MALFORMED_PROOF,
                            f"query {query.index} layer {layer}: opened position {o.index}, expected {position}")
                    if len(o.values) != 1 or not 0 <= o.values[0] < p:
                        raise VerificationError(RejectReason.MALFORMED_PROOF,
                                                f"query {query.index} layer {layer}: bad opened value")
                    if len(o.siblings) != depth:
                        raise VerificationError(RejectReason.MALFORMED_PROOF,
                                                f"query {query.index} layer {layer}: path length {len(o.siblings)}")

    def read_commitments(self, proof: FriProof, transcript: Transcript) -> list:
        """Replay the commit phase on the transcript; returns the folding challenges."""
        alphas = []
        for root in proof.layer_roots:
            transcript.absorb(root)
            alphas.append(transcript.challenge_field_element())
        transcript.absorb([proof.final_constant])
        return alphas

    def check_queries(self, proof: FriProof, alphas: Sequence) -> None:
        """Merkle, folding and final-layer checks for every query.

        Raises:
            VerificationError: On the first failing check
        """
        domains = self.params.layer_domains()
        field = self.params.domain.field
        n_layers = len(proof.layer_roots)

        for query in proof.queries:
            for j, (root, opening) in enumerate(zip(proof.layer_roots, query.layers)):
                for o in (opening.lo, opening.hi):
                    leaf = self.hasher.hash_leaf(o.values, self._element_size)
                    if not MerkleTree.verify(root, o.index, leaf, o.path(), self.hasher):
                        raise VerificationError(
                            RejectReason.MERKLE_INCONSISTENCY,
                            f"query {query.index}: FRI layer {j} position {o.index} not under committed root")

            for j, opening in enumerate(query.layers):
                x = domains[j].element(opening.lo.index)
                folded = fold(field(opening.lo.values[0]), field(opening.hi.values[0]), x, alphas[j])

                if j + 1 < n_layers:
                    nxt = query.layers[j + 1]
                    # Folded position lo_j lands on the lo or hi side of the next pair
                    expected = nxt.lo if nxt.lo.index == opening.lo.index else nxt.hi
                    if expected.index != opening.lo.index or int(folded) != expected.values[0]:
                        raise VerificationError(
                            RejectReason.FOLDING_MISMATCH,
                            f"query {query.index}: fold of layer {j} disagrees with layer {j + 1}")
                elif int(folded) != proof.final_constant:
                    raise VerificationError(
                        RejectReason.DEGREE_VIOLATION,
                        f"query {query.index}: last fold {int(folded)} != final constant {proof.final_constant}")
