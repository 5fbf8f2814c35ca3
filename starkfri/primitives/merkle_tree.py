"""Binary Merkle tree commitment over leaf digests."""

from concurrent.futures import Executor
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from starkfri.errors import EmptyInputError, IndexOutOfRangeError
from starkfri.primitives.hasher import Hasher, get_hasher

# --- Type Aliases ---

Digest = bytes
MerkleRoot = bytes


# --- Data Classes ---

@dataclass(frozen=True)
class MerklePath:
    """Authentication path for one leaf.

    Attributes:
        index: Leaf index the path was opened at
        siblings: Sibling digest at each level, ordered leaf to root
    """
    index: int
    siblings: Tuple[Digest, ...]

    def __len__(self) -> int:
        return len(self.siblings)


# --- Helpers ---

def next_power_of_two(n: int) -> int:
    """Smallest power of two >= n (1 for n <= 1)."""
    return 1 << max(n - 1, 0).bit_length()


# --- Merkle Tree ---

class MerkleTree:
    """Merkle tree stored as a flat node array.

    Node i has children 2i+1 and 2i+2; the root is node 0 and the size leaves
    occupy nodes[size-1:]. Leaves are padded to a power of two by repeating the
    last leaf.
    """

    def __init__(self, nodes: List[Digest], num_leaves: int, hasher: Hasher):
        self.nodes = nodes
        self.num_leaves = num_leaves
        self.size = (len(nodes) + 1) // 2
        self.hasher = hasher

    # --- Core Operations ---

    @classmethod
    def build(
        cls,
        leaves: Sequence[Digest],
        hasher: Optional[Hasher] = None,
        executor: Optional[Executor] = None,
    ) -> "MerkleTree":
        """Commit to an ordered sequence of leaf digests.

        Args:
            leaves: Leaf digests, in index order
            hasher: Node hash (SHA-256 when omitted)
            executor: Optional pool; each level's hashes are mapped over it,
                      with a barrier between levels

        Raises:
            EmptyInputError: If leaves is empty
        """
        if len(leaves) == 0:
            raise EmptyInputError("cannot build a Merkle tree over zero leaves")
        hasher = hasher or get_hasher()

        size = next_power_of_two(len(leaves))
        padded = list(leaves) + [leaves[-1]] * (size - len(leaves))

        nodes: List[Digest] = [b""] * (2 * size - 1)
        nodes[size - 1:] = padded

        # Level starting at node `start` has start + 1 nodes; its parents start at start // 2.
        start = size - 1
        while start > 0:
            parent_start = (start - 1) // 2
            pairs = [(nodes[2 * i + 1], nodes[2 * i + 2]) for i in range(parent_start, start)]
            if executor is not None:
                digests = list(executor.map(lambda pair: hasher.hash_pair(*pair), pairs))
            else:
                digests = [hasher.hash_pair(left, right) for left, right in pairs]
            nodes[parent_start:start] = digests
            start = parent_start

        return cls(nodes, len(leaves), hasher)

    def root(self) -> MerkleRoot:
        """Return the Merkle root commitment."""
        return self.nodes[0]

    def leaf(self, index: int) -> Digest:
        """Leaf digest at index (padding leaves included)."""
        self._check_index(index)
        return self.nodes[self.size - 1 + index]

    def open(self, index: int) -> MerklePath:
        """Authentication path for the leaf at index.

        Raises:
            IndexOutOfRangeError: If index is outside [0, size)
        """
        self._check_index(index)
        siblings: List[Digest] = []
        node = self.size - 1 + index
        while node > 0:
            sibling = node + 1 if node % 2 == 1 else node - 1
            siblings.append(self.nodes[sibling])
            node = (node - 1) // 2
        return MerklePath(index, tuple(siblings))

    @property
    def depth(self) -> int:
        """Number of levels in an authentication path."""
        return self.size.bit_length() - 1

    # --- Verification ---

    @staticmethod
    def verify(
        root: MerkleRoot,
        index: int,
        leaf: Digest,
        path: MerklePath,
        hasher: Optional[Hasher] = None,
    ) -> bool:
        """Check that leaf sits at index under root.

        Bit b of index (least significant first) says whether the running
        hash is the right (1) or left (0) operand at level b. Never raises.
        """
        if path.index != index:
            return False
        if index < 0 or index >= (1 << len(path.siblings)):
            return False
        hasher = hasher or get_hasher()

        current = leaf
        for level, sibling in enumerate(path.siblings):
            if (index >> level) & 1:
                current = hasher.hash_pair(sibling, current)
            else:
                current = hasher.hash_pair(current, sibling)
        return current == root

    # --- Internal Helpers ---

    def _check_index(self, index: int) -> None:
        if index < 0 or index >= self.size:
            raise IndexOutOfRangeError(f"leaf index {index} out of range [0, {self.size})")
