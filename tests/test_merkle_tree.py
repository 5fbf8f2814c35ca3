"""
Merkle Tree Tests
=================

Covers commitment, opening and verification for every leaf index, padding of
non-power-of-two inputs, and rejection of corrupted leaves, paths and roots.
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from starkfri.errors import EmptyInputError, IndexOutOfRangeError
from starkfri.primitives.hasher import get_hasher
from starkfri.primitives.merkle_tree import MerklePath, MerkleTree, next_power_of_two


def make_leaves(n):
    hasher = get_hasher()
    return [hasher.hash_leaf([i, i * i], element_size=4) for i in range(n)]


def flip_bit(data: bytes, bit: int = 0) -> bytes:
    out = bytearray(data)
    out[bit // 8] ^= 1 << (bit % 8)
    return bytes(out)


@pytest.mark.parametrize("n,expected", [(0, 1), (1, 1), (2, 2), (3, 4), (5, 8), (8, 8), (9, 16)])
def test_next_power_of_two(n, expected):
    assert next_power_of_two(n) == expected


class TestMerkleTree:

    @pytest.mark.parametrize("n", [1, 2, 5, 8, 13])
    def test_open_verify_every_index(self, n):
        leaves = make_leaves(n)
        tree = MerkleTree.build(leaves)
        root = tree.root()
        for i in range(n):
            path = tree.open(i)
            assert len(path) == tree.depth
            assert MerkleTree.verify(root, i, leaves[i], path)

    def test_single_leaf_root_is_leaf(self):
        leaves = make_leaves(1)
        tree = MerkleTree.build(leaves)
        assert tree.root() == leaves[0]
        assert tree.open(0).siblings == ()

    def test_padding_repeats_last_leaf(self):
        leaves = make_leaves(5)
        tree = MerkleTree.build(leaves)
        assert tree.size == 8
        assert tree.num_leaves == 5
        for i in range(5, 8):
            assert tree.leaf(i) == leaves[-1]
        assert tree.root() == MerkleTree.build(leaves + [leaves[-1]] * 3).root()

    def test_deterministic(self):
        leaves = make_leaves(8)
        assert MerkleTree.build(leaves).root() == MerkleTree.build(list(leaves)).root()

    def test_leaf_order_matters(self):
        leaves = make_leaves(4)
        swapped = [leaves[1], leaves[0]] + leaves[2:]
        assert MerkleTree.build(leaves).root() != MerkleTree.build(swapped).root()

    def test_executor_gives_same_root(self):
        leaves = make_leaves(64)
        with ThreadPoolExecutor(max_workers=4) as pool:
            parallel = MerkleTree.build(leaves, executor=pool)
        assert parallel.root() == MerkleTree.build(leaves).root()

    def test_empty_input(self):
        with pytest.raises(EmptyInputError):
            MerkleTree.build([])

    @pytest.mark.parametrize("index", [-1, 8, 100])
    def test_open_out_of_range(self, index):
        tree = MerkleTree.build(make_leaves(8))
        with pytest.raises(IndexOutOfRangeError):
            tree.open(index)


class TestMerkleVerifyRejects:

    @pytest.fixture
    def committed(self):
        leaves = make_leaves(8)
        tree = MerkleTree.build(leaves)
        return tree, leaves

    @pytest.mark.parametrize("bit", [0, 7, 100, 255])
    def test_corrupted_leaf(self, committed, bit):
        tree, leaves = committed
        assert not MerkleTree.verify(tree.root(), 3, flip_bit(leaves[3], bit), tree.open(3))

    @pytest.mark.parametrize("level", [0, 1, 2])
    def test_corrupted_path(self, committed, level):
        tree, leaves = committed
        path = tree.open(5)
        siblings = list(path.siblings)
        siblings[level] = flip_bit(siblings[level], 9)
        assert not MerkleTree.verify(tree.root(), 5, leaves[5], MerklePath(5, tuple(siblings)))

    def test_corrupted_root(self, committed):
        tree, leaves = committed
        assert not MerkleTree.verify(flip_bit(tree.root(), 3), 2, leaves[2], tree.open(2))

    def test_wrong_index(self, committed):
        tree, leaves = committed
        path = tree.open(2)
        assert not MerkleTree.verify(tree.root(), 6, leaves[2], MerklePath(6, path.siblings))

    def test_path_index_mismatch(self, committed):
        tree, leaves = committed
        assert not MerkleTree.verify(tree.root(), 2, leaves[2], tree.open(3))

    def test_index_beyond_path(self, committed):
        tree, leaves = committed
        path = tree.open(1)
        assert not MerkleTree.verify(tree.root(), 9, leaves[1], MerklePath(9, path.siblings))

    def test_truncated_path(self, committed):
        tree, leaves = committed
        path = tree.open(1)
        assert not MerkleTree.verify(tree.root(), 1, leaves[1], MerklePath(1, path.siblings[:-1]))
