"""
Commitment Tree - fixed-depth incremental Merkle tree of note commitments.

Conceptual Background:
---------------------
Every deposit and private transfer adds note commitments as leaves. A prover
later shows "my note is somewhere under root R" without revealing which leaf,
so every replica must agree bit-for-bit on R.

The chain never stores the leaves. It keeps only the *frontier*: for each
level, the most recent left-hand node that is still waiting for a right
sibling. Appending leaf i walks up the path once:

    level 0:   i even -> we are a left child, remember us, sibling is empty
               i odd  -> we are a right child, sibling is the frontier node
    level k:   same rule on i >> k

Empty subtrees hash to per-level constants computed once at import:

    ZERO_HASHES[0]     = 32 zero bytes
    ZERO_HASHES[k + 1] = H(ZERO_HASHES[k] || ZERO_HASHES[k])

with H = BLAKE2b-256, so an empty tree of depth D has root ZERO_HASHES[D].

Properties:
----------
- Append: O(D) hashes
- Root: O(1) (stored)
- Storage: O(D)
"""

from typing import List, Sequence, Tuple

from shielded_pool.core.errors import InvalidParameter, TreeFull
from shielded_pool.core.storage.state_store import TREE, StateStore
from shielded_pool.crypto import blake2_256
from shielded_pool.utils.logger import get_logger

logger = get_logger("tree")

MAX_DEPTH = 64
NODE_SIZE = 32


def hash_pair(left: bytes, right: bytes) -> bytes:
    """Hash two nodes together."""
    return blake2_256(left + right)


def _zero_hashes(depth: int) -> Tuple[bytes, ...]:
    zeros = [bytes(NODE_SIZE)]
    for _ in range(depth):
        zeros.append(hash_pair(zeros[-1], zeros[-1]))
    return tuple(zeros)


# Empty-subtree root per level, 0..MAX_DEPTH
ZERO_HASHES = _zero_hashes(MAX_DEPTH)

# Storage keys
_NEXT_INDEX = b"next_index"
_ROOT = b"root"
_FRONTIER = b"frontier:"


# =============================================================================
# Commitment Tree
# =============================================================================


class CommitmentTree:
    """
    Append-only Merkle tree of depth D, persisted as frontier + root.

    Attributes:
        store: Backing state store
        depth: Tree depth D (capacity 2^D leaves)
    """

    def __init__(self, store: StateStore, depth: int):
        if not 1 <= depth <= MAX_DEPTH:
            raise ValueError(f"depth must be in 1..{MAX_DEPTH}, got {depth}")
        self.store = store
        self.depth = depth

    @property
    def capacity(self) -> int:
        return 1 << self.depth

    @property
    def next_index(self) -> int:
        """Index the next appended leaf will get (== number of leaves)."""
        return self.store.get_int(TREE, _NEXT_INDEX)

    def __len__(self) -> int:
        return self.next_index

    def current_root(self) -> bytes:
        root = self.store.get(TREE, _ROOT)
        return root if root is not None else ZERO_HASHES[self.depth]

    def frontier(self) -> List[bytes]:
        """Frontier node per level (empty-subtree constant where unset)."""
        return [self._frontier_node(level) for level in range(self.depth)]

    def _frontier_node(self, level: int) -> bytes:
        node = self.store.get(TREE, _FRONTIER + level.to_bytes(1, "big"))
        return node if node is not None else ZERO_HASHES[level]

    def append(self, commitment: bytes) -> int:
        """
        Append a commitment as the next leaf.

        Args:
            commitment: 32-byte note commitment

        Returns:
            Index assigned to the leaf

        Raises:
            TreeFull: If all 2^D leaves are used
        """
        if not isinstance(commitment, (bytes, bytearray)) or len(commitment) != NODE_SIZE:
            raise InvalidParameter(f"commitment must be {NODE_SIZE} bytes")

        leaf_index = self.next_index
        if leaf_index >= self.capacity:
            raise TreeFull(f"Tree of depth {self.depth} holds {self.capacity} leaves")

        index = leaf_index
        current = bytes(commitment)
        for level in range(self.depth):
            if index % 2 == 0:
                self.store.put(TREE, _FRONTIER + level.to_bytes(1, "big"), current)
                current = hash_pair(current, ZERO_HASHES[level])
            else:
                current = hash_pair(self._frontier_node(level), current)
            index //= 2

        self.store.put(TREE, _ROOT, current)
        self.store.put_int(TREE, _NEXT_INDEX, leaf_index + 1)

        logger.debug(f"Appended leaf {leaf_index}")
        return leaf_index


# =============================================================================
# Reference Computation (replay / audit)
# =============================================================================


def reference_root(leaves: Sequence[bytes], depth: int) -> bytes:
    """
    Recompute the root of a full leaf sequence layer by layer.

    Independent of the frontier algorithm; replaying the same sequence must
    give the same root as CommitmentTree.

    Raises:
        TreeFull: If there are more than 2^depth leaves
    """
    if len(leaves) > (1 << depth):
        raise TreeFull(f"{len(leaves)} leaves do not fit depth {depth}")

    layer = list(leaves)
    for level in range(depth):
        if not layer:
            return ZERO_HASHES[depth]
        if len(layer) % 2 == 1:
            layer.append(ZERO_HASHES[level])
        layer = [hash_pair(layer[i], layer[i + 1]) for i in range(0, len(layer), 2)]

    return layer[0] if layer else ZERO_HASHES[depth]


def reference_path(leaves: Sequence[bytes], leaf_index: int, depth: int) -> List[bytes]:
    """
    Authentication path (sibling per level, bottom-up) for one leaf.

    This is what an off-chain prover feeds its membership circuit.
    """
    if leaf_index >= len(leaves):
        raise IndexError(f"Leaf index {leaf_index} out of range")

    path = []
    layer = list(leaves)
    idx = leaf_index
    for level in range(depth):
        if len(layer) % 2 == 1:
            layer.append(ZERO_HASHES[level])
        path.append(layer[idx ^ 1])
        layer = [hash_pair(layer[i], layer[i + 1]) for i in range(0, len(layer), 2)]
        idx //= 2
    return path


def verify_path(leaf: bytes, leaf_index: int, path: Sequence[bytes], root: bytes) -> bool:
    """Check an authentication path against a root."""
    current = leaf
    idx = leaf_index
    for sibling in path:
        if idx % 2 == 0:
            current = hash_pair(current, sibling)
        else:
            current = hash_pair(sibling, current)
        idx //= 2
    return current == root
