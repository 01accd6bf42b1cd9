"""Fixed-depth Merkle engine over deposit commitments.

The tree is never maintained incrementally: every call receives the full,
ordered leaf sequence and folds it level by level. Leaves beyond the deposit
count are implicit empty leaves, represented by per-level zero hashes.
"""

import threading
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from zkmix.utils.hash import hash1, merkle_hash
from zkmix.exceptions import (
    InputError,
    InvalidLeafIndexError,
    MerkleMismatch,
    ProtocolConstantMismatch,
    TreeCapacityExceededError,
)

# Fixed deployment parameter shared with the withdrawal circuit.
TREE_DEPTH = 20

EMPTY_LEAF = b"\x00" * 32

# Zero hashes expected by the deployed verifier, little-endian hex.
PINNED_ZERO_HASHES: Tuple[bytes, ...] = tuple(
    bytes.fromhex(h)
    for h in (
        "1ce165cb1124ed3a0a94b4e212aaf7e8079f49b2fbef916bc290c593fda9092a",
        "2c252190aa29c4ffb1d90dd160163f1fbde2e16b3c3bd949685557a1622e1917",
        "c7c08b3e656e72580adf9e5a5c9cf2796ebad549a0c78b5d3b7ef7c7b4abd504",
        "c30ecb4c45043a299b324604146fb72176a2fed2fa0dc78cd4c7ea0ba959a50e",
        "d5d15ad9e74cd7fe4d6d3638ac53dfbec19d6544aef298277880ef319b2ff526",
        "f0540347ab35c91cbe95d3732df6bd4a3282b3f10df1dcd6545618f05c7ca22f",
        "f1c30eeb455291a97a9e26cbda5087a668a969a3dc2dbc5023261c62398bc001",
        "38c0d49f53bc258609f5df5e534871f1a6caf84c061818b50d05f855a3b3392a",
        "97a80415a440a2b951194f27aaf19f659da630ca086e20dbfc6cdf5f4b47f802",
        "4695d6607ff08cd776402b30347091338f5fc207547d54e1729460a288855c25",
        "8283d0d9b79f5c5e2321c4a67134c4c360e05a94565cab0f90dccb9030ab010b",
        "8d9745d15b8a41bd615a64280cf994a5f9e22b6c93ad476b0480aede47099515",
        "ad72ef2d9b0676c98b95f9884d261f9ab5c4fcfba0138c3e6ba845f28ef6f91d",
        "115380492208dfdc717c42bfc994986aaa9a383a30d7ada3db14f9c3115f5e21",
        "cdd85788a6a169a2f6ee14d5c3a3e9049d93801a0269913d6ce63fb47e9ddf12",
        "af92479345f4e9faa3f20900957e21040cf99913632fdfeabd90d2e221ef3327",
        "e26156f1e7f9f3cdb54e855fa34e1594e29c925acc85795a17608baad4e35d1b",
        "19af97515a57f676335be55f32519cfe080a7ac6e3654d8ddf2326c44e21d022",
        "58d1610a20d060a42b313b2b74ad9d90b453d916152d316a27df85ea9d645f1c",
        "ad2046c72f43f996ef14dd98dbb110c1799cd4d809dada0b7a193be43d17802b",
    )
)


@dataclass(frozen=True)
class MerklePath:
    """Inclusion path for one leaf: siblings and direction bits, leaf to root."""

    leaf_index: int
    siblings: Tuple[bytes, ...]
    path_indices: Tuple[int, ...]
    root: bytes

    @property
    def depth(self) -> int:
        return len(self.siblings)


def precompute_zero_hashes(depth: int) -> List[bytes]:
    """
    Compute the empty-subtree hash for levels 0..depth-1.

    zero_hashes[0] = hash1(0); zero_hashes[l] = hash2(z[l-1], z[l-1]).
    """
    if depth < 1:
        raise ValueError("Depth must be positive")

    zeros = [hash1(EMPTY_LEAF)]
    for _ in range(1, depth):
        zeros.append(merkle_hash(zeros[-1], zeros[-1]))
    return zeros


_zero_hashes: Optional[Tuple[bytes, ...]] = None
_zero_lock = threading.Lock()


def zero_hashes() -> Tuple[bytes, ...]:
    """
    Return the process-wide zero-hash table for TREE_DEPTH.

    Computed once on first use and checked against the pinned protocol table.

    Raises:
        ProtocolConstantMismatch: If the local hash diverges from the verifier's constants
    """
    global _zero_hashes
    table = _zero_hashes
    if table is not None:
        return table

    with _zero_lock:
        if _zero_hashes is None:
            computed = tuple(precompute_zero_hashes(TREE_DEPTH))
            for level, (local, pinned) in enumerate(zip(computed, PINNED_ZERO_HASHES)):
                if local != pinned:
                    raise ProtocolConstantMismatch(
                        f"Zero hash at level {level} differs from the pinned protocol constant"
                    )
            _zero_hashes = computed
        return _zero_hashes


def _zeros_for(depth: int) -> Sequence[bytes]:
    if depth <= TREE_DEPTH:
        return zero_hashes()[:depth]
    return precompute_zero_hashes(depth)


def build_path(leaves: Sequence[bytes], target_index: int, depth: int = TREE_DEPTH) -> MerklePath:
    """
    Build the inclusion path for ``leaves[target_index]``.

    Nodes are paired left to right at each level; an unpaired trailing node is
    paired with that level's zero hash.

    Args:
        leaves: Ordered commitments, index i being the i-th deposit
        target_index: Leaf to prove
        depth: Tree depth

    Returns:
        MerklePath: siblings, direction bits and root

    Raises:
        InvalidLeafIndexError: If target_index is outside the leaf sequence
        TreeCapacityExceededError: If there are more than 2**depth leaves
    """
    if len(leaves) > 2**depth:
        raise TreeCapacityExceededError(
            f"{len(leaves)} leaves exceed tree capacity {2**depth}"
        )
    if target_index < 0 or target_index >= len(leaves):
        raise InvalidLeafIndexError(
            f"Invalid leaf index: {target_index} (leaf count {len(leaves)})"
        )

    zeros = _zeros_for(depth)
    level_nodes = list(leaves)
    siblings = []
    bits = []
    position = target_index

    for level in range(depth):
        if position % 2 == 0:
            sibling_position = position + 1
            sibling = (
                level_nodes[sibling_position]
                if sibling_position < len(level_nodes)
                else zeros[level]
            )
        else:
            sibling = level_nodes[position - 1]
        siblings.append(sibling)
        bits.append(position % 2)

        next_level = []
        for i in range(0, len(level_nodes), 2):
            left = level_nodes[i]
            right = level_nodes[i + 1] if i + 1 < len(level_nodes) else zeros[level]
            next_level.append(merkle_hash(left, right))

        level_nodes = next_level
        position >>= 1

    return MerklePath(
        leaf_index=target_index,
        siblings=tuple(siblings),
        path_indices=tuple(bits),
        root=level_nodes[0],
    )


def compute_root(leaves: Sequence[bytes], depth: int = TREE_DEPTH) -> bytes:
    """Root of the tree holding ``leaves``; the all-empty root if there are none."""
    if not leaves:
        zeros = _zeros_for(depth)
        return merkle_hash(zeros[-1], zeros[-1])
    return build_path(leaves, 0, depth).root


def _replay(leaf: bytes, siblings: Sequence[bytes], direction_bits: Sequence[int], depth: int) -> bytes:
    if len(siblings) != depth:
        raise InputError("path_elements", f"expected {depth} siblings, got {len(siblings)}")
    if len(direction_bits) != depth:
        raise InputError("path_indices", f"expected {depth} bits, got {len(direction_bits)}")

    node = leaf
    for level, (sibling, bit) in enumerate(zip(siblings, direction_bits)):
        if bit == 0:
            node = merkle_hash(node, sibling)
        elif bit == 1:
            node = merkle_hash(sibling, node)
        else:
            raise InputError("path_indices", f"bit at level {level} must be 0 or 1")
    return node


def verify_path(
    root: bytes,
    leaf: bytes,
    siblings: Sequence[bytes],
    direction_bits: Sequence[int],
    depth: int = TREE_DEPTH,
) -> bool:
    """
    Replay the fold from ``leaf`` and compare with ``root``.

    Hash order and padding are identical to the circuit's check.

    Raises:
        InputError: If the path has the wrong shape
    """
    return _replay(leaf, siblings, direction_bits, depth) == root


def assert_path(
    root: bytes,
    leaf: bytes,
    siblings: Sequence[bytes],
    direction_bits: Sequence[int],
    depth: int = TREE_DEPTH,
) -> None:
    """Like :func:`verify_path` but raises :class:`MerkleMismatch` on failure."""
    if not verify_path(root, leaf, siblings, direction_bits, depth):
        raise MerkleMismatch("Merkle path does not reproduce the expected root")


class MerkleTree:
    """
    Read-only snapshot of the commitment tree for an ordered leaf sequence.

    Thin wrapper over :func:`build_path` / :func:`verify_path`; the snapshot
    holds no derived state beyond its leaves and cached root.
    """

    def __init__(self, leaves: Sequence[bytes] = (), depth: int = TREE_DEPTH):
        if len(leaves) > 2**depth:
            raise TreeCapacityExceededError(f"Tree is full (max {2**depth} commitments)")
        self.depth = depth
        self.max_leaves = 2**depth
        self.leaves: Tuple[bytes, ...] = tuple(leaves)
        self._root: Optional[bytes] = None

    @classmethod
    def from_leaves(cls, leaves: Sequence[bytes], depth: int = TREE_DEPTH) -> "MerkleTree":
        return cls(leaves, depth)

    @property
    def root(self) -> bytes:
        """Get the Merkle root hash."""
        if self._root is None:
            self._root = compute_root(self.leaves, self.depth)
        return self._root

    def get_path(self, leaf_index: int) -> MerklePath:
        return build_path(self.leaves, leaf_index, self.depth)

    def verify_path(self, leaf: bytes, path: MerklePath) -> bool:
        return verify_path(self.root, leaf, path.siblings, path.path_indices, self.depth)

    def __len__(self) -> int:
        """Return the number of leaves in the tree."""
        return len(self.leaves)

    def __repr__(self) -> str:
        return f"MerkleTree(depth={self.depth}, leaves={len(self.leaves)}/{self.max_leaves})"
