#!/usr/bin/env python3
"""
Quick start guide for the mixer withdrawal pipeline.

Runs entirely offline: deposits are simulated locally and the circuit is
executed in-process instead of by a proving service.
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from zkmix.core.circuit import CircuitInputs, execute_circuit
from zkmix.core.commitment import Commitment, Note
from zkmix.core.merkle_tree import TREE_DEPTH, MerkleTree
from zkmix.models.schemas import ProofRequest


def main():
    """Walk one deposit through path building and circuit execution."""

    print("=" * 70)
    print("ZK-MIXER QUICK START EXAMPLE")
    print("=" * 70)
    print()

    # Step 1: Three depositors create notes
    print("Step 1: Three deposits of 1 SOL")
    print("-" * 70)
    deposits = [Commitment.create_commitment() for _ in range(3)]
    for index, secrets in enumerate(deposits):
        print(f"  Leaf {index}: commitment 0x{secrets.commitment.hex()[:32]}...")
    alice_note = Note.from_secrets(1, deposits[1]).encode()
    print(f"✓ Alice keeps her note ({len(alice_note)} characters, never shared)")
    print()

    # Step 2: The withdrawal side rebuilds the tree from the ledger
    print(f"Step 2: Rebuild the depth-{TREE_DEPTH} tree")
    print("-" * 70)
    tree = MerkleTree.from_leaves([d.commitment for d in deposits])
    print(f"✓ {tree!r}")
    print(f"  Root: 0x{tree.root.hex()}")
    print()

    # Step 3: Alice proves membership without revealing her leaf
    print("Step 3: Alice builds her withdrawal witness")
    print("-" * 70)
    note = Note.parse(alice_note)
    leaf_index = [d.commitment for d in deposits].index(note.commitment)
    path = tree.get_path(leaf_index)
    inputs = CircuitInputs(
        root=path.root,
        nullifier_hash=Commitment.compute_nullifier_hash(note.nullifier),
        recipient=b"\x01" * 32,
        relayer=b"\x02" * 32,
        fee=0,
        refund=0,
        nullifier=note.nullifier,
        secret=note.secret,
        path_elements=path.siblings,
        path_indices=path.path_indices,
    )
    public_values = execute_circuit(inputs)
    print("✓ Circuit constraints satisfied")
    print(f"  Public values: {len(public_values.to_bytes())} bytes")
    print(f"  Proof request root: {ProofRequest.from_circuit_inputs(inputs).root}")
    print()


if __name__ == "__main__":
    main()
