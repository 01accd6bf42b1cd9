"""Main package initialization."""

__version__ = "0.1.0"
__author__ = "ZK-Mixer Team"
__description__ = "Shielded-pool mixer: deposit notes, ledger reconstruction and withdrawal proofs"

from .core.merkle_tree import TREE_DEPTH, MerkleTree, build_path, verify_path
from .core.commitment import Commitment, DepositSecrets, Note
from .core.circuit import CircuitInputs, PublicValues, execute_circuit
from .core.withdrawal import (
    WithdrawalInputs,
    WithdrawalOrchestrator,
    WithdrawalResult,
    WithdrawalStage,
)

__all__ = [
    "TREE_DEPTH",
    "MerkleTree",
    "build_path",
    "verify_path",
    "Commitment",
    "DepositSecrets",
    "Note",
    "CircuitInputs",
    "PublicValues",
    "execute_circuit",
    "WithdrawalInputs",
    "WithdrawalOrchestrator",
    "WithdrawalResult",
    "WithdrawalStage",
]
