"""
Withdrawal circuit input/output contract.

The proving backend reads inputs in this exact order:

    public:  root, nullifier_hash, recipient, relayer, fee, refund
    private: nullifier, secret, path_elements[TREE_DEPTH], path_indices[TREE_DEPTH]

and commits public outputs in the order root, nullifier_hash, recipient,
relayer, fee, refund. Each 32-byte value is committed raw; fee and refund
are committed as u64 little-endian. Reordering anything here breaks every
deployed verifier.

:func:`execute_circuit` runs the same checks the circuit runs, so a request
that fails here is guaranteed to produce an invalid proof.
"""

import struct
from dataclasses import dataclass
from typing import Tuple

from zkmix.core.commitment import Commitment
from zkmix.core.merkle_tree import TREE_DEPTH, assert_path
from zkmix.utils.encoding import parse_u64
from zkmix.exceptions import CircuitConstraintError, InputError

PUBLIC_VALUES_SIZE = 4 * 32 + 2 * 8

_U64 = struct.Struct("<Q")


@dataclass(frozen=True)
class PublicValues:
    """Public outputs of the withdrawal circuit, in commit order."""

    root: bytes
    nullifier_hash: bytes
    recipient: bytes
    relayer: bytes
    fee: int
    refund: int

    def to_bytes(self) -> bytes:
        return (
            self.root
            + self.nullifier_hash
            + self.recipient
            + self.relayer
            + _U64.pack(self.fee)
            + _U64.pack(self.refund)
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "PublicValues":
        """
        Decode the committed public-values buffer.

        Raises:
            InputError: If the buffer does not have the committed layout
        """
        if len(data) != PUBLIC_VALUES_SIZE:
            raise InputError(
                "public_inputs", f"expected {PUBLIC_VALUES_SIZE} bytes, got {len(data)}"
            )
        return cls(
            root=data[0:32],
            nullifier_hash=data[32:64],
            recipient=data[64:96],
            relayer=data[96:128],
            fee=_U64.unpack_from(data, 128)[0],
            refund=_U64.unpack_from(data, 136)[0],
        )


@dataclass(frozen=True)
class CircuitInputs:
    """Full witness for one withdrawal, in the order the circuit reads it."""

    # Public
    root: bytes
    nullifier_hash: bytes
    recipient: bytes
    relayer: bytes
    fee: int
    refund: int
    # Private
    nullifier: bytes
    secret: bytes
    path_elements: Tuple[bytes, ...]
    path_indices: Tuple[int, ...]

    def __post_init__(self):
        for name in ("root", "nullifier_hash", "recipient", "relayer", "nullifier", "secret"):
            value = getattr(self, name)
            if not isinstance(value, bytes) or len(value) != 32:
                raise InputError(name, "must be 32 bytes")
        parse_u64(self.fee, "fee")
        parse_u64(self.refund, "refund")
        if len(self.path_elements) != TREE_DEPTH:
            raise InputError(
                "path_elements", f"expected {TREE_DEPTH}, got {len(self.path_elements)}"
            )
        if len(self.path_indices) != TREE_DEPTH:
            raise InputError(
                "path_indices", f"expected {TREE_DEPTH}, got {len(self.path_indices)}"
            )
        if any(bit not in (0, 1) for bit in self.path_indices):
            raise InputError("path_indices", "each value must be 0 or 1")

    @property
    def public_values(self) -> PublicValues:
        return PublicValues(
            root=self.root,
            nullifier_hash=self.nullifier_hash,
            recipient=self.recipient,
            relayer=self.relayer,
            fee=self.fee,
            refund=self.refund,
        )

    def __repr__(self) -> str:
        return f"CircuitInputs(root=0x{self.root.hex()[:16]}..., fee={self.fee}, refund={self.refund})"


def execute_circuit(inputs: CircuitInputs) -> PublicValues:
    """
    Reference execution of the withdrawal circuit.

    Raises:
        CircuitConstraintError: If the nullifier hash does not match
        MerkleMismatch: If the commitment is not under ``root``
    """
    nullifier_hash = Commitment.compute_nullifier_hash(inputs.nullifier)
    if nullifier_hash != inputs.nullifier_hash:
        raise CircuitConstraintError("nullifier_hash does not match hash1(nullifier)")

    commitment = Commitment.compute_commitment(inputs.nullifier, inputs.secret)
    assert_path(inputs.root, commitment, inputs.path_elements, inputs.path_indices)

    return PublicValues(
        root=inputs.root,
        nullifier_hash=nullifier_hash,
        recipient=inputs.recipient,
        relayer=inputs.relayer,
        fee=inputs.fee,
        refund=inputs.refund,
    )
