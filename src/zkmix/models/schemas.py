"""Pydantic data models for the mixer service."""

import re
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from zkmix.core.circuit import CircuitInputs
from zkmix.core.merkle_tree import TREE_DEPTH
from zkmix.utils.encoding import U64_MAX, hex_to_bytes, to_hex32, to_hex_list

HEX32_PATTERN = r"^0x[0-9a-fA-F]{64}$"

_HEX32_RE = re.compile(HEX32_PATTERN)


class ProofRequest(BaseModel):
    """
    Proof request as sent to the proving service.

    Every 32-byte value is '0x' followed by the hex of its little-endian
    bytes, in stored order.
    """

    root: str = Field(..., pattern=HEX32_PATTERN)
    nullifier_hash: str = Field(..., pattern=HEX32_PATTERN)
    recipient: str = Field(..., pattern=HEX32_PATTERN)
    relayer: str = Field(..., pattern=HEX32_PATTERN)
    fee: int = Field(..., ge=0, le=U64_MAX)
    refund: int = Field(..., ge=0, le=U64_MAX)
    nullifier: str = Field(..., pattern=HEX32_PATTERN)
    secret: str = Field(..., pattern=HEX32_PATTERN)
    path_elements: List[str] = Field(..., min_length=TREE_DEPTH, max_length=TREE_DEPTH)
    path_indices: List[int] = Field(..., min_length=TREE_DEPTH, max_length=TREE_DEPTH)

    @field_validator("path_elements")
    @classmethod
    def check_path_elements(cls, values: List[str]) -> List[str]:
        for i, value in enumerate(values):
            if not isinstance(value, str) or not _HEX32_RE.fullmatch(value):
                raise ValueError(f"path_elements[{i}] must be 0x followed by 64 hex characters")
        return values

    @field_validator("path_indices")
    @classmethod
    def check_path_indices(cls, values: List[int]) -> List[int]:
        if any(v not in (0, 1) for v in values):
            raise ValueError("path_indices values must be 0 or 1")
        return values

    @classmethod
    def from_circuit_inputs(cls, inputs: CircuitInputs) -> "ProofRequest":
        return cls(
            root=to_hex32(inputs.root),
            nullifier_hash=to_hex32(inputs.nullifier_hash),
            recipient=to_hex32(inputs.recipient),
            relayer=to_hex32(inputs.relayer),
            fee=inputs.fee,
            refund=inputs.refund,
            nullifier=to_hex32(inputs.nullifier),
            secret=to_hex32(inputs.secret),
            path_elements=to_hex_list(inputs.path_elements),
            path_indices=list(inputs.path_indices),
        )

    def to_circuit_inputs(self) -> CircuitInputs:
        return CircuitInputs(
            root=hex_to_bytes(self.root),
            nullifier_hash=hex_to_bytes(self.nullifier_hash),
            recipient=hex_to_bytes(self.recipient),
            relayer=hex_to_bytes(self.relayer),
            fee=self.fee,
            refund=self.refund,
            nullifier=hex_to_bytes(self.nullifier),
            secret=hex_to_bytes(self.secret),
            path_elements=tuple(hex_to_bytes(e) for e in self.path_elements),
            path_indices=tuple(self.path_indices),
        )

    def __repr__(self) -> str:
        return f"ProofRequest(root={self.root[:18]}..., fee={self.fee}, refund={self.refund})"

    __str__ = __repr__


class WithdrawalComputeRequest(BaseModel):
    """First (and only) message of a withdrawal WebSocket session."""

    nullifier: str = Field(..., description="Nullifier (decimal)")
    secret: str = Field(..., description="Secret (decimal)")
    rpc_url: Optional[str] = Field(None, description="Ledger JSON-RPC endpoint")
    program_pubkey: str = Field(..., description="Mixer program id (base58)")
    new_withdrawal_recipient_address: str = Field(..., description="Recipient (base58)")
    new_relayer_address: str = Field(..., description="Relayer (base58)")
    server_url: Optional[str] = Field(None, description="Proving service base URL")
    fee: int = Field(0, ge=0, le=U64_MAX)
    refund: int = Field(0, ge=0, le=U64_MAX)

    def __repr__(self) -> str:
        return f"WithdrawalComputeRequest(program_pubkey={self.program_pubkey!r}, fee={self.fee})"

    __str__ = __repr__


class WithdrawalComputeResponse(BaseModel):
    """Successful withdrawal reply."""

    proof_bytes: List[int]
    public_inputs: List[int]
    root: str
    nullifier_hash: str


class DepositDetailsRequest(BaseModel):
    """Request model for fresh deposit material."""

    amount: Decimal = Field(..., gt=0, description="Deposit amount")


class DepositDetailsResponse(BaseModel):
    """Fresh deposit secrets and the derived public values (hex)."""

    nullifier: str
    secret: str
    note: str
    commitment: str
    nullifier_hash: str


class DecodeNoteRequest(BaseModel):
    """Request model for note decoding."""

    note: str = Field(..., description="Note string")
    program_pubkey: str = Field(..., description="Mixer program id (base58)")


class DecodeNoteResponse(BaseModel):
    """Decoded note with decimal secrets and the mixer state account."""

    nullifier_str: str
    secret_str: str
    amount: str
    state_pubkey: str


class PubkeysResponse(BaseModel):
    """Program and derived state addresses."""

    program_pubkey: str
    state_pubkey: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Service status")
    version: str
    tree_depth: int = TREE_DEPTH


class ErrorResponse(BaseModel):
    """Error response."""

    error: str = Field(..., description="Error message")
    stage: Optional[str] = Field(None, description="Failing withdrawal stage")
