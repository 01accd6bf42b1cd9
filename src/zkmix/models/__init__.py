"""Request and response models."""

from zkmix.models.schemas import (
    DecodeNoteRequest,
    DecodeNoteResponse,
    DepositDetailsRequest,
    DepositDetailsResponse,
    ErrorResponse,
    HealthResponse,
    ProofRequest,
    PubkeysResponse,
    WithdrawalComputeRequest,
    WithdrawalComputeResponse,
)

__all__ = [
    "DecodeNoteRequest",
    "DecodeNoteResponse",
    "DepositDetailsRequest",
    "DepositDetailsResponse",
    "ErrorResponse",
    "HealthResponse",
    "ProofRequest",
    "PubkeysResponse",
    "WithdrawalComputeRequest",
    "WithdrawalComputeResponse",
]
