"""Custom exceptions for the shielded-pool withdrawal service."""

from typing import Optional


class ZKMixerException(Exception):
    """Base exception for all mixer errors."""
    pass


# Input Errors
class InputError(ZKMixerException):
    """
    Raised when an external input is malformed.

    Never retried. ``field`` names the offending input.
    """

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class FieldEncodingError(InputError):
    """Raised when a value is not a canonical 32-byte field encoding."""
    pass


class InvalidNoteError(InputError):
    """Raised when a deposit note cannot be parsed."""

    def __init__(self, message: str):
        super().__init__("note", message)


# Cryptography Errors
class CryptoError(ZKMixerException):
    """Base exception for cryptographic errors."""
    pass


class ProtocolConstantMismatch(CryptoError):
    """Raised when locally derived constants differ from the pinned protocol table."""
    pass


# Merkle Tree Errors
class MerkleTreeError(ZKMixerException):
    """Base exception for Merkle tree errors."""
    pass


class TreeCapacityExceededError(MerkleTreeError):
    """Raised when the leaf count exceeds 2**depth."""
    pass


class InvalidLeafIndexError(MerkleTreeError):
    """Raised when leaf index is invalid."""
    pass


class MerkleMismatch(MerkleTreeError):
    """Raised when a Merkle path does not reproduce the expected root."""
    pass


# Circuit Errors
class CircuitConstraintError(ZKMixerException):
    """Raised when the reference circuit execution rejects its inputs."""
    pass


# Ledger Errors
class LedgerError(ZKMixerException):
    """Base exception for ledger scanning errors."""
    pass


class LedgerUnavailable(LedgerError):
    """Raised on transport or RPC failure. Retryable."""
    pass


class LedgerTimeout(LedgerUnavailable):
    """Raised when a ledger call exceeds its deadline."""
    pass


class LedgerIntegrityError(LedgerError):
    """Raised when deposit leaf indices have a gap or a duplicate."""

    def __init__(self, message: str, leaf_index: Optional[int] = None):
        self.leaf_index = leaf_index
        super().__init__(message)


# Prover Errors
class ProverFailure(ZKMixerException):
    """Raised when the proving service rejects or fails a request."""
    pass


class ProverTimeout(ProverFailure):
    """Raised when the proving service does not answer in time."""
    pass


# Withdrawal Errors
class WithdrawalError(ZKMixerException):
    """Raised when a withdrawal pipeline stage fails."""

    def __init__(self, stage, message: str):
        self.stage = stage
        label = getattr(stage, "value", stage)
        super().__init__(f"[{label}] {message}")


class DepositNotFoundError(WithdrawalError):
    """Raised when the scanned ledger holds no deposit for the commitment."""
    pass
