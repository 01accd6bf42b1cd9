"""Commitment and nullifier-hash derivation, plus deposit notes."""

import os
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from zkmix.crypto.poseidon import FIELD_MODULUS
from zkmix.utils.hash import hash1, hash2
from zkmix.exceptions import FieldEncodingError, InvalidNoteError


@dataclass(frozen=True)
class DepositSecrets:
    """A fresh secret pair with its public derivations."""

    nullifier: bytes
    secret: bytes
    commitment: bytes
    nullifier_hash: bytes

    def __repr__(self) -> str:
        # Commitment only; nullifier and secret are never rendered.
        return f"DepositSecrets(commitment=0x{self.commitment.hex()[:16]}...)"


class Commitment:
    """
    Commitment scheme over the (nullifier, secret) pair.

    commitment     = hash2(nullifier, secret)
    nullifier_hash = hash1(nullifier)
    """

    # Constants
    SECRET_SIZE = 31  # bytes of entropy; always below the field modulus
    FIELD_SIZE = 32

    @staticmethod
    def generate_secret() -> bytes:
        """
        Draw a random 31-byte value, zero-extended to a 32-byte LE encoding.

        Returns:
            bytes: 32-byte field encoding whose top byte is zero
        """
        return os.urandom(Commitment.SECRET_SIZE) + b"\x00"

    @staticmethod
    def compute_commitment(nullifier: bytes, secret: bytes) -> bytes:
        """
        Compute the deposit commitment ``hash2(nullifier, secret)``.

        Raises:
            FieldEncodingError: If either input is not a 32-byte field encoding
        """
        return hash2(nullifier, secret)

    @staticmethod
    def compute_nullifier_hash(nullifier: bytes) -> bytes:
        """
        Compute the public nullifier hash ``hash1(nullifier)``.

        Raises:
            FieldEncodingError: If the nullifier is not a 32-byte field encoding
        """
        return hash1(nullifier)

    @staticmethod
    def create_commitment() -> DepositSecrets:
        """
        Create a new deposit with an independent nullifier and secret.

        Returns:
            DepositSecrets: secret pair plus commitment and nullifier hash
        """
        nullifier = Commitment.generate_secret()
        secret = Commitment.generate_secret()

        return DepositSecrets(
            nullifier=nullifier,
            secret=secret,
            commitment=Commitment.compute_commitment(nullifier, secret),
            nullifier_hash=Commitment.compute_nullifier_hash(nullifier),
        )

    @staticmethod
    def verify_pair(nullifier: bytes, secret: bytes, claimed_commitment: bytes) -> bool:
        """
        Check that a secret pair opens ``claimed_commitment``.

        Returns:
            bool: True if the recomputed commitment matches, False otherwise
        """
        try:
            return Commitment.compute_commitment(nullifier, secret) == claimed_commitment
        except FieldEncodingError:
            return False


NOTE_PREFIX = "solana-mixer"

_NOTE_RE = re.compile(
    r"^solana-mixer-(?P<amount>\d+(?:\.\d+)?)-(?P<nullifier>[0-9A-Fa-f]+):(?P<secret>[0-9A-Fa-f]+)$"
)


def format_amount(amount) -> str:
    """Render an amount without a trailing '.0' (``1.0`` -> ``'1'``)."""
    value = Decimal(str(amount))
    if value == value.to_integral_value():
        return str(value.quantize(Decimal(1)))
    return format(value.normalize(), "f")


@dataclass(frozen=True)
class Note:
    """
    Depositor-held note carrying the secret pair.

    Text form: ``solana-mixer-<amount>-<nullifier hex>:<secret hex>`` where
    each hex string is the little-endian byte encoding of the value.
    """

    amount: Decimal
    nullifier: bytes
    secret: bytes

    @classmethod
    def from_secrets(cls, amount, secrets: DepositSecrets) -> "Note":
        return cls(amount=Decimal(str(amount)), nullifier=secrets.nullifier, secret=secrets.secret)

    def encode(self) -> str:
        return f"{NOTE_PREFIX}-{format_amount(self.amount)}-{self.nullifier.hex()}:{self.secret.hex()}"

    @classmethod
    def parse(cls, text: str) -> "Note":
        """
        Parse a note string.

        Raises:
            InvalidNoteError: If the text does not match the note format or
                carries values outside the field
        """
        match = _NOTE_RE.match(text.strip()) if isinstance(text, str) else None
        if match is None:
            raise InvalidNoteError("does not match the note format")

        try:
            amount = Decimal(match.group("amount"))
        except InvalidOperation:
            raise InvalidNoteError("invalid amount")

        return cls(
            amount=amount,
            nullifier=_decode_note_value(match.group("nullifier"), "nullifier"),
            secret=_decode_note_value(match.group("secret"), "secret"),
        )

    @property
    def nullifier_int(self) -> int:
        return int.from_bytes(self.nullifier, "little")

    @property
    def secret_int(self) -> int:
        return int.from_bytes(self.secret, "little")

    @property
    def commitment(self) -> bytes:
        return Commitment.compute_commitment(self.nullifier, self.secret)

    def __repr__(self) -> str:
        return f"Note(amount={self.amount})"


def _decode_note_value(hex_str: str, name: str) -> bytes:
    if len(hex_str) % 2 != 0:
        raise InvalidNoteError(f"{name} hex must have even length")
    raw = bytes.fromhex(hex_str)
    if len(raw) > Commitment.FIELD_SIZE:
        raise InvalidNoteError(f"{name} longer than 32 bytes")
    if int.from_bytes(raw, "little") >= FIELD_MODULUS:
        raise InvalidNoteError(f"{name} exceeds the field modulus")
    return raw.ljust(Commitment.FIELD_SIZE, b"\x00")
