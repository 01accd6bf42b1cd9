"""Encoding and decoding utilities."""

import re
from typing import Iterable, List

from zkmix.crypto.poseidon import FIELD_MODULUS
from zkmix.exceptions import FieldEncodingError, InputError

FIELD_BYTES = 32
U64_MAX = 2**64 - 1

_HEX32_RE = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")
_DECIMAL_RE = re.compile(r"[0-9]+")


def bytes_to_hex(data: bytes) -> str:
    """
    Convert bytes to hexadecimal string.

    Args:
        data: Bytes to convert

    Returns:
        str: Hexadecimal string with '0x' prefix
    """
    return "0x" + data.hex()


def to_hex32(data: bytes) -> str:
    """
    Render a 32-byte value as '0x' + 64 hex characters.

    Bytes are emitted in their stored order; little-endian field encodings
    are never byte-swapped.
    """
    if len(data) != FIELD_BYTES:
        raise ValueError("Expected 32 bytes")
    return bytes_to_hex(data)


def to_hex_list(values: Iterable[bytes]) -> List[str]:
    """Render a sequence of 32-byte values with :func:`to_hex32`."""
    return [to_hex32(v) for v in values]


def hex_to_bytes(hex_str: str) -> bytes:
    """
    Convert hexadecimal string to bytes.

    Args:
        hex_str: Hexadecimal string (with or without '0x' prefix)

    Returns:
        bytes: Decoded bytes

    Raises:
        ValueError: If hex string is invalid
    """
    if hex_str.startswith("0x"):
        hex_str = hex_str[2:]

    if len(hex_str) % 2 != 0:
        raise ValueError("Hex string must have even number of characters")

    return bytes.fromhex(hex_str)


def parse_hex32(value: str, field: str) -> bytes:
    """
    Parse a prefixed or bare 64-hex-character string into 32 bytes.

    Raises:
        InputError: Naming ``field`` if the string is not 32 bytes of hex
    """
    if not isinstance(value, str) or not _HEX32_RE.match(value):
        raise InputError(field, "expected 64 hex characters")
    return hex_to_bytes(value)


def int_to_field_bytes(value: int) -> bytes:
    """Encode a field element as 32 little-endian bytes."""
    if not 0 <= value < FIELD_MODULUS:
        raise ValueError("Value is not a canonical field element")
    return value.to_bytes(FIELD_BYTES, "little")


def field_bytes_to_int(data: bytes, field: str = "value") -> int:
    """
    Decode a 32-byte little-endian field encoding.

    Raises:
        FieldEncodingError: If the length is wrong or the value >= modulus
    """
    if not isinstance(data, (bytes, bytearray)) or len(data) != FIELD_BYTES:
        raise FieldEncodingError(field, "must be 32 bytes")
    value = int.from_bytes(data, "little")
    if value >= FIELD_MODULUS:
        raise FieldEncodingError(field, "not a canonical field element")
    return value


def parse_decimal_field(value: str, field: str) -> bytes:
    """
    Parse a base-10 integer string into its 32-byte field encoding.

    Raises:
        InputError: Naming ``field`` if unparsable or out of range
    """
    if not isinstance(value, str) or not _DECIMAL_RE.fullmatch(value.strip()):
        raise InputError(field, "expected a non-negative decimal integer")
    number = int(value.strip())
    if number >= FIELD_MODULUS:
        raise InputError(field, "value exceeds the field modulus")
    return number.to_bytes(FIELD_BYTES, "little")


def parse_u64(value, field: str) -> int:
    """Validate an unsigned 64-bit integer."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InputError(field, "expected an integer")
    if not 0 <= value <= U64_MAX:
        raise InputError(field, "out of u64 range")
    return value
