"""Domain hash over 32-byte little-endian field encodings."""

from zkmix.crypto.poseidon import poseidon
from zkmix.utils.encoding import field_bytes_to_int, int_to_field_bytes


def hash1(x: bytes) -> bytes:
    """
    Hash a single field encoding.

    Width-2 Poseidon, so no input can collide with a :func:`hash2` call
    by construction.

    Args:
        x: 32-byte little-endian field element

    Returns:
        bytes: 32-byte little-endian digest

    Raises:
        FieldEncodingError: If ``x`` is not a canonical encoding
    """
    return int_to_field_bytes(poseidon([field_bytes_to_int(x, "x")]))


def hash2(a: bytes, b: bytes) -> bytes:
    """
    Hash an ordered pair of field encodings.

    Order matters: ``hash2(a, b) != hash2(b, a)`` in general. Callers must
    never sort or otherwise normalise operands.

    Args:
        a: Left operand (32 bytes, little-endian)
        b: Right operand (32 bytes, little-endian)

    Returns:
        bytes: 32-byte little-endian digest

    Raises:
        FieldEncodingError: If either operand is not a canonical encoding
    """
    return int_to_field_bytes(
        poseidon([field_bytes_to_int(a, "left"), field_bytes_to_int(b, "right")])
    )


def merkle_hash(left: bytes, right: bytes) -> bytes:
    """Parent node of two children: ``hash2(left, right)``."""
    return hash2(left, right)
