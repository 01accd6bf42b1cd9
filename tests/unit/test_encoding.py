"""Tests for encoding utilities."""

import pytest

from zkmix.crypto.poseidon import FIELD_MODULUS
from zkmix.utils.encoding import (
    U64_MAX,
    bytes_to_hex,
    field_bytes_to_int,
    hex_to_bytes,
    int_to_field_bytes,
    parse_decimal_field,
    parse_hex32,
    parse_u64,
    to_hex32,
    to_hex_list,
)
from zkmix.exceptions import FieldEncodingError, InputError


class TestHexConversion:
    """Test hex helpers."""

    def test_bytes_to_hex_basic(self):
        """Test basic hex conversion."""
        assert bytes_to_hex(b"hello") == "0x68656c6c6f"

    def test_bytes_to_hex_empty(self):
        """Test hex conversion of empty bytes."""
        assert bytes_to_hex(b"") == "0x"

    def test_hex_to_bytes_with_and_without_prefix(self):
        """Test hex parsing with and without 0x."""
        assert hex_to_bytes("0x68656c6c6f") == b"hello"
        assert hex_to_bytes("68656c6c6f") == b"hello"

    def test_hex_to_bytes_odd_length(self):
        """Test odd-length hex is rejected."""
        with pytest.raises(ValueError):
            hex_to_bytes("0x123")

    def test_to_hex32_keeps_byte_order(self):
        """Test 32-byte hex keeps byte order."""
        data = int_to_field_bytes(1)
        assert to_hex32(data) == "0x01" + "00" * 31

    def test_to_hex32_requires_32_bytes(self):
        """Test 32-byte hex rejects other sizes."""
        with pytest.raises(ValueError):
            to_hex32(b"\x00" * 31)

    def test_to_hex_list(self):
        """Test hex conversion of a list."""
        values = [b"\x00" * 32, b"\xff" * 32]
        assert to_hex_list(values) == ["0x" + "00" * 32, "0x" + "ff" * 32]

    def test_parse_hex32(self):
        """Test parsing 32-byte hex."""
        assert parse_hex32("0x" + "ab" * 32, "root") == b"\xab" * 32
        assert parse_hex32("ab" * 32, "root") == b"\xab" * 32

    @pytest.mark.parametrize("value", ["0x" + "ab" * 31, "zz" * 32, "", None])
    def test_parse_hex32_rejects(self, value):
        """Test malformed 32-byte hex is rejected."""
        with pytest.raises(InputError) as exc_info:
            parse_hex32(value, "root")
        assert exc_info.value.field == "root"


class TestFieldEncoding:
    """Test 32-byte little-endian field encodings."""

    def test_int_round_trip(self):
        """Test integer to field bytes and back."""
        value = FIELD_MODULUS - 1
        assert field_bytes_to_int(int_to_field_bytes(value)) == value

    def test_little_endian_layout(self):
        """Test field bytes are little-endian."""
        assert int_to_field_bytes(258)[:2] == b"\x02\x01"

    def test_int_to_field_bytes_rejects_modulus(self):
        """Test values at the modulus are rejected."""
        with pytest.raises(ValueError):
            int_to_field_bytes(FIELD_MODULUS)

    def test_field_bytes_rejects_modulus(self):
        """Test non-canonical field bytes are rejected."""
        with pytest.raises(FieldEncodingError):
            field_bytes_to_int(FIELD_MODULUS.to_bytes(32, "little"))

    def test_field_bytes_rejects_short_input(self):
        """Test short field bytes are rejected."""
        with pytest.raises(FieldEncodingError) as exc_info:
            field_bytes_to_int(b"\x01", field="secret")
        assert exc_info.value.field == "secret"


class TestDecimalAndU64:
    """Test decimal secrets and u64 amounts."""

    def test_parse_decimal_field(self):
        """Test decimal field parsing."""
        assert parse_decimal_field("258", "nullifier") == int_to_field_bytes(258)

    def test_parse_decimal_field_accepts_max(self):
        """Test the largest field element parses."""
        assert parse_decimal_field(str(FIELD_MODULUS - 1), "secret") == int_to_field_bytes(FIELD_MODULUS - 1)

    @pytest.mark.parametrize("value", [str(FIELD_MODULUS), "-1", "12a", "", "0x10", "²", "١٢"])
    def test_parse_decimal_field_rejects(self, value):
        """Test invalid decimal strings name the field."""
        with pytest.raises(InputError) as exc_info:
            parse_decimal_field(value, "nullifier")
        assert exc_info.value.field == "nullifier"

    def test_parse_u64_bounds(self):
        """Test u64 bounds are accepted."""
        assert parse_u64(0, "fee") == 0
        assert parse_u64(U64_MAX, "fee") == U64_MAX

    @pytest.mark.parametrize("value", [-1, U64_MAX + 1, "5", True, 1.5])
    def test_parse_u64_rejects(self, value):
        """Test values outside u64 are rejected."""
        with pytest.raises(InputError):
            parse_u64(value, "refund")
