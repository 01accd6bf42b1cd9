"""Tests for the Poseidon permutation and the domain hash."""

import pytest

from zkmix.crypto.poseidon import FIELD_MODULUS, get_params, poseidon
from zkmix.utils.encoding import int_to_field_bytes
from zkmix.utils.hash import hash1, hash2, merkle_hash
from zkmix.exceptions import FieldEncodingError


class TestPoseidonParameters:
    """Tests for generated round constants and MDS matrices."""

    def test_width3_first_round_constant(self):
        """Test first width-3 round constant."""
        params = get_params(3)
        assert params.round_constants[0] == 0x0EE9A592BA9A9518D05986D656F40C2114C4993C11BB29938D21D47304CD8E6E

    def test_width2_first_round_constant(self):
        """Test first width-2 round constant."""
        params = get_params(2)
        assert params.round_constants[0] == 0x09C46E9EC68E9BD4FE1FAABA294CBA38A71AA177534CDD1B6C7DC0DBD0ABD7A7

    def test_width3_mds_entry(self):
        """Test first width-3 MDS entry."""
        params = get_params(3)
        assert params.mds[0][0] == 0x109B7F411BA0E4C9B2B70CAF5C36A7B194BE7C11AD24378BFEDB68592BA8118B

    def test_constant_counts(self):
        """Test number of generated round constants."""
        assert len(get_params(2).round_constants) == (8 + 56) * 2
        assert len(get_params(3).round_constants) == (8 + 57) * 3

    def test_params_are_cached(self):
        """Test parameters are generated once per width."""
        assert get_params(3) is get_params(3)

    def test_unsupported_width(self):
        """Test unsupported input counts are rejected."""
        with pytest.raises(ValueError):
            get_params(7)


class TestPoseidonVectors:
    """Known-answer tests against circomlib Poseidon."""

    def test_two_inputs(self):
        """Test known two-input vector."""
        assert poseidon([1, 2]) == 0x115CC0F5E7D690413DF64C6B9662E9CF2A3617F2743245519E19607A4417189A

    def test_single_zero(self):
        """Test known single-input vector."""
        assert poseidon([0]) == 0x2A09A9FD93C590C26B91EFFBB2499F07E8F7AA12E2B4940A3AED2411CB65E11C

    def test_rejects_non_canonical_input(self):
        """Test inputs at or above the modulus are rejected."""
        with pytest.raises(ValueError):
            poseidon([FIELD_MODULUS])
        with pytest.raises(ValueError):
            poseidon([-1])


class TestDomainHash:
    """Tests for hash1 / hash2 over little-endian field encodings."""

    def test_hash1_is_little_endian(self):
        """Test hash1 output is little-endian."""
        digest = hash1(int_to_field_bytes(0))
        assert digest == (0x2A09A9FD93C590C26B91EFFBB2499F07E8F7AA12E2B4940A3AED2411CB65E11C).to_bytes(32, "little")

    def test_hash2_matches_poseidon(self):
        """Test hash2 wraps two-input Poseidon."""
        digest = hash2(int_to_field_bytes(1), int_to_field_bytes(2))
        assert int.from_bytes(digest, "little") == poseidon([1, 2])

    def test_hash2_is_order_sensitive(self):
        """Test hash2 operand order matters."""
        a = int_to_field_bytes(1)
        b = int_to_field_bytes(2)
        assert hash2(a, b) != hash2(b, a)

    def test_merkle_hash_is_hash2(self):
        """Test merkle_hash is hash2."""
        a = int_to_field_bytes(11)
        b = int_to_field_bytes(22)
        assert merkle_hash(a, b) == hash2(a, b)

    def test_arity_separation(self):
        """Test hash1 and hash2 disagree on shared input."""
        x = int_to_field_bytes(5)
        assert hash1(x) != hash2(x, int_to_field_bytes(0))

    def test_rejects_wrong_length(self):
        """Test operands must be 32 bytes."""
        with pytest.raises(FieldEncodingError):
            hash1(b"\x00" * 31)

    def test_rejects_value_above_modulus(self):
        """Test non-canonical operands name the operand."""
        with pytest.raises(FieldEncodingError) as exc_info:
            hash2(b"\xff" * 32, int_to_field_bytes(1))
        assert exc_info.value.field == "left"
