"""Tests for the withdrawal circuit contract."""

import struct

import pytest

from zkmix.core.circuit import PUBLIC_VALUES_SIZE, CircuitInputs, PublicValues, execute_circuit
from zkmix.core.merkle_tree import TREE_DEPTH, build_path
from zkmix.models.schemas import ProofRequest
from zkmix.utils.encoding import int_to_field_bytes
from zkmix.exceptions import CircuitConstraintError, InputError, MerkleMismatch


@pytest.fixture
def circuit_inputs(deposit, other_commitments):
    leaves = other_commitments[:2] + [deposit["commitment"]] + other_commitments[2:]
    path = build_path(leaves, 2)
    return CircuitInputs(
        root=path.root,
        nullifier_hash=deposit["nullifier_hash"],
        recipient=b"\x11" * 32,
        relayer=b"\x22" * 32,
        fee=5000,
        refund=7,
        nullifier=deposit["nullifier"],
        secret=deposit["secret"],
        path_elements=path.siblings,
        path_indices=path.path_indices,
    )


def replace(inputs, **changes):
    fields = {name: getattr(inputs, name) for name in inputs.__dataclass_fields__}
    fields.update(changes)
    return CircuitInputs(**fields)


class TestPublicValues:
    """Tests for the committed public-values layout."""

    def test_layout(self):
        """Test committed public values layout."""
        values = PublicValues(
            root=b"\x01" * 32,
            nullifier_hash=b"\x02" * 32,
            recipient=b"\x03" * 32,
            relayer=b"\x04" * 32,
            fee=1,
            refund=2,
        )
        data = values.to_bytes()

        assert len(data) == PUBLIC_VALUES_SIZE == 144
        assert data[:32] == b"\x01" * 32
        assert data[96:128] == b"\x04" * 32
        assert data[128:136] == struct.pack("<Q", 1)
        assert data[136:] == struct.pack("<Q", 2)
        assert PublicValues.from_bytes(data) == values

    def test_from_bytes_rejects_bad_length(self):
        """Test decoding rejects buffers of the wrong size."""
        with pytest.raises(InputError) as exc_info:
            PublicValues.from_bytes(b"\x00" * 143)
        assert exc_info.value.field == "public_inputs"


class TestExecuteCircuit:
    """Tests for the reference circuit execution."""

    def test_valid_witness(self, circuit_inputs):
        """Test a consistent witness yields its public values."""
        values = execute_circuit(circuit_inputs)
        assert values == circuit_inputs.public_values
        assert values.fee == 5000
        assert values.refund == 7

    def test_wrong_nullifier_hash(self, circuit_inputs):
        """Test a mismatched nullifier hash violates the circuit."""
        bad = replace(circuit_inputs, nullifier_hash=int_to_field_bytes(1))
        with pytest.raises(CircuitConstraintError):
            execute_circuit(bad)

    def test_wrong_secret(self, circuit_inputs):
        """Test a wrong secret breaks the membership check."""
        bad = replace(circuit_inputs, secret=int_to_field_bytes(1))
        with pytest.raises(MerkleMismatch):
            execute_circuit(bad)

    def test_wrong_root(self, circuit_inputs):
        """Test a wrong root breaks the membership check."""
        bad = replace(circuit_inputs, root=int_to_field_bytes(1))
        with pytest.raises(MerkleMismatch):
            execute_circuit(bad)


class TestCircuitInputValidation:
    """Tests for witness shape checks."""

    def test_short_path(self, circuit_inputs):
        """Test a truncated path is rejected."""
        with pytest.raises(InputError) as exc_info:
            replace(circuit_inputs, path_elements=circuit_inputs.path_elements[:-1])
        assert exc_info.value.field == "path_elements"

    def test_bad_bit(self, circuit_inputs):
        """Test direction bits outside 0 and 1 are rejected."""
        bits = (2,) + circuit_inputs.path_indices[1:]
        with pytest.raises(InputError):
            replace(circuit_inputs, path_indices=bits)

    def test_bad_recipient(self, circuit_inputs):
        """Test a recipient of the wrong size is rejected."""
        with pytest.raises(InputError) as exc_info:
            replace(circuit_inputs, recipient=b"\x11" * 31)
        assert exc_info.value.field == "recipient"

    def test_fee_out_of_range(self, circuit_inputs):
        """Test a fee above u64 is rejected."""
        with pytest.raises(InputError):
            replace(circuit_inputs, fee=2**64)

    def test_repr_hides_secrets(self, circuit_inputs):
        """Test repr never shows the secret pair."""
        text = repr(circuit_inputs)
        assert circuit_inputs.nullifier.hex() not in text
        assert circuit_inputs.secret.hex() not in text


class TestProofRequest:
    """Tests for the proof request payload."""

    def test_from_circuit_inputs(self, circuit_inputs):
        """Test request fields are hex encoded without byte swap."""
        request = ProofRequest.from_circuit_inputs(circuit_inputs)
        payload = request.model_dump()

        assert list(payload) == [
            "root",
            "nullifier_hash",
            "recipient",
            "relayer",
            "fee",
            "refund",
            "nullifier",
            "secret",
            "path_elements",
            "path_indices",
        ]
        assert payload["root"] == "0x" + circuit_inputs.root.hex()
        assert payload["recipient"] == "0x" + "11" * 32
        assert len(payload["path_elements"]) == TREE_DEPTH
        assert payload["fee"] == 5000

    def test_back_to_circuit_inputs(self, circuit_inputs):
        """Test a request converts back to identical circuit inputs."""
        request = ProofRequest.from_circuit_inputs(circuit_inputs)
        assert request.to_circuit_inputs() == circuit_inputs

    def test_request_root_replays(self, circuit_inputs, deposit):
        """Test the request path replays to its root."""
        request = ProofRequest.from_circuit_inputs(circuit_inputs)
        restored = request.to_circuit_inputs()
        assert execute_circuit(restored).root == bytes.fromhex(request.root[2:])

    def test_rejects_unprefixed_hex(self, circuit_inputs):
        """Test hex fields require the 0x prefix."""
        payload = ProofRequest.from_circuit_inputs(circuit_inputs).model_dump()
        payload["root"] = payload["root"][2:]
        with pytest.raises(ValueError):
            ProofRequest(**payload)

    def test_rejects_short_path(self, circuit_inputs):
        """Test path lists must hold exactly twenty entries."""
        payload = ProofRequest.from_circuit_inputs(circuit_inputs).model_dump()
        payload["path_elements"] = payload["path_elements"][:-1]
        with pytest.raises(ValueError):
            ProofRequest(**payload)

    def test_rejects_bad_path_element(self, circuit_inputs):
        """Test path elements must be 32-byte hex."""
        payload = ProofRequest.from_circuit_inputs(circuit_inputs).model_dump()
        payload["path_elements"][3] = "0x" + "zz" * 32
        with pytest.raises(ValueError):
            ProofRequest(**payload)

    def test_rejects_bad_bit(self, circuit_inputs):
        """Test path indices must be 0 or 1."""
        payload = ProofRequest.from_circuit_inputs(circuit_inputs).model_dump()
        payload["path_indices"][0] = 3
        with pytest.raises(ValueError):
            ProofRequest(**payload)

    def test_repr_hides_secrets(self, circuit_inputs):
        """Test repr never shows the secret pair."""
        request = ProofRequest.from_circuit_inputs(circuit_inputs)
        assert request.secret not in repr(request)
        assert request.nullifier not in str(request)
