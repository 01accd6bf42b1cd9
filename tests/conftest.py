"""Pytest configuration and fixtures."""

import asyncio
import random
import sys
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from solders.pubkey import Pubkey  # noqa: E402

from zkmix.core.circuit import execute_circuit  # noqa: E402
from zkmix.core.commitment import Commitment  # noqa: E402
from zkmix.exceptions import LedgerUnavailable  # noqa: E402
from zkmix.ledger.client import LedgerClient  # noqa: E402
from zkmix.ledger.events import DepositEvent  # noqa: E402
from zkmix.prover.client import ProofResponse, ProverClient  # noqa: E402
from zkmix.utils.encoding import int_to_field_bytes  # noqa: E402


class FakeLedgerClient(LedgerClient):
    """In-memory ledger: signature -> log lines."""

    def __init__(self, transactions, failing=(), block=False):
        self.transactions = dict(transactions)
        self.failing = set(failing)
        self.block = block
        self.fetched = []
        self.closed = False
        self.cancelled = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.closed = True

    async def get_signatures_for_program(self, program_id):
        if self.block:
            try:
                await asyncio.sleep(3600)
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        return list(self.transactions)

    async def get_transaction_logs(self, signature):
        await asyncio.sleep(0)
        if signature in self.failing:
            raise LedgerUnavailable(f"RPC failed for {signature}")
        self.fetched.append(signature)
        return list(self.transactions[signature])


class FakeProver(ProverClient):
    """Prover that runs the reference circuit instead of a real backend."""

    def __init__(self, valid=True, tamper_fee=False, error=None, delay=0.0):
        self.valid = valid
        self.tamper_fee = tamper_fee
        self.error = error
        self.delay = delay
        self.requests = []
        self.verified = []
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.closed = True

    async def prove(self, request):
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        values = execute_circuit(request.to_circuit_inputs())
        if self.tamper_fee:
            values = type(values)(
                root=values.root,
                nullifier_hash=values.nullifier_hash,
                recipient=values.recipient,
                relayer=values.relayer,
                fee=values.fee + 1,
                refund=values.refund,
            )
        data = values.to_bytes()
        return ProofResponse(proof=b"\x01" * 64, public_values=data)

    async def verify(self, proof, public_values, verification_key):
        self.verified.append(verification_key)
        return self.valid


def make_transactions(commitments, shuffle_seed=None, extra_logs=()):
    """One transaction per deposit, optionally listed in shuffled order."""
    events = [
        DepositEvent(commitment=c, leaf_index=i, depositor=bytes([7]) * 32)
        for i, c in enumerate(commitments)
    ]
    if shuffle_seed is not None:
        random.Random(shuffle_seed).shuffle(events)

    transactions = {}
    for n, event in enumerate(events):
        logs = ["Program log: Instruction: Deposit", event.to_log_line()]
        logs.extend(extra_logs)
        transactions[f"sig-{n}"] = logs
    return transactions


@pytest.fixture
def fake_ledger_client():
    """Factory for in-memory ledger clients."""
    return FakeLedgerClient


@pytest.fixture
def fake_prover():
    """Factory for circuit-backed fake provers."""
    return FakeProver


@pytest.fixture
def ledger_transactions():
    """Factory turning commitments into ledger transactions."""
    return make_transactions


@pytest.fixture(scope="session")
def deposit():
    """A fixed secret pair with its decimal forms and commitment."""
    nullifier_int = 123456789
    secret_int = 987654321
    nullifier = int_to_field_bytes(nullifier_int)
    secret = int_to_field_bytes(secret_int)
    return {
        "nullifier_str": str(nullifier_int),
        "secret_str": str(secret_int),
        "nullifier": nullifier,
        "secret": secret,
        "commitment": Commitment.compute_commitment(nullifier, secret),
        "nullifier_hash": Commitment.compute_nullifier_hash(nullifier),
    }


@pytest.fixture(scope="session")
def other_commitments():
    """Commitments of unrelated deposits."""
    return [Commitment.compute_commitment(int_to_field_bytes(i), int_to_field_bytes(i + 1)) for i in range(1, 6)]


@pytest.fixture
def program_id():
    return str(Pubkey.new_unique())


@pytest.fixture
def recipient():
    return str(Pubkey.new_unique())


@pytest.fixture
def relayer():
    return str(Pubkey.new_unique())
