"""
Withdrawal proof orchestration.

Turns a depositor's secret pair into a verified withdrawal proof in five
strictly sequential stages. A failure at any stage stops the pipeline and is
raised as :class:`WithdrawalError` naming that stage, with the underlying
error chained as its cause.
"""

import asyncio
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum

from zkmix.core.circuit import CircuitInputs, PublicValues, execute_circuit
from zkmix.core.commitment import Commitment
from zkmix.core.merkle_tree import TREE_DEPTH, MerklePath, assert_path, build_path
from zkmix.ledger.pda import parse_pubkey
from zkmix.ledger.reconstructor import DepositLedger
from zkmix.models.schemas import ProofRequest
from zkmix.prover.client import ProverClient
from zkmix.utils.encoding import parse_decimal_field, parse_u64
from zkmix.exceptions import (
    DepositNotFoundError,
    ProverFailure,
    ProverTimeout,
    WithdrawalError,
)

logger = logging.getLogger(__name__)


class WithdrawalStage(str, Enum):
    """Pipeline stages, in execution order."""
    DECODE_INPUT = "decode_input"
    LEDGER_LOOKUP = "ledger_lookup"
    MERKLE_PATH = "merkle_path"
    PROOF_GENERATION = "proof_generation"
    PROOF_VERIFICATION = "proof_verification"


@dataclass(frozen=True)
class WithdrawalInputs:
    """Raw withdrawal request: decimal secrets and base58 addresses."""

    nullifier: str
    secret: str
    recipient: str
    relayer: str
    fee: int = 0
    refund: int = 0

    def __repr__(self) -> str:
        return (
            f"WithdrawalInputs(recipient={self.recipient!r}, relayer={self.relayer!r}, "
            f"fee={self.fee}, refund={self.refund})"
        )


@dataclass(frozen=True)
class WithdrawalResult:
    """A verified proof and the public values it commits to."""

    proof: bytes
    public_values: bytes
    root: bytes
    nullifier_hash: bytes
    leaf_index: int


@dataclass(frozen=True)
class _DecodedInputs:
    nullifier: bytes
    secret: bytes
    recipient: bytes
    relayer: bytes
    fee: int
    refund: int
    commitment: bytes
    nullifier_hash: bytes

    def __repr__(self) -> str:
        return "_DecodedInputs(...)"


@contextmanager
def _stage(stage: WithdrawalStage):
    try:
        yield
    except WithdrawalError:
        raise
    except Exception as e:
        logger.error(f"Withdrawal failed at {stage.value}: {type(e).__name__}")
        raise WithdrawalError(stage, str(e) or type(e).__name__) from e


class WithdrawalOrchestrator:
    """
    Runs the withdrawal pipeline against a ledger and a prover.

    One orchestrator may serve many withdrawals; it keeps no per-request
    state. The tree depth is always the deployed ``TREE_DEPTH``.
    Hashing work runs in worker threads so the event loop keeps serving
    other requests and disconnect notices.
    """

    def __init__(
        self,
        ledger: DepositLedger,
        prover: ProverClient,
        verification_key: str,
        prover_timeout: float = 300.0,
    ):
        if not verification_key:
            raise ValueError("A verification key is required")
        self.ledger = ledger
        self.prover = prover
        self.verification_key = verification_key
        self.prover_timeout = prover_timeout

    async def run(self, inputs: WithdrawalInputs) -> WithdrawalResult:
        """
        Produce a verified withdrawal proof.

        Raises:
            DepositNotFoundError: If no deposit matches the secret pair
            WithdrawalError: For any other failure, naming the stage
        """
        with _stage(WithdrawalStage.DECODE_INPUT):
            decoded = await asyncio.to_thread(self._decode, inputs)

        with _stage(WithdrawalStage.LEDGER_LOOKUP):
            scan = await self.ledger.locate(decoded.commitment)
            if not scan.found:
                raise DepositNotFoundError(
                    WithdrawalStage.LEDGER_LOOKUP,
                    f"No deposit matches the commitment among {len(scan.commitments)} deposits",
                )
            logger.info(f"Deposit found at leaf {scan.leaf_index} of {len(scan.commitments)}")

        with _stage(WithdrawalStage.MERKLE_PATH):
            path = await asyncio.to_thread(
                self._checked_path, scan.commitments, scan.leaf_index, decoded.commitment
            )
            logger.info(f"Merkle root 0x{path.root.hex()}")

        with _stage(WithdrawalStage.PROOF_GENERATION):
            circuit_inputs = CircuitInputs(
                root=path.root,
                nullifier_hash=decoded.nullifier_hash,
                recipient=decoded.recipient,
                relayer=decoded.relayer,
                fee=decoded.fee,
                refund=decoded.refund,
                nullifier=decoded.nullifier,
                secret=decoded.secret,
                path_elements=path.siblings,
                path_indices=path.path_indices,
            )
            expected = await asyncio.to_thread(execute_circuit, circuit_inputs)
            request = ProofRequest.from_circuit_inputs(circuit_inputs)
            response = await self._with_timeout(self.prover.prove(request), "Proof generation")

        with _stage(WithdrawalStage.PROOF_VERIFICATION):
            committed = PublicValues.from_bytes(response.public_values)
            if committed != expected:
                raise ProverFailure("Prover committed public values that differ from the request")
            valid = await self._with_timeout(
                self.prover.verify(response.proof, response.public_values, self.verification_key),
                "Proof verification",
            )
            if not valid:
                raise ProverFailure("Proof rejected by the verification key")

        logger.info(f"Withdrawal proof verified for leaf {scan.leaf_index}")
        return WithdrawalResult(
            proof=response.proof,
            public_values=response.public_values,
            root=path.root,
            nullifier_hash=decoded.nullifier_hash,
            leaf_index=scan.leaf_index,
        )

    @staticmethod
    def _checked_path(commitments, leaf_index: int, commitment: bytes) -> MerklePath:
        path = build_path(commitments, leaf_index, TREE_DEPTH)
        assert_path(path.root, commitment, path.siblings, path.path_indices)
        return path

    @staticmethod
    def _decode(inputs: WithdrawalInputs) -> _DecodedInputs:
        nullifier = parse_decimal_field(inputs.nullifier, "nullifier")
        secret = parse_decimal_field(inputs.secret, "secret")
        recipient = bytes(parse_pubkey(inputs.recipient, "recipient"))
        relayer = bytes(parse_pubkey(inputs.relayer, "relayer"))
        fee = parse_u64(inputs.fee, "fee")
        refund = parse_u64(inputs.refund, "refund")

        return _DecodedInputs(
            nullifier=nullifier,
            secret=secret,
            recipient=recipient,
            relayer=relayer,
            fee=fee,
            refund=refund,
            commitment=Commitment.compute_commitment(nullifier, secret),
            nullifier_hash=Commitment.compute_nullifier_hash(nullifier),
        )

    async def _with_timeout(self, awaitable, what: str):
        try:
            return await asyncio.wait_for(awaitable, timeout=self.prover_timeout)
        except asyncio.TimeoutError as e:
            raise ProverTimeout(f"{what} exceeded {self.prover_timeout}s") from e
