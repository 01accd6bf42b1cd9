"""Client for the external proving service."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from zkmix.models.schemas import ProofRequest
from zkmix.utils.encoding import bytes_to_hex, hex_to_bytes
from zkmix.exceptions import ProverFailure, ProverTimeout

logger = logging.getLogger(__name__)

PROVE_PATH = "/api/prove-mix"
VERIFY_PATH = "/api/verify-mix"


@dataclass(frozen=True)
class ProofResponse:
    """Opaque proof plus the public values the prover committed."""

    proof: bytes
    public_values: bytes


class ProverClient(ABC):
    """Proving collaborator."""

    @abstractmethod
    async def prove(self, request: ProofRequest) -> ProofResponse:
        """Generate a proof for ``request``."""

    @abstractmethod
    async def verify(self, proof: bytes, public_values: bytes, verification_key: str) -> bool:
        """Check ``proof`` against ``public_values`` under ``verification_key``."""


def _decode_byte_list(value: Any, what: str) -> bytes:
    try:
        return bytes(value)
    except (TypeError, ValueError) as e:
        raise ProverFailure(f"Invalid {what} byte list: {e}")


def _decode_hex(value: Any, what: str) -> bytes:
    if not isinstance(value, str):
        raise ProverFailure(f"Invalid {what}: expected a hex string")
    try:
        return hex_to_bytes(value)
    except ValueError as e:
        raise ProverFailure(f"Invalid {what} hex: {e}")


def parse_proof_response(body: Any) -> ProofResponse:
    """
    Parse the prover's JSON answer.

    ``public_inputs`` may be a serialized buffer (``{"buffer": {"data": [...]}}``),
    a plain byte list, or a hex string.

    Raises:
        ProverFailure: If the body does not have that shape
    """
    if not isinstance(body, dict) or "proof" not in body or "public_inputs" not in body:
        raise ProverFailure("Prover response is missing 'proof' or 'public_inputs'")

    proof = _decode_hex(body["proof"], "proof")

    public_inputs = body["public_inputs"]
    if isinstance(public_inputs, dict):
        try:
            public_inputs = public_inputs["buffer"]["data"]
        except (KeyError, TypeError):
            raise ProverFailure("Prover response 'public_inputs' has no buffer data")
        public_values = _decode_byte_list(public_inputs, "public_inputs")
    elif isinstance(public_inputs, list):
        public_values = _decode_byte_list(public_inputs, "public_inputs")
    else:
        public_values = _decode_hex(public_inputs, "public_inputs")

    return ProofResponse(proof=proof, public_values=public_values)


class HttpProverClient(ProverClient):
    """
    Proving service reached over HTTP.

    Requests are not retried: proving is expensive and a failed attempt is
    reported to the caller as is.
    """

    def __init__(
        self,
        server_url: str,
        timeout: float = 300.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.server_url = server_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "HttpProverClient":
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _post(self, path: str, payload: dict) -> Any:
        if self._client is None:
            raise RuntimeError("HttpProverClient used outside 'async with'")

        url = self.server_url + path
        try:
            response = await self._client.post(url, json=payload)
        except httpx.TimeoutException as e:
            raise ProverTimeout(f"Prover did not answer within {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise ProverFailure(f"Prover request failed: {e}") from e

        if response.status_code >= 400:
            raise ProverFailure(f"Prover returned HTTP {response.status_code}: {response.text[:200]}")

        try:
            return response.json()
        except ValueError as e:
            raise ProverFailure("Prover returned invalid JSON") from e

    async def prove(self, request: ProofRequest) -> ProofResponse:
        logger.info(f"Requesting proof from {self.server_url}")
        body = await self._post(PROVE_PATH, request.model_dump())
        response = parse_proof_response(body)
        logger.info(f"Received proof ({len(response.proof)} bytes)")
        return response

    async def verify(self, proof: bytes, public_values: bytes, verification_key: str) -> bool:
        body = await self._post(
            VERIFY_PATH,
            {
                "proof": bytes_to_hex(proof),
                "public_values": bytes_to_hex(public_values),
                "vkey": verification_key,
            },
        )
        if not isinstance(body, dict) or not isinstance(body.get("valid"), bool):
            raise ProverFailure("Verifier response is missing boolean 'valid'")
        return body["valid"]
