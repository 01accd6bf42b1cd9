"""Ledger RPC collaborators used to scan deposit history."""

import asyncio
import itertools
import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional

import httpx

from zkmix.exceptions import LedgerTimeout, LedgerUnavailable

logger = logging.getLogger(__name__)

SIGNATURE_PAGE_LIMIT = 1000


class LedgerClient(ABC):
    """The two ledger calls the reconstructor needs."""

    @abstractmethod
    async def get_signatures_for_program(self, program_id: str) -> List[str]:
        """Every successful transaction signature touching ``program_id``, any order."""

    @abstractmethod
    async def get_transaction_logs(self, signature: str) -> List[str]:
        """Log lines of the transaction ``signature``."""


class SolanaRpcClient(LedgerClient):
    """
    JSON-RPC ledger client over httpx.

    Use as an async context manager so the connection pool is released on
    exit, including on cancellation::

        async with SolanaRpcClient(rpc_url) as client:
            sigs = await client.get_signatures_for_program(program_id)
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 20.0,
        commitment: str = "confirmed",
        max_retries: int = 3,
        retry_delay: float = 0.5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.rpc_url = rpc_url
        self.timeout = timeout
        self.commitment = commitment
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._ids = itertools.count(1)

    async def __aenter__(self) -> "SolanaRpcClient":
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _call(self, method: str, params: list) -> Any:
        if self._client is None:
            raise RuntimeError("SolanaRpcClient used outside 'async with'")

        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}

        attempt = 0
        while True:
            try:
                response = await self._client.post(self.rpc_url, json=payload)
                response.raise_for_status()
                body = response.json()
                break
            except httpx.TimeoutException as e:
                raise LedgerTimeout(f"{method} timed out after {self.timeout}s") from e
            except (httpx.TransportError, httpx.HTTPStatusError) as e:
                attempt += 1
                if attempt > self.max_retries:
                    raise LedgerUnavailable(f"{method} failed: {e}") from e
                delay = self.retry_delay * (2 ** (attempt - 1))
                logger.warning(
                    f"{method} failed (attempt {attempt}/{self.max_retries}), retrying in {delay}s: {e}"
                )
                await asyncio.sleep(delay)
            except ValueError as e:
                raise LedgerUnavailable(f"{method} returned invalid JSON") from e

        if "error" in body:
            error = body["error"]
            message = error.get("message") if isinstance(error, dict) else error
            raise LedgerUnavailable(f"{method} RPC error: {message}")
        return body.get("result")

    async def get_signatures_for_program(self, program_id: str) -> List[str]:
        signatures: List[str] = []
        seen = set()
        before: Optional[str] = None

        while True:
            config = {"limit": SIGNATURE_PAGE_LIMIT, "commitment": self.commitment}
            if before is not None:
                config["before"] = before

            page = await self._call("getSignaturesForAddress", [program_id, config])
            if not isinstance(page, list):
                raise LedgerUnavailable("getSignaturesForAddress returned no result list")

            for info in page:
                signature = info["signature"]
                if info.get("err") is not None or signature in seen:
                    continue
                seen.add(signature)
                signatures.append(signature)

            if len(page) < SIGNATURE_PAGE_LIMIT:
                break
            before = page[-1]["signature"]

        logger.info(f"Listed {len(signatures)} signatures for program {program_id}")
        return signatures

    async def get_transaction_logs(self, signature: str) -> List[str]:
        result = await self._call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "json",
                    "commitment": self.commitment,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )
        if result is None:
            raise LedgerUnavailable(f"Transaction {signature} not available yet")

        meta = result.get("meta") or {}
        return list(meta.get("logMessages") or [])
