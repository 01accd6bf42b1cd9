"""
Deposit ledger reconstruction.

Rebuilds the authoritative, ordered commitment sequence from the program's
transaction history. Signature listing order is not deposit order, and
transactions are fetched concurrently, so the only ordering used is the
leaf_index each event carries.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from zkmix.ledger.client import LedgerClient
from zkmix.ledger.events import DepositEvent, decode_deposit_logs
from zkmix.exceptions import LedgerIntegrityError

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 8


@dataclass(frozen=True)
class LedgerScan:
    """Result of a full history scan."""

    commitments: Tuple[bytes, ...]
    events: Tuple[DepositEvent, ...]
    leaf_index: Optional[int]
    found: bool


def order_events(events: Sequence[DepositEvent]) -> List[DepositEvent]:
    """
    Sort events by leaf index and require indices 0..n-1 exactly once.

    Raises:
        LedgerIntegrityError: On a duplicate or missing leaf index
    """
    ordered = sorted(events, key=lambda e: e.leaf_index)
    for position, event in enumerate(ordered):
        if event.leaf_index < position:
            raise LedgerIntegrityError(
                f"Duplicate deposit event for leaf index {event.leaf_index}",
                leaf_index=event.leaf_index,
            )
        if event.leaf_index > position:
            raise LedgerIntegrityError(
                f"Missing deposit event for leaf index {position}", leaf_index=position
            )
    return ordered


def find_commitment(events: Sequence[DepositEvent], commitment: bytes) -> Optional[int]:
    """Lowest leaf index holding ``commitment``, or None."""
    for event in events:
        if event.commitment == commitment:
            return event.leaf_index
    return None


class DepositLedger:
    """Scans a program's history for deposit events."""

    def __init__(self, client: LedgerClient, program_id: str, concurrency: int = DEFAULT_CONCURRENCY):
        if concurrency < 1:
            raise ValueError("Concurrency must be at least 1")
        self.client = client
        self.program_id = program_id
        self.concurrency = concurrency

    async def fetch_events(self) -> List[DepositEvent]:
        """
        Fetch and decode every deposit event, in no particular order.

        Raises:
            LedgerUnavailable: On any transport or RPC failure
        """
        signatures = await self.client.get_signatures_for_program(self.program_id)
        semaphore = asyncio.Semaphore(self.concurrency)

        async def fetch(signature: str) -> List[DepositEvent]:
            async with semaphore:
                logs = await self.client.get_transaction_logs(signature)
            return decode_deposit_logs(logs)

        tasks = [asyncio.ensure_future(fetch(sig)) for sig in signatures]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        events = [event for batch in results for event in batch]
        logger.info(f"Decoded {len(events)} deposit events from {len(signatures)} transactions")
        return events

    async def locate(self, target_commitment: bytes) -> LedgerScan:
        """
        Rebuild the ordered commitment list and find ``target_commitment``.

        A missing commitment is reported as ``found=False``, not raised.

        Raises:
            LedgerUnavailable: On any transport or RPC failure
            LedgerIntegrityError: If leaf indices are not contiguous from 0
        """
        events = order_events(await self.fetch_events())
        leaf_index = find_commitment(events, target_commitment)

        return LedgerScan(
            commitments=tuple(e.commitment for e in events),
            events=tuple(events),
            leaf_index=leaf_index,
            found=leaf_index is not None,
        )


async def locate(
    target_commitment: bytes,
    client: LedgerClient,
    program_id: str,
    concurrency: int = DEFAULT_CONCURRENCY,
) -> LedgerScan:
    """Convenience wrapper around :meth:`DepositLedger.locate`."""
    return await DepositLedger(client, program_id, concurrency).locate(target_commitment)
