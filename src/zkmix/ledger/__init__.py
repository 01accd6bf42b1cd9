"""On-chain deposit history: RPC client, event decoding, leaf reconstruction."""

from zkmix.ledger.client import LedgerClient, SolanaRpcClient
from zkmix.ledger.events import (
    DEPOSIT_EVENT_DISCRIMINATOR,
    LOG_PREFIX,
    DepositEvent,
    decode_deposit_log,
    decode_deposit_logs,
)
from zkmix.ledger.pda import STATE_SEED, derive_state_address, parse_pubkey
from zkmix.ledger.reconstructor import (
    DepositLedger,
    LedgerScan,
    find_commitment,
    locate,
    order_events,
)

__all__ = [
    "LedgerClient",
    "SolanaRpcClient",
    "DEPOSIT_EVENT_DISCRIMINATOR",
    "LOG_PREFIX",
    "DepositEvent",
    "decode_deposit_log",
    "decode_deposit_logs",
    "STATE_SEED",
    "derive_state_address",
    "parse_pubkey",
    "DepositLedger",
    "LedgerScan",
    "find_commitment",
    "locate",
    "order_events",
]
