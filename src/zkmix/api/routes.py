"""REST and WebSocket endpoints for the mixer withdrawal service."""

import asyncio
import logging
from typing import Callable, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from zkmix import __version__
from zkmix.config import Settings, get_settings
from zkmix.core.commitment import Commitment, Note, format_amount
from zkmix.core.withdrawal import (
    WithdrawalInputs,
    WithdrawalOrchestrator,
    WithdrawalResult,
    WithdrawalStage,
)
from zkmix.ledger.client import SolanaRpcClient
from zkmix.ledger.pda import derive_state_address, parse_pubkey
from zkmix.ledger.reconstructor import DepositLedger
from zkmix.models.schemas import (
    DecodeNoteRequest,
    DecodeNoteResponse,
    DepositDetailsRequest,
    DepositDetailsResponse,
    ErrorResponse,
    HealthResponse,
    PubkeysResponse,
    WithdrawalComputeRequest,
    WithdrawalComputeResponse,
)
from zkmix.prover.client import HttpProverClient
from zkmix.utils.encoding import to_hex32
from zkmix.exceptions import InputError, WithdrawalError

# Configure logging
logger = logging.getLogger(__name__)

# Initialize FastAPI
app = FastAPI(
    title="ZK Mixer Withdrawal Service",
    description="Deposit notes and withdrawal proof orchestration for a shielded-pool mixer",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Convert Pydantic validation errors (422) to 400 Bad Request."""
    error_messages = []
    for error in exc.errors():
        field = " -> ".join(str(loc) for loc in error["loc"])
        error_messages.append(f"{field}: {error['msg']}")

    return JSONResponse(status_code=400, content={"detail": "; ".join(error_messages)})


# ============================================================================
# Collaborator factories (overridable in tests)
# ============================================================================


def get_ledger_client_factory(settings: Settings = Depends(get_settings)) -> Callable:
    """Build ledger clients for a caller-supplied RPC URL."""

    def factory(rpc_url: str) -> SolanaRpcClient:
        return SolanaRpcClient(
            rpc_url,
            timeout=settings.rpc_request_timeout,
            commitment=settings.rpc_commitment,
            max_retries=settings.rpc_max_retries,
            retry_delay=settings.rpc_retry_delay,
        )

    return factory


def get_prover_factory(settings: Settings = Depends(get_settings)) -> Callable:
    """Build prover clients for a proving service URL."""

    def factory(server_url: str) -> HttpProverClient:
        return HttpProverClient(server_url, timeout=settings.prover_timeout)

    return factory


# ============================================================================
# Health & Deposit Endpoints
# ============================================================================


@app.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check():
    """Check service health and status."""
    return HealthResponse(status="operational", version=__version__)


@app.post("/api/generate-deposit-details", response_model=DepositDetailsResponse, tags=["Deposit"])
async def generate_deposit_details(request: DepositDetailsRequest):
    """
    Create fresh deposit secrets.

    The note is the only thing the depositor needs to keep; it is returned
    once and never stored.
    """
    secrets = Commitment.create_commitment()
    note = Note.from_secrets(request.amount, secrets)

    return DepositDetailsResponse(
        nullifier=to_hex32(secrets.nullifier),
        secret=to_hex32(secrets.secret),
        note=note.encode(),
        commitment=to_hex32(secrets.commitment),
        nullifier_hash=to_hex32(secrets.nullifier_hash),
    )


@app.post("/api/decode-note-details", response_model=DecodeNoteResponse, tags=["Deposit"])
async def decode_note_details(request: DecodeNoteRequest, settings: Settings = Depends(get_settings)):
    """Decode a note into decimal secrets and resolve the mixer state account."""
    try:
        note = Note.parse(request.note)
        state_pubkey = derive_state_address(request.program_pubkey, settings.state_seed.encode())
    except InputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return DecodeNoteResponse(
        nullifier_str=str(note.nullifier_int),
        secret_str=str(note.secret_int),
        amount=format_amount(note.amount),
        state_pubkey=state_pubkey,
    )


@app.get("/api/get-pubkeys", response_model=PubkeysResponse, tags=["Deposit"])
async def get_pubkeys(
    program_pubkey: str = Query(..., description="Mixer program id (base58)"),
    settings: Settings = Depends(get_settings),
):
    """Derive the mixer state account for a program."""
    try:
        state_pubkey = derive_state_address(program_pubkey, settings.state_seed.encode())
    except InputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return PubkeysResponse(program_pubkey=program_pubkey, state_pubkey=state_pubkey)


# ============================================================================
# Withdrawal WebSocket
# ============================================================================


async def _run_withdrawal(
    request: WithdrawalComputeRequest,
    settings: Settings,
    ledger_factory: Callable,
    prover_factory: Callable,
) -> WithdrawalResult:
    server_url = request.server_url or settings.prover_url
    rpc_url = request.rpc_url or settings.rpc_url
    async with ledger_factory(rpc_url) as ledger_client, prover_factory(server_url) as prover:
        ledger = DepositLedger(ledger_client, request.program_pubkey, settings.ledger_concurrency)
        orchestrator = WithdrawalOrchestrator(
            ledger,
            prover,
            verification_key=settings.verification_key,
            prover_timeout=settings.prover_timeout,
        )
        return await orchestrator.run(
            WithdrawalInputs(
                nullifier=request.nullifier,
                secret=request.secret,
                recipient=request.new_withdrawal_recipient_address,
                relayer=request.new_relayer_address,
                fee=request.fee,
                refund=request.refund,
            )
        )


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


async def _send_error(websocket: WebSocket, message: str, stage: Optional[str]) -> None:
    await websocket.send_json(ErrorResponse(error=message, stage=stage).model_dump())
    await websocket.close()


@app.websocket("/ws/compute_withdrawal")
async def compute_withdrawal(
    websocket: WebSocket,
    settings: Settings = Depends(get_settings),
    ledger_factory: Callable = Depends(get_ledger_client_factory),
    prover_factory: Callable = Depends(get_prover_factory),
):
    """
    Compute a withdrawal proof.

    The client sends one JSON request and receives one JSON reply, after
    which the socket is closed. If the client disconnects first, the running
    pipeline is cancelled and its network clients are released.
    """
    await websocket.accept()

    try:
        raw = await websocket.receive_json()
    except WebSocketDisconnect:
        return
    except ValueError:
        await _send_error(websocket, "Request must be a JSON object", WithdrawalStage.DECODE_INPUT.value)
        return

    try:
        request = WithdrawalComputeRequest.model_validate(raw)
        parse_pubkey(request.program_pubkey, "program_pubkey")
    except ValidationError as e:
        fields = ", ".join(".".join(str(loc) for loc in err["loc"]) or "request" for err in e.errors())
        await _send_error(websocket, f"Invalid request: {fields}", WithdrawalStage.DECODE_INPUT.value)
        return
    except InputError as e:
        await _send_error(websocket, str(e), WithdrawalStage.DECODE_INPUT.value)
        return

    logger.info(f"Withdrawal requested for program {request.program_pubkey}")

    task = asyncio.create_task(_run_withdrawal(request, settings, ledger_factory, prover_factory))
    disconnect = asyncio.create_task(_wait_for_disconnect(websocket))
    try:
        await asyncio.wait({task, disconnect}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        if not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            logger.info("Client disconnected; withdrawal cancelled")
        disconnect.cancel()
        await asyncio.gather(disconnect, return_exceptions=True)

    if task.cancelled():
        return

    try:
        result = task.result()
    except WithdrawalError as e:
        await _send_error(websocket, str(e), e.stage.value)
        return
    except Exception as e:
        logger.error(f"Withdrawal error: {type(e).__name__}: {e}", exc_info=True)
        await _send_error(websocket, "Internal error", None)
        return

    reply = WithdrawalComputeResponse(
        proof_bytes=list(result.proof),
        public_inputs=list(result.public_values),
        root=to_hex32(result.root),
        nullifier_hash=to_hex32(result.nullifier_hash),
    )
    await websocket.send_json(reply.model_dump())
    await websocket.close()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_level=settings.log_level.lower())
