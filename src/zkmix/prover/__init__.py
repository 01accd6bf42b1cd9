"""Proving service collaborator."""

from zkmix.prover.client import (
    HttpProverClient,
    ProofResponse,
    ProverClient,
    parse_proof_response,
)

__all__ = ["HttpProverClient", "ProofResponse", "ProverClient", "parse_proof_response"]
