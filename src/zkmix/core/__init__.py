"""Commitments, Merkle engine, circuit contract and withdrawal pipeline."""
