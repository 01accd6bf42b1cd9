"""
Service configuration.

Values come from ``ZKMIX_``-prefixed environment variables, or from a
``.env`` file in the working directory.
"""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    """Runtime settings for the withdrawal service."""

    model_config = SettingsConfigDict(env_prefix="ZKMIX_", env_file=".env", extra="ignore")

    # Ledger
    rpc_url: str = "https://api.devnet.solana.com"
    rpc_commitment: str = "confirmed"
    rpc_request_timeout: float = Field(20.0, gt=0)
    rpc_max_retries: int = Field(3, ge=0)
    rpc_retry_delay: float = Field(0.5, ge=0)
    ledger_concurrency: int = Field(8, ge=1)
    state_seed: str = "mixer_state"

    # Prover
    prover_url: str = "http://localhost:3001"
    prover_timeout: float = Field(300.0, gt=0)
    verification_key: str = ""

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings, read once."""
    return Settings()
