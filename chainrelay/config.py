"""Centralized configuration via pydantic-settings. All secrets from .env."""

from pathlib import Path
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


PROJECT_ROOT = Path(__file__).resolve().parent.parent
VERSION = "0.1.0"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        env_prefix="CHAINRELAY_",
        extra="ignore",
    )

    # "simulated" serves canned data, "live" talks to RPC nodes
    chain_mode: Literal["simulated", "live"] = "simulated"
    supported_chains: list[str] = Field(
        default_factory=lambda: ["ETH", "POLYGON", "BNB", "OP", "BASE", "ARB", "Holesky"]
    )
    allow_same_chain_transfers: bool = True

    # Blockchain RPC
    infura_api_key: str = ""

    # Optional per-chain RPC overrides
    ethereum_rpc_url: str = ""
    polygon_rpc_url: str = ""
    bnb_rpc_url: str = ""
    optimism_rpc_url: str = ""
    base_rpc_url: str = ""
    arbitrum_rpc_url: str = ""
    holesky_rpc_url: str = ""

    # Signing account and bridge deposit target for live transfers
    private_key: str = ""
    account_address: str = ""
    bridge_address: str = ""

    # Dispatch
    item_timeout: float = 60.0  # seconds, per batch item
    # Receipt wait inside a live submission; item_timeout still caps the whole call
    receipt_timeout: float = 45.0
    max_concurrency: int = 16

    # Simulated backend
    simulated_latency: float = 0.0
    simulated_success_rate: float = 1.0

    # HTTP service
    api_host: str = "127.0.0.1"
    api_port: int = 3000
    api_url: str = "http://127.0.0.1:3000"
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    def get_rpc_url(self, chain_id: int) -> str:
        """Get RPC URL for a chain, using override or Infura default."""
        overrides = {
            1: self.ethereum_rpc_url,
            137: self.polygon_rpc_url,
            56: self.bnb_rpc_url,
            10: self.optimism_rpc_url,
            8453: self.base_rpc_url,
            42161: self.arbitrum_rpc_url,
            17000: self.holesky_rpc_url,
        }
        if overrides.get(chain_id):
            return overrides[chain_id]
        # Infura fallback for supported chains
        infura_slugs = {
            1: "mainnet",
            137: "polygon-mainnet",
            56: "bsc-mainnet",
            10: "optimism-mainnet",
            8453: "base-mainnet",
            42161: "arbitrum-mainnet",
            17000: "holesky",
        }
        slug = infura_slugs.get(chain_id)
        if slug and self.infura_api_key:
            return f"https://{slug}.infura.io/v3/{self.infura_api_key}"
        raise ValueError(f"No RPC URL configured for chain_id={chain_id}")


@lru_cache
def get_settings() -> Settings:
    return Settings()
