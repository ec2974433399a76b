"""Application configuration using pydantic-settings.

Contract addresses default to the Sepolia deployment used by the converter
front-end. Everything can be overridden through environment variables or a
``.env`` file.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=True, description="Enable debug logging")

    # ======================
    # Chain / wallet
    # ======================
    rpc_url: str = Field(
        default="https://rpc.sepolia.org", description="JSON-RPC endpoint of the chain"
    )
    chain_id: int = Field(default=11155111, description="Chain ID (Sepolia by default)")
    private_key: Optional[str] = Field(
        default=None, description="Hex private key of the local signer (optional for reads)"
    )

    # ======================
    # Tokens
    # ======================
    eurt_address: str = Field(
        default="0xB0eBD04Aca1C317ddf75277Fad3E2090a41deD4e", description="EURT token"
    )
    task_address: str = Field(
        default="0x1Ab193C1Be11C64654896390f0ed550c59E041e4", description="TASK token"
    )
    tata_address: str = Field(
        default="0xF9B68BF808d59d53f42defd09Ef355fE29EeCcA2", description="TATA token"
    )

    # ======================
    # Fixed-rate exchange
    # ======================
    fixed_rate_swap_address: str = Field(
        default="0xcE969bA324d60A602e8EB330B242d3cb2D477c10",
        description="EURT -> TASK fixed-rate swap contract",
    )

    # ======================
    # AMM (Uniswap V2 style)
    # ======================
    amm_router_address: str = Field(
        default="0x320565d880a1979Af45589D0fe48BbE6673D51D3", description="V2 router"
    )
    amm_factory_address: Optional[str] = Field(
        default=None, description="V2 factory (resolved from router.factory() when unset)"
    )
    amm_router_pricing: bool = Field(
        default=True,
        description="Price AMM quotes with the router's getAmountsOut instead of the local formula",
    )
    default_slippage_bps: int = Field(
        default=50, ge=0, le=10_000, description="Default slippage tolerance (50 bps = 0.5%)"
    )
    deadline_seconds: int = Field(
        default=20 * 60, gt=0, description="Swap deadline window in seconds"
    )

    # ======================
    # API
    # ======================
    api_host: str = Field(default="127.0.0.1", description="API server host")
    api_port: int = Field(default=8000, description="API server port")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def has_signer(self) -> bool:
        """Check if a local signing key is configured."""
        return bool(self.private_key)

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "chain": {
                "rpc": self._redact_url(self.rpc_url),
                "chain_id": self.chain_id,
                "signer": "***" if self.private_key else "(not set)",
            },
            "tokens": {
                "EURT": self.eurt_address,
                "TASK": self.task_address,
                "TATA": self.tata_address,
            },
            "fixed_rate": {"swap": self.fixed_rate_swap_address},
            "amm": {
                "router": self.amm_router_address,
                "factory": self.amm_factory_address or "(from router)",
                "router_pricing": self.amm_router_pricing,
                "slippage_bps": self.default_slippage_bps,
                "deadline_seconds": self.deadline_seconds,
            },
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Hide API keys embedded in RPC URLs (e.g. Infura/Alchemy paths)."""
        if "://" not in url:
            return url
        proto, rest = url.split("://", 1)
        host, _, path = rest.partition("/")
        if "@" in host:
            host = "***@" + host.rsplit("@", 1)[1]
        if len(path) >= 20:
            path = "***"
        return f"{proto}://{host}/{path}" if path else f"{proto}://{host}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
