"""
Configuration management for the CLOB client.

Loads settings from environment variables with validation.
"""

from typing import Optional
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClobSettings(BaseSettings):
    """
    CLOB client settings.

    Loads from environment variables with POLYMARKET_ prefix.
    """
    model_config = SettingsConfigDict(
        env_prefix="POLYMARKET_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Endpoints
    clob_url: str = Field(
        default="https://clob.polymarket.com",
        description="CLOB REST base URL"
    )
    ws_url: str = Field(
        default="wss://ws-subscriptions-clob.polymarket.com",
        description="Streaming endpoint (channel path is appended)"
    )

    # Chain configuration
    chain_id: int = Field(default=137, description="Polygon chain ID (137 or 80002)")

    # Timeouts and retries
    request_timeout: float = Field(default=10.0, gt=0, description="Per-attempt timeout (seconds)")
    max_retries: int = Field(default=3, ge=0, le=10, description="Retries after the first attempt")
    retry_base_delay: float = Field(default=0.1, ge=0, description="Backoff base delay (seconds)")
    retry_max_delay: float = Field(default=5.0, ge=0, description="Backoff cap (seconds)")

    # Signing
    private_key: Optional[SecretStr] = Field(None, description="Signer private key (hex)")
    address: Optional[str] = Field(None, description="Explicit address override for auth headers")
    funder: Optional[str] = Field(None, description="Funder/maker address override")
    signature_type: int = Field(default=0, ge=0, le=2, description="Default order signature type")

    # L2 credentials
    api_key: Optional[str] = Field(None, description="API key")
    api_secret: Optional[SecretStr] = Field(None, description="API secret (base64url)")
    api_passphrase: Optional[SecretStr] = Field(None, description="API passphrase")

    # Metadata cache
    tick_size_ttl: float = Field(default=0.0, ge=0, description="Tick size TTL, 0 disables expiry")

    # Logging
    configure_logging: bool = Field(
        default=False, description="Install the client logging config on ClobClient init"
    )
    log_level: str = Field(default="INFO", description="Logging level")
    log_json: bool = Field(default=False, description="Emit JSON log lines")
    log_file: Optional[str] = Field(None, description="Rotating log file path")

    # Metrics
    enable_metrics: bool = Field(default=False, description="Enable Prometheus metrics")
    metrics_port: Optional[int] = Field(None, ge=1024, le=65535,
                                        description="Metrics exporter port, None keeps it off")

    def __repr__(self) -> str:
        """Safe repr without sensitive data."""
        return (
            f"ClobSettings("
            f"clob_url={self.clob_url}, "
            f"chain_id={self.chain_id}, "
            f"max_retries={self.max_retries}, "
            f"has_key={self.private_key is not None}, "
            f"has_creds={self.api_key is not None}"
            ")"
        )


def get_settings() -> ClobSettings:
    """
    Load settings from the environment.

    Returns:
        Validated settings instance
    """
    return ClobSettings()
