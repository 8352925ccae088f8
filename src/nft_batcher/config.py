"""
Configuration management for the NFT Batcher.

Supports configuration via environment variables and .env files.
A ``BatcherConfig`` value is created once (usually by the CLI) and passed
explicitly to every component that needs it.
"""

from enum import Enum
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class NetworkType(str, Enum):
    """Stacks network types."""
    MAINNET = "mainnet"
    TESTNET = "testnet"
    DEVNET = "devnet"


class PostConditionMode(str, Enum):
    """Post-condition mode attached to every contract call."""
    ALLOW = "allow"
    DENY = "deny"


NETWORK_URLS = {
    NetworkType.MAINNET: "https://api.mainnet.hiro.so",
    NetworkType.TESTNET: "https://api.testnet.hiro.so",
    NetworkType.DEVNET: "http://localhost:3999",
}


class BatcherConfig(BaseSettings):
    """
    Configuration settings for the NFT Batcher.

    All settings can be configured via environment variables with the BATCHER_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="BATCHER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Network settings
    network: NetworkType = Field(
        default=NetworkType.TESTNET,
        description="Stacks network to submit to"
    )
    api_base_url: Optional[str] = Field(
        default=None,
        description="Custom ledger API base URL (optional)"
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="HTTP timeout for ledger and signer requests"
    )

    # Account settings
    sender_address: Optional[str] = Field(
        default=None,
        description="Address of the signing account"
    )
    contract_address: Optional[str] = Field(
        default=None,
        description="Deployer address of the marketplace contracts"
    )
    signer_url: Optional[str] = Field(
        default=None,
        description="Base URL of the signing service"
    )

    # Transaction settings
    tx_fee: int = Field(
        default=50_000,
        ge=0,
        description="Fee attached to each contract call (micro-STX)"
    )
    post_condition_mode: PostConditionMode = Field(
        default=PostConditionMode.ALLOW,
        description="Post-condition mode for contract calls"
    )
    clarity_version: int = Field(
        default=2,
        ge=1,
        description="Clarity version for contract deployments"
    )

    # Batch pacing
    min_submission_delay_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Minimum pause between consecutive submissions"
    )
    stop_on_first_failure: bool = Field(
        default=False,
        description="Skip remaining items after the first failure"
    )

    # Confirmation settings
    wait_for_confirmation: bool = Field(
        default=False,
        description="Poll each submission until it reaches a terminal status"
    )
    confirmation_poll_interval_seconds: float = Field(
        default=10.0,
        ge=0,
        description="Pause between confirmation status queries"
    )
    confirmation_max_attempts: int = Field(
        default=30,
        ge=1,
        description="Maximum confirmation status queries per transaction"
    )

    # Retry settings
    max_network_retries: int = Field(
        default=3,
        ge=0,
        description="Maximum retries for transient submission failures"
    )
    retry_base_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Delay before the first retry"
    )
    retry_backoff_multiplier: float = Field(
        default=2.0,
        ge=1,
        description="Multiplier applied to the delay after each retry"
    )
    retry_max_delay_seconds: float = Field(
        default=30.0,
        ge=0,
        description="Upper bound for a single retry delay"
    )

    # Database settings
    database_url: Optional[str] = Field(
        default=None,
        description="SQLAlchemy database URL for reports and checkpoints"
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format"
    )

    @property
    def api_url(self) -> str:
        """Get the ledger API URL for the selected network."""
        if self.api_base_url:
            return self.api_base_url.rstrip("/")
        return NETWORK_URLS[self.network]
