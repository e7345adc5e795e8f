from pathlib import Path
from typing import Dict

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]

# Flare Coston2 testnet
COSTON2_CHAIN_ID = 114


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        env_prefix="MINIAMM_",
        case_sensitive=False,
        extra="ignore"
    )

    log_level: str = Field(default="INFO", description="Logging level")

    # Ledger connection
    rpc_url: str = Field(
        default="https://coston2-api.flare.network/ext/C/rpc",
        description="JSON-RPC endpoint of the ledger node or wallet bridge",
        validation_alias=AliasChoices("miniamm_rpc_url", "rpc_url"),
    )
    chain_id: int = Field(default=COSTON2_CHAIN_ID, description="Chain the pair is deployed on")
    request_timeout_seconds: float = Field(default=30.0, description="Per-request RPC timeout")

    # Contracts
    amm_address: str = Field(
        default="0x1CE3D5B5EBD3FC147b42DCe5C64b2036D24D7aEa",
        description="MiniAMM pair contract (also the LP token)",
    )
    token0_address: str = Field(
        default="0xda84b7739C4C43E1F837e74Fa5D66F4a0EE82726",
        description="First pool token",
    )
    token1_address: str = Field(
        default="0xA6E809b6107f254Dcb9487270bE6C61FB41E57A8",
        description="Second pool token",
    )
    account_address: str = Field(
        default="",
        description="Connected account used for balances, allowances and writes",
    )

    # State refresh
    poll_interval_seconds: float = Field(default=10.0, gt=0, description="Balance/pool polling interval")
    metadata_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Delay before the one-shot metadata fetch, lets the connection settle",
    )

    # Transaction lifecycle
    confirmation_timeout_seconds: float = Field(
        default=180.0,
        gt=0,
        description="Maximum wait for a submitted transaction to be confirmed",
    )
    confirmation_poll_interval_seconds: float = Field(
        default=2.0,
        gt=0,
        description="Receipt polling interval while waiting for confirmation",
    )
    status_log_interval_seconds: float = Field(
        default=15.0,
        gt=0,
        description="How often to log that a transaction is still pending",
    )

    # Notifications
    notification_dismiss_seconds: float = Field(default=5.0, description="Auto-dismiss delay")
    notification_timeout_dismiss_seconds: float = Field(
        default=10.0,
        description="Auto-dismiss delay for confirmation timeouts",
    )

    # Fixed gas limits per operation kind
    gas_limit_mint: int = Field(default=200_000, description="Gas limit for faucet mints")
    gas_limit_approve: int = Field(default=100_000, description="Gas limit for approvals")
    gas_limit_swap: int = Field(default=500_000, description="Gas limit for swaps")
    gas_limit_add_liquidity: int = Field(default=800_000, description="Gas limit for deposits")
    gas_limit_remove_liquidity: int = Field(default=350_000, description="Gas limit for withdrawals")
    fixed_gas_price_wei: int = Field(
        default=25_000_000_000,
        description="Manual gas price used for swaps and deposits (25 gwei)",
    )

    explorer_base_url: str = Field(
        default="https://coston2-explorer.flare.network",
        description="Block explorer used for transaction links",
    )

    @property
    def has_account(self) -> bool:
        return bool(self.account_address)

    @property
    def gas_limits(self) -> Dict[str, int]:
        return {
            "mint": self.gas_limit_mint,
            "approve": self.gas_limit_approve,
            "swap": self.gas_limit_swap,
            "add_liquidity": self.gas_limit_add_liquidity,
            "remove_liquidity": self.gas_limit_remove_liquidity,
        }

    def explorer_tx_url(self, tx_hash: str) -> str:
        return f"{self.explorer_base_url.rstrip('/')}/tx/{tx_hash}"


# Global settings instance
settings = Settings()
