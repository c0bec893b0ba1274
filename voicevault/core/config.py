from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = "VoiceVault"
    debug: bool = False
    log_level: str = "INFO"

    # Target contract holding the encrypted command records
    contract_address: str = "0x0000000000000000000000000000000000000000"

    # Ledger
    ledger_provider: str = "memory"        # "memory" | "gateway"
    ledger_gateway_url: str = ""
    ledger_gateway_token: str = ""
    ledger_timeout_seconds: float = 30.0
    ledger_poll_interval_seconds: float = 1.0

    # FHE services
    fhe_encryption_provider: str = "stub"  # "stub" | "relayer"
    fhe_oracle_provider: str = "stub"      # "stub" | "relayer"
    fhe_relayer_url: str = ""
    fhe_relayer_timeout_seconds: float = 60.0
    max_plaintext_bits: int = 64

    # History shadow (defaults to in-process storage)
    history_backend: str = "memory"        # "memory" | "redis"
    redis_url: str = "redis://localhost:6379/0"
    history_display_limit: int = 10

    # Status channel auto-clear, in seconds
    status_success_clear_seconds: float = 2.0
    status_error_clear_seconds: float = 3.0

    # Record creation
    record_id_prefix: str = "command-"
    record_label: str = "Voice Command Data"

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="VOICEVAULT_", extra="ignore"
    )


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
