"""noteburn configuration, loaded from environment / .env file."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="NOTEBURN_", extra="ignore")

    log_level: str = "INFO"
    database_url: str = "sqlite+aiosqlite:///./noteburn.db"
    database_echo: bool = False  # statement logging includes ciphertext

    # Request path
    min_response_ms: int = 100  # latency floor for retrieve/delete
    create_attempts: int = 2  # id collision retries included

    # Expiry sweeper
    sweeper_enabled: bool = True  # run the in-process scheduler on startup
    sweep_interval_seconds: float = 300.0
    sweep_batch_size: int = 1000
    sweep_timeout_seconds: float = 120.0
    sweep_recovery_delay_seconds: float = 60.0
    sweep_max_failures: int = 3
    sweep_lock_name: str = "cleanup_job"
    cleanup_endpoint_enabled: bool = True

    @property
    def sweep_lock_stale_seconds(self) -> float:
        # A claim outlives the sweep timeout so a live sweeper is never robbed
        return self.sweep_timeout_seconds * 2


settings = Settings()
