from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized config.

    Key idea:
    - read from env first (so tests/CI can override),
    - otherwise default to local dev values.
    """

    model_config = SettingsConfigDict(env_prefix="CLAIMRISK_", extra="ignore")

    # DuckDB file by default (portable, zero-setup)
    db_url: str = "duckdb:///data/claimrisk.duckdb"

    log_level: str = "INFO"

    # Scoring path
    inference_timeout_s: float = 0.25
    scoring_workers: int = 8
    default_model_id: str | None = None

    # Optional ad-hoc closures merged into the federal calendar (loaded once)
    holiday_overrides_path: str | None = None

    # Offline training defaults
    training_seed: int = 42
    n_estimators: int = 100
    learning_rate: float = 0.1
    max_depth: int = 3
    min_samples_leaf: int = 5
    subsample: float = 0.8
    max_bins: int = 32


settings = Settings()
