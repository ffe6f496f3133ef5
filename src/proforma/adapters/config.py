# src/proforma/adapters/config.py
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    # App & logging
    ENV: str = Field(default="dev")
    LOG_LEVEL: str = Field(default="INFO")

    # -----------------------------
    # Monte Carlo
    # -----------------------------
    MC_DEFAULT_ITERATIONS: int = Field(default=10_000)
    # joblib workers for NPV evaluation; 1 keeps everything in-process
    MC_N_JOBS: int = Field(default=1)
    # rejection-sampling retries per draw before clamping to the range
    MC_MAX_REJECTIONS: int = Field(default=1_000)
    MC_CHUNK_SIZE: int = Field(default=500)

    # -----------------------------
    # Root finding
    # -----------------------------
    IRR_INITIAL_GUESS: float = Field(default=0.10)
    IRR_TOLERANCE: float = Field(default=1e-4)
    IRR_MAX_ITERATIONS: int = Field(default=100)

    # -----------------------------
    # Scenarios
    # -----------------------------
    SCENARIO_PROBABILITY_TOLERANCE: float = Field(default=1e-6)

    model_config = SettingsConfigDict(
        env_prefix="PROFORMA_",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator(
        "MC_DEFAULT_ITERATIONS",
        "MC_MAX_REJECTIONS",
        "MC_CHUNK_SIZE",
        "IRR_MAX_ITERATIONS",
        mode="before",
    )
    @classmethod
    def _positive_count(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip().replace("_", "").replace(",", "")
        try:
            n = int(v)
        except Exception as err:
            raise ValueError("count must be an integer") from err
        if n <= 0:
            raise ValueError("count must be > 0")
        return n

    @field_validator("MC_N_JOBS", mode="before")
    @classmethod
    def _n_jobs(cls, v: Any) -> Any:
        # joblib semantics: -1 means all cores, 0 is meaningless
        n = int(v)
        if n == 0:
            raise ValueError("MC_N_JOBS must be non-zero")
        return n

    @field_validator("IRR_TOLERANCE", "SCENARIO_PROBABILITY_TOLERANCE", mode="before")
    @classmethod
    def _tolerance_positive(cls, v: Any) -> Any:
        f = float(v)
        if f <= 0:
            raise ValueError("tolerance must be > 0")
        return f


config = AppConfig()
