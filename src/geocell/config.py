"""geocell configuration."""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Hard ceiling on the number of cells a single covering may contain.
ABSOLUTE_MAX_CELLS = 500


class Settings(BaseSettings):
    """Settings loaded from GEOCELL_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="GEOCELL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Covering limits
    default_max_cells: int = 300

    # Executor fan-out
    max_concurrent_reads: int = 16
    read_timeout_seconds: float = 10.0
    read_batch_size: int = 500

    # Reference SQL index
    database_url: str = "sqlite+aiosqlite:///./geocell.db"
    database_echo: bool = False

    # Logging
    log_level: str = "INFO"

    @field_validator("default_max_cells")
    @classmethod
    def check_max_cells(cls, v: int) -> int:
        if not 1 <= v <= ABSOLUTE_MAX_CELLS:
            raise ValueError(f"default_max_cells must be between 1 and {ABSOLUTE_MAX_CELLS}")
        return v

    @field_validator("max_concurrent_reads", "read_batch_size")
    @classmethod
    def check_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("read_timeout_seconds")
    @classmethod
    def check_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("read_timeout_seconds must be positive")
        return v


settings = Settings()
