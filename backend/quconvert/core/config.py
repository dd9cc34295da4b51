"""
Runtime configuration for the question bank converter.

Values come from environment variables (a local .env file is honoured)
and fall back to the defaults expected by the target platform.
"""
import os
import logging
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid integer for {name}: {raw!r}, using {default}")
        return default


@dataclass
class Settings:
    """Converter settings - loads from environment."""

    log_level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper()
    )

    # Target dialect escape hatches
    native_function: str = field(
        default_factory=lambda: os.getenv("NATIVE_FUNCTION", "sw_maxima_native")
    )
    presentation_function: str = field(
        default_factory=lambda: os.getenv("PRESENTATION_FUNCTION", "sw_maxima")
    )

    # Source constant placeholder and its target replacement
    constant_placeholder: str = "Pi"
    constant_replacement: str = field(
        default_factory=lambda: os.getenv("CONSTANT_REPLACEMENT", "float(%pi)")
    )

    # HTTP server
    api_host: str = field(
        default_factory=lambda: os.getenv("API_HOST", "127.0.0.1")
    )
    api_port: int = field(
        default_factory=lambda: _env_int("API_PORT", 8000)
    )

    # Limits
    max_delegation_depth: int = field(
        default_factory=lambda: _env_int("MAX_DELEGATION_DEPTH", 8)
    )
    max_algorithm_length: int = field(
        default_factory=lambda: _env_int("MAX_ALGORITHM_LENGTH", 100_000)
    )

    def __post_init__(self):
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            logger.warning(f"Unknown LOG_LEVEL {self.log_level!r}, using INFO")
            self.log_level = "INFO"
        if self.max_delegation_depth < 1:
            raise ValueError(
                f"MAX_DELEGATION_DEPTH must be positive, got {self.max_delegation_depth}"
            )


settings = Settings()
