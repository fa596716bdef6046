"""Runtime settings for nodescope, read from the environment."""

import os
import socket
from dataclasses import dataclass

from dotenv import find_dotenv, load_dotenv

MIN_POLL_RATE = 0.1


def _number(name: str, default: float, cast=float):
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


@dataclass(slots=True)
class Settings:
    """Defaults used by the CLI and dashboard."""

    node: str
    limit: int = 50
    poll_rate: float = 2.0  # Seconds between refreshes
    timeout: float | None = 5.0  # Seconds per call, None waits forever
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from NODESCOPE_* variables (and a .env file, if any)."""
        load_dotenv(find_dotenv(usecwd=True))

        limit = _number("NODESCOPE_LIMIT", 50, int)
        if limit < 0:
            raise ValueError(f"NODESCOPE_LIMIT must be non-negative, got {limit}")
        timeout = _number("NODESCOPE_TIMEOUT", 5.0)

        return cls(
            node=os.getenv("NODESCOPE_NODE") or socket.gethostname(),
            limit=limit,
            poll_rate=max(MIN_POLL_RATE, _number("NODESCOPE_POLL_RATE", 2.0)),
            timeout=timeout if timeout > 0 else None,
            log_level=(os.getenv("NODESCOPE_LOG_LEVEL") or "WARNING").upper(),
        )
