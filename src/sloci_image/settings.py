"""
Settings and configuration for sloci-image.

Centralizes values read from the environment and validates them with
fail-fast behavior. Loaded once per CLI invocation.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

__all__ = ["Settings", "create_settings_from_env"]


@dataclass(frozen=True)
class Settings:
    """
    Configuration settings for sloci-image.

    debug: Trace every built document to stderr
    source_date_epoch: Fixed build time in seconds since the epoch; used as
        the image creation time and as the mtime clamp for directory layers
    """
    debug: bool = False
    source_date_epoch: Optional[int] = None

    def __post_init__(self):
        """Validate settings on construction."""
        if self.source_date_epoch is not None and self.source_date_epoch < 0:
            raise ValueError(f"source_date_epoch must be non-negative, got {self.source_date_epoch}")

    @property
    def created(self) -> Optional[datetime]:
        """Creation time implied by ``source_date_epoch``, if set."""
        if self.source_date_epoch is None:
            return None
        return datetime.fromtimestamp(self.source_date_epoch, tz=timezone.utc)


def create_settings_from_env() -> Settings:
    """
    Load settings from environment variables.

    Environment Variables:
        - DEBUG (any non-empty value enables debug tracing)
        - SOURCE_DATE_EPOCH (optional, integer seconds)

    Returns:
        Settings object with validated configuration

    Raises:
        ValueError: If SOURCE_DATE_EPOCH is not a non-negative integer

    Note:
        Creates a fresh Settings instance every time (no caching).
        This ensures test isolation and eliminates global state.
    """
    debug = bool(os.getenv("DEBUG"))

    epoch_str = os.getenv("SOURCE_DATE_EPOCH")
    source_date_epoch = None
    if epoch_str:
        try:
            source_date_epoch = int(epoch_str)
        except ValueError:
            raise ValueError(f"SOURCE_DATE_EPOCH must be an integer, got {epoch_str!r}") from None

    return Settings(debug=debug, source_date_epoch=source_date_epoch)
