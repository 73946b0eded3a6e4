"""
dark-audit configuration

Detection thresholds and engine limits, loaded from environment variables.
"""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    """Immutable engine settings."""

    # --- Engine limits ---
    MAX_FINDINGS: int = int(os.getenv("DARK_AUDIT_MAX_FINDINGS", "128"))
    DEBOUNCE_MS: int = int(os.getenv("DARK_AUDIT_DEBOUNCE_MS", "600"))

    # --- Detector thresholds ---
    TINY_FONT_PX: float = float(os.getenv("DARK_AUDIT_TINY_FONT_PX", "11"))
    OVERLAY_MIN_Z: int = int(os.getenv("DARK_AUDIT_OVERLAY_MIN_Z", "1000"))
    OVERLAY_COVERAGE: float = float(os.getenv("DARK_AUDIT_OVERLAY_COVERAGE", "0.7"))

    # --- Page defaults ---
    VIEWPORT_WIDTH: int = int(os.getenv("DARK_AUDIT_VIEWPORT_WIDTH", "1280"))
    VIEWPORT_HEIGHT: int = int(os.getenv("DARK_AUDIT_VIEWPORT_HEIGHT", "800"))

    # --- Logging ---
    LOG_LEVEL: str = os.getenv("DARK_AUDIT_LOG_LEVEL", "WARNING")
    LOG_FORMAT: str = os.getenv("DARK_AUDIT_LOG_FORMAT", "text")  # "json" or "text"

    @property
    def viewport(self) -> tuple[int, int]:
        return (self.VIEWPORT_WIDTH, self.VIEWPORT_HEIGHT)


settings = Settings()
