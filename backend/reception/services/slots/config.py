# backend/reception/services/slots/config.py
"""
Reception slots configuration and time-of-day helpers.
"""

import re
from dataclasses import dataclass
from functools import lru_cache


TIME_RE = re.compile(r"^(\d{2}):(\d{2})$")


@dataclass(frozen=True)
class ReceptionConfig:
    """
    Configuration for slot generation.

    Attributes:
        default_slot_duration_minutes: Slot length when a request omits it
        default_months_ahead: Generation horizon when a request omits it
        max_months_ahead: Upper bound accepted for a template horizon
        day_cache_ttl_seconds: Redis TTL for cached per-day counts
    """
    default_slot_duration_minutes: int = 10
    default_months_ahead: int = 3
    max_months_ahead: int = 12
    day_cache_ttl_seconds: int = 86400

    def __post_init__(self):
        """Validate configuration."""
        if self.default_slot_duration_minutes <= 0:
            raise ValueError(
                f"default_slot_duration_minutes must be positive, got {self.default_slot_duration_minutes}"
            )
        if not 1 <= self.default_months_ahead <= self.max_months_ahead:
            raise ValueError(
                f"default_months_ahead must be within 1..{self.max_months_ahead}, got {self.default_months_ahead}"
            )


@lru_cache
def get_reception_config() -> ReceptionConfig:
    """Get reception configuration (singleton), built from environment settings."""
    from ...config import settings

    return ReceptionConfig(
        default_slot_duration_minutes=settings.default_slot_duration_minutes,
        default_months_ahead=settings.default_months_ahead,
        max_months_ahead=settings.max_months_ahead,
        day_cache_ttl_seconds=settings.day_cache_ttl_seconds,
    )


def time_str_to_minutes(value: str) -> int:
    """Convert "HH:MM" to minutes since midnight. Raises ValueError on bad input."""
    match = TIME_RE.match(value or "")
    if not match:
        raise ValueError(f"Time must be in HH:MM format, got {value!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValueError(f"Time out of range: {value!r}")
    return hour * 60 + minute


def minutes_to_time_str(minutes: int) -> str:
    """Convert minutes since midnight to "HH:MM"."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"
