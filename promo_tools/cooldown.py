"""
BARBER PROMO — Per-Device Cooldown Gate

One completed round per window per device, per game mode.

State machine:
    Idle(no record) ──arm()──▶ Armed(last_play) ──window elapses──▶ Idle

The persisted PlayRecord is a single integer millisecond timestamp per mode
key ("slot_last_play", ...). It is overwritten on every completed round and
never deleted. `can_play()` always recomputes from the stored timestamp; the
per-minute Countdown is display-only.

Trust boundary: anyone who deletes or edits the state file can replay. There
is no server to cross-check against.
"""

from __future__ import annotations

import json
import logging
import math
import time
from pathlib import Path
from typing import Callable, Optional

from promo_config.settings import PromoSettings
from promo_engine.errors import CooldownActive

logger = logging.getLogger("barberpromo.cooldown")

MS_PER_HOUR = 1000 * 60 * 60


def now_ms() -> int:
    return int(time.time() * 1000)


# ═══════════════════════════════════════════════════════════════
# PlayRecord storage
# ═══════════════════════════════════════════════════════════════

class MemoryPlayStore:
    """In-process key/value store (tests, kiosks without disk)."""

    def __init__(self, initial: Optional[dict] = None):
        self._data: dict[str, int] = dict(initial or {})

    def get(self, key: str) -> Optional[int]:
        return self._data.get(key)

    def set(self, key: str, value: int) -> None:
        self._data[key] = int(value)


class JsonPlayStore:
    """Per-device JSON file holding one timestamp per mode key.

    Writes go to a .tmp sibling and are renamed into place so a crash never
    leaves a half-written record behind.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else PromoSettings.state_path()

    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Unreadable play record at {self.path}, treating as empty: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Play record at {self.path} is not an object, treating as empty")
            return {}
        return data

    def get(self, key: str) -> Optional[int]:
        value = self._load().get(key)
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring non-numeric play record {key}={value!r}")
            return None

    def set(self, key: str, value: int) -> None:
        data = self._load()
        data[key] = int(value)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(json.dumps(data, indent=2, sort_keys=True))
        tmp.replace(self.path)


# ═══════════════════════════════════════════════════════════════
# Gate
# ═══════════════════════════════════════════════════════════════

class CooldownGate:
    """Play permission for one game mode on this device."""

    def __init__(self, key: str, store=None, window_hours: float = None,
                 clock: Callable[[], int] = now_ms):
        self.key = key
        self.store = store if store is not None else JsonPlayStore()
        self.window_hours = PromoSettings.COOLDOWN_HOURS if window_hours is None else window_hours
        self._clock = clock

    @classmethod
    def for_config(cls, config, store=None, clock: Callable[[], int] = now_ms) -> "CooldownGate":
        return cls(config.storage_key, store, config.cooldown_hours, clock)

    def last_play(self) -> Optional[int]:
        return self.store.get(self.key)

    def hours_since(self, timestamp_ms: int, now: Optional[int] = None) -> float:
        current = self._clock() if now is None else now
        return (current - timestamp_ms) / MS_PER_HOUR

    def hours_remaining(self, now: Optional[int] = None) -> float:
        last = self.last_play()
        if not last:
            return 0.0
        return max(0.0, self.window_hours - self.hours_since(last, now))

    def can_play(self, now: Optional[int] = None) -> bool:
        return self.hours_remaining(now) == 0

    def require(self, now: Optional[int] = None) -> None:
        """Raise CooldownActive when the window has not elapsed."""
        remaining = self.hours_remaining(now)
        if remaining > 0:
            raise CooldownActive(remaining)

    def arm(self, now: Optional[int] = None) -> float:
        """Record a completed round; returns the full window in hours."""
        stamp = self._clock() if now is None else now
        self.store.set(self.key, stamp)
        logger.info(f"Cooldown armed for {self.key}: {self.window_hours}h")
        return self.window_hours

    def countdown(self) -> "Countdown":
        return Countdown(self.hours_remaining())


class Countdown:
    """Advisory display counter, ticked once per minute by the UI driver."""

    def __init__(self, hours: float):
        self.minutes = max(0.0, round(hours * 60, 6))

    @property
    def hours(self) -> float:
        return self.minutes / 60

    def tick_minute(self) -> float:
        self.minutes = max(0.0, self.minutes - 1)
        return self.hours

    @property
    def active(self) -> bool:
        return self.hours > 0

    @property
    def display_hours(self) -> int:
        """Whole hours shown to the player, rounded up."""
        return math.ceil(self.hours)
