"""Wheel reveal — eased rotation onto the precomputed sector."""
import math
from dataclasses import dataclass, replace

from promo_config.game_schema import GameMode
from promo_engine.reveal.base import BaseRevealController


def ease_out_cubic(t: float) -> float:
    return 1 - (1 - t) ** 3


def target_angle(index: int, step_angle: float, base_turns: int,
                 pointer_offset: float, jitter: float = 0.0) -> float:
    """Absolute angle (degrees) that parks sector `index` under the pointer."""
    return base_turns * 360 + index * step_angle + step_angle / 2 + pointer_offset + jitter


def landed_index(angle: float, step_angle: float, n_sectors: int, pointer_offset: float) -> int:
    """Sector under the pointer for a wheel resting at `angle`."""
    return int(math.floor(((angle - pointer_offset) % 360) / step_angle)) % n_sectors


@dataclass(frozen=True)
class WheelProgress:
    start_angle: float
    delta: float
    duration_ms: float
    elapsed_ms: float = 0.0

    @property
    def t(self) -> float:
        return min(1.0, self.elapsed_ms / self.duration_ms)

    @property
    def angle(self) -> float:
        return self.start_angle + self.delta * ease_out_cubic(self.t)


class WheelReveal(BaseRevealController):
    mode = GameMode.WHEEL

    _rest_angle = 0.0

    def initial_progress(self, resolution):
        cfg = self.config.wheel
        jitter = (self.fx_rng.random() * 2 - 1) * cfg.jitter_deg
        final = target_angle(resolution.draw["index"], cfg.step_angle, cfg.base_turns,
                             cfg.pointer_offset_deg, jitter)
        start = self._rest_angle % 360
        delta = final - start + (360 if start > final else 0)
        return WheelProgress(start_angle=start, delta=delta, duration_ms=cfg.spin_duration_ms)

    def advance(self, progress, delta_ms):
        return replace(progress, elapsed_ms=progress.elapsed_ms + delta_ms)

    def is_finished(self, progress):
        return progress.t >= 1.0

    @property
    def angle(self) -> float:
        return self.session.progress.angle if self.session else self._rest_angle

    def landed_index(self) -> int:
        cfg = self.config.wheel
        return landed_index(self.angle, cfg.step_angle, len(cfg.sectors), cfg.pointer_offset_deg)

    def _settle(self):
        self._rest_angle = self.session.progress.angle
        super()._settle()

    def celebrates(self, outcome):
        return self.config.wheel.celebrate_on_win
