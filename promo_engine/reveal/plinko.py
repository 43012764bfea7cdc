"""Plinko reveal — the ball descends one row per fixed interval."""
from dataclasses import dataclass, replace

from promo_config.game_schema import GameMode
from promo_engine.reveal.base import BaseRevealController


@dataclass(frozen=True)
class PlinkoProgress:
    steps: tuple
    row: int
    ball_col: int
    carry_ms: float = 0.0


def advance_plinko(progress: PlinkoProgress, delta_ms: float, n_slots: int,
                   interval_ms: float) -> PlinkoProgress:
    carry = progress.carry_ms + delta_ms
    row, col = progress.row, progress.ball_col
    while carry >= interval_ms and row < len(progress.steps):
        col += 1 if progress.steps[row] == "R" else -1
        col = max(0, min(n_slots - 1, col))
        row += 1
        carry -= interval_ms
    return replace(progress, row=row, ball_col=col, carry_ms=carry)


class PlinkoReveal(BaseRevealController):
    mode = GameMode.PLINKO

    def initial_progress(self, resolution):
        return PlinkoProgress(
            steps=resolution.draw["steps"],
            row=0,
            ball_col=self.config.plinko.start_column,
        )

    def advance(self, progress, delta_ms):
        cfg = self.config.plinko
        return advance_plinko(progress, delta_ms, len(cfg.slots), cfg.step_interval_ms)

    def is_finished(self, progress):
        return progress.row >= len(progress.steps)
