"""Slot reveal — reels cycle, then stop one by one on the drawn symbols."""
from dataclasses import dataclass, replace

from promo_config.game_schema import GameMode
from promo_engine.reveal.base import BaseRevealController


@dataclass(frozen=True)
class SlotProgress:
    final: tuple
    start_faces: tuple
    shown: tuple
    stopped: tuple = (False, False, False)
    elapsed_ms: float = 0.0


def advance_reels(progress: SlotProgress, delta_ms: float, n_symbols: int,
                  stop_ms: tuple, cycle_ms: tuple) -> SlotProgress:
    elapsed = progress.elapsed_ms + delta_ms
    shown, stopped = [], []
    for i, final in enumerate(progress.final):
        if elapsed >= stop_ms[i]:
            shown.append(final)
            stopped.append(True)
        else:
            shown.append((progress.start_faces[i] + int(elapsed // cycle_ms[i])) % n_symbols)
            stopped.append(False)
    return replace(progress, shown=tuple(shown), stopped=tuple(stopped), elapsed_ms=elapsed)


class SlotReveal(BaseRevealController):
    mode = GameMode.SLOT

    def initial_progress(self, resolution):
        n = len(self.config.slot.symbols)
        faces = tuple(int(self.fx_rng.random() * n) % n for _ in range(3))
        return SlotProgress(final=resolution.draw["reels"], start_faces=faces, shown=faces)

    def advance(self, progress, delta_ms):
        cfg = self.config.slot
        return advance_reels(progress, delta_ms, len(cfg.symbols), cfg.reel_stop_ms, cfg.reel_cycle_ms)

    def is_finished(self, progress):
        cfg = self.config.slot
        return all(progress.stopped) and progress.elapsed_ms >= cfg.reel_stop_ms[-1] + cfg.settle_delay_ms

    def shown_symbols(self) -> tuple:
        symbols = self.config.slot.symbols
        return tuple(symbols[i].key for i in self.session.progress.shown)
