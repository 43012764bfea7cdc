"""Plinko — one 50/50 left/right decision per row, clamped to the board."""
from promo_config.game_schema import GameMode, Tier
from promo_engine.outcomes.base import BaseOutcomeResolver, Resolution


def walk(steps, start: int, n_slots: int) -> int:
    """Final column after applying L/R steps from `start`, clamped every step."""
    col = start
    for s in steps:
        col += 1 if s == "R" else -1
        col = max(0, min(n_slots - 1, col))
    return col


class PlinkoResolver(BaseOutcomeResolver):
    mode = GameMode.PLINKO
    display_name = "Plinko"

    def resolve(self, rng) -> Resolution:
        cfg = self.config.plinko
        steps = tuple("L" if rng.random() < 0.5 else "R" for _ in range(cfg.rows))
        return self.resolve_path(steps)

    def resolve_path(self, steps) -> Resolution:
        """Resolution for an explicit decision sequence."""
        cfg = self.config.plinko
        steps = tuple(steps)
        bad = [s for s in steps if s not in ("L", "R")]
        if bad:
            raise ValueError(f"plinko steps must be 'L' or 'R', got {bad}")
        col = walk(steps, cfg.start_column, len(cfg.slots))
        slot = cfg.slots[col]
        return self._resolution(
            slot.tier, slot.label if slot.tier.is_win else None, f"slot-{col}",
            steps=steps, final_col=col,
        )

    def slot_probabilities(self) -> list[float]:
        """Exact landing probabilities per slot (clamped binomial walk)."""
        cfg = self.config.plinko
        n = len(cfg.slots)
        probs = [0.0] * n
        probs[cfg.start_column] = 1.0
        for _ in range(cfg.rows):
            nxt = [0.0] * n
            for col, p in enumerate(probs):
                if p:
                    nxt[max(0, col - 1)] += p / 2
                    nxt[min(n - 1, col + 1)] += p / 2
            probs = nxt
        return probs

    def tier_probabilities(self) -> dict:
        out = {t: 0.0 for t in Tier}
        for p, slot in zip(self.slot_probabilities(), self.config.plinko.slots):
            out[slot.tier] += p
        return out
