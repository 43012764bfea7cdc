"""Scratch Card — three weighted symbols with a forced-match nudge."""
from promo_config.game_schema import GameMode, Tier
from promo_engine.outcomes.base import BaseOutcomeResolver, Resolution
from promo_engine.selector import weighted_index


class ScratchResolver(BaseOutcomeResolver):
    mode = GameMode.SCRATCH
    display_name = "Rasca y Gana"

    def resolve(self, rng) -> Resolution:
        cfg = self.config.scratch
        weights = [s.weight for s in cfg.symbols]

        i1 = weighted_index(weights, rng)
        i2 = weighted_index(weights, rng)
        # forced match reuses the first symbol
        if rng.random() < cfg.force_match_chance:
            i3 = i1
        else:
            i3 = weighted_index(weights, rng)

        keys = tuple(cfg.symbols[i].key for i in (i1, i2, i3))
        if keys[0] == keys[1] == keys[2]:
            prize = cfg.prize_by_symbol.get(keys[0])
            if prize is not None:
                return self._resolution(prize.tier, prize.text, prize.id, symbols=keys)
        return self._resolution(Tier.MISS, symbols=keys)

    def tier_probabilities(self) -> dict:
        """Exact tier mix: P(k,k,k) = p_k^2 * (f + (1 - f) * p_k)."""
        cfg = self.config.scratch
        total = sum(s.weight for s in cfg.symbols)
        f = cfg.force_match_chance
        out = {t: 0.0 for t in Tier}
        for s in cfg.symbols:
            p = s.weight / total
            prize = cfg.prize_by_symbol.get(s.key)
            out[prize.tier if prize else Tier.MISS] += p * p * (f + (1 - f) * p)
        out[Tier.MISS] += 1.0 - sum(out.values())
        return out
