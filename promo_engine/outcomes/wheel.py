"""Wheel Spin — one weighted draw over equal-angle sectors."""
from promo_config.game_schema import GameMode, Tier
from promo_engine.outcomes.base import BaseOutcomeResolver, Resolution
from promo_engine.selector import weighted_index


class WheelResolver(BaseOutcomeResolver):
    mode = GameMode.WHEEL
    display_name = "Ruleta"

    def resolve(self, rng) -> Resolution:
        index = weighted_index(self.config.wheel.sector_weights(), rng)
        return self.resolve_index(index)

    def resolve_index(self, index: int) -> Resolution:
        sectors = self.config.wheel.sectors
        if not 0 <= index < len(sectors):
            raise IndexError(f"sector {index} out of range 0..{len(sectors) - 1}")
        sector = sectors[index]
        return self._resolution(
            sector.tier, sector.label if sector.tier.is_win else None, f"sector-{index}",
            index=index,
        )

    def tier_probabilities(self) -> dict:
        weights = self.config.wheel.sector_weights()
        total = sum(weights)
        out = {t: 0.0 for t in Tier}
        for w, sector in zip(weights, self.config.wheel.sectors):
            out[sector.tier] += w / total
        return out
