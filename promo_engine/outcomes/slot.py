"""Slot Reels — three independent weighted draws, pair/wild tiering."""
from collections import Counter
from itertools import product

from promo_config.game_schema import GameMode, Tier
from promo_engine.outcomes.base import BaseOutcomeResolver, Resolution
from promo_engine.selector import weighted_index


def evaluate_reels(keys, wild_key: str) -> Tier:
    """Tier for three symbol keys.

    Three of a kind is big (a wild triple only medium); a pair plus a wild
    is medium; any other pair is small; everything else misses.
    """
    a, b, c = keys
    if a == b == c:
        return Tier.MEDIUM if a == wild_key else Tier.BIG
    has_pair = 2 in Counter(keys).values()
    if has_pair and wild_key in keys:
        return Tier.MEDIUM
    if has_pair:
        return Tier.SMALL
    return Tier.MISS


class SlotResolver(BaseOutcomeResolver):
    mode = GameMode.SLOT
    display_name = "Slot de la Barber"

    def resolve(self, rng) -> Resolution:
        weights = [s.weight for s in self.config.slot.symbols]
        reels = tuple(weighted_index(weights, rng) for _ in range(3))
        return self.resolve_reels(reels, rng)

    def resolve_reels(self, reels, rng) -> Resolution:
        """Resolution for fixed reel indices; `rng` only picks the prize."""
        cfg = self.config.slot
        reels = tuple(reels)
        keys = tuple(cfg.symbols[i].key for i in reels)
        tier = evaluate_reels(keys, cfg.wild_key)
        if not tier.is_win:
            return self._resolution(Tier.MISS, reels=reels, symbols=keys)

        options = cfg.prizes_for(tier)
        if not options:
            return self._resolution(Tier.MISS, reels=reels, symbols=keys)
        prize = options[min(int(rng.random() * len(options)), len(options) - 1)]
        return self._resolution(tier, prize.text, prize.id, reels=reels, symbols=keys)

    def tier_probabilities(self) -> dict:
        """Exact tier mix by enumerating every reel combination."""
        cfg = self.config.slot
        total = sum(s.weight for s in cfg.symbols)
        probs = [s.weight / total for s in cfg.symbols]
        out = {t: 0.0 for t in Tier}
        for reels in product(range(len(probs)), repeat=3):
            tier = evaluate_reels(tuple(cfg.symbols[i].key for i in reels), cfg.wild_key)
            if tier.is_win and not cfg.prizes_for(tier):
                tier = Tier.MISS
            out[tier] += probs[reels[0]] * probs[reels[1]] * probs[reels[2]]
        return out
