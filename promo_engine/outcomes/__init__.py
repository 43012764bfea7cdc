"""
BARBER PROMO — Outcome Resolvers

Per-mode rules that decide a round before its reveal animation starts.
Each resolver exposes: resolve(rng), simulate(), and get_metadata().

Usage:
    from promo_engine.outcomes import get_resolver
    resolver = get_resolver("slot")
    resolution = resolver.resolve(random.Random())
"""

from promo_config.game_schema import GameMode, PromoGameConfig
from promo_engine.outcomes.base import BaseOutcomeResolver, Outcome, Resolution, SimResult
from promo_engine.outcomes.plinko import PlinkoResolver
from promo_engine.outcomes.scratch import ScratchResolver
from promo_engine.outcomes.slot import SlotResolver, evaluate_reels
from promo_engine.outcomes.wheel import WheelResolver

RESOLVERS = {
    GameMode.SCRATCH: ScratchResolver,
    GameMode.PLINKO: PlinkoResolver,
    GameMode.WHEEL: WheelResolver,
    GameMode.SLOT: SlotResolver,
}

GAME_MODES = [m.value for m in RESOLVERS]


def get_resolver(mode, config: PromoGameConfig = None) -> BaseOutcomeResolver:
    """Get the outcome resolver for a game mode."""
    try:
        mode = GameMode(mode.lower() if isinstance(mode, str) else mode)
    except ValueError:
        raise ValueError(f"Unknown game mode: {mode}. Available: {GAME_MODES}") from None
    return RESOLVERS[mode](config)


__all__ = [
    "BaseOutcomeResolver", "Outcome", "Resolution", "SimResult",
    "ScratchResolver", "PlinkoResolver", "WheelResolver", "SlotResolver",
    "evaluate_reels", "get_resolver", "RESOLVERS", "GAME_MODES",
]
