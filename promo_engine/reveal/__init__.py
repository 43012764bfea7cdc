"""
BARBER PROMO — Reveal Controllers

Usage:
    from promo_engine.reveal import get_reveal_controller
    ctl = get_reveal_controller("wheel")
    ctl.start(consent=True)
    while ctl.tick(16) is RevealState.IN_PROGRESS:
        ...
    print(ctl.outcome)
"""

from promo_config.game_schema import GameMode
from promo_engine.reveal.base import BaseRevealController, RevealSession, RevealState
from promo_engine.reveal.plinko import PlinkoReveal
from promo_engine.reveal.scratch import ScratchReveal
from promo_engine.reveal.slot import SlotReveal
from promo_engine.reveal.wheel import WheelReveal

REVEAL_CONTROLLERS = {
    GameMode.SCRATCH: ScratchReveal,
    GameMode.PLINKO: PlinkoReveal,
    GameMode.WHEEL: WheelReveal,
    GameMode.SLOT: SlotReveal,
}


def get_reveal_controller(mode, config=None, **kwargs) -> BaseRevealController:
    """Build the reveal controller for a game mode."""
    try:
        mode = GameMode(mode)
    except ValueError:
        raise ValueError(f"Unknown game mode: {mode}. Available: {[m.value for m in GameMode]}") from None
    return REVEAL_CONTROLLERS[mode](config, **kwargs)


__all__ = [
    "BaseRevealController", "RevealSession", "RevealState",
    "ScratchReveal", "PlinkoReveal", "WheelReveal", "SlotReveal",
    "REVEAL_CONTROLLERS", "get_reveal_controller",
]
