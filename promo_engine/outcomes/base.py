"""
BARBER PROMO — Base Outcome Resolver

Abstract base for the per-mode outcome rules. A resolver turns selector
draws into a frozen Resolution before any animation starts; the reveal
controller later commits that Resolution into an Outcome.
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass, field
from typing import Optional

from promo_config.game_schema import GameMode, PromoGameConfig, Tier, default_config
from promo_engine.errors import InvalidInput


@dataclass(frozen=True)
class Resolution:
    """The decided result of one round, fixed before the reveal starts.

    `draw` carries the mode-specific inputs the animation needs to show
    this result (symbol keys, plinko steps, wheel sector, reel indices).
    """
    mode: GameMode
    tier: Tier
    prize_text: Optional[str] = None
    prize_id: Optional[str] = None
    draw: dict = field(default_factory=dict)

    def __post_init__(self):
        if self.tier.is_win != (self.prize_text is not None):
            raise InvalidInput(f"{self.mode.value}: tier={self.tier.value} with prize_text={self.prize_text!r}")

    @property
    def win(self) -> bool:
        return self.tier.is_win


@dataclass(frozen=True)
class Outcome:
    """Committed, displayed result of a settled round."""
    win: bool
    tier: Tier
    prize_text: Optional[str] = None
    coupon: Optional[str] = None
    mode: Optional[GameMode] = None

    def __post_init__(self):
        if self.win != (self.tier is not Tier.MISS):
            raise InvalidInput(f"win={self.win} contradicts tier={self.tier.value}")
        if self.win != (self.coupon is not None):
            raise InvalidInput(f"win={self.win} but coupon={self.coupon!r}")
        if self.win != (self.prize_text is not None):
            raise InvalidInput(f"win={self.win} but prize_text={self.prize_text!r}")

    @classmethod
    def from_resolution(cls, resolution: Resolution, coupon: Optional[str] = None) -> "Outcome":
        return cls(
            win=resolution.win,
            tier=resolution.tier,
            prize_text=resolution.prize_text,
            coupon=coupon,
            mode=resolution.mode,
        )

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value if self.mode else None,
            "win": self.win,
            "tier": self.tier.value,
            "prize_text": self.prize_text,
            "coupon": self.coupon,
        }


@dataclass
class SimResult:
    """Win-rate statistics for a resolver over many rounds."""
    mode: str
    rounds: int
    win_rate: float
    tier_distribution: dict = field(default_factory=dict)
    prize_distribution: dict = field(default_factory=dict)
    max_loss_streak: int = 0
    max_win_streak: int = 0
    seed: object = 0

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "rounds": self.rounds,
            "win_rate": round(self.win_rate, 4),
            "tier_distribution": {k: round(v, 4) for k, v in self.tier_distribution.items()},
            "prize_distribution": {k: round(v, 4) for k, v in self.prize_distribution.items()},
            "max_loss_streak": self.max_loss_streak,
            "max_win_streak": self.max_win_streak,
            "seed": self.seed,
        }


class BaseOutcomeResolver(ABC):
    """Abstract base for all instant-win outcome rules."""

    mode: GameMode
    display_name: str = "Base Game"

    def __init__(self, config: Optional[PromoGameConfig] = None):
        self.config = config or default_config(self.mode)
        if self.config.mode != self.mode:
            raise ValueError(f"{type(self).__name__} cannot run a {self.config.mode.value} config")

    @abstractmethod
    def resolve(self, rng) -> Resolution:
        """Decide one round. All randomness comes from `rng.random()`."""
        ...

    @abstractmethod
    def tier_probabilities(self) -> dict:
        """Exact probability of each tier under this config."""
        ...

    def theoretical_win_rate(self) -> float:
        return 1.0 - self.tier_probabilities()[Tier.MISS]

    def _resolution(self, tier: Tier, prize_text: Optional[str] = None,
                    prize_id: Optional[str] = None, **draw) -> Resolution:
        # fail closed: a win tier without prize text is a miss
        if tier.is_win and prize_text is None:
            tier = Tier.MISS
        if not tier.is_win:
            prize_text = prize_id = None
        return Resolution(mode=self.mode, tier=tier, prize_text=prize_text,
                          prize_id=prize_id, draw=draw)

    def simulate(self, rounds: int = 100_000, seed=42) -> SimResult:
        """Run a Monte Carlo estimate of win rate, tier mix and streaks."""
        if rounds <= 0:
            raise ValueError("rounds must be positive")
        rng = random.Random(seed)
        tiers: Counter = Counter()
        prizes: Counter = Counter()
        max_loss = max_win = cur_loss = cur_win = 0

        for _ in range(rounds):
            res = self.resolve(rng)
            tiers[res.tier.value] += 1
            if res.win:
                prizes[res.prize_text] += 1
                cur_win, cur_loss = cur_win + 1, 0
                max_win = max(max_win, cur_win)
            else:
                cur_loss, cur_win = cur_loss + 1, 0
                max_loss = max(max_loss, cur_loss)

        wins = rounds - tiers.get(Tier.MISS.value, 0)
        return SimResult(
            mode=self.mode.value,
            rounds=rounds,
            win_rate=wins / rounds,
            tier_distribution={t.value: tiers.get(t.value, 0) / rounds for t in Tier},
            prize_distribution={k: v / rounds for k, v in sorted(prizes.items())},
            max_loss_streak=max_loss,
            max_win_streak=max_win,
            seed=seed,
        )

    def get_metadata(self) -> dict:
        return {
            "mode": self.mode.value,
            "display_name": self.display_name,
            "config_hash": self.config.config_hash,
        }
