"""
BARBER PROMO — Monte Carlo Validator

Plays N rounds of each game's outcome rules and checks:
  • Measured win rate within tolerance of the exact theoretical rate
  • Measured tier mix within tolerance of the exact tier probabilities
  • Loss/win streak lengths (informational)

Uses a seeded random.Random per mode so results are reproducible.

Usage:
    from promo_tools.montecarlo import MonteCarloValidator
    mc = MonteCarloValidator(tolerance=0.01)

    result = mc.validate("wheel", n_rounds=100_000)
    print(result.summary())

    report = mc.validate_all(n_rounds=100_000)
    print(report.to_json())
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from promo_config.game_schema import GameMode, PromoGameConfig, Tier
from promo_engine.outcomes import GAME_MODES, get_resolver

logger = logging.getLogger("barberpromo.engine")


# ═══════════════════════════════════════════════════════════════
# Data Structures
# ═══════════════════════════════════════════════════════════════

@dataclass
class SimulationResult:
    """Results from one Monte Carlo run of a single mode."""
    mode: str
    n_rounds: int
    theoretical_win_rate: float
    measured_win_rate: float
    win_rate_delta: float
    tolerance: float = 0.01
    theoretical_tiers: dict = field(default_factory=dict)
    measured_tiers: dict = field(default_factory=dict)
    tier_pass: bool = True
    streak_analysis: dict = field(default_factory=dict)
    duration_seconds: float = 0.0
    seed: int = 0
    config_hash: str = ""

    @property
    def passed(self) -> bool:
        return self.win_rate_delta <= self.tolerance and self.tier_pass

    def summary(self) -> str:
        status = "✅ PASS" if self.passed else "❌ FAIL"
        lines = [
            f"═══ Monte Carlo: {self.mode.upper()} ═══",
            f"  Rounds:      {self.n_rounds:,}",
            f"  Theoretical: {self.theoretical_win_rate*100:.3f}%",
            f"  Measured:    {self.measured_win_rate*100:.3f}%",
            f"  Delta:       {self.win_rate_delta*100:.3f}%  (±{self.tolerance*100:.1f}%)",
            f"  Check:       {status}",
        ]
        for tier in Tier:
            lines.append(
                f"  {tier.value:7s} theory={self.theoretical_tiers.get(tier.value, 0)*100:6.2f}% "
                f"measured={self.measured_tiers.get(tier.value, 0)*100:6.2f}%"
            )
        if self.streak_analysis:
            lines.append(f"  Max Loss Streak: {self.streak_analysis.get('max_loss_streak', 'N/A')}")
            lines.append(f"  Max Win Streak:  {self.streak_analysis.get('max_win_streak', 'N/A')}")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "n_rounds": self.n_rounds,
            "theoretical_win_rate_pct": round(self.theoretical_win_rate * 100, 4),
            "measured_win_rate_pct": round(self.measured_win_rate * 100, 4),
            "win_rate_delta_pct": round(self.win_rate_delta * 100, 4),
            "tolerance_pct": self.tolerance * 100,
            "tiers": {
                "theoretical": {k: round(v, 4) for k, v in self.theoretical_tiers.items()},
                "measured": {k: round(v, 4) for k, v in self.measured_tiers.items()},
                "pass": self.tier_pass,
            },
            "streak_analysis": self.streak_analysis,
            "pass": self.passed,
            "duration_s": round(self.duration_seconds, 2),
            "seed": self.seed,
            "config_hash": self.config_hash,
        }


@dataclass
class ValidationReport:
    """Validation report across game modes."""
    results: list[SimulationResult] = field(default_factory=list)
    overall_pass: bool = True
    generated_at: str = ""
    total_rounds: int = 0

    def __post_init__(self):
        self.generated_at = datetime.now(timezone.utc).isoformat()

    def add(self, result: SimulationResult):
        self.results.append(result)
        if not result.passed:
            self.overall_pass = False
        self.total_rounds += result.n_rounds

    def summary(self) -> str:
        lines = [
            "═══════════════════════════════════════════════════",
            "    PROMO WIN-RATE VALIDATION REPORT",
            "═══════════════════════════════════════════════════",
            f"  Generated: {self.generated_at}",
            f"  Total Rounds: {self.total_rounds:,}",
            f"  Overall: {'✅ ALL PASS' if self.overall_pass else '❌ SOME FAILED'}",
            "",
        ]
        for r in self.results:
            status = "✅" if r.passed else "❌"
            lines.append(
                f"  {status} {r.mode:8s} | "
                f"theory={r.theoretical_win_rate*100:.2f}% "
                f"measured={r.measured_win_rate*100:.2f}% "
                f"Δ={r.win_rate_delta*100:.3f}%"
            )
        return "\n".join(lines)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps({
            "report_type": "Monte Carlo Validation",
            "generated_at": self.generated_at,
            "overall_pass": self.overall_pass,
            "total_rounds": self.total_rounds,
            "games": [r.to_dict() for r in self.results],
        }, indent=indent)


# ═══════════════════════════════════════════════════════════════
# Validator
# ═══════════════════════════════════════════════════════════════

class MonteCarloValidator:
    """Compares simulated win rates against each resolver's exact odds."""

    def __init__(self, tolerance: float = 0.01, seed: int = 42):
        self.tolerance = tolerance
        self.seed = seed

    def validate(self, mode, n_rounds: int = 100_000,
                 config: Optional[PromoGameConfig] = None) -> SimulationResult:
        if n_rounds <= 0:
            raise ValueError("n_rounds must be positive")
        mode = GameMode(mode)
        resolver = get_resolver(mode, config)

        t0 = time.time()
        sim = resolver.simulate(rounds=n_rounds, seed=f"{self.seed}:{mode.value}")
        duration = time.time() - t0

        theory = {t.value: p for t, p in resolver.tier_probabilities().items()}
        measured = sim.tier_distribution
        theoretical_rate = 1.0 - theory[Tier.MISS.value]
        measured_rate = sim.win_rate
        tier_pass = all(abs(measured[k] - theory[k]) <= self.tolerance for k in theory)

        result = SimulationResult(
            mode=mode.value,
            n_rounds=n_rounds,
            theoretical_win_rate=theoretical_rate,
            measured_win_rate=measured_rate,
            win_rate_delta=abs(measured_rate - theoretical_rate),
            tolerance=self.tolerance,
            theoretical_tiers=theory,
            measured_tiers=measured,
            tier_pass=tier_pass,
            streak_analysis={"max_loss_streak": sim.max_loss_streak,
                             "max_win_streak": sim.max_win_streak},
            duration_seconds=duration,
            seed=self.seed,
            config_hash=resolver.config.config_hash,
        )
        logger.info(f"[MC] {mode.value}: {n_rounds:,} rounds, "
                    f"win rate {measured_rate:.4f} vs {theoretical_rate:.4f} "
                    f"({'pass' if result.passed else 'FAIL'})")
        return result

    def validate_all(self, n_rounds: int = 100_000) -> ValidationReport:
        """Validate all four modes with default configs."""
        report = ValidationReport()
        for mode in GAME_MODES:
            report.add(self.validate(mode, n_rounds=n_rounds))
        return report
