"""
BARBER PROMO — Game Configuration Schema

Immutable configuration values every instant-win game reads at round start.
Symbol tables, prize tables, wheel sectors, plinko slots and reveal timings
all live here instead of module-level globals, so two configs (e.g. an A/B
variant with different odds) can run side by side without shared state.

Usage:
    from promo_config.game_schema import default_config, GameMode
    config = default_config(GameMode.SLOT)
    json_str = config.model_dump_json(indent=2)
"""

from __future__ import annotations

import hashlib
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from promo_config.settings import PromoSettings


# ═══════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════

class GameMode(str, Enum):
    SCRATCH = "scratch"
    PLINKO  = "plinko"
    WHEEL   = "wheel"
    SLOT    = "slot"


class Tier(str, Enum):
    """Ordinal prize category: miss < small < medium < big."""
    MISS   = "miss"
    SMALL  = "small"
    MEDIUM = "medium"
    BIG    = "big"

    @property
    def rank(self) -> int:
        return _TIER_RANK[self]

    @property
    def is_win(self) -> bool:
        return self is not Tier.MISS


_TIER_RANK = {Tier.MISS: 0, Tier.SMALL: 1, Tier.MEDIUM: 2, Tier.BIG: 3}


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# ═══════════════════════════════════════════════════════════════
# Table Entries
# ═══════════════════════════════════════════════════════════════

class SymbolSpec(_Frozen):
    """One reel / card symbol with its relative draw weight."""
    key: str
    label: str = ""
    emoji: str = ""
    weight: float = Field(..., gt=0)


class PrizeSpec(_Frozen):
    """A prize entry registered for a tier."""
    id: str
    text: str
    tier: Tier


class SectorSpec(_Frozen):
    """Wheel sector / plinko slot — statically assigned a tier."""
    label: str
    tier: Tier


class BrandConfig(_Frozen):
    name: str = Field(default_factory=lambda: PromoSettings.BRAND_NAME)
    tagline: str = ""


def _check_unique_keys(symbols: tuple[SymbolSpec, ...]) -> tuple[SymbolSpec, ...]:
    if not symbols:
        raise ValueError("symbol table must not be empty")
    keys = [s.key for s in symbols]
    if len(set(keys)) != len(keys):
        raise ValueError(f"duplicate symbol keys: {keys}")
    return symbols


# ═══════════════════════════════════════════════════════════════
# Per-Mode Configurations
# ═══════════════════════════════════════════════════════════════

class ScratchConfig(_Frozen):
    """Scratch card — three hidden symbols, all three equal wins."""
    symbols: tuple[SymbolSpec, ...] = (
        SymbolSpec(key="scissors", label="Tijeras", emoji="✂️", weight=28),
        SymbolSpec(key="razor",    label="Navaja",  emoji="🪒", weight=22),
        SymbolSpec(key="pole",     label="Barber Pole", emoji="💈", weight=12),
        SymbolSpec(key="beard",    label="Barba",   emoji="🧔", weight=18),
        SymbolSpec(key="product",  label="Cera",    emoji="🧴", weight=12),
        SymbolSpec(key="mirror",   label="Espejo",  emoji="🪞", weight=8),
    )
    # symbol key → prize; a matched symbol missing here resolves to miss
    prize_by_symbol: dict[str, PrizeSpec] = Field(default_factory=lambda: {
        "scissors": PrizeSpec(id="scissors", text="10% de descuento en corte", tier=Tier.SMALL),
        "razor":    PrizeSpec(id="razor", text="10% de descuento en barba", tier=Tier.SMALL),
        "beard":    PrizeSpec(id="beard", text="Hot towel upgrade sin costo", tier=Tier.MEDIUM),
        "product":  PrizeSpec(id="product", text="Cera de peinado GRATIS (mini)", tier=Tier.MEDIUM),
        "pole":     PrizeSpec(id="pole", text="2x1 en corte + barba (hoy)", tier=Tier.BIG),
        "mirror":   PrizeSpec(id="mirror", text="Peinado express sin costo", tier=Tier.SMALL),
    })
    force_match_chance: float = Field(0.18, ge=0.0, le=1.0)  # P(third symbol := first)
    reveal_threshold: float = Field(0.60, gt=0.0, le=1.0)
    surface_width: int = Field(560, gt=0)
    surface_height: int = Field(220, gt=0)
    brush_radius: float = Field(18.0, gt=0)

    @field_validator("symbols")
    @classmethod
    def _unique_symbols(cls, v):
        return _check_unique_keys(v)


class PlinkoConfig(_Frozen):
    """Plinko — ball takes a 50/50 step per row from the middle column."""
    rows: int = Field(10, ge=1)
    slots: tuple[SectorSpec, ...] = (
        SectorSpec(label="Sigue", tier=Tier.MISS),
        SectorSpec(label="10% Corte", tier=Tier.SMALL),
        SectorSpec(label="Toalla Caliente", tier=Tier.SMALL),
        SectorSpec(label="Cera Mini", tier=Tier.MEDIUM),
        SectorSpec(label="2x1 Corte+Barba", tier=Tier.BIG),
        SectorSpec(label="Cera Mini", tier=Tier.MEDIUM),
        SectorSpec(label="Toalla Caliente", tier=Tier.SMALL),
        SectorSpec(label="10% Corte", tier=Tier.SMALL),
        SectorSpec(label="Sigue", tier=Tier.MISS),
        SectorSpec(label="Sigue", tier=Tier.MISS),
        SectorSpec(label="10% Corte", tier=Tier.SMALL),
    )
    step_interval_ms: float = Field(220.0, gt=0)

    @field_validator("slots")
    @classmethod
    def _non_empty(cls, v):
        if not v:
            raise ValueError("plinko board needs at least one slot")
        return v

    @property
    def start_column(self) -> int:
        return len(self.slots) // 2


class WheelConfig(_Frozen):
    """Wheel — equal-angle sectors, drawn with per-tier weights."""
    sectors: tuple[SectorSpec, ...] = (
        SectorSpec(label="Sigue", tier=Tier.MISS),
        SectorSpec(label="10% Corte", tier=Tier.SMALL),
        SectorSpec(label="Toalla Caliente", tier=Tier.SMALL),
        SectorSpec(label="Cera Mini", tier=Tier.MEDIUM),
        SectorSpec(label="2x1 Corte+Barba", tier=Tier.BIG),
        SectorSpec(label="Cera Mini", tier=Tier.MEDIUM),
        SectorSpec(label="10% Barba", tier=Tier.SMALL),
        SectorSpec(label="Peinado Express", tier=Tier.SMALL),
        SectorSpec(label="Sigue", tier=Tier.MISS),
        SectorSpec(label="10% Corte", tier=Tier.SMALL),
    )
    # Biased draw on top of the visual wheel: big under-weighted, small/miss over-weighted
    tier_weights: dict[Tier, float] = Field(default_factory=lambda: {
        Tier.BIG: 1, Tier.MEDIUM: 2, Tier.SMALL: 4, Tier.MISS: 3,
    })
    spin_duration_ms: float = Field(3500.0, gt=0)
    base_turns: int = Field(5, ge=0)
    pointer_offset_deg: float = -90.0
    jitter_deg: float = Field(3.0, ge=0)
    celebrate_on_win: bool = True

    @model_validator(mode="after")
    def _check_weights(self):
        if not self.sectors:
            raise ValueError("wheel needs at least one sector")
        for s in self.sectors:
            w = self.tier_weights.get(s.tier)
            if w is None or w <= 0:
                raise ValueError(f"tier {s.tier.value} has no positive weight")
        # jitter must stay inside half a sector or the pointer lands on a neighbour
        if self.jitter_deg >= self.step_angle / 2:
            raise ValueError(f"jitter {self.jitter_deg}° exceeds half sector {self.step_angle / 2}°")
        return self

    @property
    def step_angle(self) -> float:
        return 360.0 / len(self.sectors)

    def sector_weights(self) -> list[float]:
        return [self.tier_weights[s.tier] for s in self.sectors]


class SlotConfig(_Frozen):
    """Slot reels — three independent weighted draws, wild downgrades."""
    symbols: tuple[SymbolSpec, ...] = (
        SymbolSpec(key="scissors", label="Tijeras", emoji="✂️", weight=22),
        SymbolSpec(key="razor",    label="Navaja",  emoji="🪒", weight=18),
        SymbolSpec(key="pole",     label="Barber Pole (Wild)", emoji="💈", weight=12),
        SymbolSpec(key="beard",    label="Barba",   emoji="🧔", weight=16),
        SymbolSpec(key="cut",      label="Corte",   emoji="💇‍♂️", weight=16),
        SymbolSpec(key="product",  label="Producto", emoji="🧴", weight=10),
        SymbolSpec(key="mirror",   label="Espejo",  emoji="🪞", weight=6),
    )
    wild_key: str = "pole"
    prizes: tuple[PrizeSpec, ...] = (
        PrizeSpec(id="p10", text="10% de descuento en corte", tier=Tier.SMALL),
        PrizeSpec(id="p20", text="20% de descuento en barba", tier=Tier.SMALL),
        PrizeSpec(id="wax", text="Cera de peinado GRATIS (mini)", tier=Tier.MEDIUM),
        PrizeSpec(id="2x1", text="2x1 en corte + barba (mismo día)", tier=Tier.BIG),
        PrizeSpec(id="hb", text="Hot towel upgrade sin costo", tier=Tier.SMALL),
        PrizeSpec(id="miss", text="Sigue participando", tier=Tier.MISS),
    )
    reel_stop_ms: tuple[float, ...] = (1300.0, 2000.0, 2600.0)
    reel_cycle_ms: tuple[float, ...] = (55.0, 70.0, 85.0)
    settle_delay_ms: float = Field(200.0, ge=0)

    @field_validator("symbols")
    @classmethod
    def _unique_symbols(cls, v):
        return _check_unique_keys(v)

    @model_validator(mode="after")
    def _check_reels(self):
        if len(self.reel_stop_ms) != 3 or len(self.reel_cycle_ms) != 3:
            raise ValueError("slot machine runs exactly three reels")
        if list(self.reel_stop_ms) != sorted(self.reel_stop_ms):
            raise ValueError(f"reel stops must be staggered: {self.reel_stop_ms}")
        if self.wild_key not in {s.key for s in self.symbols}:
            raise ValueError(f"wild symbol {self.wild_key!r} is not on the reels")
        return self

    def prizes_for(self, tier: Tier) -> list[PrizeSpec]:
        return [p for p in self.prizes if p.tier == tier]


# ═══════════════════════════════════════════════════════════════
# Main Config Model
# ═══════════════════════════════════════════════════════════════

COUPON_PREFIXES: dict[GameMode, str] = {
    GameMode.SCRATCH: "RSCA",
    GameMode.PLINKO:  "PLNK",
    GameMode.WHEEL:   "WHEL",
    GameMode.SLOT:    "BARB",
}

GAME_LABELS: dict[GameMode, str] = {
    GameMode.SCRATCH: "",
    GameMode.PLINKO:  "Plinko",
    GameMode.WHEEL:   "Ruleta",
    GameMode.SLOT:    "",
}


class PromoGameConfig(_Frozen):
    """Complete configuration for one game instance.

    Only the section matching `mode` is consulted by the resolver and
    reveal controller; the others keep their defaults.
    """
    version: str = "1.0.0"
    mode: GameMode
    brand: BrandConfig = Field(default_factory=BrandConfig)
    cooldown_hours: float = Field(default_factory=lambda: PromoSettings.COOLDOWN_HOURS, ge=0)
    coupon_prefix: str = ""
    game_label: str = ""
    scratch: ScratchConfig = Field(default_factory=ScratchConfig)
    plinko: PlinkoConfig = Field(default_factory=PlinkoConfig)
    wheel: WheelConfig = Field(default_factory=WheelConfig)
    slot: SlotConfig = Field(default_factory=SlotConfig)

    @model_validator(mode="before")
    @classmethod
    def _fill_mode_defaults(cls, data):
        if isinstance(data, dict) and data.get("mode") is not None:
            mode = GameMode(data["mode"])
            data = dict(data)
            if not data.get("coupon_prefix"):
                data["coupon_prefix"] = COUPON_PREFIXES[mode]
            data.setdefault("game_label", GAME_LABELS[mode])
        return data

    @property
    def storage_key(self) -> str:
        """Per-mode PlayRecord key; each game is an independent silo."""
        return f"{self.mode.value}_last_play"

    @property
    def config_hash(self) -> str:
        """SHA-256 of the odds section for audit trails."""
        section = getattr(self, self.mode.value)
        return hashlib.sha256(section.model_dump_json().encode()).hexdigest()[:16]


def default_config(mode: GameMode | str, **overrides) -> PromoGameConfig:
    """Default config reproducing the live campaign's odds and timings."""
    try:
        mode = GameMode(mode)
    except ValueError:
        raise ValueError(f"Unknown game mode: {mode}. Valid: {[m.value for m in GameMode]}") from None
    return PromoGameConfig(mode=mode, **overrides)


def validate_config(config: PromoGameConfig) -> list[str]:
    """Sanity checks that are legal but probably a mistake."""
    warnings: list[str] = []

    if config.mode == GameMode.SCRATCH:
        missing = [s.key for s in config.scratch.symbols if s.key not in config.scratch.prize_by_symbol]
        if missing:
            warnings.append(f"Scratch symbols without a prize always resolve to miss: {missing}")
    elif config.mode == GameMode.SLOT:
        for tier in (Tier.SMALL, Tier.MEDIUM, Tier.BIG):
            if not config.slot.prizes_for(tier):
                warnings.append(f"No slot prize registered for tier '{tier.value}' — it fails closed to miss")
    elif config.mode == GameMode.PLINKO:
        if not any(s.tier.is_win for s in config.plinko.slots):
            warnings.append("Plinko board has no winning slot")
    elif config.mode == GameMode.WHEEL:
        if not any(s.tier.is_win for s in config.wheel.sectors):
            warnings.append("Wheel has no winning sector")

    if config.cooldown_hours == 0:
        warnings.append("Cooldown disabled — a device can replay immediately")

    return warnings

