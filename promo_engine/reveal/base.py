"""
BARBER PROMO — Reveal State Machine (base)

Every mode reveals a precomputed Resolution through the same three states:

    READY ──start()──▶ IN_PROGRESS ──terminal condition──▶ SETTLED

READY       waiting for a gesture; start requires consent AND cooldown.
IN_PROGRESS animation or scratching under way; further starts are ignored.
SETTLED     terminal. The Outcome is committed once, a coupon is minted for
            wins and the cooldown is armed. Only new_round() plays again.

The Resolution is decided in new_round(), before start() is even possible,
and is never recomputed: the player cannot re-roll by interacting
differently. Mode subclasses supply a pure `advance(progress, delta_ms)` and
a terminal test; this class owns the single commit point.
"""

from __future__ import annotations

import itertools
import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from promo_config.game_schema import GameMode, PromoGameConfig, default_config
from promo_engine.errors import ConsentRequired, SurfaceUnavailable
from promo_engine.outcomes import Outcome, Resolution, get_resolver
from promo_tools.cooldown import CooldownGate
from promo_tools.coupon import CouponIssuer

logger = logging.getLogger("barberpromo.reveal")

_session_ids = itertools.count(1)


class RevealState(str, Enum):
    READY       = "ready"
    IN_PROGRESS = "in_progress"
    SETTLED     = "settled"


@dataclass
class RevealSession:
    """One round: its fixed Resolution plus live progress."""
    session_id: int
    resolution: Resolution
    progress: Any
    outcome: Optional[Outcome] = None


class BaseRevealController(ABC):
    """Drives one game mode's reveal and commits its Outcome exactly once."""

    mode: GameMode

    def __init__(
        self,
        config: Optional[PromoGameConfig] = None,
        gate: Optional[CooldownGate] = None,
        rng=None,
        issuer: Optional[CouponIssuer] = None,
        fx_rng=None,
        on_settled: Optional[Callable[[Outcome], None]] = None,
        on_celebrate: Optional[Callable[[Outcome], None]] = None,
    ):
        self.config = config or default_config(self.mode)
        self.resolver = get_resolver(self.mode, self.config)
        self.gate = gate or CooldownGate.for_config(self.config)
        self.rng = rng or random.SystemRandom()
        # presentation-only randomness (wheel jitter, reel start faces)
        self.fx_rng = fx_rng or random.Random()
        self.issuer = issuer or CouponIssuer()
        self.on_settled = on_settled
        self.on_celebrate = on_celebrate
        self.consent = False
        self.state = RevealState.READY
        self.session: Optional[RevealSession] = None
        self.new_round()

    # ── Mode hooks ─────────────────────────────────────────────

    @abstractmethod
    def initial_progress(self, resolution: Resolution) -> Any:
        ...

    @abstractmethod
    def advance(self, progress: Any, delta_ms: float) -> Any:
        """Pure transition: progress after `delta_ms` more milliseconds."""
        ...

    @abstractmethod
    def is_finished(self, progress: Any) -> bool:
        ...

    def _begin(self) -> None:
        """Acquire whatever the reveal draws on. May raise SurfaceUnavailable."""

    def celebrates(self, outcome: Outcome) -> bool:
        return False

    # ── Lifecycle ──────────────────────────────────────────────

    @property
    def outcome(self) -> Optional[Outcome]:
        return self.session.outcome if self.session else None

    def new_round(self) -> RevealSession:
        """Decide a fresh round and return to READY, discarding any current one."""
        if self.state is RevealState.IN_PROGRESS:
            logger.info(f"{self.mode.value}: session {self.session.session_id} abandoned for a new round")
        resolution = self.resolver.resolve(self.rng)
        self.session = RevealSession(
            session_id=next(_session_ids),
            resolution=resolution,
            progress=self.initial_progress(resolution),
        )
        self.state = RevealState.READY
        logger.debug(f"{self.mode.value}: session {self.session.session_id} ready")
        return self.session

    def abandon(self) -> None:
        """Drop an in-progress round with no outcome, coupon or cooldown."""
        if self.state is RevealState.IN_PROGRESS:
            self.new_round()

    def set_consent(self, accepted: bool) -> None:
        self.consent = bool(accepted)

    def can_start(self) -> bool:
        return self.state is RevealState.READY and self.consent and self.gate.can_play()

    def start(self, consent: Optional[bool] = None) -> RevealState:
        """READY → IN_PROGRESS when consent is given and the cooldown allows.

        Raises ConsentRequired / CooldownActive (both PlayRejected) and stays
        READY. Requests outside READY are ignored.
        """
        if consent is not None:
            self.set_consent(consent)
        if self.state is not RevealState.READY:
            logger.debug(f"{self.mode.value}: start ignored while {self.state.value}")
            return self.state
        if not self.consent:
            raise ConsentRequired()
        self.gate.require()
        try:
            self._begin()
        except SurfaceUnavailable as e:
            logger.warning(f"{self.mode.value}: surface unavailable, staying ready: {e}")
            return self.state
        self.state = RevealState.IN_PROGRESS
        logger.info(f"{self.mode.value}: session {self.session.session_id} started")
        return self.state

    def tick(self, delta_ms: float) -> RevealState:
        """Feed elapsed time into the animation; settles on its terminal condition."""
        if self.state is not RevealState.IN_PROGRESS:
            return self.state
        if delta_ms < 0:
            raise ValueError(f"negative tick: {delta_ms}")
        self.session.progress = self.advance(self.session.progress, delta_ms)
        if self.is_finished(self.session.progress):
            self._settle()
        return self.state

    def _settle(self) -> None:
        session = self.session
        if session.outcome is not None:
            return
        resolution = session.resolution
        coupon = None
        if resolution.win:
            coupon = self.issuer.issue(self.mode, prefix=self.config.coupon_prefix)
        session.outcome = Outcome.from_resolution(resolution, coupon)
        self.state = RevealState.SETTLED
        try:
            self.gate.arm()
        except OSError as e:
            logger.error(f"{self.mode.value}: could not record play for cooldown: {e}")
        logger.info(f"{self.mode.value}: session {session.session_id} settled "
                    f"tier={resolution.tier.value} coupon={coupon}")

        if self.on_settled:
            self.on_settled(session.outcome)
        if self.on_celebrate and session.outcome.win and self.celebrates(session.outcome):
            self.on_celebrate(session.outcome)
