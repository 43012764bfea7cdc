"""
Scratch reveal — pointer drags erase the overlay; the card settles the first
time a pointer release finds at least 60% of the overlay erased.

The erased fraction is only recomputed on release/cancel (a full-buffer
scan), never on every move. Settling is a one-way latch: scratching or
releasing after it is a no-op.
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional

from promo_config.game_schema import GameMode
from promo_engine.errors import SurfaceUnavailable
from promo_engine.reveal.base import BaseRevealController, RevealState
from promo_tools.scratch_surface import ScratchSurface, erased_fraction

logger = logging.getLogger("barberpromo.reveal")


@dataclass(frozen=True)
class ScratchProgress:
    scratching: bool = False
    erased: float = 0.0
    releases: int = 0
    revealed: bool = False


def release_scratch(progress: ScratchProgress, fraction: float, threshold: float) -> ScratchProgress:
    """Pointer released with `fraction` of the overlay erased."""
    if progress.revealed:
        return replace(progress, scratching=False)
    return replace(
        progress,
        scratching=False,
        erased=fraction,
        releases=progress.releases + 1,
        revealed=fraction >= threshold,
    )


class ScratchReveal(BaseRevealController):
    mode = GameMode.SCRATCH

    _UNSET = object()

    def __init__(self, config=None, surface=_UNSET, pixel_ratio: float = 1.0, **kwargs):
        # surface=None models a missing drawing context
        self._pixel_ratio = pixel_ratio
        self._surface_arg = surface
        self.surface: Optional[ScratchSurface] = None
        super().__init__(config, **kwargs)

    def _ensure_surface(self) -> ScratchSurface:
        if self.surface is None:
            if self._surface_arg is None:
                raise SurfaceUnavailable("no drawing context for the scratch overlay")
            if self._surface_arg is self._UNSET:
                self._surface_arg = ScratchSurface.for_config(self.config.scratch, self._pixel_ratio)
            self.surface = self._surface_arg
        return self.surface

    # ── Mode hooks ─────────────────────────────────────────────

    def initial_progress(self, resolution):
        try:
            self._ensure_surface().cover()
        except SurfaceUnavailable as e:
            logger.warning(f"scratch: overlay not drawn: {e}")
        return ScratchProgress()

    def advance(self, progress, delta_ms):
        return progress

    def is_finished(self, progress):
        return progress.revealed

    def _begin(self):
        self._ensure_surface().acquire()

    # ── Pointer events ─────────────────────────────────────────

    @property
    def symbols(self) -> tuple:
        return self.session.resolution.draw["symbols"]

    def pointer_down(self, x: float, y: float) -> RevealState:
        if self.state is RevealState.SETTLED:
            return self.state
        if self.state is RevealState.READY:
            self.start()
            if self.state is not RevealState.IN_PROGRESS:
                return self.state
        self.session.progress = replace(self.session.progress, scratching=True)
        return self.state

    def pointer_move(self, x: float, y: float) -> RevealState:
        if self.state is RevealState.IN_PROGRESS and self.session.progress.scratching:
            try:
                self._ensure_surface().erase_circle(x, y, self.config.scratch.brush_radius)
            except SurfaceUnavailable as e:
                logger.warning(f"scratch: surface lost mid-drag, abandoning: {e}")
                self.abandon()
        return self.state

    def pointer_up(self, x: float = 0.0, y: float = 0.0) -> RevealState:
        if self.state is not RevealState.IN_PROGRESS:
            return self.state
        try:
            fraction = erased_fraction(self._ensure_surface().acquire())
        except SurfaceUnavailable as e:
            logger.warning(f"scratch: surface lost mid-round, abandoning: {e}")
            self.abandon()
            return self.state
        self.session.progress = release_scratch(
            self.session.progress, fraction, self.config.scratch.reveal_threshold,
        )
        logger.debug(f"scratch: release #{self.session.progress.releases} erased={fraction:.3f}")
        if self.is_finished(self.session.progress):
            self._settle()
        return self.state

    pointer_cancel = pointer_up

    def scratch_path(self, points) -> RevealState:
        """Convenience: one drag gesture through `points`, then release."""
        points = list(points)
        if not points:
            return self.state
        self.pointer_down(*points[0])
        for x, y in points:
            self.pointer_move(x, y)
        return self.pointer_up(*points[-1])
