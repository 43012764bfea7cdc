"""
BARBER PROMO — Scratch Overlay Surface

The opaque coat over the scratch card, modelled as a uint8 alpha buffer
(255 = covered, 0 = erased). Erasing stamps a filled circle at the pointer
position, the same "destination-out" brush a canvas would use.

`erased_fraction(buffer)` is a pure function so the 60% reveal rule can be
tested against synthetic buffers without replaying gestures.
"""

from __future__ import annotations

import logging

import numpy as np

from promo_engine.errors import SurfaceUnavailable

logger = logging.getLogger("barberpromo.surface")

OPAQUE = 255
ERASED = 0


def erased_fraction(alpha: np.ndarray) -> float:
    """Fraction of fully transparent pixels over the whole overlay area."""
    if alpha is None or alpha.size == 0:
        raise SurfaceUnavailable("overlay buffer is empty")
    return float(np.count_nonzero(alpha == ERASED)) / alpha.size


class ScratchSurface:
    """Alpha buffer sized in device pixels (logical size × pixel ratio)."""

    def __init__(self, width: int, height: int, pixel_ratio: float = 1.0):
        if width <= 0 or height <= 0 or pixel_ratio <= 0:
            raise SurfaceUnavailable(f"cannot allocate a {width}x{height}@{pixel_ratio} surface")
        self.width = width
        self.height = height
        self.pixel_ratio = pixel_ratio
        self.alpha = np.full(
            (int(round(height * pixel_ratio)), int(round(width * pixel_ratio))),
            OPAQUE, dtype=np.uint8,
        )
        rows, cols = self.alpha.shape
        self._yy, self._xx = np.mgrid[0:rows, 0:cols]

    @classmethod
    def for_config(cls, scratch_config, pixel_ratio: float = 1.0) -> "ScratchSurface":
        return cls(scratch_config.surface_width, scratch_config.surface_height, pixel_ratio)

    def acquire(self) -> np.ndarray:
        """The drawing buffer; raises SurfaceUnavailable once released."""
        if self.alpha is None:
            raise SurfaceUnavailable("overlay surface was released")
        return self.alpha

    def release(self) -> None:
        self.alpha = None
        self._yy = self._xx = None

    def cover(self) -> None:
        """Repaint the full opaque coat (new round)."""
        self.acquire()[:] = OPAQUE

    def erase_circle(self, x: float, y: float, radius: float) -> None:
        """Clear a disc centred on logical coordinates (x, y)."""
        alpha = self.acquire()
        r = self.pixel_ratio
        cx, cy, rad = x * r, y * r, radius * r
        # pixel centres inside the disc
        mask = (self._xx + 0.5 - cx) ** 2 + (self._yy + 0.5 - cy) ** 2 <= rad * rad
        alpha[mask] = ERASED

    def erased_fraction(self) -> float:
        return erased_fraction(self.acquire())
