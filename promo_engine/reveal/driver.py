"""
BARBER PROMO — Reveal Driver

Thin asyncio harness standing in for requestAnimationFrame / setInterval.
It owns no game state: it measures elapsed time and calls
`controller.tick(delta_ms)` until the session settles or is replaced.
Cancelling the task abandons the round with nothing committed.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from promo_config.settings import PromoSettings
from promo_engine.outcomes import Outcome
from promo_engine.reveal.base import BaseRevealController, RevealState
from promo_tools.cooldown import Countdown

logger = logging.getLogger("barberpromo.driver")


class RevealDriver:
    def __init__(
        self,
        controller: BaseRevealController,
        frame_ms: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable] = asyncio.sleep,
        on_frame: Optional[Callable[[BaseRevealController], None]] = None,
    ):
        self.controller = controller
        self.frame_ms = frame_ms or PromoSettings.FRAME_MS
        self._clock = clock
        self._sleep = sleep
        self.on_frame = on_frame
        self.frames = 0

    async def run(self) -> Optional[Outcome]:
        """Tick the current session to completion; returns its Outcome."""
        ctl = self.controller
        session = ctl.session
        last = self._clock()
        try:
            while ctl.state is RevealState.IN_PROGRESS and ctl.session is session:
                await self._sleep(self.frame_ms / 1000)
                now = self._clock()
                ctl.tick(max(0.0, (now - last) * 1000))
                last = now
                self.frames += 1
                if self.on_frame:
                    self.on_frame(ctl)
        except asyncio.CancelledError:
            if ctl.session is session and ctl.state is RevealState.IN_PROGRESS:
                logger.info(f"{ctl.mode.value}: driver cancelled, abandoning session {session.session_id}")
                ctl.abandon()
            raise
        return session.outcome

    def run_sync(self) -> Optional[Outcome]:
        return asyncio.run(self.run())


async def run_countdown(
    countdown: Countdown,
    on_tick: Optional[Callable[[Countdown], None]] = None,
    interval_s: float = 60.0,
    sleep: Callable[[float], Awaitable] = asyncio.sleep,
) -> None:
    """Tick an advisory countdown once per interval until it reaches zero."""
    while countdown.active:
        await sleep(interval_s)
        countdown.tick_minute()
        if on_tick:
            on_tick(countdown)
