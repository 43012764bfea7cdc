#!/usr/bin/env python3
"""
Tests for the reveal state machines and the asyncio driver.

Validates:
1. Scratch 60% release latch (pure function, synthetic buffers, gestures)
2. Missing / lost scratch surface never commits anything
3. Plinko, wheel and slot settle on their precomputed resolution
4. Wheel lands on the drawn sector and celebrates exactly once
5. Start is gated on consent and cooldown; re-entrant starts are ignored
6. Abandoning a round has no outcome, coupon or cooldown side effects
7. RevealDriver ticks to completion and abandons on cancellation
"""

import asyncio
import random
import re
import sys
from pathlib import Path

import numpy as np

# ── Ensure project root is on sys.path ──
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from promo_config.game_schema import Tier, default_config
from promo_engine.errors import ConsentRequired, CooldownActive, SurfaceUnavailable
from promo_engine.reveal import RevealState, get_reveal_controller
from promo_engine.reveal.driver import RevealDriver, run_countdown
from promo_engine.reveal.scratch import ScratchProgress, release_scratch
from promo_engine.reveal.slot import SlotProgress, advance_reels
from promo_engine.reveal.wheel import ease_out_cubic, landed_index, target_angle
from promo_tools.cooldown import MS_PER_HOUR, CooldownGate, Countdown, MemoryPlayStore
from promo_tools.coupon import CouponIssuer
from promo_tools.scratch_surface import ERASED, ScratchSurface, erased_fraction

NOW = 1_767_225_600_000
BARB_RE = re.compile(r"^BARB-\d{8}-\d{4}-[0-9A-Z]{4}$")
BIG_SECTOR = 13.5 / 31  # sector weights [3,4,4,2,1,...]: index 4 spans [13, 14)


class ScriptedRandom:
    """Replays a fixed sequence of random() values."""

    def __init__(self, values):
        self.values = list(values)

    def random(self) -> float:
        if not self.values:
            raise AssertionError("scripted rng exhausted")
        return self.values.pop(0)


class FakeTime:
    """Monotonic clock advanced only by the driver's own sleeps."""

    def __init__(self, cancel_after=None):
        self.now = 0.0
        self.sleeps = 0
        self.cancel_after = cancel_after

    def clock(self) -> float:
        return self.now

    async def sleep(self, seconds: float):
        self.sleeps += 1
        if self.cancel_after is not None and self.sleeps > self.cancel_after:
            raise asyncio.CancelledError()
        self.now += seconds


def make(mode, values, store=None, fx_rng=None, **kwargs):
    config = default_config(mode)
    gate = CooldownGate.for_config(config, store=store or MemoryPlayStore(), clock=lambda: NOW)
    return get_reveal_controller(
        mode, config, gate=gate, rng=ScriptedRandom(values),
        issuer=CouponIssuer(rng=random.Random(0)),
        fx_rng=fx_rng or random.Random(0), **kwargs,
    )


# ============================================================
# Scratch
# ============================================================

def test_erased_fraction_on_synthetic_buffers():
    """Pure fraction over the whole overlay, regardless of gesture history."""
    buf = np.full((10, 20), 255, dtype=np.uint8)
    assert erased_fraction(buf) == 0.0
    buf[:, :12] = 0
    assert erased_fraction(buf) == 0.6
    buf[:] = 0
    assert erased_fraction(buf) == 1.0
    try:
        erased_fraction(np.zeros((0, 0), dtype=np.uint8))
        assert False, "empty buffer must raise"
    except SurfaceUnavailable:
        pass
    print("✅ erased_fraction on synthetic buffers")


def test_release_latch_is_idempotent():
    p = release_scratch(ScratchProgress(scratching=True), 0.59, 0.60)
    assert not p.revealed and p.releases == 1 and not p.scratching
    p = release_scratch(p, 0.60, 0.60)
    assert p.revealed and p.releases == 2
    again = release_scratch(p, 0.10, 0.60)
    assert again.revealed and again.erased == 0.60 and again.releases == 2
    print("✅ Scratch release latch is one-way")


def test_scratch_settles_at_sixty_percent():
    ctl = make("scratch", [0.55, 0.55, 0.1], surface=ScratchSurface(100, 10))
    ctl.set_consent(True)

    assert ctl.pointer_down(0, 0) is RevealState.IN_PROGRESS
    ctl.surface.alpha[:, :50] = ERASED
    assert ctl.pointer_up() is RevealState.IN_PROGRESS
    assert ctl.session.progress.erased == 0.5
    assert ctl.outcome is None

    ctl.pointer_down(0, 0)
    ctl.surface.alpha[:, :60] = ERASED
    assert ctl.pointer_up() is RevealState.SETTLED
    outcome = ctl.outcome
    assert outcome.tier is Tier.BIG
    assert outcome.coupon.startswith("RSCA-")
    assert ctl.symbols == ("pole", "pole", "pole")
    assert ctl.gate.last_play() == NOW

    # further scratching after the latch changes nothing
    ctl.pointer_down(50, 5)
    ctl.pointer_move(80, 5)
    ctl.pointer_cancel()
    assert ctl.outcome is outcome
    assert ctl.session.progress.releases == 2
    print("✅ Scratch settles on the first release at ≥ 60%")


def test_scratch_gesture_erases_overlay():
    ctl = make("scratch", [0.0, 0.3, 0.5, 0.6], surface=ScratchSurface(100, 10))
    ctl.set_consent(True)
    state = ctl.scratch_path([(x, 5) for x in range(0, 101, 10)])
    assert state is RevealState.SETTLED
    assert ctl.surface.erased_fraction() == 1.0
    assert ctl.outcome.win is False and ctl.outcome.coupon is None
    print("✅ Drag gesture erases the overlay and settles a miss")


def test_scratch_requires_consent_on_pointer_down():
    ctl = make("scratch", [0.0, 0.3, 0.5, 0.6], surface=ScratchSurface(100, 10))
    try:
        ctl.pointer_down(10, 5)
        assert False, "consent must be required"
    except ConsentRequired:
        pass
    assert ctl.state is RevealState.READY
    print("✅ Scratch pointer-down without consent is rejected")


def test_surface_unavailable_stays_ready():
    ctl = make("scratch", [0.55, 0.55, 0.1], surface=None)
    ctl.set_consent(True)
    assert ctl.start() is RevealState.READY
    assert ctl.pointer_down(10, 5) is RevealState.READY
    ctl.pointer_move(20, 5)
    assert ctl.pointer_up() is RevealState.READY
    assert ctl.outcome is None
    assert ctl.gate.last_play() is None
    print("✅ Missing surface keeps the card Ready with nothing committed")


def test_surface_lost_mid_round_abandons():
    ctl = make("scratch", [0.55, 0.55, 0.1, 0.0, 0.3, 0.5, 0.6], surface=ScratchSurface(100, 10))
    ctl.set_consent(True)
    ctl.pointer_down(10, 5)
    first = ctl.session.session_id
    ctl.surface.release()
    assert ctl.pointer_up() is RevealState.READY
    assert ctl.session.session_id != first
    assert ctl.outcome is None
    assert ctl.gate.last_play() is None
    print("✅ Losing the surface mid-round abandons without a commit")


def test_surface_lost_mid_drag_abandons():
    ctl = make("scratch", [0.55, 0.55, 0.1, 0.0, 0.3, 0.5, 0.6], surface=ScratchSurface(100, 10))
    ctl.set_consent(True)
    ctl.pointer_down(10, 5)
    first = ctl.session.session_id
    ctl.surface.release()
    assert ctl.pointer_move(20, 5) is RevealState.READY
    assert ctl.session.session_id != first
    assert ctl.pointer_up() is RevealState.READY
    assert ctl.outcome is None
    assert ctl.gate.last_play() is None
    print("✅ Losing the surface during a drag abandons without raising")


# ============================================================
# Plinko / Slot
# ============================================================

def test_plinko_ball_follows_steps():
    ctl = make("plinko", [0.9, 0.1] * 5)
    ctl.start(consent=True)
    ctl.tick(219)
    assert ctl.session.progress.row == 0
    ctl.tick(1)
    assert ctl.session.progress.row == 1 and ctl.session.progress.ball_col == 6
    assert ctl.tick(220 * 8) is RevealState.IN_PROGRESS
    assert ctl.tick(220) is RevealState.SETTLED
    assert ctl.session.progress.ball_col == 5
    assert ctl.outcome.tier is Tier.MEDIUM
    assert ctl.outcome.prize_text == "Cera Mini"
    assert ctl.outcome.coupon.startswith("PLNK-")
    print("✅ Plinko settles after all ten rows in column 5")


def test_plinko_large_tick_consumes_all_rows():
    ctl = make("plinko", [0.1] * 10)
    ctl.start(consent=True)
    assert ctl.tick(5000) is RevealState.SETTLED
    assert ctl.session.progress.ball_col == 0
    assert ctl.outcome.win is False
    print("✅ One long frame still walks every row")


def test_advance_reels_cycles_then_stops():
    p = SlotProgress(final=(1, 2, 3), start_faces=(0, 0, 0), shown=(0, 0, 0))
    p = advance_reels(p, 110, 7, (1300, 2000, 2600), (55, 70, 85))
    assert p.shown == (2, 1, 1)
    assert p.stopped == (False, False, False)
    p = advance_reels(p, 2490, 7, (1300, 2000, 2600), (55, 70, 85))
    assert p.shown == (1, 2, 3) and all(p.stopped)
    print("✅ Reels cycle at their own rate and stop on the drawn faces")


def test_slot_end_to_end_pair_plus_wild():
    ctl = make("slot", [0.0, 0.0, 0.45, 0.0])
    ctl.start(consent=True)
    ctl.tick(1300)
    assert ctl.session.progress.stopped == (True, False, False)
    ctl.tick(1300)
    assert all(ctl.session.progress.stopped)
    assert ctl.tick(199) is RevealState.IN_PROGRESS
    assert ctl.tick(1) is RevealState.SETTLED
    assert ctl.shown_symbols() == ("scissors", "scissors", "pole")
    assert ctl.outcome.tier is Tier.MEDIUM
    assert BARB_RE.match(ctl.outcome.coupon)
    print(f"✅ Slot [scissors, scissors, pole] → medium, coupon {ctl.outcome.coupon}")


# ============================================================
# Wheel
# ============================================================

def test_wheel_angle_math():
    assert ease_out_cubic(0.0) == 0.0
    assert ease_out_cubic(1.0) == 1.0
    assert ease_out_cubic(0.5) == 0.875
    for index in range(10):
        for jitter in (-2.99, 0.0, 2.99):
            angle = target_angle(index, 36.0, 5, -90.0, jitter)
            assert landed_index(angle, 36.0, 10, -90.0) == index, (index, jitter)
    print("✅ Target angle always lands on its own sector")


def test_wheel_forced_big_celebrates_once():
    celebrations, settled = [], []
    ctl = make("wheel", [BIG_SECTOR], on_celebrate=celebrations.append, on_settled=settled.append)
    ctl.start(consent=True)
    assert ctl.tick(1750) is RevealState.IN_PROGRESS
    assert 0 < ctl.session.progress.t < 1
    assert ctl.tick(1750) is RevealState.SETTLED
    assert ctl.landed_index() == 4
    assert ctl.outcome.tier is Tier.BIG
    assert ctl.outcome.coupon.startswith("WHEL-")

    ctl.tick(500)
    ctl.start()
    assert len(celebrations) == 1 and len(settled) == 1
    assert celebrations[0] is ctl.outcome
    print("✅ Wheel index 4 → big with exactly one celebration")


def test_wheel_jitter_extremes_land_on_drawn_sector():
    for fx in (0.0, 0.999999):
        ctl = make("wheel", [BIG_SECTOR], fx_rng=ScriptedRandom([fx]))
        ctl.start(consent=True)
        ctl.tick(3500)
        assert ctl.landed_index() == 4, fx
    print("✅ Wheel jitter never moves the pointer off the drawn sector")


def test_wheel_miss_arms_cooldown_without_celebration():
    celebrations = []
    ctl = make("wheel", [0.0], on_celebrate=celebrations.append)
    ctl.start(consent=True)
    ctl.tick(3500)
    assert ctl.outcome.win is False
    assert ctl.outcome.coupon is None
    assert celebrations == []
    assert ctl.gate.hours_remaining(NOW) == 6
    print("✅ A wheel miss still arms the cooldown")


class ReadOnlyPlayStore(MemoryPlayStore):
    def set(self, key, value):
        raise OSError("read-only file system")


def test_unwritable_play_record_still_settles():
    ctl = make("wheel", [0.0], store=ReadOnlyPlayStore())
    ctl.start(consent=True)
    assert ctl.tick(3500) is RevealState.SETTLED
    assert ctl.outcome is not None and ctl.outcome.win is False
    assert ctl.gate.last_play() is None
    print("✅ A failed cooldown write is logged, the round still settles")


# ============================================================
# Gating / lifecycle
# ============================================================

def test_start_requires_consent():
    ctl = make("wheel", [0.0])
    assert not ctl.can_start()
    for consent in (None, False):
        try:
            ctl.start(consent=consent)
            assert False, "consent must be required"
        except ConsentRequired:
            pass
        assert ctl.state is RevealState.READY
    print("✅ No consent → ConsentRequired, still Ready")


def test_start_blocked_by_cooldown():
    store = MemoryPlayStore({"wheel_last_play": NOW - MS_PER_HOUR})
    ctl = make("wheel", [0.0], store=store)
    try:
        ctl.start(consent=True)
        assert False, "cooldown must block"
    except CooldownActive as e:
        assert abs(e.hours_remaining - 5.0) < 1e-9
    assert ctl.consent and not ctl.can_start()
    assert ctl.state is RevealState.READY

    # modes are independent silos
    other = make("slot", [0.0, 0.3, 0.6], store=store)
    assert other.start(consent=True) is RevealState.IN_PROGRESS
    print("✅ Cooldown blocks only its own game mode")


def test_reentrant_start_is_ignored():
    ctl = make("plinko", [0.9, 0.1] * 5 + [0.5] * 10)
    ctl.start(consent=True)
    sid = ctl.session.session_id
    assert ctl.start() is RevealState.IN_PROGRESS
    assert ctl.session.session_id == sid
    ctl.tick(2200)
    coupon = ctl.outcome.coupon
    assert ctl.start() is RevealState.SETTLED
    assert ctl.outcome.coupon == coupon

    ctl.new_round()
    assert ctl.state is RevealState.READY
    try:
        ctl.start()
        assert False, "second round inside the window must be rejected"
    except CooldownActive:
        pass
    print("✅ Starts while running or settled are ignored; replays hit the cooldown")


def test_abandon_has_no_side_effects():
    ctl = make("plinko", [0.9, 0.1] * 5 + [0.5] * 10)
    ctl.start(consent=True)
    ctl.tick(660)
    sid = ctl.session.session_id
    ctl.abandon()
    assert ctl.state is RevealState.READY
    assert ctl.session.session_id != sid
    assert ctl.outcome is None
    assert ctl.gate.last_play() is None
    assert ctl.start() is RevealState.IN_PROGRESS
    print("✅ Abandon leaves no outcome, coupon or cooldown")


def test_negative_tick_rejected():
    ctl = make("slot", [0.0, 0.3, 0.6])
    ctl.start(consent=True)
    try:
        ctl.tick(-1)
        assert False, "negative tick must raise"
    except ValueError:
        pass
    print("✅ Negative tick rejected")


# ============================================================
# Driver
# ============================================================

def test_driver_runs_wheel_to_completion():
    ft = FakeTime()
    ctl = make("wheel", [BIG_SECTOR])
    ctl.start(consent=True)
    driver = RevealDriver(ctl, frame_ms=16, clock=ft.clock, sleep=ft.sleep)
    outcome = driver.run_sync()
    assert ctl.state is RevealState.SETTLED
    assert outcome is ctl.outcome and outcome.tier is Tier.BIG
    assert 219 <= driver.frames <= 220
    print(f"✅ Driver settled the wheel in {driver.frames} frames")


def test_driver_idle_when_not_started():
    ctl = make("wheel", [0.0])
    assert RevealDriver(ctl, clock=FakeTime().clock, sleep=FakeTime().sleep).run_sync() is None
    assert ctl.state is RevealState.READY
    print("✅ Driver returns immediately for a Ready session")


def test_driver_cancellation_abandons_round():
    ft = FakeTime(cancel_after=5)
    ctl = make("wheel", [BIG_SECTOR, 0.0])
    ctl.start(consent=True)
    driver = RevealDriver(ctl, frame_ms=16, clock=ft.clock, sleep=ft.sleep)
    cancelled = False
    try:
        asyncio.run(driver.run())
    except asyncio.CancelledError:
        cancelled = True
    assert cancelled
    assert ctl.state is RevealState.READY
    assert ctl.outcome is None
    assert ctl.gate.last_play() is None
    print("✅ Cancelling the driver commits nothing")


def test_driver_stops_when_session_replaced():
    ft = FakeTime()
    ctl = make("plinko", [0.9, 0.1] * 5 + [0.5] * 10)
    ctl.start(consent=True)

    def replace_after_three(c):
        if driver.frames == 3:
            c.new_round()

    driver = RevealDriver(ctl, frame_ms=16, clock=ft.clock, sleep=ft.sleep, on_frame=replace_after_three)
    assert driver.run_sync() is None
    assert driver.frames == 3
    assert ctl.state is RevealState.READY
    print("✅ Driver exits when the session is replaced")


def test_run_countdown_ticks_to_zero():
    ticks = []

    async def no_wait(seconds):
        pass

    countdown = Countdown(0.05)
    asyncio.run(run_countdown(countdown, on_tick=lambda c: ticks.append(c.hours), sleep=no_wait))
    assert len(ticks) == 3
    assert countdown.hours == 0 and not countdown.active
    print("✅ Countdown ticks once per minute down to zero")


# ============================================================
# Run all tests
# ============================================================

if __name__ == "__main__":
    tests = [
        test_erased_fraction_on_synthetic_buffers,
        test_release_latch_is_idempotent,
        test_scratch_settles_at_sixty_percent,
        test_scratch_gesture_erases_overlay,
        test_scratch_requires_consent_on_pointer_down,
        test_surface_unavailable_stays_ready,
        test_surface_lost_mid_round_abandons,
        test_surface_lost_mid_drag_abandons,
        test_plinko_ball_follows_steps,
        test_plinko_large_tick_consumes_all_rows,
        test_advance_reels_cycles_then_stops,
        test_slot_end_to_end_pair_plus_wild,
        test_wheel_angle_math,
        test_wheel_forced_big_celebrates_once,
        test_wheel_jitter_extremes_land_on_drawn_sector,
        test_wheel_miss_arms_cooldown_without_celebration,
        test_unwritable_play_record_still_settles,
        test_start_requires_consent,
        test_start_blocked_by_cooldown,
        test_reentrant_start_is_ignored,
        test_abandon_has_no_side_effects,
        test_negative_tick_rejected,
        test_driver_runs_wheel_to_completion,
        test_driver_idle_when_not_started,
        test_driver_cancellation_abandons_round,
        test_driver_stops_when_session_replaced,
        test_run_countdown_ticks_to_zero,
    ]

    print(f"\n{'='*60}")
    print(f"Reveal Tests — {len(tests)} tests")
    print(f"{'='*60}\n")

    passed = 0
    failed = 0
    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            print(f"❌ {test.__name__}: {e}")
            failed += 1
        print()

    print(f"{'='*60}")
    print(f"Results: {passed} passed, {failed} failed, {passed + failed} total")
    print(f"{'='*60}")

    sys.exit(0 if failed == 0 else 1)
