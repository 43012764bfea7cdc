#!/usr/bin/env python3
"""
Tests for the per-device cooldown gate and its PlayRecord stores.

Validates:
1. arm() opens a full 6h window that expires exactly 6h later
2. require() raises CooldownActive carrying the remaining hours
3. A missing or zero timestamp means "never played"
4. JsonPlayStore writes atomically and survives corrupt files
5. Countdown display ticks down per minute and clamps at zero
"""

import json
import sys
import tempfile
from pathlib import Path

# ── Ensure project root is on sys.path ──
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from promo_config.game_schema import default_config
from promo_engine.errors import CooldownActive, PlayRejected
from promo_tools.cooldown import (
    MS_PER_HOUR, CooldownGate, Countdown, JsonPlayStore, MemoryPlayStore,
)

T0 = 1_767_225_600_000


def _gate(store=None, now=T0):
    return CooldownGate("slot_last_play", store or MemoryPlayStore(), window_hours=6, clock=lambda: now)


def test_fresh_device_can_play():
    gate = _gate()
    assert gate.last_play() is None
    assert gate.hours_remaining() == 0
    assert gate.can_play()
    gate.require()
    print("✅ No record → can play")


def test_arm_opens_full_window():
    gate = _gate()
    assert gate.arm() == 6
    assert gate.last_play() == T0
    assert gate.hours_remaining(T0) == 6
    assert not gate.can_play(T0)
    assert gate.hours_remaining(T0 + int(5.5 * MS_PER_HOUR)) == 0.5
    assert gate.hours_remaining(T0 + 6 * MS_PER_HOUR) == 0
    assert gate.can_play(T0 + 6 * MS_PER_HOUR)
    assert gate.can_play(T0 + 30 * MS_PER_HOUR)
    print("✅ arm() → 6h remaining, 0 after 6h")


def test_arm_overwrites_previous_record():
    store = MemoryPlayStore({"slot_last_play": T0 - 100 * MS_PER_HOUR})
    gate = _gate(store)
    assert gate.can_play()
    gate.arm(T0 + 5)
    assert store.get("slot_last_play") == T0 + 5
    print("✅ Each completion overwrites the single timestamp")


def test_require_raises_with_remaining_hours():
    gate = _gate()
    gate.arm(T0 - 2 * MS_PER_HOUR)
    try:
        gate.require()
        assert False, "require() must raise inside the window"
    except CooldownActive as e:
        assert isinstance(e, PlayRejected)
        assert e.hours_remaining == 4
        assert "4.00h" in str(e)
    print("✅ CooldownActive carries hours remaining")


def test_zero_timestamp_is_no_record():
    gate = _gate(MemoryPlayStore({"slot_last_play": 0}))
    assert gate.hours_remaining() == 0
    assert gate.can_play()
    print("✅ Zero timestamp treated as never played")


def test_gate_for_config_uses_mode_key():
    store = MemoryPlayStore()
    wheel = CooldownGate.for_config(default_config("wheel"), store=store, clock=lambda: T0)
    slot = CooldownGate.for_config(default_config("slot"), store=store, clock=lambda: T0)
    assert wheel.key == "wheel_last_play"
    wheel.arm()
    assert not wheel.can_play()
    assert slot.can_play()
    print("✅ Each game mode keeps its own record")


def test_json_store_round_trip():
    tmpdir = Path(tempfile.mkdtemp())
    path = tmpdir / "nested" / "play_record.json"
    store = JsonPlayStore(path)
    assert store.get("plinko_last_play") is None
    store.set("plinko_last_play", T0)
    store.set("wheel_last_play", T0 + 1)

    assert json.loads(path.read_text()) == {"plinko_last_play": T0, "wheel_last_play": T0 + 1}
    assert not path.with_name(path.name + ".tmp").exists()
    assert JsonPlayStore(path).get("plinko_last_play") == T0
    print("✅ JsonPlayStore persists one key per mode atomically")


def test_json_store_corrupt_file_is_empty():
    tmpdir = Path(tempfile.mkdtemp())
    path = tmpdir / "play_record.json"

    path.write_text("{not json")
    store = JsonPlayStore(path)
    assert store.get("slot_last_play") is None
    assert _gate(store).can_play()

    path.write_text("[1, 2, 3]")
    assert store.get("slot_last_play") is None

    path.write_text(json.dumps({"slot_last_play": "yesterday"}))
    assert store.get("slot_last_play") is None

    store.set("slot_last_play", T0)
    assert store.get("slot_last_play") == T0
    print("✅ Corrupt play records read as empty and are replaced on write")


def test_countdown_display():
    c = Countdown(2.0)
    assert c.display_hours == 2 and c.active
    c.tick_minute()
    assert abs(c.hours - (2 - 1 / 60)) < 1e-6
    assert c.display_hours == 2
    for _ in range(60):
        c.tick_minute()
    assert c.display_hours == 1
    assert Countdown(-3).hours == 0
    assert not Countdown(0).active
    print("✅ Countdown rounds up and clamps at zero")


def test_countdown_is_advisory():
    gate = _gate()
    gate.arm()
    c = gate.countdown()
    assert c.display_hours == 6
    for _ in range(6 * 60):
        c.tick_minute()
    assert not c.active
    # the display reaching zero does not unlock the gate
    assert not gate.can_play()
    print("✅ can_play() recomputes from the store, not the display")


# ============================================================
# Run all tests
# ============================================================

if __name__ == "__main__":
    tests = [
        test_fresh_device_can_play,
        test_arm_opens_full_window,
        test_arm_overwrites_previous_record,
        test_require_raises_with_remaining_hours,
        test_zero_timestamp_is_no_record,
        test_gate_for_config_uses_mode_key,
        test_json_store_round_trip,
        test_json_store_corrupt_file_is_empty,
        test_countdown_display,
        test_countdown_is_advisory,
    ]

    print(f"\n{'='*60}")
    print(f"Cooldown Tests — {len(tests)} tests")
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
