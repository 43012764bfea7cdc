#!/usr/bin/env python3
"""
Tests for the barber-promo command line front end.

Validates:
1. `play` completes a round in every mode and arms that mode's cooldown
2. A second `play` inside the window is rejected with exit code 2
3. `play` without --consent is rejected and leaves no play record
4. `simulate`, `status` and `dump-config` run and return clean exit codes
"""

import asyncio
import io
import json
import sys
import tempfile
from contextlib import redirect_stdout
from pathlib import Path

# ── Ensure project root is on sys.path ──
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from promo_engine.outcomes import GAME_MODES
from promo_engine.reveal.driver import RevealDriver
from promo_tools import promo_cli
from promo_tools.cooldown import JsonPlayStore


class InstantDriver(RevealDriver):
    """RevealDriver on a simulated clock, so a round takes no wall time."""

    def __init__(self, controller, **kwargs):
        self._now = 0.0
        kwargs.setdefault("frame_ms", 50)
        super().__init__(controller, clock=lambda: self._now, sleep=self._advance, **kwargs)

    async def _advance(self, seconds: float):
        self._now += seconds
        await asyncio.sleep(0)


def _run(*argv) -> int:
    original = promo_cli.RevealDriver
    promo_cli.RevealDriver = InstantDriver
    try:
        return promo_cli.main(list(argv))
    finally:
        promo_cli.RevealDriver = original


def _state_file() -> Path:
    return Path(tempfile.mkdtemp()) / "play_record.json"


def test_play_every_mode_then_cooldown():
    for mode in GAME_MODES:
        state = _state_file()
        assert _run("--state-file", str(state), "play", mode, "--consent",
                    "--name", "Luis", "--phone", "55 1234 5678") == 0, mode
        assert JsonPlayStore(state).get(f"{mode}_last_play") is not None, mode
        assert _run("--state-file", str(state), "play", mode, "--consent") == 2, mode
        print(f"✅ play {mode}: completes once, then cooldown → exit 2")


def test_play_without_consent_is_rejected():
    state = _state_file()
    for mode in GAME_MODES:
        assert _run("--state-file", str(state), "play", mode) == 2, mode
    assert not state.exists()
    print("✅ play without --consent → exit 2, nothing recorded")


def test_cooldown_is_per_mode():
    state = _state_file()
    assert _run("--state-file", str(state), "play", "wheel", "--consent") == 0
    assert _run("--state-file", str(state), "play", "slot", "--consent") == 0
    assert _run("--state-file", str(state), "play", "wheel", "--consent") == 2
    print("✅ Playing one mode does not lock another")


def test_simulate_json():
    out = io.StringIO()
    with redirect_stdout(out):
        code = _run("simulate", "all", "--rounds", "2000", "--seed", "7", "--json")
    assert code == 0
    report = json.loads(out.getvalue())
    assert sorted(g["mode"] for g in report["games"]) == sorted(GAME_MODES)
    assert report["total_rounds"] == 2000 * len(GAME_MODES)

    out = io.StringIO()
    with redirect_stdout(out):
        assert _run("simulate", "plinko", "--rounds", "1000", "--json") == 0
    single = json.loads(out.getvalue())
    assert single["mode"] == "plinko"
    assert "max_loss_streak" in single["streak_analysis"]
    print("✅ simulate --json emits a parseable report")


def test_simulate_table_exit_code():
    assert _run("simulate", "wheel", "--rounds", "5000", "--tolerance", "0.05") == 0
    assert _run("simulate", "wheel", "--rounds", "5000", "--tolerance", "0") == 1
    print("✅ simulate exit code reflects the tolerance check")


def test_status_and_dump_config():
    state = _state_file()
    assert _run("--state-file", str(state), "status") == 0
    assert _run("--state-file", str(state), "play", "plinko", "--consent") == 0
    assert _run("--state-file", str(state), "--log-level", "debug", "status") == 0

    for mode in GAME_MODES:
        out = io.StringIO()
        with redirect_stdout(out):
            assert _run("dump-config", mode) == 0
        assert json.loads(out.getvalue().split("\n⚠️")[0])["mode"] == mode
    print("✅ status and dump-config run cleanly")


# ============================================================
# Run all tests
# ============================================================

if __name__ == "__main__":
    tests = [
        test_play_every_mode_then_cooldown,
        test_play_without_consent_is_rejected,
        test_cooldown_is_per_mode,
        test_simulate_json,
        test_simulate_table_exit_code,
        test_status_and_dump_config,
    ]

    print(f"\n{'='*60}")
    print(f"CLI Tests — {len(tests)} tests")
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
