#!/usr/bin/env python3
"""
BARBER PROMO — Command Line Front End

Usage:
    python -m promo_tools.promo_cli play slot --consent --name "Luis" --phone "55 1234 5678"
    python -m promo_tools.promo_cli simulate all --rounds 100000 --seed 7
    python -m promo_tools.promo_cli status
    python -m promo_tools.promo_cli dump-config wheel
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from promo_config.game_schema import GameMode, default_config, validate_config
from promo_config.settings import PromoSettings
from promo_engine.errors import CooldownActive, PlayRejected
from promo_engine.outcomes import GAME_MODES
from promo_engine.reveal import RevealState, get_reveal_controller
from promo_engine.reveal.driver import RevealDriver
from promo_tools.claim_handoff import can_claim, whatsapp_url
from promo_tools.cooldown import CooldownGate, JsonPlayStore
from promo_tools.montecarlo import MonteCarloValidator

logger = logging.getLogger("barberpromo.cli")
console = Console()

TIER_STYLE = {"big": "bold magenta", "medium": "bold green", "small": "green", "miss": "dim"}


def setup_logging(level: str = None) -> None:
    root = logging.getLogger("barberpromo")
    if not root.handlers:
        _h = logging.StreamHandler()
        _h.setFormatter(logging.Formatter("[%(asctime)s] %(levelname)s %(message)s", datefmt="%H:%M:%S"))
        root.addHandler(_h)
    root.setLevel((level or PromoSettings.LOG_LEVEL).upper())


def _store(args) -> JsonPlayStore:
    return JsonPlayStore(Path(args.state_file) if args.state_file else None)


# ═══════════════════════════════════════════════════════════════
# play
# ═══════════════════════════════════════════════════════════════

def _scratch_sweep(ctl) -> None:
    """Drag across the card one brush-height strip at a time until it settles."""
    cfg = ctl.config.scratch
    step = max(1, int(cfg.brush_radius))
    y = step / 2
    while ctl.state is not RevealState.SETTLED and y < cfg.surface_height + step:
        points = [(x, y) for x in range(0, cfg.surface_width + step, step)]
        ctl.scratch_path(points)
        if ctl.state is RevealState.READY:
            return
        y += step


def _on_frame_printer():
    seen = {"row": 0, "stopped": 0}

    def _on_frame(ctl):
        progress = ctl.session.progress
        if ctl.mode is GameMode.PLINKO and progress.row > seen["row"]:
            seen["row"] = progress.row
            console.print(f"  fila {progress.row:2d} → columna {progress.ball_col}")
        elif ctl.mode is GameMode.SLOT and sum(progress.stopped) > seen["stopped"]:
            seen["stopped"] = sum(progress.stopped)
            console.print(f"  rodillos: {' | '.join(ctl.shown_symbols())}")

    return _on_frame


def cmd_play(args) -> int:
    config = default_config(args.mode)
    gate = CooldownGate.for_config(config, store=_store(args))
    ctl = get_reveal_controller(
        config.mode, config, gate=gate,
        on_celebrate=lambda o: console.print("[bold magenta]🎉 ¡Felicidades![/bold magenta]"),
    )

    console.print(Panel(
        f"[bold]{config.game_label}[/bold]\n{config.brand.name}",
        title="Juego promocional", border_style="cyan",
    ))

    try:
        if ctl.mode is GameMode.SCRATCH:
            ctl.set_consent(args.consent)
            _scratch_sweep(ctl)
        else:
            ctl.start(consent=args.consent)
            RevealDriver(ctl, on_frame=_on_frame_printer()).run_sync()
    except CooldownActive as e:
        logger.info(f"{config.mode.value}: play rejected, cooldown {e.hours_remaining:.2f}h")
        console.print(f"[yellow]⏳ Vuelve en {gate.countdown().display_hours}h "
                      f"({e.hours_remaining:.2f}h restantes)[/yellow]")
        return 2
    except PlayRejected as e:
        logger.info(f"{config.mode.value}: play rejected: {e}")
        console.print(f"[yellow]⚠️  {e}[/yellow]")
        return 2

    outcome = ctl.outcome
    if outcome is None:
        console.print("[red]❌ La ronda no se completó[/red]")
        return 1

    if ctl.mode is GameMode.SCRATCH:
        console.print(f"  símbolos: {' | '.join(ctl.symbols)}")
    elif ctl.mode is GameMode.WHEEL:
        console.print(f"  sector: {ctl.landed_index()} ({ctl.angle:.1f}°)")

    style = TIER_STYLE[outcome.tier.value]
    if not outcome.win:
        console.print(f"[{style}]Sin premio esta vez. ¡Suerte para la próxima![/{style}]")
        return 0

    console.print(f"[{style}]🏆 {outcome.prize_text}[/{style}]")
    console.print(f"  Cupón: [bold]{outcome.coupon}[/bold]")
    if can_claim(outcome.coupon, args.phone or ""):
        url = whatsapp_url(outcome.coupon, args.name or "", args.phone,
                           brand=config.brand.name, game_label=config.game_label)
        console.print(f"  Reclamar: {url}")
    else:
        console.print(f"  [dim]Agrega --phone (mínimo {PromoSettings.MIN_PHONE_DIGITS} dígitos) "
                      f"para el enlace de WhatsApp[/dim]")
    return 0


# ═══════════════════════════════════════════════════════════════
# simulate / status / dump-config
# ═══════════════════════════════════════════════════════════════

def cmd_simulate(args) -> int:
    mc = MonteCarloValidator(tolerance=args.tolerance, seed=args.seed)
    if args.mode == "all":
        report = mc.validate_all(n_rounds=args.rounds)
    else:
        report = None
        result = mc.validate(args.mode, n_rounds=args.rounds)

    if args.json:
        print(report.to_json() if report else json.dumps(result.to_dict(), indent=2))
        return 0

    results = report.results if report else [result]
    table = Table(title=f"Monte Carlo ({args.rounds:,} rondas, seed={args.seed})")
    table.add_column("Juego")
    table.add_column("Teórico", justify="right")
    table.add_column("Medido", justify="right")
    for tier in ("small", "medium", "big"):
        table.add_column(tier, justify="right")
    table.add_column("OK")
    for r in results:
        table.add_row(
            r.mode,
            f"{r.theoretical_win_rate*100:.2f}%",
            f"{r.measured_win_rate*100:.2f}%",
            *(f"{r.measured_tiers[t]*100:.2f}%" for t in ("small", "medium", "big")),
            "✅" if r.passed else "❌",
        )
    console.print(table)
    return 0 if all(r.passed for r in results) else 1


def cmd_status(args) -> int:
    store = _store(args)
    table = Table(title=f"Cooldown ({store.path})")
    table.add_column("Juego")
    table.add_column("Última jugada", justify="right")
    table.add_column("Horas restantes", justify="right")
    table.add_column("Puede jugar")
    for mode in GAME_MODES:
        gate = CooldownGate.for_config(default_config(mode), store=store)
        last = gate.last_play()
        table.add_row(
            mode,
            str(last) if last else "—",
            f"{gate.hours_remaining():.2f}",
            "✅" if gate.can_play() else "⏳",
        )
    console.print(table)
    console.print(Panel(
        "\n".join(f"{k}: {v}" for k, v in PromoSettings.summary().items()),
        title="Settings", border_style="dim",
    ))
    return 0


def cmd_dump_config(args) -> int:
    config = default_config(args.mode)
    print(config.model_dump_json(indent=2))
    warnings = validate_config(config)
    if warnings:
        print("\n⚠️  Warnings:")
        for w in warnings:
            print(f"  - {w}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Barber shop instant-win promo games")
    parser.add_argument("--state-file", type=str, default=None, help="Play record JSON path")
    parser.add_argument("--log-level", type=str, default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("play", help="Play one round")
    p.add_argument("mode", choices=GAME_MODES)
    p.add_argument("--consent", action="store_true", help="Accept the promo terms")
    p.add_argument("--name", type=str, default="")
    p.add_argument("--phone", type=str, default="")
    p.set_defaults(func=cmd_play)

    p = sub.add_parser("simulate", help="Monte Carlo win-rate check")
    p.add_argument("mode", choices=GAME_MODES + ["all"])
    p.add_argument("--rounds", type=int, default=100_000)
    p.add_argument("--seed", type=int, default=42)
    p.add_argument("--tolerance", type=float, default=0.01)
    p.add_argument("--json", action="store_true")
    p.set_defaults(func=cmd_simulate)

    p = sub.add_parser("status", help="Show cooldown per game")
    p.set_defaults(func=cmd_status)

    p = sub.add_parser("dump-config", help="Print the default config")
    p.add_argument("mode", choices=GAME_MODES)
    p.set_defaults(func=cmd_dump_config)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
