#!/usr/bin/env python3
"""
Prize Wheel — Operator CLI

Usage:
    python -m tools.prize_cli spin -n 40
    python -m tools.prize_cli spin -n 40 --seed 7
    python -m tools.prize_cli simulate --rounds 200000 --seed 42
    python -m tools.prize_cli simulate --json
    python -m tools.prize_cli dump-config
"""

import argparse
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from rich.console import Console
from rich.table import Table

from config.settings import WheelSettings
from config.wheel_schema import default_wheel_config, validate_config
from sim_engine.prize import build_engine, simulate


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Prize wheel selection engine")
    sub = parser.add_subparsers(dest="command", required=True)

    p_spin = sub.add_parser("spin", help="Spin the wheel and show the outcomes")
    p_spin.add_argument("-n", "--spins", type=int, default=1)
    p_spin.add_argument("--seed", type=int, default=None)

    p_sim = sub.add_parser("simulate", help="Monte Carlo payout simulation")
    p_sim.add_argument("--rounds", type=int, default=WheelSettings.SIM_ROUNDS)
    p_sim.add_argument("--seed", type=int, default=WheelSettings.SIM_SEED)
    p_sim.add_argument("--json", action="store_true", help="Print the raw JSON report")

    sub.add_parser("dump-config", help="Print the effective wheel config")
    return parser


def _cmd_spin(args, console: Console) -> int:
    if args.spins <= 0:
        console.print("[red]--spins must be positive[/red]")
        return 2

    engine = build_engine(seed=args.seed)
    for _ in range(args.spins):
        engine.select_prize()
    stats = engine.get_statistics()

    table = Table(title=f"Last {len(stats.spin_history)} spins")
    table.add_column("Spin", style="dim")
    table.add_column("Prize", style="cyan")
    table.add_column("Cost", justify="right")
    table.add_column("Streak", justify="right")
    table.add_column("Pity")
    for o in stats.spin_history:
        table.add_row(
            o.spin_id,
            f"{o.prize.icon} {o.prize.name}",
            f"{o.prize.cost:.2f}",
            str(o.spins_without_rare),
            "[red]🔥 boosted[/red]" if o.was_pity_active else "",
        )
    console.print(table)

    console.print(f"[bold]Total spins:[/bold] {stats.total_spins}")
    console.print(f"[bold]Spins without rare:[/bold] {stats.spins_without_rare}")
    console.print(f"[bold]Pity active:[/bold] {'yes' if stats.is_pity_active else 'no'}")
    console.print(f"[bold]Expected cost:[/bold] {stats.expected_cost:.4f} € / spin")
    console.print(f"[bold]Takings:[/bold] {stats.total_revenue:.2f} €")
    return 0


def _cmd_simulate(args, console: Console) -> int:
    result = simulate(rounds=args.rounds, seed=args.seed)
    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return 0

    console.print(f"\n[bold cyan]🎡 Simulation — {result.rounds:,} spins[/bold cyan]\n")
    table = Table()
    table.add_column("Prize", style="cyan")
    table.add_column("Hit rate", justify="right")
    for name, rate in result.distribution.items():
        table.add_row(name, f"{rate * 100:.3f}%")
    console.print(table)

    margin_style = "green" if result.margin >= 0 else "red"
    console.print(f"[bold]Theoretical cost:[/bold] {result.theoretical_cost:.4f} €")
    console.print(f"[bold]Measured cost:[/bold] {result.avg_cost:.4f} € "
                  f"(95% CI {result.confidence_95[0]:.4f}–{result.confidence_95[1]:.4f})")
    console.print(f"[bold]Margin:[/bold] [{margin_style}]{result.margin:.4f} €[/{margin_style}]")
    console.print(f"[bold]Pity fired:[/bold] {result.pity_activations:,} "
                  f"({result.boosted_spins:,} boosted spins)")
    console.print(f"[bold]Max streak:[/bold] {result.max_streak}")
    return 0


def _cmd_dump_config(args, console: Console) -> int:
    config = default_wheel_config()
    print(config.model_dump_json(indent=2))
    warnings = validate_config(config)
    if warnings:
        console.print("\n[yellow]⚠️  Warnings:[/yellow]")
        for w in warnings:
            console.print(f"  - {w}")
    return 0


COMMANDS = {
    "spin": _cmd_spin,
    "simulate": _cmd_simulate,
    "dump-config": _cmd_dump_config,
}


def main(argv=None) -> int:
    logging.basicConfig(
        level=getattr(logging, WheelSettings.LOG_LEVEL, logging.INFO),
        format=WheelSettings.LOG_FORMAT,
        datefmt="%H:%M:%S",
    )
    args = _build_parser().parse_args(argv)
    console = Console()
    return COMMANDS[args.command](args, console)


if __name__ == "__main__":
    sys.exit(main())
