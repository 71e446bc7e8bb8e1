"""
predict.py - predictmaxcs Command Line Harness

Runs the max CS prediction for a contract and renders the report:
  - rich: summary panel plus a per-player table
  - json: the report as one JSON document

Receipts from the run can be appended to a JSONL ledger with --receipts.

Exit codes:
  0 - prediction rendered
  2 - invalid contract, config or evaluation failure
"""

from __future__ import annotations

import json
import logging
import re
import sys
from typing import Any, Dict, List, Optional

import click
import numpy as np
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table

import config_schema
from coopsim.constants import DEFLECTOR_TIERS, MODIFIER_DIMENSIONS
from coopsim.types_config import ContractParameters
from model import PredictionReport, build_model
from tokens import optimization_steps
from receipts import ContractValidationError, StopRule, write_receipt_jsonl

console = Console()

_DURATION_RE = re.compile(r"^\s*(?:(\d+(?:\.\d+)?)d)?\s*(?:(\d+(?:\.\d+)?)h)?\s*(?:(\d+(?:\.\d+)?)m)?\s*$")
_EGG_SUFFIXES = {"T": 1e12, "q": 1e15, "Q": 1e18}


# =============================================================================
# INPUT PARSING
# =============================================================================

def parse_duration(value: str) -> float:
    """'3d', '1d12h', '90m' or plain seconds -> seconds."""
    text = str(value).strip()
    try:
        return float(text)
    except ValueError:
        pass
    match = _DURATION_RE.match(text)
    if not text or not match or not any(match.groups()):
        raise ValueError(f"Unrecognized duration: {value!r}")
    days, hours, minutes = (float(g) if g else 0.0 for g in match.groups())
    return days * 86400 + hours * 3600 + minutes * 60


def parse_eggs(value: str) -> float:
    """'1e13', '10T', '2.5q' -> egg count."""
    text = str(value).strip()
    if text and text[-1] in _EGG_SUFFIXES:
        return float(text[:-1]) * _EGG_SUFFIXES[text[-1]]
    return float(text)


# =============================================================================
# FORMATTING
# =============================================================================

def format_eggs(value: float) -> str:
    if value >= 1e18:
        return f"{value / 1e18:.2f}Q"
    if value >= 1e15:
        return f"{value / 1e15:.2f}q"
    if value >= 1e12:
        return f"{value / 1e12:.2f}T"
    return f"{value:,.0f}"


def format_minutes(minutes: float) -> str:
    if minutes is None or not np.isfinite(minutes):
        return "N/A"
    if minutes >= 60 * 24:
        return f"{minutes / 1440:.2f}d"
    if minutes >= 60:
        return f"{minutes / 60:.2f}h"
    return f"{minutes:.1f}m"


def seconds_to_human(seconds: float) -> str:
    if seconds is None or not np.isfinite(seconds):
        return "N/A"
    days = int(seconds // 86400)
    hours = int((seconds % 86400) // 3600)
    minutes = int((seconds % 3600) // 60)
    if days > 0:
        return f"{days}d {hours}h"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def format_deflector(percent: float) -> str:
    if percent == DEFLECTOR_TIERS[0]["percent"]:
        return "QS"
    if percent == DEFLECTOR_TIERS[-1]["percent"]:
        return "L"
    if percent == DEFLECTOR_TIERS[-2]["percent"]:
        return "E+"
    return f"{percent:g}%"


def player_rows(report: PredictionReport) -> List[Dict[str, Any]]:
    """
    One display row per player.

    The siab column marks the player wearing the SIAB for the whole run.
    A quant-scrub player frees the deflector slot, so it shows one extra
    stone on the side that already has more.
    """
    scrub = DEFLECTOR_TIERS[0]["percent"]
    rows = []
    display = report.deflector_display.display_deflectors
    for summary, deflector, tokens in zip(report.summaries, display, report.tokens_by_player):
        layout = summary.stone_layout
        is_scrub = deflector == scrub
        rows.append({
            "player": summary.index,
            "siab": summary.siab_always_on,
            "deflector": deflector,
            "tach": layout.num_tach + (1 if is_scrub and layout.num_tach > layout.num_quant else 0),
            "quant": layout.num_quant + (1 if is_scrub and layout.num_quant >= layout.num_tach else 0),
            "tokens": tokens,
            "cs": int(round(summary.cs)),
        })
    return rows


def report_to_dict(report: PredictionReport) -> Dict[str, Any]:
    """JSON-ready view of a report (receipts excluded)."""
    contract = report.contract
    cs = np.array([summary.cs for summary in report.summaries], dtype=float)
    return {
        "contract": {
            "players": contract.players,
            "duration_seconds": contract.duration_seconds,
            "target_eggs": contract.target_eggs,
            "token_timer_minutes": contract.token_timer_minutes,
            "gift_minutes": contract.gift_minutes,
            "double_gift": contract.double_gift,
            "modifier_type": contract.modifier_type,
            "modifier_value": contract.modifier_value,
        },
        "config_hash": report.config.config_hash,
        "tokens_for_prediction": report.tokens_for_prediction,
        "has_fixed_tokens": report.has_fixed_tokens,
        "tokens_by_player": list(report.tokens_by_player),
        "late_max_count": report.optimization.late_max_count,
        "early_max_count": report.optimization.early_max_count,
        "use_player1_siab": report.use_player1_siab,
        "siab_score_delta": report.siab_score_delta,
        "required_deflector": int(np.ceil(report.required_deflector)),
        "unused_deflector": max(0, int(np.floor(report.deflector_display.unused_deflector))),
        "recommended_plan": report.deflector_display.recommended_plan,
        "can_quant_scrub": report.deflector_display.can_quant_scrub,
        "display_deflectors": list(report.deflector_display.display_deflectors),
        "cs": {
            "max": int(round(report.max_cs)),
            "mean": int(round(report.mean_cs)),
            "min": int(round(report.min_cs)),
            "std": float(np.std(cs)) if cs.size else 0.0,
        },
        "completion_time": report.optimization.scenario.completion_time,
        "token_plan": {
            "token_rate": report.token_plan.token_rate,
            "options": [
                {
                    "tokens": option.tokens,
                    "minutes_to_tokens": option.minutes_to_tokens,
                    "minutes_to_max": option.minutes_to_max,
                    "total_minutes": option.total_minutes,
                    "efficiency": option.efficiency,
                }
                for option in report.token_plan.results
            ],
        },
        "players": player_rows(report),
    }


def _render_rich(report: PredictionReport) -> None:
    contract = report.contract
    display = report.deflector_display
    late = report.optimization.late_max_count
    late_text = f" | last {late} use {report.tokens_by_player[-1]} toks" if late else ""

    content = (
        f"Players: {contract.players} | Duration: {seconds_to_human(contract.duration_seconds)} "
        f"| Target: {format_eggs(contract.target_eggs)}\n"
        f"Token timer: {format_minutes(contract.token_timer_minutes)} "
        f"| gift speed: {format_minutes(contract.gift_minutes)} | GG: {'on' if contract.double_gift else 'off'}\n"
        f"Tokens to boost: {report.tokens_for_prediction}"
        f"{'' if report.has_fixed_tokens else ' (fastest max-habs)'}{late_text}\n"
        f"Deflector needed (other total): ~{int(np.ceil(report.required_deflector))}% "
        f"| Unused: ~{max(0, int(np.floor(display.unused_deflector)))}%\n"
        f"Player 1 SIAB: {'needed' if report.use_player1_siab else 'not needed'} "
        f"(delta {report.siab_score_delta:+d})\n"
        f"Recommended: {display.recommended_plan}{' (quant-scrub OK)' if display.can_quant_scrub else ''}\n"
        f"CS: max {round(report.max_cs)} | mean {round(report.mean_cs)} | min {round(report.min_cs)}"
    )
    console.print(Panel(content, title="[bold]PredictMaxCS[/bold]", border_style="green"))

    table = Table(title="Per-player plan")
    table.add_column("player", style="cyan", no_wrap=True)
    table.add_column("siab", justify="center")
    table.add_column("def", justify="center", style="yellow")
    table.add_column("tach", justify="right")
    table.add_column("quant", justify="right")
    table.add_column("tokens", justify="right", style="magenta")
    table.add_column("cs", justify="right", style="bold green")
    for row in player_rows(report):
        table.add_row(
            f"player{row['player']}",
            "SIAB" if row["siab"] else "---",
            format_deflector(row["deflector"]),
            str(row["tach"]),
            str(row["quant"]),
            str(row["tokens"]),
            str(row["cs"]),
        )
    console.print(table)


def _fail(output: str, message: str, fields: Optional[List[str]] = None) -> None:
    if output == "json":
        payload: Dict[str, Any] = {"error": message}
        if fields is not None:
            payload["fields"] = fields
        click.echo(json.dumps(payload))
    else:
        console.print(f"[red]✗[/red] {message}")
    sys.exit(2)


# =============================================================================
# COMMAND
# =============================================================================

@click.command("predictmaxcs")
@click.option("--players", "-p", type=int, required=True, help="Co-op size")
@click.option("--duration", "-d", required=True, help="Contract length: seconds, or e.g. 3d, 1d12h, 90m")
@click.option("--target", "-t", required=True, help="Egg target, e.g. 1e13 or 10T")
@click.option("--token-timer", type=float, required=True, help="Minutes per passive token")
@click.option("--gift-minutes", "-g", type=float, required=True, help="Minutes per gifted token (token speed)")
@click.option("--gg", is_flag=True, help="Double gifts")
@click.option("--modifier-type", type=click.Choice(sorted(MODIFIER_DIMENSIONS)), default=None)
@click.option("--modifier-value", type=float, default=None)
@click.option("--siab/--no-siab", "siab_override", default=None, help="Force the player-1 SIAB variant on or off")
@click.option("--config", "-c", "config_path", type=click.Path(exists=True), help="PredictorConfig JSON/YAML")
@click.option("--workers", "-w", type=int, default=None, help="Evaluator pool size")
@click.option("--receipts", "-r", "receipts_path", type=click.Path(), help="Append receipts to this JSONL file")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
def predictmaxcs(
    players: int,
    duration: str,
    target: str,
    token_timer: float,
    gift_minutes: float,
    gg: bool,
    modifier_type: Optional[str],
    modifier_value: Optional[float],
    siab_override: Optional[bool],
    config_path: Optional[str],
    workers: Optional[int],
    receipts_path: Optional[str],
    output: str,
    verbose: bool,
) -> None:
    """Predict the best achievable contribution score for a co-op contract."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)

    try:
        duration_seconds = parse_duration(duration)
        target_eggs = parse_eggs(target)
    except ValueError as e:
        _fail(output, str(e))

    try:
        config = config_schema.load(config_path) if config_path else config_schema.default()
    except (ValueError, FileNotFoundError) as e:
        _fail(output, f"Invalid config: {e}")

    contract = ContractParameters(
        players=players,
        duration_seconds=duration_seconds,
        target_eggs=target_eggs,
        token_timer_minutes=token_timer,
        gift_minutes=gift_minutes,
        double_gift=gg,
        modifier_type=modifier_type,
        modifier_value=modifier_value,
    )

    evaluator_kwargs = {}
    if workers is not None:
        evaluator_kwargs["max_workers"] = workers

    try:
        if output == "rich":
            with Progress(
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TextColumn("{task.completed}/{task.total}"),
                console=console,
                transient=True,
            ) as progress:
                task = progress.add_task("Simulating", total=2 * optimization_steps(players))

                def on_progress(update):
                    progress.update(task, completed=update.completed)

                report = build_model(contract, config, siab_override, on_progress=on_progress, **evaluator_kwargs)
        else:
            report = build_model(contract, config, siab_override, **evaluator_kwargs)
    except ContractValidationError as e:
        _fail(output, str(e), list(e.fields))
    except StopRule as e:
        _fail(output, f"Prediction failed: {e}")

    if receipts_path:
        with open(receipts_path, "a") as fh:
            for receipt in report.receipts:
                write_receipt_jsonl(receipt, fh)

    if output == "json":
        click.echo(json.dumps(report_to_dict(report), indent=2))
    else:
        _render_rich(report)
        if receipts_path:
            console.print(f"[green]✓[/green] Receipts: {receipts_path} ({len(report.receipts)})")


def main() -> None:
    predictmaxcs()


if __name__ == "__main__":
    main()
