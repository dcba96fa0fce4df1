"""Command-line interface for chess-recall.

Usage:
    chess-recall validate puzzles/*.json
    chess-recall explain "<fen>" d1h5 d1d2 --plies 4
    chess-recall explain "<fen>" d1h5 d1d2 --engine
    chess-recall generate --difficulty beginner --seed 42
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from chess_recall.classifier import explain_incorrect_move
from chess_recall.config import Settings
from chess_recall.engine import StockfishAdapter
from chess_recall.errors import ChessRecallError, RequestError
from chess_recall.generator import PuzzleGenerator
from chess_recall.models import Difficulty, SimulationResult
from chess_recall.payloads import GenerateRequest, IncorrectMoveRequest
from chess_recall.simulator import ConsequenceSimulator
from chess_recall.validator import validate_file

logger = logging.getLogger(__name__)


def _cmd_validate(args: argparse.Namespace, console: Console, settings: Settings) -> int:
    total = 0
    failed = 0
    for filepath in args.files:
        table = Table(title=str(filepath), show_lines=False)
        table.add_column("Puzzle")
        table.add_column("Status")
        table.add_column("Margin", justify="right")
        table.add_column("Details")

        for label, result in validate_file(Path(filepath)):
            total += 1
            if result.is_valid:
                status = "[green]PASS[/green]"
                details = "; ".join(result.warnings)
            else:
                failed += 1
                status = "[red]FAIL[/red]"
                details = "; ".join(f"{err.code}: {err}" for err in result.errors)
            margin = "-" if result.score_margin is None else str(result.score_margin)
            table.add_row(label, status, margin, details)
        console.print(table)

    console.print(f"\nTotal: {total - failed}/{total} puzzles valid")
    return 1 if failed else 0


def _sequence_line(result: SimulationResult) -> str:
    if not result.is_legal:
        return f"[red]{result.error}[/red]"
    line = " ".join(result.moves_san)
    analysis = result.analysis
    extra = f"material {analysis.material_balance / 100:+.1f}, checks {analysis.checks_given}"
    if analysis.result:
        extra += f", {analysis.result}"
    return f"{line}  ({extra})"


def _cmd_explain(args: argparse.Namespace, console: Console, settings: Settings) -> int:
    payload = {
        "fen": args.fen,
        "user_move": args.user_move,
        "correct_move": args.correct_move,
        "plies": args.plies,
    }
    if args.playing_as:
        payload["playing_as"] = args.playing_as
    request = IncorrectMoveRequest.from_payload(payload)
    simulator = ConsequenceSimulator(seed=settings.seed)

    if args.engine:
        with StockfishAdapter.from_settings(settings) as engine:
            report = explain_incorrect_move(request, simulator=simulator, engine=engine)
    else:
        report = explain_incorrect_move(request, simulator=simulator)

    classification = report.classification
    console.print(Panel(
        classification.message,
        title=classification.category.value,
        border_style="yellow",
    ))
    table = Table(show_header=True)
    table.add_column("Move")
    table.add_column("Continuation")
    table.add_row(f"yours ({request.user_move})", _sequence_line(report.comparison.user))
    table.add_row(f"correct ({request.correct_move})", _sequence_line(report.comparison.correct))
    console.print(table)
    console.print(report.comparison.explanation)
    if report.engine_swing is not None:
        console.print(f"Engine swing: {report.engine_swing / 100:+.2f}")
    return 0


def _cmd_generate(args: argparse.Namespace, console: Console, settings: Settings) -> int:
    request = GenerateRequest.from_payload({"difficulty": args.difficulty, "seed": args.seed})
    seed = request.seed if request.seed is not None else settings.seed
    candidate = PuzzleGenerator(seed=seed).generate(request.difficulty)

    table = Table(show_header=False, show_edge=False)
    table.add_row("FEN", candidate.fen)
    table.add_row("Moves", " ".join(candidate.moves))
    table.add_row("Difficulty", candidate.difficulty.value)
    table.add_row("Rating", str(candidate.rating))
    table.add_row("Themes", ", ".join(candidate.themes))
    console.print(Panel(table, title=candidate.puzzle_id, border_style="blue"))
    console.print(candidate.explanation)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chess-recall",
        description="Validate visualisation puzzles and explain wrong answers",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    validate_parser = subparsers.add_parser("validate", help="Validate puzzle JSON files")
    validate_parser.add_argument("files", nargs="+", help="JSON files holding puzzle arrays")

    explain_parser = subparsers.add_parser("explain", help="Explain an incorrect move")
    explain_parser.add_argument("fen", help="Decision position FEN")
    explain_parser.add_argument("user_move", help="The move played (UCI)")
    explain_parser.add_argument("correct_move", help="The solution move (UCI)")
    explain_parser.add_argument("--plies", type=int, default=4, help="Continuation length")
    explain_parser.add_argument("--playing-as", choices=["white", "black"], help="Solver colour")
    explain_parser.add_argument("--engine", action="store_true",
                                help="Use Stockfish for the material swing if available")

    generate_parser = subparsers.add_parser("generate", help="Generate a validated puzzle")
    generate_parser.add_argument("--difficulty", choices=[d.value for d in Difficulty])
    generate_parser.add_argument("--seed", type=int, help="Seed for reproducible output")

    return parser


_COMMANDS = {
    "validate": _cmd_validate,
    "explain": _cmd_explain,
    "generate": _cmd_generate,
}


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 1

    console = Console()
    try:
        settings = Settings.from_env()
    except ValueError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        return 2
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return _COMMANDS[args.command](args, console, settings)
    except RequestError as exc:
        for problem in exc.problems:
            console.print(f"[red]error:[/red] {problem}")
        return 2
    except ChessRecallError as exc:
        logger.debug("command %s failed", args.command, exc_info=True)
        console.print(f"[red]error:[/red] {exc}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
