"""Game review: move classification and accuracy for evaluated games.

Takes a list of positions whose engine lines are already filled in
and annotates every move in place:
- Classification from evaluation loss and mate transitions
- Brilliant / great upgrades and blunder softening
- Opening names and the book-move prefix
- SAN for every engine line
- Per-side accuracy percentages
Also a CLI to review JSON position lists or raw games.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

import chess
from rich.console import Console
from rich.table import Table

from game_review.classification import (
    POSITIVE_CLASSIFICATIONS,
    Classification,
    classify_eval_loss,
)
from game_review.engine import ChessEngine
from game_review.models import (
    CENTIPAWN,
    MATE,
    EngineLine,
    Evaluation,
    GameReport,
    Position,
    positions_from_dicts,
)
from game_review.openings import OpeningsDB
from game_review.parsing import parse_game_input
from game_review.sacrifice import is_brilliant, is_great_move

logger = logging.getLogger(__name__)

# Second-best advantage at which a sacrifice is not needed to win
_WINNING_ANYWAY = 700

# Blunders are softened to good beyond these mover-relative evaluations
_STILL_WINNING = 600
_ALREADY_LOST = -600


def _terminal_evaluation(position: Position) -> Evaluation:
    """Evaluation for a position the engine returned no lines for."""
    board = chess.Board(position.fen)
    if board.is_checkmate():
        return Evaluation(MATE, 0)
    return Evaluation(CENTIPAWN, 0)


def _classify_mate_transition(
    previous: Evaluation,
    current: Evaluation,
    previous_abs: int,
    current_abs: int,
) -> Classification:
    """Classify a non-best move when a forced mate appears or disappears.

    Evaluations are mover-relative: positive is good for the mover.
    """
    if previous.type == CENTIPAWN and current.type == MATE:
        # Walked into a forced mate
        if current_abs > 0:
            return Classification.BEST
        if current_abs >= -2:
            return Classification.BLUNDER
        if current_abs >= -5:
            return Classification.MISTAKE
        return Classification.INACCURACY

    if previous.type == MATE and current.type == CENTIPAWN:
        # The mate is gone
        if previous_abs < 0 and current_abs < 0:
            return Classification.BEST
        if current_abs >= 400:
            return Classification.GOOD
        if current_abs >= 150:
            return Classification.INACCURACY
        if current_abs >= -100:
            return Classification.MISTAKE
        return Classification.BLUNDER

    # Mate on the board before and after
    if previous_abs > 0:
        if current_abs <= -4:
            return Classification.MISTAKE
        if current_abs < 0:
            return Classification.BLUNDER
        if current_abs < previous_abs:
            return Classification.BEST
        if current_abs <= previous_abs + 2:
            return Classification.EXCELLENT
        return Classification.GOOD

    if current_abs == previous_abs:
        return Classification.BEST
    return Classification.GOOD


def _soften_blunder(
    classification: Classification,
    current_abs: int,
    previous_abs: int,
) -> Classification:
    """Downgrade a blunder that changes nothing about the result."""
    if classification is not Classification.BLUNDER:
        return classification
    if current_abs >= _STILL_WINNING or previous_abs <= _ALREADY_LOST:
        return Classification.GOOD
    return classification


def _classify_move(last_position: Position, position: Position) -> Classification | None:
    """Classify the move leading from ``last_position`` to ``position``.

    Returns:
        The classification, or None if the previous position has no
        engine line to compare against.
    """
    top_move = last_position.get_line(1)
    second_top_move = last_position.get_line(2)
    if top_move is None:
        return None

    current_line = position.get_line(1)
    if current_line is None:
        current_line = EngineLine(
            id=1,
            depth=0,
            evaluation=_terminal_evaluation(position),
            move_uci="",
        )
        position.top_lines.append(current_line)

    previous_evaluation = top_move.evaluation
    evaluation = current_line.evaluation
    move_uci = position.move.uci if position.move is not None else None

    sign = 1 if position.mover_is_white else -1
    current_abs = evaluation.value * sign
    previous_abs = previous_evaluation.value * sign
    second_abs = (second_top_move.evaluation.value if second_top_move else 0) * sign

    # Smallest of three estimates, so a mismatched engine line does not
    # inflate the loss
    eval_loss = (previous_evaluation.value - evaluation.value) * sign
    if last_position.cutoff_evaluation is not None:
        cutoff_loss = (last_position.cutoff_evaluation.value - evaluation.value) * sign
        eval_loss = min(eval_loss, cutoff_loss)
    for line in last_position.top_lines:
        if line.move_uci == move_uci:
            eval_loss = min(eval_loss, (previous_evaluation.value - line.evaluation.value) * sign)
            break

    if second_top_move is None:
        return Classification.FORCED

    no_mate = previous_evaluation.type == CENTIPAWN and evaluation.type == CENTIPAWN

    if top_move.move_uci == move_uci:
        classification = Classification.BEST
    elif no_mate:
        classification = classify_eval_loss(eval_loss, previous_evaluation.value)
    else:
        classification = _classify_mate_transition(
            previous_evaluation, evaluation, previous_abs, current_abs
        )

    if classification is Classification.BEST:
        winning_anyway = (
            (second_abs >= _WINNING_ANYWAY and top_move.evaluation.type == CENTIPAWN)
            or (top_move.evaluation.type == MATE and second_top_move.evaluation.type == MATE)
        )
        if (
            current_abs >= 0
            and not winning_anyway
            and not chess.Board(last_position.fen).is_check()
            and is_brilliant(last_position, position)
        ):
            classification = Classification.BRILLIANT

        if (
            no_mate
            and classification is not Classification.BRILLIANT
            and is_great_move(last_position, position)
        ):
            classification = Classification.GREAT

    logger.debug(
        "%s classified %s (eval loss %s)", move_uci, classification.value, eval_loss
    )
    return _soften_blunder(classification, current_abs, previous_abs)


def classify_positions(positions: list[Position]) -> None:
    """Assign a classification to every position after the first, in place.

    Positions that cannot be compared are defaulted to book.
    """
    for position in positions[1:]:
        position.classification = None

    for index in range(1, len(positions)):
        position = positions[index]
        classification = _classify_move(positions[index - 1], position)
        if classification is None:
            logger.debug("Position %d has no previous engine line, skipped", index)
        position.classification = classification

    for position in positions[1:]:
        if position.classification is None:
            position.classification = Classification.BOOK


def apply_openings(positions: list[Position], openings_db: OpeningsDB) -> None:
    """Name each position's opening, then mark the book-move prefix.

    Moves stay book while they reach a named position or were
    evaluated in the cloud with a positive classification; the first
    move that does neither ends the book.
    """
    for position in positions:
        position.opening = openings_db.identify(position.fen)

    for position in positions[1:]:
        cloud_positive = (
            position.worker == "cloud"
            and position.classification in POSITIVE_CLASSIFICATIONS
        )
        if not (cloud_positive or position.opening):
            break
        position.classification = Classification.BOOK


def annotate_san(positions: list[Position]) -> None:
    """Fill in SAN for every engine line. Illegal lines get an empty SAN.

    Lines without a move (delivered mate, synthesized terminal lines)
    are left untouched.
    """
    for position in positions:
        for line in position.top_lines:
            if not line.move_uci:
                continue
            if line.evaluation.type == MATE and line.evaluation.value == 0:
                continue

            board = chess.Board(position.fen)
            try:
                line.move_san = board.san(board.parse_uci(line.move_uci))
            except ValueError:
                logger.debug("Line %r is not legal in %s", line.move_uci, position.fen)
                line.move_san = ""


def calculate_accuracies(positions: list[Position]) -> dict:
    """Average classification weights per side, as percentages.

    A side without classified moves gets 0.
    """
    counts = {"white": 0, "black": 0}
    totals = {"white": 0.0, "black": 0.0}

    for position in positions[1:]:
        if position.classification is None:
            continue
        color = "white" if position.mover_is_white else "black"
        counts[color] += 1
        totals[color] += position.classification.weight

    accuracy = {}
    for color in ("white", "black"):
        if counts[color] > 0:
            accuracy[color] = totals[color] / counts[color] * 100
        else:
            accuracy[color] = 0.0
    return accuracy


def analyse_positions(
    positions: list[Position],
    openings_db: OpeningsDB | None = None,
) -> GameReport:
    """Run the full review over an evaluated game.

    Args:
        positions: Evaluated positions, the first being the starting
            position. Annotated in place.
        openings_db: Opening names; defaults to the bundled database.

    Returns:
        GameReport with per-side accuracy and the same position list.
    """
    if openings_db is None:
        openings_db = OpeningsDB()

    classify_positions(positions)
    apply_openings(positions, openings_db)
    annotate_san(positions)
    accuracies = calculate_accuracies(positions)

    logger.info(
        "Reviewed %d moves: white %.1f%%, black %.1f%%",
        max(len(positions) - 1, 0),
        accuracies["white"],
        accuracies["black"],
    )
    return GameReport(accuracies=accuracies, positions=positions)


# ---------------------------------------------------------------------------
# CLI interface
# ---------------------------------------------------------------------------

_CLASSIFICATION_STYLES = {
    Classification.BRILLIANT: "bold cyan",
    Classification.GREAT: "bold blue",
    Classification.BEST: "green",
    Classification.EXCELLENT: "green",
    Classification.GOOD: "dark_green",
    Classification.INACCURACY: "yellow",
    Classification.MISTAKE: "dark_orange",
    Classification.BLUNDER: "bold red",
    Classification.BOOK: "tan",
    Classification.FORCED: "grey62",
}


def render_report(report: GameReport) -> Table:
    """Render a report as a Rich table, one row per move."""
    table = Table(title="Game Review")
    table.add_column("#", justify="right")
    table.add_column("Move")
    table.add_column("Classification")
    table.add_column("Best")
    table.add_column("Opening")

    for ply, position in enumerate(report.positions[1:], 1):
        number = (ply + 1) // 2
        prefix = f"{number}." if position.mover_is_white else f"{number}..."
        san = position.move.san if position.move is not None else "?"

        classification = position.classification
        label = classification.value if classification is not None else ""
        style = _CLASSIFICATION_STYLES.get(classification, "")

        best_line = report.positions[ply - 1].get_line(1)
        best_san = best_line.move_san if best_line is not None and best_line.move_san else ""

        table.add_row(
            prefix,
            san,
            f"[{style}]{label}[/]" if style else label,
            best_san,
            position.opening or "",
        )

    table.caption = (
        f"Accuracy  white {report.accuracies['white']:.1f}%  "
        f"black {report.accuracies['black']:.1f}%"
    )
    return table


def _load_positions(path: Path) -> list[Position]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("positions", [])
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a list of positions")
    return positions_from_dicts(data)


def _write_report(report: GameReport, output: Path | None) -> None:
    if output is None:
        return
    output.write_text(
        json.dumps(report.to_dict(), indent=2, ensure_ascii=False),
        encoding="utf-8",
    )


def _cli_report(args: argparse.Namespace, console: Console) -> None:
    """Review an already evaluated JSON position list."""
    positions = _load_positions(Path(args.input))
    report = analyse_positions(positions, OpeningsDB(path=args.openings))
    _write_report(report, Path(args.output) if args.output else None)
    console.print(render_report(report))


def _cli_review(args: argparse.Namespace, console: Console) -> None:
    """Parse a raw game, evaluate it with Stockfish and review it."""
    positions = parse_game_input(Path(args.input).read_text(encoding="utf-8"))

    engine = ChessEngine()
    try:
        engine.evaluate_positions(positions, depth=args.depth, multipv=args.multipv)
    finally:
        engine.close()

    report = analyse_positions(positions, OpeningsDB(path=args.openings))
    _write_report(report, Path(args.output) if args.output else None)
    console.print(render_report(report))


def main() -> None:
    """CLI entry point for analysis.py."""
    parser = argparse.ArgumentParser(
        description="Game review - classify moves and compute accuracy"
    )
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    report_parser = subparsers.add_parser(
        "report", help="Review a JSON list of evaluated positions"
    )
    report_parser.add_argument("input", type=str, help="Positions JSON file")

    review_parser = subparsers.add_parser(
        "review", help="Evaluate and review a PGN, FEN or move list file"
    )
    review_parser.add_argument("input", type=str, help="Game text file")
    review_parser.add_argument("--depth", type=int, default=16, help="Engine depth")
    review_parser.add_argument("--multipv", type=int, default=2, help="Engine lines")

    for sub in (report_parser, review_parser):
        sub.add_argument("--output", type=str, default=None, help="Write report JSON")
        sub.add_argument("--openings", type=str, default=None, help="Openings JSON file")

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    console = Console()

    if args.command == "report":
        _cli_report(args, console)
    elif args.command == "review":
        _cli_review(args, console)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
