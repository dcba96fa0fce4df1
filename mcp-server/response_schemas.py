"""Response schemas and minification for MCP tool responses.

Minifies MCP tool return values to reduce LLM context token waste:
move sequences become a numbered SAN string, empty optional keys are
dropped, and long lists are truncated.
"""

from __future__ import annotations

import os

import chess

from chess_recall.models import (
    IncorrectMoveReport,
    MistakeClassification,
    MoveComparison,
    PuzzleCandidate,
    ScoredMove,
    SimulationResult,
    ValidationResult,
)

_MAX_SCORED_MOVES = 10


# ---------------------------------------------------------------------------
# Minification functions
# ---------------------------------------------------------------------------


def minify_simulation(result: SimulationResult) -> dict:
    """Minify a SimulationResult for MCP response.

    Replaces the per-ply FEN list with the final FEN only and compacts
    the moves into a numbered SAN string.

    Args:
        result: Simulation to minify.

    Returns:
        Dict with is_legal, moves, material_balance, checks_given,
        themes, final_fen and, when present, result and error.
    """
    analysis = result.analysis
    minified = {
        "is_legal": result.is_legal,
        "moves": _moves_to_pgn_string(result.moves_san, result.start_fen),
        "material_balance": analysis.material_balance,
        "checks_given": analysis.checks_given,
        "themes": sorted(analysis.themes),
        "final_fen": result.final_fen,
    }
    if analysis.result is not None:
        minified["result"] = analysis.result
    if result.error is not None:
        minified["error"] = result.error
    return minified


def minify_comparison(comparison: MoveComparison) -> dict:
    """Minify a MoveComparison for MCP response."""
    return {
        "user": minify_simulation(comparison.user),
        "correct": minify_simulation(comparison.correct),
        "explanation": comparison.explanation,
    }


def minify_classification(classification: MistakeClassification) -> dict:
    """Minify a MistakeClassification; params only when non-empty."""
    minified = {
        "category": classification.category.value,
        "message": classification.message,
    }
    if classification.params:
        minified["params"] = dict(classification.params)
    return minified


def minify_incorrect_move(report: IncorrectMoveReport) -> dict:
    """Minify an IncorrectMoveReport for MCP response.

    The explanation shown to the user is the classifier message; the
    comparison sentence goes under "consequences".
    """
    minified = {
        "explanation": report.classification.message,
        "classification": minify_classification(report.classification),
        "consequences": minify_comparison(report.comparison),
    }
    if report.engine_swing is not None:
        minified["engine_swing"] = report.engine_swing
    return minified


def minify_validation(result: ValidationResult) -> dict:
    """Minify a ValidationResult; scores are reduced to the margin."""
    return {
        "is_valid": result.is_valid,
        "errors": [{"code": err.code, "message": str(err)} for err in result.errors],
        "warnings": list(result.warnings),
        "score_margin": result.score_margin,
    }


def minify_puzzle(candidate: PuzzleCandidate) -> dict:
    """Minify a generated PuzzleCandidate for MCP response."""
    return {
        "id": candidate.puzzle_id,
        "fen": candidate.fen,
        "moves": list(candidate.moves),
        "difficulty": candidate.difficulty.value,
        "rating": candidate.rating,
        "themes": list(candidate.themes),
        "explanation": candidate.explanation,
    }


def minify_scored_moves(board: chess.Board, scored: list[ScoredMove], limit: int = _MAX_SCORED_MOVES) -> dict:
    """Minify a ranked move list, keeping the top `limit` entries.

    Args:
        board: Position the moves were scored in (for SAN).
        scored: Moves ordered best first.
        limit: Entries to keep.

    Returns:
        Dict with fen, total legal move count and the truncated ranking.
    """
    return {
        "fen": board.fen(),
        "legal_moves_count": len(scored),
        "moves": [
            {"uci": item.move.uci(), "san": board.san(item.move), "score": item.score}
            for item in scored[:limit]
        ],
    }


# ---------------------------------------------------------------------------
# Helper: move list to PGN string
# ---------------------------------------------------------------------------


def _moves_to_pgn_string(moves: list[str], start_fen: str | None = None) -> str:
    """Convert a list of SAN moves to a numbered move string.

    E.g., ['Qxd1', 'Rxd1'] from a Black-to-move FEN at move 12
    -> '12...Qxd1 13.Rxd1'

    Args:
        moves: List of SAN move strings.
        start_fen: Position the first move is played from. Standard
            starting position if None.

    Returns:
        PGN-formatted move string.
    """
    if not moves:
        return ""

    board = chess.Board(start_fen) if start_fen else chess.Board()
    white_to_move = board.turn == chess.WHITE
    move_num = board.fullmove_number

    parts = []
    for i, move in enumerate(moves):
        if white_to_move:
            parts.append(f"{move_num}.{move}")
        elif i == 0:
            parts.append(f"{move_num}...{move}")
        else:
            parts.append(move)
        if not white_to_move:
            move_num += 1
        white_to_move = not white_to_move

    return " ".join(parts)


# ---------------------------------------------------------------------------
# Validation schemas (dict-based)
# ---------------------------------------------------------------------------

SIMULATION_SCHEMA = {
    "is_legal": bool,
    "moves": str,
    "material_balance": int,
    "checks_given": int,
    "themes": list,
    "final_fen": (str, type(None)),
}

COMPARISON_SCHEMA = {
    "user": dict,
    "correct": dict,
    "explanation": str,
}

CLASSIFICATION_SCHEMA = {
    "category": str,
    "message": str,
}

INCORRECT_MOVE_SCHEMA = {
    "explanation": str,
    "classification": dict,
    "consequences": dict,
}

VALIDATION_SCHEMA = {
    "is_valid": bool,
    "errors": list,
    "warnings": list,
    "score_margin": (int, type(None)),
}

PUZZLE_SCHEMA = {
    "id": str,
    "fen": str,
    "moves": list,
    "difficulty": str,
    "rating": int,
    "themes": list,
    "explanation": str,
}

SCORED_MOVES_SCHEMA = {
    "fen": str,
    "legal_moves_count": int,
    "moves": list,
}

ERROR_SCHEMA = {
    "error": str,
}


def validate_response(response: dict, schema: dict) -> list[str]:
    """Validate a response dict against a schema.

    Only runs when CHESS_RECALL_VALIDATE=1 env var is set.

    Args:
        response: Response dict to validate.
        schema: Dict mapping key names to expected types (or tuple of types).

    Returns:
        List of validation error strings (empty = valid).
    """
    if os.environ.get("CHESS_RECALL_VALIDATE") != "1":
        return []

    errors = []

    if not isinstance(response, dict):
        errors.append(f"Response is not a dict: {type(response).__name__}")
        return errors

    for key, expected_types in schema.items():
        if key not in response:
            errors.append(f"Missing key: {key}")
            continue

        value = response[key]
        if isinstance(expected_types, tuple):
            if not isinstance(value, expected_types):
                type_names = ", ".join(t.__name__ for t in expected_types)
                errors.append(
                    f"Key '{key}': expected ({type_names}), "
                    f"got {type(value).__name__}"
                )
        else:
            if not isinstance(value, expected_types):
                errors.append(
                    f"Key '{key}': expected {expected_types.__name__}, "
                    f"got {type(value).__name__}"
                )

    return errors
