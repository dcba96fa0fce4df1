"""MCP server for chess-recall.

Exposes puzzle validation, wrong-move explanation, consequence
simulation and puzzle generation to an LLM client via FastMCP.
Every tool is stateless: payloads go through the typed request
boundary, failures come back as {"error": ...} dicts, and a Stockfish
process (when requested) lives only for the duration of one call.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Add project root and mcp-server dir to path for imports
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_MCP_SERVER_DIR = Path(__file__).resolve().parent
sys.path.insert(0, str(_PROJECT_ROOT))
sys.path.insert(0, str(_MCP_SERVER_DIR))

from mcp.server.fastmcp import FastMCP  # noqa: E402

from chess_recall.classifier import MistakeClassifier, explain_incorrect_move  # noqa: E402
from chess_recall.codec import parse_fen  # noqa: E402
from chess_recall.config import Settings  # noqa: E402
from chess_recall.engine import StockfishAdapter  # noqa: E402
from chess_recall.errors import ChessRecallError, RequestError  # noqa: E402
from chess_recall.generator import PuzzleGenerator  # noqa: E402
from chess_recall.payloads import (  # noqa: E402
    ConsequencesRequest,
    GenerateRequest,
    IncorrectMoveRequest,
    PuzzleRequest,
)
from chess_recall.scorer import MoveScorer  # noqa: E402
from chess_recall.simulator import ConsequenceSimulator  # noqa: E402
from chess_recall.validator import PuzzleValidator  # noqa: E402

from response_schemas import (  # noqa: E402
    COMPARISON_SCHEMA,
    INCORRECT_MOVE_SCHEMA,
    PUZZLE_SCHEMA,
    SCORED_MOVES_SCHEMA,
    VALIDATION_SCHEMA,
    minify_comparison,
    minify_incorrect_move,
    minify_puzzle,
    minify_scored_moves,
    minify_validation,
    validate_response,
)

logger = logging.getLogger(__name__)

mcp = FastMCP("chess-recall")

_settings = Settings.from_env()
_validator = PuzzleValidator()
_classifier = MistakeClassifier()


def _simulator() -> ConsequenceSimulator:
    return ConsequenceSimulator(seed=_settings.seed)


def _checked(response: dict, schema: dict) -> dict:
    """Log schema violations (only active with CHESS_RECALL_VALIDATE=1)."""
    for problem in validate_response(response, schema):
        logger.warning("response schema violation: %s", problem)
    return response


@mcp.tool()
def validate_puzzle(
    fen: str,
    moves: list[str],
    difficulty: str = "intermediate",
    explanation: str = "",
    themes: list[str] | None = None,
) -> dict:
    """Check that a 4-move puzzle has a single clearly best final move.

    Args:
        fen: Starting position FEN.
        moves: Exactly 4 UCI moves; the last one is the solution.
        difficulty: 'beginner', 'intermediate' or 'advanced'.
        explanation: Explanation text shown with the solution.
        themes: Optional theme tags.

    Returns:
        Dict with is_valid, errors (code + message), warnings, score_margin.
    """
    try:
        request = PuzzleRequest.from_payload({
            "fen": fen,
            "moves": moves,
            "difficulty": difficulty,
            "explanation": explanation,
            "themes": themes or [],
        })
    except RequestError as exc:
        return {"error": str(exc)}

    result = _validator.validate(request.to_candidate())
    return _checked(minify_validation(result), VALIDATION_SCHEMA)


@mcp.tool()
def analyze_incorrect_move(
    fen: str,
    user_move: str,
    correct_move: str,
    playing_as: str | None = None,
    plies: int = 4,
    use_engine: bool = False,
) -> dict:
    """Explain why a user's puzzle answer is wrong.

    Args:
        fen: Decision position FEN (after the first 3 moves).
        user_move: The move the user played (UCI).
        correct_move: The puzzle solution (UCI).
        playing_as: 'white' or 'black'; defaults to the side to move.
        plies: Length of the simulated continuations (1-12).
        use_engine: Ask Stockfish for the material swing; falls back to
            heuristics if Stockfish is unavailable.

    Returns:
        Dict with explanation, classification and consequences of both moves.
    """
    payload = {
        "fen": fen,
        "user_move": user_move,
        "correct_move": correct_move,
        "plies": plies,
        "use_engine": use_engine,
    }
    if playing_as is not None:
        payload["playing_as"] = playing_as
    try:
        request = IncorrectMoveRequest.from_payload(payload)
        if request.use_engine:
            with StockfishAdapter.from_settings(_settings) as engine:
                report = explain_incorrect_move(
                    request, _classifier, _simulator(), engine=engine,
                )
        else:
            report = explain_incorrect_move(request, _classifier, _simulator())
    except ChessRecallError as exc:
        return {"error": str(exc)}

    return _checked(minify_incorrect_move(report), INCORRECT_MOVE_SCHEMA)


@mcp.tool()
def analyze_move_consequences(
    fen: str,
    user_move: str,
    correct_move: str,
    plies: int = 4,
) -> dict:
    """Project the user's move and the correct move forward side by side.

    Illegal moves are reported inside the result (is_legal false), not
    as an error.

    Args:
        fen: Position both moves are played from.
        user_move: The user's move (UCI).
        correct_move: The correct move (UCI).
        plies: Sequence length including the first move (1-12).

    Returns:
        Dict with user and correct sequences plus a comparison sentence.
    """
    try:
        request = ConsequencesRequest.from_payload({
            "fen": fen,
            "user_move": user_move,
            "correct_move": correct_move,
            "plies": plies,
        })
    except RequestError as exc:
        return {"error": str(exc)}

    comparison = _simulator().compare(
        request.fen, request.user_move, request.correct_move, max_plies=request.plies,
    )
    return _checked(minify_comparison(comparison), COMPARISON_SCHEMA)


@mcp.tool()
def generate_puzzle(difficulty: str | None = None, seed: int | None = None) -> dict:
    """Generate a validated 4-move visualisation puzzle.

    Args:
        difficulty: Optional 'beginner', 'intermediate' or 'advanced'.
        seed: Optional seed for reproducible output.

    Returns:
        Puzzle dict (id, fen, moves, difficulty, rating, themes, explanation).
    """
    try:
        request = GenerateRequest.from_payload({"difficulty": difficulty, "seed": seed})
        seed_value = request.seed if request.seed is not None else _settings.seed
        candidate = PuzzleGenerator(_validator, seed=seed_value).generate(request.difficulty)
    except ChessRecallError as exc:
        return {"error": str(exc)}

    return _checked(minify_puzzle(candidate), PUZZLE_SCHEMA)


@mcp.tool()
def score_moves(fen: str, limit: int = 10) -> dict:
    """Rank every legal move with the deterministic heuristic.

    Args:
        fen: Position to score.
        limit: Number of top moves to return.

    Returns:
        Dict with fen, legal_moves_count and the top moves (uci, san, score).
    """
    try:
        position = parse_fen(fen)
    except ValueError as exc:
        return {"error": f"Invalid FEN: {exc}"}
    if limit < 1:
        return {"error": "'limit' must be at least 1"}

    scored = MoveScorer(jitter=0).score_moves(position)
    return _checked(minify_scored_moves(position, scored, limit), SCORED_MOVES_SCHEMA)


if __name__ == "__main__":
    logging.basicConfig(
        level=getattr(logging, _settings.log_level, logging.WARNING),
        stream=sys.stderr,
    )
    mcp.run()
