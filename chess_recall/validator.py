"""Puzzle validation: certify a 4-move puzzle has one clearly best final move.

Checks run in order:
- structure (4 well-formed UCI moves, valid start FEN)
- replay of plies 1-3
- decision point: the solution is among the legal moves
- uniqueness: solution beats every alternative by the hard margin
- explanation sanity (warning)
- difficulty consistency (warning)
- stalemate in the solution line (warning)

Errors are collected into the ValidationResult instead of raised.
Scoring always runs with jitter disabled so results are reproducible.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

import chess

from chess_recall.codec import parse_fen, parse_uci, to_fen
from chess_recall.config import DEFAULT_POLICY, ScoringPolicy
from chess_recall.errors import (
    AmbiguousSolutionError,
    IllegalMoveError,
    NotLegalError,
    RequestError,
    StructuralError,
)
from chess_recall.models import Difficulty, MoveFlags, PuzzleCandidate, ValidationResult
from chess_recall.payloads import PuzzleRequest
from chess_recall.scorer import MoveScorer

logger = logging.getLogger(__name__)

PUZZLE_LENGTH = 4

_PIECE_WORDS: dict[str, int] = {
    "pawn": chess.PAWN,
    "knight": chess.KNIGHT,
    "bishop": chess.BISHOP,
    "rook": chess.ROOK,
    "queen": chess.QUEEN,
    "king": chess.KING,
}

_PIECE_RE = re.compile(r"\b(pawn|knight|bishop|rook|queen|king)s?\b", re.IGNORECASE)
# Matches SAN-embedded squares too (Nxe4, Bb5)
_SQUARE_RE = re.compile(r"(?<![a-h0-9])([a-h][1-8])(?![0-9])")


def expected_difficulty(flags: MoveFlags) -> Difficulty:
    """Difficulty implied by the solution move's flags."""
    if flags.checkmate or flags.check:
        return Difficulty.BEGINNER
    if flags.capture:
        return Difficulty.INTERMEDIATE
    return Difficulty.ADVANCED


def explanation_warnings(
    explanation: str, board: chess.Board, solution: chess.Move
) -> list[str]:
    """Flag pieces and squares the explanation mentions but the board lacks."""
    warnings: list[str] = []
    seen_pieces: set[str] = set()
    for match in _PIECE_RE.finditer(explanation):
        word = match.group(1).lower()
        if word in seen_pieces:
            continue
        seen_pieces.add(word)
        piece_type = _PIECE_WORDS[word]
        if not board.pieces(piece_type, chess.WHITE) and not board.pieces(piece_type, chess.BLACK):
            warnings.append(f"explanation mentions a {word} but none is on the board")

    seen_squares: set[str] = set()
    for match in _SQUARE_RE.finditer(explanation):
        name = match.group(1)
        if name in seen_squares:
            continue
        seen_squares.add(name)
        square = chess.parse_square(name)
        if board.piece_at(square) is None and square != solution.to_square:
            warnings.append(f"explanation mentions {name} but that square is empty")
    return warnings


class PuzzleValidator:
    """Validates puzzle candidates against the uniqueness policy.

    Stateless apart from its policy; safe to share across threads.
    """

    def __init__(self, policy: ScoringPolicy = DEFAULT_POLICY) -> None:
        self.policy = policy
        self.scorer = MoveScorer(policy, jitter=0)

    def validate(self, candidate: PuzzleCandidate) -> ValidationResult:
        """Run every check and collect errors and warnings."""
        result = ValidationResult()

        board, moves = self._check_structure(candidate, result)
        if board is None:
            return result

        for ply, move in enumerate(moves[:-1], start=1):
            if not board.is_legal(move):
                result.errors.append(IllegalMoveError(
                    f"move {ply} ({move.uci()}) is illegal in {to_fen(board)}", ply=ply,
                ))
                return result
            board.push(move)

        decision = board
        solution = moves[-1]
        result.decision_fen = to_fen(decision)

        if not self._check_uniqueness(decision, solution, result):
            return result

        flags = MoveFlags.of(decision, solution)
        result.warnings.extend(explanation_warnings(candidate.explanation, decision, solution))

        implied = expected_difficulty(flags)
        if implied != candidate.difficulty:
            result.warnings.append(
                f"declared difficulty {candidate.difficulty.value} but solution suggests {implied.value}"
            )

        replay = chess.Board(candidate.fen)
        for ply, move in enumerate(moves, start=1):
            replay.push(move)
            if replay.is_stalemate():
                result.warnings.append(f"stalemate occurs after move {ply} of the solution line")
                break

        logger.debug(
            "validated %s: valid=%s margin=%s warnings=%d",
            candidate.puzzle_id or candidate.fen, result.is_valid, result.score_margin, len(result.warnings),
        )
        return result

    def _check_structure(
        self, candidate: PuzzleCandidate, result: ValidationResult
    ) -> tuple[chess.Board | None, list[chess.Move]]:
        problems: list[str] = []
        if len(candidate.moves) != PUZZLE_LENGTH:
            problems.append(f"expected {PUZZLE_LENGTH} moves, got {len(candidate.moves)}")

        moves: list[chess.Move] = []
        for i, text in enumerate(candidate.moves, start=1):
            try:
                moves.append(parse_uci(text))
            except ValueError:
                problems.append(f"move {i} is not UCI notation: {text!r}")

        board = None
        try:
            board = parse_fen(candidate.fen)
        except ValueError as exc:
            problems.append(f"invalid start FEN {candidate.fen!r}: {exc}")

        if problems:
            result.errors.extend(StructuralError(p) for p in problems)
            return None, []
        return board, moves

    def _check_uniqueness(
        self, decision: chess.Board, solution: chess.Move, result: ValidationResult
    ) -> bool:
        scored = self.scorer.score_moves(decision)
        solution_score = None
        alternatives: list[int] = []
        for item in scored:
            if item.move == solution:
                solution_score = item.score
            else:
                alternatives.append(item.score)

        if solution_score is None:
            result.errors.append(NotLegalError(
                f"solution {solution.uci()} is not a legal move at the decision point"
            ))
            return False

        result.solution_score = solution_score
        if not alternatives:
            result.warnings.append("solution is the only legal move")
            return True

        second_best = max(alternatives)
        margin = solution_score - second_best
        result.second_best_score = second_best
        result.score_margin = margin

        if margin < self.policy.hard_margin:
            result.errors.append(AmbiguousSolutionError(
                f"solution {solution.uci()} scores {solution_score}, best alternative "
                f"{second_best} (margin {margin} < {self.policy.hard_margin})",
                margin=margin,
            ))
            return False
        if margin < self.policy.soft_margin:
            result.warnings.append(
                f"solution margin {margin} is below the comfortable {self.policy.soft_margin}"
            )
        return True


def load_puzzles(filepath: Path) -> list[dict]:
    """Load a JSON array of puzzle dicts.

    Raises:
        ValueError: If the file cannot be read or is not a JSON array.
    """
    try:
        with open(filepath, encoding="utf-8") as f:
            puzzles = json.load(f)
    except (json.JSONDecodeError, OSError) as exc:
        raise ValueError(f"{filepath.name}: failed to load: {exc}") from exc
    if not isinstance(puzzles, list):
        raise ValueError(f"{filepath.name}: expected a JSON array")
    return puzzles


def validate_file(
    filepath: Path, validator: PuzzleValidator | None = None
) -> list[tuple[str, ValidationResult]]:
    """Validate every puzzle in a JSON file.

    Returns:
        (label, result) pairs; label is "<file>[<index>]".
    """
    validator = validator or PuzzleValidator()
    try:
        puzzles = load_puzzles(filepath)
    except ValueError as exc:
        return [(filepath.name, ValidationResult(errors=[StructuralError(str(exc))]))]

    results: list[tuple[str, ValidationResult]] = []
    for index, payload in enumerate(puzzles):
        label = f"{filepath.name}[{index}]"
        try:
            candidate = PuzzleRequest.from_payload(payload).to_candidate()
        except RequestError as exc:
            results.append((label, ValidationResult(
                errors=[StructuralError(problem) for problem in exc.problems],
            )))
            continue
        results.append((label, validator.validate(candidate)))
    return results
