"""Shared data models for chess-recall.

Boards are plain chess.Board values that callers never see mutated;
everything here is a small result record produced per call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

import chess

from chess_recall.errors import PuzzleError


class Difficulty(str, Enum):
    """Declared puzzle difficulty."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class MistakeCategory(str, Enum):
    """Explanation categories for a wrong user move, in cascade order."""

    ILLEGAL_MOVE = "illegal_move"
    MISSED_CHECKMATE = "missed_checkmate"
    MISSED_CHECK = "missed_check"
    MISSES_QUEEN = "misses_queen"
    MISSES_ROOK = "misses_rook"
    MISSES_MINOR_PIECE = "misses_minor_piece"
    MISSES_MATERIAL = "misses_material"
    HANGING_PIECE = "hanging_piece"
    SELF_CHECK = "self_check"
    MISSED_MULTIPLE_THREATS = "missed_multiple_threats"
    WRONG_DESTINATION = "wrong_destination"
    WRONG_PIECE = "wrong_piece"
    IGNORES_CENTER = "ignores_center"
    GENERIC = "generic"


@dataclass(frozen=True)
class MoveFlags:
    """Flags of a move derived against the position it is played from."""

    capture: bool = False
    check: bool = False
    checkmate: bool = False
    promotion: bool = False

    @classmethod
    def of(cls, board: chess.Board, move: chess.Move) -> "MoveFlags":
        after = board.copy(stack=False)
        after.push(move)
        return cls(
            capture=board.is_capture(move),
            check=after.is_check(),
            checkmate=after.is_checkmate(),
            promotion=move.promotion is not None,
        )


@dataclass(frozen=True)
class ScoredMove:
    """A legal move with its heuristic score.

    Sorting a list of ScoredMove with sort_key() gives descending score
    with the original enumeration index as the tie-break.
    """

    move: chess.Move
    score: int
    index: int

    def sort_key(self) -> tuple[int, int]:
        return (-self.score, self.index)


@dataclass
class Analysis:
    """Summary of a simulated continuation.

    material_balance is in centipawns from the POV of the side that
    played the first move of the sequence.
    """

    material_balance: int = 0
    checks_given: int = 0
    themes: set[str] = field(default_factory=set)
    result: str | None = None


@dataclass
class SimulationResult:
    """A move sequence projected from a start position."""

    start_fen: str
    is_legal: bool
    moves: list[str] = field(default_factory=list)
    moves_san: list[str] = field(default_factory=list)
    positions: list[str] = field(default_factory=list)
    final_fen: str | None = None
    analysis: Analysis = field(default_factory=Analysis)
    game_over: bool = False
    error: str | None = None

    @property
    def result(self) -> str | None:
        return self.analysis.result


@dataclass
class MoveComparison:
    """Side-by-side simulations of a user move and the correct move."""

    user: SimulationResult
    correct: SimulationResult
    explanation: str


@dataclass
class PuzzleCandidate:
    """A generated or stored puzzle awaiting validation."""

    fen: str
    moves: list[str]
    difficulty: Difficulty = Difficulty.INTERMEDIATE
    explanation: str = ""
    themes: list[str] = field(default_factory=list)
    puzzle_id: str | None = None
    rating: int | None = None


@dataclass
class ValidationResult:
    """Outcome of PuzzleValidator.validate()."""

    errors: list[PuzzleError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    score_margin: int | None = None
    solution_score: int | None = None
    second_best_score: int | None = None
    decision_fen: str | None = None

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def error_codes(self) -> list[str]:
        return [err.code for err in self.errors]


@dataclass
class MistakeClassification:
    """Explanation category for a wrong move."""

    category: MistakeCategory
    message: str
    params: dict = field(default_factory=dict)


@dataclass
class EngineEvaluation:
    """Engine verdict on a position, from the side to move's POV."""

    best_move: str | None
    evaluation: float
    principal_variation: list[str] = field(default_factory=list)
    depth: int = 0
    mate: int | None = None


@dataclass
class IncorrectMoveReport:
    """Everything shown to a user after a wrong answer."""

    classification: MistakeClassification
    comparison: MoveComparison
    engine_swing: int | None = None
