"""Exception taxonomy for chess-recall.

PuzzleError subclasses are collected into ValidationResult.errors
rather than raised, so a single validate() call reports every problem.
"""

from __future__ import annotations


class ChessRecallError(Exception):
    """Base class for all chess-recall errors."""


class InvalidMoveError(ChessRecallError):
    """A move passed to the scorer or classifier is not legal there."""


class PuzzleError(ChessRecallError):
    """Base class for puzzle validation failures."""

    code = "puzzle_error"


class StructuralError(PuzzleError):
    """Candidate has the wrong shape (move count, FEN, notation)."""

    code = "structural"


class IllegalMoveError(PuzzleError):
    """A recorded move fails replay."""

    code = "illegal_move"

    def __init__(self, message: str, ply: int) -> None:
        super().__init__(message)
        self.ply = ply


class NotLegalError(PuzzleError):
    """Declared solution is absent from the decision-point legal moves."""

    code = "not_legal"


class AmbiguousSolutionError(PuzzleError):
    """Solution does not beat the best alternative by the hard margin."""

    code = "ambiguous_solution"

    def __init__(self, message: str, margin: int) -> None:
        super().__init__(message)
        self.margin = margin


class EngineUnavailableError(ChessRecallError):
    """External engine missing, crashed or timed out."""


class RequestError(ChessRecallError):
    """Request payload failed boundary validation."""

    def __init__(self, problems: list[str]) -> None:
        super().__init__("; ".join(problems))
        self.problems = problems


class GenerationExhaustedError(ChessRecallError):
    """Puzzle generation ran out of attempts without a valid candidate."""

    def __init__(self, attempts: int) -> None:
        super().__init__("Could not prepare a puzzle right now. Please try again.")
        self.attempts = attempts
