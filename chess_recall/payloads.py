"""Typed request structures validated at the boundary.

Raw payloads (MCP tool arguments, JSON puzzle files, CLI input) are
converted here; every problem is collected into one RequestError so
the caller can report them together. The core only ever receives
fully-populated dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass

import chess

from chess_recall.codec import parse_fen, parse_uci
from chess_recall.errors import RequestError
from chess_recall.models import Difficulty, PuzzleCandidate

_COLORS = {"white": chess.WHITE, "black": chess.BLACK}

MAX_PLIES = 12


def _require(payload: dict, keys: tuple[str, ...], problems: list[str]) -> None:
    for key in keys:
        if payload.get(key) in (None, ""):
            problems.append(f"missing field '{key}'")


def _check_fen(value, field_name: str, problems: list[str]) -> chess.Board | None:
    if not isinstance(value, str):
        if value is not None:
            problems.append(f"'{field_name}' must be a FEN string")
        return None
    try:
        return parse_fen(value)
    except ValueError as exc:
        problems.append(f"invalid FEN in '{field_name}': {exc}")
        return None


def _check_uci(value, field_name: str, problems: list[str]) -> None:
    if not isinstance(value, str):
        if value is not None:
            problems.append(f"'{field_name}' must be a UCI string")
        return
    try:
        parse_uci(value)
    except ValueError:
        problems.append(f"'{field_name}' is not UCI notation: {value!r}")


def _check_int(payload: dict, key: str, default: int, low: int, high: int, problems: list[str]) -> int:
    value = payload.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        problems.append(f"'{key}' must be an integer")
        return default
    if not low <= value <= high:
        problems.append(f"'{key}' must be between {low} and {high}")
        return default
    return value


def _parse_difficulty(value, problems: list[str]) -> Difficulty:
    try:
        return Difficulty(str(value).lower())
    except ValueError:
        choices = ", ".join(d.value for d in Difficulty)
        problems.append(f"unknown difficulty {value!r} (expected one of {choices})")
        return Difficulty.INTERMEDIATE


@dataclass(frozen=True)
class IncorrectMoveRequest:
    """A wrong user move to classify against the correct move."""

    fen: str
    user_move: str
    correct_move: str
    playing_as: chess.Color
    plies: int = 4
    use_engine: bool = False

    @classmethod
    def from_payload(cls, payload: dict) -> "IncorrectMoveRequest":
        """Build from a raw dict.

        Accepted keys: fen (or position_after_3_moves), user_move,
        correct_move, playing_as (defaults to the side to move), plies,
        use_engine.

        Raises:
            RequestError: Listing every problem found.
        """
        if not isinstance(payload, dict):
            raise RequestError(["payload must be an object"])
        payload = dict(payload)
        if "fen" not in payload and "position_after_3_moves" in payload:
            payload["fen"] = payload["position_after_3_moves"]

        problems: list[str] = []
        _require(payload, ("fen", "user_move", "correct_move"), problems)
        board = _check_fen(payload.get("fen"), "fen", problems)
        _check_uci(payload.get("user_move"), "user_move", problems)
        _check_uci(payload.get("correct_move"), "correct_move", problems)
        plies = _check_int(payload, "plies", 4, 1, MAX_PLIES, problems)

        playing_as = board.turn if board is not None else chess.WHITE
        color = payload.get("playing_as")
        if color is not None:
            if str(color).lower() not in _COLORS:
                problems.append(f"'playing_as' must be 'white' or 'black', got {color!r}")
            else:
                playing_as = _COLORS[str(color).lower()]

        if problems:
            raise RequestError(problems)
        return cls(
            fen=payload["fen"].strip(),
            user_move=payload["user_move"].strip(),
            correct_move=payload["correct_move"].strip(),
            playing_as=playing_as,
            plies=plies,
            use_engine=bool(payload.get("use_engine", False)),
        )

    @property
    def board(self) -> chess.Board:
        return chess.Board(self.fen)


@dataclass(frozen=True)
class ConsequencesRequest:
    """Project the user's and the correct move forward for comparison."""

    fen: str
    user_move: str
    correct_move: str
    plies: int = 4

    @classmethod
    def from_payload(cls, payload: dict) -> "ConsequencesRequest":
        """Build from a raw dict (fen, user_move, correct_move, plies).

        Move legality is not checked here: the simulator reports illegal
        moves in its result instead of failing the whole request.

        Raises:
            RequestError: Listing every problem found.
        """
        if not isinstance(payload, dict):
            raise RequestError(["payload must be an object"])
        problems: list[str] = []
        _require(payload, ("fen", "user_move", "correct_move"), problems)
        _check_fen(payload.get("fen"), "fen", problems)
        plies = _check_int(payload, "plies", 4, 1, MAX_PLIES, problems)
        for key in ("user_move", "correct_move"):
            if payload.get(key) is not None and not isinstance(payload[key], str):
                problems.append(f"'{key}' must be a string")
        if problems:
            raise RequestError(problems)
        return cls(
            fen=payload["fen"].strip(),
            user_move=payload["user_move"].strip(),
            correct_move=payload["correct_move"].strip(),
            plies=plies,
        )


@dataclass(frozen=True)
class PuzzleRequest:
    """A stored or submitted puzzle, ready to become a PuzzleCandidate.

    Only presence and types are checked here; move count, notation and
    FEN well-formedness are the validator's structural check.
    """

    fen: str
    moves: tuple[str, ...]
    difficulty: Difficulty
    explanation: str = ""
    themes: tuple[str, ...] = ()
    puzzle_id: str | None = None
    rating: int | None = None

    @classmethod
    def from_payload(cls, payload: dict) -> "PuzzleRequest":
        """Build from a raw dict.

        Accepted keys: fen, moves (or solution_moves), difficulty,
        explanation, themes, id, rating.

        Raises:
            RequestError: Listing every problem found.
        """
        if not isinstance(payload, dict):
            raise RequestError(["puzzle must be an object"])
        problems: list[str] = []
        moves = payload.get("moves", payload.get("solution_moves"))
        if moves is None:
            problems.append("missing field 'moves'")
            moves = []
        elif not isinstance(moves, list) or not all(isinstance(m, str) for m in moves):
            problems.append("'moves' must be a list of UCI strings")
            moves = []

        fen = payload.get("fen")
        if not isinstance(fen, str) or not fen.strip():
            problems.append("missing field 'fen'")

        difficulty = _parse_difficulty(payload.get("difficulty", "intermediate"), problems)

        explanation = payload.get("explanation", "") or ""
        if not isinstance(explanation, str):
            problems.append("'explanation' must be a string")
            explanation = ""

        themes = payload.get("themes", []) or []
        if not isinstance(themes, list):
            problems.append("'themes' must be a list")
            themes = []

        rating = payload.get("rating")
        if rating is not None and (isinstance(rating, bool) or not isinstance(rating, int)):
            problems.append("'rating' must be an integer")
            rating = None

        if problems:
            raise RequestError(problems)
        return cls(
            fen=fen.strip(),
            moves=tuple(m.strip() for m in moves),
            difficulty=difficulty,
            explanation=explanation,
            themes=tuple(str(t) for t in themes),
            puzzle_id=str(payload["id"]) if payload.get("id") is not None else None,
            rating=rating,
        )

    def to_candidate(self) -> PuzzleCandidate:
        return PuzzleCandidate(
            fen=self.fen,
            moves=list(self.moves),
            difficulty=self.difficulty,
            explanation=self.explanation,
            themes=list(self.themes),
            puzzle_id=self.puzzle_id,
            rating=self.rating,
        )


@dataclass(frozen=True)
class GenerateRequest:
    """Ask the generator for a puzzle."""

    difficulty: Difficulty | None = None
    seed: int | None = None

    @classmethod
    def from_payload(cls, payload: dict) -> "GenerateRequest":
        """Build from a raw dict (difficulty, seed); both optional.

        Raises:
            RequestError: Listing every problem found.
        """
        if not isinstance(payload, dict):
            raise RequestError(["payload must be an object"])
        problems: list[str] = []
        difficulty = None
        if payload.get("difficulty") not in (None, ""):
            difficulty = _parse_difficulty(payload["difficulty"], problems)
        seed = payload.get("seed")
        if seed is not None and (isinstance(seed, bool) or not isinstance(seed, int)):
            problems.append("'seed' must be an integer")
        if problems:
            raise RequestError(problems)
        return cls(difficulty=difficulty, seed=seed)
