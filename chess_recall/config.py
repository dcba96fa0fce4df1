"""Tunable scoring policy and environment settings for chess-recall.

ScoringPolicy holds every heuristic constant used by the scorer,
validator and classifier. The hanging-piece factor and the margin
thresholds were picked empirically; they live here so they can be
tuned without touching the algorithms.

Settings reads runtime options from the environment:
  CHESS_RECALL_STOCKFISH_PATH (or STOCKFISH_PATH)
  CHESS_RECALL_ENGINE_DEPTH
  CHESS_RECALL_ENGINE_TIMEOUT
  CHESS_RECALL_SEED
  CHESS_RECALL_LOG_LEVEL
  CHESS_RECALL_VALIDATE
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

import chess

# Centipawn values; the king is never scored as material
_PIECE_VALUES: dict[int, int] = {
    chess.PAWN: 100,
    chess.KNIGHT: 300,
    chess.BISHOP: 300,
    chess.ROOK: 500,
    chess.QUEEN: 900,
}

_CORE_CENTER = frozenset({chess.D4, chess.D5, chess.E4, chess.E5})

_EXTENDED_CENTER = frozenset({
    chess.C4, chess.C5, chess.D4, chess.D5,
    chess.E4, chess.E5, chess.F4, chess.F5,
})


@dataclass(frozen=True)
class ScoringPolicy:
    """Heuristic constants, in centipawn-like units (100 = one pawn)."""

    piece_values: dict[int, int] = field(default_factory=lambda: dict(_PIECE_VALUES))
    mate_bonus: int = 10000
    check_bonus: int = 500
    center_bonus: int = 20
    hanging_factor: float = 0.8
    jitter_bound: int = 10

    # Puzzle uniqueness margins
    hard_margin: int = 50
    soft_margin: int = 150

    # Mistake classifier material thresholds (swing in centipawns)
    queen_swing: int = 900
    rook_swing: int = 500
    minor_swing: int = 300
    material_swing: int = 100
    lookahead_plies: int = 3

    center_squares: frozenset[int] = _CORE_CENTER
    extended_center: frozenset[int] = _EXTENDED_CENTER

    def value(self, piece_type: int | None) -> int:
        """Return the centipawn value for a piece type (0 for king/None)."""
        if piece_type is None:
            return 0
        return self.piece_values.get(piece_type, 0)


DEFAULT_POLICY = ScoringPolicy()


def _env_int(name: str, default: int | None) -> int | None:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


@dataclass
class Settings:
    """Runtime settings resolved from the environment."""

    stockfish_path: str | None = None
    engine_depth: int = 12
    engine_timeout: float = 3.0
    seed: int | None = None
    log_level: str = "WARNING"
    validate_responses: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from CHESS_RECALL_* environment variables.

        Raises:
            ValueError: If a numeric variable cannot be parsed.
        """
        path = (
            os.environ.get("CHESS_RECALL_STOCKFISH_PATH")
            or os.environ.get("STOCKFISH_PATH")
            or None
        )
        return cls(
            stockfish_path=path,
            engine_depth=_env_int("CHESS_RECALL_ENGINE_DEPTH", 12),
            engine_timeout=_env_float("CHESS_RECALL_ENGINE_TIMEOUT", 3.0),
            seed=_env_int("CHESS_RECALL_SEED", None),
            log_level=os.environ.get("CHESS_RECALL_LOG_LEVEL", "WARNING").upper(),
            validate_responses=os.environ.get("CHESS_RECALL_VALIDATE") == "1",
        )
