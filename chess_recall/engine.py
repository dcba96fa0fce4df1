"""Optional Stockfish oracle for chess-recall.

Wraps Stockfish via the python-chess UCI interface. The adapter is an
explicit handle: open it with ``with StockfishAdapter() as engine`` (or
call close()) so the process never outlives the request that needed it.
Every failure mode surfaces as EngineUnavailableError so callers can fall
back to the heuristic path.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Callable, TypeVar

import chess
import chess.engine

from chess_recall.codec import after
from chess_recall.config import Settings
from chess_recall.errors import EngineUnavailableError
from chess_recall.models import EngineEvaluation

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Stockfish search paths in priority order
_STOCKFISH_PATHS = [
    "/opt/homebrew/bin/stockfish",
    "/usr/local/bin/stockfish",
    "/usr/games/stockfish",
    "/usr/bin/stockfish",
]

_MATE_SCORE = 10000

_ENGINE_FAILURES = (
    chess.engine.EngineError,
    chess.engine.EngineTerminatedError,
    TimeoutError,
    OSError,
)


def _find_stockfish() -> str:
    """Auto-detect Stockfish binary path.

    Checks known install paths, then falls back to PATH lookup.

    Returns:
        Path to Stockfish binary.

    Raises:
        EngineUnavailableError: If Stockfish is not found anywhere.
    """
    for path_str in _STOCKFISH_PATHS:
        if Path(path_str).is_file():
            return path_str

    which_result = shutil.which("stockfish")
    if which_result is not None:
        return which_result

    raise EngineUnavailableError(
        "Stockfish not found. Install it or set CHESS_RECALL_STOCKFISH_PATH."
    )


class StockfishAdapter:
    """Lazily started Stockfish process with a single restart on crash."""

    def __init__(
        self,
        path: str | None = None,
        depth: int = 12,
        timeout: float = 3.0,
    ) -> None:
        """Configure the adapter; the process starts on first use.

        Args:
            path: Explicit Stockfish binary. Auto-detected if None.
            depth: Search depth per evaluation.
            timeout: Seconds allowed for engine start-up and per search.
        """
        self._path = path
        self.depth = depth
        self.timeout = timeout
        self._engine: chess.engine.SimpleEngine | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "StockfishAdapter":
        return cls(
            path=settings.stockfish_path,
            depth=settings.engine_depth,
            timeout=settings.engine_timeout,
        )

    def __enter__(self) -> "StockfishAdapter":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _open_engine(self) -> chess.engine.SimpleEngine:
        """Open a fresh Stockfish process.

        Raises:
            EngineUnavailableError: If the binary is missing or fails to start.
        """
        if self._path is None:
            self._path = _find_stockfish()
        try:
            return chess.engine.SimpleEngine.popen_uci(self._path, timeout=self.timeout)
        except _ENGINE_FAILURES as exc:
            raise EngineUnavailableError(f"could not start Stockfish at {self._path}: {exc}") from exc

    def _ensure_engine(self) -> chess.engine.SimpleEngine:
        """Ensure engine process is alive, restart once if terminated."""
        if self._engine is None:
            self._engine = self._open_engine()
            return self._engine
        try:
            self._engine.ping()
        except chess.engine.EngineTerminatedError:
            logger.warning("Stockfish process terminated, restarting")
            self._engine = self._open_engine()
        return self._engine

    def _run(self, operation: Callable[[chess.engine.SimpleEngine], T]) -> T:
        try:
            engine = self._ensure_engine()
            try:
                return operation(engine)
            except chess.engine.EngineTerminatedError:
                logger.warning("Stockfish died mid-search, restarting once")
                self._engine = self._open_engine()
                return operation(self._engine)
        except _ENGINE_FAILURES as exc:
            raise EngineUnavailableError(f"Stockfish analysis failed: {exc}") from exc

    def _limit(self) -> chess.engine.Limit:
        return chess.engine.Limit(depth=self.depth, time=self.timeout)

    def evaluate(self, board: chess.Board) -> EngineEvaluation:
        """Evaluate a position from the side to move's point of view.

        Args:
            board: Position to analyze.

        Returns:
            EngineEvaluation with the evaluation in pawns.

        Raises:
            EngineUnavailableError: On any engine failure.
        """
        info = self._run(lambda engine: engine.analyse(board, self._limit()))
        score = info["score"].relative
        cp = score.score(mate_score=_MATE_SCORE)
        pv = [move.uci() for move in info.get("pv", [])]
        return EngineEvaluation(
            best_move=pv[0] if pv else None,
            evaluation=round(cp / 100.0, 2),
            principal_variation=pv,
            depth=info.get("depth", self.depth),
            mate=score.mate(),
        )

    def _score_after(self, board: chess.Board, move: chess.Move) -> int:
        """Centipawns for the mover after the move is played."""
        board_after = after(board, move)
        if board_after.is_checkmate():
            return _MATE_SCORE
        if board_after.is_game_over():
            return 0
        info = self._run(lambda engine: engine.analyse(board_after, self._limit()))
        # Score after is from the opponent's perspective
        return -info["score"].relative.score(mate_score=_MATE_SCORE)

    def material_swing(
        self, board: chess.Board, user_move: chess.Move, correct_move: chess.Move
    ) -> int:
        """How many centipawns the correct move is worth over the user's.

        Raises:
            EngineUnavailableError: On any engine failure.
        """
        swing = self._score_after(board, correct_move) - self._score_after(board, user_move)
        logger.debug("engine swing %s vs %s: %d", correct_move.uci(), user_move.uci(), swing)
        return swing

    def close(self) -> None:
        """Clean up Stockfish process."""
        if self._engine is None:
            return
        try:
            self._engine.quit()
        except chess.engine.EngineTerminatedError:
            pass
        finally:
            self._engine = None
