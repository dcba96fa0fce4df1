"""Greedy one-ply best-response search.

Picks the highest-scoring legal move. Lookahead beyond one ply only
enters through the scorer's hanging-piece term; this is for fast,
explainable opponent play, not engine strength.
"""

from __future__ import annotations

import logging

import chess

from chess_recall.models import ScoredMove
from chess_recall.scorer import MoveScorer

logger = logging.getLogger(__name__)


class BestResponseSearch:
    """Depth-1 greedy move picker over a MoveScorer."""

    def __init__(self, scorer: MoveScorer | None = None) -> None:
        self.scorer = scorer if scorer is not None else MoveScorer()

    def ranked_moves(self, board: chess.Board) -> list[ScoredMove]:
        """All legal moves, best first."""
        return self.scorer.score_moves(board)

    def best_move(self, board: chess.Board) -> chess.Move | None:
        """Return the top-scoring legal move, or None if there is none."""
        best: ScoredMove | None = None
        for i, move in enumerate(board.legal_moves):
            score = self.scorer.score(board, move)
            # strict > keeps the first enumerated move on ties
            if best is None or score > best.score:
                best = ScoredMove(move=move, score=score, index=i)
        if best is None:
            return None
        logger.debug("best response %s (%d) in %s", best.move.uci(), best.score, board.fen())
        return best.move
