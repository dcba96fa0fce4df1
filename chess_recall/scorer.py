"""Heuristic move scoring.

Scores a single legal move in a single position with an additive
policy: mate, check, capture value, hanging penalty, centre bonus and
an optional jitter term. Scores are integers in centipawn-like units,
positive for the side making the move.

The jitter term is the only non-deterministic part. It is drawn from
an injected random.Random and is disabled (bound 0) for validation.
"""

from __future__ import annotations

import logging
import random

import chess

from chess_recall.config import DEFAULT_POLICY, ScoringPolicy
from chess_recall.errors import InvalidMoveError
from chess_recall.models import ScoredMove

logger = logging.getLogger(__name__)


def material(board: chess.Board, policy: ScoringPolicy = DEFAULT_POLICY) -> int:
    """Material balance in centipawns, positive for White."""
    total = 0
    for piece_type, value in policy.piece_values.items():
        total += value * len(board.pieces(piece_type, chess.WHITE))
        total -= value * len(board.pieces(piece_type, chess.BLACK))
    return total


def captured_piece_type(board: chess.Board, move: chess.Move) -> int | None:
    """Type of the piece a move captures, or None for a quiet move."""
    if not board.is_capture(move):
        return None
    if board.is_en_passant(move):
        return chess.PAWN
    return board.piece_type_at(move.to_square)


def is_hanging(board_after: chess.Board, square: int) -> bool:
    """True if any legal move of the side to move can capture on the square.

    A pawn that just double-pushed counts as capturable when an en
    passant reply takes it, even though that reply lands behind it.
    """
    for reply in board_after.legal_moves:
        if reply.to_square == square:
            return True
        # The en passant victim stands one rank past the landing square
        if board_after.is_en_passant(reply) and reply.to_square ^ 8 == square:
            return True
    return False


class MoveScorer:
    """Scores legal moves with the additive heuristic policy.

    Args:
        policy: Scoring constants.
        jitter: Jitter bound; 0 disables jitter. Defaults to 0.
        rng: Randomness source for jitter. Required for reproducible
            jitter; a fresh system-seeded Random is used otherwise.
    """

    def __init__(
        self,
        policy: ScoringPolicy = DEFAULT_POLICY,
        jitter: int = 0,
        rng: random.Random | None = None,
    ) -> None:
        if jitter < 0:
            raise ValueError("jitter bound must be non-negative")
        self.policy = policy
        self.jitter = jitter
        self._rng = rng if rng is not None else random.Random()

    def without_jitter(self) -> "MoveScorer":
        """Return a deterministic scorer sharing this policy."""
        return MoveScorer(self.policy, jitter=0)

    def base_score(self, board: chess.Board, move: chess.Move) -> int:
        """Deterministic part of the score.

        Raises:
            InvalidMoveError: If the move is not legal in the position.
        """
        if not board.is_legal(move):
            raise InvalidMoveError(f"{move.uci()} is not legal in {board.fen()}")

        policy = self.policy
        board_after = board.copy(stack=False)
        board_after.push(move)

        if board_after.is_checkmate():
            score = policy.mate_bonus
        elif board_after.is_check():
            score = policy.check_bonus
        else:
            score = 0

        score += policy.value(captured_piece_type(board, move))

        if is_hanging(board_after, move.to_square):
            moved_type = board_after.piece_type_at(move.to_square)
            score -= round(policy.hanging_factor * policy.value(moved_type))

        if move.to_square in policy.center_squares:
            score += policy.center_bonus

        return score

    def score(self, board: chess.Board, move: chess.Move) -> int:
        """Score a legal move from the mover's point of view.

        Raises:
            InvalidMoveError: If the move is not legal in the position.
        """
        score = self.base_score(board, move)
        if self.jitter:
            score += self._rng.randint(-self.jitter, self.jitter)
        return score

    def score_moves(self, board: chess.Board) -> list[ScoredMove]:
        """Score every legal move, best first, ties in enumeration order."""
        scored = [
            ScoredMove(move=move, score=self.score(board, move), index=i)
            for i, move in enumerate(board.legal_moves)
        ]
        scored.sort(key=ScoredMove.sort_key)
        if scored:
            logger.debug(
                "scored %d moves, top %s=%d", len(scored),
                scored[0].move.uci(), scored[0].score,
            )
        return scored
