"""Mistake classification for a wrong puzzle answer.

Given the decision position, the user's move and the correct move,
picks the first matching category from a fixed cascade and renders a
one-sentence "Try again." message for it. Pure apart from the optional
injected RNG used to vary the generic filler message.
"""

from __future__ import annotations

import logging
import random
import zlib

import chess

from chess_recall.codec import after, parse_uci
from chess_recall.config import DEFAULT_POLICY, ScoringPolicy
from chess_recall.engine import StockfishAdapter
from chess_recall.errors import EngineUnavailableError, InvalidMoveError
from chess_recall.models import IncorrectMoveReport, MistakeCategory, MistakeClassification
from chess_recall.payloads import IncorrectMoveRequest
from chess_recall.scorer import MoveScorer, is_hanging, material
from chess_recall.search import BestResponseSearch
from chess_recall.simulator import ConsequenceSimulator

logger = logging.getLogger(__name__)

_MATERIAL_NAMES: dict[MistakeCategory, str] = {
    MistakeCategory.MISSES_QUEEN: "the queen",
    MistakeCategory.MISSES_ROOK: "the rook",
    MistakeCategory.MISSES_MINOR_PIECE: "a minor piece",
    MistakeCategory.MISSES_MATERIAL: "material",
}

_WRONG_DESTINATION_MESSAGES: dict[str, str] = {
    "center": "This doesn't centralize your piece effectively. Try again.",
    "back_rank": "This doesn't address the back rank. Try again.",
    "plain": "Right piece, wrong destination. Try again.",
}

_FILLERS: dict[chess.Color, tuple[str, ...]] = {
    chess.WHITE: (
        "This doesn't maintain White's advantage. Try again.",
        "This allows Black to equalize. Try again.",
        "This misses White's best continuation. Try again.",
    ),
    chess.BLACK: (
        "This doesn't defend against White's threats. Try again.",
        "This allows White to increase pressure. Try again.",
        "This misses Black's best defense. Try again.",
    ),
}

_BACK_RANKS = (0, 7)


def _is_edge(square: int) -> bool:
    return chess.square_file(square) in (0, 7) or chess.square_rank(square) in _BACK_RANKS


class MistakeClassifier:
    """Explains why a user move is worse than the correct one.

    Args:
        policy: Thresholds and lookahead depth.
        rng: Optional seeded Random for the generic filler choice. When
            None the filler is picked from a CRC32 of the move pair, so
            the same mistake always gets the same message.
    """

    def __init__(
        self,
        policy: ScoringPolicy = DEFAULT_POLICY,
        rng: random.Random | None = None,
    ) -> None:
        self.policy = policy
        self._rng = rng
        self._search = BestResponseSearch(MoveScorer(policy, jitter=0))

    def classify(
        self,
        board: chess.Board,
        user_move: chess.Move | str,
        correct_move: chess.Move | str,
        side: chess.Color | None = None,
        engine_swing: int | None = None,
    ) -> MistakeClassification:
        """Return the first matching mistake category.

        Args:
            board: Decision position, not mutated.
            user_move: The user's move; an unplayable one is classified
                as ILLEGAL_MOVE.
            correct_move: The puzzle solution; must be legal.
            side: Perspective for material swings (side to move if None).
            engine_swing: Centipawn swing from an engine; replaces the
                heuristic material difference when given.

        Raises:
            InvalidMoveError: If either move is not UCI or the correct move
                is not legal in the position.
        """
        try:
            user = parse_uci(user_move)
            correct = parse_uci(correct_move)
        except ValueError as exc:
            raise InvalidMoveError(str(exc)) from exc
        if not board.is_legal(correct):
            raise InvalidMoveError(f"correct move {correct.uci()} is not legal in {board.fen()}")
        if not board.is_pseudo_legal(user):
            return self._result(MistakeCategory.ILLEGAL_MOVE, "Illegal move. Try again.")

        if side is None:
            side = board.turn

        after_user = after(board, user)
        after_correct = after(board, correct)

        if after_correct.is_checkmate() and not after_user.is_checkmate():
            return self._result(MistakeCategory.MISSED_CHECKMATE,
                                "This move misses checkmate! Look for a forcing move. Try again.")

        if after_correct.is_check() and not after_user.is_check():
            return self._result(MistakeCategory.MISSED_CHECK,
                                "This move misses a powerful check. Try again.")

        if engine_swing is not None:
            swing = engine_swing
        else:
            swing = material(after_correct, self.policy) - material(after_user, self.policy)
            if side == chess.BLACK:
                swing = -swing
        category = self._material_category(swing)
        if category is not None:
            return self._result(
                category,
                f"This move misses winning {_MATERIAL_NAMES[category]}. Try again.",
                swing=swing,
            )

        hung = after_user.piece_at(user.to_square)
        if hung is not None and not after_user.was_into_check() and is_hanging(after_user, user.to_square):
            piece = chess.piece_name(hung.piece_type)
            return self._result(MistakeCategory.HANGING_PIECE,
                                f"This move hangs your {piece}. Try again.", piece=piece)

        if after_user.was_into_check():
            return self._result(MistakeCategory.SELF_CHECK,
                                "This move puts your king in check. Try again.")

        user_tactics = self._tactical_count(board, user, side)
        correct_tactics = self._tactical_count(board, correct, side)
        if correct_tactics - user_tactics > 1:
            return self._result(
                MistakeCategory.MISSED_MULTIPLE_THREATS,
                "This move misses multiple tactical threats. Try again.",
                user_tactics=user_tactics, correct_tactics=correct_tactics,
            )

        if user.from_square == correct.from_square and user.to_square != correct.to_square:
            center = self.policy.extended_center
            if correct.to_square in center and user.to_square not in center:
                variant = "center"
            elif (chess.square_rank(correct.to_square) in _BACK_RANKS
                  and chess.square_rank(user.to_square) not in _BACK_RANKS):
                variant = "back_rank"
            else:
                variant = "plain"
            return self._result(MistakeCategory.WRONG_DESTINATION,
                                _WRONG_DESTINATION_MESSAGES[variant], variant=variant)
        if user.from_square != correct.from_square:
            return self._result(MistakeCategory.WRONG_PIECE,
                                "This piece doesn't accomplish the goal. Try again.")

        if correct.to_square in self.policy.extended_center and _is_edge(user.to_square):
            return self._result(MistakeCategory.IGNORES_CENTER,
                                "This move goes to the edge instead of controlling the center. Try again.")

        fillers = _FILLERS[side]
        if self._rng is not None:
            index = self._rng.randrange(len(fillers))
        else:
            index = zlib.crc32(f"{user.uci()}:{correct.uci()}".encode()) % len(fillers)
        return self._result(MistakeCategory.GENERIC, fillers[index])

    def _material_category(self, swing: int) -> MistakeCategory | None:
        policy = self.policy
        if swing >= policy.queen_swing:
            return MistakeCategory.MISSES_QUEEN
        if swing >= policy.rook_swing:
            return MistakeCategory.MISSES_ROOK
        if swing >= policy.minor_swing:
            return MistakeCategory.MISSES_MINOR_PIECE
        if swing >= policy.material_swing:
            return MistakeCategory.MISSES_MATERIAL
        return None

    def _tactical_count(self, board: chess.Board, move: chess.Move, side: chess.Color) -> int:
        """Captures + checks + 3 per mate by `side` over a short greedy line."""
        current = board.copy(stack=False)
        count = 0
        nxt: chess.Move | None = move
        for _ in range(self.policy.lookahead_plies):
            if nxt is None:
                break
            by_side = current.turn == side
            capture = current.is_capture(nxt)
            current.push(nxt)
            if by_side:
                count += int(capture) + int(current.is_check()) + 3 * int(current.is_checkmate())
            if current.is_game_over():
                break
            nxt = self._search.best_move(current)
        return count

    @staticmethod
    def _result(category: MistakeCategory, message: str, **params) -> MistakeClassification:
        logger.debug("classified as %s %s", category.value, params)
        return MistakeClassification(category=category, message=message, params=params)


def explain_incorrect_move(
    request: IncorrectMoveRequest,
    classifier: MistakeClassifier | None = None,
    simulator: ConsequenceSimulator | None = None,
    engine: StockfishAdapter | None = None,
) -> IncorrectMoveReport:
    """Classify a wrong answer and simulate both moves.

    When an engine is given its material swing replaces the heuristic
    one; if the engine is unavailable the heuristic path is used.

    An unplayable user move is still compared; its simulation comes
    back with is_legal=False.

    Raises:
        InvalidMoveError: If a move is not UCI or the correct move is illegal.
    """
    classifier = classifier or MistakeClassifier()
    simulator = simulator or ConsequenceSimulator()
    board = request.board
    user = parse_uci(request.user_move)
    correct = parse_uci(request.correct_move)

    swing = None
    if engine is not None and board.is_legal(user) and board.is_legal(correct):
        try:
            swing = engine.material_swing(board, user, correct)
        except EngineUnavailableError as exc:
            logger.warning("engine unavailable, using heuristics: %s", exc)

    classification = classifier.classify(
        board, user, correct, side=request.playing_as, engine_swing=swing,
    )
    comparison = simulator.compare(board, user, correct, max_plies=request.plies)
    return IncorrectMoveReport(
        classification=classification, comparison=comparison, engine_swing=swing,
    )
