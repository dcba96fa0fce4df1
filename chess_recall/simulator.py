"""Consequence simulation for a single move.

Plays a first move, then lets the greedy best-response search continue
the game for a fixed number of plies, summarising material, checks and
tactical themes along the way. Used to contrast a user's wrong move
with the correct one.

simulate() never raises: illegal or malformed input comes back as a
SimulationResult with is_legal=False so batch comparisons stay total.
"""

from __future__ import annotations

import logging
import random
from concurrent.futures import ThreadPoolExecutor

import chess

from chess_recall.codec import after, move_san, parse_fen, parse_uci, to_fen
from chess_recall.config import DEFAULT_POLICY, ScoringPolicy
from chess_recall.errors import ChessRecallError
from chess_recall.models import MoveComparison, SimulationResult
from chess_recall.scorer import MoveScorer, captured_piece_type, is_hanging, material
from chess_recall.search import BestResponseSearch

logger = logging.getLogger(__name__)

_DEFAULT_PLIES = 4


def game_result_text(board: chess.Board) -> str | None:
    """Human-readable termination text, or None if the game goes on."""
    outcome = board.outcome()
    if outcome is None:
        return None
    if outcome.termination == chess.Termination.CHECKMATE:
        return "White wins by checkmate" if outcome.winner else "Black wins by checkmate"
    if outcome.termination == chess.Termination.STALEMATE:
        return "Stalemate"
    return "Draw"


class ConsequenceSimulator:
    """Projects short greedy continuations after a move.

    Args:
        policy: Scoring constants shared with the scorer.
        jitter: Jitter bound for simulated play (policy default if None).
        seed: When set, every simulation derives its own RNG from the
            seed, start position and first move, so results do not depend
            on call order or concurrency. When None, system randomness
            is used.
    """

    def __init__(
        self,
        policy: ScoringPolicy = DEFAULT_POLICY,
        jitter: int | None = None,
        seed: int | None = None,
    ) -> None:
        self.policy = policy
        self.jitter = policy.jitter_bound if jitter is None else jitter
        self.seed = seed

    def _search_for(self, start_fen: str, first_uci: str) -> BestResponseSearch:
        if self.seed is None:
            rng = random.Random()
        else:
            rng = random.Random(f"{self.seed}:{start_fen}:{first_uci}")
        return BestResponseSearch(MoveScorer(self.policy, jitter=self.jitter, rng=rng))

    def simulate(
        self,
        board: chess.Board | str,
        first_move: chess.Move | str,
        max_plies: int = _DEFAULT_PLIES,
    ) -> SimulationResult:
        """Play first_move and continue with best responses.

        Args:
            board: Start position (board or FEN). Not mutated.
            first_move: Move to play first (chess.Move or UCI).
            max_plies: Total sequence length including first_move.

        Returns:
            SimulationResult; is_legal is False on any bad input.
        """
        if isinstance(board, str):
            try:
                board = parse_fen(board)
            except ValueError as exc:
                return SimulationResult(start_fen=board, is_legal=False, error=f"Invalid position: {exc}")

        start = board.copy()
        start_fen = to_fen(start)

        try:
            move = parse_uci(first_move)
        except ValueError:
            return SimulationResult(
                start_fen=start_fen,
                is_legal=False,
                final_fen=start_fen,
                error=f"Invalid move notation: {first_move}",
            )

        if not start.is_legal(move):
            logger.debug("illegal first move %s in %s", move.uci(), start_fen)
            return SimulationResult(
                start_fen=start_fen, is_legal=False, final_fen=start_fen, error="Illegal move",
            )

        max_plies = max(1, max_plies)
        mover = start.turn
        search = self._search_for(start_fen, move.uci())
        current = start.copy()
        result = SimulationResult(start_fen=start_fen, is_legal=True)
        analysis = result.analysis

        if is_hanging(after(start, move), move.to_square):
            moved_value = self.policy.value(start.piece_type_at(move.from_square))
            if move.promotion:
                moved_value = self.policy.value(move.promotion)
            if moved_value > self.policy.value(captured_piece_type(start, move)):
                analysis.themes.add("sacrifice")

        next_move: chess.Move | None = move
        try:
            while next_move is not None:
                self._apply(current, next_move, mover, result)
                if len(result.moves) >= max_plies or current.is_game_over():
                    break
                next_move = search.best_move(current)
        except (ChessRecallError, ValueError) as exc:
            logger.warning("simulation stopped after %d plies: %s", len(result.moves), exc)
            result.is_legal = False
            result.error = str(exc)

        balance = material(current, self.policy) - material(start, self.policy)
        analysis.material_balance = balance if mover == chess.WHITE else -balance
        analysis.result = game_result_text(current)
        result.final_fen = to_fen(current)
        result.game_over = current.is_game_over()
        logger.debug(
            "simulated %s: %s balance=%d checks=%d",
            move.uci(), " ".join(result.moves), analysis.material_balance, analysis.checks_given,
        )
        return result

    def _apply(
        self,
        board: chess.Board,
        move: chess.Move,
        mover: chess.Color,
        result: SimulationResult,
    ) -> None:
        by_mover = board.turn == mover
        capture = board.is_capture(move)
        result.moves_san.append(move_san(board, move))
        board.push(move)
        result.moves.append(move.uci())
        result.positions.append(to_fen(board))

        if not by_mover:
            return
        # Only the first mover's plies count as checks given and themes.
        if capture:
            result.analysis.themes.add("capture")
        if board.is_checkmate():
            result.analysis.themes.add("checkmate")
        if board.is_check():
            result.analysis.checks_given += 1
            result.analysis.themes.add("check")

    def compare(
        self,
        board: chess.Board | str,
        user_move: chess.Move | str,
        correct_move: chess.Move | str,
        max_plies: int = _DEFAULT_PLIES,
    ) -> MoveComparison:
        """Simulate the user's and the correct move side by side.

        The two simulations share nothing and run on a thread pool; the
        assembled comparison does not depend on which finishes first.
        """
        if isinstance(board, chess.Board):
            user_board, correct_board = board.copy(), board.copy()
        else:
            user_board = correct_board = board

        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="simulate") as pool:
            futures = {
                "user": pool.submit(self.simulate, user_board, user_move, max_plies),
                "correct": pool.submit(self.simulate, correct_board, correct_move, max_plies),
            }
            user = futures["user"].result()
            correct = futures["correct"].result()

        return MoveComparison(
            user=user,
            correct=correct,
            explanation=explain_comparison(
                _label(user, user_move), _label(correct, correct_move), user, correct,
            ),
        )


def _label(result: SimulationResult, move: chess.Move | str) -> str:
    if result.moves_san:
        return result.moves_san[0]
    return move.uci() if isinstance(move, chess.Move) else str(move)


def explain_comparison(
    user_label: str,
    correct_label: str,
    user: SimulationResult,
    correct: SimulationResult,
) -> str:
    """One-sentence contrast of what the user's move and the correct move lead to."""
    if not user.is_legal:
        return f"The move {user_label} is illegal. {correct_label} is the correct move."

    if correct.game_over and correct.result:
        if "checkmate" in correct.result:
            return f"After {user_label}, you miss immediate checkmate! {correct_label} delivers mate."
        return (
            f"After {user_label}, the position continues with complications. "
            f"However, {correct_label} leads to {correct.result.lower()}."
        )

    if "checkmate" in correct.analysis.themes:
        return f"After {user_label}, the opponent escapes. {correct_label} leads to forced checkmate."

    if "check" in correct.analysis.themes and "check" not in user.analysis.themes:
        return (
            f"After {user_label}, you miss putting pressure on the opponent's king. "
            f"{correct_label} gives check and keeps the initiative."
        )

    user_balance = user.analysis.material_balance
    swing = correct.analysis.material_balance - user_balance
    if swing >= 300:
        return f"After {user_label}, you miss winning significant material. {correct_label} gains a material advantage."
    if user_balance < -200:
        return f"After {user_label}, you lose material to the opponent's best response. {correct_label} avoids this loss."

    if len(correct.moves) > len(user.moves):
        return f"After {user_label}, the position simplifies quickly. {correct_label} keeps more dynamic possibilities."
    return f"After {user_label}, your position is less favorable. {correct_label} gives you better practical chances."
