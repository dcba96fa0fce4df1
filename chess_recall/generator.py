"""Puzzle generation from curated seed positions.

Each attempt walks a seed position forward with jittered greedy play,
records three plies, takes the deterministic top-scoring move as the
solution and hands the candidate to the validator. Attempts that are
ambiguous, end the game early or miss the requested difficulty are
discarded; the retry budget is bounded.
"""

from __future__ import annotations

import logging
import random

import chess

from chess_recall.codec import move_san, to_fen
from chess_recall.config import DEFAULT_POLICY, ScoringPolicy
from chess_recall.errors import GenerationExhaustedError
from chess_recall.models import Difficulty, MoveFlags, PuzzleCandidate
from chess_recall.scorer import MoveScorer, captured_piece_type
from chess_recall.search import BestResponseSearch
from chess_recall.validator import PuzzleValidator, expected_difficulty

logger = logging.getLogger(__name__)

# (FEN, theme) pairs: common opening tabiyas and tactical middlegames
SEED_POSITIONS: tuple[tuple[str, str], ...] = (
    ("rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1", "development"),
    ("rnbqkbnr/pppp1ppp/8/4p3/4P3/8/PPPP1PPP/RNBQKBNR w KQkq - 0 2", "development"),
    ("rnbqkb1r/pppp1ppp/5n2/4p3/4P3/5N2/PPPP1PPP/RNBQKB1R w KQkq - 4 3", "development"),
    ("r1bqkb1r/pppp1ppp/2n2n2/4p3/2B1P3/3P1N2/PPP2PPP/RNBQK2R b KQkq - 0 4", "tactics"),
    ("rnbqkb1r/ppp2ppp/5n2/3pp3/2B1P3/3P1N2/PPP2PPP/RNBQK2R w KQkq - 0 4", "tactics"),
    ("r1bqkbnr/pppp1ppp/2n5/4p3/2B1P3/5N2/PPPP1PPP/RNBQK2R b KQkq - 3 3", "tactics"),
    ("rnbqk2r/pppp1ppp/5n2/2b1p3/2B1P3/3P1N2/PPP2PPP/RNBQK2R w KQkq - 0 4", "attack"),
    ("r1bqkb1r/pppp1ppp/2n2n2/4p3/2B1P3/2NP1N2/PPP2PPP/R1BQK2R b KQkq - 0 4", "attack"),
    ("r1bqkb1r/pppp1ppp/2n2n2/1B2p3/4P3/5N2/PPPP1PPP/RNBQK2R b KQkq - 0 4", "fork"),
    ("r4rk1/ppp2ppp/2n2b2/3q4/3P4/2N3P1/PPP2P1P/R2QR1K1 b - - 0 12", "back_rank"),
    ("r1bqk2r/pppp1ppp/2n2n2/2b1p3/2B1P3/3P1N2/PPP2PPP/RNBQK2R w KQkq - 0 5", "pin"),
    ("r1bqkbnr/pp1ppppp/2n5/2p5/3PP3/5N2/PPP2PPP/RNBQKB1R b KQkq - 0 3", "central_control"),
    ("r1bqk2r/pp1nppbp/3p1np1/8/3PP3/2N2N2/PPP1BPPP/R1BQK2R b KQkq - 0 7", "discovered_attack"),
    ("r1bq1rk1/pp1nbppp/2n1p3/3p4/2PP4/2NBPN2/PP3PPP/R1BQ1RK1 b - - 0 9", "pawn_structure"),
    ("r1bqkb1r/pp2pppp/2np1n2/8/3PP3/2N5/PPP2PPP/R1BQKBNR w KQkq - 0 5", "space_advantage"),
    ("r1bq1rk1/pp2bppp/2n1pn2/3p4/2PP4/2N1PN2/PP2BPPP/R1BQK2R w KQ - 0 8", "pawn_break"),
    ("r2q1rk1/pb1nbppp/1p2pn2/2p5/2PP4/1PN1PN2/PB3PPP/R2QKBR1 w Q - 0 11", "piece_activity"),
    ("r1bqr1k1/pp1n1ppp/2pb1n2/3p4/3P4/2NBPN2/PP3PPP/R1BQ1RK1 b - - 0 10", "central_control"),
)

_BASE_RATINGS: dict[Difficulty, int] = {
    Difficulty.BEGINNER: 1200,
    Difficulty.INTERMEDIATE: 1500,
    Difficulty.ADVANCED: 1800,
}

_WARMUP_PLIES = 4


def _detect_fork(board: chess.Board, move: chess.Move) -> bool:
    """The moved piece attacks two or more enemy pieces worth a knight or more."""
    board_after = board.copy(stack=False)
    board_after.push(move)
    moved = board_after.piece_at(move.to_square)
    if moved is None:
        return False
    targets = 0
    for sq in board_after.attacks(move.to_square):
        victim = board_after.piece_at(sq)
        if victim is not None and victim.color != moved.color and victim.piece_type != chess.PAWN:
            targets += 1
    return targets >= 2


def solution_themes(board: chess.Board, move: chess.Move, flags: MoveFlags) -> list[str]:
    """Tactical themes of the solution move, most forcing first."""
    themes: list[str] = []
    if flags.checkmate:
        themes.append("checkmate")
    elif flags.check:
        themes.append("check")
    if flags.capture:
        themes.append("capture")
    if flags.promotion:
        themes.append("promotion")
    if _detect_fork(board, move):
        themes.append("fork")
    return themes


def solution_explanation(board: chess.Board, move: chess.Move, flags: MoveFlags) -> str:
    """One-sentence explanation of the solution move."""
    san = move_san(board, move)
    piece = chess.piece_name(board.piece_type_at(move.from_square))
    if flags.checkmate:
        return f"{san} delivers checkmate."
    if flags.check:
        return f"{san} gives check with the {piece} and keeps the initiative."
    if flags.capture:
        captured = chess.piece_name(captured_piece_type(board, move))
        return f"{san} wins the {captured} on {chess.square_name(move.to_square)}."
    if flags.promotion:
        return f"{san} promotes the pawn, gaining a decisive material advantage."
    return f"{san} is the strongest quiet move, improving the {piece}."


class PuzzleGenerator:
    """Builds validated 4-move puzzles with a bounded retry budget.

    Args:
        validator: Validator every candidate must pass.
        policy: Scoring constants for simulated play.
        seed: Seed for reproducible generation; system randomness if None.
        max_attempts: Candidates tried before giving up.
        seeds: (FEN, theme) starting positions.
    """

    def __init__(
        self,
        validator: PuzzleValidator | None = None,
        policy: ScoringPolicy = DEFAULT_POLICY,
        seed: int | None = None,
        max_attempts: int = 25,
        seeds: tuple[tuple[str, str], ...] = SEED_POSITIONS,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.validator = validator if validator is not None else PuzzleValidator(policy)
        self.max_attempts = max_attempts
        self._seeds = seeds
        self._rng = random.Random(seed)
        jittered = MoveScorer(policy, jitter=policy.jitter_bound, rng=self._rng)
        self._search = BestResponseSearch(jittered)
        self._ranker = jittered.without_jitter()

    def generate(self, difficulty: Difficulty | None = None) -> PuzzleCandidate:
        """Return a puzzle that passes validation.

        Args:
            difficulty: Required difficulty, or None for any.

        Raises:
            GenerationExhaustedError: If no attempt produced a valid puzzle.
        """
        for attempt in range(1, self.max_attempts + 1):
            candidate = self._attempt()
            if candidate is None:
                continue
            if difficulty is not None and candidate.difficulty != difficulty:
                logger.debug("attempt %d: got %s, wanted %s", attempt,
                             candidate.difficulty.value, difficulty.value)
                continue
            result = self.validator.validate(candidate)
            if result.is_valid:
                logger.info("generated puzzle %s on attempt %d", candidate.puzzle_id, attempt)
                return candidate
            logger.debug("attempt %d rejected: %s", attempt, ", ".join(result.error_codes))

        logger.warning("puzzle generation exhausted after %d attempts", self.max_attempts)
        raise GenerationExhaustedError(self.max_attempts)

    def _walk(self, board: chess.Board) -> chess.Move | None:
        if board.is_game_over():
            return None
        move = self._search.best_move(board)
        if move is not None:
            board.push(move)
        return move

    def _attempt(self) -> PuzzleCandidate | None:
        fen, theme = self._rng.choice(self._seeds)
        board = chess.Board(fen)
        for _ in range(self._rng.randint(0, _WARMUP_PLIES)):
            if self._walk(board) is None:
                return None

        start_fen = to_fen(board)
        moves: list[str] = []
        for _ in range(3):
            move = self._walk(board)
            if move is None:
                return None
            moves.append(move.uci())
        if board.is_game_over():
            return None

        solution = self._ranker.score_moves(board)[0].move
        flags = MoveFlags.of(board, solution)
        difficulty = expected_difficulty(flags)
        rating = _BASE_RATINGS[difficulty] + self._rng.randint(-100, 99)

        themes = solution_themes(board, solution, flags)
        if theme not in themes:
            themes.append(theme)
        return PuzzleCandidate(
            fen=start_fen,
            moves=moves + [solution.uci()],
            difficulty=difficulty,
            explanation=solution_explanation(board, solution, flags),
            themes=themes,
            puzzle_id=f"gen_{self._rng.getrandbits(40):010x}",
            rating=max(1000, min(2500, rating)),
        )
