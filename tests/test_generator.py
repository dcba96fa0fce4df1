"""Tests for puzzle generation.

The validator is mocked for most tests so generation outcomes depend
only on the seeded walk, not on margin tuning.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import chess
import pytest

from chess_recall.errors import AmbiguousSolutionError, GenerationExhaustedError
from chess_recall.generator import (
    SEED_POSITIONS,
    PuzzleGenerator,
    solution_explanation,
    solution_themes,
)
from chess_recall.models import Difficulty, MoveFlags, PuzzleCandidate, ValidationResult
from chess_recall.scorer import MoveScorer
from chess_recall.validator import expected_difficulty


def _accepting_validator() -> MagicMock:
    validator = MagicMock()
    validator.validate.return_value = ValidationResult()
    return validator


def _rejecting_validator() -> MagicMock:
    validator = MagicMock()
    validator.validate.return_value = ValidationResult(
        errors=[AmbiguousSolutionError("margin 0 below 50", 0)]
    )
    return validator


# ---------------------------------------------------------------------------
# Generation loop
# ---------------------------------------------------------------------------


class TestGenerate:

    def test_candidate_shape(self):
        candidate = PuzzleGenerator(_accepting_validator(), seed=7).generate()
        assert len(candidate.moves) == 4
        assert candidate.puzzle_id.startswith("gen_")
        assert len(candidate.puzzle_id) == 14
        assert 1000 <= candidate.rating <= 2500
        assert candidate.explanation
        assert candidate.themes

        board = chess.Board(candidate.fen)
        for uci in candidate.moves[:3]:
            move = chess.Move.from_uci(uci)
            assert board.is_legal(move)
            board.push(move)
        solution = chess.Move.from_uci(candidate.moves[3])
        assert solution == MoveScorer(jitter=0).score_moves(board)[0].move
        assert candidate.difficulty == expected_difficulty(MoveFlags.of(board, solution))

    def test_same_seed_same_puzzle(self):
        first = PuzzleGenerator(_accepting_validator(), seed=11).generate()
        second = PuzzleGenerator(_accepting_validator(), seed=11).generate()
        assert first == second

    def test_exhaustion(self):
        validator = _rejecting_validator()
        generator = PuzzleGenerator(validator, seed=3, max_attempts=3)
        with pytest.raises(GenerationExhaustedError) as excinfo:
            generator.generate()
        assert excinfo.value.attempts == 3
        assert validator.validate.call_count <= 3

    def test_invalid_attempt_budget(self):
        with pytest.raises(ValueError):
            PuzzleGenerator(max_attempts=0)

    def test_difficulty_filter_skips_validation(self):
        validator = _accepting_validator()
        generator = PuzzleGenerator(validator, seed=1)
        wrong = PuzzleCandidate(fen=chess.STARTING_FEN, moves=["a", "b", "c", "d"],
                                difficulty=Difficulty.ADVANCED)
        right = PuzzleCandidate(fen=chess.STARTING_FEN, moves=["a", "b", "c", "d"],
                                difficulty=Difficulty.BEGINNER)
        with patch.object(generator, "_attempt", side_effect=[None, wrong, right]):
            assert generator.generate(Difficulty.BEGINNER) is right
        validator.validate.assert_called_once_with(right)

    def test_game_ending_seed_is_skipped(self):
        # Checkmated seed: every attempt ends before three plies are recorded
        mated = (("R5k1/5ppp/8/8/8/7P/5PP1/6K1 b - - 1 3", "back_rank"),)
        generator = PuzzleGenerator(_accepting_validator(), seed=2, max_attempts=2, seeds=mated)
        with pytest.raises(GenerationExhaustedError):
            generator.generate()

    def test_seed_positions_are_legal(self):
        for fen, theme in SEED_POSITIONS:
            board = chess.Board(fen)
            assert board.is_valid(), fen
            assert not board.is_game_over()
            assert theme


# ---------------------------------------------------------------------------
# Themes and explanations
# ---------------------------------------------------------------------------


class TestSolutionText:

    def test_checkmate_theme(self):
        board = chess.Board("6k1/5ppp/8/8/8/7P/5PP1/R5K1 w - - 0 3")
        move = chess.Move.from_uci("a1a8")
        flags = MoveFlags.of(board, move)
        assert solution_themes(board, move, flags) == ["checkmate"]
        assert solution_explanation(board, move, flags) == "Ra8# delivers checkmate."

    def test_knight_fork(self):
        board = chess.Board("r3k3/8/8/1N6/8/8/8/4K3 w - - 0 1")
        move = chess.Move.from_uci("b5c7")
        flags = MoveFlags.of(board, move)
        assert solution_themes(board, move, flags) == ["check", "fork"]
        assert "gives check with the knight" in solution_explanation(board, move, flags)

    def test_capture_explanation(self, queen_win_board):
        move = chess.Move.from_uci("b3c4")
        flags = MoveFlags.of(queen_win_board, move)
        assert solution_themes(queen_win_board, move, flags) == ["capture"]
        assert solution_explanation(queen_win_board, move, flags) == "bxc4 wins the queen on c4."

    def test_quiet_explanation(self):
        board = chess.Board()
        move = chess.Move.from_uci("g1f3")
        flags = MoveFlags.of(board, move)
        assert solution_themes(board, move, flags) == []
        assert solution_explanation(board, move, flags) == (
            "Nf3 is the strongest quiet move, improving the knight."
        )
