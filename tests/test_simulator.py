"""Tests for consequence simulation and move comparison.

Covers: illegal/malformed input handling, sequence legality, material
and check accounting, termination, seeded determinism regardless of
call order or concurrency, and the comparison explanation cascade.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import chess
import pytest

from chess_recall.models import Analysis, SimulationResult
from chess_recall.simulator import ConsequenceSimulator, explain_comparison, game_result_text

MATE_IN_ONE_FEN = "6k1/5ppp/8/8/8/7P/5PP1/R5K1 w - - 0 3"
BLACK_QUEEN_DROP_FEN = "3q2k1/5ppp/8/8/8/5N2/5PPP/6K1 b - - 0 1"


def _summary(result: SimulationResult) -> tuple:
    a = result.analysis
    return (result.is_legal, tuple(result.moves), a.material_balance, a.checks_given,
            frozenset(a.themes), result.final_fen)


# ---------------------------------------------------------------------------
# Bad input
# ---------------------------------------------------------------------------


class TestBadInput:

    def test_illegal_first_move(self):
        result = ConsequenceSimulator(seed=1).simulate(chess.Board(), "e2e5")
        assert result.is_legal is False
        assert result.moves == []
        assert result.error == "Illegal move"

    def test_unparseable_first_move(self):
        result = ConsequenceSimulator(seed=1).simulate(chess.Board(), "hello")
        assert result.is_legal is False
        assert result.moves == []
        assert result.error.startswith("Invalid move notation")

    def test_invalid_fen(self):
        result = ConsequenceSimulator(seed=1).simulate("not a fen", "e2e4")
        assert result.is_legal is False
        assert result.error.startswith("Invalid position")

    def test_board_not_mutated(self, hanging_queen_board):
        fen = hanging_queen_board.fen()
        ConsequenceSimulator(seed=1).simulate(hanging_queen_board, "d1h5", 4)
        assert hanging_queen_board.fen() == fen
        assert hanging_queen_board.move_stack == []


# ---------------------------------------------------------------------------
# Sequences and analysis
# ---------------------------------------------------------------------------


class TestSimulate:

    def test_sequence_length_and_legality(self):
        sim = ConsequenceSimulator(seed=5)
        result = sim.simulate(chess.Board(), "e2e4", 6)
        assert result.is_legal
        assert len(result.moves) == 6
        assert len(result.positions) == 6
        replay = chess.Board()
        for uci in result.moves:
            move = chess.Move.from_uci(uci)
            assert replay.is_legal(move)
            replay.push(move)
        assert replay.fen(en_passant="fen") == result.final_fen

    def test_plies_below_one_treated_as_one(self):
        result = ConsequenceSimulator(seed=5).simulate(chess.Board(), "e2e4", 0)
        assert result.moves == ["e2e4"]
        assert result.moves_san == ["e4"]

    def test_mate_ends_sequence(self):
        result = ConsequenceSimulator(seed=5).simulate(MATE_IN_ONE_FEN, "a1a8", 4)
        assert result.moves == ["a1a8"]
        assert result.game_over
        assert result.result == "White wins by checkmate"
        assert result.analysis.checks_given == 1
        assert {"check", "checkmate"} <= result.analysis.themes

    def test_queen_drop_white_pov(self, hanging_queen_board):
        result = ConsequenceSimulator(seed=5).simulate(hanging_queen_board, "d1h5", 2)
        assert result.moves == ["d1h5", "f6h5"]
        assert result.analysis.material_balance == -900
        assert "sacrifice" in result.analysis.themes
        assert "capture" not in result.analysis.themes

    def test_queen_drop_black_pov(self):
        result = ConsequenceSimulator(seed=5).simulate(BLACK_QUEEN_DROP_FEN, "d8h4", 2)
        assert result.moves == ["d8h4", "f3h4"]
        assert result.analysis.material_balance == -900

    def test_capture_gains_material(self, queen_win_board):
        result = ConsequenceSimulator(seed=5).simulate(queen_win_board, "b3c4", 1)
        assert result.analysis.material_balance == 900
        assert "capture" in result.analysis.themes
        assert result.analysis.checks_given == 0

    def test_accepts_move_objects(self, queen_win_board):
        result = ConsequenceSimulator(seed=5).simulate(
            queen_win_board, chess.Move.from_uci("b3c4"), 1,
        )
        assert result.moves == ["b3c4"]


# ---------------------------------------------------------------------------
# Determinism
# ---------------------------------------------------------------------------


class TestDeterminism:

    def test_order_independent(self):
        board = chess.Board()
        first = ConsequenceSimulator(seed=42)
        user_a = first.simulate(board, "e2e4", 6)
        correct_a = first.simulate(board, "d2d4", 6)

        second = ConsequenceSimulator(seed=42)
        correct_b = second.simulate(board, "d2d4", 6)
        user_b = second.simulate(board, "e2e4", 6)

        assert _summary(user_a) == _summary(user_b)
        assert _summary(correct_a) == _summary(correct_b)

    def test_concurrent_matches_sequential(self):
        sim = ConsequenceSimulator(seed=42)
        fen = chess.STARTING_FEN
        sequential = [_summary(sim.simulate(fen, m, 6)) for m in ("e2e4", "d2d4", "g1f3")]
        with ThreadPoolExecutor(max_workers=3) as pool:
            futures = [pool.submit(sim.simulate, fen, m, 6) for m in ("g1f3", "e2e4", "d2d4")]
            concurrent = {f.result().moves[0]: _summary(f.result()) for f in futures}
        assert [concurrent["e2e4"], concurrent["d2d4"], concurrent["g1f3"]] == sequential

    def test_compare_matches_individual_runs(self, hanging_queen_board):
        sim = ConsequenceSimulator(seed=9)
        comparison = sim.compare(hanging_queen_board, "d1h5", "d1d2", 4)
        assert _summary(comparison.user) == _summary(sim.simulate(hanging_queen_board, "d1h5", 4))
        assert _summary(comparison.correct) == _summary(sim.simulate(hanging_queen_board, "d1d2", 4))
        assert comparison.explanation


# ---------------------------------------------------------------------------
# Comparison explanation
# ---------------------------------------------------------------------------


def _result(moves=("x",), balance=0, themes=(), game_over=False, result=None, legal=True):
    return SimulationResult(
        start_fen=chess.STARTING_FEN,
        is_legal=legal,
        moves=list(moves),
        analysis=Analysis(material_balance=balance, themes=set(themes), result=result),
        game_over=game_over,
    )


class TestExplainComparison:

    def test_illegal_user_move(self):
        text = explain_comparison("e5", "e4", _result(legal=False, moves=()), _result())
        assert text == "The move e5 is illegal. e4 is the correct move."

    def test_missed_immediate_mate(self):
        correct = _result(game_over=True, result="White wins by checkmate", themes={"checkmate"})
        text = explain_comparison("Rb1", "Ra8#", _result(), correct)
        assert "miss immediate checkmate" in text
        assert "Ra8# delivers mate" in text

    def test_forced_mate_theme(self):
        text = explain_comparison("a3", "Qh5", _result(), _result(themes={"checkmate"}))
        assert "forced checkmate" in text

    def test_missed_check(self):
        text = explain_comparison("a3", "Qh5+", _result(), _result(themes={"check"}))
        assert "gives check" in text

    def test_material_swing(self):
        text = explain_comparison("b4", "bxc4", _result(balance=-100), _result(balance=900))
        assert "winning significant material" in text

    def test_user_loses_material(self):
        text = explain_comparison("Qh5", "Qd2", _result(balance=-250), _result(balance=-100))
        assert "lose material" in text

    def test_fallbacks_by_length(self):
        longer = explain_comparison("a3", "Nf3", _result(moves=("a",)), _result(moves=("a", "b")))
        assert "dynamic possibilities" in longer
        same = explain_comparison("a3", "Nf3", _result(), _result())
        assert "better practical chances" in same


class TestGameResultText:

    @pytest.mark.parametrize("fen,expected", [
        ("R5k1/5ppp/8/8/8/7P/5PP1/6K1 b - - 1 3", "White wins by checkmate"),
        ("7k/5Q2/6K1/8/8/8/8/8 b - - 0 1", "Stalemate"),
        ("8/8/8/8/8/8/8/K6k w - - 0 1", "Draw"),
        (chess.STARTING_FEN, None),
    ])
    def test_texts(self, fen, expected):
        assert game_result_text(chess.Board(fen)) == expected
