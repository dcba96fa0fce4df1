"""Shared test fixtures with dual-mode support (mocked vs real Stockfish).

Usage:
    pytest tests/                  # Fast, no Stockfish needed
    pytest tests/ --e2e            # Also run real-Stockfish integration tests

Fixtures:
    back_rank_puzzle   - Valid 4-move back-rank mate candidate.
    queen_win_board    - Decision position where bxc4 wins a queen.
    twin_knights_board - Decision position with two equal knight captures.
    hanging_queen_board - Position where Qh5 drops the queen to Nf6.
    enable_validation  - Sets CHESS_RECALL_VALIDATE=1 for schema validation.
"""

from __future__ import annotations

import os

import chess
import pytest

from chess_recall.models import Difficulty, PuzzleCandidate

BACK_RANK_FEN = "6k1/5ppp/8/8/8/8/5PPP/R5K1 b - - 0 1"
QUEEN_WIN_FEN = "8/8/8/8/2q5/1P4p1/5k2/7K w - - 0 1"
TWIN_KNIGHTS_FEN = "8/8/8/8/n1n5/1P4p1/5k2/7K w - - 0 1"
HANGING_QUEEN_FEN = "6k1/5ppp/5n2/8/8/8/5PPP/3Q2K1 w - - 0 1"


# ---------------------------------------------------------------------------
# CLI option and marker registration
# ---------------------------------------------------------------------------


def pytest_addoption(parser):
    """Register --e2e CLI flag for real Stockfish tests."""
    parser.addoption(
        "--e2e",
        action="store_true",
        default=False,
        help="Run with real Stockfish engine (no mocks).",
    )


def pytest_configure(config):
    """Register the e2e marker."""
    config.addinivalue_line(
        "markers", "e2e: mark test as end-to-end (requires real Stockfish)"
    )


def pytest_collection_modifyitems(config, items):
    """Skip e2e tests unless --e2e is passed."""
    if config.getoption("--e2e"):
        return
    skip_e2e = pytest.mark.skip(reason="needs --e2e and a Stockfish binary")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip_e2e)


# ---------------------------------------------------------------------------
# Position fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def back_rank_puzzle() -> PuzzleCandidate:
    """Black shuffles the king, White plays h3, then Ra8 mates."""
    return PuzzleCandidate(
        fen=BACK_RANK_FEN,
        moves=["g8h8", "h2h3", "h8g8", "a1a8"],
        difficulty=Difficulty.BEGINNER,
        explanation="The rook delivers mate on the back rank.",
    )


@pytest.fixture()
def queen_win_board() -> chess.Board:
    return chess.Board(QUEEN_WIN_FEN)


@pytest.fixture()
def twin_knights_board() -> chess.Board:
    return chess.Board(TWIN_KNIGHTS_FEN)


@pytest.fixture()
def hanging_queen_board() -> chess.Board:
    return chess.Board(HANGING_QUEEN_FEN)


# ---------------------------------------------------------------------------
# Schema validation fixture
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def enable_validation():
    """Set CHESS_RECALL_VALIDATE=1 for the test.

    Restores the original env var value after the test.
    """
    original = os.environ.get("CHESS_RECALL_VALIDATE")
    os.environ["CHESS_RECALL_VALIDATE"] = "1"
    yield
    if original is None:
        os.environ.pop("CHESS_RECALL_VALIDATE", None)
    else:
        os.environ["CHESS_RECALL_VALIDATE"] = original
