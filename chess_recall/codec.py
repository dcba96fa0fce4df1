"""Position and move codec on top of python-chess.

python-chess is the legal-move oracle: FIDE legality (castling, en
passant, promotion) is never reimplemented here.
"""

from __future__ import annotations

import chess


def parse_fen(fen: str) -> chess.Board:
    """Parse a six-field FEN into a board.

    Raises:
        ValueError: If the FEN is malformed or describes an impossible
            position (e.g. side not to move is in check).
    """
    if not isinstance(fen, str) or not fen.strip():
        raise ValueError("FEN is empty")
    board = chess.Board(fen.strip())
    if not board.is_valid():
        raise ValueError(f"invalid position: {board.status()!r}")
    return board


def to_fen(board: chess.Board) -> str:
    """Serialize a board to its six-field FEN."""
    return board.fen(en_passant="fen")


def parse_uci(text: str | chess.Move) -> chess.Move:
    """Parse a UCI move string, passing chess.Move through.

    Raises:
        ValueError: If the text is not UCI notation.
    """
    if isinstance(text, chess.Move):
        return text
    if not isinstance(text, str):
        raise ValueError(f"expected UCI string, got {type(text).__name__}")
    return chess.Move.from_uci(text.strip())


def after(board: chess.Board, move: chess.Move) -> chess.Board:
    """Return a copy of the board with the move pushed."""
    nxt = board.copy(stack=False)
    nxt.push(move)
    return nxt


def move_san(board: chess.Board, move: chess.Move) -> str:
    """SAN for a legal move, falling back to UCI for anything else."""
    try:
        return board.san(move)
    except (ValueError, AssertionError):
        return move.uci()
