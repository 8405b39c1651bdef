from dataclasses import dataclass
from typing import Optional

import chess


@dataclass(frozen=True)
class MoveFacts:
    """Immutable description of a legal move in the position it was played from."""

    from_square: chess.Square
    to_square: chess.Square
    piece: chess.PieceType
    promotion: Optional[chess.PieceType] = None
    captured: Optional[chess.PieceType] = None
    is_check: bool = False
    is_mate: bool = False
    is_castle: bool = False
    is_en_passant: bool = False

    def uci(self) -> str:
        return chess.Move(self.from_square, self.to_square, self.promotion).uci()


def game_result(board: chess.Board) -> Optional[str]:
    """How the game at ``board`` ended, or ``None`` while it is still in progress."""
    outcome = board.outcome()
    if outcome is None:
        return None
    reason = outcome.termination.name.replace("_", " ").lower()
    if outcome.winner is None:
        return f"draw by {reason}"
    winner = "White" if outcome.winner == chess.WHITE else "Black"
    return f"{winner} wins by {reason}"


def parse_fen(fen: str) -> chess.Board:
    """Build a board from ``fen``; raises ``ValueError`` for malformed or unreachable positions."""
    board = chess.Board(fen)
    if not board.is_valid():
        raise ValueError(f"illegal position: {board.status()!r}")
    return board


def to_fen(board: chess.Board) -> str:
    # keep the en passant field as given, even when no pawn can capture
    return board.fen(en_passant="fen")


def parse_move(board: chess.Board, text: str) -> chess.Move:
    """Parse a move given in UCI or SAN; raises ``ValueError`` if it is not legal here."""
    text = text.strip()
    try:
        move = board.parse_uci(text)
    except ValueError:
        move = board.parse_san(text)
    # parse_uci accepts "0000" as a null move
    if not move:
        raise ValueError(f"null move is not playable: {text!r}")
    return move


def describe_move(board: chess.Board, move: chess.Move) -> MoveFacts:
    piece = board.piece_at(move.from_square)
    if piece is None:
        raise ValueError(f"no piece on {chess.square_name(move.from_square)}")

    is_en_passant = board.is_en_passant(move)
    if is_en_passant:
        captured: Optional[chess.PieceType] = chess.PAWN
    else:
        captured = board.piece_type_at(move.to_square) if board.is_capture(move) else None

    board.push(move)
    try:
        is_mate = board.is_checkmate()
    finally:
        board.pop()

    return MoveFacts(
        from_square=move.from_square,
        to_square=move.to_square,
        piece=piece.piece_type,
        promotion=move.promotion,
        captured=captured,
        is_check=board.gives_check(move),
        is_mate=is_mate,
        is_castle=board.is_castling(move),
        is_en_passant=is_en_passant,
    )


def move_history_san(board: chess.Board) -> str:
    """Numbered SAN for every move played since the board's root position."""
    return board.root().variation_san(board.move_stack)
