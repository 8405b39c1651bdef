"""Rebuild boards from ``position`` specs without ever failing the request.

Bad FENs fall back to the initial position and move lists stop at the first
move that does not parse or is not legal; both cases are reported through the
logger only.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple, Union

import chess

from .chess_logic import parse_fen, parse_move


@dataclass(frozen=True)
class FenSpec:
    fen: str
    moves: Tuple[str, ...] = ()

    def to_command(self) -> str:
        command = f"position fen {self.fen}"
        if self.moves:
            command += " moves " + " ".join(self.moves)
        return command


@dataclass(frozen=True)
class StartposWithMoves:
    moves: Tuple[str, ...] = ()

    def to_command(self) -> str:
        command = "position startpos"
        if self.moves:
            command += " moves " + " ".join(self.moves)
        return command


PositionSpec = Union[FenSpec, StartposWithMoves]


def parse_position_args(
    tokens: Sequence[str], logger: Optional[Callable[[str], None]] = None
) -> PositionSpec:
    log = logger or (lambda *_: None)
    tokens = list(tokens)
    if not tokens:
        log("empty position command, using start position")
        return StartposWithMoves()

    if "moves" in tokens:
        move_index = tokens.index("moves")
        head, move_tokens = tokens[:move_index], tuple(tokens[move_index + 1:])
    else:
        head, move_tokens = tokens, ()

    kind = head[0].lower()
    if kind == "startpos":
        return StartposWithMoves(move_tokens)
    if kind == "fen":
        return FenSpec(" ".join(head[1:7]), move_tokens)

    log(f"Unknown position command: {' '.join(tokens)}")
    return StartposWithMoves()


def apply_moves(
    board: chess.Board,
    moves: Sequence[str],
    logger: Optional[Callable[[str], None]] = None,
) -> int:
    """Push ``moves`` onto ``board`` until one fails; returns how many were applied."""
    log = logger or (lambda *_: None)
    applied = 0
    for move_text in moves:
        try:
            move = parse_move(board, move_text)
        except ValueError:
            log(f"Illegal move in position command: {move_text}")
            break
        board.push(move)
        applied += 1
    return applied


def reconstruct(
    spec: PositionSpec, logger: Optional[Callable[[str], None]] = None
) -> chess.Board:
    log = logger or (lambda *_: None)
    if isinstance(spec, FenSpec):
        try:
            board = parse_fen(spec.fen)
        except ValueError as exc:
            log(f"Invalid FEN received: {spec.fen} ({exc}); using start position")
            board = chess.Board()
    else:
        board = chess.Board()

    apply_moves(board, spec.moves, log)
    return board
