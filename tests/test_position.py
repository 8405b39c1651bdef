import chess

from kibitz.position import (
    FenSpec,
    StartposWithMoves,
    apply_moves,
    parse_position_args,
    reconstruct,
)

SICILIAN_FEN = "rnbqkbnr/pp1ppppp/8/2p5/4P3/8/PPPP1PPP/RNBQKBNR w KQkq c6 0 2"


def test_parse_position_args_startpos_with_moves() -> None:
    spec = parse_position_args("startpos moves e2e4 e7e5".split())
    assert spec == StartposWithMoves(("e2e4", "e7e5"))
    assert spec.to_command() == "position startpos moves e2e4 e7e5"


def test_parse_position_args_fen_with_moves() -> None:
    spec = parse_position_args(f"fen {SICILIAN_FEN} moves g1f3".split())
    assert spec == FenSpec(SICILIAN_FEN, ("g1f3",))
    assert parse_position_args(spec.to_command().split()[1:]) == spec


def test_parse_position_args_unknown_form_logs_and_uses_start() -> None:
    messages = []
    assert parse_position_args(["bogus"], messages.append) == StartposWithMoves()
    assert parse_position_args([], messages.append) == StartposWithMoves()
    assert len(messages) == 2


def test_reconstruct_applies_uci_and_san_moves() -> None:
    board = reconstruct(StartposWithMoves(("e2e4", "e5", "Nf3")))
    assert [move.uci() for move in board.move_stack] == ["e2e4", "e7e5", "g1f3"]


def test_reconstruct_truncates_at_first_illegal_move() -> None:
    messages = []
    spec = StartposWithMoves(("e2e4", "e7e5", "e1e3", "g1f3"))
    board = reconstruct(spec, messages.append)
    assert len(board.move_stack) == 2
    assert messages == ["Illegal move in position command: e1e3"]


def test_reconstruct_invalid_fen_falls_back_to_start_position() -> None:
    messages = []
    board = reconstruct(FenSpec("not a fen", ("e2e4",)), messages.append)
    assert board.move_stack == [chess.Move.from_uci("e2e4")]
    assert board.root().fen() == chess.STARTING_FEN
    assert messages[0].startswith("Invalid FEN received: not a fen")


def test_reconstruct_unreachable_fen_falls_back() -> None:
    messages = []
    board = reconstruct(FenSpec("8/8/8/8/8/8/8/8 w - - 0 1"), messages.append)
    assert board.fen() == chess.STARTING_FEN
    assert messages


def test_apply_moves_reports_count() -> None:
    board = chess.Board()
    assert apply_moves(board, ["d2d4", "d7d5", "c2c4"]) == 3
    assert apply_moves(board, ["zz"]) == 0
