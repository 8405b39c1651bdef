import random

import chess
import pytest

from kibitz import chess_logic

STALEMATE_FEN = "7k/5Q2/6K1/8/8/8/8/8 b - - 0 1"


def _fools_mate() -> chess.Board:
    board = chess.Board()
    for san in ("f3", "e5", "g4", "Qh4#"):
        board.push_san(san)
    return board


def test_game_result_messages() -> None:
    assert chess_logic.game_result(_fools_mate()) == "Black wins by checkmate"
    assert chess_logic.game_result(chess.Board(STALEMATE_FEN)) == "draw by stalemate"

    bare_kings = chess.Board("4k3/8/8/8/8/8/8/4K3 w - - 0 1")
    assert chess_logic.game_result(bare_kings) == "draw by insufficient material"

    assert chess_logic.game_result(chess.Board()) is None


def test_parse_fen_rejects_malformed_and_unreachable_positions() -> None:
    with pytest.raises(ValueError):
        chess_logic.parse_fen("invalid-fen")
    # no kings on the board
    with pytest.raises(ValueError):
        chess_logic.parse_fen("8/8/8/8/8/8/8/8 w - - 0 1")


@pytest.mark.parametrize(
    "fen",
    [
        chess.STARTING_FEN,
        "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq e3 0 1",
        "rnbqkbnr/ppp1pppp/8/3p4/4P3/8/PPPP1PPP/RNBQKBNR w KQkq d6 0 2",
        "r3k2r/8/8/8/8/8/8/R3K2R w Kq - 5 40",
    ],
)
def test_fen_round_trip_keeps_every_field(fen: str) -> None:
    assert chess_logic.to_fen(chess_logic.parse_fen(fen)) == fen


def test_fen_round_trip_over_random_positions() -> None:
    rng = random.Random(11)
    for _ in range(50):
        board = chess.Board()
        for _ in range(rng.randint(0, 40)):
            moves = list(board.legal_moves)
            if not moves:
                break
            board.push(rng.choice(moves))
        fen = chess_logic.to_fen(board)
        assert chess_logic.to_fen(chess_logic.parse_fen(fen)) == fen


def test_parse_move_accepts_uci_and_san() -> None:
    board = chess.Board()
    assert chess_logic.parse_move(board, "e2e4") == chess.Move.from_uci("e2e4")
    assert chess_logic.parse_move(board, "Nf3") == chess.Move.from_uci("g1f3")


@pytest.mark.parametrize("text", ["e2e5", "Qh5", "0000", "nonsense"])
def test_parse_move_rejects_unplayable_moves(text: str) -> None:
    with pytest.raises(ValueError):
        chess_logic.parse_move(chess.Board(), text)


def test_describe_move_reports_capture_check_and_mate() -> None:
    board = chess.Board()
    for san in ("f3", "e5", "g4"):
        board.push_san(san)
    facts = chess_logic.describe_move(board, chess.Move.from_uci("d8h4"))
    assert facts.piece == chess.QUEEN
    assert facts.is_check is True
    assert facts.is_mate is True
    assert facts.captured is None
    assert facts.uci() == "d8h4"
    # describing a move never leaves it on the board
    assert len(board.move_stack) == 3


def test_describe_move_handles_en_passant_castling_and_promotion() -> None:
    ep_board = chess.Board("4k3/8/8/3pP3/8/8/8/4K3 w - d6 0 1")
    facts = chess_logic.describe_move(ep_board, chess.Move.from_uci("e5d6"))
    assert facts.is_en_passant is True
    assert facts.captured == chess.PAWN

    castle_board = chess.Board("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1")
    facts = chess_logic.describe_move(castle_board, chess.Move.from_uci("e1g1"))
    assert facts.is_castle is True
    assert facts.piece == chess.KING

    promo_board = chess.Board("k7/5P2/8/8/8/8/8/6K1 w - - 0 1")
    facts = chess_logic.describe_move(promo_board, chess.Move.from_uci("f7f8q"))
    assert facts.promotion == chess.QUEEN
    assert facts.uci() == "f7f8q"


def test_move_history_san_is_numbered() -> None:
    board = chess.Board()
    for uci in ("e2e4", "e7e5", "g1f3"):
        board.push_uci(uci)
    assert chess_logic.move_history_san(board) == "1. e4 e5 2. Nf3"
    assert chess_logic.move_history_san(chess.Board()) == ""
