import chess

from kibitz import utils


def test_color_text_wraps_ansi() -> None:
    text = utils.color_text("hello", "32")
    assert text.startswith("\033[32m")
    assert text.endswith("\033[0m")


def test_labels_carry_message() -> None:
    assert utils.info_text("ready").endswith("ready")
    assert "DEBUG" in utils.debug_text("x")
    assert utils.sending_text("uci").endswith("uci")
    assert utils.received_text("uciok").endswith("uciok")


def test_get_piece_unicode_values() -> None:
    assert utils.get_piece_unicode(chess.Piece(chess.QUEEN, chess.WHITE)) == "♕"
    assert utils.get_piece_unicode(chess.Piece(chess.KNIGHT, chess.BLACK)) == "♞"


def test_render_board_start_position() -> None:
    rows = utils.render_board(chess.Board()).splitlines()
    assert len(rows) == 9
    assert rows[0] == "8 ♜ ♞ ♝ ♛ ♚ ♝ ♞ ♜"
    assert rows[4] == "4 · · · · · · · ·"
    assert rows[7] == "1 ♖ ♘ ♗ ♕ ♔ ♗ ♘ ♖"
    assert rows[8] == "  a b c d e f g h"
