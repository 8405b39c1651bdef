import random

import chess
import pytest

from kibitz.selector import (
    NO_MOVE,
    MoveSelector,
    SelectorState,
    extend_principal_variation,
)
from kibitz.skill import calibrate

STALEMATE_FEN = "7k/5Q2/6K1/8/8/8/8/8 b - - 0 1"
TRIALS = 100


def _fools_mate() -> chess.Board:
    board = chess.Board()
    for san in ("f3", "e5", "g4", "Qh4#"):
        board.push_san(san)
    return board


def _random_positions(count: int, seed: int):
    rng = random.Random(seed)
    positions = []
    while len(positions) < count:
        board = chess.Board()
        for _ in range(rng.randint(0, 60)):
            moves = list(board.legal_moves)
            if not moves:
                break
            board.push(rng.choice(moves))
        if not board.is_game_over():
            positions.append(board)
    return positions


@pytest.mark.parametrize("board", [_fools_mate(), chess.Board(STALEMATE_FEN)], ids=["mate", "stalemate"])
def test_select_returns_no_move_without_legal_moves(board: chess.Board) -> None:
    selector = MoveSelector(random.Random(1))
    result = selector.select(board, calibrate(5))
    assert result.move is NO_MOVE
    assert result.is_no_move
    assert result.tier == "none"
    assert selector.trace == [SelectorState.EVALUATING, SelectorState.DONE]
    assert selector.state == SelectorState.IDLE


def test_select_walks_state_machine_and_returns_to_idle() -> None:
    selector = MoveSelector(random.Random(2))
    result = selector.select(chess.Board(), calibrate(5))
    assert selector.trace == [
        SelectorState.EVALUATING,
        SelectorState.SAMPLING,
        SelectorState.DONE,
    ]
    assert selector.state == SelectorState.IDLE
    assert result.tier in {"blunder", "suboptimal", "top"}
    assert result.rank is not None


def test_selected_moves_are_legal_in_random_positions() -> None:
    rng = random.Random(3)
    selector = MoveSelector(random.Random(4))
    for board in _random_positions(100, seed=5):
        fen = board.fen()
        result = selector.select(board, calibrate(rng.randint(1, 10)))
        assert result.move in board.legal_moves
        assert board.fen() == fen


def test_rank_moves_is_sorted_and_complete() -> None:
    board = chess.Board()
    ranking = MoveSelector(random.Random(6)).rank_moves(board, calibrate(10))
    scores = [item.score for item in ranking]
    assert scores == sorted(scores, reverse=True)
    assert {item.move for item in ranking} == set(board.legal_moves)
    assert {ranking[0].move.uci(), ranking[1].move.uci()} == {"g1f3", "b1c3"}


def test_same_seed_same_choices() -> None:
    board = chess.Board()
    first = MoveSelector(random.Random(9))
    second = MoveSelector(random.Random(9))
    picks_a = [first.select(board, calibrate(3)).move for _ in range(20)]
    picks_b = [second.select(board, calibrate(3)).move for _ in range(20)]
    assert picks_a == picks_b


def test_selector_logs_its_choice() -> None:
    messages = []
    MoveSelector(random.Random(0), logger=messages.append).select(chess.Board(), calibrate(10))
    assert messages and messages[0].startswith("selector level=10")


def test_extend_principal_variation_follows_first_move() -> None:
    board = chess.Board()
    first = chess.Move.from_uci("e2e4")
    line = extend_principal_variation(board, first, 3, random.Random(7))
    assert line[0] == first
    assert 1 <= len(line) <= 4
    probe = board.copy()
    for move in line:
        assert move in probe.legal_moves
        probe.push(move)
    assert board.fen() == chess.STARTING_FEN


def test_extend_principal_variation_stops_at_game_end() -> None:
    board = chess.Board()
    for san in ("f3", "e5", "g4"):
        board.push_san(san)
    mate = chess.Move.from_uci("d8h4")
    assert extend_principal_variation(board, mate, 3) == [mate]


@pytest.mark.statistical
def test_strongest_level_plays_a_top_three_move() -> None:
    board = chess.Board()
    profile = calibrate(10)
    ranking = MoveSelector(random.Random(0)).rank_moves(board, profile)
    threshold = ranking[2].score
    acceptable = {item.move for item in ranking if item.score >= threshold}

    selector = MoveSelector(random.Random(2024))
    hits = sum(selector.select(board, profile).move in acceptable for _ in range(TRIALS))
    assert hits >= 95


@pytest.mark.statistical
def test_weakest_level_often_plays_outside_the_top_half() -> None:
    board = chess.Board()
    profile = calibrate(1)
    ranking = MoveSelector(random.Random(0)).rank_moves(board, profile)
    threshold = ranking[len(ranking) // 2 - 1].score
    weak_moves = {item.move for item in ranking if item.score < threshold}

    selector = MoveSelector(random.Random(2024))
    hits = sum(selector.select(board, profile).move in weak_moves for _ in range(TRIALS))
    assert hits >= 25
