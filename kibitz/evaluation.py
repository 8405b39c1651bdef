"""Single-ply move scoring and static position evaluation.

Every term is a small function of the position before the move, the position
after it, and the move's :class:`~kibitz.chess_logic.MoveFacts`, so each can be
checked on its own. :func:`score_move` adds them up. Nothing here is random;
the selector owns the only RNG.
"""

from typing import Dict, List

import chess

from .chess_logic import MoveFacts, describe_move
from .skill import SkillProfile

# Basic centipawn piece values
PIECE_VALUES: Dict[int, int] = {
    chess.PAWN: 100,
    chess.KNIGHT: 320,
    chess.BISHOP: 330,
    chess.ROOK: 500,
    chess.QUEEN: 900,
    chess.KING: 0,
}

# Move scoring constants (centipawns)
CHECK_BONUS = 50
CHECKMATE_BONUS = 10000
STALEMATE_PENALTY = 100
CASTLE_BONUS = 80
KING_CENTRALISATION_PENALTY = 40
KING_SAFETY_FULLMOVE_LIMIT = 15
CENTER_BONUS = 30
CENTER_RING_BONUS = 15
DEVELOPMENT_BONUS = 40
REPEAT_MOVE_PENALTY = 20
DEVELOPMENT_PLY_LIMIT = 20
FORK_BONUS = 80
DEFENDER_BONUS = 8
MAX_COUNTED_DEFENDERS = 3
HANGING_PIECE_FACTOR = 0.3
PLACEMENT_DIVISOR = 10.0

# Static evaluation constants
MATE_SCORE = 10000
MOBILITY_WEIGHT = 3
IN_CHECK_PENALTY = 50

CENTER_SQUARES = [chess.D4, chess.E4, chess.D5, chess.E5]
CENTER_RING = [
    chess.C3,
    chess.D3,
    chess.E3,
    chess.F3,
    chess.C4,
    chess.F4,
    chess.C5,
    chess.F5,
    chess.C6,
    chess.D6,
    chess.E6,
    chess.F6,
]

# Files c-f, ranks 3-6
KING_DANGER_ZONE = chess.SquareSet(
    chess.BB_FILE_C | chess.BB_FILE_D | chess.BB_FILE_E | chess.BB_FILE_F
) & chess.SquareSet(
    chess.BB_RANK_3 | chess.BB_RANK_4 | chess.BB_RANK_5 | chess.BB_RANK_6
)

MINOR_PIECE_HOMES = {
    chess.WHITE: {
        chess.B1: chess.KNIGHT,
        chess.G1: chess.KNIGHT,
        chess.C1: chess.BISHOP,
        chess.F1: chess.BISHOP,
    },
    chess.BLACK: {
        chess.B8: chess.KNIGHT,
        chess.G8: chess.KNIGHT,
        chess.C8: chess.BISHOP,
        chess.F8: chess.BISHOP,
    },
}

FORK_TARGETS = (chess.ROOK, chess.QUEEN, chess.KING)

# Rank 8 first; white squares are looked up through square ^ 56
PIECE_SQUARE_TABLES: Dict[int, List[int]] = {
    chess.PAWN: [
        0, 0, 0, 0, 0, 0, 0, 0,
        50, 50, 50, 50, 50, 50, 50, 50,
        10, 10, 20, 30, 30, 20, 10, 10,
        5, 5, 10, 25, 25, 10, 5, 5,
        0, 0, 0, 20, 20, 0, 0, 0,
        5, -5, -10, 0, 0, -10, -5, 5,
        5, 10, 10, -20, -20, 10, 10, 5,
        0, 0, 0, 0, 0, 0, 0, 0,
    ],
    chess.KNIGHT: [
        -50, -40, -30, -30, -30, -30, -40, -50,
        -40, -20, 0, 0, 0, 0, -20, -40,
        -30, 0, 10, 15, 15, 10, 0, -30,
        -30, 5, 15, 20, 20, 15, 5, -30,
        -30, 0, 15, 20, 20, 15, 0, -30,
        -30, 5, 10, 15, 15, 10, 5, -30,
        -40, -20, 0, 5, 5, 0, -20, -40,
        -50, -40, -30, -30, -30, -30, -40, -50,
    ],
}


def ply_index(board: chess.Board) -> int:
    return (board.fullmove_number - 1) * 2 + (0 if board.turn == chess.WHITE else 1)


def material_gain(facts: MoveFacts) -> float:
    gain = 0.0
    if facts.captured is not None:
        gain += PIECE_VALUES[facts.captured]
    if facts.promotion is not None:
        gain += PIECE_VALUES[facts.promotion] - PIECE_VALUES[chess.PAWN]
    return gain


def check_bonus(facts: MoveFacts, after: chess.Board) -> float:
    if facts.is_mate:
        return CHECKMATE_BONUS + CHECK_BONUS
    if facts.is_check:
        return CHECK_BONUS
    if after.is_stalemate():
        return -STALEMATE_PENALTY
    return 0.0


def king_safety(board: chess.Board, facts: MoveFacts) -> float:
    if facts.is_castle:
        return CASTLE_BONUS
    if (
        facts.piece == chess.KING
        and board.fullmove_number < KING_SAFETY_FULLMOVE_LIMIT
        and facts.to_square in KING_DANGER_ZONE
    ):
        return -KING_CENTRALISATION_PENALTY
    return 0.0


def center_control(facts: MoveFacts) -> float:
    if facts.to_square in CENTER_SQUARES:
        return CENTER_BONUS
    if facts.to_square in CENTER_RING:
        return CENTER_RING_BONUS
    return 0.0


def has_moved_before(board: chess.Board, square: chess.Square) -> bool:
    """Whether the side to move already brought a piece to ``square`` this game."""
    root_turn = board.root().turn if board.move_stack else board.turn
    for index, previous in enumerate(board.move_stack):
        mover = root_turn if index % 2 == 0 else not root_turn
        if mover == board.turn and previous.to_square == square:
            return True
    return False


def development(board: chess.Board, facts: MoveFacts) -> float:
    if ply_index(board) >= DEVELOPMENT_PLY_LIMIT:
        return 0.0
    score = 0.0
    homes = MINOR_PIECE_HOMES[board.turn]
    if homes.get(facts.from_square) == facts.piece:
        score += DEVELOPMENT_BONUS
    if has_moved_before(board, facts.from_square):
        score -= REPEAT_MOVE_PENALTY
    return score


def placement(facts: MoveFacts, color: chess.Color) -> float:
    table = PIECE_SQUARE_TABLES.get(facts.piece)
    if table is None:
        return 0.0
    index = facts.to_square ^ 56 if color == chess.WHITE else facts.to_square
    return table[index] / PLACEMENT_DIVISOR


def fork_bonus(after: chess.Board, square: chess.Square) -> float:
    piece = after.piece_at(square)
    if piece is None:
        return 0.0
    targets = 0
    for attacked in after.attacks(square):
        victim = after.piece_at(attacked)
        if victim and victim.color != piece.color and victim.piece_type in FORK_TARGETS:
            targets += 1
    return FORK_BONUS if targets >= 2 else 0.0


def defender_bonus(after: chess.Board, square: chess.Square) -> float:
    piece = after.piece_at(square)
    if piece is None:
        return 0.0
    defenders = len(after.attackers(piece.color, square))
    return DEFENDER_BONUS * min(defenders, MAX_COUNTED_DEFENDERS)


def safety_penalty(after: chess.Board, square: chess.Square) -> float:
    """Penalty for leaving the piece on ``square`` en prise to a legal reply."""
    piece = after.piece_at(square)
    if piece is None:
        return 0.0
    mask = chess.BB_SQUARES[square]
    if (
        piece.piece_type == chess.PAWN
        and after.ep_square is not None
        and chess.square_file(after.ep_square) == chess.square_file(square)
    ):
        # a double-pushed pawn is captured en passant on the square behind it
        mask |= chess.BB_SQUARES[after.ep_square]
    replies = (
        reply
        for reply in after.generate_legal_moves(to_mask=mask)
        if reply.to_square == square or after.is_en_passant(reply)
    )
    if next(replies, None) is None:
        return 0.0
    return -PIECE_VALUES[piece.piece_type] * HANGING_PIECE_FACTOR


def score_move(board: chess.Board, move: chess.Move, profile: SkillProfile) -> float:
    """Score ``move`` for the side to move; ``board`` is restored before returning."""
    facts = describe_move(board, move)
    mover = board.turn

    score = material_gain(facts)
    score += king_safety(board, facts)
    score += center_control(facts)
    score += development(board, facts)
    score += placement(facts, mover)

    board.push(move)
    try:
        score += check_bonus(facts, board)
        if profile.tactics_enabled:
            score += fork_bonus(board, move.to_square)
            score += defender_bonus(board, move.to_square)
        score += safety_penalty(board, move.to_square)
    finally:
        board.pop()
    return score


def _count_legal_moves(board: chess.Board, color: chess.Color) -> int:
    if board.turn == color:
        return board.legal_moves.count()
    mirror = board.copy(stack=False)
    mirror.turn = color
    mirror.ep_square = None
    return mirror.legal_moves.count()


def material_balance(board: chess.Board) -> int:
    balance = 0
    for piece in board.piece_map().values():
        value = PIECE_VALUES[piece.piece_type]
        balance += value if piece.color == chess.WHITE else -value
    return balance


def evaluate_position(board: chess.Board) -> int:
    """Static centipawn score from the side to move's perspective."""
    if board.is_checkmate():
        return -MATE_SCORE
    if board.is_stalemate() or board.is_insufficient_material():
        return 0

    white_score = material_balance(board)
    white_score += MOBILITY_WEIGHT * (
        _count_legal_moves(board, chess.WHITE) - _count_legal_moves(board, chess.BLACK)
    )
    if board.is_check():
        white_score += -IN_CHECK_PENALTY if board.turn == chess.WHITE else IN_CHECK_PENALTY
    return white_score if board.turn == chess.WHITE else -white_score
