"""Whole-game analysis: one engine evaluation per ply plus a move-quality report."""

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

import chess

from .engine import EngineSession, Evaluation
from .position import FenSpec, PositionSpec, StartposWithMoves, apply_moves, reconstruct

# Centipawn loss thresholds in pawns, upper bounds inclusive
EXCELLENT_MAX_LOSS = 0.1
GOOD_MAX_LOSS = 0.25
INACCURACY_MAX_LOSS = 0.5
MISTAKE_MAX_LOSS = 1.0

ACCURACY_LOSS_WEIGHT = 10.0


class MoveClassification(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    INACCURACY = "inaccuracy"
    MISTAKE = "mistake"
    BLUNDER = "blunder"


def classify_move(current_eval: float, previous_eval: float) -> MoveClassification:
    """
    Grade a move by how much evaluation it gave away.

    Both values are in pawns from the mover's point of view: ``previous_eval``
    before the move, ``current_eval`` after it. A move that improves on the
    previous evaluation is excellent.
    """
    loss = previous_eval - current_eval
    if loss <= EXCELLENT_MAX_LOSS:
        return MoveClassification.EXCELLENT
    if loss <= GOOD_MAX_LOSS:
        return MoveClassification.GOOD
    if loss <= INACCURACY_MAX_LOSS:
        return MoveClassification.INACCURACY
    if loss <= MISTAKE_MAX_LOSS:
        return MoveClassification.MISTAKE
    return MoveClassification.BLUNDER


def move_accuracy(loss: float) -> float:
    return max(0.0, 100.0 - ACCURACY_LOSS_WEIGHT * max(0.0, loss))


def _start_board(start_fen: Optional[str]) -> chess.Board:
    spec: PositionSpec = FenSpec(start_fen) if start_fen else StartposWithMoves()
    return reconstruct(spec)


def replay_game(moves: Sequence[str], start_fen: Optional[str] = None) -> chess.Board:
    """Board after the legal prefix of ``moves`` (UCI or SAN)."""
    board = _start_board(start_fen)
    apply_moves(board, moves)
    return board


def legal_prefix(moves: Sequence[str], start_fen: Optional[str] = None) -> List[chess.Move]:
    return list(replay_game(moves, start_fen).move_stack)


async def analyze_game(
    session: EngineSession,
    moves: Sequence[str],
    on_progress: Optional[Callable[[float], None]] = None,
    depth: Optional[int] = None,
    start_fen: Optional[str] = None,
) -> List[Evaluation]:
    """
    Evaluate the position after every ply of ``moves``.

    Only the legal prefix of ``moves`` is analysed. Requests go through the
    session's command surface one at a time, so ``stop`` on the session
    cancels the ply in flight and the ``asyncio.CancelledError`` propagates.
    """
    depth = depth or session.config.game_analysis_depth
    played = [move.uci() for move in legal_prefix(moves, start_fen)]
    total = len(played)
    evaluations: List[Evaluation] = []

    for ply in range(1, total + 1):
        prefix = tuple(played[:ply])
        spec: PositionSpec = FenSpec(start_fen, prefix) if start_fen else StartposWithMoves(prefix)
        session.send(spec.to_command())
        ticket = session.send(f"go depth {depth}")
        if ticket is None:
            break
        evaluations.append(await ticket.result())
        if on_progress is not None:
            on_progress(ply / total)

    return evaluations


@dataclass(frozen=True)
class PlyAnalysis:
    ply: int
    move_number: int
    color: chess.Color
    san: str
    uci: str
    evaluation: float
    classification: MoveClassification
    accuracy: float
    best_move: Optional[str] = None
    mate: Optional[int] = None

    @property
    def label(self) -> str:
        dots = "." if self.color == chess.WHITE else "..."
        return f"{self.move_number}{dots} {self.san}"


@dataclass
class GameReport:
    plies: List[PlyAnalysis] = field(default_factory=list)

    def _for(self, color: chess.Color) -> List[PlyAnalysis]:
        return [ply for ply in self.plies if ply.color == color]

    def average_accuracy(self, color: chess.Color) -> float:
        plies = self._for(color)
        if not plies:
            return 0.0
        return sum(ply.accuracy for ply in plies) / len(plies)

    def counts(self, color: chess.Color) -> Dict[MoveClassification, int]:
        counter = Counter(ply.classification for ply in self._for(color))
        return {kind: counter.get(kind, 0) for kind in MoveClassification}

    def blunders(self, color: chess.Color) -> int:
        return self.counts(color)[MoveClassification.BLUNDER]

    @property
    def white_accuracy(self) -> float:
        return self.average_accuracy(chess.WHITE)

    @property
    def black_accuracy(self) -> float:
        return self.average_accuracy(chess.BLACK)

    @property
    def total_blunders(self) -> int:
        return self.blunders(chess.WHITE) + self.blunders(chess.BLACK)


def build_game_report(
    moves: Sequence[str],
    evaluations: Sequence[Evaluation],
    start_fen: Optional[str] = None,
) -> GameReport:
    """Pair each legal ply with its evaluation and grade it."""
    board = _start_board(start_fen)
    played = legal_prefix(moves, start_fen)
    report = GameReport()
    previous_best: Optional[Evaluation] = None

    for index, (move, evaluation) in enumerate(zip(played, evaluations)):
        mover = board.turn
        move_number = board.fullmove_number
        san = board.san(move)
        suggestion = None
        if previous_best is not None and previous_best.best_move is not None:
            if board.is_legal(previous_best.best_move):
                suggestion = board.san(previous_best.best_move)
        board.push(move)

        # evaluation is from the side to move after the ply, i.e. the opponent
        current = -evaluation.score_pawns
        previous = previous_best.score_pawns if previous_best is not None else 0.0
        loss = previous - current
        white_view = current if mover == chess.WHITE else -current

        report.plies.append(
            PlyAnalysis(
                ply=index + 1,
                move_number=move_number,
                color=mover,
                san=san,
                uci=move.uci(),
                evaluation=white_view,
                classification=classify_move(current, previous),
                accuracy=move_accuracy(loss),
                best_move=suggestion,
                mate=evaluation.mate,
            )
        )
        previous_best = evaluation

    return report
