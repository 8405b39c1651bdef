import math
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

import chess

from .evaluation import score_move
from .skill import SkillProfile, strongest_profile

# Rendered as "bestmove (none)"; the caller decides whether it was mate or stalemate
NO_MOVE = None


class SelectorState(str, Enum):
    IDLE = "idle"
    EVALUATING = "evaluating"
    SAMPLING = "sampling"
    DONE = "done"


@dataclass(frozen=True)
class ScoredMove:
    move: chess.Move
    score: float


@dataclass
class SelectionResult:
    move: Optional[chess.Move]
    tier: str
    ranking: List[ScoredMove] = field(default_factory=list)

    @property
    def is_no_move(self) -> bool:
        return self.move is NO_MOVE

    @property
    def rank(self) -> Optional[int]:
        for index, scored in enumerate(self.ranking):
            if scored.move == self.move:
                return index
        return None


class MoveSelector:
    """Ranks every legal move with the evaluator and samples one per skill profile."""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        logger: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.rng = rng or random.Random()
        self.state = SelectorState.IDLE
        # states visited by the most recent select() call
        self.trace: List[SelectorState] = []
        self._logger = logger or (lambda *_: None)

    def _enter(self, state: SelectorState) -> None:
        self.state = state
        self.trace.append(state)

    def rank_moves(self, board: chess.Board, profile: SkillProfile) -> List[ScoredMove]:
        probe = board.copy()
        moves = list(probe.legal_moves)
        # shuffle first so the stable sort breaks ties at random
        self.rng.shuffle(moves)
        ranking = [ScoredMove(move, score_move(probe, move, profile)) for move in moves]
        ranking.sort(key=lambda item: item.score, reverse=True)
        return ranking

    def select(self, board: chess.Board, profile: SkillProfile) -> SelectionResult:
        self.trace = []
        self._enter(SelectorState.EVALUATING)
        try:
            ranking = self.rank_moves(board, profile)
            if not ranking:
                self._enter(SelectorState.DONE)
                return SelectionResult(move=NO_MOVE, tier="none")

            self._enter(SelectorState.SAMPLING)
            move, tier = self._sample(ranking, profile)
            self._enter(SelectorState.DONE)
            self._logger(
                f"selector level={profile.level} tier={tier} move={move.uci()} "
                f"candidates={len(ranking)}"
            )
            return SelectionResult(move=move, tier=tier, ranking=ranking)
        finally:
            self.state = SelectorState.IDLE

    def _sample(self, ranking: List[ScoredMove], profile: SkillProfile):
        rng = self.rng
        count = len(ranking)

        if rng.random() < profile.blunder_probability:
            return rng.choice(ranking).move, "blunder"

        if profile.sub_optimal_probability > 0 and profile.sub_optimal_band:
            if rng.random() < profile.sub_optimal_probability:
                start, end = profile.sub_optimal_band
                band = ranking[math.ceil(count * start):math.ceil(count * end)]
                if band:
                    return rng.choice(band).move, "suboptimal"

        kept = ranking[: max(1, math.ceil(count * profile.top_fraction))]
        weights = [profile.rank_decay ** index for index in range(len(kept))]
        return rng.choices(kept, weights=weights, k=1)[0].move, "top"


def extend_principal_variation(
    board: chess.Board,
    first_move: chess.Move,
    plies: int,
    rng: Optional[random.Random] = None,
) -> List[chess.Move]:
    """Follow ``first_move`` with up to ``plies`` replies picked at full strength."""
    line = [first_move]
    probe = board.copy()
    probe.push(first_move)
    selector = MoveSelector(rng)
    profile = strongest_profile()
    for _ in range(max(0, plies)):
        if probe.is_game_over():
            break
        result = selector.select(probe, profile)
        if result.is_no_move:
            break
        line.append(result.move)
        probe.push(result.move)
    return line
