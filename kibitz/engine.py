import asyncio
import math
import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

import chess

from .chess_logic import game_result
from .config import EngineConfig
from .evaluation import MATE_SCORE, evaluate_position, safety_penalty
from .position import FenSpec, PositionSpec, StartposWithMoves, reconstruct
from .protocol import (
    Command,
    Debug,
    Go,
    IsReady,
    NewGame,
    Quit,
    SetOption,
    SetPosition,
    Stop,
    Uci,
    Unknown,
    format_bestmove,
    format_info,
    parse_command,
)
from .selector import MoveSelector, ScoredMove, extend_principal_variation
from .skill import (
    SkillProfile,
    calibrate,
    clamp_level,
    level_for_elo,
    level_for_stockfish_skill,
    strongest_profile,
)

BestMoveCallback = Callable[[Optional[str]], None]


@dataclass(frozen=True)
class Evaluation:
    depth: int
    score_centipawns: int
    best_move: Optional[chess.Move]
    principal_variation: List[chess.Move]
    nodes: int
    nps: int
    elapsed_ms: int
    mate: Optional[int] = None

    @property
    def score_pawns(self) -> float:
        return self.score_centipawns / 100.0

    def info_line(self) -> str:
        return format_info(
            self.depth,
            self.score_centipawns,
            self.nodes,
            self.nps,
            self.elapsed_ms,
            self.principal_variation,
            mate=self.mate,
        )


EvaluationCallback = Callable[[Evaluation], None]


class RequestTicket:
    """Handle for one ``go`` request.

    The session checks :attr:`live` when a scheduled emission fires, so a
    ticket cancelled after scheduling never reaches its callback.
    """

    def __init__(self, request_id: int, kind: str, loop: asyncio.AbstractEventLoop) -> None:
        self.request_id = request_id
        self.kind = kind
        self._future: asyncio.Future = loop.create_future()
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def done(self) -> bool:
        return self._future.done()

    @property
    def live(self) -> bool:
        return not self._cancelled and not self._future.done()

    def cancel(self) -> bool:
        if not self.live:
            return False
        self._cancelled = True
        self._future.cancel()
        return True

    def _resolve(self, value: Any) -> None:
        if not self._future.done():
            self._future.set_result(value)

    async def result(self) -> Any:
        """Wait for the request; raises ``asyncio.CancelledError`` if it was stopped."""
        return await self._future

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else ("done" if self.done else "pending")
        return f"<RequestTicket {self.request_id} {self.kind} {state}>"


@dataclass
class _AnalysisJob:
    spec: PositionSpec
    depth: int
    rounds: int
    callback: Optional[EvaluationCallback]
    board: Optional[chess.Board] = None
    ranking: List[ScoredMove] = field(default_factory=list)
    nodes: int = 0
    started: float = 0.0


class EngineSession:
    """
    A single engine instance speaking a UCI-like protocol.

    Commands are parsed and validated synchronously; ``go`` results are
    delivered from timers on the running asyncio loop. Sessions share no
    state, so any number can run side by side.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        *,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
        output: Optional[Callable[[str], None]] = None,
        logger: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.config = (config or EngineConfig()).clamp()
        self.rng = rng or random.Random(seed)
        self._output = output or (lambda line: print(line, flush=True))
        self._logger = logger
        self.debug = self.config.debug

        # Engine state
        self.ready = False
        self.terminated = False
        self.position_spec: PositionSpec = StartposWithMoves()
        self.profile: SkillProfile = calibrate(self.config.default_skill_level)
        self.selector = MoveSelector(self.rng, logger=self._log_debug)
        self._current: Optional[RequestTicket] = None
        self._next_request_id = 1

        # Dispatch table mapping command types to handler methods
        self.dispatch_table = {
            Uci: self.handle_uci,
            IsReady: self.handle_isready,
            NewGame: self.handle_ucinewgame,
            Debug: self.handle_debug,
            SetOption: self.handle_setoption,
            SetPosition: self.handle_position,
            Go: self.handle_go,
            Stop: self.handle_stop,
            Quit: self.handle_quit,
            Unknown: self.handle_unknown,
        }

    # ------------------------------------------------------------------
    # Output and logging
    # ------------------------------------------------------------------

    def _emit(self, line: str) -> None:
        self._output(line)

    def _log_debug(self, message: str) -> None:
        if self._logger is not None:
            self._logger(message)
        if not self.debug:
            return
        for line in message.splitlines():
            self._emit(f"info string {line}")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_ready(self) -> bool:
        return self.ready and not self.terminated

    @property
    def skill_level(self) -> int:
        return self.profile.level

    @property
    def pending(self) -> Optional[RequestTicket]:
        if self._current is not None and self._current.live:
            return self._current
        return None

    def initialize(self) -> bool:
        if self.terminated:
            self._log_debug("engine terminated, initialize ignored")
            return False
        self.ready = True
        self.profile = calibrate(self.config.default_skill_level)
        self._log_debug(
            f"{self.config.engine_name} initialised at level {self.profile.level} "
            f"(ELO {self.profile.target_rating})"
        )
        return True

    def terminate(self) -> None:
        if self.terminated:
            return
        self._cancel_current("terminate")
        self._log_debug("Engine shutting down")
        self.ready = False
        self.terminated = True

    # ------------------------------------------------------------------
    # Command surface
    # ------------------------------------------------------------------

    def send(self, line: str) -> Optional[RequestTicket]:
        command = parse_command(line)
        if command is None:
            return None
        return self.handle(command)

    def handle(self, command: Command) -> Optional[RequestTicket]:
        if not self.is_ready:
            state = "terminated" if self.terminated else "not ready"
            self._log_debug(f"engine {state}, ignoring {type(command).__name__}")
            return None
        handler = self.dispatch_table.get(type(command), self.handle_unknown)
        try:
            return handler(command)
        except Exception as exc:
            self._log_debug(f"Error processing command: {exc}")
            return None

    def handle_uci(self, _: Uci) -> None:
        self._emit(f"id name {self.config.engine_name}")
        self._emit(f"id author {self.config.engine_author}")
        self._emit(
            "option name Skill Level type spin "
            f"default {self.profile.stockfish_skill} min 0 max 20"
        )
        self._emit(
            "option name UCI_Elo type spin "
            f"default {self.profile.target_rating} "
            f"min {calibrate(1).target_rating} max {strongest_profile().target_rating}"
        )
        self._emit("uciok")

    def handle_isready(self, _: IsReady) -> None:
        self._emit("readyok")

    def handle_ucinewgame(self, _: NewGame) -> None:
        self._cancel_current("new game")
        self.position_spec = StartposWithMoves()
        self._log_debug("New game initialized")

    def handle_debug(self, command: Debug) -> None:
        if command.enabled is None:
            self._emit("info string Invalid debug setting. Use 'on' or 'off'.")
            return
        self.debug = command.enabled
        self._emit(f"info string Debug:{self.debug}")

    def handle_setoption(self, command: SetOption) -> None:
        name = command.name.strip().lower()
        if name in ("skill", "skill level", "uci_elo"):
            try:
                value = int(command.value)
            except ValueError:
                self._log_debug(f"invalid value for option {command.name}: {command.value!r}")
                return
            if name == "skill":
                level = clamp_level(value)
            elif name == "skill level":
                level = level_for_stockfish_skill(value)
            else:
                level = level_for_elo(value)
            self.profile = calibrate(level)
            self._log_debug(
                f"skill level set to {self.profile.level} (ELO {self.profile.target_rating})"
            )
            return
        self._log_debug(f"option ignored: {command.name}")

    def handle_position(self, command: SetPosition) -> None:
        self.position_spec = command.spec
        self._log_debug(f"position set: {command.spec.to_command()}")

    def handle_go(
        self,
        command: Go,
        callback: Optional[Callable[[Any], None]] = None,
    ) -> Optional[RequestTicket]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._log_debug("go requires a running event loop")
            return None

        self._cancel_current("superseded")
        kind = "analysis" if command.is_analysis else "bestmove"
        ticket = RequestTicket(self._next_request_id, kind, loop)
        self._next_request_id += 1
        self._current = ticket

        if command.is_analysis:
            depth = max(1, min(command.depth, self.config.max_analysis_depth))
            job = _AnalysisJob(
                spec=self.position_spec,
                depth=depth,
                rounds=min(depth, self.config.analysis_rounds),
                callback=callback,
            )
            delay = self.config.analysis_round_delay_ms / 1000.0
            loop.call_later(delay, self._run_analysis_round, ticket, job, 1)
        else:
            movetime = self._resolve_movetime(command)
            delay = self.config.latency_seconds(movetime)
            loop.call_later(
                delay,
                self._deliver_best_move,
                ticket,
                self.position_spec,
                self.profile,
                callback,
            )
        self._log_debug(f"request {ticket.request_id} queued ({kind})")
        return ticket

    def handle_stop(self, _: Stop) -> None:
        self._cancel_current("stop")

    def handle_quit(self, _: Quit) -> None:
        self.terminate()

    def handle_unknown(self, command: Unknown) -> None:
        self._log_debug(f"unknown command received: '{command.text}'")

    # ------------------------------------------------------------------
    # Consumer API
    # ------------------------------------------------------------------

    def set_skill_level(self, level: int) -> None:
        self.handle(SetOption("skill", str(level)))

    def get_best_move(
        self,
        fen: str,
        time_budget_ms: int = 1000,
        callback: Optional[BestMoveCallback] = None,
    ) -> Optional[RequestTicket]:
        if not self.is_ready:
            self._log_debug("engine not ready, get_best_move ignored")
            return None
        self.handle(SetPosition(FenSpec(fen)))
        return self.handle_go(Go(movetime=time_budget_ms), callback)

    def analyze_position(
        self,
        fen: str,
        depth: int = 10,
        callback: Optional[EvaluationCallback] = None,
    ) -> Optional[RequestTicket]:
        if not self.is_ready:
            self._log_debug("engine not ready, analyze_position ignored")
            return None
        self.handle(SetPosition(FenSpec(fen)))
        return self.handle_go(Go(depth=depth), callback)

    def quick_analyze(
        self, fen: str, callback: Optional[EvaluationCallback] = None
    ) -> Optional[RequestTicket]:
        return self.analyze_position(fen, self.config.quick_analysis_depth, callback)

    def stop(self) -> None:
        self.handle(Stop())

    async def best_move(self, fen: str, time_budget_ms: int = 1000) -> Optional[str]:
        ticket = self.get_best_move(fen, time_budget_ms)
        if ticket is None:
            return None
        return await ticket.result()

    async def evaluate(self, fen: str, depth: int = 10) -> Optional[Evaluation]:
        ticket = self.analyze_position(fen, depth)
        if ticket is None:
            return None
        return await ticket.result()

    # ------------------------------------------------------------------
    # Scheduled emissions
    # ------------------------------------------------------------------

    def _cancel_current(self, reason: str) -> None:
        ticket = self._current
        self._current = None
        if ticket is not None and ticket.cancel():
            self._log_debug(f"request {ticket.request_id} cancelled ({reason})")

    def _deliverable(self, ticket: RequestTicket) -> bool:
        if self.terminated or not ticket.live or self._current is not ticket:
            self._log_debug(f"request {ticket.request_id} suppressed")
            return False
        return True

    def _finish(self, ticket: RequestTicket, value: Any, callback: Optional[Callable[[Any], None]]) -> None:
        ticket._resolve(value)
        if self._current is ticket:
            self._current = None
        if callback is None:
            return
        try:
            callback(value)
        except Exception as exc:
            self._log_debug(f"callback error for request {ticket.request_id}: {exc}")

    def _resolve_movetime(self, command: Go) -> int:
        if command.movetime is not None:
            return command.movetime
        turn = reconstruct(self.position_spec).turn
        time_left = command.wtime if turn == chess.WHITE else command.btime
        increment = command.winc if turn == chess.WHITE else command.binc
        if time_left is not None:
            moves_to_go = command.movestogo or 40
            return max(1, time_left // max(1, moves_to_go) + (increment or 0))
        return self.config.default_movetime_ms

    def _deliver_best_move(
        self,
        ticket: RequestTicket,
        spec: PositionSpec,
        profile: SkillProfile,
        callback: Optional[BestMoveCallback],
    ) -> None:
        if not self._deliverable(ticket):
            return

        started = time.perf_counter()
        board = reconstruct(spec, self._log_debug)
        nodes = 0
        try:
            result = self.selector.select(board, profile)
            move = result.move
            nodes = len(result.ranking)
        except Exception as exc:
            self._log_debug(f"Error generating move: {exc}")
            legal = list(board.legal_moves)
            move = self.rng.choice(legal) if legal else None

        if move is not None:
            after = board.copy()
            after.push(move)
            score = -evaluate_position(after)
            mate = 1 if after.is_checkmate() else None
            elapsed_ms = max(1, int((time.perf_counter() - started) * 1000))
            self._emit(
                format_info(
                    1,
                    MATE_SCORE if mate else score,
                    max(1, nodes),
                    max(1, nodes) * 1000 // elapsed_ms,
                    elapsed_ms,
                    [move],
                    mate=mate,
                )
            )
        else:
            self._log_debug(f"no legal move: {game_result(board)}")
        self._emit(format_bestmove(move))
        self._finish(ticket, move.uci() if move is not None else None, callback)

    def _run_analysis_round(self, ticket: RequestTicket, job: _AnalysisJob, round_index: int) -> None:
        if not self._deliverable(ticket):
            return

        try:
            evaluation = self._analysis_round(job, round_index)
        except Exception as exc:
            self._log_debug(f"Error analysing position: {exc}")
            self._emit(format_bestmove(None))
            self._finish(ticket, None, None)
            return

        self._emit(evaluation.info_line())
        if round_index >= job.rounds:
            self._emit(format_bestmove(evaluation.best_move))
            self._finish(ticket, evaluation, job.callback)
            return

        loop = asyncio.get_running_loop()
        delay = self.config.analysis_round_delay_ms / 1000.0
        loop.call_later(delay, self._run_analysis_round, ticket, job, round_index + 1)

    def _analysis_round(self, job: _AnalysisJob, round_index: int) -> Evaluation:
        if job.board is None:
            job.started = time.perf_counter()
            job.board = reconstruct(job.spec, self._log_debug)
            job.ranking = self.selector.rank_moves(job.board, strongest_profile())
            job.nodes += len(job.ranking)

        board = job.board
        depth = math.ceil(job.depth * round_index / job.rounds)

        if not job.ranking:
            score = evaluate_position(board)
            return Evaluation(
                depth=depth,
                score_centipawns=score,
                best_move=None,
                principal_variation=[],
                nodes=max(1, job.nodes),
                nps=0,
                elapsed_ms=self._elapsed_ms(job),
                mate=0 if board.is_checkmate() else None,
            )

        candidates = job.ranking[: round_index * self.config.candidate_breadth]
        best_move: Optional[chess.Move] = None
        best_value = -math.inf
        mate: Optional[int] = None
        probe = board.copy()
        for scored in candidates:
            probe.push(scored.move)
            try:
                job.nodes += 1
                if probe.is_checkmate():
                    best_move, best_value, mate = scored.move, float(MATE_SCORE), 1
                    break
                value = -evaluate_position(probe) + safety_penalty(probe, scored.move.to_square)
            finally:
                probe.pop()
            if value > best_value:
                best_move, best_value = scored.move, value

        plies = min(self.config.pv_plies, depth - 1)
        pv = extend_principal_variation(board, best_move, plies, self.rng)
        job.nodes += len(pv) - 1
        elapsed_ms = self._elapsed_ms(job)
        return Evaluation(
            depth=depth,
            score_centipawns=int(round(best_value)),
            best_move=best_move,
            principal_variation=pv,
            nodes=job.nodes,
            nps=job.nodes * 1000 // elapsed_ms,
            elapsed_ms=elapsed_ms,
            mate=mate,
        )

    @staticmethod
    def _elapsed_ms(job: _AnalysisJob) -> int:
        return max(1, int((time.perf_counter() - job.started) * 1000))
