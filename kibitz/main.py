import argparse
import asyncio
import contextlib
import sys
from dataclasses import replace
from typing import Callable, List, Optional, Sequence

import chess

from .analysis import GameReport, analyze_game, build_game_report, replay_game
from .chess_logic import move_history_san
from .config import ConfigRegistry, EngineConfig
from .engine import EngineSession
from .utils import debug_text, info_text, received_text, render_board, sending_text


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Kibitz: a skill-limited chess engine speaking a UCI-like protocol."
    )
    parser.add_argument(
        "--preset",
        default="default",
        choices=ConfigRegistry.names(),
        help="Engine configuration preset",
    )
    parser.add_argument("--skill", type=int, help="Skill level 1-10")
    parser.add_argument("--seed", type=int, help="Seed the engine's random source")
    parser.add_argument("-dev", action="store_true", help="Enable debug mode")
    parser.add_argument(
        "--analyze",
        nargs="+",
        metavar="MOVE",
        help="Analyse a game given as UCI or SAN moves, print a report and exit",
    )
    parser.add_argument("-fen", help="Starting position for --analyze")
    parser.add_argument("--depth", type=int, help="Analysis depth for --analyze")
    return parser.parse_args(list(argv) if argv is not None else None)


def build_session(
    args: argparse.Namespace,
    output: Optional[Callable[[str], None]] = None,
) -> EngineSession:
    config: EngineConfig = ConfigRegistry.resolve(args.preset)
    if args.dev:
        config = replace(config, debug=True)
    session = EngineSession(config, seed=args.seed, output=output)
    session.initialize()
    if args.skill is not None:
        session.set_skill_level(args.skill)
    return session


async def run_uci_loop(
    session: EngineSession,
    read_line: Callable[[], str] = sys.stdin.readline,
) -> None:
    """Feed protocol lines to ``session`` until ``quit`` or end of input."""
    while not session.terminated:
        line = await asyncio.to_thread(read_line)
        if not line:
            break
        if session.debug:
            print(received_text(line.strip()), file=sys.stderr)
        session.send(line)

    pending = session.pending
    if pending is not None:
        # let a search started just before EOF finish
        with contextlib.suppress(asyncio.CancelledError):
            await pending.result()
    session.terminate()


def format_report(report: GameReport) -> List[str]:
    lines = []
    for ply in report.plies:
        score = f"#{ply.mate}" if ply.mate else f"{ply.evaluation:+.2f}"
        suggestion = f" (best {ply.best_move})" if ply.best_move and ply.best_move != ply.san else ""
        lines.append(
            f"{ply.label:<12} {score:>7}  {ply.classification.value:<10} "
            f"{ply.accuracy:5.1f}%{suggestion}"
        )
    for color, name in ((chess.WHITE, "White"), (chess.BLACK, "Black")):
        lines.append(
            f"{name}: accuracy {report.average_accuracy(color):.1f}%, "
            f"blunders {report.blunders(color)}"
        )
    return lines


async def run_analysis(session: EngineSession, args: argparse.Namespace) -> GameReport:
    moves = args.analyze
    board = replay_game(moves, args.fen)
    played = board.move_stack
    if len(played) < len(moves):
        print(debug_text(f"analysis stops at illegal move {moves[len(played)]!r}"))

    def on_progress(fraction: float) -> None:
        print(info_text(f"analysis {fraction * 100:.0f}% complete"))

    evaluations = await analyze_game(
        session, moves, on_progress=on_progress, depth=args.depth, start_fen=args.fen
    )
    report = build_game_report(moves, evaluations, args.fen)
    print(info_text(f"moves: {move_history_san(board)}"))
    for line in format_report(report):
        print(info_text(line))

    print(render_board(board))
    return report


def _stdout_sink(dev: bool) -> Callable[[str], None]:
    def emit(line: str) -> None:
        print(line, flush=True)
        if dev:
            print(sending_text(line), file=sys.stderr)

    return emit


async def _run(args: argparse.Namespace) -> None:
    if args.analyze:
        # engine protocol lines are noise in report mode
        session = build_session(args, output=lambda line: None)
        try:
            await run_analysis(session, args)
        finally:
            session.terminate()
        return

    session = build_session(args, output=_stdout_sink(args.dev))
    if args.dev:
        print(info_text(f"{session.config.engine_name} ready at skill level {session.skill_level}"), file=sys.stderr)
    await run_uci_loop(session)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    try:
        asyncio.run(_run(args))
    except KeyboardInterrupt:
        print(info_text("interrupted"), file=sys.stderr)


if __name__ == "__main__":
    main()
