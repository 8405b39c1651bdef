"""Typed UCI-style command grammar and response line formatting."""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Union

import chess

from .position import PositionSpec, StartposWithMoves, parse_position_args


@dataclass(frozen=True)
class Uci:
    pass


@dataclass(frozen=True)
class IsReady:
    pass


@dataclass(frozen=True)
class NewGame:
    pass


@dataclass(frozen=True)
class Debug:
    enabled: Optional[bool]


@dataclass(frozen=True)
class SetOption:
    name: str
    value: str = ""


@dataclass(frozen=True)
class SetPosition:
    spec: PositionSpec = field(default_factory=StartposWithMoves)


@dataclass(frozen=True)
class Go:
    movetime: Optional[int] = None
    depth: Optional[int] = None
    wtime: Optional[int] = None
    btime: Optional[int] = None
    winc: Optional[int] = None
    binc: Optional[int] = None
    movestogo: Optional[int] = None
    infinite: bool = False

    @property
    def is_analysis(self) -> bool:
        return self.depth is not None


@dataclass(frozen=True)
class Stop:
    pass


@dataclass(frozen=True)
class Quit:
    pass


@dataclass(frozen=True)
class Unknown:
    text: str


Command = Union[Uci, IsReady, NewGame, Debug, SetOption, SetPosition, Go, Stop, Quit, Unknown]

GO_INT_KEYS = {"wtime", "btime", "winc", "binc", "movestogo", "movetime", "depth"}


def parse_go_args(args: str) -> Go:
    parsed: Dict[str, int] = {}
    infinite = False
    iterator = iter(args.split())
    for token in iterator:
        key = token.lower()
        if key in GO_INT_KEYS:
            try:
                parsed[key] = int(next(iterator))
            except (StopIteration, ValueError):
                continue
        elif key == "infinite":
            infinite = True
    return Go(infinite=infinite, **parsed)


def parse_setoption_args(args: str) -> SetOption:
    tokens = args.split()
    lowered = [token.lower() for token in tokens]
    if "name" not in lowered:
        # short form: "setoption skill 7"
        name = tokens[0] if tokens else ""
        return SetOption(name=name, value=" ".join(tokens[1:]))

    name_index = lowered.index("name")
    if "value" in lowered:
        value_index = lowered.index("value")
        name = " ".join(tokens[name_index + 1:value_index])
        value = " ".join(tokens[value_index + 1:])
    else:
        name = " ".join(tokens[name_index + 1:])
        value = ""
    return SetOption(name=name, value=value)


def parse_debug_args(args: str) -> Debug:
    setting = args.strip().lower()
    if setting == "on":
        return Debug(True)
    if setting == "off":
        return Debug(False)
    return Debug(None)


_PARSERS: Dict[str, Callable[[str], Command]] = {
    "uci": lambda _: Uci(),
    "isready": lambda _: IsReady(),
    "ucinewgame": lambda _: NewGame(),
    "debug": parse_debug_args,
    "setoption": parse_setoption_args,
    "position": lambda args: SetPosition(parse_position_args(args.split())),
    "go": parse_go_args,
    "stop": lambda _: Stop(),
    "quit": lambda _: Quit(),
    "terminate": lambda _: Quit(),
}


def parse_command(line: str) -> Optional[Command]:
    """Parse one protocol line; blank lines yield ``None``."""
    line = line.strip()
    if not line:
        return None
    parts = line.split(" ", 1)
    name = parts[0].lower()
    args = parts[1] if len(parts) > 1 else ""
    parser = _PARSERS.get(name)
    if parser is None:
        return Unknown(line)
    return parser(args)


def format_bestmove(move: Optional[chess.Move]) -> str:
    if move is None:
        return "bestmove (none)"
    return f"bestmove {move.uci()}"


def format_info(
    depth: int,
    score_cp: int,
    nodes: int,
    nps: int,
    time_ms: int,
    pv: Sequence[chess.Move],
    mate: Optional[int] = None,
) -> str:
    score = f"mate {mate}" if mate is not None else f"cp {score_cp}"
    line = f"info depth {depth} score {score} nodes {nodes} nps {nps} time {time_ms}"
    if pv:
        line += " pv " + " ".join(move.uci() for move in pv)
    return line


def parse_info(line: str) -> Dict[str, Union[int, str, List[str]]]:
    """Read the fields of an ``info`` line back into a dict."""
    parts = line.split()
    info: Dict[str, Union[int, str, List[str]]] = {}
    index = 1
    while index < len(parts):
        key = parts[index]
        if key == "score" and index + 2 < len(parts):
            info["score_type"] = parts[index + 1]
            info["score"] = int(parts[index + 2])
            index += 3
        elif key == "pv":
            info["pv"] = parts[index + 1:]
            break
        elif key == "string":
            info["string"] = " ".join(parts[index + 1:])
            break
        elif index + 1 < len(parts):
            try:
                info[key] = int(parts[index + 1])
            except ValueError:
                info[key] = parts[index + 1]
            index += 2
        else:
            index += 1
    return info
