"""Public package interface for the Kibitz engine."""

from .analysis import (
    GameReport,
    MoveClassification,
    PlyAnalysis,
    analyze_game,
    build_game_report,
    classify_move,
)
from .config import ConfigRegistry, EngineConfig
from .engine import EngineSession, Evaluation, RequestTicket
from .evaluation import evaluate_position, score_move
from .main import main
from .position import FenSpec, StartposWithMoves, reconstruct
from .selector import NO_MOVE, MoveSelector, SelectionResult, extend_principal_variation
from .skill import SkillProfile, calibrate

__all__ = [
    "ConfigRegistry",
    "EngineConfig",
    "EngineSession",
    "Evaluation",
    "FenSpec",
    "GameReport",
    "MoveClassification",
    "MoveSelector",
    "NO_MOVE",
    "PlyAnalysis",
    "RequestTicket",
    "SelectionResult",
    "SkillProfile",
    "StartposWithMoves",
    "analyze_game",
    "build_game_report",
    "calibrate",
    "classify_move",
    "evaluate_position",
    "extend_principal_variation",
    "main",
    "reconstruct",
    "score_move",
]
