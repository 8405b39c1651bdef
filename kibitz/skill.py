"""Skill levels and the noise profile each one samples moves with."""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

MIN_LEVEL = 1
MAX_LEVEL = 10
TACTICS_MIN_RATING = 1400


@dataclass(slots=True, frozen=True)
class SkillProfile:
    level: int
    target_rating: int
    blunder_probability: float
    sub_optimal_probability: float
    top_fraction: float
    rank_decay: float
    sub_optimal_band: Optional[Tuple[float, float]] = None
    stockfish_skill: int = 0

    @property
    def tactics_enabled(self) -> bool:
        return self.target_rating >= TACTICS_MIN_RATING


# level: (rating, blunder, sub-optimal, top fraction, rank decay, band, 0-20 skill)
_SKILL_TABLE: Dict[int, Tuple] = {
    1: (800, 0.30, 0.40, 0.60, 0.80, (0.6, 1.0), 0),
    2: (1000, 0.20, 0.15, 0.60, 0.75, (0.3, 0.7), 2),
    3: (1200, 0.15, 0.15, 0.75, 0.70, (0.3, 0.7), 4),
    4: (1400, 0.08, 0.07, 0.80, 0.60, (0.1, 0.4), 6),
    5: (1600, 0.05, 0.05, 0.88, 0.50, (0.1, 0.4), 8),
    6: (1800, 0.03, 0.0, 0.90, 0.40, None, 10),
    7: (2000, 0.03, 0.0, 0.92, 0.35, None, 13),
    8: (2200, 0.015, 0.0, 0.94, 0.30, None, 16),
    9: (2400, 0.012, 0.0, 0.96, 0.25, None, 18),
    10: (2600, 0.01, 0.0, 0.98, 0.20, None, 20),
}


def clamp_level(level: int) -> int:
    return max(MIN_LEVEL, min(MAX_LEVEL, int(level)))


def calibrate(level: int) -> SkillProfile:
    level = clamp_level(level)
    rating, blunder, sub_optimal, top_fraction, decay, band, stockfish_skill = _SKILL_TABLE[level]
    return SkillProfile(
        level=level,
        target_rating=rating,
        blunder_probability=blunder,
        sub_optimal_probability=sub_optimal,
        top_fraction=top_fraction,
        rank_decay=decay,
        sub_optimal_band=band,
        stockfish_skill=stockfish_skill,
    )


def strongest_profile() -> SkillProfile:
    return calibrate(MAX_LEVEL)


def level_for_stockfish_skill(value: int) -> int:
    """Map a 0-20 "Skill Level" option value onto the 1-10 scale."""
    value = max(0, min(20, int(value)))
    chosen = MIN_LEVEL
    for level, row in sorted(_SKILL_TABLE.items()):
        if row[6] <= value:
            chosen = level
    return chosen


def level_for_elo(rating: int) -> int:
    chosen = MIN_LEVEL
    for level, row in sorted(_SKILL_TABLE.items()):
        if row[0] <= rating:
            chosen = level
    return chosen
