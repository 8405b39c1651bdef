from dataclasses import dataclass, replace
from typing import Dict


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass(slots=True, frozen=True)
class EngineConfig:
    engine_name: str = "Kibitz"
    engine_author: str = "Kibitz Project"
    default_skill_level: int = 5
    # go movetime is clamped to this before latency is derived from it
    movetime_cap_ms: int = 2000
    default_movetime_ms: int = 1000
    latency_factor: float = 0.05
    max_latency_ms: int = 50
    analysis_round_delay_ms: int = 5
    analysis_rounds: int = 3
    candidate_breadth: int = 3
    max_analysis_depth: int = 10
    quick_analysis_depth: int = 5
    game_analysis_depth: int = 10
    pv_plies: int = 3
    debug: bool = False

    def clamp(self) -> "EngineConfig":
        return replace(
            self,
            default_skill_level=int(_clamp(self.default_skill_level, 1, 10)),
            movetime_cap_ms=max(1, int(self.movetime_cap_ms)),
            default_movetime_ms=max(1, int(self.default_movetime_ms)),
            latency_factor=_clamp(self.latency_factor, 0.0, 1.0),
            max_latency_ms=max(0, int(self.max_latency_ms)),
            analysis_round_delay_ms=max(0, int(self.analysis_round_delay_ms)),
            analysis_rounds=max(1, int(self.analysis_rounds)),
            candidate_breadth=max(1, int(self.candidate_breadth)),
            max_analysis_depth=max(1, int(self.max_analysis_depth)),
            quick_analysis_depth=max(1, int(self.quick_analysis_depth)),
            game_analysis_depth=max(1, int(self.game_analysis_depth)),
            pv_plies=max(0, int(self.pv_plies)),
        )

    def latency_seconds(self, movetime_ms: int) -> float:
        budget = min(max(0, movetime_ms), self.movetime_cap_ms)
        return min(budget * self.latency_factor, self.max_latency_ms) / 1000.0


class ConfigRegistry:
    PRESETS: Dict[str, EngineConfig] = {
        "default": EngineConfig(),
        # no simulated latency; used by headless analysis and the test suite
        "instant": EngineConfig(
            latency_factor=0.0,
            max_latency_ms=0,
            analysis_round_delay_ms=0,
        ),
        "relaxed": EngineConfig(
            latency_factor=0.1,
            max_latency_ms=200,
            analysis_round_delay_ms=20,
            analysis_rounds=4,
            candidate_breadth=4,
        ),
    }

    @classmethod
    def resolve(cls, preset: str) -> EngineConfig:
        if preset not in cls.PRESETS:
            raise ValueError(f"Unknown engine preset '{preset}'")
        return cls.PRESETS[preset].clamp()

    @classmethod
    def names(cls):
        return tuple(cls.PRESETS)
