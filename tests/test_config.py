import pytest

from kibitz.config import ConfigRegistry, EngineConfig


def test_resolve_known_presets() -> None:
    assert set(ConfigRegistry.names()) == {"default", "instant", "relaxed"}
    instant = ConfigRegistry.resolve("instant")
    assert instant.latency_seconds(1000) == 0
    assert instant.analysis_round_delay_ms == 0


def test_resolve_unknown_preset_raises() -> None:
    with pytest.raises(ValueError):
        ConfigRegistry.resolve("blitz")


def test_latency_is_capped() -> None:
    config = EngineConfig()
    assert config.latency_seconds(200) == pytest.approx(0.01)
    assert config.latency_seconds(1000) == pytest.approx(0.05)
    # movetime beyond the cap still waits at most max_latency_ms
    assert config.latency_seconds(60000) == pytest.approx(0.05)
    assert config.latency_seconds(-5) == 0


def test_clamp_repairs_out_of_range_values() -> None:
    config = EngineConfig(default_skill_level=42, analysis_rounds=0, latency_factor=3.0).clamp()
    assert config.default_skill_level == 10
    assert config.analysis_rounds == 1
    assert config.latency_factor == 1.0
