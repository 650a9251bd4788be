"""
Configuration Tests
===================

Defaults, YAML loading, environment overrides and validation failures.
"""

import pytest
from pydantic import ValidationError

from futility_core.config import (
    CurveConfig,
    DifficultyConfig,
    RulesConfig,
    Settings,
    load_config,
)
from futility_core.errors import ConfigurationError
from futility_core.signals.curves import Easing


ENV_VARS = (
    "FUTILITY_BASE_RATE",
    "FUTILITY_MAX_RATE",
    "FUTILITY_RUBBER_BAND",
    "FUTILITY_MAX_SOURCES",
    "FUTILITY_PLACEMENT_SEED",
    "FUTILITY_FRAME_RATE",
    "FUTILITY_LOG_LEVEL",
    "FUTILITY_PORT",
    "PORT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove any override variables from the test environment."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    """Tests for default tuning constants."""

    def test_difficulty_defaults(self):
        """Defaults match the tuned values."""
        cfg = DifficultyConfig()
        assert cfg.base_rate == 5.0
        assert cfg.max_rate == 100.0
        assert cfg.update_interval == 0.5
        assert cfg.rubber_band.target_block_ratio == 0.6
        assert cfg.rubber_band.strength == 0.2
        assert cfg.rubber_band.smooth_time == 5.0
        assert cfg.emission_curve.end_value == 50.0
        assert cfg.multiplier_curve.end_value == 3.0

    def test_emission_and_pressure_defaults(self):
        """Source and pressure defaults match the tuned values."""
        settings = Settings()
        assert settings.emission.max_sources == 3
        assert settings.emission.milestones == [120.0, 300.0]
        assert settings.emission.ambient_rate == 9.0
        assert settings.pressure.threshold == 100.0
        assert settings.pressure.burst_multiplier == 3.0
        assert settings.pressure.cooldown == 12.0
        assert settings.burst.max_affected_bodies == 20

    def test_settings_are_frozen(self):
        """Configuration cannot be mutated after construction."""
        settings = Settings()
        with pytest.raises(ValidationError):
            settings.difficulty.base_rate = 50.0

    def test_curve_build(self):
        """CurveConfig builds an evaluable curve."""
        curve = CurveConfig(start_value=1.0, end_time=10.0, end_value=2.0, easing="linear").build()
        assert curve.easing == Easing.LINEAR
        assert curve.evaluate(5.0) == pytest.approx(1.5)


class TestValidation:
    """Tests for invalid configuration."""

    def test_curve_requires_both_endpoints(self):
        """A curve without an end value is invalid."""
        with pytest.raises(ValidationError):
            CurveConfig(start_value=1.0, end_time=10.0)

    def test_curve_span(self):
        """end_time must exceed start_time."""
        with pytest.raises(ValidationError):
            CurveConfig(start_time=20.0, start_value=1.0, end_time=10.0, end_value=2.0)

    def test_max_below_base(self):
        """max_rate below base_rate is rejected."""
        with pytest.raises(ValidationError):
            DifficultyConfig(base_rate=10.0, max_rate=5.0)

    def test_milestones_ascending(self):
        """Milestones must be sorted."""
        with pytest.raises(ValidationError):
            Settings.model_validate({"emission": {"milestones": [300.0, 120.0]}})

    def test_rubber_band_bounds_bracket_one(self):
        """Rubber band bounds must contain 1.0."""
        with pytest.raises(ValidationError):
            Settings.model_validate(
                {"difficulty": {"rubber_band": {"min_adjustment": 1.1, "max_adjustment": 1.5}}}
            )

    def test_rubber_band_bounds_within_limits(self):
        """Rubber band bounds cannot widen past 0.5 and 1.5."""
        with pytest.raises(ValidationError):
            Settings.model_validate({"difficulty": {"rubber_band": {"min_adjustment": 0.1}}})
        with pytest.raises(ValidationError):
            Settings.model_validate({"difficulty": {"rubber_band": {"max_adjustment": 2.0}}})


class TestLoadConfig:
    """Tests for load_config()."""

    def test_yaml_values(self, sample_config_yaml):
        """Values from the file override defaults."""
        settings = load_config(str(sample_config_yaml))
        assert settings.difficulty.base_rate == 7.0
        assert settings.difficulty.max_rate == 80.0
        assert settings.emission.max_sources == 4
        assert settings.pressure.threshold == 50.0
        assert settings.pressure.cooldown == 12.0

    def test_env_beats_yaml(self, sample_config_yaml, monkeypatch):
        """Environment variables take precedence over the file."""
        monkeypatch.setenv("FUTILITY_BASE_RATE", "9")
        monkeypatch.setenv("FUTILITY_RUBBER_BAND", "false")
        monkeypatch.setenv("PORT", "9100")

        settings = load_config(str(sample_config_yaml))
        assert settings.difficulty.base_rate == 9.0
        assert settings.difficulty.rubber_band.enabled is False
        assert settings.server.port == 9100

    def test_invalid_curve_is_configuration_error(self, tmp_path):
        """Validation errors surface as ConfigurationError."""
        path = tmp_path / "config.yaml"
        path.write_text(
            "difficulty:\n"
            "  emission_curve:\n"
            "    start_value: 5.0\n"
            "    end_time: 600.0\n"
        )
        with pytest.raises(ConfigurationError):
            load_config(str(path))

    def test_malformed_yaml(self, tmp_path):
        """Unparseable YAML is a ConfigurationError."""
        path = tmp_path / "config.yaml"
        path.write_text("difficulty: [unclosed\n")
        with pytest.raises(ConfigurationError):
            load_config(str(path))

    def test_bad_env_value(self, sample_config_yaml, monkeypatch):
        """A malformed override is a ConfigurationError."""
        monkeypatch.setenv("FUTILITY_RUBBER_BAND", "maybe")
        with pytest.raises(ConfigurationError):
            load_config(str(sample_config_yaml))

    def test_missing_file_uses_defaults(self, tmp_path, monkeypatch):
        """A path that does not exist falls back to defaults."""
        monkeypatch.chdir(tmp_path)
        settings = load_config(str(tmp_path / "absent.yaml"))
        assert settings.difficulty.base_rate == 5.0


class TestRules:
    """Tests for the failure limit."""

    def test_fixed_limit(self):
        """Without scaling the limit is constant."""
        rules = RulesConfig()
        assert rules.scaled_max_escaped(0.0) == 1000
        assert rules.scaled_max_escaped(3600.0) == 1000

    def test_scaled_limit(self):
        """With scaling the limit grows per minute."""
        rules = RulesConfig(scale_failure_threshold=True, particles_per_minute_scaling=10.0)
        assert rules.scaled_max_escaped(90.0) == 1015
