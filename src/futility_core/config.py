"""
futility-core Configuration
===========================

This module handles configuration loading for the futility core.

Configuration is set once at construction and is immutable for the run:
every model is frozen. Tuning constants (rubber band, pressure, bursts)
were tuned by playtesting; they are defaults, not derived values, and any
of them can be overridden.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    FUTILITY_BASE_RATE       -> difficulty.base_rate
    FUTILITY_MAX_RATE        -> difficulty.max_rate
    FUTILITY_RUBBER_BAND     -> difficulty.rubber_band.enabled
    FUTILITY_MAX_SOURCES     -> emission.max_sources
    FUTILITY_PLACEMENT_SEED  -> emission.placement_seed
    FUTILITY_FRAME_RATE      -> loop.frame_rate
    FUTILITY_LOG_LEVEL       -> logging.level
    FUTILITY_PORT            -> server.port
    PORT                     -> server.port (container platforms)

Example:
    from futility_core.config import load_config

    settings = load_config()
    print(settings.difficulty.base_rate)
    print(settings.pressure.threshold)
"""

import os
import logging
from pathlib import Path
from typing import List, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from futility_core.errors import ConfigurationError
from futility_core.signals.curves import EaseCurve, Easing


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class _Frozen(BaseModel):
    """Base for immutable configuration sections."""

    model_config = ConfigDict(frozen=True)


class CurveConfig(_Frozen):
    """
    Keyframed interpolation between two endpoints.

    Both endpoints are required: a curve with a missing endpoint is a
    configuration error.
    """

    start_time: float = Field(default=0.0, ge=0, description="t0 (seconds)")
    start_value: float = Field(..., description="Value at t0")
    end_time: float = Field(..., gt=0, description="t1 (seconds)")
    end_value: float = Field(..., description="Value at t1")
    easing: Easing = Field(
        default=Easing.EASE_IN_OUT,
        description="Interpolation shape: 'ease_in_out' or 'linear'",
    )

    @model_validator(mode="after")
    def _check_span(self) -> "CurveConfig":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be greater than start_time")
        return self

    def build(self) -> EaseCurve:
        """Create the evaluable curve."""
        return EaseCurve(
            t0=self.start_time,
            v0=self.start_value,
            t1=self.end_time,
            v1=self.end_value,
            easing=self.easing,
        )


class RubberBandConfig(_Frozen):
    """Performance-driven difficulty correction."""

    enabled: bool = Field(default=True, description="Enable rubber-banding")
    target_block_ratio: float = Field(
        default=0.6,
        ge=0,
        le=1.0,
        description="Block ratio the player is steered toward",
    )
    strength: float = Field(
        default=0.2,
        ge=0,
        description="How strongly performance deviation adjusts difficulty",
    )
    smooth_time: float = Field(
        default=5.0,
        gt=0,
        description="Exponential smoothing time constant (seconds)",
    )
    window_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Performance window length (seconds)",
    )
    min_adjustment: float = Field(default=0.5, ge=0.5, le=1.0, description="Lower clamp")
    max_adjustment: float = Field(default=1.5, ge=1.0, le=1.5, description="Upper clamp")

    @model_validator(mode="after")
    def _check_bounds(self) -> "RubberBandConfig":
        if not self.min_adjustment <= 1.0 <= self.max_adjustment:
            raise ValueError("rubber band bounds must bracket 1.0")
        return self


class DifficultyConfig(_Frozen):
    """Escalation curves and the 2 Hz difficulty cadence."""

    base_rate: float = Field(default=5.0, gt=0, description="Floor emission rate")
    max_rate: float = Field(default=100.0, gt=0, description="Ceiling emission rate")
    update_interval: float = Field(
        default=0.5,
        gt=0,
        description="Seconds between difficulty ticks (2 Hz)",
    )
    emission_curve: CurveConfig = Field(
        default_factory=lambda: CurveConfig(
            start_value=5.0, end_time=600.0, end_value=50.0,
        ),
        description="Base emission over run time (5 → 50 over 10 minutes)",
    )
    multiplier_curve: CurveConfig = Field(
        default_factory=lambda: CurveConfig(
            start_value=1.0, end_time=600.0, end_value=3.0,
        ),
        description="Difficulty multiplier over run time (1x → 3x)",
    )
    rubber_band: RubberBandConfig = Field(default_factory=RubberBandConfig)
    log_every_n_ticks: int = Field(default=20, ge=1)

    @model_validator(mode="after")
    def _check_rates(self) -> "DifficultyConfig":
        if self.max_rate < self.base_rate:
            raise ValueError("max_rate must be >= base_rate")
        return self


class EmissionConfig(_Frozen):
    """Hazard source layout, milestones and the menu ambient leak."""

    max_sources: int = Field(default=3, ge=1, description="Managed source cap")
    milestones: List[float] = Field(
        default_factory=lambda: [120.0, 300.0],
        description="Run times (seconds) at which source #2, #3, ... spawn",
    )
    base_position: Tuple[float, float, float] = Field(
        default=(0.0, -27.9, 0.0),
        description="Ocean-floor position of the first managed source",
    )
    ambient_offset: Tuple[float, float, float] = Field(
        default=(0.0, 0.0, 0.0),
        description="Offset of the menu ambient source from base_position",
    )
    ambient_rate: float = Field(default=9.0, ge=0, description="Menu ambient rate")
    min_spacing: float = Field(default=5.0, gt=0, description="Min source spacing")
    spawn_area_width: float = Field(default=20.0, gt=0, description="Spawn width")
    placement_attempts: int = Field(default=10, ge=1, description="Sampling attempts")
    placement_seed: Optional[int] = Field(default=None, description="RNG seed")
    update_interval: float = Field(
        default=0.5,
        gt=0,
        description="Seconds between pressure evaluations (2 Hz)",
    )

    @model_validator(mode="after")
    def _check_milestones(self) -> "EmissionConfig":
        if any(later < earlier for earlier, later in zip(self.milestones, self.milestones[1:])):
            raise ValueError("milestones must be in ascending order")
        return self


class PressureConfig(_Frozen):
    """Pressure buildup from blocked particles and the burst it releases."""

    enabled: bool = Field(default=True, description="Enable the pressure system")
    buildup_rate: float = Field(
        default=0.5,
        ge=0,
        description="Pressure per blocked particle",
    )
    threshold: float = Field(
        default=100.0,
        gt=0,
        description="Pressure that triggers a burst (~200 blocked particles)",
    )
    burst_multiplier: float = Field(default=3.0, ge=1.0, description="Burst boost")
    burst_duration: float = Field(default=5.0, gt=0, description="Burst length (s)")
    cooldown: float = Field(default=12.0, ge=0, description="Min time between bursts")


class BurstPhysicsConfig(_Frozen):
    """Outward impulse applied to nearby bodies when a burst starts."""

    radius: float = Field(default=3.0, gt=0, description="Impulse radius")
    force: float = Field(default=100.0, ge=0, description="Impulse strength")
    upward_modifier: float = Field(default=0.7, description="Upward bias")
    max_affected_bodies: int = Field(default=20, ge=0, description="Bodies per source")


class RulesConfig(_Frozen):
    """Failure conditions. There are no victory conditions."""

    max_escaped_particles: int = Field(
        default=1000,
        ge=1,
        description="Escaped particles before the run ends",
    )
    near_fail_warn_percent: float = Field(
        default=0.8,
        ge=0.5,
        le=0.95,
        description="Fraction of the limit that triggers the near-fail warning",
    )
    scale_failure_threshold: bool = Field(
        default=False,
        description="Grow the limit with time survived",
    )
    particles_per_minute_scaling: float = Field(
        default=10.0,
        ge=0,
        description="Extra escapes allowed per minute when scaling",
    )

    def scaled_max_escaped(self, elapsed_seconds: float) -> int:
        """Failure limit after `elapsed_seconds` of run time."""
        if not self.scale_failure_threshold:
            return self.max_escaped_particles
        bonus = int((elapsed_seconds / 60.0) * self.particles_per_minute_scaling)
        return self.max_escaped_particles + bonus


class LoopConfig(_Frozen):
    """Frame loop driving GameSession.update()."""

    frame_rate: float = Field(default=60.0, gt=0, le=1000, description="Frames/second")
    telemetry_push_interval: float = Field(
        default=1.0,
        gt=0,
        description="Seconds between WebSocket telemetry pushes",
    )


class ServerConfig(_Frozen):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8010, ge=1, le=65535, description="Bind port")


class LoggingConfig(_Frozen):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(_Frozen):
    """
    Main settings class for futility-core.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    difficulty: DifficultyConfig = Field(default_factory=DifficultyConfig)
    emission: EmissionConfig = Field(default_factory=EmissionConfig)
    pressure: PressureConfig = Field(default_factory=PressureConfig)
    burst: BurstPhysicsConfig = Field(default_factory=BurstPhysicsConfig)
    rules: RulesConfig = Field(default_factory=RulesConfig)
    loop: LoopConfig = Field(default_factory=LoopConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration

    Raises:
        ConfigurationError: If the file or any override is invalid
    """
    # Find config file
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    # Load from YAML if exists
    config_data: dict = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        try:
            with open(config_path, "r") as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Malformed config file {config_path}: {e}") from e
        if not isinstance(config_data, dict):
            raise ConfigurationError(f"Config file {config_path} must contain a mapping")
    else:
        logger.warning("No config file found, using defaults and environment variables")

    # Apply environment variable overrides
    try:
        _apply_env_overrides(config_data)
    except ValueError as e:
        raise ConfigurationError(f"Invalid environment override: {e}") from e

    # Build settings object
    try:
        settings = Settings.model_validate(config_data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration:\n{e}") from e

    return settings


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Difficulty settings
    if env_base := os.environ.get("FUTILITY_BASE_RATE"):
        config_data.setdefault("difficulty", {})["base_rate"] = float(env_base)
    if env_max := os.environ.get("FUTILITY_MAX_RATE"):
        config_data.setdefault("difficulty", {})["max_rate"] = float(env_max)
    if env_rb := os.environ.get("FUTILITY_RUBBER_BAND"):
        config_data.setdefault("difficulty", {}).setdefault("rubber_band", {})["enabled"] = _parse_bool(env_rb)

    # Emission settings
    if env_sources := os.environ.get("FUTILITY_MAX_SOURCES"):
        config_data.setdefault("emission", {})["max_sources"] = int(env_sources)
    if env_seed := os.environ.get("FUTILITY_PLACEMENT_SEED"):
        config_data.setdefault("emission", {})["placement_seed"] = int(env_seed)

    # Loop settings
    if env_fps := os.environ.get("FUTILITY_FRAME_RATE"):
        config_data.setdefault("loop", {})["frame_rate"] = float(env_fps)

    # Server settings (container platforms use PORT)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("FUTILITY_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("FUTILITY_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
