"""
Test Configuration
==================

Pytest fixtures and test configuration for futility-core.
"""

from typing import List

import pytest


class FakeClock:
    """Manually advanced clock for deterministic timing."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class RecordingCollaborator:
    """Movement, overlay and ambient service that records every call."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []

    def enable_movement(self, enabled: bool) -> None:
        self.calls.append(("movement", enabled))

    def show_overlay(self, name: str) -> None:
        self.calls.append(("show", name))

    def hide_overlay(self, name: str) -> None:
        self.calls.append(("hide", name))

    def play_ambient(self) -> None:
        self.calls.append(("ambient", True))

    def stop_ambient(self) -> None:
        self.calls.append(("ambient", False))


@pytest.fixture
def clock():
    """Provide a fake clock starting at t=0."""
    return FakeClock()


@pytest.fixture
def recorder():
    """Provide a collaborator that records calls."""
    return RecordingCollaborator()


@pytest.fixture
def settings():
    """Provide default settings with a fixed placement seed."""
    from futility_core.config import Settings

    return Settings.model_validate({"emission": {"placement_seed": 42}})


@pytest.fixture
def difficulty_config():
    """Provide the default difficulty configuration."""
    from futility_core.config import DifficultyConfig

    return DifficultyConfig()


@pytest.fixture
def session(settings, clock):
    """Provide a GameSession on a fake clock, in Menu."""
    from futility_core.session import GameSession

    return GameSession(settings, clock=clock)


@pytest.fixture
def running_session(session, clock):
    """Provide a GameSession already in Running at t=0."""
    session.start_game(current_time=clock.now)
    return session


@pytest.fixture
def sample_config_yaml(tmp_path):
    """Provide a config.yaml with non-default values."""
    path = tmp_path / "config.yaml"
    path.write_text(
        "difficulty:\n"
        "  base_rate: 7.0\n"
        "  max_rate: 80.0\n"
        "emission:\n"
        "  max_sources: 4\n"
        "pressure:\n"
        "  threshold: 50.0\n"
    )
    return path
