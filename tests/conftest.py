"""Shared test fixtures for promptrelay."""

import pytest

from promptrelay.config import GameConfig, ModelConfig, TimerConfig
from promptrelay.models import StoreMode


@pytest.fixture
def data_dir(tmp_path):
    """Provide a temporary data directory for test runs."""
    return tmp_path / "data"


@pytest.fixture
def game_config(data_dir):
    """Session-mode config with a hand-driven timer and the mock generator."""
    return GameConfig(
        name="test-game",
        data_dir=data_dir,
        mode=StoreMode.SESSION,
        seed=42,
        timer=TimerConfig(duration_s=300, warning_s=30, interval_s=1.0, autostart=False),
        generator=ModelConfig(name="mock-gen", provider="mock", strategy="template"),
    )


@pytest.fixture
def flat_config(game_config):
    game_config.mode = StoreMode.FLAT
    return game_config
