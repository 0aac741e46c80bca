"""Tests for config loading."""

from pathlib import Path

import pytest

from promptrelay.config import GameConfig, ModelConfig, TimerConfig, load_config
from promptrelay.models import StoreMode

EXAMPLE_CONFIG = Path(__file__).resolve().parent.parent / "promptrelay.yaml.example"


class TestModelConfigFields:
    def test_defaults(self):
        mc = ModelConfig(name="test", provider="mock")
        assert mc.api_key_env is None
        assert mc.base_url is None
        assert mc.max_output_tokens == 8192

    def test_site_url_and_app_name(self):
        mc = ModelConfig(
            name="test",
            provider="openrouter",
            site_url="https://example.com",
            app_name="promptrelay",
        )
        assert mc.site_url == "https://example.com"
        assert mc.app_name == "promptrelay"


class TestGameConfigDefaults:
    def test_defaults(self):
        config = GameConfig(name="party")
        assert config.mode is StoreMode.SESSION
        assert config.timer == TimerConfig()
        assert config.timer.duration_s == 300
        assert config.timer.warning_s == 30
        assert config.generator.provider == "mock"
        assert config.scorer is None


class TestLoadConfig:
    def test_example_config_loads(self):
        config = load_config(EXAMPLE_CONFIG)
        assert config.name == "friday-party"
        assert config.mode is StoreMode.SESSION
        assert config.seed == 42
        assert config.generator.strategy == "fenced"
        assert config.scorer.strategy == "heuristic_score"
        assert config.scorer.max_output_tokens == 1024
        assert len(config.themes) == 2

    def test_compute_caps_apply_as_defaults(self, tmp_path):
        path = _write(tmp_path, """
game:
  name: caps
compute_caps:
  max_output_tokens: 2048
  timeout_s: 30
generator:
  provider: mock
  strategy: template
""")
        config = load_config(path)
        assert config.generator.max_output_tokens == 2048
        assert config.generator.timeout_s == 30

    def test_minimal_config(self, tmp_path):
        config = load_config(_write(tmp_path, "game:\n  name: tiny\n"))
        assert config.name == "tiny"
        assert config.data_dir == Path("data")
        assert config.generator.strategy == "template"
        assert config.themes == []

    def test_flat_mode(self, tmp_path):
        config = load_config(_write(tmp_path, "game:\n  mode: flat\n"))
        assert config.mode is StoreMode.FLAT

    def test_unknown_mode_raises(self, tmp_path):
        with pytest.raises(ValueError):
            load_config(_write(tmp_path, "game:\n  mode: cloud\n"))

    def test_warning_must_be_below_duration(self, tmp_path):
        with pytest.raises(ValueError, match="warning_s"):
            load_config(_write(tmp_path, "timer:\n  duration_s: 30\n  warning_s: 30\n"))

    def test_openai_fields(self, tmp_path):
        path = _write(tmp_path, """
generator:
  provider: openai
  model_id: gpt-4o-mini
  api_key_env: OPENAI_API_KEY
  base_url: https://custom.api.com/v1
  temperature: 0.3
""")
        gen = load_config(path).generator
        assert gen.api_key_env == "OPENAI_API_KEY"
        assert gen.base_url == "https://custom.api.com/v1"
        assert gen.temperature == 0.3


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "game.yaml"
    path.write_text(text)
    return path
