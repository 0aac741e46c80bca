"""Game configuration loader."""

import yaml
from dataclasses import dataclass, field
from pathlib import Path

from promptrelay.models import StoreMode


@dataclass
class ModelConfig:
    name: str
    provider: str  # "mock", "openai", "anthropic", "openrouter"
    model_id: str | None = None
    strategy: str | None = None  # for mock provider
    api_key_env: str | None = None      # env var name for API key
    base_url: str | None = None         # custom API base URL
    site_url: str | None = None         # OpenRouter attribution
    app_name: str | None = None         # OpenRouter attribution
    temperature: float = 0.7
    max_output_tokens: int = 8192
    timeout_s: float = 120.0


@dataclass
class TimerConfig:
    duration_s: int = 300
    warning_s: int = 30
    interval_s: float = 1.0
    autostart: bool = True  # background thread; off means tick() is driven by hand


@dataclass
class GameConfig:
    name: str
    data_dir: Path = Path("data")
    mode: StoreMode = StoreMode.SESSION
    seed: int | None = None
    timer: TimerConfig = field(default_factory=TimerConfig)
    generator: ModelConfig = field(
        default_factory=lambda: ModelConfig(name="generator", provider="mock", strategy="template")
    )
    scorer: ModelConfig | None = None
    themes: list = field(default_factory=list)


def _model_config(name: str, m: dict, defaults: dict) -> ModelConfig:
    return ModelConfig(
        name=m.get("name", name),
        provider=m["provider"],
        model_id=m.get("model_id"),
        strategy=m.get("strategy"),
        api_key_env=m.get("api_key_env"),
        base_url=m.get("base_url"),
        site_url=m.get("site_url"),
        app_name=m.get("app_name"),
        temperature=m.get("temperature", defaults.get("temperature", 0.7)),
        max_output_tokens=m.get(
            "max_output_tokens", defaults.get("max_output_tokens", 8192)
        ),
        timeout_s=m.get("timeout_s", defaults.get("timeout_s", 120.0)),
    )


def load_config(path: Path) -> GameConfig:
    """Load game config from YAML file."""
    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    g = raw.get("game", {})
    compute = raw.get("compute_caps", {})

    t = raw.get("timer", {})
    timer = TimerConfig(
        duration_s=int(t.get("duration_s", 300)),
        warning_s=int(t.get("warning_s", 30)),
        interval_s=float(t.get("interval_s", 1.0)),
        autostart=bool(t.get("autostart", True)),
    )
    if timer.warning_s >= timer.duration_s:
        raise ValueError(
            f"timer.warning_s ({timer.warning_s}) must be below duration_s ({timer.duration_s})"
        )

    generator = ModelConfig(name="generator", provider="mock", strategy="template")
    if raw.get("generator"):
        generator = _model_config("generator", raw["generator"], compute)

    # Parse optional evaluator config
    scorer = None
    if raw.get("scorer"):
        scorer = _model_config("scorer", raw["scorer"], compute)

    return GameConfig(
        name=g.get("name", "promptrelay"),
        data_dir=Path(g.get("data_dir", "data")),
        mode=StoreMode(g.get("mode", "session")),
        seed=g.get("seed"),
        timer=timer,
        generator=generator,
        scorer=scorer,
        themes=list(raw.get("themes") or []),
    )
