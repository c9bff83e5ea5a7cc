"""Configuration helpers for the linking engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import yaml


class EngineConfigurationError(ValueError):
    """Raised when the engine configuration or its scoring tables are unusable."""


@dataclass(frozen=True)
class EngineConfig:
    """Typed wrapper around the engine configuration dictionary."""

    raw: Dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.raw.get(key, default)

    def feature_weight(self, feature: str) -> float:
        weights = self.raw.get("weights", {})
        return weights.get(feature, 0.0)

    def penalty_weight(self, feature: str) -> float:
        penalties = self.raw.get("penalties", {})
        return penalties.get(feature, 0.0)


DEFAULTS: Dict[str, Any] = {
    "min_word_length": 3,
    "long_word_length": 6,
    "very_long_word_length": 9,
    "context_window": 3,
    "context_step": 0.2,
    "similarity_threshold": 0.7,
    "max_link_ratio": 0.7,
    "confidence_floor": 0.4,
    "weights": {
        "base": 0.5,
        "long_word": 0.2,
        "very_long_word": 0.1,
        "pattern": 0.3,
        "capitalized": 0.2,
        "domain": 0.25,
        "context": 0.1,
        "category": 0.1,
    },
    "penalties": {
        "common_word": 0.3,
    },
    "styling": {
        "high": 0.8,
        "medium": 0.6,
    },
    "tables": {},
}


def load_config(path: str | Path | None = None) -> EngineConfig:
    """Load configuration from YAML, merging with defaults."""

    data: Dict[str, Any] = DEFAULTS.copy()
    data["weights"] = dict(DEFAULTS["weights"])
    data["penalties"] = dict(DEFAULTS["penalties"])
    data["styling"] = dict(DEFAULTS["styling"])
    data["tables"] = dict(DEFAULTS["tables"])

    if path is not None and Path(path).exists():
        with Path(path).open("r", encoding="utf-8") as stream:
            try:
                user = yaml.safe_load(stream) or {}
            except yaml.YAMLError as exc:
                raise EngineConfigurationError(f"Invalid engine configuration in {path}: {exc}") from exc
        if not isinstance(user, dict):
            raise EngineConfigurationError(f"Engine configuration in {path} must be a mapping.")
        merge_into(data, user)

    return EngineConfig(data)


def merge_into(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    """Recursively merge override into base dict."""

    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merge_into(base[key], value)
        else:
            base[key] = value
