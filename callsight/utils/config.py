"""
Configuration loader for CallSight.

Behavior:
- Looks for a config path given explicitly, then in env var `CALLSIGHT_CONFIG`.
- Falls back to `callsight/config.json` next to the package.
- If nothing is found, uses conservative defaults.

Every loaded file is validated against `callsight/json_schema/config.schema.json`.
"""

import copy
import json
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from jsonschema import ValidationError, validate

from .logger import logger
from ..core.models import ModelConfig

_DEFAULT_CONFIG: Dict[str, Any] = {
    "provider": "groq",
    "model": "llama-3.3-70b-versatile",
    "providers": {
        "groq": {"base_url": "https://api.groq.com/openai/v1", "timeout": 60},
        "gemini": {"timeout": 60},
    },
    "batch": {"pacing_delay": 2.5, "error_delay": 10.0, "max_retries": 5},
    "log_level": "INFO",
}

_SCHEMA_PATH = os.path.join(
    os.path.dirname(__file__), "..", "json_schema", "config.schema.json"
)

_config_cache: Dict[str, Any] = {}
_schema_cache: Dict[str, Any] = {}


def _default_config_path() -> str:
    base_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    return os.path.join(base_dir, "config.json")


def default_config() -> Dict[str, Any]:
    return copy.deepcopy(_DEFAULT_CONFIG)


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from JSON with sensible fallbacks.

    Invalid files are logged and skipped; the first valid candidate wins.
    """
    global _config_cache
    if _config_cache and path is None:
        return _config_cache

    candidates = []
    if path:
        candidates.append(path)
    env_path = os.environ.get("CALLSIGHT_CONFIG")
    if env_path:
        candidates.append(env_path)
    candidates.append(_default_config_path())

    for p in candidates:
        p_abs = os.path.abspath(p)
        if not os.path.exists(p_abs):
            continue
        try:
            with open(p_abs, "r", encoding="utf-8") as f:
                cfg = json.load(f)
            validate_config(cfg)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in config file {p_abs}: {e}")
            continue
        except (ValidationError, ValueError) as e:
            logger.error(f"Invalid configuration in {p_abs}: {e}")
            continue

        merged = default_config()
        for key, value in cfg.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key].update(value)
            else:
                merged[key] = value
        _config_cache = merged
        logger.info(f"Configuration loaded from {p_abs}")
        return merged

    logger.warning(
        "No config found; using default configuration. "
        "Create 'callsight/config.json' or set CALLSIGHT_CONFIG to customize."
    )
    _config_cache = default_config()
    return _config_cache


def reset_config_cache() -> None:
    _config_cache.clear()


def _load_schema() -> Dict[str, Any]:
    if not _schema_cache:
        with open(_SCHEMA_PATH, "r", encoding="utf-8") as f:
            _schema_cache.update(json.load(f))
    return _schema_cache


def validate_config(cfg: Dict[str, Any]) -> None:
    """Validate configuration using the package JSON Schema.

    Raises jsonschema.ValidationError on invalid configs.
    """
    if not isinstance(cfg, dict):
        raise ValueError("Configuration must be a JSON object/dict")
    validate(instance=cfg, schema=_load_schema())


@dataclass(frozen=True)
class PipelineConfig:
    """
    Immutable settings for one batch run.

    Built once before the batch starts and passed explicitly to the
    orchestrator, so concurrent batches never share provider selection.
    """
    model: ModelConfig
    provider_options: Dict[str, Any]
    pacing_delay: float = 2.5
    error_delay: float = 10.0
    max_retries: int = 5

    @classmethod
    def from_config(
        cls,
        cfg: Optional[Dict[str, Any]] = None,
        provider: Optional[str] = None,
        model: Optional[str] = None,
    ) -> "PipelineConfig":
        cfg = cfg if cfg is not None else load_config()
        provider_name = provider or cfg.get("provider", _DEFAULT_CONFIG["provider"])
        model_name = model or cfg.get("model") or _DEFAULT_CONFIG["model"]
        batch = {**_DEFAULT_CONFIG["batch"], **cfg.get("batch", {})}
        options = dict(cfg.get("providers", {}).get(provider_name, {}))
        options["model"] = model_name
        return cls(
            model=ModelConfig(provider=provider_name, model=model_name),
            provider_options=options,
            pacing_delay=float(batch["pacing_delay"]),
            error_delay=float(batch["error_delay"]),
            max_retries=int(batch["max_retries"]),
        )


if __name__ == "__main__":
    # Simple CLI for debugging
    print(json.dumps(load_config(), indent=2))
