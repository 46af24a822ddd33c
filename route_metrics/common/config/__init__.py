import logging
import os
from pathlib import Path
from typing import List, Optional
import tomllib

from pydantic import ValidationError

from route_metrics.errors import ConfigError
from .models import AppConfig, LogProcessorConfig, LoggingConfig, DEFAULT_PERCENTILES, ENV_PREFIX

logger = logging.getLogger(__name__)

def _deep_update(base: dict, updates: dict) -> dict:
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _deep_update(base[key], value)
        else:
            base[key] = value
    return base


def _map_toml_config(data: dict) -> dict:
    """Map the `config.toml` layout onto AppConfig fields."""
    mapped: dict = {}

    if "name" in data:
        mapped["app_name"] = data["name"]

    processor = data.get("log_processor", {})
    for key in ["reporter", "output", "template", "unit", "percentiles", "log_file"]:
        if key in processor:
            mapped.setdefault("log_processor", {})
            mapped["log_processor"][key] = processor[key]

    logger_cfg = data.get("logger", {})
    if logger_cfg:
        mapped.setdefault("logging", {})
        if "level" in logger_cfg:
            mapped["logging"]["level"] = logger_cfg["level"].upper()
        if "format" in logger_cfg:
            mapped["logging"]["format"] = logger_cfg["format"].lower()

    return mapped


def _env_overrides(config_cls) -> dict:
    # environment wins over config.toml, so only keys set in the environment
    # are re-applied on top of the merged document
    env = config_cls().model_dump()
    prefix = config_cls.model_config.get("env_prefix", "")
    return {k: v for k, v in env.items() if f"{prefix}{k}".upper() in os.environ}


def load_settings(config_path: Optional[Path] = None) -> AppConfig:
    """
    Build the AppConfig from defaults, `config.toml` and the environment.

    Raises ConfigError when a value is invalid.
    """
    try:
        if config_path is None:
            candidate = Path.cwd() / "config.toml"
            config_path = candidate if candidate.exists() else None
        if not config_path:
            return AppConfig()

        with open(config_path, "rb") as f:
            raw = tomllib.load(f)

        base = AppConfig().model_dump()
        merged = _deep_update(base, _map_toml_config(raw))
        merged["log_processor"].update(_env_overrides(LogProcessorConfig))
        merged["logging"].update(_env_overrides(LoggingConfig))
        return AppConfig.model_validate(merged)
    except ValidationError as e:
        raise ConfigError("invalid configuration", source=e) from e
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"cannot read {config_path}", source=e) from e


def config_diagnostics(environ=None) -> List[str]:
    """
    Report `CSI_RM_*` environment variables that name no known setting.
    """
    environ = os.environ if environ is None else environ
    known = {f"{ENV_PREFIX}{name}".upper() for name in LogProcessorConfig.model_fields}
    unknown = sorted(k for k in environ if k.startswith(ENV_PREFIX) and k not in known)
    if not unknown:
        return []
    return [f"unknown-config-items {', '.join(unknown)}"]


_settings: Optional[AppConfig] = None

def get_settings() -> AppConfig:
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings

def update_settings(new_settings: AppConfig):
    global _settings
    _settings = new_settings
from .template import load_template
