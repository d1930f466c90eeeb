"""Load engine settings for the visibility engine."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from ..utils.errors import ConfigError
from .settings import EngineSettings

logger = logging.getLogger(__name__)

CONFIG_PATH = Path(__file__).with_name("engine.yaml")

# Pattern to match env("VAR_NAME") placeholders
ENV_PATTERN = re.compile(r'env\("([^"]+)"\)')


def _resolve_env_placeholders(value: Any) -> Any:
    """Recursively resolve env("VAR") placeholders in YAML values."""
    if isinstance(value, str):
        match = ENV_PATTERN.search(value)
        if match:
            var_name = match.group(1)
            env_value = os.getenv(var_name)
            if env_value is None:
                logger.warning(f"Environment variable {var_name} not set (required by config)")
                raise ConfigError(f"Environment variable {var_name} not set (required by config)", source=var_name)
            return env_value
        return value
    elif isinstance(value, dict):
        return {k: _resolve_env_placeholders(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_resolve_env_placeholders(item) for item in value]
    else:
        return value


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge override dict into base dict."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _compute_config_version(yaml_content: str, override_content: Dict[str, Any]) -> str:
    """Compute SHA256 hash of YAML content + override content for version tracking."""
    combined = {
        "yaml": yaml_content,
        "override": json.dumps(override_content, sort_keys=True, default=str),
    }
    combined_str = json.dumps(combined, sort_keys=True)
    return hashlib.sha256(combined_str.encode("utf-8")).hexdigest()[:16]


def load_settings(
    path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
    env_file: Optional[Path] = None,
) -> EngineSettings:
    """Load engine settings from YAML with optional overrides.

    Args:
        path: Optional path to the settings YAML file. Defaults to CONFIG_PATH.
        overrides: Optional dict deep-merged over the file contents.
        env_file: Optional .env file loaded before env() placeholders resolve.
            Without it only the process environment is consulted.

    Returns:
        EngineSettings with resolved placeholders and a config_version stamp.
        A missing settings file yields the defaults.
    """
    if env_file:
        load_dotenv(env_file)
    target = Path(path) if path else CONFIG_PATH

    yaml_content = ""
    data: Dict[str, Any] = {}
    if target.exists():
        try:
            with target.open("r", encoding="utf-8") as handle:
                yaml_content = handle.read()
            data = yaml.safe_load(yaml_content) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Failed to read settings from {target}: {exc}", source=str(target)) from exc
        if not isinstance(data, dict):
            raise ConfigError(f"Settings file {target} must contain a mapping", source=str(target))
    else:
        logger.debug(f"No settings file at {target}, using defaults")

    data = _resolve_env_placeholders(data)

    overrides = overrides or {}
    if overrides:
        data = _deep_merge(data, overrides)

    if "metadata" not in data or data["metadata"] is None:
        data["metadata"] = {}
    data["metadata"]["config_version"] = _compute_config_version(yaml_content, overrides)

    try:
        return EngineSettings.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid engine settings: {exc}", source=str(target)) from exc
