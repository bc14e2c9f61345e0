"""YAML configuration loader layered under environment-based Settings.

# ─── CONFIGURATION HIERARCHY ──────────────────────────────────────────
#
# Configuration is loaded in layers (later layers override earlier):
#
#   1. Settings defaults     -- declared in settings.py
#   2. config/config.yaml    -- static, per-deployment tuning checked into the repo
#   3. .env file             -- local developer overrides (not committed)
#   4. Environment vars      -- set at deploy time
#
# The YAML file is grouped into sections for readability:
#
#   chunking:
#     chunk_size: 800
#   retrieval:
#     retrieval_top_k: 5
#
# Section names are cosmetic: the keys inside each section are Settings
# field names and are flattened before being applied.
# ──────────────────────────────────────────────────────────────────────
"""

from pathlib import Path
from typing import Any

import yaml

from src.config.settings import Settings
from src.utils.errors import ConfigurationError


def load_config(path: str = "config/config.yaml") -> dict[str, Any]:
    """Read the YAML configuration file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        The parsed mapping, or an empty dict when the file does not exist.

    Raises:
        ConfigurationError: If the file is not valid YAML or not a mapping.
    """
    config_path = Path(path)
    if not config_path.exists():
        return {}

    try:
        with open(config_path, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(message=f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(yaml_config, dict):
        raise ConfigurationError(message=f"{path} must contain a mapping at the top level")
    return yaml_config


def load_settings(path: str = "config/config.yaml") -> Settings:
    """Build :class:`Settings` with YAML values applied beneath env/.env values.

    A YAML value is used only for fields that neither an environment
    variable nor the ``.env`` file set explicitly.

    Raises:
        ConfigurationError: If the YAML names a key Settings does not have.
    """
    env_settings = Settings()
    yaml_values = _flatten_sections(load_config(path))

    unknown = sorted(set(yaml_values) - set(Settings.model_fields))
    if unknown:
        raise ConfigurationError(message=f"Unknown configuration keys in {path}: {unknown}")

    layered = {
        key: value
        for key, value in yaml_values.items()
        if key not in env_settings.model_fields_set
    }
    if not layered:
        return env_settings

    explicit = env_settings.model_dump(include=env_settings.model_fields_set)
    return Settings(**{**layered, **explicit})


def _flatten_sections(config: dict[str, Any]) -> dict[str, Any]:
    """Merge ``{section: {key: value}}`` into ``{key: value}``; top-level scalars pass through."""
    flat: dict[str, Any] = {}
    for key, value in config.items():
        if isinstance(value, dict):
            flat.update(value)
        else:
            flat[key] = value
    return flat
