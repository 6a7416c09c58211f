"""
taskproof - Configuration

Loads config from:
  1. Defaults
  2. A JSON config file (CLI --config, else ./taskproof.json if present)
  3. Environment variables (TASKPROOF_*)

CLI flags are applied on top by the caller.
"""
from __future__ import annotations

import copy
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

from .artifact import DEFAULT_MAX_ARTIFACT_BYTES
from .batch import DEFAULT_ARTIFACT_PATTERN
from .canonical import KEY_ORDER_SORTED, KEY_ORDERS
from .errors import ConfigError

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = "taskproof.json"

DEFAULT_CONFIG: dict[str, Any] = {
    "artifact_pattern": DEFAULT_ARTIFACT_PATTERN,
    "workers": 1,
    "max_artifact_bytes": DEFAULT_MAX_ARTIFACT_BYTES,
    "key_order": KEY_ORDER_SORTED,
    "skip_signature": False,
}

_ENV_KEYS = {
    "TASKPROOF_ARTIFACT_PATTERN": "artifact_pattern",
    "TASKPROOF_WORKERS": "workers",
    "TASKPROOF_MAX_ARTIFACT_BYTES": "max_artifact_bytes",
    "TASKPROOF_KEY_ORDER": "key_order",
    "TASKPROOF_SKIP_SIGNATURE": "skip_signature",
}


@dataclass(frozen=True)
class VerifierConfig:
    artifact_pattern: str = DEFAULT_ARTIFACT_PATTERN
    workers: int = 1
    max_artifact_bytes: int = DEFAULT_MAX_ARTIFACT_BYTES
    key_order: str = KEY_ORDER_SORTED
    skip_signature: bool = False
    source: Optional[Path] = None


def load_config(
    config_path: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
    cwd: Optional[Path] = None,
) -> VerifierConfig:
    """Load verifier config.

    An explicit ``config_path`` must exist. Without one, ``taskproof.json``
    in ``cwd`` is used if present.
    """
    env = os.environ if env is None else env
    config = copy.deepcopy(DEFAULT_CONFIG)
    source: Optional[Path] = None

    if config_path is not None:
        if not Path(config_path).exists():
            raise ConfigError(f"config file not found: {config_path}")
        source = Path(config_path)
    else:
        candidate = Path(cwd or ".") / DEFAULT_CONFIG_FILENAME
        if candidate.exists():
            source = candidate

    if source is not None:
        file_cfg = _read_json(source)
        for key in sorted(set(file_cfg) - set(DEFAULT_CONFIG)):
            LOGGER.warning("ignoring unknown config key %r in %s", key, source)
        config.update({k: v for k, v in file_cfg.items() if k in DEFAULT_CONFIG})
        LOGGER.debug("loaded config from %s", source)

    _apply_env_overrides(config, env)
    return VerifierConfig(**_validate(config), source=source)


def _read_json(path: Path) -> dict:
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        raise ConfigError(f"could not read {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: config must be a JSON object")
    return data


def _apply_env_overrides(config: dict, env: Mapping[str, str]) -> None:
    for name, key in _ENV_KEYS.items():
        raw = env.get(name)
        if raw is None or raw == "":
            continue
        if key in ("workers", "max_artifact_bytes"):
            try:
                config[key] = int(raw)
            except ValueError:
                raise ConfigError(f"invalid {name}={raw!r}: expected integer") from None
        elif key == "skip_signature":
            config[key] = _to_bool(raw)
        else:
            config[key] = raw


def _validate(config: dict) -> dict:
    pattern = config["artifact_pattern"]
    if not isinstance(pattern, str) or not pattern:
        raise ConfigError("artifact_pattern must be a non-empty string")
    for key in ("workers", "max_artifact_bytes"):
        value = config[key]
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ConfigError(f"{key} must be a positive integer, got {value!r}")
    if config["key_order"] not in KEY_ORDERS:
        raise ConfigError(f"key_order must be one of {KEY_ORDERS}, got {config['key_order']!r}")
    if not isinstance(config["skip_signature"], bool):
        raise ConfigError("skip_signature must be a boolean")
    return config


def _to_bool(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "on"}


__all__ = [
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_FILENAME",
    "VerifierConfig",
    "load_config",
]
