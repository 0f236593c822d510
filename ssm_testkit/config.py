#!/usr/bin/env python3
# CUI // SP-CTI
"""ssm-testkit configuration loader.

Reads args/ssm_config.yaml (or $SSM_TESTKIT_CONFIG) and merges it over
built-in defaults. String values may use ${VAR:-default} to pull from the
environment, e.g. ``region: ${AWS_DEFAULT_REGION:-us-east-1}``.
"""

import copy
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ssm_testkit.resilience.errors import ConfigurationError

logger = logging.getLogger("ssm_testkit.config")

BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_PATH = BASE_DIR / "args" / "ssm_config.yaml"
CONFIG_ENV_VAR = "SSM_TESTKIT_CONFIG"

DEFAULT_CONFIG: Dict[str, Any] = {
    "aws": {
        "region": "${AWS_DEFAULT_REGION:-us-east-1}",
        "profile": "",
    },
    "parameters": {
        "type": "SecureString",
        "overwrite": True,
    },
    "polling": {
        "instance_interval_seconds": 2,
        "command_interval_seconds": 2,
        "default_timeout_seconds": 120,
    },
    "inventory": {
        "filter_key": "AWS:InstanceInformation.InstanceId",
    },
}


def _expand_env(value):
    """Expand ${VAR:-default} patterns in string values."""
    if not isinstance(value, str):
        return value
    pattern = r'\$\{([^}]+)\}'

    def replacer(match):
        expr = match.group(1)
        if ":-" in expr:
            var, default = expr.split(":-", 1)
            return os.environ.get(var) or default
        return os.environ.get(expr, match.group(0))
    return re.sub(pattern, replacer, value)


def _expand_tree(node):
    if isinstance(node, dict):
        return {k: _expand_tree(v) for k, v in node.items()}
    if isinstance(node, list):
        return [_expand_tree(v) for v in node]
    return _expand_env(node)


def _merge(base: Dict, override: Dict) -> Dict:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _validate(config: Dict):
    for key in ("instance_interval_seconds", "command_interval_seconds"):
        raw = config["polling"].get(key)
        try:
            interval = float(raw)
        except (TypeError, ValueError):
            raise ConfigurationError(
                f"polling.{key} must be a number, got {raw!r}", config_key=f"polling.{key}"
            )
        if interval <= 0:
            raise ConfigurationError(
                f"polling.{key} must be positive, got {raw!r}", config_key=f"polling.{key}"
            )


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration, falling back to defaults when the file is missing.

    Resolution order: explicit ``path``, then $SSM_TESTKIT_CONFIG, then
    args/ssm_config.yaml next to the package.
    """
    config_path = Path(path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)
    loaded: Dict = {}
    if not config_path.exists():
        logger.warning("Config not found at %s — using defaults", config_path)
    else:
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
            logger.debug("Config loaded from %s", config_path)
        except (OSError, yaml.YAMLError) as exc:
            logger.error("Failed to load config %s: %s — using defaults", config_path, exc)
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigurationError(
                f"Config {config_path} must contain a mapping at the top level"
            )

    config = _expand_tree(_merge(copy.deepcopy(DEFAULT_CONFIG), loaded))
    _validate(config)
    return config


def default_region(config: Optional[Dict] = None) -> str:
    """Region from config, or the AWS_DEFAULT_REGION fallback."""
    config = config if config is not None else load_config()
    return config.get("aws", {}).get("region") or "us-east-1"
