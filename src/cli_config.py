"""Configuration loading for the plydep CLI.

A YAML or JSON file (``plydep.yml`` in the working directory by default)
supplies repositories and root dependencies; CLI flags take precedence over
file values, and ``PLYDEP_LOCAL_REPO`` supplies the local repository when
neither names one.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml

from constants import Constants
from dep.models import ConfigError

logger = logging.getLogger(__name__)


@dataclass
class ResolveConfig:
    """Effective settings for one CLI run."""
    local_repo: str
    repositories: List[str] = field(default_factory=list)
    dependencies: List[str] = field(default_factory=list)
    exclusions: List[str] = field(default_factory=list)
    synthetic: Dict[str, List[str]] = field(default_factory=dict)
    fail_missing: bool = False
    request_timeout: Optional[float] = None


def find_config_file(directory: Optional[str] = None) -> Optional[str]:
    """Return the first default config file present in ``directory`` (cwd by default)."""
    base = directory or os.getcwd()
    for name in Constants.DEFAULT_CONFIG_FILES:
        candidate = os.path.join(base, name)
        if os.path.isfile(candidate):
            return candidate
    return None


def load_config_file(path: str) -> Dict[str, Any]:
    """Load a YAML or JSON mapping from ``path``.

    Raises:
        ConfigError: when the file is missing, unparseable or not a mapping.
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            if path.lower().endswith(".json"):
                data = json.load(fh)
            else:
                data = yaml.safe_load(fh)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to load config {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must contain a mapping at the top level")
    return data


def _string_list(data: Dict[str, Any], key: str) -> List[str]:
    value = data.get(key) or []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"'{key}' must be a list of strings")
    return list(value)


def _synthetic(data: Dict[str, Any]) -> Dict[str, List[str]]:
    value = data.get("synthetic") or {}
    if not isinstance(value, dict):
        raise ConfigError("'synthetic' must map atoms to lists of atoms")
    return {str(k): _string_list({"synthetic": v}, "synthetic") for k, v in value.items()}


def build_config(args) -> ResolveConfig:
    """Merge the config file (explicit or default) with CLI ``args``.

    Scalar CLI flags replace file values; list flags extend them.

    Raises:
        ConfigError: for an unreadable or malformed configuration.
    """
    path = getattr(args, "CONFIG", None) or find_config_file()
    data: Dict[str, Any] = load_config_file(path) if path else {}
    if path:
        logger.debug("Loaded configuration from %s", path)

    local_repo = (
        getattr(args, "LOCAL_REPO", None)
        or data.get("local_repo")
        or os.environ.get(Constants.ENV_LOCAL_REPO)
        or Constants.DEFAULT_LOCAL_REPO
    )
    timeout = data.get("request_timeout")
    if timeout is not None:
        try:
            timeout = float(timeout)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"'request_timeout' must be a number, got {timeout!r}") from exc

    return ResolveConfig(
        local_repo=str(local_repo),
        repositories=_string_list(data, "repositories") + list(getattr(args, "REPOSITORIES", None) or []),
        dependencies=_string_list(data, "dependencies") + list(getattr(args, "DEPENDENCIES", None) or []),
        exclusions=_string_list(data, "exclusions") + list(getattr(args, "EXCLUSIONS", None) or []),
        synthetic=_synthetic(data),
        fail_missing=bool(getattr(args, "FAIL_MISSING", False) or data.get("fail_missing", False)),
        request_timeout=timeout,
    )
