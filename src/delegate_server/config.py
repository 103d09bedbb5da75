"""Configuration loading utilities for the Delegate proxy server.

This module handles layered configuration:
1. Explicit path argument (highest precedence)
2. Environment variable DELEGATE_CONFIG
3. Fallback to "config/default.yaml"

It also supports optional overrides from environment variables with prefix
``DELEGATE__`` (e.g., DELEGATE__UPSTREAM__MODEL=openai/gpt-4o-mini).
The upstream credential and listen port are read from ``OPENROUTER_API_KEY``
and ``PORT``; a ``.env`` file in the working directory is honoured.
"""

from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful, friendly AI assistant for a website. You help users "
    "navigate and answer questions about the site. Be concise, professional, "
    "and warm. Keep responses to 1-2 sentences when possible."
)

DEFAULTS: Dict[str, Any] = {
    "server": {
        "host": "127.0.0.1",
        "port": 3000,
        "cors_origins": ["*"],
        "static_dir": "static",
    },
    "upstream": {
        "base_url": "https://openrouter.ai/api/v1",
        "model": "meta-llama/llama-3.1-8b-instruct",
        "max_tokens": 500,
        "temperature": 0.7,
        "referer": "http://localhost:3000",
        "title": "Delegate AI Assistant",
    },
    "assistant": {
        "system_prompt": DEFAULT_SYSTEM_PROMPT,
    },
}


def _merge(base: Dict[str, Any], extra: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``extra`` into ``base`` (returns ``base``)."""
    for key, value in extra.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def _coerce(value: str) -> Any:
    if value.lower() in {"true", "false"}:
        return value.lower() == "true"
    try:
        if "." in value:
            return float(value)
        return int(value)
    except ValueError:
        return value


def _apply_env_overrides(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides with prefix DELEGATE__."""
    prefix = "DELEGATE__"
    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue
        # e.g., DELEGATE__UPSTREAM__MODEL -> cfg["upstream"]["model"]
        parts = key[len(prefix):].lower().split("__")
        sub = cfg
        for p in parts[:-1]:
            if p not in sub or not isinstance(sub[p], dict):
                sub[p] = {}
            sub = sub[p]
        sub[parts[-1]] = _coerce(value)
    return cfg


def _apply_process_env(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Pick up the well-known variables (credential, host, port)."""
    upstream = cfg.setdefault("upstream", {})
    server = cfg.setdefault("server", {})
    api_key = os.environ.get("OPENROUTER_API_KEY")
    if api_key:
        upstream["api_key"] = api_key
    if os.environ.get("PORT"):
        server["port"] = int(os.environ["PORT"])
    if os.environ.get("HOST"):
        server["host"] = os.environ["HOST"]
    return cfg


def load_config(path: Optional[str] = None, *, dotenv: bool = True) -> Dict[str, Any]:
    """Load YAML configuration for the proxy server.

    Parameters
    ----------
    path : str | None
        Optional path to a configuration file. If not provided, the
        environment variable ``DELEGATE_CONFIG`` is consulted. As a
        last resort ``config/default.yaml`` is used.
    dotenv : bool
        Load a ``.env`` file from the working directory first.

    Returns
    -------
    Dict[str, Any]
        Defaults merged with the parsed file, then environment overrides.
    """
    if dotenv:
        load_dotenv(find_dotenv(usecwd=True))

    if path is None:
        path = os.environ.get("DELEGATE_CONFIG", "config/default.yaml")

    cfg = copy.deepcopy(DEFAULTS)
    path_obj = Path(path)
    if not path_obj.exists():
        logger.warning("config file not found at %s, using defaults", path_obj)
    else:
        with path_obj.open("r", encoding="utf-8") as f:
            try:
                loaded = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise RuntimeError(f"Failed to parse config file {path_obj}: {e}") from e

        if not isinstance(loaded, dict):
            raise RuntimeError(f"Invalid config format in {path_obj}, expected dict.")
        _merge(cfg, loaded)

    cfg = _apply_env_overrides(cfg)
    return _apply_process_env(cfg)
