"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import copy
import json
import os
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List

import httpx
import pytest

# Ensure src/ is on the import path (for local imports without installing as package)
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from delegate_server.config import DEFAULTS  # noqa: E402


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return the root directory of the project."""
    return Path(__file__).resolve().parent.parent


@pytest.fixture(scope="function")
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Ensure tests run with a clean environment (no leftover vars, no stray .env)."""
    for var in ["DELEGATE_CONFIG", "OPENROUTER_API_KEY", "PORT", "HOST"]:
        monkeypatch.delenv(var, raising=False)
    for var in [k for k in os.environ if k.startswith("DELEGATE__")]:
        monkeypatch.delenv(var)
    monkeypatch.chdir(tmp_path)
    yield


@pytest.fixture(scope="function")
def server_cfg(tmp_path: Path) -> Dict[str, Any]:
    """Default config with the static dir pointed at an empty temp folder."""
    cfg = copy.deepcopy(DEFAULTS)
    cfg["server"]["static_dir"] = str(tmp_path / "static")
    return cfg


class RecordingTransport:
    """Builds an ``httpx.MockTransport`` and keeps the JSON bodies it saw."""

    def __init__(self, responder: Callable[[httpx.Request], httpx.Response]):
        self.requests: List[httpx.Request] = []
        self.bodies: List[Any] = []
        self._responder = responder

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.bodies.append(json.loads(request.content or b"null"))
        return self._responder(request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)


@pytest.fixture
def recording_transport():
    return RecordingTransport
