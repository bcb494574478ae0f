"""Integration test fixtures.

Round trips run against a directory-backed store by default. Set
LIVE_CACHE_SERVICE=true with ACTIONS_CACHE_URL and ACTIONS_RUNTIME_TOKEN
to exercise a real cache service.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from workflow_cache.core.config import Settings


LIVE_CACHE_SERVICE = os.getenv("LIVE_CACHE_SERVICE", "false").lower() == "true"


@pytest.fixture
def node_modules(workspace: Path) -> Path:
    """A small dependency tree with nested and hidden files."""
    root = workspace / "node_modules"
    (root / "left-pad" / "lib").mkdir(parents=True)
    (root / "left-pad" / "package.json").write_text('{"name": "left-pad"}')
    (root / "left-pad" / "lib" / "index.js").write_text("module.exports = s => s;\n")
    (root / ".bin").mkdir()
    (root / ".bin" / ".keep").write_text("")
    return root


@pytest.fixture
def live_settings(settings: Settings) -> Settings:
    """Settings for a real cache service, from the runner environment."""
    if not LIVE_CACHE_SERVICE:
        pytest.skip("LIVE_CACHE_SERVICE is not enabled")
    live = Settings(_env_file=None, workspace=settings.workspace, temp_dir=settings.temp_dir)
    if not live.cache_url or live.cache_url.startswith("file://"):
        pytest.skip("ACTIONS_CACHE_URL does not point at a cache service")
    return live


@pytest.fixture
def npm_home(tmp_path: Path) -> Path:
    """A package cache outside the workspace, the way ~/.npm sits beside it."""
    root = tmp_path / "home" / ".npm"
    (root / "_cacache" / "index").mkdir(parents=True)
    (root / "_cacache" / "index" / "entry").write_text("sha512-abc")
    (root / "registry.json").write_text('{"registry": "https://registry.npmjs.org/"}')
    return root
