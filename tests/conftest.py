"""Test configuration and shared fixtures."""

from pathlib import Path

import pytest

from tests.fakes.fake_store import FakeCacheStore
from workflow_cache.core.config import Settings


# ============================================================================
# Filesystem Fixtures
# ============================================================================

@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Workspace root archives are relative to."""
    path = tmp_path / "workspace"
    path.mkdir()
    return path


@pytest.fixture
def runner_temp(tmp_path: Path) -> Path:
    """Directory receiving transient archives."""
    path = tmp_path / "runner-temp"
    path.mkdir()
    return path


@pytest.fixture
def store_root(tmp_path: Path) -> Path:
    """Root of a directory-backed cache store."""
    path = tmp_path / "store"
    path.mkdir()
    return path


@pytest.fixture
def dist(workspace: Path) -> Path:
    """Build output with a single 10-byte file."""
    path = workspace / "dist"
    path.mkdir()
    (path / "app.bin").write_bytes(b"0123456789")
    return path


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def settings(workspace: Path, runner_temp: Path, store_root: Path) -> Settings:
    """Settings pointing at temporary directories."""
    return Settings(
        _env_file=None,
        cache_url=store_root.as_uri(),
        runtime_token="test-token",
        workspace=workspace,
        temp_dir=runner_temp,
        runner_debug=False,
        default_compression="zstd",
        http_max_retries=0,
    )


@pytest.fixture
def fake_store() -> FakeCacheStore:
    """Empty in-memory cache store."""
    return FakeCacheStore()
