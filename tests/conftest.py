"""Shared test fixtures for qbcache.

Provides an isolated settings environment, a controllable clock for TTL
tests, ready-made cache engines, and a CLI runner. These fixtures are
discovered by pytest and available to all test modules.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from qbcache.cache import QBCache
from qbcache.models import CacheSettings
from qbcache.output import reset_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager holds references to sys.stdout/sys.stderr taken when
    it was created; CliRunner swaps those streams per invocation.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# Settings and engines
# ---------------------------------------------------------------------------


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    path = tmp_path / "qb-cache"
    path.mkdir()
    return path


@pytest.fixture
def settings(cache_dir: Path) -> CacheSettings:
    """Default settings with API_DoQuery also enabled, writing to cache_dir."""
    return CacheSettings(
        location=cache_dir,
        allowed={
            "API_DoQuery": True,
            "API_DoQueryCount": False,
            "API_GetSchema": True,
            "API_GetUserRole": True,
        },
    )


@pytest.fixture
def cache(settings: CacheSettings, clock: FakeClock) -> QBCache:
    return QBCache(settings, clock=clock)


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points the XDG base directories at subdirectories of tmp_path, clears
    the QBCACHE_* environment variables, and changes the working directory
    to tmp_path.

    Returns:
        The tmp_path root directory.
    """
    monkeypatch.setattr("qbcache.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in ["QBCACHE_LOCATION", "QBCACHE_NAMESPACE"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
