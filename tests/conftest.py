# ABOUTME: Shared fixtures for the alph test suite.
# ABOUTME: Every test runs with a throwaway home directory, project directory and clean ALPH_* env.
import os
from pathlib import Path

import pytest

from alph.utils import paths


async def _outside_git(cwd: Path | None = None) -> Path | None:
    return None


@pytest.fixture
def env_root(tmp_path_factory: pytest.TempPathFactory) -> Path:
    """Separate base directory so tests own tmp_path exclusively."""
    return tmp_path_factory.mktemp("env")


@pytest.fixture(autouse=True)
def isolated_env(env_root: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point Path.home() at env_root/home and run from env_root/project."""
    home = env_root / "home"
    project = env_root / "project"
    home.mkdir()
    project.mkdir()

    for key in list(os.environ):
        if key.startswith("ALPH_"):
            monkeypatch.delenv(key)
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setattr(Path, "home", lambda: home)
    monkeypatch.setattr(paths, "git_root", _outside_git)
    monkeypatch.chdir(project)
    return home


@pytest.fixture
def home(isolated_env: Path) -> Path:
    return isolated_env


@pytest.fixture
def project(env_root: Path) -> Path:
    return env_root / "project"
