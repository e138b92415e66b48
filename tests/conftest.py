from pathlib import Path
from typing import Callable, Iterable, Optional

import pytest

from aliasync.config import Config
from aliasync.environment import SystemEnvironment
from aliasync.manager import AliasManager
from aliasync.models import ShellAlias
from aliasync.shell_detector import ShellType


@pytest.fixture
def home(tmp_path) -> Path:
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    return home_dir


@pytest.fixture
def bin_dir(tmp_path) -> Path:
    path = tmp_path / "bin"
    path.mkdir()
    return path


def make_executable(directory: Path, name: str) -> Path:
    path = directory / name
    path.write_text("#!/bin/sh\nexit 0\n")
    path.chmod(0o755)
    return path


@pytest.fixture
def make_env(home, bin_dir) -> Callable[..., SystemEnvironment]:
    """Hermetic environment with only the given shells installed"""

    def factory(shells: Iterable[str] = (), login_shell: Optional[str] = None, extra: Iterable[str] = ()):
        for name in list(shells) + list(extra):
            make_executable(bin_dir, name)
        environ = {"PATH": str(bin_dir)}
        if login_shell:
            environ["SHELL"] = f"/usr/bin/{login_shell}"
        return SystemEnvironment(home_dir=home, environ=environ)

    return factory


@pytest.fixture
def make_manager(make_env) -> Callable[..., AliasManager]:
    def factory(shells: Iterable[str] = (), login_shell: Optional[str] = None, **config):
        env = make_env(shells, login_shell)
        cfg = Config(env.home_dir() / ".aliasync")
        cfg.config.update(config)
        return AliasManager(env=env, config=cfg)

    return factory


@pytest.fixture
def alias() -> ShellAlias:
    return ShellAlias(
        name="ll",
        command="ls -la",
        shells={ShellType.BASH},
        description="long listing",
    )
