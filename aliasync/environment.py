"""Access to the user's environment (home directory, PATH, SHELL)"""

import os
import shutil
import stat
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Mapping, Optional


def is_executable(path: Path) -> bool:
    """True if path has any execute bit set"""
    try:
        mode = path.stat().st_mode
    except OSError:
        return False
    return bool(mode & (stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH))


class Environment(ABC):
    """Everything aliasync reads from the outside world besides config files"""

    @abstractmethod
    def home_dir(self) -> Path:
        ...

    @abstractmethod
    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        ...

    def path_dirs(self) -> List[Path]:
        """Directories listed in PATH, in search order"""
        value = self.get("PATH", "") or ""
        return [Path(entry) for entry in value.split(os.pathsep) if entry]

    def which(self, name: str) -> Optional[Path]:
        """Resolve an executable on PATH"""
        found = shutil.which(name, path=self.get("PATH", "") or "")
        return Path(found) if found else None


class SystemEnvironment(Environment):
    """Environment backed by the running process.

    Both the home directory and the variables can be overridden, which is how
    the tests build a hermetic home with its own PATH.
    """

    def __init__(self, home_dir: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None):
        self._home_dir = home_dir
        self._environ: Mapping[str, str] = environ if environ is not None else os.environ

    def home_dir(self) -> Path:
        return self._home_dir or Path.home()

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._environ.get(key, default)
