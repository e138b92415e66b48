"""Exceptions raised by aliasync"""

from pathlib import Path
from typing import Optional


class AliasSyncError(Exception):
    """Base class for aliasync errors"""


class ShellWriteError(AliasSyncError):
    """Rewriting a shell's primary config file failed"""

    def __init__(self, shell: str, path: Path, action: str, reason: Optional[str] = None):
        self.shell = shell
        self.path = path
        self.action = action
        message = f"Failed to {action} {path} for {shell}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class InvalidAliasError(AliasSyncError):
    """An alias name that no supported shell would accept"""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Invalid alias name: {name!r}")
