"""Data models for aliases and package commands"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Set

from aliasync.shell_detector import ShellType


class PackageSource(Enum):
    """Package backends a package can come from"""

    APT = "apt"
    DNF = "dnf"
    PACMAN = "pacman"
    ZYPPER = "zypper"
    FLATPAK = "flatpak"
    SNAP = "snap"
    NPM = "npm"
    PIP = "pip"
    PIPX = "pipx"
    CARGO = "cargo"
    BREW = "brew"
    AUR = "aur"
    CONDA = "conda"
    MAMBA = "mamba"
    DART = "dart"
    DEB = "deb"
    APPIMAGE = "appimage"

    def __str__(self) -> str:
        return self.value


@dataclass
class ShellAlias:
    """An alias found in, or destined for, one or more shell configs"""
    name: str
    command: str
    shells: Set[ShellType] = field(default_factory=set)
    managed: bool = True  # lives inside our managed block
    source_file: Optional[Path] = None  # only set for aliases read from disk
    description: Optional[str] = None

    @classmethod
    def from_config(
        cls,
        name: str,
        command: str,
        shell: ShellType,
        source_file: Path,
        managed: bool = False,
    ) -> "ShellAlias":
        """Alias discovered while scanning a config file"""
        return cls(
            name=name,
            command=command,
            shells={shell},
            managed=managed,
            source_file=source_file,
        )

    def shells_display(self) -> str:
        return ", ".join(sorted(shell.display_name for shell in self.shells))

    def to_dict(self) -> dict:
        """Convert alias to dictionary for export"""
        return {
            "name": self.name,
            "command": self.command,
            "shells": sorted(shell.value for shell in self.shells),
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ShellAlias":
        """Create a managed alias from an exported dictionary"""
        name, command = data["name"], data["command"]
        if not isinstance(name, str) or not isinstance(command, str):
            raise TypeError("alias name and command must be strings")
        description = data.get("description")
        if description is not None and not isinstance(description, str):
            raise TypeError("alias description must be a string")
        shells = data.get("shells") or []
        if not isinstance(shells, list):
            raise TypeError("alias shells must be a list")
        return cls(
            name=name,
            command=command,
            shells={ShellType(value) for value in shells},
            description=description,
        )

    def __str__(self) -> str:
        return f"{self.name}='{self.command}'"


@dataclass
class SubcommandInfo:
    full_command: str
    description: Optional[str] = None


@dataclass
class CommandInfo:
    """An executable provided by a package"""
    name: str
    path: Path
    description: Optional[str] = None
    subcommands: List[SubcommandInfo] = field(default_factory=list)


@dataclass
class LazyPackage:
    """Discovery state of one package, as shown to the user"""
    name: str
    source: PackageSource
    loading: bool = False
    loaded: bool = False


@dataclass
class PackageCommands:
    package_name: str
    source: PackageSource
    commands: List[CommandInfo] = field(default_factory=list)
