"""Lazy discovery of the commands each installed package provides"""

import asyncio
import logging
import re
import subprocess
import threading
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from aliasync.models import (
    CommandInfo,
    LazyPackage,
    PackageCommands,
    PackageSource,
    SubcommandInfo,
)

logger = logging.getLogger(__name__)

SUBCOMMAND_HEADING = re.compile(
    r"^(?:available\s+)?(?:sub)?commands\s*:?\s*$", re.IGNORECASE
)
SUBCOMMAND_ENTRY = re.compile(r"^\s+([A-Za-z0-9][\w.-]*)(?:,\s*[\w.-]+)*(?:\s{2,}(.*\S))?\s*$")

# Lower sorts first when building the lazy package list
SOURCE_PRIORITY = {
    PackageSource.CARGO: 0,
    PackageSource.PIPX: 1,
    PackageSource.NPM: 2,
    PackageSource.PIP: 3,
    PackageSource.DART: 4,
    PackageSource.BREW: 5,
    PackageSource.FLATPAK: 6,
    PackageSource.SNAP: 7,
    PackageSource.APPIMAGE: 8,
}


def parse_help_subcommands(command: str, help_text: str, limit: int = 50) -> List[SubcommandInfo]:
    """Pick the entries listed under a 'Commands:' style heading"""
    subcommands: List[SubcommandInfo] = []
    in_section = False
    entry_indent = None

    for line in help_text.splitlines():
        if SUBCOMMAND_HEADING.match(line.strip()) and not line[:1].isspace():
            in_section = True
            entry_indent = None
            continue
        if not in_section:
            continue
        if not line.strip():
            continue
        if not line[:1].isspace():
            # next unindented heading ends the section
            in_section = False
            continue

        indent = len(line) - len(line.lstrip())
        if entry_indent is not None and indent != entry_indent:
            # wrapped description
            continue

        match = SUBCOMMAND_ENTRY.match(line)
        if match:
            entry_indent = indent
            name, description = match.groups()
            subcommands.append(SubcommandInfo(full_command=f"{command} {name}", description=description))
            if len(subcommands) >= limit:
                break

    return subcommands


def probe_subcommands(command: str, timeout: float = 3, limit: int = 50) -> List[SubcommandInfo]:
    """Run `command --help` and list its subcommands, empty on any failure"""
    try:
        result = subprocess.run(
            [command, "--help"],
            capture_output=True,
            text=True,
            timeout=timeout,
            stdin=subprocess.DEVNULL,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        logger.debug("Subcommand probe for %s failed: %s", command, exc)
        return []

    return parse_help_subcommands(command, result.stdout or result.stderr or "", limit)


class PackageBackend(ABC):
    """Source of package executables, implemented by the package manager layer"""

    subcommand_timeout: float = 3
    max_subcommands: int = 50

    @abstractmethod
    async def get_package_commands(self, name: str, source: PackageSource) -> List[Tuple[str, Path]]:
        """(command name, executable path) pairs installed by a package"""
        ...

    def get_subcommands(self, command: str) -> List[Tuple[str, Optional[str]]]:
        """(full invocation, description) pairs for command"""
        return [
            (sub.full_command, sub.description)
            for sub in probe_subcommands(command, self.subcommand_timeout, self.max_subcommands)
        ]


class DiscoveryState(Enum):
    NOT_REQUESTED = "not_requested"
    LOADING = "loading"
    LOADED = "loaded"


class CommandDiscoveryTracker:
    """Per-package NotRequested -> Loading -> Loaded state machine.

    Owns the lazy package list and the commands resolved so far. All state
    changes go through one lock so two expansions of the same package can't
    both start.
    """

    def __init__(self, probe_subcommands: bool = True):
        self.probe_subcommands = probe_subcommands
        self.lazy_packages: List[LazyPackage] = []
        self.package_commands: List[PackageCommands] = []
        self._lock = threading.Lock()

    def _find(self, name: str, source: PackageSource) -> Optional[LazyPackage]:
        for pkg in self.lazy_packages:
            if pkg.name == name and pkg.source == source:
                return pkg
        return None

    def _ensure(self, name: str, source: PackageSource) -> LazyPackage:
        pkg = self._find(name, source)
        if pkg is None:
            pkg = LazyPackage(name=name, source=source)
            self.lazy_packages.append(pkg)
        return pkg

    def get_lazy_package(self, name: str, source: PackageSource) -> Optional[LazyPackage]:
        with self._lock:
            return self._find(name, source)

    def state(self, name: str, source: PackageSource) -> DiscoveryState:
        pkg = self.get_lazy_package(name, source)
        if pkg is None or not (pkg.loading or pkg.loaded):
            return DiscoveryState.NOT_REQUESTED
        return DiscoveryState.LOADED if pkg.loaded else DiscoveryState.LOADING

    def populate(self, packages: Iterable[Tuple[str, PackageSource]]) -> None:
        """Replace the lazy list with the host's packages.

        Ordered by source priority; pairs already tracked keep their state.
        """
        ordered = sorted(packages, key=lambda pkg: SOURCE_PRIORITY.get(pkg[1], len(SOURCE_PRIORITY)))
        with self._lock:
            previous = {(pkg.name, pkg.source): pkg for pkg in self.lazy_packages}
            self.lazy_packages = [
                previous.get((name, source)) or LazyPackage(name=name, source=source)
                for name, source in ordered
            ]

    def begin(self, name: str, source: PackageSource) -> bool:
        """Move a pair to Loading. False if it was already Loading or Loaded."""
        with self._lock:
            pkg = self._ensure(name, source)
            if pkg.loading or pkg.loaded:
                return False
            pkg.loading = True
            return True

    def set_package_loading(self, name: str, source: PackageSource, loading: bool) -> None:
        with self._lock:
            self._ensure(name, source).loading = loading

    def set_package_commands(self, name: str, source: PackageSource, commands: List[CommandInfo]) -> PackageCommands:
        """Mark a pair Loaded and store its commands"""
        with self._lock:
            pkg = self._ensure(name, source)
            pkg.loading = False
            pkg.loaded = True

            for existing in self.package_commands:
                if existing.package_name == name and existing.source == source:
                    existing.commands = commands
                    return existing

            entry = PackageCommands(package_name=name, source=source, commands=commands)
            self.package_commands.append(entry)
            return entry

    async def _resolve_subcommands(self, backend: PackageBackend, command: str) -> List[SubcommandInfo]:
        if not self.probe_subcommands:
            return []
        try:
            pairs = await asyncio.to_thread(backend.get_subcommands, command)
        except Exception as exc:
            logger.warning("Failed to list subcommands of %s: %s", command, exc)
            return []
        return [SubcommandInfo(full_command=full, description=desc) for full, desc in pairs]

    async def discover(
        self, name: str, source: PackageSource, backend: PackageBackend
    ) -> Optional[PackageCommands]:
        """Resolve a package's commands unless already loading or loaded.

        Any failure while resolving is logged and leaves the package Loaded
        with no commands, so a later request never finds it stuck in Loading.
        """
        if not self.begin(name, source):
            logger.debug("Skipping %s (%s): already %s", name, source, self.state(name, source).value)
            return None

        logger.info("Discovering commands for %s (%s)", name, source)
        commands: List[CommandInfo] = []
        try:
            found = await backend.get_package_commands(name, source)
            resolved = []
            for command_name, path in found:
                subcommands = await self._resolve_subcommands(backend, command_name)
                resolved.append(CommandInfo(name=command_name, path=Path(path), subcommands=subcommands))
            commands = resolved
        except Exception as exc:
            logger.warning("Failed to get commands for %s (%s): %s", name, source, exc)
        finally:
            entry = self.set_package_commands(name, source, commands)

        logger.info("Discovered %d command(s) for %s (%s)", len(commands), name, source)
        return entry
