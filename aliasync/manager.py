"""AliasManager: the single owner of alias state for one session"""

import logging
import threading
from dataclasses import replace
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from aliasync.config import Config
from aliasync.discovery import CommandDiscoveryTracker, PackageBackend
from aliasync.environment import Environment, SystemEnvironment
from aliasync.errors import InvalidAliasError
from aliasync.models import (
    CommandInfo,
    LazyPackage,
    PackageCommands,
    PackageSource,
    ShellAlias,
)
from aliasync.scanner import AliasScanner, ScanResult
from aliasync.shell_detector import ShellDetector, ShellType, is_valid_alias_name
from aliasync.shell_integrator import ShellIntegrator

logger = logging.getLogger(__name__)


def _copy_alias(alias: ShellAlias) -> ShellAlias:
    return replace(alias, shells=set(alias.shells))


class AliasManager:
    """Detected shells, discovered aliases and the managed set.

    Every mutation of the managed set rewrites all detected shells right
    away, under one lock, so memory and disk never drift apart.
    """

    def __init__(
        self,
        env: Optional[Environment] = None,
        config: Optional[Config] = None,
        tracker: Optional[CommandDiscoveryTracker] = None,
        detect: bool = True,
    ):
        self.env = env or SystemEnvironment()
        self.config = config or Config(self.env.home_dir() / ".aliasync")
        self.detector = ShellDetector(self.env)
        self.scanner = AliasScanner(self.env)
        self.integrator = ShellIntegrator(self.env, atomic_writes=bool(self.config.get("atomic_writes")))
        self.tracker = tracker or CommandDiscoveryTracker(
            probe_subcommands=bool(self.config.get("probe_subcommands", True))
        )

        self.detected_shells: List[ShellType] = []
        self.default_shell: Optional[ShellType] = None
        self.all_aliases: List[ShellAlias] = []
        self.managed_aliases: List[ShellAlias] = []
        self.available_commands: List[str] = []
        self._lock = threading.RLock()

        if detect:
            self.detect_shells()

    @property
    def lazy_packages(self) -> List[LazyPackage]:
        return self.tracker.lazy_packages

    @property
    def package_commands(self) -> List[PackageCommands]:
        return self.tracker.package_commands

    def detect_shells(self) -> None:
        with self._lock:
            self.detected_shells = self.detector.detect_installed_shells()
            self.default_shell = self.detector.detect_default_shell()
        logger.debug(
            "Detected shells: %s (default %s)",
            [shell.value for shell in self.detected_shells],
            self.default_shell.value if self.default_shell else None,
        )

    # Reading

    def scan_existing_aliases(self) -> ScanResult:
        """Read every config file without touching manager state"""
        with self._lock:
            shells = list(self.detected_shells)
        return self.scanner.scan_shells(shells)

    def apply_scan(self, result: ScanResult) -> None:
        """Replace discovered aliases with a scan result.

        Package discovery state is left alone.
        """
        with self._lock:
            self.all_aliases = result.all_aliases
            self.managed_aliases = [_copy_alias(alias) for alias in result.managed_aliases]

    def load_existing_aliases(self) -> None:
        self.apply_scan(self.scan_existing_aliases())

    def scan_available_commands(self) -> List[str]:
        commands = self.scanner.scan_available_commands()
        with self._lock:
            self.available_commands = commands
        return commands

    def conflicts_with_command(self, name: str) -> bool:
        """True if an executable called name is on PATH. Advisory only."""
        return self.env.which(name) is not None

    def get_alias(self, name: str) -> Optional[ShellAlias]:
        with self._lock:
            for alias in self.all_aliases:
                if alias.name == name:
                    return alias
        return None

    # Writing

    def preview_shells(self) -> List[Tuple[ShellType, Path, str, str]]:
        """(shell, path, current, proposed) for every shell a sync would change"""
        changes = []
        with self._lock:
            for shell in self.detected_shells:
                current, proposed = self.integrator.preview(shell, self.managed_aliases)
                if proposed is not None and proposed != current:
                    changes.append((shell, self.integrator.get_target_file(shell), current, proposed))
        return changes

    def write_aliases_to_shells(self) -> List[ShellType]:
        """Rewrite every detected shell, stopping at the first failure"""
        with self._lock:
            return self.integrator.write_aliases_to_shells(self.detected_shells, self.managed_aliases)

    def add_alias(self, alias: ShellAlias) -> List[ShellType]:
        """Add or replace a managed alias and rewrite every shell"""
        return self.add_aliases([alias])

    def add_aliases(self, aliases: Iterable[ShellAlias]) -> List[ShellType]:
        """Add or replace several aliases with a single rewrite.

        Raises InvalidAliasError, before anything changes, if any name
        can't be written as an alias line.
        """
        aliases = list(aliases)
        for alias in aliases:
            if not is_valid_alias_name(alias.name):
                raise InvalidAliasError(alias.name)

        with self._lock:
            for alias in aliases:
                alias = replace(_copy_alias(alias), managed=True, source_file=None)
                self.managed_aliases = [a for a in self.managed_aliases if a.name != alias.name]
                self.managed_aliases.append(alias)
            return self.write_aliases_to_shells()

    def delete_alias(self, name: str) -> List[ShellType]:
        with self._lock:
            self.managed_aliases = [a for a in self.managed_aliases if a.name != name]
            return self.write_aliases_to_shells()

    # Package commands

    def populate_lazy_packages(self, packages: Iterable[Tuple[str, PackageSource]]) -> None:
        self.tracker.populate(packages)

    def get_lazy_package(self, name: str, source: PackageSource) -> Optional[LazyPackage]:
        return self.tracker.get_lazy_package(name, source)

    def set_package_loading(self, name: str, source: PackageSource, loading: bool) -> None:
        self.tracker.set_package_loading(name, source, loading)

    def set_package_commands(self, name: str, source: PackageSource, commands: List[CommandInfo]) -> None:
        self.tracker.set_package_commands(name, source, commands)

    async def expand_package(
        self, name: str, source: PackageSource, backend: PackageBackend
    ) -> Optional[PackageCommands]:
        """Discover a package's commands; None if already loading or loaded"""
        return await self.tracker.discover(name, source, backend)
