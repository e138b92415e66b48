"""Scanner for aliases already defined in shell configuration files"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from aliasync.environment import Environment, SystemEnvironment, is_executable
from aliasync.models import ShellAlias
from aliasync.shell_detector import ShellType

logger = logging.getLogger(__name__)

MANAGED_START = "# >>> LinGet Aliases >>>"
MANAGED_END = "# <<< LinGet Aliases <<<"


@dataclass
class ScanResult:
    all_aliases: List[ShellAlias] = field(default_factory=list)
    managed_aliases: List[ShellAlias] = field(default_factory=list)


class AliasScanner:
    """Scan and merge existing aliases from every detected shell's configs"""

    def __init__(self, env: Optional[Environment] = None):
        self.env = env or SystemEnvironment()

    def read_lines(self, filepath: Path) -> List[str]:
        """Lines of a config file, or nothing if it can't be read"""
        if not filepath.is_file():
            return []
        try:
            return filepath.read_text(encoding="utf-8", errors="replace").splitlines()
        except OSError as exc:
            logger.debug("Skipping unreadable config %s: %s", filepath, exc)
            return []

    def scan_shells(self, shells: Iterable[ShellType]) -> ScanResult:
        """Scan every config path of every shell.

        Aliases are keyed by name. The first definition seen (shell order,
        then path order, then line order) fixes the command, managed flag and
        source file; later definitions of the same name only add their shell.
        """
        result = ScanResult()
        seen: Dict[str, ShellAlias] = {}
        home_dir = self.env.home_dir()

        for shell in shells:
            dialect = shell.dialect
            for config_path in dialect.config_paths(home_dir):
                in_managed_block = False
                for line in self.read_lines(config_path):
                    stripped = line.strip()
                    if stripped == MANAGED_START:
                        in_managed_block = True
                        continue
                    if stripped == MANAGED_END:
                        in_managed_block = False
                        continue

                    parsed = dialect.parse_alias_line(line)
                    if parsed is None:
                        continue
                    name, command = parsed

                    existing = seen.get(name)
                    if existing is not None:
                        existing.shells.add(shell)
                        continue

                    alias = ShellAlias.from_config(
                        name, command, shell, config_path, managed=in_managed_block
                    )
                    seen[name] = alias
                    result.all_aliases.append(alias)

        result.managed_aliases = [alias for alias in result.all_aliases if alias.managed]
        logger.debug(
            "Scanned %d aliases (%d managed)",
            len(result.all_aliases),
            len(result.managed_aliases),
        )
        return result

    def scan_available_commands(self) -> List[str]:
        """Names of every executable reachable through PATH, sorted"""
        seen = set()
        for directory in self.env.path_dirs():
            try:
                entries = list(directory.iterdir())
            except OSError:
                continue
            for entry in entries:
                if entry.name in seen:
                    continue
                if not (entry.is_file() or entry.is_symlink()):
                    continue
                if is_executable(entry):
                    seen.add(entry.name)
        return sorted(seen)
