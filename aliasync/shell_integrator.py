"""Write managed aliases into each shell's primary configuration file"""

import logging
import os
import shutil
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from aliasync.environment import Environment, SystemEnvironment
from aliasync.errors import ShellWriteError
from aliasync.models import ShellAlias
from aliasync.scanner import MANAGED_END, MANAGED_START
from aliasync.shell_detector import ShellType

logger = logging.getLogger(__name__)

MANAGED_NOTICE = "# Managed by LinGet - Do not edit manually"
BACKUP_SUFFIX = ".linget-backup"


def strip_managed_section(content: str) -> Tuple[str, bool]:
    """Remove the managed block (markers included) from content.

    Lines outside the block are kept exactly as they were, so content
    without a block comes back unchanged.
    """
    kept: List[str] = []
    in_section = False
    found_section = False

    for line in content.splitlines(keepends=True):
        stripped = line.strip()
        if stripped == MANAGED_START:
            in_section = True
            found_section = True
            continue
        if stripped == MANAGED_END:
            in_section = False
            continue
        if not in_section:
            kept.append(line)

    return "".join(kept), found_section


def build_managed_section(aliases: Sequence[ShellAlias], shell: ShellType) -> str:
    dialect = shell.dialect
    lines = [MANAGED_START, MANAGED_NOTICE]
    for alias in aliases:
        if alias.description:
            lines.append(f"# {alias.description}")
        lines.append(dialect.format_alias(alias.name, alias.command))
    lines.append(MANAGED_END)
    return "\n".join(lines) + "\n"


def append_managed_section(base: str, aliases: Sequence[ShellAlias], shell: ShellType) -> str:
    """Append a fresh block, separated from existing content by one blank line"""
    content = base
    if content and not content.endswith("\n"):
        content += "\n"
    if content and not content.endswith("\n\n"):
        content += "\n"
    return content + build_managed_section(aliases, shell)


def backup_path_for(config_path: Path) -> Path:
    return config_path.with_name(config_path.name + BACKUP_SUFFIX)


def read_config(config_path: Path) -> str:
    """Config text with line endings and undecodable bytes left as they are"""
    if not config_path.exists():
        return ""
    with open(config_path, "r", encoding="utf-8", errors="surrogateescape", newline="") as f:
        return f.read()


def write_config(config_path: Path, content: str) -> None:
    with open(config_path, "w", encoding="utf-8", errors="surrogateescape", newline="") as f:
        f.write(content)


class ShellIntegrator:
    """Rewrite the managed block of every shell's primary config"""

    def __init__(self, env: Optional[Environment] = None, atomic_writes: bool = False):
        self.env = env or SystemEnvironment()
        self.atomic_writes = atomic_writes

    def get_target_file(self, shell: ShellType) -> Path:
        return shell.dialect.primary_config_path(self.env.home_dir())

    def backup_shell_config(self, config_path: Path) -> Path:
        """Copy config_path next to itself, replacing the previous backup"""
        backup_path = backup_path_for(config_path)
        shutil.copy2(config_path, backup_path)
        return backup_path

    def preview(self, shell: ShellType, aliases: Iterable[ShellAlias]) -> Tuple[str, Optional[str]]:
        """Current content and the content a write would produce (None for no-op)"""
        config_path = self.get_target_file(shell)
        try:
            existing = read_config(config_path)
        except OSError as exc:
            raise ShellWriteError(shell.display_name, config_path, "read", str(exc)) from exc
        return existing, self._render(existing, shell, aliases)

    def _render(self, existing: str, shell: ShellType, aliases: Iterable[ShellAlias]) -> Optional[str]:
        remaining, found_section = strip_managed_section(existing)
        selected = [alias for alias in aliases if shell in alias.shells]

        if selected:
            return append_managed_section(remaining, selected, shell)
        if found_section:
            return remaining
        return None

    def _write(self, config_path: Path, content: str) -> None:
        if not self.atomic_writes:
            write_config(config_path, content)
            return
        tmp_path = config_path.with_name(f".{config_path.name}.aliasync-tmp")
        write_config(tmp_path, content)
        try:
            if config_path.exists():
                shutil.copymode(config_path, tmp_path)
            os.replace(tmp_path, config_path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise

    def write_aliases_to_shell(self, shell: ShellType, aliases: Iterable[ShellAlias]) -> bool:
        """Sync one shell's primary config with aliases.

        Returns False when there was nothing to do and the file was left
        alone. Raises ShellWriteError on any I/O failure.
        """
        config_path = self.get_target_file(shell)
        name = shell.display_name

        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ShellWriteError(name, config_path.parent, "create directory", str(exc)) from exc

        try:
            existing = read_config(config_path)
        except OSError as exc:
            raise ShellWriteError(name, config_path, "read", str(exc)) from exc

        final_content = self._render(existing, shell, aliases)
        if final_content is None:
            return False

        if config_path.exists():
            try:
                self.backup_shell_config(config_path)
            except OSError as exc:
                raise ShellWriteError(name, config_path, "back up", str(exc)) from exc

        try:
            self._write(config_path, final_content)
        except OSError as exc:
            raise ShellWriteError(name, config_path, "write", str(exc)) from exc

        logger.info("Updated managed aliases in %s", config_path)
        return True

    def write_aliases_to_shells(self, shells: Iterable[ShellType], aliases: Sequence[ShellAlias]) -> List[ShellType]:
        """Sync every shell in order, stopping at the first failure"""
        written = []
        for shell in shells:
            if self.write_aliases_to_shell(shell, aliases):
                written.append(shell)
        return written
