"""Filtered views over an AliasManager for list and search screens"""

from dataclasses import dataclass
from typing import List, Optional

from aliasync.manager import AliasManager
from aliasync.models import LazyPackage, PackageCommands, PackageSource, ShellAlias
from aliasync.shell_detector import ShellType


@dataclass
class AliasView:
    manager: AliasManager
    search_query: str = ""
    show_existing: bool = False  # include aliases we don't manage
    filter_shell: Optional[ShellType] = None

    @property
    def _query(self) -> str:
        return self.search_query.lower()

    def filtered_aliases(self) -> List[ShellAlias]:
        query = self._query
        base = self.manager.all_aliases if self.show_existing else self.manager.managed_aliases

        results = []
        for alias in base:
            if query and query not in alias.name.lower() and query not in alias.command.lower():
                continue
            if self.filter_shell is not None and self.filter_shell not in alias.shells:
                continue
            results.append(alias)
        return results

    def filtered_commands(self) -> List[str]:
        query = self._query
        limit = int(self.manager.config.get("command_suggestion_limit", 100))
        matches = [c for c in self.manager.available_commands if not query or query in c.lower()]
        return matches[:limit]

    def filtered_package_commands(self) -> List[PackageCommands]:
        query = self._query
        if not query:
            return list(self.manager.package_commands)
        return [
            pkg
            for pkg in self.manager.package_commands
            if query in pkg.package_name.lower()
            or any(query in command.name.lower() for command in pkg.commands)
        ]

    def filtered_lazy_packages(self) -> List[LazyPackage]:
        query = self._query
        return [pkg for pkg in self.manager.lazy_packages if not query or query in pkg.name.lower()]

    def get_package_commands_for(self, name: str, source: PackageSource) -> Optional[PackageCommands]:
        for pkg in self.manager.package_commands:
            if pkg.package_name == name and pkg.source == source:
                return pkg
        return None
