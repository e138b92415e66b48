import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from aliasync.errors import AliasSyncError
from aliasync.manager import AliasManager
from aliasync.models import ShellAlias
from aliasync.shell_detector import is_valid_alias_name


class AliasPorter:
    """Handle import and export of managed aliases"""

    def __init__(self, manager: AliasManager):
        self.manager = manager

    def export_to_dict(self, aliases: Optional[List[ShellAlias]] = None) -> Dict[str, Any]:
        """Export aliases to a dictionary format"""
        if aliases is None:
            aliases = list(self.manager.managed_aliases)

        return {
            "version": "1.0",
            "exported_at": datetime.now().isoformat(),
            "count": len(aliases),
            "aliases": [alias.to_dict() for alias in aliases],
        }

    def export_to_file(self, filepath: Path, format: str = "json") -> Tuple[bool, str]:
        """Export managed aliases to a file"""
        data = self.export_to_dict()

        try:
            with open(filepath, "w", encoding="utf-8") as f:
                if format == "yaml":
                    yaml.dump(data, f, default_flow_style=False, sort_keys=False)
                else:
                    json.dump(data, f, indent=2)
        except OSError as e:
            return False, f"Export failed: {e}"

        return True, f"Exported {data['count']} aliases to {filepath.name}"

    def import_from_file(self, filepath: Path) -> Tuple[bool, str]:
        """Import aliases from a file into the managed set, then sync shells.

        Aliases without shells go to every detected shell.
        """
        if not filepath.exists():
            return False, f"File not found: {filepath}"

        try:
            with open(filepath, "r", encoding="utf-8") as f:
                if filepath.suffix in [".yaml", ".yml"]:
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, yaml.YAMLError) as e:
            return False, f"Import failed: {e}"

        if not isinstance(data, dict) or "aliases" not in data:
            return False, "Invalid format: missing 'aliases' field"

        if not isinstance(data["aliases"], list):
            return False, "Invalid format: 'aliases' must be a list"

        aliases = []
        skipped = 0
        for alias_data in data["aliases"]:
            try:
                alias = ShellAlias.from_dict(alias_data)
            except (KeyError, TypeError, ValueError):
                skipped += 1
                continue
            if not is_valid_alias_name(alias.name):
                skipped += 1
                continue
            if not alias.shells:
                alias.shells = set(self.manager.detected_shells)
            aliases.append(alias)

        if not aliases:
            return False, "No valid aliases to import"

        try:
            self.manager.add_aliases(aliases)
        except AliasSyncError as e:
            return False, f"Import failed: {e}"

        msg = f"Imported {len(aliases)} aliases"
        if skipped:
            msg += f" (skipped {skipped} invalid)"
        return True, msg
