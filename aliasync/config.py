import json
from pathlib import Path
from typing import Dict, Any, Optional


class Config:
    """Manage aliasync settings"""

    DEFAULT_CONFIG = {
        "atomic_writes": False,  # temp file + rename instead of writing in place
        "probe_subcommands": True,
        "background_workers": 2,
        "command_suggestion_limit": 100,
    }

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = config_dir or Path.home() / ".aliasync"
        self.config_path = self.config_dir / "config.json"
        self.config = self.load()

    def load(self) -> Dict[str, Any]:
        """Load configuration from file"""
        if self.config_path.exists():
            try:
                with open(self.config_path, 'r') as f:
                    user_config = json.load(f)
                if isinstance(user_config, dict):
                    return {**self.DEFAULT_CONFIG, **user_config}
            except (OSError, json.JSONDecodeError):
                pass
        return self.DEFAULT_CONFIG.copy()

    def save(self) -> None:
        """Save configuration to file"""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, 'w') as f:
            json.dump(self.config, f, indent=2)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value"""
        return self.config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set configuration value"""
        self.config[key] = value
        self.save()
