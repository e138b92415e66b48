"""Shell detection and per-shell alias syntax"""

from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from aliasync.environment import Environment, SystemEnvironment


class ShellType(Enum):
    """Supported shell types"""

    BASH = "bash"
    ZSH = "zsh"
    FISH = "fish"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @property
    def dialect(self) -> "ShellDialect":
        return DIALECTS[self]


def strip_quotes(value: str) -> Tuple[str, Optional[str]]:
    """Remove one layer of matching quotes, returning the quote char used"""
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1], value[0]
    return value, None


def is_valid_alias_name(name: str) -> bool:
    if not name:
        return False
    return not any(ch.isspace() or ch in "='\"" for ch in name)


class ShellDialect(ABC):
    """Config locations and alias syntax for one shell"""

    shell_type: ShellType
    executable: str
    # Relative to home, scanned in this order
    CONFIG_FILES: List[str] = []
    PRIMARY_CONFIG: str = ""

    def config_paths(self, home_dir: Path) -> List[Path]:
        return [home_dir / pattern for pattern in self.CONFIG_FILES]

    def primary_config_path(self, home_dir: Path) -> Path:
        """The only file this shell's aliases are ever written to"""
        return home_dir / self.PRIMARY_CONFIG

    def is_installed(self, env: Environment) -> bool:
        return env.which(self.executable) is not None

    @abstractmethod
    def format_alias(self, name: str, command: str) -> str:
        ...

    @abstractmethod
    def parse_alias_line(self, line: str) -> Optional[Tuple[str, str]]:
        ...


class PosixDialect(ShellDialect):
    """bash and zsh: alias name='command'"""

    def format_alias(self, name: str, command: str) -> str:
        escaped = command.replace("'", "'\\''")
        return f"alias {name}='{escaped}'"

    def parse_alias_line(self, line: str) -> Optional[Tuple[str, str]]:
        line = line.strip()
        if not line.startswith("alias "):
            return None

        rest = line[len("alias "):].strip()
        name, sep, value = rest.partition("=")
        if not sep:
            return None
        name = name.strip()
        if not is_valid_alias_name(name):
            return None

        command, quote = strip_quotes(value.strip())
        if quote == "'":
            command = command.replace("'\\''", "'")
        return name, command


class BashDialect(PosixDialect):
    shell_type = ShellType.BASH
    executable = "bash"
    CONFIG_FILES = [".bashrc", ".bash_aliases", ".bash_profile", ".profile"]
    PRIMARY_CONFIG = ".bashrc"


class ZshDialect(PosixDialect):
    shell_type = ShellType.ZSH
    executable = "zsh"
    CONFIG_FILES = [".zshrc", ".zsh_aliases", ".zprofile"]
    PRIMARY_CONFIG = ".zshrc"


class FishDialect(ShellDialect):
    """fish: alias name 'command' or a one-line function"""

    shell_type = ShellType.FISH
    executable = "fish"
    CONFIG_FILES = [".config/fish/config.fish", ".config/fish/functions"]
    PRIMARY_CONFIG = ".config/fish/config.fish"

    def format_alias(self, name: str, command: str) -> str:
        escaped = command.replace("'", "\\'")
        return f"alias {name} '{escaped}'"

    def parse_alias_line(self, line: str) -> Optional[Tuple[str, str]]:
        line = line.strip()

        if line.startswith("alias "):
            rest = line[len("alias "):].strip()
            name, sep, value = rest.partition(" ")
            if not sep or not is_valid_alias_name(name):
                return None
            command, quote = strip_quotes(value.strip())
            if quote == "'":
                command = command.replace("\\'", "'")
            return name, command

        if line.startswith("function ") and ";" in line:
            rest = line[len("function "):].strip()
            name, _, body = rest.partition(";")
            name = name.strip()
            body = body.strip()
            end_pos = body.find("; end")
            if end_pos < 0 or not is_valid_alias_name(name):
                return None
            command, _ = strip_quotes(body[:end_pos].strip())
            return name, command

        return None


DIALECTS: Dict[ShellType, ShellDialect] = {
    ShellType.BASH: BashDialect(),
    ShellType.ZSH: ZshDialect(),
    ShellType.FISH: FishDialect(),
}


class ShellDetector:
    """Detect installed shells and the user's login shell"""

    def __init__(self, env: Optional[Environment] = None):
        self.env = env or SystemEnvironment()

    @property
    def home_dir(self) -> Path:
        return self.env.home_dir()

    def detect_installed_shells(self) -> List[ShellType]:
        """Shells whose executable resolves on PATH, in bash, zsh, fish order"""
        return [shell for shell in ShellType if shell.dialect.is_installed(self.env)]

    def detect_default_shell(self) -> Optional[ShellType]:
        """Shell named by $SHELL, if it is one we support"""
        shell_env = (self.env.get("SHELL", "") or "").strip()
        if not shell_env:
            return None
        for shell in ShellType:
            if shell_env.endswith(shell.value):
                return shell
        return None

    def find_config_files(self, shell_type: ShellType) -> Dict[str, Path]:
        """Existing, regular config files for shell"""
        config_files = {}
        for pattern in shell_type.dialect.CONFIG_FILES:
            config_path = self.home_dir / pattern
            if config_path.is_file():
                config_files[pattern] = config_path
        return config_files
