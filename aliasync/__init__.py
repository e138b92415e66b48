"""aliasync - keep shell aliases in sync across bash, zsh and fish"""

__version__ = "0.3.0"
