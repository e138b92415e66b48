"""Logging setup for aliasync"""

import logging
import threading

from rich.console import Console
from rich.logging import RichHandler

_lock = threading.Lock()
_setup_done = False

stderr_console = Console(stderr=True)


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Attach a RichHandler to the ``aliasync`` logger (idempotent).

    WARNING and above by default, DEBUG when verbose. Messages do not
    propagate to the root logger.
    """
    global _setup_done
    logger = logging.getLogger("aliasync")
    with _lock:
        logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
        if _setup_done:
            return logger
        handler = RichHandler(console=stderr_console, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        logger.addHandler(handler)
        logger.propagate = False
        _setup_done = True
    return logger
