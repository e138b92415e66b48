"""Run slow scans off the caller's thread and report back when done"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Optional

from aliasync.manager import AliasManager

logger = logging.getLogger(__name__)


@dataclass
class Completion:
    """Signal delivered when a background task finishes"""
    task: str
    result: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


CompletionCallback = Callable[[Completion], None]


class BackgroundRunner:
    """Thin wrapper around a thread pool that reports every task once"""

    def __init__(self, max_workers: int = 2):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="aliasync")

    def submit(self, task: str, fn: Callable[[], Any], on_done: Optional[CompletionCallback] = None) -> "Future[Completion]":
        def run() -> Completion:
            try:
                completion = Completion(task=task, result=fn())
            except Exception as exc:
                logger.debug("Background task %s failed: %s", task, exc)
                completion = Completion(task=task, error=exc)
            if on_done is not None:
                try:
                    on_done(completion)
                except Exception:
                    logger.exception("Completion callback for %s failed", task)
            return completion

        return self._executor.submit(run)

    def load_aliases(self, manager: AliasManager, on_done: Optional[CompletionCallback] = None) -> "Future[Completion]":
        """Rescan every config file, then swap the result into manager"""
        def load():
            result = manager.scan_existing_aliases()
            manager.apply_scan(result)
            return result

        return self.submit("load_aliases", load, on_done)

    def scan_commands(self, manager: AliasManager, on_done: Optional[CompletionCallback] = None) -> "Future[Completion]":
        return self.submit("scan_commands", manager.scan_available_commands, on_done)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "BackgroundRunner":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()
