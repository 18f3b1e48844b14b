"""Fire-and-forget prompt dispatch.

Prompts are handed to a worker thread so a slow or failing agent runtime
never blocks the caller that moved a card. Outcomes are only logged; they
never flow back into the board operation that triggered them.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from typing import Callable

logger = logging.getLogger(__name__)


class PromptDispatcher:
    """Runs dispatch jobs on a small thread pool and logs their outcome."""

    def __init__(self, max_workers: int = 4):
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="squadboard-dispatch",
        )

    def submit(self, fn: Callable, *args, description: str = "") -> Future:
        """Schedule ``fn(*args)`` and return its future (callers may ignore it)."""
        future = self._executor.submit(fn, *args)
        future.add_done_callback(partial(self._log_outcome, description or getattr(fn, "__name__", "job")))
        return future

    @staticmethod
    def _log_outcome(description: str, future: Future) -> None:
        if future.cancelled():
            logger.warning(f"[DISPATCH] {description} cancelled")
            return
        exc = future.exception()
        if exc is not None:
            logger.error(f"[DISPATCH] {description} failed: {exc}", exc_info=exc)
        else:
            logger.debug(f"[DISPATCH] {description} done")

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting jobs; optionally wait for in-flight prompts."""
        self._executor.shutdown(wait=wait)
