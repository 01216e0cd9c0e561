from __future__ import annotations
import asyncio
from logging import getLogger
from typing import Any, Callable, Dict, List, Optional, Sized

from effect_runner.runtime.types import TaskResult


logger = getLogger(__name__)

DEFAULT_THRESHOLD = 10
DEFAULT_WINDOW_MS = 20

SendFn = Callable[[List[Dict[str, Any]]], None]


def debounce_window(
    batch: Sized,
    *,
    threshold: int = DEFAULT_THRESHOLD,
    window_ms: int = DEFAULT_WINDOW_MS,
) -> int:
    """large batches wait `window_ms` for siblings, small ones flush next tick"""
    return window_ms if len(batch) > threshold else 0


class ResultDebouncer:
    """
    完了した TaskResult を溜めて、静かになったらまとめて outbound に流す。

    enqueue のたびに保留中のタイマーを取り消して張り直す。
    Owned by a single runner and only touched from its event loop.
    """

    def __init__(self, send: SendFn) -> None:
        self._send = send
        self._results: List[TaskResult] = []
        self._handle: Optional[asyncio.TimerHandle] = None
        self.flush_count = 0

    @property
    def pending(self) -> int:
        return len(self._results)

    def enqueue(self, result: TaskResult, window_ms: int = 0) -> None:
        self._results.append(result)
        if self._handle is not None:
            self._handle.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(window_ms / 1000, self.flush)

    def flush(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if not self._results:
            return

        batch, self._results = self._results, []
        self.flush_count += 1
        try:
            self._send([r.to_message() for r in batch])
        except Exception:
            logger.exception("failed to send %d task results", len(batch))
