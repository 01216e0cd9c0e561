from __future__ import annotations
from logging import getLogger
from typing import Any, Mapping, Optional, Union

from effect_runner.runtime.channels import Channels
from effect_runner.runtime.debounce import (
    DEFAULT_THRESHOLD,
    DEFAULT_WINDOW_MS,
    ResultDebouncer,
)
from effect_runner.runtime.dispatcher import Dispatcher
from effect_runner.runtime.registry import TaskRegistry
from effect_runner.runtime.types import DebugOptions, TaskBatchLike


logger = getLogger(__name__)

DebugArg = Union[None, bool, Mapping[str, Any], DebugOptions]


class TaskRunner:
    """
    1つの runner = Registry + Dispatcher + ResultDebouncer。
    グローバル状態は持たないので、テストでは複数インスタンスを並べてよい
    """

    def __init__(
        self,
        *,
        tasks: Optional[Mapping[str, Any]] = None,
        channels: Optional[Channels] = None,
        builtin_overrides: Optional[Mapping[str, Any]] = None,
        debug: DebugArg = None,
        debounce_threshold: int = DEFAULT_THRESHOLD,
        debounce_window_ms: int = DEFAULT_WINDOW_MS,
    ) -> None:
        self.debug = DebugOptions.coerce(debug)
        self.channels = channels or Channels.in_memory()
        self.registry = TaskRegistry.build(
            tasks,
            builtin_overrides,
            warn_collisions=self.debug.enabled,
        )
        self.debouncer = ResultDebouncer(self.channels.outbound.send)
        self.dispatcher = Dispatcher(
            self.registry,
            self.debouncer,
            debug=self.debug,
            debounce_threshold=debounce_threshold,
            debounce_window_ms=debounce_window_ms,
        )
        self._started = False

    # ---------- lifecycle ----------
    def start(self) -> None:
        if self._started:
            return
        self.channels.inbound.subscribe(self.dispatch)
        self._started = True
        logger.info("runner started with %d tasks", len(self.registry))

    def stop(self) -> None:
        if self._started:
            self.channels.inbound.unsubscribe(self.dispatch)
            self._started = False
        self.debouncer.flush()

    async def drain(self) -> None:
        await self.dispatcher.drain()

    # ---------- inbound ----------
    def dispatch(self, batch: TaskBatchLike) -> None:
        self.dispatcher.dispatch(batch)


def register(
    *,
    tasks: Optional[Mapping[str, Any]] = None,
    channels: Channels,
    builtin_overrides: Optional[Mapping[str, Any]] = None,
    debug: DebugArg = None,
) -> TaskRunner:
    runner = TaskRunner(
        tasks=tasks,
        channels=channels,
        builtin_overrides=builtin_overrides,
        debug=debug,
    )
    runner.start()
    return runner
