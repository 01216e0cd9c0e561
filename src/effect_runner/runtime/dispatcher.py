from __future__ import annotations
import asyncio
from logging import getLogger
from typing import List, Set

from effect_runner.runtime.debounce import (
    DEFAULT_THRESHOLD,
    DEFAULT_WINDOW_MS,
    ResultDebouncer,
    debounce_window,
)
from effect_runner.runtime.errors import classify, missing_function
from effect_runner.runtime.registry import Implementation, TaskRegistry
from effect_runner.runtime.types import (
    DebugOptions,
    Outcome,
    Success,
    TaskDefinition,
    TaskBatchLike,
    TaskResult,
)


logger = getLogger(__name__)


class Dispatcher:
    """
    受け取った TaskBatch を検証して、各タスクを並行に実行する。

    - 未登録の function が1つでもあれば、その定義について missing_function を
      1件返し、バッチ全体を実行しない
    - 実行は全部並行 (上限なし)。完了したものから順に debouncer へ流す
    - タスク内の例外は js_exception に変換され、ここより外には出ない
    """

    def __init__(
        self,
        registry: TaskRegistry,
        debouncer: ResultDebouncer,
        *,
        debug: DebugOptions | None = None,
        debounce_threshold: int = DEFAULT_THRESHOLD,
        debounce_window_ms: int = DEFAULT_WINDOW_MS,
    ) -> None:
        self.registry = registry
        self.debouncer = debouncer
        self.debug = debug or DebugOptions()
        self.debounce_threshold = debounce_threshold
        self.debounce_window_ms = debounce_window_ms
        self._inflight: Set["asyncio.Task[None]"] = set()

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    def dispatch(self, batch: TaskBatchLike) -> None:
        """
        Schedules the batch and returns immediately. Must be called from the
        thread running the event loop.
        """
        defs: List[TaskDefinition] = [TaskDefinition.from_message(m) for m in batch]
        window = debounce_window(
            defs,
            threshold=self.debounce_threshold,
            window_ms=self.debounce_window_ms,
        )

        for d in defs:
            if d.function not in self.registry:
                logger.warning(
                    "%s is not registered; dropping batch of %d (attempt %s)",
                    d.function,
                    len(defs),
                    d.attempt_id,
                )
                self.debouncer.enqueue(
                    TaskResult(d.attempt_id, d.task_id, missing_function(d.function)),
                    window,
                )
                return

        loop = asyncio.get_running_loop()
        for d in defs:
            impl = self.registry.get(d.function)
            task = loop.create_task(
                self._run(impl, d, window),
                name=f"{d.function}:{d.attempt_id}:{d.task_id}",
            )
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)

    async def drain(self) -> None:
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def _run(self, impl: Implementation, d: TaskDefinition, window: int) -> None:
        if self.debug.trace_start:
            logger.info(
                "--starting-- %s attempt-%s id-%s", d.function, d.attempt_id, d.task_id
            )

        outcome: Outcome
        try:
            outcome = Success(await impl.invoke(d.args))
        except Exception as e:
            logger.debug("%s raised", d.function, exc_info=True)
            outcome = classify(e)

        if self.debug.trace_finish:
            logger.info(
                "--complete-- %s attempt-%s id-%s", d.function, d.attempt_id, d.task_id
            )
        self.debouncer.enqueue(TaskResult(d.attempt_id, d.task_id, outcome), window)
