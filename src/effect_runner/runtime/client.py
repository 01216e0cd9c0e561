from __future__ import annotations
import asyncio
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .channels import Channels, ResultBatchMessage
from .types import TaskDefinition, new_id

# (attemptId, taskId)
ResultKey = Tuple[str, str]


class AsyncClient:
    """
    caller 側のヘルパー。バッチを送り、(attemptId, taskId) で結果を待ち合わせる
    """

    def __init__(self, channels: Channels, max_queue: int = 1000) -> None:
        self.channels = channels
        self.sub_id, self._q = channels.outbound.subscribe(max_queue=max_queue)
        self._seen: Dict[ResultKey, Dict[str, Any]] = {}

    def close(self) -> None:
        self.channels.outbound.unsubscribe(self.sub_id)

    def task(
        self, function: str, args: Any = None, *, attempt_id: Optional[str] = None
    ) -> TaskDefinition:
        return TaskDefinition(
            function=function,
            attempt_id=attempt_id or new_id(),
            task_id=new_id(),
            args=args,
        )

    def submit(self, definitions: Iterable[TaskDefinition]) -> List[ResultKey]:
        defs = list(definitions)
        for d in defs:
            # a resubmitted key waits for its new result
            self._seen.pop((d.attempt_id, d.task_id), None)
        self.channels.inbound.send([d.to_message() for d in defs])
        return [(d.attempt_id, d.task_id) for d in defs]

    async def next_batch(self, timeout: Optional[float] = None) -> ResultBatchMessage:
        batch = await asyncio.wait_for(self._q.get(), timeout)
        for r in batch:
            self._seen[(r["attemptId"], r["taskId"])] = r
        return batch

    async def collect(
        self, keys: Iterable[ResultKey], timeout: float = 5.0
    ) -> Dict[ResultKey, Dict[str, Any]]:
        wanted = set(keys)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not wanted.issubset(self._seen):
            remaining = deadline - loop.time()
            if remaining <= 0:
                missing = sorted(wanted - set(self._seen))
                raise TimeoutError(f"results not received: {missing}")
            try:
                await self.next_batch(timeout=remaining)
            except asyncio.TimeoutError:
                continue
        return {key: self._seen[key] for key in wanted}
