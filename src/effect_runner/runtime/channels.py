from __future__ import annotations
import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import Any, Callable, Dict, List, Protocol, Tuple

from effect_runner.runtime.types import new_id


logger = getLogger(__name__)

TaskBatchMessage = List[Dict[str, Any]]
ResultBatchMessage = List[Dict[str, Any]]
BatchCallback = Callable[[TaskBatchMessage], None]


class InboundChannel(Protocol):
    def subscribe(self, callback: BatchCallback) -> None: ...

    def unsubscribe(self, callback: BatchCallback) -> None: ...


class OutboundChannel(Protocol):
    def send(self, batch: ResultBatchMessage) -> None: ...


class InboundPort:
    """
    caller -> runner. send() は購読中の runner へ同期的に配る
    """

    def __init__(self) -> None:
        self._subs: List[BatchCallback] = []

    def subscribe(self, callback: BatchCallback) -> None:
        self._subs.append(callback)

    def unsubscribe(self, callback: BatchCallback) -> None:
        if callback in self._subs:
            self._subs.remove(callback)

    def send(self, batch: TaskBatchMessage) -> None:
        for cb in list(self._subs):
            cb(batch)


class OutboundPort:
    """
    runner -> caller. 購読者ごとに asyncio.Queue を持つ broadcast
    """

    def __init__(self) -> None:
        self._subs: Dict[str, "asyncio.Queue[ResultBatchMessage]"] = {}

    def subscribe(
        self, max_queue: int = 1000
    ) -> Tuple[str, "asyncio.Queue[ResultBatchMessage]"]:
        sid = new_id()
        q: "asyncio.Queue[ResultBatchMessage]" = asyncio.Queue(maxsize=max_queue)
        self._subs[sid] = q
        return sid, q

    def unsubscribe(self, sid: str) -> None:
        self._subs.pop(sid, None)

    def send(self, batch: ResultBatchMessage) -> None:
        for sid, q in list(self._subs.items()):
            try:
                q.put_nowait(batch)
            except asyncio.QueueFull:
                logger.warning(
                    "subscriber %s is full; dropped %d results", sid, len(batch)
                )


@dataclass
class Channels:
    inbound: InboundChannel = field(default_factory=InboundPort)
    outbound: OutboundChannel = field(default_factory=OutboundPort)

    @classmethod
    def in_memory(cls) -> "Channels":
        return cls(InboundPort(), OutboundPort())
