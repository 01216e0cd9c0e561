from __future__ import annotations
import asyncio
import json
from contextlib import suppress
from logging import getLogger
from typing import Any, Dict, List, Optional

import zmq
import zmq.asyncio

from effect_runner.runtime.channels import (
    BatchCallback,
    Channels,
    ResultBatchMessage,
)


logger = getLogger(__name__)


def _j(obj) -> bytes:
    return json.dumps(obj, ensure_ascii=False, default=str).encode("utf-8")


def _uj(b: bytes):
    return json.loads(b.decode("utf-8"))


class ZmqChannels:
    """
    DEALER 側の channel binding。
    caller(ROUTER) から task.batch を受け取り、task.results を返す。
    inbound / outbound の両方をこの1つが担う
    """

    def __init__(
        self,
        *,
        runner_name: str,
        connect_addr: str,
        ctx: Optional[zmq.asyncio.Context] = None,
    ) -> None:
        self.runner_name = runner_name
        self.connect_addr = connect_addr
        self._subs: List[BatchCallback] = []
        self._outbox: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue()
        self._tasks: List["asyncio.Task[None]"] = []

        self._ctx = ctx or zmq.asyncio.Context.instance()
        self._sock = self._ctx.socket(zmq.DEALER)
        self._sock.setsockopt(zmq.IDENTITY, runner_name.encode("utf-8"))
        self._sock.setsockopt(zmq.LINGER, 0)
        self._sock.connect(connect_addr)

    def channels(self) -> Channels:
        return Channels(inbound=self, outbound=self)

    # ---------- lifecycle ----------
    async def start(self) -> None:
        if self._tasks:
            return
        logger.info("runner %s connecting to %s", self.runner_name, self.connect_addr)
        self._outbox.put_nowait({"type": "runner.ready", "runner": self.runner_name})
        self._tasks = [
            asyncio.create_task(self._recv_loop()),
            asyncio.create_task(self._send_loop()),
        ]

    async def serve_forever(self) -> None:
        await self.start()
        await asyncio.gather(*self._tasks)

    async def stop(self) -> None:
        for t in self._tasks:
            t.cancel()
        for t in self._tasks:
            with suppress(asyncio.CancelledError):
                await t
        self._tasks = []
        self._sock.close(0)

    # ---------- InboundChannel ----------
    def subscribe(self, callback: BatchCallback) -> None:
        self._subs.append(callback)

    def unsubscribe(self, callback: BatchCallback) -> None:
        if callback in self._subs:
            self._subs.remove(callback)

    # ---------- OutboundChannel ----------
    def send(self, batch: ResultBatchMessage) -> None:
        self._outbox.put_nowait(
            {"type": "task.results", "runner": self.runner_name, "results": batch}
        )

    # ---------- internal ----------
    async def _recv_loop(self) -> None:
        while True:
            # DEALER: [empty][payload] が来る（ROUTER側が empty を挟むため）
            parts = await self._sock.recv_multipart()
            try:
                data = _uj(parts[-1])
            except ValueError:
                logger.warning("dropping undecodable frame (%d bytes)", len(parts[-1]))
                continue

            if not isinstance(data, dict) or data.get("type") != "task.batch":
                continue

            tasks = data.get("tasks") or []
            for cb in list(self._subs):
                try:
                    cb(tasks)
                except Exception:
                    logger.exception("rejected batch of %d tasks", len(tasks))

    async def _send_loop(self) -> None:
        while True:
            msg = await self._outbox.get()
            try:
                await self._sock.send_multipart([b"", _j(msg)])
            except Exception:
                logger.exception("failed to send %s message", msg.get("type"))
