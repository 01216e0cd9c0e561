from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List

import pytest

from effect_runner.runtime import (
    ResultDebouncer,
    Success,
    TaskResult,
    classify,
    debounce_window,
    missing_function,
)


def _result(task_id: str, value: Any = None) -> TaskResult:
    return TaskResult("a1", task_id, Success(value))


def test_window_depends_on_batch_size() -> None:
    assert debounce_window([None] * 0) == 0
    assert debounce_window([None] * 10) == 0
    assert debounce_window([None] * 11) == 20
    assert debounce_window([None] * 3, threshold=2, window_ms=5) == 5


def test_results_completing_together_share_a_flush() -> None:
    sent: List[List[Dict[str, Any]]] = []

    async def _run() -> None:
        debouncer = ResultDebouncer(sent.append)
        debouncer.enqueue(_result("t1", 1))
        debouncer.enqueue(_result("t2", 2))
        await asyncio.sleep(0.01)
        assert debouncer.pending == 0
        assert debouncer.flush_count == 1

    asyncio.run(_run())
    assert sent == [
        [
            {"attemptId": "a1", "taskId": "t1", "result": {"value": 1}},
            {"attemptId": "a1", "taskId": "t2", "result": {"value": 2}},
        ]
    ]


def test_enqueue_restarts_the_window() -> None:
    sent: List[List[Dict[str, Any]]] = []

    async def _run() -> None:
        debouncer = ResultDebouncer(sent.append)
        debouncer.enqueue(_result("t1"), 100)
        await asyncio.sleep(0.06)
        debouncer.enqueue(_result("t2"), 100)
        await asyncio.sleep(0.06)
        assert sent == []
        await asyncio.sleep(0.1)
        assert [[r["taskId"] for r in b] for b in sent] == [["t1", "t2"]]

    asyncio.run(_run())


def test_flush_without_results_sends_nothing() -> None:
    sent: List[Any] = []
    ResultDebouncer(sent.append).flush()
    assert sent == []


def test_send_failure_is_logged_and_buffer_cleared(caplog: pytest.LogCaptureFixture) -> None:
    def broken(_batch: Any) -> None:
        raise ConnectionError("channel closed")

    async def _run() -> ResultDebouncer:
        debouncer = ResultDebouncer(broken)
        debouncer.enqueue(_result("t1"))
        await asyncio.sleep(0.01)
        return debouncer

    debouncer = asyncio.run(_run())
    assert debouncer.pending == 0
    assert any("failed to send 1 task results" in r.getMessage() for r in caplog.records)


def test_failure_messages() -> None:
    missing = TaskResult("a1", "t1", missing_function("nope")).to_message()
    assert missing["result"] == {
        "error": {"reason": "missing_function", "message": "nope is not registered"}
    }

    err = KeyError("x")
    failure = classify(err)
    assert failure.to_message()["error"]["message"] == "KeyError: 'x'"
    assert failure.raw is err
    assert "raw" not in classify(err, include_raw=False).to_message()["error"]
