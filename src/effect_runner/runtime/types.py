from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Union
from enum import StrEnum
import uuid


BUILTIN_PREFIX = "builtin:"

TaskBatchLike = Sequence[Mapping[str, Any]]


def new_id() -> str:
    return uuid.uuid4().hex


class ErrorReason(StrEnum):
    # wire values shared with existing callers
    MissingFunction = "missing_function"
    ExecutionFailed = "js_exception"


class MalformedTaskDefinition(ValueError):
    pass


@dataclass(frozen=True)
class TaskDefinition:
    """
    caller -> runner の実行依頼 (1件)
    """

    function: str
    attempt_id: str
    task_id: str
    args: Any = None

    @classmethod
    def from_message(cls, data: Mapping[str, Any]) -> "TaskDefinition":
        if not isinstance(data, Mapping):
            raise MalformedTaskDefinition(
                f"task definition must be an object, got {type(data).__name__}"
            )
        fields = {}
        for key in ("function", "attemptId", "taskId"):
            value = data.get(key)
            if not isinstance(value, str):
                raise MalformedTaskDefinition(f"task definition is missing {key}")
            fields[key] = value
        return cls(
            function=fields["function"],
            attempt_id=fields["attemptId"],
            task_id=fields["taskId"],
            args=data.get("args"),
        )

    def to_message(self) -> Dict[str, Any]:
        return {
            "function": self.function,
            "attemptId": self.attempt_id,
            "taskId": self.task_id,
            "args": self.args,
        }


@dataclass(frozen=True)
class Success:
    value: Any = None

    def to_message(self) -> Dict[str, Any]:
        return {"value": self.value}


@dataclass(frozen=True)
class Failure:
    reason: str
    message: str
    raw: Optional[Any] = None

    def to_message(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {"reason": str(self.reason), "message": self.message}
        if self.raw is not None:
            error["raw"] = self.raw
        return {"error": error}


Outcome = Union[Success, Failure]


@dataclass(frozen=True)
class TaskResult:
    """
    runner -> caller の実行結果。attempt_id / task_id だけで対応付ける
    """

    attempt_id: str
    task_id: str
    outcome: Outcome

    @property
    def ok(self) -> bool:
        return isinstance(self.outcome, Success)

    def to_message(self) -> Dict[str, Any]:
        return {
            "attemptId": self.attempt_id,
            "taskId": self.task_id,
            "result": self.outcome.to_message(),
        }


@dataclass(frozen=True)
class DebugOptions:
    trace_start: bool = False
    trace_finish: bool = False

    @property
    def enabled(self) -> bool:
        return self.trace_start or self.trace_finish

    @classmethod
    def coerce(
        cls, value: Union[None, bool, Mapping[str, Any], "DebugOptions"]
    ) -> "DebugOptions":
        if value is None:
            return cls()
        if isinstance(value, DebugOptions):
            return value
        if isinstance(value, bool):
            return cls(trace_start=value, trace_finish=value)
        if isinstance(value, Mapping):

            def flag(*names: str) -> bool:
                return any(bool(value.get(n)) for n in names)

            return cls(
                trace_start=flag("traceStart", "taskStart", "trace_start"),
                trace_finish=flag("traceFinish", "taskFinish", "trace_finish"),
            )
        raise TypeError(f"unsupported debug options: {value!r}")
