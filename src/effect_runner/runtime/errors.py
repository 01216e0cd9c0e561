from __future__ import annotations
from typing import Optional

from effect_runner.runtime.types import ErrorReason, Failure


def missing_function(function: str) -> Failure:
    return Failure(
        reason=ErrorReason.MissingFunction,
        message=f"{function} is not registered",
    )


def classify(exc: BaseException, *, include_raw: bool = True) -> Failure:
    """
    Exception raised by a task implementation -> js_exception Failure.

    Only for failures of execution. Domain errors that an implementation
    returns as its value never come through here.
    """
    raw: Optional[BaseException] = exc if include_raw else None
    return Failure(
        reason=ErrorReason.ExecutionFailed,
        message=f"{type(exc).__name__}: {exc}",
        raw=raw,
    )
