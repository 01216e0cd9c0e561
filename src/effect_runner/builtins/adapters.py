from __future__ import annotations
from typing import Any, Awaitable, Callable, Dict, Protocol, TypeVar, Union

T = TypeVar("T", contravariant=True)

# args in, value (or awaitable value) out
TaskFunction = Callable[[Any], Union[Any, Awaitable[Any]]]


class TaskAdapter(Protocol[T]):
    def run(self, args: T) -> Any:
        """
        Must return a JSON-serializable value.
        Domain failures (bad input, remote errors, ...) are part of the return
        value, e.g. {"error": {"reason": ..., "message": ...}}. Raising is
        reserved for bugs and is reported to the caller as js_exception.
        """
        ...


class AsyncTaskAdapter(Protocol[T]):
    async def run(self, args: T) -> Any:
        """
        Async variant of TaskAdapter.run.
        """
        ...


def not_found(element_id: str) -> Dict[str, Any]:
    """
    Structured value for UI-style adapters that address an element by id
    (focus, blur, viewport, element queries) when the element does not exist.
    """
    return {"error": element_id}
