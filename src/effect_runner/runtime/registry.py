from __future__ import annotations
import inspect
from dataclasses import dataclass
from logging import getLogger
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, Mapping, Optional

from effect_runner.builtins import default_builtins
from effect_runner.runtime.types import BUILTIN_PREFIX


logger = getLogger(__name__)


@dataclass(frozen=True)
class Implementation:
    """
    登録済みタスクの実体。plain callable と run() を持つ adapter を同じ形で扱う
    """

    name: str
    func: Callable[[Any], Any]
    builtin: bool = False

    @classmethod
    def wrap(cls, name: str, impl: Any, *, builtin: bool = False) -> "Implementation":
        if isinstance(impl, Implementation):
            return cls(name=name, func=impl.func, builtin=builtin)
        run = getattr(impl, "run", None)
        if not inspect.isroutine(impl) and not isinstance(impl, type) and callable(run):
            return cls(name=name, func=run, builtin=builtin)
        if callable(impl):
            return cls(name=name, func=impl, builtin=builtin)
        raise TypeError(f"task {name!r} is not callable: {impl!r}")

    async def invoke(self, args: Any) -> Any:
        out = self.func(args)
        if inspect.isawaitable(out):
            out = await out
        return out


def builtin_name(name: str) -> str:
    if name.startswith(BUILTIN_PREFIX):
        return name
    return f"{BUILTIN_PREFIX}{name}"


class TaskRegistry:
    """
    function name -> Implementation. Built once per runner, read-only afterwards.
    """

    def __init__(self, entries: Mapping[str, Implementation]) -> None:
        self._m: Mapping[str, Implementation] = MappingProxyType(dict(entries))

    @classmethod
    def build(
        cls,
        tasks: Optional[Mapping[str, Any]] = None,
        builtin_overrides: Optional[Mapping[str, Any]] = None,
        *,
        defaults: Optional[Mapping[str, Any]] = None,
        warn_collisions: bool = False,
    ) -> "TaskRegistry":
        if defaults is None:
            defaults = default_builtins()
        m: Dict[str, Implementation] = {}

        for name, impl in defaults.items():
            key = builtin_name(name)
            m[key] = Implementation.wrap(key, impl, builtin=True)

        for name, impl in (builtin_overrides or {}).items():
            key = builtin_name(name)
            if warn_collisions and key not in m:
                logger.warning("builtin override %s has no default builtin", key)
            m[key] = Implementation.wrap(key, impl, builtin=True)

        # caller tasks win, even under the reserved prefix
        for name, impl in (tasks or {}).items():
            if warn_collisions and name.startswith(BUILTIN_PREFIX):
                logger.warning(
                    "task %s is registered under the reserved %r namespace",
                    name,
                    BUILTIN_PREFIX,
                )
            m[name] = Implementation.wrap(name, impl)

        return cls(m)

    def lookup(self, name: str) -> Optional[Implementation]:
        return self._m.get(name)

    def get(self, name: str) -> Implementation:
        if name not in self._m:
            raise KeyError(f"task not registered: {name}")
        return self._m[name]

    def __contains__(self, name: object) -> bool:
        return name in self._m

    def __iter__(self) -> Iterator[str]:
        return iter(self._m)

    def __len__(self) -> int:
        return len(self._m)
