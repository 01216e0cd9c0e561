from typing import Dict

from .adapters import TaskAdapter, AsyncTaskAdapter, TaskFunction, not_found
from .clock import time_now, time_zone_offset, time_zone_name, random_seed, sleep
from .console import debug_log
from .http import HttpAdapter, http


def default_builtins() -> Dict[str, object]:
    """
    Default builtin implementations, keyed without the `builtin:` prefix.
    """
    return {
        "debugLog": debug_log,
        "timeNow": time_now,
        "timeZoneOffset": time_zone_offset,
        "timeZoneName": time_zone_name,
        "randomSeed": random_seed,
        "sleep": sleep,
        "http": HttpAdapter(),
    }


__all__ = [
    "TaskAdapter",
    "AsyncTaskAdapter",
    "TaskFunction",
    "HttpAdapter",
    "default_builtins",
    "not_found",
    "debug_log",
    "http",
    "time_now",
    "time_zone_offset",
    "time_zone_name",
    "random_seed",
    "sleep",
]
