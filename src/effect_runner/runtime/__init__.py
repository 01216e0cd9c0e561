from .runtime import TaskRunner, register
from .client import AsyncClient
from .channels import Channels, InboundPort, OutboundPort, InboundChannel, OutboundChannel
from .registry import TaskRegistry, Implementation
from .dispatcher import Dispatcher
from .debounce import ResultDebouncer, debounce_window
from .errors import classify, missing_function
from .zmq_bus import ZmqChannels
from .types import (
    BUILTIN_PREFIX,
    DebugOptions,
    ErrorReason,
    Failure,
    MalformedTaskDefinition,
    Success,
    TaskDefinition,
    TaskResult,
)

__all__ = [
    "TaskRunner",
    "register",
    "AsyncClient",
    "Channels",
    "InboundPort",
    "OutboundPort",
    "InboundChannel",
    "OutboundChannel",
    "TaskRegistry",
    "Implementation",
    "Dispatcher",
    "ResultDebouncer",
    "debounce_window",
    "classify",
    "missing_function",
    "ZmqChannels",
    "BUILTIN_PREFIX",
    "DebugOptions",
    "ErrorReason",
    "Failure",
    "MalformedTaskDefinition",
    "Success",
    "TaskDefinition",
    "TaskResult",
]
