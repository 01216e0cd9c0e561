from __future__ import annotations
from logging import getLogger
from typing import Any


logger = getLogger(__name__)


def debug_log(message: Any) -> None:
    logger.info("%s", message)
