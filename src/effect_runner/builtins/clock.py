from __future__ import annotations
import asyncio
import os
import random
import time
import zoneinfo
from datetime import datetime
from typing import Any, Optional, Union

LOCALTIME = "/etc/localtime"
TIMEZONE_FILE = "/etc/timezone"


def time_now(_args: Any = None) -> int:
    return int(time.time() * 1000)


def time_zone_offset(_args: Any = None) -> int:
    """minutes east of UTC"""
    offset = datetime.now().astimezone().utcoffset()
    if offset is None:
        return 0
    return int(offset.total_seconds() // 60)


def _local_zone_key() -> Optional[str]:
    """IANA key of the local zone (e.g. "Europe/Berlin"), if it can be found"""
    candidates = []
    tz = os.environ.get("TZ")
    if tz:
        candidates.append(tz.lstrip(":"))
    try:
        with open(TIMEZONE_FILE, encoding="utf-8") as f:
            candidates.append(f.read().strip())
    except OSError:
        pass
    target = os.path.realpath(LOCALTIME)
    marker = f"zoneinfo{os.sep}"
    if marker in target:
        candidates.append(target.split(marker, 1)[1])

    for key in candidates:
        if not key:
            continue
        try:
            zoneinfo.ZoneInfo(key)
        except (ValueError, KeyError, OSError):
            continue
        return key
    return None


def time_zone_name(_args: Any = None) -> Union[str, int]:
    key = _local_zone_key()
    if key is None:
        return time_zone_offset()
    return key


def random_seed(_args: Any = None) -> int:
    return round(random.random() * 1_000_000_000_000)


async def sleep(ms: Any) -> None:
    await asyncio.sleep(max(0.0, float(ms or 0)) / 1000)
