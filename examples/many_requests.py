from __future__ import annotations

import asyncio
import sys
from collections import Counter
from logging import INFO, basicConfig

from effect_runner.runtime import AsyncClient, Channels, register


async def main(url: str, count: int) -> None:
    basicConfig(level=INFO)

    channels = Channels.in_memory()
    runner = register(channels=channels, debug={"traceStart": True})
    client = AsyncClient(channels)

    request = {
        "url": url,
        "method": "GET",
        "headers": [],
        "expect": "STRING",
        "timeout": 5000,
        "body": None,
    }
    attempt = "many-requests"
    keys = client.submit(
        client.task("builtin:http", request, attempt_id=attempt) for _ in range(count)
    )

    try:
        results = await client.collect(keys, timeout=30.0)
    finally:
        client.close()
        runner.stop()

    outcomes = Counter()
    for r in results.values():
        value = r["result"].get("value") or {}
        if "error" in r["result"]:
            outcomes[r["result"]["error"]["reason"]] += 1
        elif "error" in value:
            outcomes[value["error"]["reason"]] += 1
        else:
            outcomes[value.get("statusCode")] += 1

    print(f"{len(results)} results in {runner.debouncer.flush_count} batches")
    for outcome, n in outcomes.most_common():
        print(f"  {outcome}: {n}")


if __name__ == "__main__":
    target = sys.argv[1] if len(sys.argv) > 1 else "http://127.0.0.1:8080/"
    n = int(sys.argv[2]) if len(sys.argv) > 2 else 100
    asyncio.run(main(target, n))
