from __future__ import annotations

import argparse
import asyncio
from logging import INFO, basicConfig

from effect_runner.runtime import ZmqChannels, register


def greet(args):
    name = (args or {}).get("name", "")
    return {"message": f"hello, {name}"}


async def lookup_user(args):
    await asyncio.sleep(0.1)
    user_id = (args or {}).get("id")
    if user_id is None:
        # domain failure: returned, not raised
        return {"error": {"reason": "NOT_FOUND", "message": "id is required"}}
    return {"id": user_id, "name": f"user-{user_id}"}


async def main() -> None:
    parser = argparse.ArgumentParser()

    parser.add_argument(
        "--name",
        required=True,
        help="runner name, used as the ZeroMQ identity (runner1, runner2, etc)",
    )
    parser.add_argument(
        "--connect",
        default="tcp://127.0.0.1:5555",
        help="caller (ROUTER) address",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="log task start/finish",
    )

    args = parser.parse_args()

    basicConfig(level=INFO)

    bus = ZmqChannels(runner_name=args.name, connect_addr=args.connect)
    runner = register(
        tasks={"greet": greet, "lookupUser": lookup_user},
        channels=bus.channels(),
        debug=args.debug,
    )
    try:
        await bus.serve_forever()
    finally:
        runner.stop()
        await bus.stop()


if __name__ == "__main__":
    asyncio.run(main())
