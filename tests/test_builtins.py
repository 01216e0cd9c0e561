from __future__ import annotations

import asyncio
import logging
import socket
import time
from typing import Any, Dict, Optional

import aiohttp
import pytest
from aiohttp import web

from effect_runner.builtins import (
    HttpAdapter,
    clock,
    not_found,
    random_seed,
    sleep,
    time_now,
    time_zone_name,
    time_zone_offset,
)
from effect_runner.runtime import AsyncClient, Channels, register


def _closed_port() -> int:
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def _request(url: str, **overrides: Any) -> Dict[str, Any]:
    request: Dict[str, Any] = {
        "url": url,
        "method": "GET",
        "headers": [],
        "expect": "STRING",
        "timeout": None,
        "body": None,
    }
    request.update(overrides)
    return request


async def _serve(handler) -> tuple[web.AppRunner, str]:
    app = web.Application()
    app.router.add_route("*", "/", handler)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    host, port = runner.addresses[0][:2]
    return runner, f"http://{host}:{port}/"


def test_clock_builtins() -> None:
    now = time_now()
    assert abs(now - time.time() * 1000) < 5_000
    assert isinstance(time_zone_offset(), int)
    assert isinstance(time_zone_name(), (str, int))
    assert 0 <= random_seed() <= 1_000_000_000_000


def test_sleep_waits_and_returns_none() -> None:
    async def _run() -> None:
        loop = asyncio.get_running_loop()
        t0 = loop.time()
        assert await sleep(30) is None
        assert loop.time() - t0 >= 0.025

    asyncio.run(_run())


def test_not_found_shape() -> None:
    assert not_found("search-box") == {"error": "search-box"}


def test_http_unreachable_address_through_runner() -> None:
    url = f"http://127.0.0.1:{_closed_port()}/"

    async def _run() -> None:
        channels = Channels.in_memory()
        register(channels=channels)
        client = AsyncClient(channels)

        (key,) = client.submit([client.task("builtin:http", _request(url))])
        results = await client.collect([key], timeout=5.0)

        value = results[key]["result"]["value"]
        assert value["error"]["reason"] == "NETWORK_ERROR"
        assert value["error"]["message"]

    asyncio.run(_run())


def test_http_bad_url() -> None:
    out = asyncio.run(HttpAdapter().run(_request("not a url")))
    assert out["error"]["reason"] == "BAD_URL"

    out = asyncio.run(HttpAdapter().run(_request("")))
    assert out["error"]["reason"] == "BAD_URL"


def test_http_success_response() -> None:
    seen: Dict[str, Optional[str]] = {}

    async def handler(request: web.Request) -> web.Response:
        seen["method"] = request.method
        seen["x-token"] = request.headers.get("X-Token")
        seen["body"] = await request.text()
        return web.Response(text="hello", status=201, headers={"X-Reply": "yes"})

    async def _run() -> Dict[str, Any]:
        runner, url = await _serve(handler)
        try:
            return await HttpAdapter().run(
                _request(url, method="post", headers=[["X-Token", "abc"]], body="ping")
            )
        finally:
            await runner.cleanup()

    out = asyncio.run(_run())
    assert out["statusCode"] == 201
    assert out["statusText"] == "Created"
    assert out["body"] == "hello"
    assert out["headers"]["x-reply"] == "yes"
    assert out["url"].startswith("http://127.0.0.1:")
    assert seen == {"method": "POST", "x-token": "abc", "body": "ping"}


def test_http_whatever_skips_body_and_errors_are_values() -> None:
    async def handler(_request: web.Request) -> web.Response:
        return web.Response(text="gone", status=404)

    async def _run() -> Dict[str, Any]:
        runner, url = await _serve(handler)
        try:
            return await HttpAdapter().run(_request(url, expect="WHATEVER"))
        finally:
            await runner.cleanup()

    out = asyncio.run(_run())
    assert out["statusCode"] == 404
    assert out["body"] is None
    assert "error" not in out


def test_http_timeout() -> None:
    async def stall(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        await reader.read()
        writer.close()

    async def _run() -> Dict[str, Any]:
        server = await asyncio.start_server(stall, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        try:
            return await HttpAdapter().run(
                _request(f"http://127.0.0.1:{port}/", timeout=50)
            )
        finally:
            server.close()

    out = asyncio.run(_run())
    assert out["error"]["reason"] == "TIMEOUT"


def test_http_invalid_input_raises() -> None:
    with pytest.raises(TypeError):
        asyncio.run(HttpAdapter().run(_request("http://127.0.0.1/", body={"a": 1})))
    with pytest.raises(ValueError):
        asyncio.run(HttpAdapter().run(_request("http://127.0.0.1/", expect="XML")))


class _RaisingSession:
    def __init__(self, exc: BaseException) -> None:
        self.exc = exc

    def request(self, *args: Any, **kwargs: Any) -> Any:
        raise self.exc


def test_debug_log_builtin(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="effect_runner")

    async def _run() -> Dict[str, Any]:
        channels = Channels.in_memory()
        register(channels=channels)
        client = AsyncClient(channels)

        (key,) = client.submit([client.task("builtin:debugLog", "hi there")])
        results = await client.collect([key], timeout=1.0)
        return results[key]

    result = asyncio.run(_run())
    assert result["result"] == {"value": None}
    assert any(
        r.name == "effect_runner.builtins.console" and r.getMessage() == "hi there"
        for r in caplog.records
    )


def test_http_bytes_body_is_text() -> None:
    async def handler(_request: web.Request) -> web.Response:
        return web.Response(
            body="héllo".encode("utf-8"), content_type="application/octet-stream"
        )

    async def _run() -> Dict[str, Any]:
        runner, url = await _serve(handler)
        try:
            return await HttpAdapter().run(_request(url, expect="BYTES"))
        finally:
            await runner.cleanup()

    out = asyncio.run(_run())
    assert "error" not in out
    assert out["statusCode"] == 200
    assert out["body"] == "héllo"


def test_http_invalid_url_from_transport_is_bad_url() -> None:
    adapter = HttpAdapter(session=_RaisingSession(aiohttp.InvalidURL("http://exa mple")))
    out = asyncio.run(adapter.run(_request("http://exa mple")))
    assert out["error"]["reason"] == "BAD_URL"


def test_http_other_value_errors_are_not_bad_url() -> None:
    adapter = HttpAdapter(session=_RaisingSession(ValueError("bad header value")))
    with pytest.raises(ValueError, match="bad header value"):
        asyncio.run(adapter.run(_request("http://127.0.0.1/")))


def test_time_zone_name_uses_iana_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TZ", "Europe/Berlin")
    assert time_zone_name() == "Europe/Berlin"

    monkeypatch.setenv("TZ", ":America/New_York")
    assert time_zone_name() == "America/New_York"


def test_time_zone_name_falls_back_to_offset(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Any
) -> None:
    monkeypatch.setenv("TZ", "Not/AZone")
    monkeypatch.setattr(clock, "TIMEZONE_FILE", str(tmp_path / "timezone"))
    monkeypatch.setattr(clock, "LOCALTIME", str(tmp_path / "localtime"))
    assert time_zone_name() == time_zone_offset()
