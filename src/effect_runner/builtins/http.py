"""HTTP request/response builtin backed by aiohttp."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import aiohttp

log = logging.getLogger(__name__)

BAD_URL = "BAD_URL"
NETWORK_ERROR = "NETWORK_ERROR"
TIMEOUT = "TIMEOUT"

EXPECT_MODES = ("STRING", "JSON", "BYTES", "WHATEVER")


def http_error(reason: str, message: str) -> Dict[str, Any]:
    return {"error": {"reason": reason, "message": message}}


class HttpAdapter:
    """
    Runs one request per call.

    Transport problems are returned as {"error": {"reason", "message"}} with
    reason in BAD_URL / NETWORK_ERROR / TIMEOUT. Any HTTP status (including
    4xx/5xx) is a successful response; the caller decides what it means.
    """

    def __init__(self, session: aiohttp.ClientSession | None = None):
        self._session = session

    async def run(self, request: Dict[str, Any]) -> Dict[str, Any]:
        url = request.get("url")
        method = (request.get("method") or "GET").upper()
        expect = request.get("expect") or "STRING"
        body = request.get("body")
        if expect not in EXPECT_MODES:
            raise ValueError(f"unsupported expect: {expect}")
        if body is not None and not isinstance(body, (str, bytes)):
            raise TypeError(f"request body must be a string, got {type(body).__name__}")
        if not isinstance(url, str) or not url:
            return http_error(BAD_URL, f"invalid url: {url!r}")

        kwargs: Dict[str, Any] = {
            "headers": [(str(k), str(v)) for k, v in request.get("headers") or []],
            "data": body,
        }
        timeout = self._timeout(request.get("timeout"))
        if timeout is not None:
            kwargs["timeout"] = timeout

        try:
            if self._session is not None:
                return await self._send(self._session, method, url, expect, **kwargs)
            async with aiohttp.ClientSession() as session:
                return await self._send(session, method, url, expect, **kwargs)
        except aiohttp.InvalidURL as e:
            return http_error(BAD_URL, str(e) or f"invalid url: {url}")
        except TimeoutError:
            log.debug(f"{method} {url} timed out")
            return http_error(TIMEOUT, f"{method} {url} timed out")
        except (aiohttp.ClientError, OSError) as e:
            log.debug(f"{method} {url} failed: {e}")
            return http_error(NETWORK_ERROR, str(e) or type(e).__name__)

    def _timeout(self, ms: Any) -> Optional[aiohttp.ClientTimeout]:
        if not ms:
            return None
        return aiohttp.ClientTimeout(total=float(ms) / 1000)

    async def _send(
        self,
        session: aiohttp.ClientSession,
        method: str,
        url: str,
        expect: str,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        async with session.request(method, url, **kwargs) as resp:
            headers: Dict[str, str] = {}
            for name, value in resp.headers.items():
                name = name.lower()
                headers[name] = f"{headers[name]}, {value}" if name in headers else value
            body = None
            if expect == "BYTES":
                # raw payload decoded as UTF-8, whatever the declared charset
                raw = await resp.read()
                body = raw.decode("utf-8", errors="replace") or None
            elif expect != "WHATEVER":
                body = await resp.text(errors="replace") or None
            return {
                "url": str(resp.url),
                "headers": headers,
                "statusCode": resp.status,
                "statusText": resp.reason or "",
                "body": body,
            }


async def http(request: Dict[str, Any]) -> Dict[str, Any]:
    return await HttpAdapter().run(request)
