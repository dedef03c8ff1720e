"""Thin async transport over the recruiting REST API.

The gateway never interprets HTTP statuses: non-2xx responses are returned
as-is and each caller decides what a failure means for it. Only a failed
exchange (no response at all) raises, as TransportFailure.
"""

import asyncio
import json
import logging
from typing import Any

import requests

from src.core.config import ApiConfig, resolve_base_url
from src.core.errors import HTTPFailure, MalformedResponse, TransportFailure

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}


class RemoteGateway:
    """One HTTP round trip per call against ``base_url + path``.

    Usage::

        gateway = RemoteGateway.from_config(settings.api)
        response = await gateway.get("/api/data/all/42")
        if response.ok:
            payload = read_json(response)
    """

    def __init__(
        self,
        base_url: str = "",
        *,
        session: requests.Session | None = None,
        timeout_s: float | None = None,
        default_headers: dict[str, str] | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout_s = timeout_s
        self._default_headers = dict(default_headers or {})

    @classmethod
    def from_config(
        cls,
        config: ApiConfig,
        session: requests.Session | None = None,
    ) -> "RemoteGateway":
        """Build a gateway, resolving the base URL once from env/config."""
        base_url = resolve_base_url(config)
        logger.debug("API base URL: %r", base_url or "(same origin)")
        return cls(
            base_url,
            session=session,
            timeout_s=config.timeout_s,
            default_headers=config.headers,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def get(self, path: str, headers: dict[str, str] | None = None) -> requests.Response:
        return await self._request("GET", path, headers=headers)

    async def post(
        self, path: str, body: Any, headers: dict[str, str] | None = None,
    ) -> requests.Response:
        return await self._request("POST", path, body=body, headers=headers)

    async def patch(
        self, path: str, body: Any, headers: dict[str, str] | None = None,
    ) -> requests.Response:
        return await self._request("PATCH", path, body=body, headers=headers)

    async def delete(self, path: str, headers: dict[str, str] | None = None) -> requests.Response:
        return await self._request("DELETE", path, headers=headers)

    def close(self) -> None:
        self._session.close()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> requests.Response:
        url = f"{self._base_url}{path}"
        merged = {**JSON_HEADERS, **self._default_headers, **(headers or {})}
        data = json.dumps(body) if body is not None else None

        try:
            response = await asyncio.to_thread(
                self._session.request,
                method,
                url,
                data=data,
                headers=merged,
                timeout=self._timeout_s,
            )
        except requests.exceptions.RequestException as e:
            logger.warning("%s %s failed: %s", method, url, e)
            msg = f"{method} {url} failed: {e}"
            raise TransportFailure(msg) from e

        logger.debug("%s %s -> %d", method, url, response.status_code)
        return response


def read_json(response: requests.Response) -> Any:
    """Decode a JSON body. An empty body yields None."""
    if not response.content or not response.content.strip():
        return None
    try:
        return json.loads(response.content)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        msg = f"Response from {response.url or 'server'} is not valid JSON: {e}"
        raise MalformedResponse(msg) from e


def error_message(response: requests.Response, default: str) -> str:
    """Return the server-supplied error message, or ``default``."""
    try:
        data = read_json(response)
    except MalformedResponse:
        return default
    if isinstance(data, dict):
        for key in ("error", "message"):
            value = data.get(key)
            if isinstance(value, str) and value.strip():
                return value
    return default


def ensure_ok(response: requests.Response, default: str) -> None:
    """Raise HTTPFailure carrying the server message for a non-2xx response."""
    if not response.ok:
        raise HTTPFailure(response.status_code, error_message(response, default))
