"""
REST Key-Value Store.

A Shared Value Store backed by a Redis-compatible REST service such as
Vercel KV or Upstash. Values are stored as JSON strings.
"""

from typing import Any, Optional
from urllib.parse import quote
import json
import logging

import httpx

from rulegraph.engine.errors import CollaboratorFailure
from rulegraph.engine.store import SharedValueStore


logger = logging.getLogger(__name__)


class RestKVStore(SharedValueStore):
    """
    Shared Value Store speaking the Redis REST protocol.

    Uses `GET /get/{key}` and `POST /set/{key}`; both answer with a JSON
    body of the form `{"result": ...}` or `{"error": "..."}`.

    Args:
        url: Base URL of the REST endpoint
        token: Bearer token for the endpoint
        timeout: Request timeout in seconds
        transport: Optional httpx transport (used in tests)
    """

    def __init__(
        self,
        url: str,
        token: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self._client = httpx.AsyncClient(
            base_url=url.rstrip("/"),
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

    async def get(self, partition_key: str, default: Any = None) -> Any:
        payload = await self._request("GET", f"/get/{quote(partition_key, safe='')}")
        raw = payload.get("result")
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            raise CollaboratorFailure(f"Stored value for '{partition_key}' is not JSON") from e

    async def put(self, partition_key: str, value: Any) -> None:
        await self._request(
            "POST",
            f"/set/{quote(partition_key, safe='')}",
            content=json.dumps(value),
        )
        logger.debug(f"Stored value for '{partition_key}'")

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise CollaboratorFailure(f"KV store request failed: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if response.status_code >= 400 or "error" in payload:
            detail = payload.get("error") or response.text
            raise CollaboratorFailure(
                f"KV store returned {response.status_code}: {detail}"
            )
        return payload
