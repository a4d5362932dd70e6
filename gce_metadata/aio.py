"""Async access to the metadata server, for use from asyncio code."""

from typing import Optional

import httpx
from loguru import logger

from .client import build_request, check_response
from .transport import AsyncHTTPClient, default_timeout


class AsyncClient:
    """Awaitable counterpart of gce_metadata.Client.

    Example:
        >>> async with httpx.AsyncClient() as http:
        ...     project = await AsyncClient(http).project_id()
    """

    def __init__(self, http_client: Optional[AsyncHTTPClient] = None) -> None:
        self.http_client = http_client or httpx.AsyncClient(
            timeout=default_timeout(), trust_env=False
        )

    async def get_with_etag(self, suffix: str) -> tuple[str, str]:
        request = build_request(suffix, self.http_client)
        logger.debug(f"metadata: GET {request.url}")
        response = await self.http_client.send(request)
        await response.aread()
        value = check_response(response, request.url)
        return value, response.headers.get("ETag", "")

    async def get(self, suffix: str) -> str:
        value, _ = await self.get_with_etag(suffix)
        return value

    async def project_id(self) -> str:
        return await self.get("project/project-id")

    async def instance_id(self) -> str:
        return await self.get("instance/id")

    async def zone(self) -> str:
        zone = await self.get("instance/zone")
        return zone.rsplit("/", 1)[-1]
