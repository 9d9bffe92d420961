"""
Hacker News API Client

Thin aiohttp wrapper around the public Firebase API: story listings
(/topstories.json, /newstories.json) and item details (/item/{id}.json).
Every call carries a bounded timeout.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import aiohttp

from hn_streamer.core.types import ConnectionError, ValidationError

logger = logging.getLogger(__name__)

SERVICE = "hacker-news"


class HackerNewsClient:
    """
    Async client for the Hacker News listing and item endpoints.

    Usage:
        async with HackerNewsClient(base_url) as client:
            ids = await client.fetch_listing("topstories")
            item = await client.fetch_item(ids[0])
    """

    def __init__(
        self,
        base_url: str = "https://hacker-news.firebaseio.com/v0",
        *,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> HackerNewsClient:
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def open(self) -> None:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def _get_json(self, path: str) -> Any:
        if self._session is None:
            raise RuntimeError("Use async context manager: async with HackerNewsClient(...)")

        url = f"{self._base_url}/{path}"
        try:
            async with self._session.get(url) as resp:
                if resp.status != 200:
                    raise ConnectionError(
                        f"HTTP {resp.status} from {path}",
                        service=SERVICE,
                        context={"url": url},
                    )
                return await resp.json(content_type=None)
        except ConnectionError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ConnectionError(
                f"Request failed: {e.__class__.__name__}: {e}",
                service=SERVICE,
                context={"url": url},
            ) from e
        except ValueError as e:
            # Body was not JSON
            raise ValidationError(
                f"Invalid JSON from {path}",
                field="body",
                context={"url": url},
            ) from e

    async def fetch_listing(self, listing: str = "topstories") -> list[int]:
        """
        Fetch a story ID listing.

        Raises:
            ConnectionError: On network/HTTP failure
            ValidationError: If the body is not a list of integer IDs
        """
        body = await self._get_json(f"{listing}.json")
        if not isinstance(body, list):
            raise ValidationError(
                f"Listing {listing} is not a JSON array",
                field="listing",
                value=body,
            )
        ids = [i for i in body if isinstance(i, int) and not isinstance(i, bool)]
        if len(ids) != len(body):
            logger.warning(
                "Listing contained non-integer IDs",
                extra={"listing": listing, "dropped": len(body) - len(ids)},
            )
        return ids

    async def fetch_item(self, item_id: int) -> dict[str, Any]:
        """
        Fetch a single item's detail record.

        Raises:
            ConnectionError: On network/HTTP failure
            ValidationError: If the item does not exist (null body) or is not an object
        """
        body = await self._get_json(f"item/{item_id}.json")
        if body is None:
            raise ValidationError(
                "Item not found",
                field="item",
                context={"item_id": item_id},
            )
        if not isinstance(body, dict):
            raise ValidationError(
                "Item body is not a JSON object",
                field="item",
                value=body,
                context={"item_id": item_id},
            )
        return body
