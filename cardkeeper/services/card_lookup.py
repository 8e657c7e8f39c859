"""
Card metadata lookup against a Scryfall-compatible API.

Used to fill in type line, colors and mana value on hydrated views when a
collection card was stored without them. The lookup is optional: any HTTP
or transport failure is logged and reported as ``None``.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from cardkeeper.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CardMetadata:
    """Rules metadata of a printing."""

    scryfall_id: str
    name: str
    type_line: str | None = None
    colors: list[str] | None = None
    mana_value: float | None = None


class CardLookup(Protocol):
    async def lookup_card_by_id(self, scryfall_id: str) -> CardMetadata | None: ...


def parse_card_metadata(data: dict[str, Any]) -> CardMetadata:
    """
    Build metadata from a Scryfall card object.

    Double-faced cards keep colors on their faces; the union of face colors
    is used when the top-level field is missing.
    """
    colors = data.get("colors")
    if colors is None and data.get("card_faces"):
        face_colors: list[str] = []
        for face in data["card_faces"]:
            for color in face.get("colors", []):
                if color not in face_colors:
                    face_colors.append(color)
        colors = face_colors

    cmc = data.get("cmc")
    return CardMetadata(
        scryfall_id=data["id"],
        name=data.get("name", ""),
        type_line=data.get("type_line"),
        colors=list(colors) if colors is not None else None,
        mana_value=float(cmc) if cmc is not None else None,
    )


class ScryfallCardLookup:
    """
    Look up cards by Scryfall id, caching results per instance.

    The cache holds at most ``cache_size`` printings and evicts the least
    recently used one first. Failed lookups are not cached so a later call
    can retry.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
        cache_size: int | None = None,
    ) -> None:
        self.base_url = (base_url or settings.card_lookup_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.card_lookup_timeout
        self._client = client
        self.cache_size = cache_size if cache_size is not None else settings.card_lookup_cache_size
        self._cache: OrderedDict[str, CardMetadata] = OrderedDict()

    async def lookup_card_by_id(self, scryfall_id: str) -> CardMetadata | None:
        if scryfall_id in self._cache:
            self._cache.move_to_end(scryfall_id)
            return self._cache[scryfall_id]

        url = f"{self.base_url}/cards/{scryfall_id}"
        try:
            if self._client is not None:
                response = await self._client.get(url, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url)
            response.raise_for_status()
            metadata = parse_card_metadata(response.json())
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Card lookup for %s failed: HTTP %d", scryfall_id, e.response.status_code
            )
            return None
        except httpx.RequestError as e:
            logger.warning("Card lookup for %s unavailable: %s", scryfall_id, e)
            return None
        except (KeyError, ValueError) as e:
            logger.warning("Card lookup for %s returned an unusable body: %s", scryfall_id, e)
            return None

        self._cache[scryfall_id] = metadata
        while len(self._cache) > self.cache_size:
            self._cache.popitem(last=False)
        return metadata
