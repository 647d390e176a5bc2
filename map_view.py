"""Nearby recycling centers map, derived from the user's location field."""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote

from pydantic import BaseModel

MAP_SEARCH_INTENT = "recycling+center+near+"
MAPS_EMBED_URL = "https://www.google.com/maps/embed/v1/search"
MAP_TITLE = "Nearby recycling centers map"


class MapDirective(BaseModel):
    query: str
    embed_url: str
    title: str = MAP_TITLE


def project_map_query(location: str) -> Optional[str]:
    """Return the map search query for `location`, or None when no location was given."""
    location = (location or "").strip()
    if not location:
        return None
    return MAP_SEARCH_INTENT + quote(location, safe="")


def build_map_embed_url(query: str, api_key: str) -> str:
    return f"{MAPS_EMBED_URL}?key={quote(api_key, safe='')}&q={query}"


def map_directive(location: str, api_key: str) -> Optional[MapDirective]:
    query = project_map_query(location)
    if query is None:
        return None
    return MapDirective(query=query, embed_url=build_map_embed_url(query, api_key))
