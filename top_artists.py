import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from bubbles import bubble_radius, max_bubble_size, playcount_ratio
from errors import CatalogError, NoArtistsError
from lastfm import ImageFetcher, LastFmClient, pick_image_url, to_data_uri

log = logging.getLogger(__name__)

TOP_ARTIST_LIMIT = 50


@dataclass
class ArtistEntry:
    name: str
    playcount: int
    radius: float
    image_uri: str = ""
    x: float = 0.0
    y: float = 0.0
    url: str = ""
    mbid: str = ""
    rank: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "playcount": self.playcount,
            "radius": self.radius,
            "imageUrl": self.image_uri,
            "x": self.x,
            "y": self.y,
            "url": self.url,
            "mbid": self.mbid,
            "rank": self.rank,
        }


@dataclass
class UserTopArtists:
    name: str
    top_artists: List[ArtistEntry] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"name": self.name, "topArtists": [a.to_dict() for a in self.top_artists]}


def _playcount(artist: dict) -> int:
    try:
        n = int(artist.get("playcount", 0))
    except (TypeError, ValueError):
        raise CatalogError(f"bad playcount for {artist.get('name')!r}: {artist.get('playcount')!r}")
    if n < 0:
        raise CatalogError(f"negative playcount for {artist.get('name')!r}")
    return n


def _rank(artist: dict) -> Optional[int]:
    raw = (artist.get("@attr") or {}).get("rank")
    try:
        return int(raw) if raw is not None else None
    except (TypeError, ValueError):
        return None


class TopArtistsView:
    """Builds the bubble-chart view model for one Last.fm user.

    Images are either inlined as base64 data URIs (one server-side fetch per
    artist) or passed through as remote URLs. Any lookup failure fails the
    whole build.
    """

    def __init__(self, catalog: LastFmClient, images: Optional[ImageFetcher] = None,
                 inline_images: bool = True, limit: int = TOP_ARTIST_LIMIT):
        self.catalog = catalog
        self.images = images or ImageFetcher()
        self.inline_images = inline_images
        self.limit = limit

    async def _resolve_image(self, artist_name: str, username: str) -> str:
        info = await self.catalog.artist_info(artist_name, username)
        url = pick_image_url(info)
        if not url:
            log.info("no image for artist %r", artist_name)
            return ""
        if not self.inline_images:
            return url
        content_type, body = await self.images.fetch(url)
        return to_data_uri(content_type, body)

    async def _entry(self, artist: dict, playcount: int, max_playcount: int,
                     max_size: int, username: str) -> ArtistEntry:
        name = artist.get("name") or ""
        return ArtistEntry(
            name=name,
            playcount=playcount,
            radius=bubble_radius(playcount, max_playcount, max_size),
            image_uri=await self._resolve_image(name, username),
            url=artist.get("url") or "",
            mbid=artist.get("mbid") or "",
            rank=_rank(artist),
        )

    async def build(self, username: str) -> UserTopArtists:
        reported, artists = await self.catalog.top_artists(username)
        if not artists:
            raise NoArtistsError(username)

        counts = [_playcount(a) for a in artists]
        lo, hi = min(counts), max(counts)
        max_size = max_bubble_size(playcount_ratio(lo, hi))

        head = list(zip(artists, counts))[: self.limit]
        # gather keeps argument order, so completion order doesn't matter
        entries = await asyncio.gather(
            *(self._entry(a, n, hi, max_size, username) for a, n in head)
        )
        return UserTopArtists(name=reported, top_artists=list(entries))
