import base64
from typing import List, Optional, Tuple

import requests
from starlette.concurrency import run_in_threadpool

from errors import CatalogError, UpstreamError

API_ROOT = "https://ws.audioscrobbler.com/2.0/"
ERROR_CODES_URL = "https://www.last.fm/api/errorcodes"

# artist.getInfo returns small, medium, large, extralarge, mega
PREFERRED_IMAGE_SIZE = "extralarge"


class LastFmClient:
    def __init__(self, api_key: Optional[str], timeout: float = 15):
        self.api_key = api_key
        self.timeout = timeout

    def _call(self, method: str, **params) -> dict:
        params.update({"method": method, "api_key": self.api_key, "format": "json"})
        try:
            r = requests.get(API_ROOT, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise CatalogError(f"{method}: {e}") from e
        try:
            data = r.json()
        except ValueError:
            data = None
        # Last.fm reports failures as {"error": N, "message": "..."}, often with a 4xx
        if isinstance(data, dict) and "error" in data:
            raise CatalogError(f"{method}: {data.get('message', 'unknown error')}", code=data.get("error"))
        try:
            r.raise_for_status()
        except requests.HTTPError as e:
            raise CatalogError(f"{method}: HTTP {r.status_code}") from e
        if not isinstance(data, dict):
            raise CatalogError(f"{method}: malformed response")
        return data

    def _top_artists(self, username: str) -> Tuple[str, List[dict]]:
        data = self._call("user.getTopArtists", user=username)
        top = data.get("topartists") or {}
        artists = top.get("artist") or []
        if isinstance(artists, dict):  # a single artist comes back unwrapped
            artists = [artists]
        reported = (top.get("@attr") or {}).get("user") or username
        return reported, artists

    def _artist_info(self, artist: str, username: Optional[str] = None) -> dict:
        params = {"artist": artist}
        if username:
            params["user"] = username
        return self._call("artist.getInfo", **params).get("artist") or {}

    async def top_artists(self, username: str) -> Tuple[str, List[dict]]:
        """(catalog-reported username, artists in rank order)"""
        return await run_in_threadpool(self._top_artists, username)

    async def artist_info(self, artist: str, username: Optional[str] = None) -> dict:
        return await run_in_threadpool(self._artist_info, artist, username)


def pick_image_url(info: dict) -> Optional[str]:
    images = [im for im in (info.get("image") or []) if isinstance(im, dict) and im.get("#text")]
    for im in images:
        if im.get("size") == PREFERRED_IMAGE_SIZE:
            return im["#text"]
    return images[-1]["#text"] if images else None


class ImageFetcher:
    def __init__(self, timeout: float = 15):
        self.timeout = timeout

    def _fetch(self, url: str) -> Tuple[str, bytes]:
        try:
            r = requests.get(url, timeout=self.timeout)
            r.raise_for_status()
        except requests.RequestException as e:
            raise UpstreamError(f"image fetch failed for {url}: {e}") from e
        return r.headers.get("Content-Type", "application/octet-stream"), r.content

    async def fetch(self, url: str) -> Tuple[str, bytes]:
        return await run_in_threadpool(self._fetch, url)


def to_data_uri(content_type: str, body: bytes) -> str:
    return f"data:{content_type};base64,{base64.b64encode(body).decode()}"
