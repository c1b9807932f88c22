from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from errors import CatalogError, UpstreamError


def lastfm_artist(name: str, playcount, rank: int = 1) -> dict:
    return {
        "name": name,
        "playcount": str(playcount),
        "mbid": "",
        "url": f"https://www.last.fm/music/{name}",
        "@attr": {"rank": str(rank)},
    }


def image_variants(url: str) -> dict:
    return {"image": [
        {"#text": url.replace(".png", "-s.png"), "size": "small"},
        {"#text": url.replace(".png", "-m.png"), "size": "medium"},
        {"#text": url.replace(".png", "-l.png"), "size": "large"},
        {"#text": url, "size": "extralarge"},
    ]}


class FakeCatalog:
    """Scripted stand-in for LastFmClient."""

    def __init__(self, artists: List[dict], reported: str = "RJ",
                 delays: Optional[Dict[str, float]] = None, fail_on: Optional[str] = None,
                 error: Optional[Exception] = None):
        self.artists = artists
        self.reported = reported
        self.delays = delays or {}
        self.fail_on = fail_on
        self.error = error
        self.info_calls: List[Tuple[str, Optional[str]]] = []

    async def top_artists(self, username: str):
        if self.error is not None:
            raise self.error
        return self.reported, self.artists

    async def artist_info(self, artist: str, username: Optional[str] = None) -> dict:
        self.info_calls.append((artist, username))
        await asyncio.sleep(self.delays.get(artist, 0))
        if artist == self.fail_on:
            raise CatalogError(f"artist.getInfo: {artist} exploded", code=8)
        return image_variants(f"https://img.example/{artist}.png")


class FakeImages:
    def __init__(self, fail_on: Optional[str] = None):
        self.fail_on = fail_on
        self.fetched: List[str] = []

    async def fetch(self, url: str):
        if self.fail_on and self.fail_on in url:
            raise UpstreamError(f"image fetch failed for {url}")
        self.fetched.append(url)
        return "image/png", b"\x89PNG"


class FakeVerifier:
    def __init__(self, verdict: bool = True, error: Optional[Exception] = None):
        self.verdict = verdict
        self.error = error
        self.tokens: List[str] = []

    async def verify(self, token: str, remote_ip: Optional[str] = None) -> bool:
        self.tokens.append(token)
        if self.error is not None:
            raise self.error
        return self.verdict


class FakeMailer:
    """Pops one scripted result per send; None means delivered."""

    def __init__(self, results: Optional[List[Optional[Exception]]] = None):
        self.results = list(results or [])
        self.calls: List[Tuple[object, bool]] = []

    async def send(self, mail, verify_tls: bool = True) -> None:
        self.calls.append((mail, verify_tls))
        result = self.results.pop(0) if self.results else None
        if result is not None:
            raise result


@pytest.fixture()
def catalog() -> FakeCatalog:
    return FakeCatalog([
        lastfm_artist("Radiohead", 900, 1),
        lastfm_artist("Bjork", 300, 2),
        lastfm_artist("Low", 90, 3),
    ])
