#!/usr/bin/env python3
"""
Spotify glue for the pairing service:
- playlist ID extraction and paginated track fetch (title / artist / URL)
- cutoff handling and the default sequential pairing entry point
- track enrichment (Spotify search) for the JSON export

Everything algorithmic lives in lib.pairing; this module only talks to Spotify
and reshapes its responses into Track objects.
"""

from __future__ import annotations

import logging
import os
import re
import time
import unicodedata
from typing import Any, Dict, Iterable, List, Optional, Sequence
from urllib.parse import urlparse

import spotipy
from spotipy.oauth2 import SpotifyClientCredentials
from spotipy.exceptions import SpotifyException

from lib.cache_manager import build_playlist_cache_key, get_playlist_cache
from lib.pairing.models import Track
from lib.pairing.plan import parse_leading_int

# Configure logger for this module
logger = logging.getLogger(__name__)

SPOTIFY_PAGE_LIMIT = 100


class PlaylistFetchError(RuntimeError):
    """Spotify failure carrying the upstream HTTP status for the API layer."""

    def __init__(self, message: str, http_status: int | None = None):
        super().__init__(message)
        self.http_status = http_status


class CutoffError(ValueError):
    """Invalid cutoff track number."""


# =========================
# Spotify client
# =========================


def get_spotify_client() -> spotipy.Spotify:
    """
    Build a Spotipy client from the environment.

    Required environment variables:
    - SPOTIFY_CLIENT_ID
    - SPOTIFY_CLIENT_SECRET
    """
    client_id = os.getenv("SPOTIFY_CLIENT_ID")
    client_secret = os.getenv("SPOTIFY_CLIENT_SECRET")

    if not client_id or not client_secret:
        raise RuntimeError(
            "Spotify client credentials are not set. "
            "Please set SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET."
        )

    auth_manager = SpotifyClientCredentials(
        client_id=client_id,
        client_secret=client_secret,
    )
    return spotipy.Spotify(auth_manager=auth_manager)


# =========================
# Playlist ID extraction
# =========================


def extract_playlist_id(url_or_id: str) -> str:
    """Extract a Spotify playlist ID from a full URL or a raw ID.

    Supports formats like:
    - https://open.spotify.com/playlist/<id>
    - https://open.spotify.com/user/<user>/playlist/<id>
    - spotify:playlist:<id>
    - raw 22-character ID
    """
    s = (url_or_id or "").strip()
    if not s:
        raise RuntimeError("Empty playlist URL or ID")

    # spotify:playlist:<id>
    m = re.match(r"^spotify:playlist:([a-zA-Z0-9]+)$", s)
    if m:
        return m.group(1)

    parsed = urlparse(s)
    host = (parsed.netloc or "").lower()
    if "open.spotify.com" in host:
        parts = [p for p in (parsed.path or "").split("/") if p]
        # possible paths: playlist/<id> or user/<user>/playlist/<id>
        for i, p in enumerate(parts):
            if p == "playlist" and i + 1 < len(parts):
                return parts[i + 1]

    # Raw ID fallback (usually 22 chars base62)
    if re.match(r"^[A-Za-z0-9]{16,}$", s):
        return s

    raise RuntimeError(f"Could not extract Spotify playlist ID from: {s}")


# =========================
# Playlist fetch
# =========================


def _nfc(s: str) -> str:
    return unicodedata.normalize("NFC", s or "")


def _item_to_track(item: Dict[str, Any]) -> Optional[Track]:
    track = item.get("track")
    if not track or not track.get("name"):
        return None
    if track.get("is_local"):
        return None

    artist_parts = [_nfc(a.get("name")) for a in (track.get("artists") or []) if a.get("name")]
    extra: Dict[str, Any] = {}
    spotify_url = (track.get("external_urls") or {}).get("spotify")
    if spotify_url:
        extra["spotifyUrl"] = spotify_url

    return Track(
        title=_nfc(track["name"]),
        artist=", ".join(artist_parts),
        extra=extra,
    )


def fetch_playlist_tracks(
    url_or_id: str,
    sp: spotipy.Spotify | None = None,
    refresh: bool = False,
) -> List[Track]:
    """
    Fetch every track of a Spotify playlist, in playlist order.

    Null tracks (removed from the catalog) and local files are skipped.
    Results are cached per playlist ID; refresh=True bypasses the cache.

    Raises:
        RuntimeError: bad URL/ID or missing credentials
        PlaylistFetchError: Spotify API failure (http_status set when known)
    """
    playlist_id = extract_playlist_id(url_or_id)
    cache = get_playlist_cache()
    cache_key = build_playlist_cache_key(playlist_id)
    if not refresh:
        cached = cache.get(cache_key)
        if cached is not None:
            logger.debug(f"[Spotify] cache hit playlist={playlist_id} tracks={len(cached)}")
            return list(cached)

    sp = sp or get_spotify_client()

    t0 = time.time()
    items: List[Dict[str, Any]] = []
    try:
        results = sp.playlist_items(
            playlist_id,
            limit=SPOTIFY_PAGE_LIMIT,
            offset=0,
            fields="items(track(name,artists(name),external_urls.spotify,is_local)),next,total",
        )
        items.extend(results.get("items", []))
        # paginate
        while results.get("next"):
            results = sp.next(results)
            items.extend(results.get("items", []))
    except SpotifyException as e:
        status = getattr(e, "http_status", None)
        msg = getattr(e, "msg", str(e))
        raise PlaylistFetchError(
            f"Failed to fetch playlist tracks from Spotify API ({status}): {msg}",
            http_status=status,
        ) from e

    tracks = [t for t in (_item_to_track(item) for item in items) if t is not None]
    fetch_ms = (time.time() - t0) * 1000
    logger.info(
        f"[Spotify] fetched playlist={playlist_id} items={len(items)} tracks={len(tracks)} fetch_ms={fetch_ms:.1f}"
    )

    if tracks:
        cache[cache_key] = list(tracks)
    return tracks


def apply_cutoff(tracks: Sequence[Track], cutoff: Any) -> List[Track]:
    """
    Keep the first `cutoff` tracks (1-based, inclusive).
    The cutoff must be within [1..len(tracks)] and even so pairs stay complete.
    """
    total = len(tracks)
    value = parse_leading_int(cutoff)
    if value is None or value < 1 or value > total:
        raise CutoffError(f"Invalid cutoff track number. Must be between 1 and {total}.")
    if value % 2 != 0:
        raise CutoffError("Cutoff track number must be even to form complete pairs.")

    return list(tracks[:value])


# =========================
# Enrichment (JSON export)
# =========================


def search_spotify_track(sp: spotipy.Spotify, title: str, artist: str) -> Dict[str, Any]:
    """Best match for title/artist. Failures are logged and reported as not found."""
    query = f"track:{title} artist:{artist}"
    try:
        data = sp.search(q=query, type="track", limit=1)
    except SpotifyException as e:
        logger.error(f'[Spotify] search failed for "{title}" by {artist}: {e}')
        return {"found": False}

    items = ((data or {}).get("tracks") or {}).get("items") or []
    if not items:
        return {"found": False}

    track = items[0]
    return {
        "found": True,
        "spotifyUrl": (track.get("external_urls") or {}).get("spotify", ""),
        "album": (track.get("album") or {}).get("name", ""),
    }


def create_track_object(title: str, artist: str, spotify_data: Dict[str, Any]) -> Track:
    """Track with the export fields filled in; `placeholder` marks a failed lookup."""
    extra: Dict[str, Any] = {
        "era": "",
        "youtubeId": "",
        "startSec": 0,
        "rawTitle": "",
        "releaseDate": "",
        "spotifyUrl": "",
        "album": "",
    }
    if spotify_data.get("found"):
        extra["spotifyUrl"] = spotify_data.get("spotifyUrl") or ""
        extra["album"] = spotify_data.get("album") or ""
    else:
        extra["placeholder"] = True
    return Track(title=title, artist=artist, extra=extra)


def enrich_parsed_pairs(parsed_pairs: Iterable[Any], sp: spotipy.Spotify | None = None) -> List[Dict[str, Any]]:
    """
    Look up both tracks of every confirmed pair on Spotify and build the
    export records: [{"pairIndex": i, "original": {...}, "sampled": {...}}, ...]
    """
    sp = sp or get_spotify_client()
    enriched: List[Dict[str, Any]] = []

    t0 = time.time()
    for pair_index, pair in enumerate(parsed_pairs):
        original = pair.original
        sampled = pair.sampled
        original_obj = create_track_object(
            original.title, original.artist, search_spotify_track(sp, original.title, original.artist)
        )
        sampled_obj = create_track_object(
            sampled.title, sampled.artist, search_spotify_track(sp, sampled.title, sampled.artist)
        )
        enriched.append(
            {
                "pairIndex": pair_index,
                "original": original_obj.to_dict(),
                "sampled": sampled_obj.to_dict(),
            }
        )

    enrich_ms = (time.time() - t0) * 1000
    placeholders = sum(
        1 for rec in enriched for side in ("original", "sampled") if rec[side].get("placeholder")
    )
    logger.info(f"[Spotify] enriched pairs={len(enriched)} placeholders={placeholders} enrich_ms={enrich_ms:.1f}")
    return enriched
