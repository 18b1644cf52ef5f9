"""Centralized cache utilities (TTLCache settings & key builders)."""
from __future__ import annotations

import os
from cachetools import TTLCache

# Playlist fetch cache settings
_ENV = os.getenv("ENV", "prod").lower()
PLAYLIST_CACHE_VERSION = int(os.getenv("PLAYLIST_CACHE_VERSION", "1"))
PLAYLIST_CACHE_MAXSIZE = int(os.getenv("PLAYLIST_CACHE_MAXSIZE", "128"))
PLAYLIST_CACHE_TTL_S = int(os.getenv("PLAYLIST_CACHE_TTL_S", "600" if _ENV == "dev" else "3600"))

# Lazy-initialized caches
_playlist_cache: TTLCache | None = None


def get_playlist_cache() -> TTLCache:
    global _playlist_cache
    if _playlist_cache is None:
        _playlist_cache = TTLCache(maxsize=PLAYLIST_CACHE_MAXSIZE, ttl=PLAYLIST_CACHE_TTL_S)
    return _playlist_cache


def build_playlist_cache_key(playlist_id: str) -> str:
    return f"pl:{PLAYLIST_CACHE_VERSION}:{playlist_id}"
