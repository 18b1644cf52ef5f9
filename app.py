from __future__ import annotations

import os
import asyncio
import json
import time
from typing import Any, Dict, List, Optional, Tuple, Union

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.gzip import GZipMiddleware
from pydantic import BaseModel, Field

from core import (
    CutoffError,
    PlaylistFetchError,
    apply_cutoff,
    enrich_parsed_pairs,
    extract_playlist_id,
    fetch_playlist_tracks,
)
from lib.pairing import (
    PairStore,
    PairingBuildError,
    OddTrackCountError,
    Track,
    Pair,
    build_pairs_from_plan,
    build_sequential_pairs,
    normalize_plan,
    pair_from_dict,
    pair_to_dict,
    validate_plan,
)
from lib.pairing.dedupe import detect_duplicate_tracks, detect_duplicates_in_pairs
from lib.pairing.store import StoreFormatError
from pairs_text import parse_pairs_text, parsed_to_pairs, render_pairs_text, validate_parsed_pairs
import logging

load_dotenv()

# Basic logging configuration to ensure logger outputs appear in the terminal
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn.error")
logger.setLevel(logging.INFO)

# Canonical pair store (flat JSON list, rewritten on every merge)
PAIRS_STORE_PATH = os.getenv("PAIRS_STORE_PATH", "pairs.enriched.json")

# Request body ceiling (bytes) - default 5MB
MAX_REQUEST_BYTES = int(os.getenv("MAX_REQUEST_BYTES", 5 * 1024 * 1024))


# =========================
# Pydantic models
# =========================

class PlaylistPairsBody(BaseModel):
    model_config = {"populate_by_name": True}

    spotify_url: Optional[str] = Field(None, alias="spotifyUrl")
    cutoff_track_number: Optional[Union[int, str]] = Field(None, alias="cutoffTrackNumber")
    advanced_pairing_plan: Optional[Dict[str, Any]] = Field(None, alias="advancedPairingPlan")
    refresh: Optional[int] = None  # 1 bypasses the playlist cache
    merge: bool = False  # build-pairs only: fold the result into the canonical store


class ConfirmedTextBody(BaseModel):
    model_config = {"populate_by_name": True}

    confirmed_text: Optional[str] = Field(None, alias="confirmedText")


class MergePairsBody(BaseModel):
    pairs: List[Dict[str, Any]]


# =========================
# FastAPI app & CORS
# =========================

app = FastAPI(
    title="Sample Pairs Backend",
    version="1.0.0",
)

# Add GZip middleware for response compression (store dumps can get large)
app.add_middleware(GZipMiddleware, minimum_size=1000)


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        if request.method in ("POST", "PUT", "PATCH"):
            content_length = request.headers.get("content-length")
            if content_length and int(content_length) > MAX_REQUEST_BYTES:
                logger.warning(f"[RequestSizeLimit] Rejected oversized request: {content_length} bytes from {request.client}")
                return JSONResponse(
                    status_code=413,
                    content={"detail": f"Request body too large (max {MAX_REQUEST_BYTES} bytes)"}
                )
        return await call_next(request)


app.add_middleware(RequestSizeLimitMiddleware)


@app.on_event("startup")
def _log_startup():
    logger.info(f"sample-pairs: startup event triggered store={PAIRS_STORE_PATH}")


@app.on_event("startup")
async def _init_store_lock():
    # PairStore does no locking of its own; merges are serialized here
    app.state.store_lock = asyncio.Lock()


default_origins = [
    "http://localhost:3000",
]

# ALLOWED_ORIGINS (comma separated) overrides the defaults
env_origins = os.getenv("ALLOWED_ORIGINS")
if env_origins:
    origins = [o.strip() for o in env_origins.split(",") if o.strip()]
else:
    origins = default_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =========================
# Health check
# =========================

@app.get("/health", tags=["system"])
def health() -> Dict[str, Any]:
    return {
        "ok": True,
        "status": "ok",
        "build_commit": os.getenv("RENDER_GIT_COMMIT", "local")[:7],
    }


@app.get("/", tags=["system"])
def root() -> Dict[str, Any]:
    return {"ok": True, "status": "ok"}


# =========================
# Core helpers
# =========================

def _get_store() -> PairStore:
    return PairStore(PAIRS_STORE_PATH)


def _store_lock(request: Request) -> asyncio.Lock:
    lock = getattr(request.app.state, "store_lock", None)
    if lock is None:
        lock = asyncio.Lock()
        request.app.state.store_lock = lock
    return lock


async def _load_playlist(body: PlaylistPairsBody) -> Tuple[List[Track], int]:
    """Fetch the playlist and apply the cutoff. Returns (tracks, total before cutoff)."""
    if not body.spotify_url:
        raise HTTPException(status_code=400, detail={"error": "Spotify URL is required"})

    try:
        extract_playlist_id(body.spotify_url)
    except RuntimeError:
        raise HTTPException(status_code=400, detail={"error": "Invalid Spotify playlist URL or URI"})

    try:
        # spotipy is blocking; paginate off the event loop
        tracks = await asyncio.to_thread(
            fetch_playlist_tracks, body.spotify_url, refresh=(body.refresh == 1)
        )
    except PlaylistFetchError as e:
        logger.error(f"[api] playlist fetch failed url={body.spotify_url}: {e}")
        if e.http_status == 404:
            raise HTTPException(status_code=404, detail={"error": "Playlist not found"})
        raise HTTPException(status_code=500, detail={
            "error": "Failed to fetch playlist from Spotify",
            "details": str(e),
        })
    except RuntimeError as e:
        logger.error(f"[api] Spotify client error: {e}")
        raise HTTPException(status_code=500, detail={
            "error": "Failed to authenticate with Spotify API",
            "details": str(e),
        })

    total_tracks = len(tracks)
    if body.cutoff_track_number not in (None, "", 0):
        try:
            tracks = apply_cutoff(tracks, body.cutoff_track_number)
        except CutoffError as e:
            raise HTTPException(status_code=400, detail={"error": str(e)})

    return tracks, total_tracks


def _pair_tracks(
    tracks: List[Track],
    raw_plan: Optional[Dict[str, Any]],
    total_tracks: int,
) -> Tuple[List[Pair], List[int]]:
    """Advanced plan when given, sequential pairing otherwise. Returns (pairs, leftover)."""
    if raw_plan is not None:
        logger.info("[api] using advanced pairing plan")
        plan = normalize_plan(raw_plan, len(tracks))
        validation = validate_plan(plan, len(tracks))
        if not validation.ok:
            logger.warning(f"[api] pairing plan validation failed: {validation.errors}")
            raise HTTPException(status_code=400, detail={
                "error": "Invalid pairing plan",
                "details": validation.errors,
            })
        try:
            result = build_pairs_from_plan(tracks, plan)
        except PairingBuildError as e:
            logger.error(f"[api] error applying advanced pairing plan: {e}")
            raise HTTPException(status_code=400, detail={
                "error": "Failed to apply advanced pairing plan",
                "details": str(e),
            })
        return result.pairs, result.leftover_positions

    try:
        pairs = build_sequential_pairs(tracks)
    except OddTrackCountError:
        raise HTTPException(status_code=400, detail={"error": "odd", "totalTracks": total_tracks})

    for track, positions in detect_duplicate_tracks(tracks):
        logger.warning(
            f'[api] duplicate track "{track.title}" by {track.artist} at positions {", ".join(map(str, positions))}'
        )
    return pairs, []


def _latin1_header(value: str) -> str:
    return value.encode("latin-1", "replace").decode("latin-1")


# =========================
# Endpoints
# =========================

@app.post("/api/create-list")
async def create_list(body: PlaylistPairsBody):
    """
    Playlist -> editable text sheet (playlist_pairs.txt).
    Uses advancedPairingPlan when present, (1,2), (3,4), ... otherwise.
    """
    t0_total = time.time()
    tracks, total_tracks = await _load_playlist(body)
    pairs, _ = _pair_tracks(tracks, body.advanced_pairing_plan, total_tracks)

    txt_content = render_pairs_text(pairs)
    total_ms = (time.time() - t0_total) * 1000
    logger.info(f"[PERF] create-list tracks={len(tracks)} pairs={len(pairs)} total_api_ms={total_ms:.1f}")

    return Response(
        content=txt_content,
        media_type="text/plain; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="playlist_pairs.txt"'},
    )


@app.post("/api/build-pairs")
async def build_pairs(body: PlaylistPairsBody, request: Request) -> Dict[str, Any]:
    """
    Playlist -> pairs as JSON, with leftover positions and duplicate warnings.
    With merge=true the pairs are also folded into the canonical store.
    """
    tracks, total_tracks = await _load_playlist(body)
    pairs, leftover = _pair_tracks(tracks, body.advanced_pairing_plan, total_tracks)

    data: Dict[str, Any] = {
        "pairs": [pair_to_dict(p) for p in pairs],
        "leftover_positions": leftover,
        "duplicates": [
            {"title": t.title, "artist": t.artist, "positions": positions}
            for t, positions in detect_duplicate_tracks(tracks)
        ],
    }

    if body.merge:
        data["merge"] = await _merge_into_store(request, pairs)

    return data


@app.post("/api/create-json")
async def create_json(body: ConfirmedTextBody):
    """
    Confirmed text sheet -> enriched JSON export (playlist_pairs.json).
    Duplicate tracks do not block the export; they are listed in X-Warning.
    """
    if not body.confirmed_text:
        raise HTTPException(status_code=400, detail={
            "error": "Please upload or paste playlist pairs text to create JSON",
        })

    parsed = parse_pairs_text(body.confirmed_text)
    if not parsed:
        raise HTTPException(status_code=400, detail={
            "error": "No valid pairs found in the uploaded text. Please check the format.",
        })

    problem = validate_parsed_pairs(parsed)
    if problem:
        raise HTTPException(status_code=400, detail={"error": problem})

    duplicates = detect_duplicates_in_pairs(parsed_to_pairs(parsed))
    if duplicates:
        logger.warning(f"[api] duplicate tracks in confirmed text: {duplicates}")

    try:
        enriched = await asyncio.to_thread(enrich_parsed_pairs, parsed)
    except RuntimeError as e:
        logger.error(f"[api] Spotify client error: {e}")
        raise HTTPException(status_code=500, detail={
            "error": "Failed to authenticate with Spotify API",
            "details": str(e),
        })

    headers = {"Content-Disposition": 'attachment; filename="playlist_pairs.json"'}
    if duplicates:
        headers["X-Warning"] = _latin1_header(f"Duplicate tracks detected: {'; '.join(duplicates)}")

    return Response(
        content=json.dumps(enriched, indent=2, ensure_ascii=False),
        media_type="application/json; charset=utf-8",
        headers=headers,
    )


async def _merge_into_store(request: Request, pairs: List[Pair]) -> Dict[str, Any]:
    store = _get_store()
    async with _store_lock(request):
        try:
            result = await asyncio.to_thread(store.merge, pairs)
        except StoreFormatError as e:
            logger.error(f"[api] pair store unreadable: {e}")
            raise HTTPException(status_code=500, detail={"error": "Pair store is corrupted", "details": str(e)})
    return {
        "total": len(result.pairs),
        "added": result.added,
        "collisions": [c.to_dict() for c in result.collisions],
    }


@app.post("/api/merge-pairs")
async def merge_pairs_endpoint(body: MergePairsBody, request: Request) -> Dict[str, Any]:
    """
    Fold submitted pairs (either {original, sampled} or {originalTrack,
    sampledTrack} records) into the canonical store. Stored pairs win ties.
    """
    pairs = [pair_from_dict(p) for p in body.pairs]
    return await _merge_into_store(request, pairs)


@app.get("/api/pairs")
def list_pairs() -> Dict[str, Any]:
    try:
        pairs = _get_store().load()
    except StoreFormatError as e:
        raise HTTPException(status_code=500, detail={"error": "Pair store is corrupted", "details": str(e)})
    return {"total": len(pairs), "pairs": [pair_to_dict(p) for p in pairs]}


# =========================
# Local dev entrypoint
# =========================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "3000")),
        reload=True,
    )
