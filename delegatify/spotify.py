import re
import enum
import asyncio
import logging
from functools import partial
from dataclasses import dataclass
from typing import Optional, List, Tuple, Any, Callable

import requests
import spotipy
from spotipy.cache_handler import MemoryCacheHandler
from spotipy.oauth2 import SpotifyPKCE, SpotifyOauthError

from .config import Settings, SPOTIFY_SCOPES
from .errors import RemoteServiceError

logger = logging.getLogger("delegatify")

SPOTIFY_ID_RE = re.compile(r"[A-Za-z0-9]+")

# Tracks and episodes both show up in playback/queue responses
ADDITIONAL_TYPES = "track,episode"


class ItemKind(enum.Enum):
    TRACK = "track"
    EPISODE = "episode"


@dataclass(frozen=True)
class ItemId:
    kind: ItemKind
    value: str

    @property
    def uri(self) -> str:
        return f"spotify:{self.kind.value}:{self.value}"


@dataclass
class StandardTrackItem:
    name: str
    artists: List[str]
    duration_ms: int
    image: str
    url: str
    id: ItemId

    @property
    def title(self) -> str:
        if not self.artists:
            return self.name
        return f"{self.name} - {', '.join(self.artists)}"

    @property
    def duration(self) -> int:
        return self.duration_ms // 1000

    def track_id(self) -> Optional[str]:
        """Only tracks can be queued; episodes project to None."""
        if self.id.kind is ItemKind.TRACK:
            return self.id.value
        return None

    @classmethod
    def from_playable(cls, item: dict) -> "StandardTrackItem":
        kind = item.get("type")
        if kind == "track":
            return cls._from_track(item)
        if kind == "episode":
            return cls._from_episode(item)
        raise ValueError(f"Unsupported playable item type: {kind!r}")

    @classmethod
    def _from_track(cls, track: dict) -> "StandardTrackItem":
        images = (track.get("album") or {}).get("images") or []
        return cls(
            name=track.get("name") or "Unknown",
            artists=[a.get("name") or "Unknown artist" for a in track.get("artists", [])],
            duration_ms=int(track.get("duration_ms") or 0),
            image=images[0]["url"] if images else "",
            url=(track.get("external_urls") or {}).get("spotify", ""),
            id=ItemId(ItemKind.TRACK, track["id"]),
        )

    @classmethod
    def _from_episode(cls, episode: dict) -> "StandardTrackItem":
        images = episode.get("images") or []
        show = episode.get("show") or {}
        return cls(
            name=episode.get("name") or "Unknown",
            artists=[show.get("name") or "Unknown show"],
            duration_ms=int(episode.get("duration_ms") or 0),
            image=images[0]["url"] if images else "",
            url=(episode.get("external_urls") or {}).get("spotify", ""),
            id=ItemId(ItemKind.EPISODE, episode["id"]),
        )


@dataclass
class PlaybackState:
    is_playing: bool
    progress_ms: int
    item: Optional[StandardTrackItem]
    shuffle: bool
    repeat: str
    device_name: str

    @property
    def progress(self) -> int:
        return self.progress_ms // 1000

    @classmethod
    def from_response(cls, data: dict) -> "PlaybackState":
        item = data.get("item")
        return cls(
            is_playing=bool(data.get("is_playing")),
            progress_ms=int(data.get("progress_ms") or 0),
            item=StandardTrackItem.from_playable(item) if item else None,
            shuffle=bool(data.get("shuffle_state")),
            repeat=data.get("repeat_state") or "off",
            device_name=(data.get("device") or {}).get("name") or "Unknown device",
        )


def fmt_time(seconds: Optional[int]) -> str:
    if seconds is None:
        return "?:??"
    seconds = max(0, int(seconds))
    m, s = divmod(seconds, 60)
    h, m = divmod(m, 60)
    if h:
        return f"{h}:{m:02d}:{s:02d}"
    return f"{m}:{s:02d}"


def build_auth_manager(settings: Settings) -> SpotifyPKCE:
    # Tokens live in memory only; nothing is cached to disk between restarts.
    return SpotifyPKCE(
        client_id=settings.spotify_client_id,
        redirect_uri=settings.spotify_redirect_uri,
        scope=" ".join(SPOTIFY_SCOPES),
        cache_handler=MemoryCacheHandler(),
        open_browser=False,
    )


class SpotifySession:
    """
    An authenticated Spotify account connection.

    spotipy is blocking (requests under the hood), so every call is pushed to
    the default executor. Responses are normalized into StandardTrackItem /
    PlaybackState before they leave this class.
    """

    def __init__(self, client: spotipy.Spotify, scopes: Tuple[str, ...] = SPOTIFY_SCOPES):
        self.client = client
        self.scopes = scopes

    @classmethod
    def from_auth_manager(cls, auth_manager: SpotifyPKCE) -> "SpotifySession":
        scopes = tuple((auth_manager.scope or "").split())
        return cls(spotipy.Spotify(auth_manager=auth_manager), scopes)

    async def _call(self, fn: Callable[..., Any], *args, **kwargs) -> Any:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, partial(fn, *args, **kwargs))
        except (spotipy.SpotifyException, SpotifyOauthError, requests.RequestException) as e:
            logger.warning("Spotify request %s failed: %s", getattr(fn, "__name__", fn), e)
            raise RemoteServiceError() from e

    async def current_playback(self) -> Optional[PlaybackState]:
        data = await self._call(self.client.current_playback, additional_types=ADDITIONAL_TYPES)
        if not data:
            return None
        return PlaybackState.from_response(data)

    async def now_playing(self) -> Optional[StandardTrackItem]:
        data = await self._call(self.client.currently_playing, additional_types=ADDITIONAL_TYPES)
        if not data or not data.get("item"):
            return None
        return StandardTrackItem.from_playable(data["item"])

    async def is_active(self) -> bool:
        data = await self._call(self.client.currently_playing, additional_types=ADDITIONAL_TYPES)
        return bool(data)

    async def queue(self) -> List[StandardTrackItem]:
        data = await self._call(self.client.queue)
        return [StandardTrackItem.from_playable(it) for it in (data or {}).get("queue", []) if it]

    async def search_tracks(self, query: str, limit: int = 5) -> List[StandardTrackItem]:
        data = await self._call(self.client.search, q=query, limit=limit, type="track")
        items = ((data or {}).get("tracks") or {}).get("items") or []
        return [StandardTrackItem.from_playable(it) for it in items if it]

    async def add_to_queue(self, track_id: str) -> None:
        await self._call(self.client.add_to_queue, ItemId(ItemKind.TRACK, track_id).uri)

    async def next_track(self) -> None:
        await self._call(self.client.next_track)

    async def previous_track(self) -> None:
        await self._call(self.client.previous_track)

    async def track(self, track_id: str) -> StandardTrackItem:
        data = await self._call(self.client.track, track_id)
        return StandardTrackItem.from_playable(data)
