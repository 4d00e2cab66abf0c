"""
Client-side data access for SoundLink frontends.

``SoundLinkClient`` wraps the HTTP API. Home-page data (songs, movie albums,
artists and a trending pick) goes through a ``HomeFeedCache`` so repeated
loads inside the freshness window cost no network round-trips.

The cache is never invalidated by mutations made through the client; callers
that need fresh data after a write call ``cache.invalidate()``.
"""

import logging
import random
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional

import requests

from config import settings

logger = logging.getLogger(__name__)

TRENDING_SIZE = 10

# cache slot -> (path, query params, response key)
HOME_SOURCES = {
    "songs": ("/api/song/list", {"all": "true"}, "songs"),
    "movie_albums": ("/api/moviealbum/list", None, "movie_albums"),
    "artists": ("/api/artist/list", None, "artists"),
}


class SoundLinkAPIError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class HomeFeed:
    songs: List[Dict[str, Any]] = field(default_factory=list)
    movie_albums: List[Dict[str, Any]] = field(default_factory=list)
    artists: List[Dict[str, Any]] = field(default_factory=list)
    trending: List[Dict[str, Any]] = field(default_factory=list)
    last_fetch: Optional[float] = None


class HomeFeedCache:
    """
    Holds the last home-page data set and when it was fetched.

    The lock only protects the slots. Two fetches that both find the cache
    stale will both go to the network; whichever stores last wins.
    """

    def __init__(self, ttl: float = settings.HOME_CACHE_TTL, clock: Callable[[], float] = time.time):
        self.ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._feed = HomeFeed()

    def is_fresh(self) -> bool:
        with self._lock:
            return self._is_fresh()

    def _is_fresh(self) -> bool:
        last = self._feed.last_fetch
        return last is not None and (self._clock() - last) < self.ttl

    def get(self) -> Optional[HomeFeed]:
        """Return the cached feed while fresh, otherwise None."""
        with self._lock:
            if not self._is_fresh():
                return None
            return self._copy()

    def snapshot(self) -> HomeFeed:
        # Whatever is held, fresh or not
        with self._lock:
            return self._copy()

    def _copy(self) -> HomeFeed:
        # Callers get their own lists; the held slots are never handed out
        f = self._feed
        return replace(
            f,
            songs=list(f.songs),
            movie_albums=list(f.movie_albums),
            artists=list(f.artists),
            trending=list(f.trending),
        )

    def set(self, **slots: List[Dict[str, Any]]) -> None:
        with self._lock:
            for name, value in slots.items():
                if name not in ("songs", "movie_albums", "artists", "trending"):
                    raise ValueError(f"Unknown cache slot: {name}")
                setattr(self._feed, name, list(value))
            self._feed.last_fetch = self._clock()

    def invalidate(self) -> None:
        with self._lock:
            self._feed.last_fetch = None


def pick_trending(songs: List[Dict[str, Any]], size: int = TRENDING_SIZE) -> List[Dict[str, Any]]:
    # Placeholder: a random sample, not weighted by plays
    shuffled = list(songs)
    random.shuffle(shuffled)
    return shuffled[:size]


class SoundLinkClient:
    def __init__(
        self,
        base_url: str = settings.API_URL,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        cache: Optional[HomeFeedCache] = None,
        timeout: float = 10,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.session = session or requests.Session()
        self.cache = cache if cache is not None else HomeFeedCache()
        self.timeout = timeout

    # ---------- transport ----------

    def _headers(self) -> Dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    def _request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            resp = self.session.request(
                method,
                f"{self.base_url}{path}",
                params=params,
                json=json,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise SoundLinkAPIError(f"Request to {path} failed: {e}") from e
        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        if resp.status_code >= 400 or not data.get("success", False):
            raise SoundLinkAPIError(data.get("message") or f"HTTP {resp.status_code}", resp.status_code)
        return data

    # ---------- home feed ----------

    def _fetch_source(self, name: str) -> Optional[List[Dict[str, Any]]]:
        path, params, key = HOME_SOURCES[name]
        try:
            return self._request("GET", path, params=params).get(key) or []
        except SoundLinkAPIError as e:
            logger.warning("Home feed source %s failed: %s", name, e.message)
            return None

    def fetch_home_data(self) -> HomeFeed:
        """
        Return home-page data, from the cache when fresh.

        Otherwise the three sources are requested in parallel. A failing
        source keeps its previously cached value; the fetch time is only
        recorded when at least one source succeeded.
        """
        cached = self.cache.get()
        if cached is not None:
            return cached

        with ThreadPoolExecutor(max_workers=len(HOME_SOURCES)) as pool:
            futures = {name: pool.submit(self._fetch_source, name) for name in HOME_SOURCES}
            results = {name: f.result() for name, f in futures.items()}

        fetched = {name: value for name, value in results.items() if value is not None}
        if not fetched:
            return self.cache.snapshot()
        if "songs" in fetched:
            fetched["trending"] = pick_trending(fetched["songs"])
        self.cache.set(**fetched)
        return self.cache.snapshot()

    # ---------- API operations ----------

    def login(self, email: str, password: str) -> Dict[str, Any]:
        data = self._request("POST", "/api/auth/login", json={"email": email, "password": password})
        self.token = data["token"]
        return data["user"]

    def search(self, query: str) -> Dict[str, List[Dict[str, Any]]]:
        data = self._request("GET", "/api/search", params={"q": query})
        return {key: data.get(key, []) for key in ("songs", "albums", "users", "artists")}

    def create_playlist(self, name: str) -> Dict[str, Any]:
        return self._request("POST", "/api/playlist/create", json={"name": name})["playlist"]

    def my_playlists(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/api/playlist/my")["playlists"]

    def get_playlist(self, playlist_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/api/playlist/{playlist_id}")["playlist"]

    def add_song_to_playlist(self, playlist_id: str, song_id: str) -> Dict[str, Any]:
        body = {"playlistId": playlist_id, "songId": song_id}
        return self._request("POST", "/api/playlist/add-song", json=body)["playlist"]

    def remove_song_from_playlist(self, playlist_id: str, song_id: str) -> Dict[str, Any]:
        body = {"playlistId": playlist_id, "songId": song_id}
        return self._request("POST", "/api/playlist/remove-song", json=body)["playlist"]

    def delete_playlist(self, playlist_id: str) -> str:
        return self._request("POST", "/api/playlist/delete", json={"playlistId": playlist_id})["message"]

    def record_play(self, song_id: str) -> str:
        return self._request("POST", "/api/play/add", json={"song": song_id})["message"]

    def like(self, song_id: Optional[str] = None, album_id: Optional[str] = None) -> Dict[str, Any]:
        return self._request("POST", "/api/favorite/like", json={"songId": song_id, "albumId": album_id})["favorite"]

    def unlike(self, song_id: Optional[str] = None, album_id: Optional[str] = None) -> str:
        return self._request("POST", "/api/favorite/unlike", json={"songId": song_id, "albumId": album_id})["message"]

    def favorites(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/api/favorite/my")["favorites"]
