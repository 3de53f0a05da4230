import json
import logging
import os
import httpx
from pathlib import Path
from pydantic import BaseModel
from typing import Any, Dict, List, Optional
from ..config import settings
from ..errors import SpotifyError
from ..models import DownstreamTrack, Playlist

logger = logging.getLogger(__name__)

PAGE_SIZE = 100


class Token(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: int = 3600
    refresh_token: Optional[str] = None


class AuthInfo(BaseModel):
    client_id: str
    client_secret: str


class Profile(BaseModel):
    id: str
    uri: Optional[str] = None
    display_name: Optional[str] = None


class TokenFile(BaseModel):
    token: Token
    auth: AuthInfo
    profile: Optional[Profile] = None

    @classmethod
    def load(cls, path: str) -> "TokenFile":
        with open(path, 'r') as f:
            return cls(**json.load(f))

    def save(self, path: str):
        tmp_path = Path(path).with_suffix('.tmp')
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, 'w') as f:
            json.dump(self.model_dump(), f, indent=2)
        os.replace(tmp_path, path)


def parse_track(data: Dict[str, Any]) -> Optional[DownstreamTrack]:
    # Local files and removed tracks come back without an id
    if not data or not data.get("id"):
        return None
    return DownstreamTrack(id=data["id"], name=data.get("name", ""), uri=data.get("uri", ""))


class SpotifyClient:
    """
    Spotify Web API client authenticated from a token file written by
    `radiosync auth`. Expired access tokens are refreshed transparently.
    """

    def __init__(self, token_path: str, client: Optional[httpx.AsyncClient] = None,
                 api_url: Optional[str] = None, accounts_url: Optional[str] = None):
        self.token_path = token_path
        self.token_file = TokenFile.load(token_path)
        self.api_url = (api_url or settings.SPOTIFY_API_URL).rstrip('/')
        self.accounts_url = (accounts_url or settings.SPOTIFY_ACCOUNTS_URL).rstrip('/')
        self.client = client or httpx.AsyncClient(timeout=settings.REQUEST_TIMEOUT_SECONDS)

    async def initialize(self):
        if self.token_file.profile is None:
            self.token_file.profile = await self.current_user()
            self.token_file.save(self.token_path)
        logger.info(f"Connected to Spotify as user {self.token_file.profile.id}")

    @property
    def user_id(self) -> str:
        if self.token_file.profile is None:
            raise SpotifyError("Spotify profile not loaded. Call initialize() first.")
        return self.token_file.profile.id

    def _auth_header(self) -> Dict[str, str]:
        token = self.token_file.token
        return {"Authorization": f"{token.token_type} {token.access_token}"}

    async def refresh_token(self):
        token = self.token_file.token
        if not token.refresh_token:
            raise SpotifyError("Access token expired and no refresh token is available", 401)
        auth = self.token_file.auth
        resp = await self.client.post(
            f"{self.accounts_url}/api/token",
            data={"grant_type": "refresh_token", "refresh_token": token.refresh_token},
            auth=(auth.client_id, auth.client_secret),
        )
        if resp.status_code // 100 != 2:
            raise SpotifyError(f"Token refresh failed ({resp.status_code}): {resp.text}", resp.status_code)
        data = resp.json()
        token.access_token = data["access_token"]
        token.token_type = data.get("token_type", token.token_type)
        token.expires_in = data.get("expires_in", token.expires_in)
        if data.get("refresh_token"):
            token.refresh_token = data["refresh_token"]
        self.token_file.save(self.token_path)
        logger.info("Refreshed Spotify access token")

    async def request(self, method: str, url: str, **kwargs) -> Any:
        if not url.startswith("http"):
            url = self.api_url + url
        resp = await self.client.request(method, url, headers=self._auth_header(), **kwargs)
        if resp.status_code == 401:
            await self.refresh_token()
            resp = await self.client.request(method, url, headers=self._auth_header(), **kwargs)
        if resp.status_code // 100 != 2:
            raise SpotifyError(f"request failed ({resp.status_code}): {resp.text}", resp.status_code)
        if not resp.content:
            return None
        return resp.json()

    async def current_user(self) -> Profile:
        data = await self.request("GET", "/me")
        return Profile(**data)

    async def playlists(self) -> List[Dict[str, Any]]:
        results = []
        url: Optional[str] = "/me/playlists?limit=50"
        while url:
            data = await self.request("GET", url)
            results.extend(data.get("items", []))
            url = data.get("next")
        return results

    async def playlist_by_id(self, playlist_id: str) -> Playlist:
        data = await self.request("GET", f"/playlists/{playlist_id}")
        tracks_page = data.get("tracks") or {}
        tracks = [t for t in (parse_track(i.get("track")) for i in tracks_page.get("items", [])) if t]
        return Playlist(
            id=data["id"],
            name=data["name"],
            total=tracks_page.get("total", len(tracks)),
            tracks=tracks,
        )

    async def playlist(self, name: str) -> Optional[Playlist]:
        for item in await self.playlists():
            if item.get("name") == name:
                return await self.playlist_by_id(item["id"])
        return None

    async def get_or_create_playlist(self, name: str) -> Playlist:
        existing = await self.playlist(name)
        if existing:
            return existing
        data = await self.request(
            "POST", f"/users/{self.user_id}/playlists", json={"name": name, "public": False}
        )
        logger.info(f"Created playlist {name} ({data['id']})")
        return Playlist(id=data["id"], name=data["name"], total=0, tracks=[])

    async def recent_tracks(self, playlist: Playlist, n: int) -> List[DownstreamTrack]:
        """The last n tracks of the playlist, oldest first."""
        # A single page already holds everything
        if playlist.total <= len(playlist.tracks):
            return playlist.tracks[-n:] if n > 0 else []

        offset = max(playlist.total - n, 0)
        tracks: List[DownstreamTrack] = []
        url: Optional[str] = f"/playlists/{playlist.id}/tracks?offset={offset}&limit={PAGE_SIZE}"
        while url:
            data = await self.request("GET", url)
            for item in data.get("items", []):
                track = parse_track(item.get("track"))
                if track:
                    tracks.append(track)
            url = data.get("next")
        return tracks

    async def search(self, query: str, types: str = "track", limit: int = 1) -> List[DownstreamTrack]:
        data = await self.request("GET", "/search", params={"q": query, "type": types, "limit": limit})
        items = (data.get("tracks") or {}).get("items", [])
        return [t for t in (parse_track(i) for i in items) if t]

    async def search_artist_track(self, artist: str, title: str) -> List[DownstreamTrack]:
        return await self.search(f"artist:{artist} track:{title}", "track", 1)

    async def add_tracks(self, playlist: Playlist, tracks: List[DownstreamTrack]):
        await self.request("POST", f"/playlists/{playlist.id}/tracks", json={"uris": [t.uri for t in tracks]})

    async def add_track(self, playlist: Playlist, track: DownstreamTrack):
        await self.add_tracks(playlist, [track])

    async def delete_tracks(self, playlist: Playlist, tracks: List[DownstreamTrack]):
        await self.request(
            "DELETE", f"/playlists/{playlist.id}/tracks", json={"tracks": [{"uri": t.uri} for t in tracks]}
        )

    async def delete_track(self, playlist: Playlist, track: DownstreamTrack):
        await self.delete_tracks(playlist, [track])

    async def close(self):
        await self.client.aclose()
