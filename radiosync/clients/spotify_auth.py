import base64
import logging
import secrets
import httpx
from typing import Optional
from urllib.parse import urlencode
from ..config import settings
from ..errors import SpotifyError
from .spotify_client import AuthInfo, Token, TokenFile

logger = logging.getLogger(__name__)

SCOPE = "playlist-modify-public playlist-modify-private playlist-read-private"
STATE_KEY = "spotify_auth_state"


def random_state(size: int = 32) -> str:
    return base64.urlsafe_b64encode(secrets.token_bytes(size)).decode("ascii")


class SpotifyAuth:
    """Authorization code flow that produces the token file used by SpotifyClient."""

    def __init__(self, client_id: str, client_secret: str, token_path: str, listen: str,
                 accounts_url: Optional[str] = None, client: Optional[httpx.AsyncClient] = None):
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_path = token_path
        self.listen = listen
        self.accounts_url = (accounts_url or settings.SPOTIFY_ACCOUNTS_URL).rstrip('/')
        self.client = client or httpx.AsyncClient(timeout=settings.REQUEST_TIMEOUT_SECONDS)

    @property
    def host(self) -> str:
        host, _, _ = self.listen.rpartition(":")
        return host or "0.0.0.0"

    @property
    def port(self) -> int:
        return int(self.listen.rpartition(":")[2])

    def listen_url(self) -> str:
        if self.listen.startswith(":"):
            return "http://localhost" + self.listen
        return "http://" + self.listen

    def callback_url(self) -> str:
        return self.listen_url() + "/callback"

    def authorize_url(self, state: str) -> str:
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "scope": SCOPE,
            "redirect_uri": self.callback_url(),
            "state": state,
        }
        return f"{self.accounts_url}/authorize?{urlencode(params)}"

    async def request_token(self, code: str) -> TokenFile:
        resp = await self.client.post(
            f"{self.accounts_url}/api/token",
            data={
                "code": code,
                "redirect_uri": self.callback_url(),
                "grant_type": "authorization_code",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
        )
        if resp.status_code // 100 != 2:
            raise SpotifyError(f"Token request failed ({resp.status_code}): {resp.text}", resp.status_code)
        return TokenFile(
            token=Token(**resp.json()),
            auth=AuthInfo(client_id=self.client_id, client_secret=self.client_secret),
        )

    async def complete(self, code: str) -> TokenFile:
        token_file = await self.request_token(code)
        token_file.save(self.token_path)
        logger.info(f"Wrote token file to {self.token_path}")
        return token_file
