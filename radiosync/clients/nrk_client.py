import logging
import httpx
from typing import List, Optional
from ..config import settings
from ..errors import ConfigError
from ..models import UpstreamItem, Window

logger = logging.getLogger(__name__)

RADIO_IDS = [
    "p1pluss",
    "p2",
    "p3",
    "p13",
    "mp3",
    "radio_super",
    "klassisk",
    "jazz",
    "folkemusikk",
    "urort",
    "radioresepsjonen",
    "national_rap_show",
    "pyro",
]


class NRKClient:
    def __init__(self, name: str, radio_id: str, base_url: Optional[str] = None,
                 client: Optional[httpx.AsyncClient] = None):
        if radio_id not in RADIO_IDS:
            raise ConfigError(f"{radio_id} is not a valid radio ID")
        self.name = name
        self.radio_id = radio_id
        self.base_url = (base_url or settings.NRK_BASE_URL).rstrip('/')
        self.client = client or httpx.AsyncClient(timeout=settings.REQUEST_TIMEOUT_SECONDS)

    def radio_url(self) -> str:
        return f"{self.base_url}/channels/{self.radio_id}/liveelements/now"

    async def fetch_window(self) -> Window:
        """
        Returns the previous/current/next live elements of the channel.
        HTTP and decoding errors propagate so the caller can retry.
        """
        resp = await self.client.get(self.radio_url())
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, list):
            raise ValueError(f"Unexpected live elements payload: {type(data).__name__}")

        items: List[UpstreamItem] = []
        for element in data:
            items.append(UpstreamItem(
                title=element.get("title") or "",
                artist=element.get("description") or "",
                type=element.get("type") or "",
                start_time=element.get("startTime") or "",
                duration=element.get("duration") or "",
            ))
        logger.debug(f"Fetched {len(items)} live elements for {self.radio_id}")
        return Window(items=items)

    async def close(self):
        await self.client.aclose()
