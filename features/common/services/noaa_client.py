import asyncio
import logging
import aiohttp
from typing import Any, Dict, Optional

from features.common.exceptions.tide_exceptions import UpstreamUnavailableError

logger = logging.getLogger(__name__)

class NOAAClient:
    """Thin JSON client for the NOAA CO-OPS APIs.

    Every failure (transport error, timeout, non-2xx status, bad body) is
    reported as ``UpstreamUnavailableError`` so callers can fall back.
    """

    def __init__(self, connect_timeout: float = 15, total_timeout: float = 30):
        self.timeout = aiohttp.ClientTimeout(total=total_timeout, connect=connect_timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    async def _init_session(self) -> aiohttp.ClientSession:
        if not self._session or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self.timeout,
                headers={"Accept": "application/json"}
            )
        return self._session

    async def close(self):
        if self._session:
            await self._session.close()
            self._session = None

    async def get_json(self, url: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """GET ``url`` and decode the JSON body."""
        session = await self._init_session()
        logger.debug(f"GET {url} params={params}")
        try:
            async with session.get(url, params=params) as response:
                if response.status >= 400:
                    body = await response.text()
                    logger.error(f"NOAA request to {url} failed with status {response.status}: {body[:200]}")
                    raise UpstreamUnavailableError(
                        f"NOAA API returned status {response.status}",
                        status=response.status
                    )
                return await response.json(content_type=None)
        except UpstreamUnavailableError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"Error calling NOAA API {url}: {str(e) or type(e).__name__}")
            raise UpstreamUnavailableError(f"Error calling NOAA API: {str(e) or type(e).__name__}") from e
