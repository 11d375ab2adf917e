"""
Playback transports for VBus Recording Sync.

Two ways to pull recorded bytes for a time window from a DLx:

- RawStrategy downloads the daily /log/ files one after another
- ApiStrategy asks the device's download API to window and thin the data
  and streams back one payload

Both stream with aiohttp into a pipeline object that has a feed(bytes) method.
"""

import asyncio
import logging
import math
import ssl
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

import aiohttp
import certifi

from ..config import DeviceConfig
from ..core.constants import DOWNLOAD_API_PATH
from ..core.errors import TransportError
from ..core.formatting import format_api_date, format_size
from .client import DLxClient

logger = logging.getLogger(__name__)


def open_session(config: DeviceConfig) -> aiohttp.ClientSession:
    """Create the HTTP session used for one sync job."""
    ssl_context = ssl.create_default_context(cafile=certifi.where())
    connector = aiohttp.TCPConnector(limit=1, ssl=ssl_context)
    timeout = aiohttp.ClientTimeout(connect=10, sock_read=config.timeout)
    return aiohttp.ClientSession(timeout=timeout, connector=connector)


def sieve_interval(interval_ms: float) -> int:
    """Seconds between samples requested from the download API (at least 1)."""
    return max(1, int(math.floor(interval_ms / 1000 + 0.5)))


class PlaybackStrategy(ABC):
    """Pulls the bytes of one time window from the device into a pipeline."""

    name = ""

    def __init__(self, client: DLxClient):
        self.client = client
        self.config = client.config

    @property
    def basic_auth(self) -> aiohttp.BasicAuth:
        return aiohttp.BasicAuth(self.config.username, self.config.password)

    @abstractmethod
    async def play(
        self,
        session: aiohttp.ClientSession,
        pipeline,
        min_timestamp: datetime,
        max_timestamp: datetime,
        interval: float,
    ) -> int:
        """
        Stream the window [min_timestamp, max_timestamp] into pipeline.

        Returns:
            Number of bytes fed to the pipeline

        Raises:
            TransportError: On connection failure, timeout or non-2xx status
        """

    async def download_to_pipeline(
        self,
        session: aiohttp.ClientSession,
        url: str,
        pipeline,
        params: Optional[dict] = None,
    ) -> int:
        """Stream one HTTP response body into the pipeline."""
        downloaded_bytes = 0
        try:
            async with session.get(url, params=params, auth=self.basic_auth) as response:
                response.raise_for_status()
                async for chunk in response.content.iter_chunked(self.config.chunk_size):
                    if chunk:
                        pipeline.feed(chunk)
                        downloaded_bytes += len(chunk)
        except aiohttp.ClientResponseError as e:
            raise TransportError(f"HTTP {e.status} for GET {url}", e, status=e.status, url=url) from e
        except asyncio.TimeoutError as e:
            raise TransportError(f"Timeout for GET {url}", e, url=url) from e
        except aiohttp.ClientError as e:
            raise TransportError(f"Request failed for GET {url}: {e}", e, url=url) from e

        logger.debug("Downloaded %s from %s", format_size(downloaded_bytes), url)
        return downloaded_bytes


class RawStrategy(PlaybackStrategy):
    """Download the daily recording files strictly one at a time, oldest first."""

    name = "raw"

    async def play(self, session, pipeline, min_timestamp, max_timestamp, interval) -> int:
        filenames = await asyncio.to_thread(
            self.client.get_recording_filenames_in_range, min_timestamp, max_timestamp
        )
        logger.info("Downloading %d recording(s)", len(filenames))

        total = 0
        for filename in filenames:
            total += await self.download_to_pipeline(session, self.client.url_for(filename), pipeline)
        return total


class ApiStrategy(PlaybackStrategy):
    """Let the device window and thin the data and stream back one payload."""

    name = "api"

    def build_params(self, min_timestamp: datetime, max_timestamp: datetime, interval: float) -> dict:
        return {
            "sessionAuthUsername": self.config.username,
            "sessionAuthPassword": self.config.password,
            "source": "log",
            "inputType": "packets",
            "outputType": "vbus",
            "sieveInterval": str(sieve_interval(interval)),
            "startDate": format_api_date(min_timestamp),
            "endDate": format_api_date(max_timestamp),
            "dataLanguage": "en",
        }

    async def play(self, session, pipeline, min_timestamp, max_timestamp, interval) -> int:
        params = self.build_params(min_timestamp, max_timestamp, interval)
        logger.info("Requesting %s to %s from download API", params["startDate"], params["endDate"])
        return await self.download_to_pipeline(
            session, self.client.url_for(DOWNLOAD_API_PATH), pipeline, params=params
        )


def get_strategy(client: DLxClient, api_access: bool) -> PlaybackStrategy:
    """Select the transport for a job."""
    if api_access:
        return ApiStrategy(client)
    return RawStrategy(client)
