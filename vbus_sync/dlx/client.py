"""
DLx datalogger client for VBus Recording Sync.

Handles listing the recordings stored on the device.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

import requests

from ..config import DeviceConfig
from ..core.constants import DAY_MS, LOG_PATH
from ..core.errors import TransportError
from ..core.ranges import RangeSet, normalize
from .scanner import RecordingFilenameScanner
from .utils import RecordingDescriptor, filter_filenames_in_range, parse_recording_filename

logger = logging.getLogger(__name__)


@dataclass
class RecordingInfo:
    """HTTP metadata of one recording file."""
    filename: str
    size: int = 0
    etag: Optional[str] = None


class DLxClient:
    """
    DLx web interface client.

    Handles listing recordings and reading their metadata.
    Does NOT handle playback (see the strategies in transports.py for that).
    """

    def __init__(self, config: DeviceConfig):
        """
        Initialize the DLx client.

        Args:
            config: Device configuration
        """
        self.config = config
        self._requests = 0

    @property
    def requests_made(self) -> int:
        """Total HTTP requests made by this client."""
        return self._requests

    def url_for(self, path: str) -> str:
        return self.config.url_prefix + path

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        """Make a single authenticated request, translating failures to TransportError."""
        kwargs.setdefault("timeout", self.config.timeout)
        kwargs.setdefault("auth", self.config.auth)

        try:
            response = requests.request(method, url, **kwargs)
            self._requests += 1
            response.raise_for_status()
            return response
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise TransportError(f"HTTP {status} for {method} {url}", e, status=status, url=url) from e
        except requests.exceptions.Timeout as e:
            raise TransportError(f"Timeout for {method} {url}", e, url=url) from e
        except requests.exceptions.RequestException as e:
            raise TransportError(f"Request failed for {method} {url}: {e}", e, url=url) from e

    def get_recording_filenames(self) -> List[str]:
        """
        List all recordings on the device.

        The listing body is streamed and scanned chunk by chunk.

        Returns:
            Sorted list of filenames like "/log/20200101_packets.vbus"
        """
        url = self.url_for(LOG_PATH)
        scanner = RecordingFilenameScanner(prefix=LOG_PATH)

        response = self._request("GET", url, stream=True)
        try:
            filenames = list(scanner.scan(response.iter_content(chunk_size=self.config.chunk_size)))
        except requests.exceptions.RequestException as e:
            raise TransportError(f"Listing interrupted for {url}: {e}", e, url=url) from e
        finally:
            response.close()

        logger.debug("Found %d recordings at %s", len(filenames), url)
        return sorted(filenames)

    def get_recording_filenames_in_range(self, min_timestamp: datetime, max_timestamp: datetime) -> List[str]:
        """List recordings whose day lies within [min_timestamp, max_timestamp]."""
        return filter_filenames_in_range(self.get_recording_filenames(), min_timestamp, max_timestamp)

    def get_recording_descriptors(self) -> List[RecordingDescriptor]:
        """List recordings with the UTC day each one covers."""
        return [parse_recording_filename(f) for f in self.get_recording_filenames()]

    def get_lazy_recording_ranges(self) -> RangeSet:
        """
        Estimate the time covered by recordings on the device.

        Consecutive days fold into one range. Only file presence is checked,
        so a short or corrupt file still counts as a full day.
        """
        descriptors = self.get_recording_descriptors()
        ranges = normalize((d.time_range for d in descriptors), DAY_MS)
        logger.debug("Lazy recording ranges: %s", ranges)
        return ranges

    def get_recording_info(self, filename: str) -> RecordingInfo:
        """
        Get size and ETag of a recording with a HEAD request.

        Args:
            filename: Recording path like "/log/20200101_packets.vbus"
        """
        response = self._request("HEAD", self.url_for(filename))
        try:
            size = int(response.headers.get("content-length", 0))
        except ValueError:
            size = 0
        return RecordingInfo(
            filename=filename,
            size=size,
            etag=response.headers.get("etag"),
        )
