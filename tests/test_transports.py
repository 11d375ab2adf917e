"""
Tests for the playback transports.

Uses a fake aiohttp session; tests cover the raw per-file strategy, the
download API strategy and error translation.
"""

import asyncio
from unittest.mock import patch

import aiohttp
import pytest

from vbus_sync.core.errors import TransportError
from vbus_sync.dlx.client import DLxClient
from vbus_sync.dlx.transports import ApiStrategy, RawStrategy, get_strategy, sieve_interval

from fakes import FakeResponse, FakeSession, day


class FeedRecorder:
    def __init__(self):
        self.data = b""

    def feed(self, data: bytes):
        self.data += data


@pytest.fixture
def client(device_config):
    return DLxClient(device_config)


class TestRawStrategy:
    """Tests for RawStrategy."""

    FILES = ["/log/20200101_packets.vbus", "/log/20200102_packets.vbus", "/log/20200103_packets.vbus"]

    def test_downloads_files_in_order(self, client):
        session = FakeSession({
            "http://dlx.local/log/20200101_packets.vbus": FakeResponse(b"A" * 40),
            "http://dlx.local/log/20200102_packets.vbus": FakeResponse(b"B" * 10),
            "http://dlx.local/log/20200103_packets.vbus": FakeResponse(b"C" * 5),
        })
        pipeline = FeedRecorder()

        with patch.object(client, "get_recording_filenames_in_range", return_value=self.FILES) as listing:
            total = asyncio.run(RawStrategy(client).play(session, pipeline, day(1), day(3), 60000))

        listing.assert_called_once_with(day(1), day(3))
        assert total == 55
        assert pipeline.data == b"A" * 40 + b"B" * 10 + b"C" * 5
        assert [c["url"] for c in session.calls] == [
            "http://dlx.local" + f for f in self.FILES
        ]
        assert session.calls[0]["auth"] == aiohttp.BasicAuth("admin", "secret")

    def test_failure_stops_remaining_files(self, client):
        session = FakeSession({
            "http://dlx.local/log/20200101_packets.vbus": FakeResponse(b"A"),
            "http://dlx.local/log/20200102_packets.vbus": FakeResponse(status=404),
            "http://dlx.local/log/20200103_packets.vbus": FakeResponse(b"C"),
        })
        pipeline = FeedRecorder()

        with patch.object(client, "get_recording_filenames_in_range", return_value=self.FILES):
            with pytest.raises(TransportError) as exc_info:
                asyncio.run(RawStrategy(client).play(session, pipeline, day(1), day(3), 60000))

        assert exc_info.value.status == 404
        assert len(session.calls) == 2
        assert pipeline.data == b"A"

    def test_no_files_in_window(self, client):
        session = FakeSession({})
        with patch.object(client, "get_recording_filenames_in_range", return_value=[]):
            total = asyncio.run(RawStrategy(client).play(session, FeedRecorder(), day(1), day(3), 60000))
        assert total == 0
        assert session.calls == []


class TestApiStrategy:
    """Tests for ApiStrategy."""

    API_URL = "http://dlx.local/dlx/download/download"

    def test_single_request_with_query(self, client):
        session = FakeSession({self.API_URL: FakeResponse(b"payload")})
        pipeline = FeedRecorder()

        total = asyncio.run(ApiStrategy(client).play(session, pipeline, day(2), day(3), 300000))

        assert total == 7
        assert pipeline.data == b"payload"
        assert len(session.calls) == 1
        assert session.calls[0]["params"] == {
            "sessionAuthUsername": "admin",
            "sessionAuthPassword": "secret",
            "source": "log",
            "inputType": "packets",
            "outputType": "vbus",
            "sieveInterval": "300",
            "startDate": "01/02/2020",
            "endDate": "01/03/2020",
            "dataLanguage": "en",
        }

    def test_timeout_is_transport_error(self, client):
        session = FakeSession({self.API_URL: asyncio.TimeoutError()})
        with pytest.raises(TransportError):
            asyncio.run(ApiStrategy(client).play(session, FeedRecorder(), day(2), day(3), 300000))

    def test_connection_error_is_transport_error(self, client):
        session = FakeSession({self.API_URL: aiohttp.ClientConnectionError("refused")})
        with pytest.raises(TransportError) as exc_info:
            asyncio.run(ApiStrategy(client).play(session, FeedRecorder(), day(2), day(3), 300000))
        assert isinstance(exc_info.value.cause, aiohttp.ClientConnectionError)

    def test_server_error_is_transport_error(self, client):
        session = FakeSession({self.API_URL: FakeResponse(status=500)})
        with pytest.raises(TransportError) as exc_info:
            asyncio.run(ApiStrategy(client).play(session, FeedRecorder(), day(2), day(3), 300000))
        assert exc_info.value.status == 500


class TestSieveInterval:
    """Tests for sieve_interval()."""

    @pytest.mark.parametrize("interval_ms, expected", [
        (0, 1),
        (400, 1),
        (1000, 1),
        (1499, 1),
        (1500, 2),
        (2500, 3),
        (300000, 300),
    ])
    def test_rounding(self, interval_ms, expected):
        assert sieve_interval(interval_ms) == expected


class TestGetStrategy:
    def test_selects_by_api_access(self, client):
        assert isinstance(get_strategy(client, api_access=True), ApiStrategy)
        assert isinstance(get_strategy(client, api_access=False), RawStrategy)
