"""
Unit tests for ResponseStreamer.
"""

import gzip
from pathlib import Path

import pytest

from conftest import BINARY_DATA, RecordingConnection, parse_multipart
from fileserver.core.filesystem import FileSystem
from fileserver.core.streamer import ResponseStreamer
from fileserver.handlers.compression import ContentEncoder
from fileserver.http.range_parser import ByteRange
from fileserver.http.response import BodyStrategy, Headers, ResponseIntent
from fileserver.http.status_codes import HTTPStatus


SIZE = len(BINARY_DATA)


@pytest.fixture
def streamer() -> ResponseStreamer:
    # Small chunks so every window spans several reads
    return ResponseStreamer(FileSystem(chunk_size=100), ContentEncoder().compressors())


@pytest.fixture
def data_file(public_root: Path) -> Path:
    return public_root / "data.bin"


def full_intent(**kwargs) -> ResponseIntent:
    headers = Headers({"Content-Length": SIZE})
    return ResponseIntent(HTTPStatus.OK, headers, BodyStrategy.FULL, size=SIZE, **kwargs)


def multipart_intent(*ranges: ByteRange) -> ResponseIntent:
    return ResponseIntent(
        HTTPStatus.PARTIAL_CONTENT,
        Headers({
            "Content-Type": "multipart/byteranges; boundary=b0undary",
            "Transfer-Encoding": "chunked",
        }),
        BodyStrategy.MULTIPART,
        ranges=ranges,
        boundary="b0undary",
        part_type="application/octet-stream",
        size=SIZE,
    )


class TestStrategies:

    @pytest.mark.asyncio
    async def test_full_identity(self, streamer, data_file, recording_connection):
        outcome = await streamer.stream(recording_connection, full_intent(), data_file)

        assert outcome.completed
        assert recording_connection.status == 200
        assert bytes(recording_connection.body) == BINARY_DATA
        assert recording_connection.chunks == []

    @pytest.mark.asyncio
    async def test_full_gzip(self, streamer, data_file, recording_connection):
        intent = ResponseIntent(
            HTTPStatus.OK,
            Headers({"Content-Encoding": "gzip", "Transfer-Encoding": "chunked"}),
            BodyStrategy.FULL,
            encoding="gzip",
            size=SIZE,
        )

        outcome = await streamer.stream(recording_connection, intent, data_file)

        assert outcome.completed
        assert recording_connection.chunks_ended
        assert gzip.decompress(bytes(recording_connection.body)) == BINARY_DATA

    @pytest.mark.asyncio
    async def test_single_range(self, streamer, data_file, recording_connection):
        intent = ResponseIntent(
            HTTPStatus.PARTIAL_CONTENT,
            Headers({"Content-Range": f"bytes 250-649/{SIZE}", "Content-Length": 400}),
            BodyStrategy.SINGLE_RANGE,
            ranges=(ByteRange(250, 649),),
            size=SIZE,
        )

        outcome = await streamer.stream(recording_connection, intent, data_file)

        assert outcome.completed
        assert bytes(recording_connection.body) == BINARY_DATA[250:650]

    @pytest.mark.asyncio
    async def test_multipart(self, streamer, data_file, recording_connection):
        ranges = (ByteRange(0, 9), ByteRange(500, 749), ByteRange(1020, 1023))

        outcome = await streamer.stream(recording_connection, multipart_intent(*ranges), data_file)

        assert outcome.completed
        assert recording_connection.chunks_ended
        parts = parse_multipart(bytes(recording_connection.body), "b0undary")
        assert len(parts) == 3
        for (headers, data), byte_range in zip(parts, ranges):
            assert headers["content-type"] == "application/octet-stream"
            assert headers["content-range"] == byte_range.content_range(SIZE)
            assert data == BINARY_DATA[byte_range.start:byte_range.end + 1]

    @pytest.mark.asyncio
    async def test_multipart_framing(self, streamer, data_file, recording_connection):
        intent = multipart_intent(ByteRange(0, 1), ByteRange(4, 4))

        await streamer.stream(recording_connection, intent, data_file)

        assert bytes(recording_connection.body) == (
            b"--b0undary\r\n"
            b"Content-Type: application/octet-stream\r\n"
            b"Content-Range: bytes 0-1/1024\r\n"
            b"\r\n"
            b"\x00\x01"
            b"\r\n--b0undary\r\n"
            b"Content-Type: application/octet-stream\r\n"
            b"Content-Range: bytes 4-4/1024\r\n"
            b"\r\n"
            b"\x04"
            b"\r\n--b0undary--\r\n"
        )

    @pytest.mark.asyncio
    async def test_not_modified_is_head_only(self, streamer, recording_connection):
        intent = ResponseIntent(HTTPStatus.NOT_MODIFIED, Headers({"ETag": '"x"'}), BodyStrategy.NONE)

        outcome = await streamer.stream(recording_connection, intent)

        assert outcome.completed
        assert recording_connection.status == 304
        assert recording_connection.body == b""

    @pytest.mark.asyncio
    async def test_error_json_body(self, streamer, recording_connection):
        intent = ResponseIntent(
            HTTPStatus.NOT_FOUND, Headers({"Content-Length": 2}), BodyStrategy.ERROR_JSON, body=b"{}"
        )

        await streamer.stream(recording_connection, intent)

        assert bytes(recording_connection.body) == b"{}"

    @pytest.mark.asyncio
    async def test_head_sends_no_body(self, streamer, data_file, recording_connection):
        outcome = await streamer.stream(
            recording_connection, full_intent(), data_file, send_body=False
        )

        assert outcome.completed
        assert recording_connection.status == 200
        assert recording_connection.headers["Content-Length"] == str(SIZE)
        assert recording_connection.body == b""


class TestFailures:

    @pytest.mark.asyncio
    async def test_missing_file_before_headers(self, streamer, public_root, recording_connection):
        outcome = await streamer.stream(
            recording_connection, full_intent(), public_root / "vanished.bin"
        )

        assert not outcome.completed
        assert isinstance(outcome.error, FileNotFoundError)
        assert recording_connection.headers_sent is False

    @pytest.mark.asyncio
    async def test_client_disconnect_mid_body(self, streamer, data_file):
        connection = RecordingConnection(fail_after_writes=2)

        outcome = await streamer.stream(connection, full_intent(), data_file)

        assert not outcome.completed
        assert isinstance(outcome.error, ConnectionResetError)
        assert connection.headers_sent is True
        assert len(connection.body) == 200

    @pytest.mark.asyncio
    async def test_file_shrank_after_stat(self, streamer, data_file, recording_connection):
        data_file.write_bytes(BINARY_DATA[:300])

        outcome = await streamer.stream(recording_connection, full_intent(), data_file)

        assert not outcome.completed
        assert isinstance(outcome.error, EOFError)
        assert recording_connection.headers_sent is True

    @pytest.mark.asyncio
    async def test_file_grew_after_stat(self, streamer, data_file, recording_connection):
        data_file.write_bytes(BINARY_DATA + b"extra")

        outcome = await streamer.stream(recording_connection, full_intent(), data_file)

        assert outcome.completed
        assert bytes(recording_connection.body) == BINARY_DATA

    @pytest.mark.asyncio
    async def test_multipart_stops_after_failure(self, streamer, data_file):
        connection = RecordingConnection(fail_after_writes=1)
        intent = multipart_intent(ByteRange(0, 9), ByteRange(20, 29))

        outcome = await streamer.stream(connection, intent, data_file)

        assert not outcome.completed
        assert connection.writes == 2
        assert b"--b0undary--" not in connection.body
