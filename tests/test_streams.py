import io

import pytest

from bucketkit._streams import ByteStream, as_stream, body_kind, iter_chunks, read_all
from bucketkit.error import ProviderError, StreamReadError

PAYLOAD = b"".join(bytes([i % 251]) * 97 for i in range(300))


async def _push(data: bytes, size: int = 1000):
    for i in range(0, len(data), size):
        yield data[i:i + size]


class AsyncReader:
    """Pull reader with a coroutine read(), like aiofiles or an asyncio stream."""

    def __init__(self, data: bytes):
        self._buffer = io.BytesIO(data)

    async def read(self, size: int = -1) -> bytes:
        return self._buffer.read(size)


class FailingReader:
    def __init__(self):
        self.calls = 0

    def read(self, size: int = -1) -> bytes:
        self.calls += 1
        if self.calls > 1:
            raise OSError("connection reset")
        return b"partial"


def test_body_kind():
    assert body_kind(b"x") == "blob"
    assert body_kind(bytearray(b"x")) == "blob"
    assert body_kind(memoryview(b"x")) == "blob"
    assert body_kind(_push(b"x")) == "push"
    assert body_kind(io.BytesIO(b"x")) == "pull"
    with pytest.raises(TypeError):
        body_kind(42)


@pytest.mark.asyncio
@pytest.mark.parametrize("make_body", [
    lambda: PAYLOAD,
    lambda: memoryview(PAYLOAD),
    lambda: _push(PAYLOAD),
    lambda: _push(PAYLOAD, size=1),
    lambda: io.BytesIO(PAYLOAD),
    lambda: AsyncReader(PAYLOAD),
])
async def test_read_all_is_identical_for_every_shape(make_body):
    data = await read_all(make_body())
    assert data == PAYLOAD
    assert len(data) == len(PAYLOAD)


@pytest.mark.asyncio
async def test_read_all_empty_bodies():
    assert await read_all(b"") == b""
    assert await read_all(io.BytesIO(b"")) == b""
    assert await read_all(_push(b"")) == b""


@pytest.mark.asyncio
async def test_pull_read_error_is_wrapped_not_truncated():
    with pytest.raises(StreamReadError) as excinfo:
        await read_all(FailingReader())
    assert isinstance(excinfo.value, ProviderError)
    assert isinstance(excinfo.value.__cause__, OSError)


@pytest.mark.asyncio
async def test_push_read_error_is_wrapped():
    async def broken():
        yield b"first"
        raise ConnectionResetError("peer went away")

    with pytest.raises(StreamReadError):
        await read_all(broken())


@pytest.mark.asyncio
async def test_iter_chunks_preserves_order():
    chunks = [chunk async for chunk in iter_chunks(io.BytesIO(PAYLOAD), chunk_size=4096)]
    assert all(len(c) <= 4096 for c in chunks)
    assert b"".join(chunks) == PAYLOAD


@pytest.mark.asyncio
async def test_byte_stream_pull_reads():
    stream = as_stream(_push(b"abcdefghij", size=3))
    assert await stream.read(2) == b"ab"
    assert await stream.read(5) == b"cdefg"
    assert await stream.read() == b"hij"
    assert await stream.read() == b""
    assert stream.closed


@pytest.mark.asyncio
async def test_byte_stream_push_iteration_after_partial_read():
    stream = as_stream(io.BytesIO(PAYLOAD))
    head = await stream.read(10)
    rest = b"".join([chunk async for chunk in stream])
    assert head + rest == PAYLOAD


@pytest.mark.asyncio
async def test_byte_stream_from_blob_knows_length():
    stream = as_stream(b"hello")
    assert stream.length == 5
    assert await stream.read() == b"hello"


@pytest.mark.asyncio
async def test_byte_stream_closes_source_once():
    closed = []

    async def on_close():
        closed.append(True)

    stream = ByteStream(_push(b"data"), on_close=on_close)
    assert await read_all(stream) == b"data"
    await stream.aclose()
    assert closed == [True]


@pytest.mark.asyncio
async def test_byte_stream_closed_early_by_context_manager():
    closed = []

    async def on_close():
        closed.append(True)

    async with ByteStream(_push(PAYLOAD), on_close=on_close) as stream:
        await stream.read(3)
    assert closed == [True]
    assert await stream.read() == b""


@pytest.mark.asyncio
async def test_byte_stream_read_error_closes_and_raises():
    closed = []

    async def on_close():
        closed.append(True)

    stream = ByteStream(FailingReader(), on_close=on_close)
    with pytest.raises(StreamReadError):
        await stream.read()
    assert closed == [True]


def test_as_stream_returns_existing_stream():
    stream = as_stream(b"x")
    assert as_stream(stream) is stream


@pytest.mark.asyncio
async def test_byte_stream_keeps_buffered_bytes_after_source_ends():
    stream = ByteStream(_push(b"abcd"))
    assert await stream.read(2) == b"ab"
    assert await stream.read() == b"cd"
    assert stream.closed
    assert await stream.read() == b""
