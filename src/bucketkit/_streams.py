"""
Body normalization helpers for bucketkit.

A body comes in one of three shapes:

* blob: ``bytes``, ``bytearray`` or ``memoryview`` already in memory
* push stream: an async iterable yielding byte chunks (``httpx``
  ``Response.aiter_raw()``, an async generator, another ``ByteStream``)
* pull reader: an object with a ``read(size)`` method, synchronous
  (``io.BytesIO``, an open file) or asynchronous

``iter_chunks`` turns any of them into ordered chunks, ``read_all`` into one
contiguous buffer and ``as_stream`` into a ``ByteStream``.
"""

import inspect
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Union

from .error import ProviderError, StreamReadError

CHUNK_SIZE = 64 * 1024

BLOB_TYPES = (bytes, bytearray, memoryview)


def body_kind(body: Any) -> str:
    """Classify a body as ``"blob"``, ``"push"`` or ``"pull"``."""
    if isinstance(body, BLOB_TYPES):
        return "blob"
    if hasattr(body, "__aiter__"):
        return "push"
    if callable(getattr(body, "read", None)):
        return "pull"
    raise TypeError(f"Unsupported body type: {type(body).__name__}")


async def iter_chunks(body: Any, chunk_size: int = CHUNK_SIZE) -> AsyncIterator[bytes]:
    """Yield the bytes of ``body`` in order, raising StreamReadError if the source fails."""
    kind = body_kind(body)
    try:
        if kind == "blob":
            if len(body):
                yield bytes(body)
        elif kind == "push":
            async for chunk in body:
                if chunk:
                    yield bytes(chunk)
        else:
            while True:
                chunk = body.read(chunk_size)
                if inspect.isawaitable(chunk):
                    chunk = await chunk
                if not chunk:
                    break
                yield bytes(chunk)
    except ProviderError:
        raise
    except Exception as exc:
        raise StreamReadError(f"Error reading {kind} body: {exc}") from exc


async def read_all(body: Any) -> bytes:
    """Drain ``body`` into one contiguous buffer."""
    if isinstance(body, BLOB_TYPES):
        return bytes(body)
    parts = []
    async for chunk in iter_chunks(body):
        parts.append(chunk)
    return b"".join(parts)


class ByteStream:
    """
    Canonical streaming body.

    Consume it either push-style (``async for chunk in stream``) or pull-style
    (``await stream.read(size)``). The optional ``on_close`` callback runs once,
    when the source is exhausted or the stream is closed, and releases the
    underlying connection.
    """

    def __init__(
        self,
        body: Any,
        on_close: Optional[Callable[[], Awaitable[None]]] = None,
        length: Optional[int] = None,
    ):
        self._chunks = iter_chunks(body)
        self._buffer = bytearray()
        self._eof = False
        self._closed = False
        self._on_close = on_close
        self.length = length

    @property
    def closed(self) -> bool:
        return self._closed

    async def _next_chunk(self) -> Optional[bytes]:
        if self._eof:
            return None
        try:
            return await self._chunks.__anext__()
        except StopAsyncIteration:
            self._eof = True
            await self._release()
            return None
        except BaseException:
            await self._release()
            raise

    async def __aiter__(self) -> AsyncIterator[bytes]:
        if self._buffer:
            pending = bytes(self._buffer)
            self._buffer.clear()
            yield pending
        while True:
            chunk = await self._next_chunk()
            if chunk is None:
                return
            yield chunk

    async def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes, or everything left when ``size`` is negative."""
        while size < 0 or len(self._buffer) < size:
            chunk = await self._next_chunk()
            if chunk is None:
                break
            self._buffer.extend(chunk)
        if size < 0:
            data = bytes(self._buffer)
            self._buffer.clear()
        else:
            data = bytes(self._buffer[:size])
            del self._buffer[:size]
        return data

    async def _release(self) -> None:
        # Buffered bytes stay readable after the source is exhausted
        if self._closed:
            return
        self._closed = True
        self._eof = True
        await self._chunks.aclose()
        if self._on_close is not None:
            await self._on_close()

    async def aclose(self) -> None:
        """Close the stream; unread bytes are discarded."""
        self._buffer.clear()
        await self._release()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()


def as_stream(
    body: Union[bytes, Any],
    on_close: Optional[Callable[[], Awaitable[None]]] = None,
    length: Optional[int] = None,
) -> ByteStream:
    """Wrap any body shape into a ByteStream."""
    if isinstance(body, ByteStream) and on_close is None:
        return body
    if length is None and isinstance(body, BLOB_TYPES):
        length = len(body)
    return ByteStream(body, on_close=on_close, length=length)
