"""Upstream body sources.

The relay only talks to ``ByteSource``; whether the upstream body is still a
live stream or was read into memory is hidden behind it.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterator, Optional
import logging

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpstreamMetadata:
    url: str
    status_code: int
    content_type: Optional[str] = None
    content_disposition: Optional[str] = None

    @classmethod
    def from_response(cls, url: str, response: httpx.Response) -> "UpstreamMetadata":
        return cls(
            url=url,
            status_code=response.status_code,
            content_type=response.headers.get("content-type"),
            content_disposition=response.headers.get("content-disposition"),
        )


class ByteSource(ABC):
    """Capability shared by every upstream body representation."""

    is_stream: bool = True

    @abstractmethod
    async def peek_first_chunk(self) -> Optional[bytes]:
        """Consume and return the first chunk, or None for an empty body."""

    @abstractmethod
    def stream_remainder(self) -> AsyncIterator[bytes]:
        """Yield whatever was not consumed by peek_first_chunk."""

    @abstractmethod
    async def read_all(self) -> bytes:
        ...

    async def aclose(self) -> None:
        return None


class HttpxStreamSource(ByteSource):
    """Wraps an httpx response opened with ``stream=True``."""

    def __init__(self, response: httpx.Response) -> None:
        self._response = response
        self._iterator: Optional[AsyncIterator[bytes]] = None

    def _chunks(self) -> AsyncIterator[bytes]:
        if self._iterator is None:
            self._iterator = self._response.aiter_bytes()
        return self._iterator

    async def peek_first_chunk(self) -> Optional[bytes]:
        iterator = self._chunks()
        try:
            return await iterator.__anext__()
        except StopAsyncIteration:
            return None

    async def stream_remainder(self) -> AsyncIterator[bytes]:
        async for chunk in self._chunks():
            yield chunk

    async def read_all(self) -> bytes:
        chunks = [chunk async for chunk in self.stream_remainder()]
        return b"".join(chunks)

    async def aclose(self) -> None:
        await self._response.aclose()


class BufferedSource(ByteSource):
    """A body that is already fully in memory."""

    is_stream = False

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._consumed = False

    async def peek_first_chunk(self) -> Optional[bytes]:
        if self._consumed or not self._data:
            return None
        self._consumed = True
        return self._data

    async def stream_remainder(self) -> AsyncIterator[bytes]:
        if not self._consumed and self._data:
            self._consumed = True
            yield self._data

    async def read_all(self) -> bytes:
        return self._data


def byte_source_for(response: httpx.Response) -> ByteSource:
    if response.is_closed:
        # The body was read eagerly, nothing left to stream
        return BufferedSource(response.content)
    return HttpxStreamSource(response)


async def fetch_upstream(
    client: httpx.AsyncClient,
    url: str,
    buffered: bool = False,
) -> tuple[UpstreamMetadata, ByteSource]:
    request = client.build_request("GET", url)
    response = await client.send(request, stream=not buffered, follow_redirects=True)
    logger.info(f"Upstream GET {url} -> {response.status_code}")
    metadata = UpstreamMetadata.from_response(url, response)
    return metadata, byte_source_for(response)
