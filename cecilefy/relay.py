"""Upstream to client relay.

A ``StreamSession`` walks through an explicit state machine::

    FETCHING -> [AWAITING_FIRST_CHUNK] -> STREAMING -> DONE
                          (any non-DONE state) -> FAILED

Headers are committed exactly once, before the first body byte.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Dict, FrozenSet, Optional
import logging

import httpx

from .errors import StreamError, UpstreamStatusError
from .extensions import (
    SNIFF_WINDOW,
    ResolvedDownload,
    SuffixFactory,
    finalize_download,
    random_suffix,
    resolve_header_extension,
    sniff_extension,
)
from .sources import ByteSource, UpstreamMetadata, fetch_upstream
from .utils import ProxyRequest

logger = logging.getLogger(__name__)


class RelayState(str, Enum):
    FETCHING = "fetching"
    AWAITING_FIRST_CHUNK = "awaiting_first_chunk"
    STREAMING = "streaming"
    DONE = "done"
    FAILED = "failed"


_TRANSITIONS: Dict[RelayState, FrozenSet[RelayState]] = {
    RelayState.FETCHING: frozenset({RelayState.AWAITING_FIRST_CHUNK, RelayState.STREAMING, RelayState.FAILED}),
    RelayState.AWAITING_FIRST_CHUNK: frozenset({RelayState.STREAMING, RelayState.FAILED}),
    RelayState.STREAMING: frozenset({RelayState.DONE, RelayState.FAILED}),
    RelayState.DONE: frozenset(),
    RelayState.FAILED: frozenset(),
}

# Errors that mean the upstream body could not be read
UPSTREAM_READ_ERRORS = (httpx.TransportError, httpx.StreamError, httpx.DecodingError)


class StreamSession:
    """One upstream fetch relayed to one caller."""

    def __init__(
        self,
        request: ProxyRequest,
        suffix_factory: SuffixFactory = random_suffix,
    ) -> None:
        self.request = request
        self.state = RelayState.FETCHING
        self.metadata: Optional[UpstreamMetadata] = None
        self.resolved: Optional[ResolvedDownload] = None
        self._suffix_factory = suffix_factory
        self._source: Optional[ByteSource] = None
        self._first_chunk: Optional[bytes] = None
        self._buffer: Optional[bytes] = None
        self._headers_sent = False

    @property
    def headers_sent(self) -> bool:
        return self._headers_sent

    def _transition(self, target: RelayState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal relay transition {self.state.value} -> {target.value}")
        logger.debug(f"Relay {self.request.target_url}: {self.state.value} -> {target.value}")
        self.state = target

    async def fail(self) -> None:
        if self.state not in (RelayState.DONE, RelayState.FAILED):
            self._transition(RelayState.FAILED)
        await self.aclose()

    async def aclose(self) -> None:
        if self._source is not None:
            await self._source.aclose()

    async def fetch(self, client: httpx.AsyncClient, buffered: bool = False) -> None:
        metadata, source = await fetch_upstream(client, self.request.target_url, buffered=buffered)
        self.attach(metadata, source)
        if not 200 <= metadata.status_code < 300:
            await self.fail()
            raise UpstreamStatusError(metadata.status_code)

    def attach(self, metadata: UpstreamMetadata, source: ByteSource) -> None:
        if self.state is not RelayState.FETCHING or self._source is not None:
            raise RuntimeError("Upstream already attached to this session")
        self.metadata = metadata
        self._source = source

    async def resolve(self) -> ResolvedDownload:
        """Work out extension and filename, peeking at the body only if needed."""
        if self.metadata is None or self._source is None:
            raise RuntimeError("Nothing fetched yet")
        if self.resolved is not None:
            return self.resolved

        extension = resolve_header_extension(
            self.metadata.url,
            self.metadata.content_type,
            self.metadata.content_disposition,
        )
        if extension is None:
            if self._source.is_stream:
                self._transition(RelayState.AWAITING_FIRST_CHUNK)
                self._first_chunk = await self._read(self._source.peek_first_chunk())
                extension = sniff_extension(self._first_chunk)
            else:
                self._buffer = await self._read(self._source.read_all())
                extension = sniff_extension(self._buffer[:SNIFF_WINDOW])
            logger.debug(f"Sniffed extension for {self.metadata.url}: {extension}")

        self.resolved = finalize_download(
            self.request.filename_hint,
            extension,
            self.metadata.content_type,
            self._suffix_factory,
        )
        return self.resolved

    async def _read(self, pending: Awaitable[Any]) -> Any:
        try:
            return await pending
        except UPSTREAM_READ_ERRORS as exc:
            logger.error(f"Stream error before headers for {self.request.target_url}: {exc}")
            await self.fail()
            raise StreamError("Stream error", headers_sent=False) from exc

    def commit_headers(self) -> Dict[str, str]:
        if self._headers_sent:
            raise RuntimeError("Response headers already sent")
        if self.resolved is None:
            raise RuntimeError("Download must be resolved before headers are sent")
        self._transition(RelayState.STREAMING)
        self._headers_sent = True
        return {
            "Content-Type": self.resolved.content_type,
            "Content-Disposition": self.resolved.content_disposition,
            "Cache-Control": "no-cache",
        }

    async def relay(self) -> AsyncIterator[bytes]:
        """Yield the response body: the peeked chunk, then the rest."""
        if self.state is not RelayState.STREAMING or self._source is None:
            raise RuntimeError("Headers must be committed before relaying the body")
        try:
            if self._buffer is not None:
                if self._buffer:
                    yield self._buffer
            elif not self._source.is_stream:
                data = await self._source.read_all()
                if data:
                    yield data
            else:
                if self._first_chunk:
                    chunk, self._first_chunk = self._first_chunk, None
                    yield chunk
                async for chunk in self._source.stream_remainder():
                    yield chunk
            self._transition(RelayState.DONE)
        except UPSTREAM_READ_ERRORS as exc:
            logger.error(f"Stream error for {self.request.target_url}: {exc}")
            raise StreamError("Stream error", headers_sent=True) from exc
        finally:
            if self.state is not RelayState.DONE:
                logger.warning(f"Relay aborted for {self.request.target_url}")
                self.state = RelayState.FAILED
            await self.aclose()
