"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Upstream HTTP client for the streaming chat endpoint.

Blocking `urllib` calls run in worker threads via `asyncio.to_thread`. Both
the buffered `post` and the incremental `open_stream` callables are
injectable so tests can substitute fakes for the network.
"""

from __future__ import annotations

import asyncio
import logging
import urllib.error
import urllib.request
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from typing import Any, Protocol

from ..errors import BridgeConfigurationError, UpstreamTransportError
from ..settings import BridgeCredentials, BridgeSettings
from ..translate.conversation import (
    ChatCompletionRequest,
    convert_messages,
    parse_tool_declarations,
)
from ..translate.request import generate_request_body
from ..translate.transform import (
    SSE_DONE,
    TRUNCATED_STREAM_ERROR,
    CompletionStream,
    connection_error,
    connection_error_response,
    error_response,
    http_error_response,
    transform_to_completion,
)
from ..types import GatewayResponse
from .policy import build_connect_headers

logger = logging.getLogger("protobridge.client")


@dataclass(frozen=True, slots=True)
class UpstreamRequest:
    """One prepared upstream call."""

    url: str
    body: bytes
    headers: dict[str, str]
    timeout_s: float


class UpstreamStream(Protocol):
    """Readable upstream response body."""

    status: int

    def read(self, size: int) -> bytes: ...

    def close(self) -> None: ...


PostFn = Callable[[UpstreamRequest], tuple[int, bytes]]
OpenStreamFn = Callable[[UpstreamRequest], UpstreamStream]


class _UrllibStream:
    """Adapter over a urllib response (or `HTTPError`) exposing `UpstreamStream`."""

    def __init__(self, status: int, response: Any) -> None:
        self.status = status
        self._response = response

    def read(self, size: int) -> bytes:
        try:
            return self._response.read(size)
        except OSError as e:
            raise UpstreamTransportError(f"Upstream read failed: {e}") from e

    def close(self) -> None:
        self._response.close()


def _urllib_request(request: UpstreamRequest) -> urllib.request.Request:
    return urllib.request.Request(
        request.url,
        data=request.body,
        method="POST",
        headers=request.headers,
    )


def http_post(request: UpstreamRequest) -> tuple[int, bytes]:
    """Send the request and read the whole body."""
    try:
        with urllib.request.urlopen(  # noqa: S310
            _urllib_request(request), timeout=request.timeout_s
        ) as resp:
            return resp.status, resp.read()
    except urllib.error.HTTPError as e:
        try:
            body = e.read()
        except OSError:
            body = b""
        return e.code, body
    except (urllib.error.URLError, OSError) as e:
        reason = getattr(e, "reason", e)
        raise UpstreamTransportError(f"Network error calling upstream: {reason}") from e


def http_open_stream(request: UpstreamRequest) -> UpstreamStream:
    """Send the request and return the still-open response body."""
    try:
        resp = urllib.request.urlopen(  # noqa: S310
            _urllib_request(request), timeout=request.timeout_s
        )
    except urllib.error.HTTPError as e:
        return _UrllibStream(e.code, e)
    except (urllib.error.URLError, OSError) as e:
        reason = getattr(e, "reason", e)
        raise UpstreamTransportError(f"Network error calling upstream: {reason}") from e
    return _UrllibStream(resp.status, resp)


class BridgeClient:
    """
    Chat-completions facade over the upstream protobuf stream.

    `complete()` dispatches on `request.stream`: buffered requests resolve to
    one `GatewayResponse`; streaming requests resolve to either a
    `GatewayResponse` (when the upstream failed before any content) or an
    async iterator of SSE lines.
    """

    def __init__(
        self,
        settings: BridgeSettings | None = None,
        *,
        credentials: BridgeCredentials | None = None,
        post: PostFn | None = None,
        open_stream: OpenStreamFn | None = None,
    ) -> None:
        self.settings = settings or BridgeSettings.from_env()
        self._credentials = credentials
        self._post = post or http_post
        self._open_stream = open_stream or http_open_stream

    def credentials(self) -> BridgeCredentials:
        creds = self._credentials or self.settings.credentials()
        if creds is None:
            raise BridgeConfigurationError(
                "Access token and machine id are required (set PROTOBRIDGE_ACCESS_TOKEN "
                "and PROTOBRIDGE_MACHINE_ID)"
            )
        return creds

    def resolve_model(self, request: ChatCompletionRequest) -> str:
        return request.model or self.settings.default_model

    def prepare(self, request: ChatCompletionRequest) -> UpstreamRequest:
        """Translate a chat request into the framed upstream POST."""
        turns = convert_messages(request.messages)
        tools = parse_tool_declarations(request.tools)
        body = generate_request_body(
            turns,
            self.resolve_model(request),
            tools,
            request.reasoning_effort,
        )
        return UpstreamRequest(
            url=self.settings.chat_url,
            body=body,
            headers=build_connect_headers(self.credentials(), self.settings),
            timeout_s=self.settings.timeout_s,
        )

    async def complete(
        self, request: ChatCompletionRequest
    ) -> GatewayResponse | AsyncIterator[str]:
        if request.stream:
            return await self.chat_stream(request)
        return await self.chat(request)

    async def chat(self, request: ChatCompletionRequest) -> GatewayResponse:
        """Buffered completion."""
        model = self.resolve_model(request)
        upstream = self.prepare(request)
        try:
            status, body = await asyncio.to_thread(self._post, upstream)
        except UpstreamTransportError as e:
            logger.warning("Upstream request failed: %s", e)
            return connection_error_response(str(e))

        if status != 200:
            text = body.decode("utf-8", errors="replace")
            logger.warning("Upstream returned HTTP %s", status)
            return http_error_response(status, text)
        return transform_to_completion(body, model)

    async def chat_stream(
        self, request: ChatCompletionRequest
    ) -> GatewayResponse | AsyncIterator[str]:
        """
        Streaming completion.

        Chunks are read until the first SSE lines are ready (priming). An
        upstream error found during priming is returned as a plain error
        response; errors after that become an error chunk before `[DONE]`.
        """
        model = self.resolve_model(request)
        upstream = self.prepare(request)
        try:
            stream = await asyncio.to_thread(self._open_stream, upstream)
        except UpstreamTransportError as e:
            logger.warning("Upstream request failed: %s", e)
            return connection_error_response(str(e))

        if stream.status != 200:
            try:
                body = await asyncio.to_thread(stream.read, -1)
            except UpstreamTransportError:
                body = b""
            finally:
                stream.close()
            logger.warning("Upstream returned HTTP %s", stream.status)
            return http_error_response(stream.status, body.decode("utf-8", errors="replace"))

        renderer = CompletionStream(model)
        primed: list[str] = []
        eof = False
        try:
            while not primed:
                chunk = await asyncio.to_thread(stream.read, self.settings.read_chunk_size)
                if not chunk:
                    eof = True
                    break
                primed = renderer.feed(chunk)
                if renderer.error is not None and not primed:
                    stream.close()
                    return error_response(renderer.error)
        except UpstreamTransportError as e:
            stream.close()
            logger.warning("Upstream stream failed before content: %s", e)
            return connection_error_response(str(e))

        return self._relay(stream, renderer, primed, eof)

    async def _relay(
        self,
        stream: UpstreamStream,
        renderer: CompletionStream,
        primed: list[str],
        eof: bool,
    ) -> AsyncIterator[str]:
        try:
            for line in primed:
                yield line
            while not eof and renderer.error is None:
                chunk = await asyncio.to_thread(stream.read, self.settings.read_chunk_size)
                if not chunk:
                    break
                for line in renderer.feed(chunk):
                    yield line
        except UpstreamTransportError as e:
            logger.warning("Upstream stream failed mid-response: %s", e)
            yield renderer.error_chunk(connection_error(str(e)))
            yield SSE_DONE
            return
        finally:
            stream.close()

        if renderer.error is not None:
            yield renderer.error_chunk()
            yield SSE_DONE
            return
        if renderer.truncated:
            logger.warning("Upstream stream ended inside a frame")
            yield renderer.error_chunk(TRUNCATED_STREAM_ERROR)
            yield SSE_DONE
            return
        for line in renderer.finish():
            yield line
