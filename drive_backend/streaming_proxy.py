"""
Range-aware streaming proxy for Google Drive media.

Relays one Drive file to the browser's audio element without buffering it:
the inbound Range header is forwarded verbatim, the upstream status (200 or 206)
and range headers are copied back, and body chunks are passed through as they
arrive. Closing the downstream connection closes the upstream stream.
"""

import asyncio
import logging
import time
from typing import Any, AsyncIterator, Dict, Optional

import anyio
import httpx
from starlette.responses import Response, StreamingResponse
from starlette.types import Receive, Scope, Send

from drive_backend.cors import CorsPolicy
from drive_shared.config.config_manager import ConfigManager, ConfigValidationError
from drive_shared.models.stream import RELAYED_HEADERS, StreamRequest, StreamResult

logger = logging.getLogger(__name__)

# Upstream error bodies are logged, never relayed; keep the log line bounded
MAX_LOGGED_ERROR_CHARS = 500


class RelayResponse(StreamingResponse):
    """
    StreamingResponse that owns an upstream Drive response.

    The upstream stream is closed when the ASGI call ends, however it ends:
    body fully sent or the client gone mid-body. Background tasks do not run
    after a disconnect.
    """

    def __init__(self, content, upstream_response: Optional[httpx.Response] = None, **kwargs):
        super().__init__(content, **kwargs)
        self.upstream_response = upstream_response

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            with anyio.CancelScope(shield=True):
                close_body = getattr(self.body_iterator, "aclose", None)
                if close_body is not None:
                    await close_body()
                if self.upstream_response is not None:
                    await self.upstream_response.aclose()


class StreamingProxy:
    """
    Streaming proxy between the player and the Drive media endpoint.

    Holds a single pooled HTTP client for the life of the process. Configuration
    is injected once at construction and only read afterwards, so concurrent
    requests share nothing mutable apart from the metrics counters.
    """

    def __init__(self, config_manager: ConfigManager, cors_policy: Optional[CorsPolicy] = None):
        """Initialize streaming proxy with configuration and CORS policy."""
        self.config_manager = config_manager
        self.cors_policy = cors_policy or CorsPolicy(config_manager.allowed_origin)

        self._chunk_size = config_manager.stream_chunk_size
        self._upstream_timeout = config_manager.upstream_timeout
        self._cache_control = f"public, max-age={config_manager.cache_max_age}"

        self._metrics = {
            "total_requests": 0,
            "successful_streams": 0,
            "rejected_requests": 0,
            "upstream_failures": 0,
            "config_errors": 0,
            "total_bytes_streamed": 0,
            "average_time_to_headers": 0.0,
        }

        self._http_client = self._create_http_client()
        self._initialized = True

        logger.info("StreamingProxy initialized successfully")

    def _create_http_client(self) -> httpx.AsyncClient:
        """Create pooled HTTP client for Drive media downloads."""
        limits = httpx.Limits(
            max_connections=100,
            max_keepalive_connections=20
        )

        # No read deadline: the header wait is bounded in handle_stream and a
        # long listening session must not be cut off mid-track.
        timeout = httpx.Timeout(
            connect=self.config_manager.upstream_connect_timeout,
            read=None,
            write=30.0,
            pool=10.0
        )

        return httpx.AsyncClient(
            limits=limits,
            timeout=timeout,
            follow_redirects=True
        )

    def is_initialized(self) -> bool:
        """Check if proxy is properly initialized."""
        return self._initialized and not self._http_client.is_closed

    def get_http_client(self) -> httpx.AsyncClient:
        """Get the configured HTTP client for testing."""
        return self._http_client

    def build_media_url(self, file_id: str) -> str:
        """Drive media-download URL for a validated file id."""
        return f"{self.config_manager.drive_api_base_url}/{file_id}"

    def handle_preflight(self) -> Response:
        """Answer a CORS preflight without touching the upstream store."""
        return self.cors_policy.preflight_response()

    async def handle_stream(self, file_id: Optional[str], range_header: Optional[str] = None) -> StreamResult:
        """
        Fetch a Drive file (or a byte range of it) for relaying.

        Args:
            file_id: Drive file id from the query string
            range_header: Inbound Range header, forwarded unchanged when present

        Returns:
            StreamResult; on success its body is a live upstream stream that must
            be consumed exactly once.
        """
        self._metrics["total_requests"] += 1
        request = StreamRequest(file_id=file_id, range_header=range_header or None)

        try:
            return await self._stream(request)
        except Exception as e:
            logger.error(f"Unexpected error in stream proxy for {file_id!r}: {e}")
            return StreamResult.internal_error(str(e))

    async def _stream(self, request: StreamRequest) -> StreamResult:
        if not request.is_valid:
            self._metrics["rejected_requests"] += 1
            logger.warning(f"Rejected stream request with invalid file id: {request.file_id!r}")
            return StreamResult.invalid_input()

        try:
            api_key = self.config_manager.get_api_key()
        except ConfigValidationError as e:
            self._metrics["config_errors"] += 1
            logger.error(str(e))
            return StreamResult.config_missing()

        logger.info(f"Streaming file from Drive: {request.file_id} range: {request.range_header or 'none'}")

        upstream_request = self._http_client.build_request(
            "GET",
            self.build_media_url(request.file_id),
            params={"alt": "media", "key": api_key},
            headers=self._build_upstream_headers(request.range_header),
        )

        start_time = time.monotonic()
        try:
            response = await self._send_with_header_timeout(upstream_request)
        except asyncio.TimeoutError:
            logger.warning(
                f"Timeout after {self._upstream_timeout}s waiting for Drive response for {request.file_id}"
            )
            return self._upstream_failure()
        except httpx.HTTPError as e:
            logger.error(f"Drive stream transport error for {request.file_id}: {type(e).__name__}: {e}")
            return self._upstream_failure()

        # 204 carries no body to relay
        if not 200 <= response.status_code < 300 or response.status_code == 204:
            detail = await self._read_error_detail(response)
            logger.error(f"Drive stream error {response.status_code} for {request.file_id}: {detail}")
            return self._upstream_failure()

        self._record_time_to_headers(start_time)
        self._metrics["successful_streams"] += 1

        return StreamResult.success(
            status_code=response.status_code,
            headers=self._relay_headers(response),
            body=self._relay_body(response, request.file_id),
            upstream_response=response,
        )

    async def _send_with_header_timeout(self, upstream_request: httpx.Request) -> httpx.Response:
        """
        Send the upstream request, waiting at most the configured timeout for headers.

        A response that still arrives while the send is being cancelled is
        closed here, so a timed-out request never leaves a connection checked out.
        """
        send_task = asyncio.ensure_future(self._http_client.send(upstream_request, stream=True))
        try:
            done, _ = await asyncio.wait({send_task}, timeout=self._upstream_timeout)
        except asyncio.CancelledError:
            send_task.cancel()
            raise

        if send_task in done:
            return send_task.result()

        send_task.cancel()
        await asyncio.wait({send_task})
        if not send_task.cancelled() and send_task.exception() is None:
            await send_task.result().aclose()
        raise asyncio.TimeoutError()

    def _build_upstream_headers(self, range_header: Optional[str]) -> Dict[str, str]:
        # identity keeps the relayed bytes identical to the upstream Content-Length
        headers = {
            "Accept": "*/*",
            "Accept-Encoding": "identity",
        }
        referer = self.config_manager.upstream_referer
        if referer:
            headers["Referer"] = referer
        if range_header:
            headers["Range"] = range_header
        return headers

    def _relay_headers(self, response: httpx.Response) -> Dict[str, str]:
        """Copy the range-related headers the client relies on, plus caching."""
        headers = {}
        for name in RELAYED_HEADERS:
            value = response.headers.get(name)
            if value:
                headers[name] = value
        # bytes behind a Drive file id do not change
        headers["Cache-Control"] = self._cache_control
        return headers

    async def _relay_body(self, response: httpx.Response, file_id: str) -> AsyncIterator[bytes]:
        """Pass upstream chunks through as they arrive."""
        total_bytes = 0
        try:
            async for chunk in response.aiter_raw(chunk_size=self._chunk_size):
                total_bytes += len(chunk)
                yield chunk
        finally:
            await response.aclose()
            self._metrics["total_bytes_streamed"] += total_bytes
            logger.debug(f"Relayed {total_bytes} bytes for {file_id}")

    async def _read_error_detail(self, response: httpx.Response) -> str:
        try:
            await response.aread()
            return response.text[:MAX_LOGGED_ERROR_CHARS]
        except httpx.HTTPError:
            return ""
        finally:
            await response.aclose()

    def _upstream_failure(self) -> StreamResult:
        self._metrics["upstream_failures"] += 1
        return StreamResult.upstream_failure()

    def _record_time_to_headers(self, start_time: float):
        elapsed = time.monotonic() - start_time
        successful = self._metrics["successful_streams"] + 1
        current_avg = self._metrics["average_time_to_headers"]
        self._metrics["average_time_to_headers"] = (
            (current_avg * (successful - 1) + elapsed) / successful
        )

    def to_response(self, result: StreamResult) -> Response:
        """
        Turn a StreamResult into the downstream HTTP response.

        Success becomes a StreamingResponse over the upstream body; every error
        variant becomes its JSON body. Both carry the CORS header set.
        """
        if not result.is_success:
            return self.cors_policy.json_response(result.error_body(), status_code=result.status_code)

        return RelayResponse(
            result.body,
            upstream_response=result.upstream_response,
            status_code=result.status_code,
            headers={**self.cors_policy.headers(), **result.headers},
        )

    def get_performance_metrics(self) -> Dict[str, Any]:
        """Get current performance metrics."""
        return self._metrics.copy()

    async def cleanup(self):
        """Clean up resources and close connections."""
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()
        self._initialized = False
        logger.info("StreamingProxy cleanup completed")
