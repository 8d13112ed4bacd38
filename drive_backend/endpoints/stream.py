"""
FastAPI endpoint for streaming a single Drive file to the player.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from starlette.responses import Response

from drive_backend.dependencies import get_streaming_proxy
from drive_backend.streaming_proxy import StreamingProxy

logger = logging.getLogger(__name__)
router = APIRouter(tags=["stream"])


@router.get("/stream")
async def stream_file(
    request: Request,
    file_id: Optional[str] = Query(None, alias="fileId"),
    proxy: StreamingProxy = Depends(get_streaming_proxy),
) -> Response:
    """
    Relay a Drive file, or the byte range named by the Range header.

    Responds 200 or 206 mirroring Drive, 400 for a bad file id, and 500 with a
    JSON error body when configuration or the upstream call fails.
    """
    result = await proxy.handle_stream(file_id, request.headers.get("range"))
    if not result.is_success:
        logger.debug(f"Stream request for {file_id!r} ended with {result.outcome.value}")
    return proxy.to_response(result)
