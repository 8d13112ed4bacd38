"""
FastAPI endpoints for listing the tracks of a Drive folder.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from starlette.responses import JSONResponse

from drive_backend.cors import CorsPolicy
from drive_backend.dependencies import get_config_manager, get_cors_policy, get_drive_client
from drive_backend.drive_client import DriveFolderClient
from drive_shared.config.config_manager import ConfigManager, ConfigValidationError

logger = logging.getLogger(__name__)
router = APIRouter(tags=["tracks"])


def _listing_response(result: Dict[str, Any], cors: CorsPolicy) -> JSONResponse:
    if result.get("status") == "success":
        return cors.json_response({"tracks": result["tracks"]})

    payload = {"error": result.get("error_message", "Unable to fetch tracks at this time")}
    if result.get("hint"):
        payload["hint"] = result["hint"]
    return cors.json_response(payload, status_code=result.get("error_code", 500))


@router.post("/tracks")
async def list_folder_tracks(
    request: Request,
    client: DriveFolderClient = Depends(get_drive_client),
    cors: CorsPolicy = Depends(get_cors_policy),
) -> JSONResponse:
    """List audio files of the folder named by {"folderId": ...} in the request body."""
    try:
        try:
            payload = await request.json()
        except ValueError:
            payload = None

        folder_id = payload.get("folderId") if isinstance(payload, dict) else None
        result = await client.list_tracks(folder_id)
        return _listing_response(result, cors)

    except Exception as e:
        logger.error(f"Error in track listing: {e}")
        return cors.json_response({"error": str(e) or "Unknown error"}, status_code=500)


@router.get("/tracks")
async def list_default_folder_tracks(
    client: DriveFolderClient = Depends(get_drive_client),
    config: ConfigManager = Depends(get_config_manager),
    cors: CorsPolicy = Depends(get_cors_policy),
) -> JSONResponse:
    """List audio files of the deployment's configured folder."""
    try:
        folder_id = config.get_default_folder_id()
    except ConfigValidationError as e:
        logger.error(str(e))
        return cors.json_response({"error": "Folder ID not configured"}, status_code=500)

    try:
        result = await client.list_tracks(folder_id)
        return _listing_response(result, cors)
    except Exception as e:
        logger.error(f"Error in track listing: {e}")
        return cors.json_response({"error": str(e) or "Unknown error"}, status_code=500)
