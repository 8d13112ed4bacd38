"""
Google Drive folder listing client.

Lists the audio files in a shared Drive folder and maps them to the track
records the player widget renders.
"""

import httpx
import logging
from typing import Dict, Any, Optional, Union

from drive_shared.config.config_manager import ConfigManager, ConfigValidationError
from drive_shared.models.track import FOLDER_ID_PATTERN, DriveFile, Track, TrackListResponse

logger = logging.getLogger(__name__)

REFERRER_BLOCKED_MARKER = "API_KEY_HTTP_REFERRER_BLOCKED"
REFERRER_BLOCKED_MESSAGE = (
    "API configuration error. Please check that your Google Drive API key allows server-side requests."
)
REFERRER_BLOCKED_HINT = (
    "Visit Google Cloud Console > APIs & Services > Credentials to configure your API key restrictions"
)


class DriveFolderClient:
    """
    HTTP client for the Drive files.list endpoint.

    Results are plain dicts: {"status": "success", "tracks": [...]} or
    {"status": "error", "error_code": ..., "error_message": ...}.
    """

    def __init__(self, config_manager: ConfigManager):
        """Initialize folder client with configuration."""
        self.config_manager = config_manager

        self._stats = {
            "total_requests": 0,
            "successful_requests": 0,
            "failed_requests": 0,
        }

        self._http_client = self._create_http_client()
        self._initialized = True

        logger.info("DriveFolderClient initialized successfully")

    def _create_http_client(self) -> httpx.AsyncClient:
        """Create HTTP client for small JSON listing calls."""
        limits = httpx.Limits(
            max_connections=20,
            max_keepalive_connections=5
        )

        timeout = httpx.Timeout(
            connect=self.config_manager.upstream_connect_timeout,
            read=self.config_manager.upstream_timeout,
            write=30.0,
            pool=5.0
        )

        return httpx.AsyncClient(
            limits=limits,
            timeout=timeout,
            follow_redirects=False
        )

    def is_initialized(self) -> bool:
        """Check if client is properly initialized."""
        return self._initialized and not self._http_client.is_closed

    def get_http_client(self) -> httpx.AsyncClient:
        """Get the HTTP client for testing."""
        return self._http_client

    @staticmethod
    def build_query(folder_id: str) -> str:
        """Drive search expression for audio files directly inside a folder."""
        return f"'{folder_id}' in parents and mimeType contains 'audio'"

    @staticmethod
    def is_folder_id_valid(folder_id: Any) -> bool:
        return isinstance(folder_id, str) and FOLDER_ID_PATTERN.fullmatch(folder_id) is not None

    async def list_tracks(self, folder_id: Optional[Union[str, int]]) -> Dict[str, Any]:
        """
        List the audio tracks of a Drive folder.

        Args:
            folder_id: Drive folder id

        Returns:
            Success dict with "tracks" in wire format, or an error dict. Errors
            other than HTTP/transport failures propagate to the caller.
        """
        if not folder_id:
            return self._error(400, "Folder ID is required")

        # JSON numbers are accepted the way their decimal text would be
        if isinstance(folder_id, int) and not isinstance(folder_id, bool):
            folder_id = str(folder_id)

        if not self.is_folder_id_valid(folder_id):
            return self._error(400, "Invalid folder ID format")

        try:
            api_key = self.config_manager.get_api_key()
        except ConfigValidationError as e:
            logger.error(str(e))
            return self._error(500, "API key not configured")

        logger.info(f"Fetching files from folder: {folder_id}")
        self._stats["total_requests"] += 1

        headers = {"Accept": "application/json"}
        referer = self.config_manager.upstream_referer
        if referer:
            headers["Referer"] = referer

        try:
            response = await self._http_client.request(
                method="GET",
                url=self.config_manager.drive_api_base_url,
                params={
                    "q": self.build_query(folder_id),
                    "key": api_key,
                    "fields": "files(id,name,mimeType)",
                },
                headers=headers,
            )
        except httpx.HTTPError as e:
            self._stats["failed_requests"] += 1
            logger.error(f"Drive listing transport error for folder {folder_id}: {type(e).__name__}: {e}")
            return self._error(500, "Unable to fetch tracks at this time")

        if not 200 <= response.status_code < 300:
            self._stats["failed_requests"] += 1
            error_text = response.text
            logger.error(f"Google Drive API error: {response.status_code} {error_text[:500]}")

            if response.status_code == 403 and REFERRER_BLOCKED_MARKER in error_text:
                logger.error(
                    "The Google Drive API key has HTTP referrer restrictions. Allow server-side "
                    "requests (remove referrer restrictions or allow empty referrers)."
                )
                return self._error(500, REFERRER_BLOCKED_MESSAGE, hint=REFERRER_BLOCKED_HINT)

            return self._error(500, "Unable to fetch tracks at this time")

        data = response.json()
        files = [DriveFile.model_validate(item) for item in (data.get("files") or [])]
        logger.info(f"Files found: {len(files)}")

        self._stats["successful_requests"] += 1
        listing = TrackListResponse(tracks=[Track.from_drive_file(f) for f in files])
        return {"status": "success", **listing.to_wire()}

    @staticmethod
    def _error(code: int, message: str, hint: Optional[str] = None) -> Dict[str, Any]:
        result = {
            "status": "error",
            "error_code": code,
            "error_message": message,
        }
        if hint:
            result["hint"] = hint
        return result

    def get_stats(self) -> Dict[str, Any]:
        """Get request statistics."""
        return self._stats.copy()

    async def cleanup(self):
        """Clean up resources and close connections."""
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()
        self._initialized = False
        logger.info("DriveFolderClient cleanup completed")
