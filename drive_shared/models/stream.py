"""
Stream request and result models.

Every call to the streaming proxy ends in exactly one StreamResult variant, and
each variant knows the HTTP status and JSON error body it maps to.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterator, Dict, Optional, Any


# Drive file ids: 20-50 chars of [A-Za-z0-9_-]
FILE_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{20,50}$")

# Upstream headers copied onto the relayed response when present
RELAYED_HEADERS = ("Content-Type", "Content-Length", "Accept-Ranges", "Content-Range")

INVALID_FILE_ID_MESSAGE = "Invalid or missing file ID"
API_KEY_MISSING_MESSAGE = "API key not configured"
UPSTREAM_FAILURE_MESSAGE = "Unable to stream file at this time"


class StreamOutcome(str, Enum):
    """Closed set of streaming proxy outcomes."""
    SUCCESS = "success"
    INVALID_INPUT = "invalid_input"
    CONFIG_MISSING = "config_missing"
    UPSTREAM_FAILURE = "upstream_failure"
    INTERNAL_ERROR = "internal_error"


@dataclass(frozen=True)
class StreamRequest:
    """
    Inbound stream request.

    Attributes:
        file_id: Drive file identifier taken from the query string
        range_header: Raw Range header value, forwarded verbatim
    """
    file_id: Optional[str]
    range_header: Optional[str] = None

    @staticmethod
    def is_valid_file_id(value: Optional[str]) -> bool:
        return bool(value) and FILE_ID_PATTERN.fullmatch(value) is not None

    @property
    def is_valid(self) -> bool:
        return self.is_valid_file_id(self.file_id)


@dataclass
class StreamResult:
    """
    Result of a streaming proxy call.

    Attributes:
        outcome: Which variant this is
        status_code: HTTP status to send downstream
        headers: Relayed headers (success only)
        body: Upstream byte stream (success only, consumed once)
        error_message: Message for the JSON error body (errors only)
        upstream_response: Open upstream response to close once relayed
    """
    outcome: StreamOutcome
    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[AsyncIterator[bytes]] = None
    error_message: Optional[str] = None
    upstream_response: Optional[Any] = None

    @classmethod
    def success(cls, status_code: int, headers: Dict[str, str], body: AsyncIterator[bytes],
                upstream_response: Any = None) -> 'StreamResult':
        return cls(
            outcome=StreamOutcome.SUCCESS,
            status_code=status_code,
            headers=headers,
            body=body,
            upstream_response=upstream_response,
        )

    @classmethod
    def invalid_input(cls) -> 'StreamResult':
        return cls(StreamOutcome.INVALID_INPUT, 400, error_message=INVALID_FILE_ID_MESSAGE)

    @classmethod
    def config_missing(cls) -> 'StreamResult':
        return cls(StreamOutcome.CONFIG_MISSING, 500, error_message=API_KEY_MISSING_MESSAGE)

    @classmethod
    def upstream_failure(cls) -> 'StreamResult':
        return cls(StreamOutcome.UPSTREAM_FAILURE, 500, error_message=UPSTREAM_FAILURE_MESSAGE)

    @classmethod
    def internal_error(cls, message: str) -> 'StreamResult':
        return cls(StreamOutcome.INTERNAL_ERROR, 500, error_message=message or "Unknown error")

    @property
    def is_success(self) -> bool:
        return self.outcome is StreamOutcome.SUCCESS

    def error_body(self) -> Dict[str, str]:
        """JSON payload for error variants."""
        return {"error": self.error_message}
