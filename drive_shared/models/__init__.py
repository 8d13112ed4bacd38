"""Wire and result models for the Drive stream backend."""

from .stream import (
    FILE_ID_PATTERN,
    RELAYED_HEADERS,
    StreamOutcome,
    StreamRequest,
    StreamResult,
)
from .track import DriveFile, Track, TrackListResponse

__all__ = [
    'FILE_ID_PATTERN',
    'RELAYED_HEADERS',
    'StreamOutcome',
    'StreamRequest',
    'StreamResult',
    'DriveFile',
    'Track',
    'TrackListResponse',
]
