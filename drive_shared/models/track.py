"""
Track models for the Drive folder listing.
"""

import re
from typing import List
from pydantic import BaseModel, ConfigDict, Field


FOLDER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
AUDIO_EXTENSION_PATTERN = re.compile(r"\.(mp3|wav|m4a|ogg)$", re.IGNORECASE)

# The browser learns the real length once the audio element loads metadata
DEFAULT_TRACK_DURATION = 180


class DriveFile(BaseModel):
    """File entry as returned by the Drive files.list endpoint."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: str = ""
    mime_type: str = Field("", alias="mimeType")


class Track(BaseModel):
    """
    Track record consumed by the player widget.

    Attributes:
        id: Track id (the Drive file id)
        title: File name without its audio extension
        google_drive_file_id: Drive file id passed to /stream
        duration: Placeholder duration in seconds
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    google_drive_file_id: str = Field(..., alias="googleDriveFileId")
    duration: int = DEFAULT_TRACK_DURATION

    @staticmethod
    def title_from_filename(name: str) -> str:
        return AUDIO_EXTENSION_PATTERN.sub("", name)

    @classmethod
    def from_drive_file(cls, drive_file: DriveFile) -> 'Track':
        return cls(
            id=drive_file.id,
            title=cls.title_from_filename(drive_file.name),
            google_drive_file_id=drive_file.id,
        )


class TrackListResponse(BaseModel):
    """Response body of the folder listing."""

    tracks: List[Track] = Field(default_factory=list)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)
