from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Principal(BaseModel):
    """Authenticated caller, already verified by the auth layer."""

    user_id: str
    email: Optional[str] = None


class RawFile(BaseModel):
    """One uploaded buffer as delivered by the transport layer."""

    mime_type: str
    data: bytes
    filename: Optional[str] = None

    @property
    def size_bytes(self) -> int:
        return len(self.data)


class ExifData(BaseModel):
    datetime_original: Optional[datetime] = None
    camera_make: Optional[str] = None
    camera_model: Optional[str] = None
    orientation: Optional[int] = None


class OptimizedImage(BaseModel):
    data: bytes
    quality: int
    original_size: int

    @property
    def optimized_size(self) -> int:
        return len(self.data)


class Photo(BaseModel):
    id: str
    url: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    optimized: bool = True
    quality: int
    original_size: int
    optimized_size: int


class Album(BaseModel):
    id: str
    user_id: str
    album_name: str
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    photos: list[Photo] = Field(default_factory=list)

    def find_photo(self, photo_id: str) -> Optional[int]:
        """Return the index of ``photo_id`` within ``photos`` or None."""
        for index, photo in enumerate(self.photos):
            if photo.id == photo_id:
                return index
        return None


class IngestDetail(BaseModel):
    id: str
    original_size: int = Field(serialization_alias="originalSize")
    optimized_size: int = Field(serialization_alias="optimizedSize")
    quality: int


class IngestResult(BaseModel):
    uploaded: int
    details: list[IngestDetail] = Field(default_factory=list)

    def to_response(self) -> dict:
        return {
            "success": True,
            "uploaded": self.uploaded,
            "details": [detail.model_dump(by_alias=True) for detail in self.details],
        }
