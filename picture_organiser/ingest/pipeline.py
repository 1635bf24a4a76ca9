from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence, TypeVar
from uuid import uuid4

from picture_organiser.core.env import env_int
from picture_organiser.core.errors import (
    AlbumWriteRejected,
    FileTooLarge,
    InvalidFileType,
    NoFilesProvided,
    ProcessingError,
)
from picture_organiser.core.models import IngestDetail, IngestResult, Photo, RawFile
from picture_organiser.store import AlbumAccess, DocumentStore, append_photos

from .exif_reader import read_metadata
from .optimizer import optimize_image, to_data_url
from .policy import MIB, OptimizationPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BATCH_SIZE = 3
IMAGE_MIME_PREFIX = "image/"


def validate_upload(mime_type: str, size: int, policy: OptimizationPolicy) -> None:
    """Reject non-images and oversized uploads before any decoding."""
    if not mime_type.startswith(IMAGE_MIME_PREFIX):
        raise InvalidFileType()
    if size > policy.max_upload_bytes:
        raise FileTooLarge(
            f"Image is too large (max {policy.max_upload_bytes / MIB:g}MB before processing)"
        )


def validate_file(file: RawFile, policy: OptimizationPolicy) -> None:
    validate_upload(file.mime_type, file.size_bytes, policy)


def chunked(items: Sequence[T], size: int) -> list[list[T]]:
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def build_photo(file: RawFile, description: Optional[str], policy: OptimizationPolicy) -> Photo:
    """Optimise one upload and wrap it as a Photo with a freshly generated id."""
    optimized = optimize_image(file.data, policy)
    return Photo(
        id=new_photo_id(),
        url=to_data_url(optimized.data),
        metadata=read_metadata(optimized.data, description),
        optimized=True,
        quality=optimized.quality,
        original_size=optimized.original_size,
        optimized_size=optimized.optimized_size,
    )


def new_photo_id() -> str:
    return uuid4().hex


class IngestionPipeline:
    """Turn raw uploads into optimised photos appended to their album."""

    def __init__(
        self,
        store: DocumentStore,
        policy: OptimizationPolicy | None = None,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        access: AlbumAccess | None = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.store = store
        self.policy = policy or OptimizationPolicy()
        self.batch_size = batch_size
        self.access = access or AlbumAccess(store)

    @classmethod
    def from_env(cls, store: DocumentStore) -> IngestionPipeline:
        return cls(
            store,
            OptimizationPolicy.from_env(),
            batch_size=env_int("UPLOAD_BATCH_SIZE", DEFAULT_BATCH_SIZE),
        )

    async def ingest(
        self,
        album_id: str,
        owner_id: str,
        description: Optional[str],
        files: Sequence[RawFile],
    ) -> IngestResult:
        if not files:
            raise NoFilesProvided()
        for file in files:
            validate_file(file, self.policy)
        if not await self.access.owns(album_id, owner_id):
            raise AlbumWriteRejected()

        logger.info("Ingest: optimising %d file(s) for album %s", len(files), album_id)
        try:
            photos = await asyncio.gather(
                *(asyncio.to_thread(build_photo, file, description, self.policy) for file in files)
            )
        except ProcessingError as exc:
            logger.error("Ingest: failed to process image for album %s: %s", album_id, exc)
            raise

        await self._persist(album_id, owner_id, list(photos))
        logger.info("Ingest: stored %d photo(s) in album %s", len(photos), album_id)
        return IngestResult(
            uploaded=len(photos),
            details=[
                IngestDetail(
                    id=photo.id,
                    original_size=photo.original_size,
                    optimized_size=photo.optimized_size,
                    quality=photo.quality,
                )
                for photo in photos
            ],
        )

    async def _persist(self, album_id: str, owner_id: str, photos: list[Photo]) -> None:
        # Batches already written stay written if a later one is rejected.
        batches = chunked(photos, self.batch_size)
        for index, batch in enumerate(batches, start=1):
            result = await append_photos(self.store, album_id, owner_id, batch)
            if result.modified_count == 0:
                logger.error(
                    "Ingest: batch %d/%d rejected for album %s", index, len(batches), album_id
                )
                raise AlbumWriteRejected()
