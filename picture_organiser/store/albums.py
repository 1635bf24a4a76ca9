from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from picture_organiser.core.errors import AlbumNotFound, PhotoNotFound
from picture_organiser.core.models import Album, Photo

from .document_store import AppendToArray, DocumentStore, PullFromArray, UpdateResult

logger = logging.getLogger(__name__)

ALBUMS = "albums"


def owner_filter(album_id: str, user_id: str) -> dict[str, Any]:
    return {"_id": album_id, "user_id": user_id}


def album_from_document(document: dict[str, Any]) -> Album:
    values = dict(document)
    values["id"] = values.pop("_id")
    return Album.model_validate(values)


class AlbumAccess:
    """Ownership checks made before any album mutation."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def owns(self, album_id: str, user_id: str) -> bool:
        return await self.store.find_one(ALBUMS, owner_filter(album_id, user_id)) is not None

    async def require(self, album_id: str, user_id: str) -> Album:
        document = await self.store.find_one(ALBUMS, owner_filter(album_id, user_id))
        if document is None:
            raise AlbumNotFound()
        return album_from_document(document)


async def create_album(
    store: DocumentStore,
    user_id: str,
    album_name: str,
    description: Optional[str] = None,
) -> Album:
    """Insert an empty album owned by ``user_id``."""
    album = Album(
        id=uuid4().hex,
        user_id=user_id,
        album_name=album_name,
        description=description,
        created_at=datetime.now(timezone.utc),
    )
    await store.insert_one(
        ALBUMS,
        {
            "_id": album.id,
            "user_id": album.user_id,
            "album_name": album.album_name,
            "description": album.description,
            "created_at": album.created_at,
            "photos": [],
        },
    )
    return album


async def append_photos(
    store: DocumentStore, album_id: str, user_id: str, photos: list[Photo]
) -> UpdateResult:
    """Append ``photos`` to the album only if it is owned by ``user_id``."""
    return await store.update_one(
        ALBUMS,
        owner_filter(album_id, user_id),
        AppendToArray(field="photos", items=[photo.model_dump() for photo in photos]),
    )


async def remove_photo(store: DocumentStore, album_id: str, user_id: str, photo_id: str) -> None:
    album = await AlbumAccess(store).require(album_id, user_id)
    if album.find_photo(photo_id) is None:
        raise PhotoNotFound()

    result = await store.update_one(
        ALBUMS,
        owner_filter(album_id, user_id),
        PullFromArray(field="photos", match={"id": photo_id}),
    )
    if result.matched_count == 0:
        # Album deleted between the ownership check and the write.
        raise AlbumNotFound()
    if result.modified_count == 0:
        raise PhotoNotFound()
    logger.info("Removed photo %s from album %s", photo_id, album_id)
