"""Document store and album persistence for Picture Organiser."""

from .albums import (
    ALBUMS,
    AlbumAccess,
    album_from_document,
    append_photos,
    create_album,
    owner_filter,
    remove_photo,
)
from .document_store import (
    AppendToArray,
    DocumentStore,
    PullFromArray,
    SetField,
    UpdateResult,
)
from .schema import AlbumRow, Base, create_engine_from_url, init_db, session_factory

__all__ = [
    "ALBUMS",
    "AlbumAccess",
    "AlbumRow",
    "AppendToArray",
    "Base",
    "DocumentStore",
    "PullFromArray",
    "SetField",
    "UpdateResult",
    "album_from_document",
    "append_photos",
    "create_album",
    "create_engine_from_url",
    "init_db",
    "owner_filter",
    "remove_photo",
    "session_factory",
]
