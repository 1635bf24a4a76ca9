from __future__ import annotations

import asyncio
from io import BytesIO
from typing import Callable, Optional

import pytest
from PIL import Image

from picture_organiser.core.models import Album, RawFile
from picture_organiser.store import DocumentStore, create_album


def _encode(
    size: tuple[int, int],
    color: str,
    fmt: str,
    mode: str,
    exif: Optional[Image.Exif | bytes],
) -> bytes:
    img = Image.new(mode, size, color=color)
    buf = BytesIO()
    if exif is not None:
        img.save(buf, format=fmt, exif=exif)
    else:
        img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def make_image() -> Callable[..., bytes]:
    """Factory for in-memory test images."""

    def _make(
        size: tuple[int, int] = (32, 24),
        *,
        color: str = "red",
        fmt: str = "JPEG",
        mode: str = "RGB",
        exif: Optional[Image.Exif | bytes] = None,
    ) -> bytes:
        return _encode(size, color, fmt, mode, exif)

    return _make


@pytest.fixture
def camera_exif() -> Image.Exif:
    exif = Image.Exif()
    exif[271] = "TestMake"
    exif[272] = "TestModel"
    exif[36867] = "2021:01:02 03:04:05"
    return exif


@pytest.fixture
def make_upload(make_image) -> Callable[..., RawFile]:
    def _make(mime_type: str = "image/jpeg", **kwargs) -> RawFile:
        return RawFile(mime_type=mime_type, data=make_image(**kwargs))

    return _make


@pytest.fixture
def store() -> DocumentStore:
    store = DocumentStore("sqlite+pysqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def album(store: DocumentStore) -> Album:
    return asyncio.run(create_album(store, "user-1", "Vacation 2025", "Photos from Hawaii"))


@pytest.fixture
def load_album(store: DocumentStore) -> Callable[[str], Optional[dict]]:
    def _load(album_id: str) -> Optional[dict]:
        return asyncio.run(store.find_one("albums", {"_id": album_id}))

    return _load


@pytest.fixture
def file_store(tmp_path) -> DocumentStore:
    store = DocumentStore(f"sqlite+pysqlite:///{tmp_path / 'albums.db'}")
    yield store
    store.close()
