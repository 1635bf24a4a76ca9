from __future__ import annotations

from picture_organiser.core.errors import (
    AlbumNotFound,
    AlbumWriteRejected,
    AuthorizationError,
    FileTooLarge,
    OptimizationFailed,
    PersistenceError,
    ProcessingError,
    StoreFault,
    ValidationError,
)
from picture_organiser.core.models import Album, IngestDetail, IngestResult, Photo


def test_error_status_codes() -> None:
    assert ValidationError().status_code == 400
    assert FileTooLarge().status_code == 400
    assert AuthorizationError().status_code == 401
    assert AlbumNotFound().status_code == 404
    assert AlbumWriteRejected().status_code == 404
    assert StoreFault().status_code == 500
    assert isinstance(AlbumWriteRejected(), PersistenceError)
    assert isinstance(OptimizationFailed("boom"), ProcessingError)
    assert OptimizationFailed("boom").message == "boom"


def test_ingest_result_response_uses_wire_names() -> None:
    result = IngestResult(
        uploaded=1,
        details=[IngestDetail(id="p1", original_size=100, optimized_size=40, quality=60)],
    )
    assert result.to_response() == {
        "success": True,
        "uploaded": 1,
        "details": [{"id": "p1", "originalSize": 100, "optimizedSize": 40, "quality": 60}],
    }


def test_album_find_photo() -> None:
    photos = [
        Photo(id=pid, url="data:image/jpeg;base64,", quality=80, original_size=1, optimized_size=1)
        for pid in ("a", "b")
    ]
    album = Album(id="alb", user_id="u", album_name="Trip", photos=photos)
    assert album.find_photo("b") == 1
    assert album.find_photo("zzz") is None
