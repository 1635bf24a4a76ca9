from __future__ import annotations

import logging
from datetime import datetime, timezone
from io import BytesIO
from typing import Any, Optional

from PIL import Image

from picture_organiser.core.models import ExifData

logger = logging.getLogger(__name__)

EXIF_IFD_TAG = 34665  # ExifOffset, holds DateTimeOriginal on camera files
DATETIME_ORIGINAL_TAG = 36867  # EXIF DateTimeOriginal
DATETIME_TAG = 306  # EXIF DateTime fallback
ORIENTATION_TAG = 274
MAKE_TAG = 271
MODEL_TAG = 272

UNKNOWN = "Unknown"
UNSPECIFIED = "Unspecified"
PARTIAL_METADATA_NOTE = "partial or failed metadata parse"

COLOR_SPACES = {
    "1": "b-w",
    "L": "b-w",
    "LA": "b-w",
    "P": "srgb",
    "RGB": "srgb",
    "RGBA": "srgb",
    "CMYK": "cmyk",
    "YCbCr": "ycbcr",
    "LAB": "lab",
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_datetime(value: object) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.strptime(str(value).strip("\x00 "), "%Y:%m:%d %H:%M:%S").replace(
            tzinfo=timezone.utc
        )
    except ValueError:
        return None


def parse_exif(raw: bytes) -> ExifData:
    """Parse a raw EXIF block. Raises on a malformed block."""
    exif = Image.Exif()
    exif.load(raw)
    exif_ifd = exif.get_ifd(EXIF_IFD_TAG)

    datetime_original = _parse_datetime(
        exif_ifd.get(DATETIME_ORIGINAL_TAG)
        or exif.get(DATETIME_ORIGINAL_TAG)
        or exif.get(DATETIME_TAG)
    )
    orientation_val = exif.get(ORIENTATION_TAG)
    return ExifData(
        datetime_original=datetime_original,
        camera_make=str(exif.get(MAKE_TAG) or "").strip("\x00 ") or None,
        camera_model=str(exif.get(MODEL_TAG) or "").strip("\x00 ") or None,
        orientation=orientation_val if isinstance(orientation_val, int) else None,
    )


def camera_fields(exif: ExifData) -> dict[str, Any]:
    """Flatten EXIF camera data, using a sentinel for each missing tag."""
    return {
        "make": exif.camera_make or UNKNOWN,
        "model": exif.camera_model or UNKNOWN,
        "created": exif.datetime_original.isoformat() if exif.datetime_original else _now_iso(),
        "orientation": exif.orientation if exif.orientation is not None else UNSPECIFIED,
    }


def partial_metadata(description: Optional[str]) -> dict[str, Any]:
    return {
        "description": description,
        "created": _now_iso(),
        "note": PARTIAL_METADATA_NOTE,
    }


def read_metadata(data: bytes, description: Optional[str] = None) -> dict[str, Any]:
    """
    Describe an encoded image for storage alongside it.

    Container fields (format, size, colour space) come from ``data`` itself, so
    they always match the stored image. Camera fields are added when an EXIF
    block is present. Metadata is enrichment only: any failure yields the minimal
    record from ``partial_metadata`` instead of raising.
    """
    try:
        with Image.open(BytesIO(data)) as img:
            metadata: dict[str, Any] = {
                "format": (img.format or "").lower(),
                "width": img.width,
                "height": img.height,
                "space": COLOR_SPACES.get(img.mode, img.mode.lower()),
                "channels": len(img.getbands()),
                "description": description,
            }
            raw_exif = img.info.get("exif")
        if raw_exif:
            metadata.update(camera_fields(parse_exif(raw_exif)))
    except Exception as exc:
        logger.warning("Metadata extraction failed: %s", exc)
        return partial_metadata(description)
    return metadata
