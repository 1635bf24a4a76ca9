from __future__ import annotations

import base64
import logging
from io import BytesIO
from typing import Callable, Optional

from PIL import Image, ImageOps

from picture_organiser.core.errors import OptimizationFailed
from picture_organiser.core.models import OptimizedImage

from .exif_reader import ORIENTATION_TAG, parse_exif
from .policy import MIB, OptimizationPolicy

logger = logging.getLogger(__name__)

JPEG_MIME_TYPE = "image/jpeg"


def _upright(image: Image.Image) -> Image.Image:
    try:
        return ImageOps.exif_transpose(image)
    except (SyntaxError, ValueError, KeyError) as exc:
        logger.debug("Skipping orientation fix: %s", exc)
        return image.copy()


def _carried_exif(raw: Optional[bytes], image: Image.Image) -> Optional[bytes]:
    """EXIF block to write into the re-encoded image.

    A readable block is re-serialised without the orientation tag, which is
    already applied to the pixels. An unreadable block is passed through
    unchanged so metadata extraction reports the failed parse.
    """
    if not raw:
        return None
    try:
        parse_exif(raw)
    except Exception as exc:
        logger.warning("Carrying unreadable EXIF block through unchanged: %s", exc)
        return raw
    exif = image.getexif()
    exif.pop(ORIENTATION_TAG, None)
    return exif.tobytes() if len(exif) else None


def render_jpeg(data: bytes, quality: int, max_dimension: int) -> bytes:
    """Decode, rotate upright, fit inside ``max_dimension`` and encode a progressive JPEG."""
    with Image.open(BytesIO(data)) as source:
        raw_exif = source.info.get("exif")
        image = _upright(source)
    exif = _carried_exif(raw_exif, image)
    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    # thumbnail() only ever shrinks, keeping the aspect ratio.
    image.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)

    options: dict = {"format": "JPEG", "quality": quality, "progressive": True, "optimize": True}
    if exif:
        options["exif"] = exif
    buf = BytesIO()
    image.save(buf, **options)
    return buf.getvalue()


def step_down(encode: Callable[[int], bytes], policy: OptimizationPolicy) -> tuple[bytes, int]:
    """
    Encode at decreasing quality until the output fits ``policy.size_budget``.

    Returns the encoded bytes and the quality that produced them. A fault on an
    intermediate attempt is logged and retried at the same quality; a fault on the
    last attempt, or a result still over budget, raises OptimizationFailed.
    """
    quality = policy.initial_quality
    for attempt in range(1, policy.max_attempts + 1):
        try:
            output = encode(quality)
        except Exception as exc:
            if attempt >= policy.max_attempts:
                raise OptimizationFailed(f"Failed to process image: {exc}") from exc
            logger.warning(
                "Image processing attempt %d/%d failed: %s", attempt, policy.max_attempts, exc
            )
            continue
        if len(output) <= policy.size_budget:
            return output, quality
        logger.info(
            "Encoded %d bytes at quality %d, over the %d byte budget",
            len(output),
            quality,
            policy.size_budget,
        )
        quality = policy.next_quality(quality)
    raise OptimizationFailed(
        f"Could not optimize image below {policy.size_budget / MIB:g}MB"
    )


def optimize_image(data: bytes, policy: OptimizationPolicy) -> OptimizedImage:
    output, quality = step_down(
        lambda quality: render_jpeg(data, quality, policy.max_dimension), policy
    )
    return OptimizedImage(data=output, quality=quality, original_size=len(data))


def to_data_url(data: bytes, mime_type: str = JPEG_MIME_TYPE) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"
