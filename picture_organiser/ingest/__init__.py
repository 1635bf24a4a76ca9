"""Upload ingestion: validation, adaptive re-encoding, metadata and batched persistence."""

from .exif_reader import PARTIAL_METADATA_NOTE, parse_exif, read_metadata
from .optimizer import optimize_image, render_jpeg, step_down, to_data_url
from .pipeline import IngestionPipeline, build_photo, chunked, validate_file, validate_upload
from .policy import MIB, OptimizationPolicy

__all__ = [
    "MIB",
    "PARTIAL_METADATA_NOTE",
    "IngestionPipeline",
    "OptimizationPolicy",
    "build_photo",
    "chunked",
    "optimize_image",
    "parse_exif",
    "read_metadata",
    "render_jpeg",
    "step_down",
    "to_data_url",
    "validate_file",
    "validate_upload",
]
