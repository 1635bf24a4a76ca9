#!/usr/bin/env python
"""
Run the ingestion pipeline over local image files into an existing album.

Usage:
  python scripts/upload.py ALBUM_ID USER_ID photo1.jpg photo2.png --description "Beach"
  DATABASE_URL=sqlite+pysqlite:///./picture_organiser.db python scripts/upload.py ...
"""
from __future__ import annotations

import argparse
import asyncio
import json
import mimetypes
from pathlib import Path

from picture_organiser.core.env import configure_logging, database_url, load_dotenv_if_present
from picture_organiser.core.errors import PictureOrganiserError
from picture_organiser.core.models import RawFile
from picture_organiser.ingest import IngestionPipeline
from picture_organiser.store import DocumentStore


def _read_file(path: Path) -> RawFile:
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {path}")
    mime_type, _ = mimetypes.guess_type(path.name)
    return RawFile(
        mime_type=mime_type or "application/octet-stream",
        data=path.read_bytes(),
        filename=path.name,
    )


async def _run(args: argparse.Namespace) -> dict:
    store = DocumentStore(database_url())
    try:
        pipeline = IngestionPipeline.from_env(store)
        files = [_read_file(path) for path in args.files]
        result = await pipeline.ingest(args.album_id, args.user_id, args.description, files)
    finally:
        store.close()
    return result.to_response()


def main() -> None:
    parser = argparse.ArgumentParser(description="Upload image files into an album.")
    parser.add_argument("album_id")
    parser.add_argument("user_id", help="Owner of the album")
    parser.add_argument("files", type=Path, nargs="+", help="Image files to upload")
    parser.add_argument("--description", default=None)
    args = parser.parse_args()

    load_dotenv_if_present()
    configure_logging()
    try:
        response = asyncio.run(_run(args))
    except PictureOrganiserError as exc:
        raise SystemExit(f"Upload failed ({exc.status_code}): {exc.message}") from exc
    print(json.dumps(response, indent=2))


if __name__ == "__main__":
    main()
