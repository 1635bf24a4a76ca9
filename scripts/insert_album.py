#!/usr/bin/env python
"""
Create an empty album owned by a user id.

Usage:
  python scripts/insert_album.py USER_ID "Vacation 2025" --description "Photos from Hawaii"
"""
from __future__ import annotations

import argparse
import asyncio

from picture_organiser.core.env import database_url, load_dotenv_if_present
from picture_organiser.store import DocumentStore, create_album


async def _run(user_id: str, name: str, description: str | None) -> str:
    store = DocumentStore(database_url())
    try:
        album = await create_album(store, user_id, name, description)
    finally:
        store.close()
    return album.id


def main() -> None:
    parser = argparse.ArgumentParser(description="Insert an album for a user.")
    parser.add_argument("user_id", help="Owner user id")
    parser.add_argument("name", help="Album name")
    parser.add_argument("--description", default=None)
    args = parser.parse_args()

    load_dotenv_if_present()
    album_id = asyncio.run(_run(args.user_id, args.name, args.description))
    print(f"Album inserted with id: {album_id}")


if __name__ == "__main__":
    main()
