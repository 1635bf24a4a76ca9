from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Callable, NamedTuple, TypeVar, Union
from uuid import uuid4

from pydantic import BaseModel, Field
from sqlalchemy import Column, Select, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from picture_organiser.core.errors import StoreFault

from .schema import AlbumRow, Base, init_db, session_factory

logger = logging.getLogger(__name__)

T = TypeVar("T")

COLLECTIONS: dict[str, type[Base]] = {
    "albums": AlbumRow,
}


class AppendToArray(BaseModel):
    """Append ``items`` to the end of an array field, preserving their order."""

    field: str
    items: list[Any] = Field(default_factory=list)


class PullFromArray(BaseModel):
    """Remove every array item whose keys match all of ``match``."""

    field: str
    match: dict[str, Any]


class SetField(BaseModel):
    field: str
    value: Any = None


Update = Union[AppendToArray, PullFromArray, SetField]


class UpdateResult(NamedTuple):
    matched_count: int
    modified_count: int


def _model(collection: str) -> type[Base]:
    try:
        return COLLECTIONS[collection]
    except KeyError:
        raise ValueError(f"Unknown collection: {collection}") from None


def _column(model: type[Base], key: str) -> Column:
    name = "id" if key == "_id" else key
    column = model.__table__.columns.get(name)
    if column is None:
        raise ValueError(f"Unknown field {key!r} for collection {model.__tablename__}")
    return column


def _select(model: type[Base], filter: dict[str, Any]) -> Select:
    stmt = select(model)
    for key, value in filter.items():
        stmt = stmt.where(_column(model, key) == value)
    return stmt.limit(1)


def _to_document(row: Base) -> dict[str, Any]:
    document: dict[str, Any] = {"_id": row.id}
    for column in row.__table__.columns:
        if column.key == "id":
            continue
        value = getattr(row, column.key)
        document[column.key] = list(value) if isinstance(value, list) else value
    return document


def _matches(item: Any, match: dict[str, Any]) -> bool:
    return isinstance(item, dict) and all(item.get(k) == v for k, v in match.items())


class DocumentStore:
    """Find/update/delete-by-filter access to documents kept in SQLAlchemy tables.

    The engine is created lazily on first use and reused for the lifetime of the
    store. Each operation runs in its own transaction on a worker thread, so the
    async methods never block the event loop.
    """

    def __init__(self, database_url: str | Engine) -> None:
        self._target = database_url
        self._engine: Engine | None = None
        self._sessions: sessionmaker[Session] | None = None
        self._connect_lock = threading.Lock()
        # SQLite ignores SELECT ... FOR UPDATE, so read-modify-write updates are
        # serialised here instead.
        self._write_lock: threading.Lock | None = None

    @property
    def connected(self) -> bool:
        return self._engine is not None

    def _open(self) -> tuple[Engine, sessionmaker[Session]]:
        with self._connect_lock:
            if self._engine is None or self._sessions is None:
                engine = init_db(self._target)
                self._write_lock = threading.Lock() if engine.dialect.name == "sqlite" else None
                self._sessions = session_factory(engine)
                self._engine = engine
                logger.info(
                    "Store: connected to %s", engine.url.render_as_string(hide_password=True)
                )
            return self._engine, self._sessions

    def connect(self) -> Engine:
        return self._open()[0]

    def ping(self) -> bool:
        """Return True when the database answers a trivial query."""
        try:
            with self.connect().connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.warning("Store: health check failed: %s", exc)
            return False
        return True

    def close(self) -> None:
        with self._connect_lock:
            if self._engine is not None:
                self._engine.dispose()
            self._engine = None
            self._sessions = None

    def _session(self) -> Session:
        return self._open()[1]()

    def _call(self, operation: Callable[..., T], *args: Any) -> T:
        self._open()
        lock = self._write_lock
        if lock is None:
            return operation(*args)
        with lock:
            return operation(*args)

    async def _run(self, operation: Callable[..., T], *args: Any) -> T:
        try:
            return await asyncio.to_thread(self._call, operation, *args)
        except SQLAlchemyError as exc:
            logger.error("Store: %s failed: %s", operation.__name__.lstrip("_"), exc)
            raise StoreFault(f"Store operation failed ({exc.__class__.__name__})") from exc

    async def find_one(self, collection: str, filter: dict[str, Any]) -> dict[str, Any] | None:
        return await self._run(self._find_one, collection, filter)

    async def insert_one(self, collection: str, document: dict[str, Any]) -> str:
        return await self._run(self._insert_one, collection, document)

    async def update_one(
        self, collection: str, filter: dict[str, Any], update: Update
    ) -> UpdateResult:
        return await self._run(self._update_one, collection, filter, update)

    async def delete_one(self, collection: str, filter: dict[str, Any]) -> int:
        return await self._run(self._delete_one, collection, filter)

    def _find_one(self, collection: str, filter: dict[str, Any]) -> dict[str, Any] | None:
        model = _model(collection)
        with self._session() as session:
            row = session.scalars(_select(model, filter)).first()
            return _to_document(row) if row is not None else None

    def _insert_one(self, collection: str, document: dict[str, Any]) -> str:
        model = _model(collection)
        values = dict(document)
        doc_id = str(values.pop("_id", None) or uuid4().hex)
        for key in values:
            _column(model, key)
        with self._session() as session, session.begin():
            session.add(model(id=doc_id, **values))
        return doc_id

    def _update_one(
        self, collection: str, filter: dict[str, Any], update: Update
    ) -> UpdateResult:
        model = _model(collection)
        key = _column(model, update.field).key
        with self._session() as session, session.begin():
            row = session.scalars(_select(model, filter).with_for_update()).first()
            if row is None:
                return UpdateResult(0, 0)
            current = getattr(row, key)
            if isinstance(update, SetField):
                if current == update.value:
                    return UpdateResult(1, 0)
                setattr(row, key, update.value)
                return UpdateResult(1, 1)

            if not isinstance(current, list):
                raise ValueError(f"Field {update.field!r} is not an array")
            if isinstance(update, AppendToArray):
                if not update.items:
                    return UpdateResult(1, 0)
                setattr(row, key, current + list(update.items))
                return UpdateResult(1, 1)

            remaining = [item for item in current if not _matches(item, update.match)]
            if len(remaining) == len(current):
                return UpdateResult(1, 0)
            setattr(row, key, remaining)
            return UpdateResult(1, 1)

    def _delete_one(self, collection: str, filter: dict[str, Any]) -> int:
        model = _model(collection)
        with self._session() as session, session.begin():
            row = session.scalars(_select(model, filter)).first()
            if row is None:
                return 0
            session.delete(row)
            return 1
