from __future__ import annotations

import sqlite3

from sqlalchemy import Engine, MetaData, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool


def _create_naming_convention() -> dict[str, str]:
    return {
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }


metadata_obj = MetaData(naming_convention=_create_naming_convention())


class Base(DeclarativeBase):
    metadata = metadata_obj


def open_memory_connection(*, image: bytes | None = None) -> sqlite3.Connection:
    """
    Open an in-memory SQLite database, optionally seeded from a serialized image.

    The connection is shared by the threadpool workers that run store operations;
    the store serializes access, so SQLite's same-thread check is disabled.
    """

    connection = sqlite3.connect(":memory:", check_same_thread=False)
    try:
        if image is not None:
            connection.deserialize(image)
        connection.execute("PRAGMA foreign_keys = ON")
    except Exception:
        connection.close()
        raise
    return connection


def serialize_connection(connection: sqlite3.Connection) -> bytes:
    return connection.serialize()


def create_engine_for_connection(*, connection: sqlite3.Connection) -> Engine:
    # StaticPool hands SQLAlchemy the very same DBAPI connection every time, so the
    # ORM and the image serializer always see one database.
    return create_engine(
        "sqlite://",
        creator=lambda: connection,
        poolclass=StaticPool,
    )


def create_sessionmaker(*, engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(engine, expire_on_commit=False)
