from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi import Request
from pathlib import Path
from typing import Generator

from src.shortlink.core.config import logger
from src.shortlink.core.exceptions import StorageUnavailableError
from src.shortlink.db.base import Base
from src.shortlink.models.link import Link


def database_url(location: str) -> str:
    """
    Turn a configured database location into an SQLAlchemy URL.

    A bare filesystem path is treated as an SQLite database file.
    """
    if location.startswith("sqlite:"):
        return location
    return f"sqlite:///{Path(location).expanduser()}"


def check_schema(engine: Engine) -> None:
    """
    Make sure an existing ``links`` table carries every column the model needs.

    Raises:
        StorageUnavailableError: If a required column is missing
    """
    existing = {column["name"] for column in inspect(engine).get_columns(Link.__tablename__)}
    missing = [column.name for column in Link.__table__.columns if column.name not in existing]
    if missing:
        raise StorageUnavailableError(
            f"Table '{Link.__tablename__}' is incompatible, missing columns: {', '.join(missing)}"
        )


def open_db(location: str) -> sessionmaker:
    """
    Open or create the link database.

    Args:
        location: Path of the SQLite file, or a full sqlite:// URL

    Returns:
        Session factory bound to the opened database

    Raises:
        StorageUnavailableError: If the database cannot be opened, created or
            has an incompatible schema
    """
    try:
        url = make_url(database_url(location))
    except ArgumentError as e:
        raise StorageUnavailableError(f"Invalid database location {location!r}: {e}") from e

    engine_options = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        # One shared connection, otherwise every pooled connection sees its own empty database.
        engine_options["poolclass"] = StaticPool
    else:
        parent = Path(url.database).parent
        if not parent.is_dir():
            raise StorageUnavailableError(f"Database directory {str(parent)!r} does not exist")

    engine = create_engine(url, **engine_options)

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA busy_timeout = 5000")
        cursor.close()

    try:
        Base.metadata.create_all(bind=engine)
        check_schema(engine)
    except SQLAlchemyError as e:
        engine.dispose()
        raise StorageUnavailableError(f"Could not open database at {location!r}: {e}") from e
    except StorageUnavailableError:
        engine.dispose()
        raise

    logger.info(f"Opened link database at {url.database}")
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db(request: Request) -> Generator:
    SessionLocal = getattr(request.app.state, "session_factory", None)
    if SessionLocal is None:
        raise RuntimeError(
            "Database session not initialized. Make sure the app was built with create_app()."
        )

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
