"""Catalog store: durable title -> playlist path mapping in SQLite."""

import logging
import threading
from typing import List

from sqlalchemy import Column, MetaData, String, Table, create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from vodmirror.errors import CatalogError, DuplicateTitleError, VideoNotFoundError
from vodmirror.models import CatalogEntry

logger = logging.getLogger(__name__)

metadata = MetaData()

videos = Table(
    "videos",
    metadata,
    Column("title", String, primary_key=True),
    Column("path", String, nullable=False),
)


class CatalogStore:
    """
    Thread-safe catalog of playlists.

    Every public operation holds the store lock for its own duration only;
    callers needing check-then-insert should use add_if_absent.
    """

    def __init__(self, engine: Engine):
        self._engine = engine
        self._lock = threading.Lock()

    @classmethod
    def open(cls, database_url: str) -> "CatalogStore":
        """Create the engine and the videos table if missing."""
        connect_args = {}
        if database_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        try:
            engine = create_engine(database_url, future=True, connect_args=connect_args)
            metadata.create_all(engine)
        except SQLAlchemyError as e:
            raise CatalogError(f"Cannot open catalog at {database_url}: {e}") from e
        return cls(engine)

    def close(self):
        self._engine.dispose()

    # ---------------------------------------------------------------------------
    # Queries
    # ---------------------------------------------------------------------------

    def exists(self, title: str) -> bool:
        with self._lock:
            return self._exists(title)

    def lookup(self, title: str) -> str:
        """Return the stored path for title, or raise VideoNotFoundError."""
        with self._lock:
            try:
                with self._engine.connect() as conn:
                    path = conn.execute(
                        select(videos.c.path).where(videos.c.title == title)
                    ).scalar_one_or_none()
            except SQLAlchemyError as e:
                raise CatalogError(f"Error looking up {title}: {e}") from e
        if path is None:
            raise VideoNotFoundError(title)
        return path

    def list_titles(self) -> List[str]:
        with self._lock:
            try:
                with self._engine.connect() as conn:
                    return list(conn.execute(select(videos.c.title)).scalars())
            except SQLAlchemyError as e:
                raise CatalogError(f"Error listing titles: {e}") from e

    def entries(self) -> List[CatalogEntry]:
        with self._lock:
            try:
                with self._engine.connect() as conn:
                    rows = conn.execute(select(videos.c.title, videos.c.path)).all()
            except SQLAlchemyError as e:
                raise CatalogError(f"Error reading catalog: {e}") from e
        return [CatalogEntry(title=row.title, path=row.path) for row in rows]

    # ---------------------------------------------------------------------------
    # Inserts
    # ---------------------------------------------------------------------------

    def insert(self, title: str, path: str):
        """Add an entry. Raises DuplicateTitleError if title is present."""
        with self._lock:
            self._insert(title, path)

    def add_if_absent(self, title: str, path: str) -> bool:
        """
        Insert unless the title is already cataloged.

        Returns True when the entry was added.
        """
        with self._lock:
            if self._exists(title):
                logger.info("%s is already in the catalog", title)
                return False
            self._insert(title, path)
        logger.info("Added %s to the catalog (%s)", title, path)
        return True

    # Callers hold self._lock.

    def _exists(self, title: str) -> bool:
        try:
            with self._engine.connect() as conn:
                row = conn.execute(
                    select(videos.c.title).where(videos.c.title == title)
                ).first()
        except SQLAlchemyError as e:
            raise CatalogError(f"Error checking if {title} exists: {e}") from e
        return row is not None

    def _insert(self, title: str, path: str):
        try:
            with self._engine.begin() as conn:
                conn.execute(videos.insert().values(title=title, path=path))
        except IntegrityError as e:
            raise DuplicateTitleError(title) from e
        except SQLAlchemyError as e:
            raise CatalogError(f"Error inserting {title}: {e}") from e
