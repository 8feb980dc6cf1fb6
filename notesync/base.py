"""NoteSync Base."""

import logging
import os
import typing as t

import sqlalchemy as sa

from .note import Note, note_table
from .querybuilder import NoteFilter, QueryBuilder
from .settings import (
    NOTE_SCHEMA,
    NOTE_TABLE,
    PG_SSLMODE,
    PG_SSLROOTCERT,
    SQLALCHEMY_MAX_OVERFLOW,
    SQLALCHEMY_POOL_PRE_PING,
    SQLALCHEMY_POOL_RECYCLE,
    SQLALCHEMY_POOL_SIZE,
    SQLALCHEMY_POOL_TIMEOUT,
    SQLALCHEMY_USE_NULLPOOL,
)
from .urls import get_database_url
from .utils import compiled_query

logger = logging.getLogger(__name__)

SSL_MODES = (
    "allow",
    "disable",
    "prefer",
    "require",
    "verify-ca",
    "verify-full",
)


class Base(object):
    """Read access to the note table."""

    def __init__(
        self,
        database: str,
        verbose: bool = False,
        engine: t.Optional[sa.engine.Engine] = None,
        schema: t.Optional[str] = NOTE_SCHEMA,
        table: str = NOTE_TABLE,
        **kwargs,
    ) -> None:
        """Initialize the base class constructor."""
        self.__database: str = database
        self.__engine: sa.engine.Engine = engine or _pg_engine(
            database, echo=False, **kwargs
        )
        self.model: sa.Table = note_table(schema=schema, name=table)
        self.query_builder: QueryBuilder = QueryBuilder(self.model)
        self.verbose: bool = verbose

    def connect(self) -> None:
        """Connect to database."""
        try:
            conn = self.engine.connect()
            conn.close()
        except Exception as e:
            logger.exception(f"Cannot connect to database: {e}")
            raise

    @property
    def database(self) -> str:
        """str: Get the database name."""
        return self.engine.url.database or self.__database

    @property
    def engine(self) -> sa.engine.Engine:
        """Get the database engine."""
        return self.__engine

    def dispose(self) -> None:
        self.__engine.dispose()

    # Notes...
    def fetch_notes(
        self,
        note_filter: NoteFilter,
        cursor: str,
        limit: t.Optional[int] = None,
    ) -> t.List[Note]:
        """
        Fetch the next page of notes after the cursor.

        Args:
            note_filter (NoteFilter): the notes to sync.
            cursor (str): exclusive lower bound on the note id.
            limit (Optional[int]): page size, defaults to the batch size.

        Returns:
            At most limit notes ordered by id.

        Raises:
            MalformedRecordError: if a note has a null required column.
        """
        statement: sa.sql.Select = self.query_builder.select(
            note_filter, cursor, limit=limit
        )
        rows: t.List[sa.engine.Row] = self.fetchall(
            statement, label="fetch_notes"
        )
        return [Note.from_row(row._mapping) for row in rows]

    def count_notes(self, note_filter: NoteFilter) -> int:
        """Count every note matching the filter."""
        return self.fetchcount(
            self.query_builder.count(note_filter), label="count_notes"
        )

    # Querying...
    def fetchall(
        self,
        statement: sa.sql.Select,
        label: t.Optional[str] = None,
        literal_binds: bool = False,
    ) -> t.List[sa.engine.Row]:
        """Fetch all rows from a query statement."""
        if self.verbose:
            compiled_query(statement, label=label, literal_binds=literal_binds)

        with self.engine.connect() as conn:
            return conn.execute(statement).fetchall()

    def fetchcount(
        self,
        statement: sa.sql.Select,
        label: t.Optional[str] = None,
    ) -> int:
        if self.verbose:
            compiled_query(statement, label=label)

        with self.engine.connect() as conn:
            return conn.execute(statement).scalar() or 0


# helper methods


def _pg_engine(
    database: str,
    user: t.Optional[str] = None,
    host: t.Optional[str] = None,
    password: t.Optional[str] = None,
    port: t.Optional[int] = None,
    echo: bool = False,
    sslmode: t.Optional[str] = None,
    sslrootcert: t.Optional[str] = None,
    url: t.Optional[str] = None,
) -> sa.engine.Engine:
    connect_args: dict = {}
    sslmode = sslmode or PG_SSLMODE
    sslrootcert = sslrootcert or PG_SSLROOTCERT

    if sslmode:
        if sslmode not in SSL_MODES:
            raise ValueError(f'Invalid sslmode: "{sslmode}"')
        connect_args["sslmode"] = sslmode

    if sslrootcert:
        if not os.path.exists(sslrootcert):
            raise IOError(
                f'"{sslrootcert}" not found.\n'
                f"Provide a valid file containing SSL certificate "
                f"authority (CA) certificate(s)."
            )
        connect_args["sslrootcert"] = sslrootcert

    if url is None:
        url: str = get_database_url(
            database,
            user=user,
            host=host,
            password=password,
            port=port,
        )

    # Use NullPool for testing to avoid connection exhaustion
    if SQLALCHEMY_USE_NULLPOOL:
        from sqlalchemy.pool import NullPool

        return sa.create_engine(
            url,
            echo=echo,
            connect_args=connect_args,
            poolclass=NullPool,
        )

    return sa.create_engine(
        url,
        echo=echo,
        connect_args=connect_args,
        pool_size=SQLALCHEMY_POOL_SIZE,
        max_overflow=SQLALCHEMY_MAX_OVERFLOW,
        pool_pre_ping=SQLALCHEMY_POOL_PRE_PING,
        pool_recycle=SQLALCHEMY_POOL_RECYCLE,
        pool_timeout=SQLALCHEMY_POOL_TIMEOUT,
    )
