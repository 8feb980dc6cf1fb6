"""NoteSync QueryBuilder."""

import typing as t
from dataclasses import dataclass
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from .constants import HOST_PATTERN, NOTE_COLUMNS, VISIBILITIES
from .cursor import encode
from .exc import FilterError, InvalidHostError
from .settings import BATCH_SIZE


def validate_host(host: str) -> str:
    """Return the lowercased host or raise if it is not a hostname."""
    if not isinstance(host, str) or not HOST_PATTERN.match(host):
        raise InvalidHostError(f"Invalid host: {host!r}")
    return host.lower()


@dataclass(frozen=True)
class NoteFilter:
    """
    The notes to sync.

    Attributes:
        since (Optional[datetime]): only notes created at or after this instant.
        until (Optional[datetime]): only notes created before this instant.
        hosts (Tuple[str, ...]): remote hosts synced along with local notes,
            empty for local notes only.
        batch_size (int): notes fetched and published per batch.
    """

    since: t.Optional[datetime] = None
    until: t.Optional[datetime] = None
    hosts: t.Tuple[str, ...] = ()
    batch_size: int = BATCH_SIZE

    def __post_init__(self):
        hosts: t.List[str] = []
        for host in self.hosts or ():
            host = validate_host(host)
            if host not in hosts:
                hosts.append(host)
        object.__setattr__(self, "hosts", tuple(hosts))

        if (
            isinstance(self.batch_size, bool)
            or not isinstance(self.batch_size, int)
            or self.batch_size < 1
        ):
            raise FilterError(
                f"Batch size must be a positive integer: {self.batch_size!r}"
            )

        # raises CursorRangeError for instants outside the cursor range
        lower: t.Optional[str] = self.lower_bound
        upper: t.Optional[str] = self.upper_bound
        if lower is not None and upper is not None and lower >= upper:
            raise FilterError(
                f"since ({self.since}) must be before until ({self.until})"
            )

    @property
    def lower_bound(self) -> t.Optional[str]:
        """Smallest id of a note created at or after since."""
        return encode(self.since) if self.since is not None else None

    @property
    def upper_bound(self) -> t.Optional[str]:
        """Smallest id of a note created at or after until."""
        return encode(self.until) if self.until is not None else None


class QueryBuilder(object):
    """Query builder."""

    def __init__(self, model: sa.Table):
        """Query builder constructor."""
        self.model: sa.Table = model

    def _visibility(self) -> sa.sql.elements.ColumnElement:
        return self.model.c.visibility.in_(VISIBILITIES)

    def _host(
        self, hosts: t.Tuple[str, ...]
    ) -> sa.sql.elements.ColumnElement:
        """Local notes, plus notes from the allow-listed hosts."""
        if not hosts:
            return self.model.c.userHost.is_(None)
        return sa.or_(
            self.model.c.userHost.is_(None),
            self.model.c.userHost.in_(list(hosts)),
        )

    def _content(self) -> sa.sql.elements.ColumnElement:
        """Renotes and plain notes alike must carry text."""
        return sa.or_(
            sa.and_(
                self.model.c.renoteId.isnot(None),
                self.model.c.text.isnot(None),
            ),
            sa.and_(
                self.model.c.renoteId.is_(None),
                self.model.c.text.isnot(None),
            ),
        )

    def _time(
        self, note_filter: NoteFilter
    ) -> t.List[sa.sql.elements.ColumnElement]:
        """Time bounds as id ranges so the primary key index serves both."""
        clauses: t.List[sa.sql.elements.ColumnElement] = []
        if note_filter.lower_bound is not None:
            clauses.append(self.model.c.id >= note_filter.lower_bound)
        if note_filter.upper_bound is not None:
            clauses.append(self.model.c.id < note_filter.upper_bound)
        return clauses

    def build(
        self, note_filter: NoteFilter, cursor: t.Optional[str] = None
    ) -> sa.sql.elements.BooleanClauseList:
        """
        Build the note predicate.

        Args:
            note_filter (NoteFilter): the notes to sync.
            cursor (Optional[str]): only notes with a greater id, None to
                match every note the filter does.

        Returns:
            The conjunction of all filter clauses, every value bound.
        """
        clauses: t.List[sa.sql.elements.ColumnElement] = []
        if cursor is not None:
            clauses.append(self.model.c.id > cursor)
        clauses.extend(
            [
                self._visibility(),
                self._host(note_filter.hosts),
                self._content(),
            ]
        )
        clauses.extend(self._time(note_filter))
        return sa.and_(*clauses)

    def select(
        self,
        note_filter: NoteFilter,
        cursor: str,
        limit: t.Optional[int] = None,
    ) -> sa.sql.Select:
        """The next page of notes after the cursor."""
        return (
            sa.select(*[self.model.c[column] for column in NOTE_COLUMNS])
            .where(self.build(note_filter, cursor=cursor))
            .order_by(self.model.c.id)
            .limit(limit or note_filter.batch_size)
        )

    def count(self, note_filter: NoteFilter) -> sa.sql.Select:
        """Count every note matching the filter, ignoring the cursor."""
        return (
            sa.select(sa.func.count())
            .select_from(self.model)
            .where(self.build(note_filter))
        )

    def compile(
        self,
        statement: sa.sql.ClauseElement,
        dialect: t.Optional[sa.engine.Dialect] = None,
    ) -> t.Tuple[str, dict]:
        """Return the query text and its parameter bindings."""
        compiled = statement.compile(
            dialect=dialect or postgresql.dialect(),
            compile_kwargs={"render_postcompile": True},
        )
        return str(compiled), dict(compiled.params)
