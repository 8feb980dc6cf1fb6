"""NoteSync Note representation."""

from __future__ import annotations

import typing as t
from dataclasses import dataclass
from datetime import datetime, timezone

import sqlalchemy as sa

from .constants import REQUIRED_COLUMNS
from .cursor import to_milliseconds
from .exc import MalformedRecordError
from .settings import NOTE_SCHEMA, NOTE_TABLE


def note_table(
    metadata: t.Optional[sa.MetaData] = None,
    schema: t.Optional[str] = NOTE_SCHEMA,
    name: str = NOTE_TABLE,
) -> sa.Table:
    """
    The columns of the note table that the sync reads.

    Only the columns we project or filter on are declared, so the
    table does not need to be reflected.
    """
    metadata = metadata if metadata is not None else sa.MetaData()
    return sa.Table(
        name,
        metadata,
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("createdAt", sa.DateTime(timezone=True), nullable=False),
        sa.Column("userId", sa.String(32), nullable=False),
        sa.Column("userHost", sa.String(512)),
        sa.Column("channelId", sa.String(32)),
        sa.Column("cw", sa.Text),
        sa.Column("text", sa.Text),
        sa.Column(
            "tags",
            sa.ARRAY(sa.String(128)).with_variant(sa.JSON(), "sqlite"),
        ),
        sa.Column("visibility", sa.String(16), nullable=False),
        sa.Column("renoteId", sa.String(32)),
        schema=schema,
    )


@dataclass(frozen=True)
class Note:
    """
    A note projected for sync.

    Attributes:
        id (str): primary key, sorts in creation order.
        created_at (datetime): creation time in UTC with millisecond precision.
        user_id (str): the author.
        user_host (Optional[str]): the author's host, None for local notes.
        channel_id (Optional[str]): the channel the note was posted to.
        cw (Optional[str]): the content warning.
        text (Optional[str]): the note body.
        tags (Tuple[str, ...]): hashtags, possibly empty.
    """

    id: str
    created_at: datetime
    user_id: str
    user_host: t.Optional[str] = None
    channel_id: t.Optional[str] = None
    cw: t.Optional[str] = None
    text: t.Optional[str] = None
    tags: t.Tuple[str, ...] = ()

    @classmethod
    def from_row(cls, row: t.Mapping[str, t.Any]) -> Note:
        """Build a Note from a result row mapping."""
        missing: t.List[str] = [
            column for column in REQUIRED_COLUMNS if row.get(column) is None
        ]
        if missing:
            raise MalformedRecordError(
                f"Note {row.get('id')} has null required columns: "
                f"{', '.join(missing)}"
            )
        created_at: datetime = row["createdAt"]
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        else:
            created_at = created_at.astimezone(timezone.utc)
        return cls(
            id=row["id"],
            created_at=created_at.replace(
                microsecond=created_at.microsecond // 1000 * 1000
            ),
            user_id=row["userId"],
            user_host=row.get("userHost"),
            channel_id=row.get("channelId"),
            cw=row.get("cw"),
            text=row.get("text"),
            tags=tuple(row.get("tags") or ()),
        )

    def to_document(self) -> dict:
        """The search document for this note."""
        return {
            "id": self.id,
            "createdAt": to_milliseconds(self.created_at),
            "userId": self.user_id,
            "userHost": self.user_host,
            "channelId": self.channel_id,
            "cw": self.cw,
            "text": self.text,
            "tags": list(self.tags),
        }
