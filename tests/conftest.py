"""Generic fixtures for NoteSync tests."""

import typing as t
from datetime import datetime, timedelta

import pytest
import sqlalchemy as sa
from sqlalchemy.pool import StaticPool

from notesync.note import note_table
from notesync.querybuilder import NoteFilter
from notesync.sync import Sync

from .testing_utils import FakeSearchClient, note_row, START


@pytest.fixture(scope="function")
def engine():
    engine = sa.create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def model(engine):
    metadata = sa.MetaData()
    table = note_table(metadata, schema=None)
    metadata.create_all(engine)
    yield table
    metadata.drop_all(engine)


@pytest.fixture(scope="function")
def insert_notes(engine, model):
    """Insert notes one second apart, returning the rows."""

    def _insert(
        count: int,
        start: datetime = START,
        step: timedelta = timedelta(seconds=1),
        **overrides,
    ) -> t.List[dict]:
        rows: t.List[dict] = [
            note_row(start + step * i, **overrides) for i in range(count)
        ]
        if rows:
            with engine.begin() as conn:
                conn.execute(model.insert(), rows)
        return rows

    return _insert


@pytest.fixture(scope="function")
def search_client(mocker):
    client = FakeSearchClient()
    mocker.patch("notesync.sync.SearchClient", return_value=client)
    return client


@pytest.fixture(scope="function")
def checkpoint_path(mocker, tmp_path):
    mocker.patch("notesync.sync.settings.CHECKPOINT_PATH", str(tmp_path))
    return tmp_path


@pytest.fixture(scope="function")
def sync_factory(engine, model, search_client, checkpoint_path):
    def _sync(
        note_filter: t.Optional[NoteFilter] = None, **kwargs
    ) -> Sync:
        kwargs.setdefault("database", "misskey")
        return Sync(
            "notes",
            note_filter or NoteFilter(batch_size=10),
            engine=engine,
            schema=None,
            **kwargs,
        )

    return _sync
