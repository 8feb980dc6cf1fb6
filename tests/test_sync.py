"""Sync tests."""

import threading
from datetime import timedelta

import pytest
from click.testing import CliRunner
from mock import patch

import notesync
from notesync.constants import MIN_CURSOR, SUCCEEDED
from notesync.exc import CheckpointError, CursorRangeError
from notesync.querybuilder import NoteFilter
from notesync.sync import _status, main, State, SyncResult

from .testing_utils import FakeClock, START


class TestSync(object):
    """Sync tests."""

    def test_run(self, sync_factory, search_client, insert_notes):
        rows = insert_notes(25)
        events = []
        sync = sync_factory(on_progress=events.append)
        result = sync.run()

        assert result.state is State.DONE
        assert result.fetched == 25
        assert result.batches == 3
        assert result.cursor == rows[-1]["id"]
        assert result.cancelled is False
        assert [len(batch) for batch in search_client.batches] == [10, 10, 5]
        assert [event.count for event in events] == [10, 10, 5]
        assert [event.fetched for event in events] == [10, 20, 25]
        cursors = [event.cursor for event in events]
        assert cursors == sorted(cursors)
        assert len(set(cursors)) == 3
        assert events[-1].percent == 100.0
        assert events[-1].task.status == SUCCEEDED
        assert sorted(search_client.documents) == [row["id"] for row in rows]

    def test_run_exact_multiple(
        self, sync_factory, search_client, insert_notes
    ):
        insert_notes(20)
        sync = sync_factory()
        with patch.object(
            sync, "fetch_notes", wraps=sync.fetch_notes
        ) as mock_fetch_notes:
            result = sync.run()
        # a full last page costs one more empty fetch
        assert mock_fetch_notes.call_count == 3
        assert len(search_client.batches) == 2
        assert result.fetched == 20
        assert result.state is State.DONE

    def test_run_empty(self, sync_factory, search_client):
        sync = sync_factory()
        with patch.object(sync, "fetch_notes") as mock_fetch_notes:
            with patch("notesync.sync.logger") as mock_logger:
                result = sync.run()
                mock_logger.info.assert_called_once_with(
                    "misskey:notes nothing to do"
                )
        mock_fetch_notes.assert_not_called()
        assert search_client.batches == []
        assert result.state is State.DONE_EMPTY
        assert result.fetched == 0
        assert result.batches == 0
        assert result.cursor == MIN_CURSOR

    def test_run_filtered_empty(
        self, sync_factory, search_client, insert_notes
    ):
        insert_notes(5, userHost="c.example")
        sync = sync_factory(NoteFilter(hosts=["a.example"]))
        result = sync.run()
        assert result.state is State.DONE_EMPTY
        assert search_client.batches == []

    def test_run_batch_size_one(
        self, sync_factory, search_client, insert_notes
    ):
        insert_notes(3)
        result = sync_factory(NoteFilter(batch_size=1)).run()
        assert [len(batch) for batch in search_client.batches] == [1, 1, 1]
        assert result.batches == 3

    def test_run_idempotent(self, sync_factory, search_client, insert_notes):
        insert_notes(25)
        sync_factory().run()
        documents = dict(search_client.documents)
        sync_factory().run()
        assert search_client.documents == documents
        assert len(search_client.documents) == 25
        assert len(search_client.batches) == 6

    def test_run_cancelled(self, sync_factory, search_client, insert_notes):
        insert_notes(25)
        stop = threading.Event()

        def on_progress(event):
            stop.set()

        sync = sync_factory(on_progress=on_progress, stop=stop)
        result = sync.run()
        assert result.cancelled is True
        assert result.state is State.DONE
        assert result.fetched == 10
        assert result.batches == 1
        assert len(search_client.batches) == 1

    def test_run_cancelled_before_start(
        self, sync_factory, search_client, insert_notes
    ):
        insert_notes(5)
        stop = threading.Event()
        stop.set()
        result = sync_factory(stop=stop).run()
        assert result.cancelled is True
        assert result.fetched == 0
        assert search_client.batches == []

    def test_run_recount(self, sync_factory, search_client, insert_notes):
        insert_notes(25)
        clock = FakeClock()
        totals = []

        def on_progress(event):
            totals.append(event.total)
            if event.batch == 1:
                # notes created while the sync is running
                insert_notes(5, start=START + timedelta(days=1))
            clock.tick(4000)

        sync = sync_factory(on_progress=on_progress, clock=clock)
        with patch.object(
            sync, "count_notes", wraps=sync.count_notes
        ) as mock_count_notes:
            result = sync.run()
        # the total is refreshed once the count interval has elapsed
        assert totals == [25, 30, 30]
        assert mock_count_notes.call_count == 4
        assert result.fetched == 30

    def test_run_no_recount(self, sync_factory, search_client, insert_notes):
        insert_notes(25)
        sync = sync_factory(clock=FakeClock())
        with patch.object(
            sync, "count_notes", wraps=sync.count_notes
        ) as mock_count_notes:
            sync.run()
        mock_count_notes.assert_called_once()

    def test_run_error(self, sync_factory, search_client, insert_notes):
        insert_notes(25)
        sync = sync_factory()
        with patch.object(
            search_client, "publish", side_effect=RuntimeError("unavailable")
        ):
            with patch("notesync.sync.logger") as mock_logger:
                with pytest.raises(RuntimeError):
                    sync.run()
                mock_logger.error.assert_called_once_with(
                    f"Sync failed after cursor {MIN_CURSOR} (0 notes synced)"
                )
        assert sync.progress.fetched == 0

    def test_time_bounds(self, sync_factory, search_client, insert_notes):
        rows = insert_notes(25)
        note_filter = NoteFilter(
            since=START + timedelta(seconds=3),
            until=START + timedelta(seconds=7),
            batch_size=10,
        )
        result = sync_factory(note_filter).run()
        assert result.fetched == 4
        assert sorted(search_client.documents) == [
            row["id"] for row in rows[3:7]
        ]

    def test_cursor(self, sync_factory, search_client, insert_notes):
        rows = insert_notes(25)
        sync = sync_factory(cursor=rows[19]["id"])
        assert sync.progress.cursor == rows[19]["id"]
        result = sync.run()
        assert result.fetched == 5
        assert sorted(search_client.documents) == [
            row["id"] for row in rows[20:]
        ]

    def test_invalid_cursor(self, sync_factory):
        with pytest.raises(CursorRangeError):
            sync_factory(cursor="NOT-A-CURSOR")
        with pytest.raises(CursorRangeError):
            sync_factory(cursor="99g67eo000\n")

    def test_checkpoint(
        self, sync_factory, search_client, insert_notes, checkpoint_path
    ):
        rows = insert_notes(25)
        sync = sync_factory(checkpoint=True)
        assert sync.name == "misskey_notes"
        assert sync.checkpoint_file == str(checkpoint_path / ".misskey_notes")
        assert sync.checkpoint is None
        sync.run()
        assert sync.checkpoint == rows[-1]["id"]

        # resumes where the last run left off
        sync = sync_factory(checkpoint=True)
        assert sync.progress.cursor == rows[-1]["id"]
        result = sync.run()
        assert result.fetched == 0
        assert len(search_client.batches) == 3

    def test_checkpoint_disabled(
        self, sync_factory, search_client, insert_notes, checkpoint_path
    ):
        insert_notes(5)
        sync_factory().run()
        assert not (checkpoint_path / ".misskey_notes").exists()

    def test_checkpoint_corrupt(self, sync_factory, checkpoint_path):
        (checkpoint_path / ".misskey_notes").write_text("garbage\n")
        with pytest.raises(CheckpointError):
            sync_factory(checkpoint=True)

    def test_checkpoint_none(self, sync_factory):
        sync = sync_factory()
        with pytest.raises(TypeError):
            sync.checkpoint = None

    def test_analyze(self, sync_factory, insert_notes):
        insert_notes(25)
        sync = sync_factory()
        with patch("notesync.sync.compiled_query") as mock_compiled_query:
            with patch("notesync.sync.sys") as mock_sys:
                sync.analyze()
                mock_sys.stdout.write.assert_called_once_with(
                    f"misskey:notes 25 notes to sync from cursor {MIN_CURSOR}\n"
                )
        mock_compiled_query.assert_called_once()
        assert sync.progress.total == 25

    def test_close(self, sync_factory, search_client):
        sync = sync_factory()
        sync.close()
        assert search_client.closed is True

    def test_status(self, sync_factory, insert_notes):
        insert_notes(5)
        sync = sync_factory()
        with patch("notesync.sync.sys") as mock_sys:
            sync.on_progress = _status(sync)
            sync.run()
            output = mock_sys.stdout.write.call_args[0][0]
        assert output.startswith("Sync misskey:notes Batch: [1] ")
        assert "Fetched: [5/5] (100.00%)" in output
        assert "Task: [1 succeeded]" in output
        assert "] Reached: [2023-01-01 00:00:04] Task: " in output
        assert "ETA: [0:00:00]" in output


class TestMain(object):
    """CLI tests."""

    def test_version(self):
        runner = CliRunner()
        result = runner.invoke(main, ["--version", "--index", "notes"])
        assert result.exit_code == 0
        assert "Version: 1.0.0" in result.output
        assert notesync.__author__ == "NoteSync Developers"

    def test_index_required(self):
        result = CliRunner().invoke(main, [])
        assert result.exit_code == 2

    def test_invalid_cursor(self):
        result = CliRunner().invoke(
            main, ["--index", "notes", "--cursor", "nope"]
        )
        assert result.exit_code == 2
        assert "is not a cursor" in result.output

    def test_invalid_since(self):
        result = CliRunner().invoke(
            main, ["--index", "notes", "--since", "yesterday"]
        )
        assert result.exit_code == 2
        assert "is not a timestamp" in result.output

    def test_invalid_host(self):
        result = CliRunner().invoke(
            main, ["--index", "notes", "-a", "x' OR 1=1 --"]
        )
        assert result.exit_code == 2
        assert "Invalid host" in result.output

    def test_empty_range(self):
        result = CliRunner().invoke(
            main,
            [
                "--index",
                "notes",
                "--since",
                "2024-01-01",
                "--until",
                "2023-01-01",
            ],
        )
        assert result.exit_code == 2
        assert "must be before" in result.output

    def test_batch_size(self):
        result = CliRunner().invoke(main, ["--index", "notes", "-n", "0"])
        assert result.exit_code == 2

    def test_mutually_exclusive(self):
        result = CliRunner().invoke(
            main,
            [
                "--index",
                "notes",
                "--database",
                "postgresql+psycopg2://postgres@localhost/misskey",
                "--host",
                "db",
            ],
        )
        assert result.exit_code == 2
        assert "mutually exclusive" in result.output

    @patch("notesync.sync.signal")
    @patch("notesync.sync.show_settings")
    @patch("notesync.sync.Sync")
    def test_main(self, mock_sync, mock_show_settings, mock_signal):
        mock_sync.return_value.run.return_value = SyncResult(
            state=State.DONE,
            fetched=25,
            batches=3,
            cursor="99g67eo000",
            elapsed=1.0,
        )
        result = CliRunner().invoke(
            main,
            [
                "--index",
                "notes",
                "-n",
                "10",
                "-a",
                "Misskey.io",
                "--since",
                "2023-01-01",
            ],
        )
        assert result.exit_code == 0, result.output
        assert "Start" in result.output
        assert "Done 25 notes in 3 batches" in result.output
        mock_show_settings.assert_called_once()
        args, kwargs = mock_sync.call_args
        assert args[0] == "notes"
        assert args[1].hosts == ("misskey.io",)
        assert args[1].batch_size == 10
        assert args[1].since.year == 2023
        assert kwargs["checkpoint"] is False
        mock_sync.return_value.connect.assert_called_once()
        mock_sync.return_value.close.assert_called_once()
        assert mock_signal.signal.call_count == 2

    @patch("notesync.sync.signal")
    @patch("notesync.sync.show_settings")
    @patch("notesync.sync.Sync")
    def test_main_empty(self, mock_sync, mock_show_settings, mock_signal):
        mock_sync.return_value.run.return_value = SyncResult(
            state=State.DONE_EMPTY,
            fetched=0,
            batches=0,
            cursor=MIN_CURSOR,
            elapsed=0.0,
        )
        result = CliRunner().invoke(main, ["--index", "notes"])
        assert result.exit_code == 0, result.output
        assert "Nothing to do" in result.output

    @patch("notesync.sync.signal")
    @patch("notesync.sync.show_settings")
    @patch("notesync.sync.Sync")
    def test_main_cancelled(self, mock_sync, mock_show_settings, mock_signal):
        mock_sync.return_value.run.return_value = SyncResult(
            state=State.DONE,
            fetched=10,
            batches=1,
            cursor="99g67eo000",
            elapsed=1.0,
            cancelled=True,
        )
        result = CliRunner().invoke(main, ["--index", "notes"])
        assert result.exit_code == 0, result.output
        assert "Stopped at cursor 99g67eo000 (10 notes)" in result.output

    @patch("notesync.sync.signal")
    @patch("notesync.sync.show_settings")
    @patch("notesync.sync.Sync")
    def test_main_analyze(self, mock_sync, mock_show_settings, mock_signal):
        result = CliRunner().invoke(main, ["--index", "notes", "--analyze"])
        assert result.exit_code == 0, result.output
        mock_sync.return_value.analyze.assert_called_once()
        mock_sync.return_value.run.assert_not_called()
        mock_sync.return_value.close.assert_called_once()
        mock_signal.signal.assert_not_called()

    @patch("notesync.sync.signal")
    @patch("notesync.sync.show_settings")
    @patch("notesync.sync.Sync")
    def test_main_corrupt_checkpoint(
        self, mock_sync, mock_show_settings, mock_signal
    ):
        mock_sync.side_effect = CheckpointError(
            "Corrupt checkpoint value in ./.misskey_notes: ['garbage']"
        )
        result = CliRunner().invoke(
            main, ["--index", "notes", "--checkpoint"]
        )
        assert result.exit_code == 2
        assert "Corrupt checkpoint value" in result.output
        mock_signal.signal.assert_not_called()

    @patch("notesync.sync.signal")
    @patch("notesync.sync.show_settings")
    @patch("notesync.sync.Sync")
    def test_main_invalid_checkpoint_cursor(
        self, mock_sync, mock_show_settings, mock_signal
    ):
        mock_sync.side_effect = CursorRangeError("Invalid cursor: 'x'")
        result = CliRunner().invoke(
            main, ["--index", "notes", "--checkpoint"]
        )
        assert result.exit_code == 2
        assert "Invalid cursor" in result.output
