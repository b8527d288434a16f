"""Unit tests for FTPSession.

Tests operation wrapping, deadline handling, batch listing, streamed
downloads and release.
"""

import io
import logging
from unittest.mock import MagicMock

import pytest

from sandbox_ftp.ftp.entries import EntryType, RemoteEntry
from sandbox_ftp.ftp.exceptions import (
    FTPNotConnectedError,
    FTPOperationError,
    FTPStreamOpenError,
)
from sandbox_ftp.ftp.session import (
    OPERATION_DEADLINE_SECONDS,
    BatchListing,
    FTPSession,
    RemoteFileStream,
)
from sandbox_ftp.ftp.transport import FTPTransport, ListingCursor
from sandbox_ftp.sandbox.environment import API_DEADLINE_KEY, Environment, bind_environment


@pytest.fixture
def transport():
    """Mocked transport with the FTPTransport surface."""
    mock = MagicMock(spec=FTPTransport)
    mock.encoding = "utf-8"
    mock.reply_code = 150
    mock.reply_string = "150 Opening data connection"
    mock.is_connected.return_value = True
    return mock


@pytest.fixture
def session(transport, environment):
    return FTPSession(transport, environment=environment)


class TestTimeLogAndCatch:
    """Tests for the shared operation wrapper."""

    def test_returns_result(self, session):
        assert session.time_log_and_catch("Noop", lambda: 42) == 42

    def test_deadline_overridden_during_call(self, session, environment):
        environment.attributes[API_DEADLINE_KEY] = 5.0
        seen = []

        session.time_log_and_catch("Probe", lambda: seen.append(environment.deadline))

        assert seen == [OPERATION_DEADLINE_SECONDS]
        assert environment.deadline == 5.0

    def test_deadline_removed_when_absent_before(self, session, environment):
        session.time_log_and_catch("Probe", lambda: None)
        assert API_DEADLINE_KEY not in environment.attributes

    def test_failure_wrapped_with_label(self, session, environment):
        environment.attributes[API_DEADLINE_KEY] = 5.0
        cause = OSError("connection reset")

        def boom():
            raise cause

        with pytest.raises(FTPOperationError) as exc_info:
            session.time_log_and_catch("Delete file", boom)

        assert exc_info.value.operation == "Delete file"
        assert exc_info.value.original_error is cause
        assert exc_info.value.__cause__ is cause
        assert str(exc_info.value) == "FTP Delete file failed: connection reset"
        assert environment.deadline == 5.0

    def test_logs_start_and_success(self, session, caplog):
        with caplog.at_level(logging.INFO, logger="sandbox_ftp.session"):
            session.time_log_and_catch("List files", lambda: [])

        messages = [r.getMessage() for r in caplog.records]
        assert messages[0] == "FTP List files"
        assert messages[1].startswith("FTP List files succeeded in ")

    def test_logs_failure_at_warning(self, session, caplog):
        def boom():
            raise OSError("broken pipe")

        with caplog.at_level(logging.INFO, logger="sandbox_ftp.session"):
            with pytest.raises(FTPOperationError):
                session.time_log_and_catch("Put file", boom)

        failure = caplog.records[-1]
        assert failure.levelno == logging.WARNING
        assert "Put file failed in" in failure.getMessage()
        assert "broken pipe" in failure.getMessage()

    def test_uses_current_environment_when_none_given(self, transport):
        session = FTPSession(transport)
        env = Environment({API_DEADLINE_KEY: 2.0})
        seen = []

        with bind_environment(env):
            session.time_log_and_catch("Probe", lambda: seen.append(env.deadline))

        assert seen == [OPERATION_DEADLINE_SECONDS]
        assert env.deadline == 2.0

    def test_works_outside_any_environment(self, transport):
        session = FTPSession(transport)
        assert session.time_log_and_catch("Probe", lambda: "ok") == "ok"


class TestOperations:
    """Tests for the thin operation delegates."""

    def test_create_directory(self, session, transport):
        transport.make_directory.return_value = True

        assert session.create_directory("/new") is True
        transport.make_directory.assert_called_once_with("/new")

    def test_delete_directory(self, session, transport):
        transport.remove_directory.return_value = False

        assert session.delete_directory("/full") is False
        transport.remove_directory.assert_called_once_with("/full")

    def test_change_working_directory_missing_is_false(self, session, transport):
        transport.change_working_directory.return_value = False

        assert session.change_working_directory("/missing") is False

    def test_put_file(self, session, transport):
        transport.store_file.return_value = True
        data = io.BytesIO(b"payload")

        assert session.put_file("a.txt", data) is True
        transport.store_file.assert_called_once_with("a.txt", data)

    def test_get_file_by_name(self, session, transport):
        transport.retrieve_file.return_value = True
        sink = io.BytesIO()

        assert session.get_file("a.txt", sink) is True
        transport.retrieve_file.assert_called_once_with("a.txt", sink)

    def test_rename_file(self, session, transport):
        transport.rename.return_value = True

        assert session.rename_file("a.txt", "b.txt") is True
        transport.rename.assert_called_once_with("a.txt", "b.txt")

    def test_delete_file(self, session, transport):
        transport.delete_file.return_value = True

        assert session.delete_file("a.txt") is True
        transport.delete_file.assert_called_once_with("a.txt")

    def test_list_files(self, session, transport):
        entries = [RemoteEntry("a.txt", EntryType.FILE)]
        transport.list_files.return_value = entries

        assert session.list_files() == entries
        assert session.list_files("/pub") == entries
        assert [c[0][0] for c in transport.list_files.call_args_list] == [None, "/pub"]

    def test_list_directories(self, session, transport):
        transport.list_directories.return_value = []

        assert session.list_directories("/pub") == []
        transport.list_directories.assert_called_once_with("/pub")

    def test_transport_exception_wrapped(self, session, transport):
        transport.make_directory.side_effect = EOFError()

        with pytest.raises(FTPOperationError) as exc_info:
            session.create_directory("/new")

        assert exc_info.value.operation == "Create directory"

    def test_transport_property(self, session, transport):
        assert session.transport is transport


class TestGetEntry:
    """Tests for downloading listed entries."""

    def test_none_entry_is_false_without_transfer(self, session, transport):
        assert session.get_file(None, io.BytesIO()) is False
        transport.retrieve_file.assert_not_called()

    def test_directory_entry_is_false_without_transfer(self, session, transport):
        entry = RemoteEntry("archive", EntryType.DIRECTORY)

        assert session.get_file(entry, io.BytesIO()) is False
        transport.retrieve_file.assert_not_called()

    def test_file_entry_delegates_by_name(self, session, transport):
        transport.retrieve_file.return_value = True
        sink = io.BytesIO()

        assert session.get_entry(RemoteEntry("a.txt", EntryType.FILE), sink) is True
        transport.retrieve_file.assert_called_once_with("a.txt", sink)


class TestListBatch:
    """Tests for paged listing."""

    @pytest.fixture
    def cursor_factory(self, data_socket):
        def make(listing: bytes, listing_transport=None):
            owner = listing_transport or MagicMock(encoding="utf-8")
            return ListingCursor(owner, data_socket(listing), RemoteEntry.from_mlsd_line)
        return make

    @pytest.fixture
    def seven_files(self) -> bytes:
        return b"".join(
            f"type=file;size={i}; file{i}.txt\r\n".encode() for i in range(7)
        )

    def test_batches_bounded_and_complete(self, session, transport, cursor_factory, seven_files):
        transport.initiate_list_parsing.return_value = cursor_factory(seven_files)

        batches = list(session.list_batch("/pub", 3))

        assert [len(b) for b in batches] == [3, 3, 1]
        assert [e.name for b in batches for e in b] == [f"file{i}.txt" for i in range(7)]
        transport.initiate_list_parsing.assert_called_once_with("/pub")

    def test_exact_multiple_has_no_empty_batch(self, session, transport, cursor_factory, seven_files):
        transport.initiate_list_parsing.return_value = cursor_factory(seven_files)

        batches = list(session.list_batch("/pub", 7))

        assert len(batches) == 1
        assert len(batches[0]) == 7

    def test_single_pass(self, session, transport, cursor_factory, seven_files):
        transport.initiate_list_parsing.return_value = cursor_factory(seven_files)
        listing = session.list_batch("/pub", 10)

        assert len(list(listing)) == 1
        assert list(listing) == []
        assert listing.exhausted is True

    def test_each_call_starts_new_listing(self, session, transport, cursor_factory, seven_files):
        transport.initiate_list_parsing.side_effect = lambda d: cursor_factory(seven_files)

        first = list(session.list_batch("/pub", 4))
        second = list(session.list_batch("/pub", 4))

        assert first == second
        assert transport.initiate_list_parsing.call_count == 2

    def test_lazy_pull(self, session, transport, cursor_factory, seven_files):
        owner = MagicMock(encoding="utf-8")
        transport.initiate_list_parsing.return_value = cursor_factory(seven_files, owner)

        listing = session.list_batch("/pub", 2)
        assert isinstance(listing, BatchListing)
        next(listing)

        owner.complete_pending_command.assert_not_called()
        listing.close()
        owner.complete_pending_command.assert_called_once()

    def test_empty_directory(self, session, transport):
        transport.initiate_list_parsing.return_value = ListingCursor.empty()
        assert list(session.list_batch("/empty", 5)) == []

    def test_invalid_batch_size(self, session, transport):
        with pytest.raises(ValueError):
            session.list_batch("/pub", 0)
        transport.initiate_list_parsing.assert_not_called()


class TestOpenFile:
    """Tests for streamed downloads."""

    def test_stream_reads_and_completes_once(self, session, transport, data_socket):
        events = []
        conn = data_socket(b"streamed content", events)
        transport.retrieve_file_stream.return_value = conn
        transport.complete_pending_command.side_effect = lambda: events.append("completed") or True

        stream = session.open_file("a.txt")

        assert isinstance(stream, RemoteFileStream)
        assert stream.read() == b"streamed content"
        stream.close()
        stream.close()

        assert events == ["socket closed", "completed"]
        assert stream.completed is True

    def test_close_without_reading(self, session, transport, data_socket):
        events = []
        transport.retrieve_file_stream.return_value = data_socket(b"x" * 100, events)
        transport.complete_pending_command.side_effect = lambda: events.append("completed") or False

        with session.open_file("a.txt") as stream:
            assert stream.read(10) == b"x" * 10

        assert events == ["socket closed", "completed"]
        assert stream.completed is False

    def test_completion_runs_when_socket_close_fails(self, session, transport):
        conn = MagicMock()
        conn.close.side_effect = OSError("already reset")
        transport.retrieve_file_stream.return_value = conn

        stream = session.open_file("a.txt")
        with pytest.raises(OSError):
            stream.close()

        transport.complete_pending_command.assert_called_once()
        assert stream.closed is True

    def test_close_after_session_released(self, session, transport, data_socket, caplog):
        conn = data_socket(b"late")
        transport.retrieve_file_stream.return_value = conn
        stream = session.open_file("a.txt")
        session.release()
        transport.is_connected.return_value = False

        stream.close()

        assert conn.closed is True
        assert stream.closed is True
        assert stream.completed is False
        transport.complete_pending_command.assert_not_called()
        assert "closed before transfer of a.txt completed" in caplog.text

    def test_null_stream_fails(self, session, transport):
        transport.retrieve_file_stream.return_value = None
        transport.reply_code = 550
        transport.reply_string = "550 No such file"

        with pytest.raises(FTPOperationError) as exc_info:
            session.open_file("missing")

        assert isinstance(exc_info.value.original_error, FTPStreamOpenError)
        assert exc_info.value.operation == "Get file stream missing"
        assert "550 No such file" in str(exc_info.value)

    def test_negative_reply_closes_stream(self, session, transport, data_socket):
        conn = data_socket(b"")
        transport.retrieve_file_stream.return_value = conn
        transport.reply_code = 425

        with pytest.raises(FTPOperationError):
            session.open_file("a.txt")

        assert conn.closed is True

    def test_positive_completion_reply_accepted(self, session, transport, data_socket):
        transport.retrieve_file_stream.return_value = data_socket(b"ok")
        transport.reply_code = 226

        assert session.open_file("a.txt").read() == b"ok"


class TestRelease:
    """Tests for release and the released-session invariant."""

    def test_release_disconnects(self, session, transport):
        session.release()

        transport.disconnect.assert_called_once()
        assert session.is_released is True

    def test_release_is_idempotent(self, session, transport):
        session.release()
        session.release()

        transport.disconnect.assert_called_once()

    def test_release_skips_disconnected_transport(self, session, transport):
        transport.is_connected.return_value = False

        session.release()

        transport.disconnect.assert_not_called()

    def test_release_swallows_disconnect_error(self, session, transport, caplog):
        transport.disconnect.side_effect = OSError("socket gone")

        with caplog.at_level(logging.WARNING, logger="sandbox_ftp.session"):
            session.release()

        assert "Failed to disconnect ftp session" in caplog.text

    def test_context_manager_releases(self, transport):
        with FTPSession(transport) as session:
            pass

        assert session.is_released is True
        transport.disconnect.assert_called_once()

    def test_operation_after_release_raises(self, session, transport):
        session.release()

        with pytest.raises(FTPNotConnectedError):
            session.list_files()

        transport.list_files.assert_not_called()
