"""Unit tests for RemoteEntry parsing."""

from datetime import datetime

import pytest

from sandbox_ftp.ftp.entries import UNKNOWN_SIZE, EntryType, RemoteEntry


class TestMLSDParsing:
    """Tests for RemoteEntry.from_mlsd_line."""

    def test_file_line(self):
        entry = RemoteEntry.from_mlsd_line("type=file;size=12;modify=20240102030405; a.txt")

        assert entry.name == "a.txt"
        assert entry.type == EntryType.FILE
        assert entry.size == 12
        assert entry.modified == datetime(2024, 1, 2, 3, 4, 5)
        assert entry.is_file() is True
        assert entry.is_directory() is False

    def test_directory_line(self):
        entry = RemoteEntry.from_mlsd_line("Type=dir;Modify=20240103000000; archive\r\n")

        assert entry.name == "archive"
        assert entry.is_directory() is True
        assert entry.size == UNKNOWN_SIZE

    def test_name_with_spaces(self):
        entry = RemoteEntry.from_mlsd_line("type=file;size=1; my report.pdf")
        assert entry.name == "my report.pdf"

    def test_fractional_modify_time(self):
        entry = RemoteEntry.from_mlsd_line("type=file;modify=20240102030405.123; a")
        assert entry.modified == datetime(2024, 1, 2, 3, 4, 5)

    def test_navigation_entries(self):
        assert RemoteEntry.from_mlsd_line("type=cdir; .").is_navigation is True
        assert RemoteEntry.from_mlsd_line("type=pdir; ..").is_navigation is True
        assert RemoteEntry.from_mlsd_line("type=file; a").is_navigation is False

    def test_missing_name_raises(self):
        with pytest.raises(ValueError):
            RemoteEntry.from_mlsd_line("type=file;size=1;")


class TestListParsing:
    """Tests for RemoteEntry.from_list_line."""

    def test_file_with_year(self):
        entry = RemoteEntry.from_list_line("-rw-r--r--   1 owner group  1024 Mar  5  2023 data.csv")

        assert entry.name == "data.csv"
        assert entry.type == EntryType.FILE
        assert entry.size == 1024
        assert entry.modified == datetime(2023, 3, 5)
        assert entry.facts["unix.owner"] == "owner"

    def test_directory_with_time(self):
        now = datetime(2024, 6, 1)
        entry = RemoteEntry.from_list_line(
            "drwxr-xr-x   2 owner group  4096 May 20 14:30 incoming", now=now
        )

        assert entry.is_directory() is True
        assert entry.modified == datetime(2024, 5, 20, 14, 30)

    def test_recent_date_in_previous_year(self):
        now = datetime(2024, 1, 10)
        entry = RemoteEntry.from_list_line(
            "-rw-r--r--   1 owner group  1 Dec 31 23:59 late.txt", now=now
        )
        assert entry.modified == datetime(2023, 12, 31, 23, 59)

    def test_symlink(self):
        entry = RemoteEntry.from_list_line(
            "lrwxrwxrwx   1 owner group  7 Jan  1  2024 current -> v2/data"
        )

        assert entry.type == EntryType.SYMLINK
        assert entry.name == "current"
        assert entry.facts["link_target"] == "v2/data"
        assert entry.is_file() is False

    def test_name_with_spaces(self):
        entry = RemoteEntry.from_list_line("-rw-r--r-- 1 o g 3 Jan  1  2024 two words.txt")
        assert entry.name == "two words.txt"

    def test_total_line_raises(self):
        with pytest.raises(ValueError):
            RemoteEntry.from_list_line("total 8")

    def test_non_numeric_size_raises(self):
        with pytest.raises(ValueError):
            RemoteEntry.from_list_line("-rw-r--r-- 1 o g big Jan  1  2024 a.txt")


class TestRemoteEntry:
    """Tests for RemoteEntry value semantics."""

    def test_equality_ignores_facts(self):
        a = RemoteEntry("a.txt", EntryType.FILE, 1, None, {"x": "1"})
        b = RemoteEntry("a.txt", EntryType.FILE, 1, None, {"y": "2"})
        assert a == b

    def test_defaults(self):
        entry = RemoteEntry("thing")
        assert entry.type == EntryType.UNKNOWN
        assert entry.size == UNKNOWN_SIZE
        assert entry.modified is None
        assert entry.is_file() is False
