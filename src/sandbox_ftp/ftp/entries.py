"""Remote directory entries for sandbox-ftp.

Provides the RemoteEntry dataclass and parsers for MLSD fact lines and
Unix-style LIST lines.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Optional


class EntryType(Enum):
    """Kind of a remote filesystem entry."""
    FILE = "file"
    DIRECTORY = "dir"
    SYMLINK = "link"
    UNKNOWN = "unknown"


# MLSD "type" fact values
_MLSD_TYPES = {
    "file": EntryType.FILE,
    "dir": EntryType.DIRECTORY,
    "cdir": EntryType.DIRECTORY,
    "pdir": EntryType.DIRECTORY,
    "os.unix=symlink": EntryType.SYMLINK,
    "os.unix=slink": EntryType.SYMLINK,
}

# First character of a Unix `ls -l` line
_LIST_TYPES = {
    "-": EntryType.FILE,
    "d": EntryType.DIRECTORY,
    "l": EntryType.SYMLINK,
}

_LIST_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

UNKNOWN_SIZE = -1


@dataclass(frozen=True)
class RemoteEntry:
    """A file or directory as reported by the server's listing."""
    name: str
    type: EntryType = EntryType.UNKNOWN
    size: int = UNKNOWN_SIZE
    modified: Optional[datetime] = None
    facts: Dict[str, str] = field(default_factory=dict, compare=False, repr=False)

    def is_file(self) -> bool:
        """True if the entry is a regular file."""
        return self.type == EntryType.FILE

    def is_directory(self) -> bool:
        """True if the entry is a directory."""
        return self.type == EntryType.DIRECTORY

    @property
    def is_navigation(self) -> bool:
        """True for the `.` and `..` pseudo entries."""
        return self.name in (".", "..") or self.facts.get("type") in ("cdir", "pdir")

    @classmethod
    def from_mlsd_line(cls, line: str) -> "RemoteEntry":
        """
        Parse one MLSD line, e.g. ``type=file;size=12;modify=20240101120000; a.txt``.

        Args:
            line: Raw line from the data connection

        Returns:
            RemoteEntry instance

        Raises:
            ValueError: If the line has no name part
        """
        facts_part, _, name = line.rstrip("\r\n").partition(" ")
        if not name:
            raise ValueError(f"Malformed MLSD line: {line!r}")

        facts: Dict[str, str] = {}
        for fact in facts_part[:-1].split(";"):
            key, _, value = fact.partition("=")
            if key:
                facts[key.lower()] = value

        entry_type = _MLSD_TYPES.get(facts.get("type", "").lower(), EntryType.UNKNOWN)
        size = facts.get("size", facts.get("sizd", ""))
        return cls(
            name=name,
            type=entry_type,
            size=int(size) if size.isdigit() else UNKNOWN_SIZE,
            modified=_parse_mlsd_time(facts.get("modify")),
            facts=facts,
        )

    @classmethod
    def from_list_line(cls, line: str, now: Optional[datetime] = None) -> "RemoteEntry":
        """
        Parse one Unix `ls -l` style LIST line.

        Example:
            ``-rw-r--r--  1 owner group  1024 Jan  1 12:00 a.txt``

        Args:
            line: Raw line from the data connection
            now: Reference time for dates without a year

        Returns:
            RemoteEntry instance

        Raises:
            ValueError: If the line does not look like `ls -l` output
        """
        parts = line.rstrip("\r\n").split(None, 8)
        if len(parts) < 9 or len(parts[0]) < 10:
            raise ValueError(f"Malformed LIST line: {line!r}")

        mode, links, owner, group, size, month, day, year_or_time, name = parts
        if not links.isdigit() or not size.isdigit():
            raise ValueError(f"Malformed LIST line: {line!r}")

        entry_type = _LIST_TYPES.get(mode[0], EntryType.UNKNOWN)
        facts = {
            "unix.mode": mode,
            "unix.owner": owner,
            "unix.group": group,
        }
        if entry_type == EntryType.SYMLINK and " -> " in name:
            name, _, target = name.partition(" -> ")
            facts["link_target"] = target

        return cls(
            name=name,
            type=entry_type,
            size=int(size),
            modified=_parse_list_time(month, day, year_or_time, now),
            facts=facts,
        )


def _parse_mlsd_time(value: Optional[str]) -> Optional[datetime]:
    """Parse an MLSD `modify` fact (YYYYMMDDHHMMSS[.sss])."""
    if not value:
        return None
    try:
        return datetime.strptime(value[:14], "%Y%m%d%H%M%S")
    except ValueError:
        return None


def _parse_list_time(
    month: str,
    day: str,
    year_or_time: str,
    now: Optional[datetime] = None
) -> Optional[datetime]:
    """
    Parse the date columns of `ls -l` output.

    Recent files show "Jan  1 12:00" without a year; those are placed in
    the most recent year that does not put them more than a day ahead.
    """
    month_number = _LIST_MONTHS.get(month[:3].lower())
    if month_number is None or not day.isdigit():
        return None

    try:
        if ":" in year_or_time:
            now = now or datetime.now()
            hour, minute = (int(p) for p in year_or_time.split(":", 1))
            stamp = datetime(now.year, month_number, int(day), hour, minute)
            if (stamp - now).days > 1:
                stamp = stamp.replace(year=now.year - 1)
            return stamp
        return datetime(int(year_or_time), month_number, int(day))
    except ValueError:
        return None
