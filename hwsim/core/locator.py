"""
Field Locator
==============
Positions the tag file at the value or count field of a named tag.

The file is scanned from byte 0 one character at a time. The tag
name is accumulated up to its second separator (the one that opens
the value field); the rest of the record is then skipped in one
step, since every record tail has the same width. A tail that holds
a line end belongs to a torn append: the scan drops that record and
resumes on the following line.

    IN_FUNCTION ──':'──► IN_TYPE ──':'──► compare ──► match / skip
         ▲                                               │
         └──────────────── '\\n' or '\\r' ◄───────────────┘

An optional offset index remembers where each value field starts.
Records are never moved or rewritten in length, so an index hit is
always valid; a miss falls back to a full scan.
"""

import logging
from enum import Enum
from typing import BinaryIO, Dict, Iterator, Optional, Tuple

from hwsim.core.codec import (
    COUNT_OFFSET,
    FIELD_SEPARATOR,
    MAX_TAG_LEN,
    RECORD_TAIL,
    TagField,
    check_tag_name,
)
from hwsim.core.errors import (
    FileAccessError,
    FileReadError,
    InvalidArgsError,
    TagNotFoundError,
    TagTooLongError,
)

logger = logging.getLogger(__name__)

_SEPARATOR = FIELD_SEPARATOR.encode("ascii")
_LINE_ENDS = (b"\n", b"\r")


class _ScanState(Enum):
    IN_FUNCTION = 0
    IN_TYPE = 1


class FieldLocator:
    """
    Finds tag records in an open, seekable binary file.

    The file must be unbuffered (or at least not read-ahead cached)
    because other processes rewrite fields in place between scans.
    """

    def __init__(self, fh: BinaryIO, index_offsets: bool = False):
        self._fh = fh
        self._offsets: Optional[Dict[bytes, int]] = {} if index_offsets else None

    @property
    def indexed(self) -> bool:
        return self._offsets is not None

    def locate(self, name: str, field: TagField) -> int:
        """
        Seek to the requested field of `name` and return its offset.

        Raises TagNotFoundError when no record carries the name.
        """
        if not isinstance(field, TagField):
            raise InvalidArgsError(f"unknown tag field {field!r}")
        target = check_tag_name(name)

        offset = self._offsets.get(target) if self._offsets is not None else None
        if offset is None:
            if self._offsets is not None:
                logger.debug("Offset index miss for %s; scanning", name)
            for found, value_offset in self._scan():
                if found == target:
                    offset = value_offset
                    break
            else:
                raise TagNotFoundError("no such tag", tag=name)

        if field is TagField.COUNT:
            offset += COUNT_OFFSET
        self._seek(offset)
        return offset

    def iter_records(self) -> Iterator[Tuple[str, int]]:
        """Yield (tag name, value field offset) for every record, in file order."""
        for found, value_offset in self._scan():
            yield found.decode("utf-8", errors="replace"), value_offset

    def remember(self, name: str, value_offset: int):
        """Record the value offset of a freshly appended tag."""
        if self._offsets is not None:
            self._offsets.setdefault(name.encode("utf-8"), value_offset)

    # ── Internal ─────────────────────────────────────────────

    def _scan(self) -> Iterator[Tuple[bytes, int]]:
        state = _ScanState.IN_FUNCTION
        name = bytearray()
        self._seek(0)

        while True:
            try:
                ch = self._fh.read(1)
            except OSError as exc:
                raise FileReadError("tag file read failed") from exc
            if not ch:
                return

            if ch == _SEPARATOR:
                if state is _ScanState.IN_FUNCTION:
                    name += ch
                    state = _ScanState.IN_TYPE
                    self._check_length(name)
                    continue

                value_offset = self._fh.tell()
                found = bytes(name)
                name.clear()
                state = _ScanState.IN_FUNCTION

                # A complete record has no line end inside its fixed-width tail
                tail = self._read(RECORD_TAIL)
                torn_at = _line_end(tail)
                if torn_at >= 0:
                    logger.debug("Skipping torn record %r at offset %d", found, value_offset)
                    self._seek(value_offset + torn_at + 1)
                    continue
                if len(tail) < RECORD_TAIL:
                    logger.debug("Skipping truncated record %r at offset %d", found, value_offset)
                    return

                if self._offsets is not None:
                    self._offsets.setdefault(found, value_offset)
                yield found, value_offset

                # Resume at the line end after value, separator and count
                self._seek(value_offset + RECORD_TAIL)
            elif ch in _LINE_ENDS:
                name.clear()
                state = _ScanState.IN_FUNCTION
            else:
                name += ch
                self._check_length(name)

    @staticmethod
    def _check_length(name: bytearray):
        if len(name) > MAX_TAG_LEN:
            raise TagTooLongError(
                f"record name exceeds {MAX_TAG_LEN} bytes",
                tag=name.decode("utf-8", errors="replace"),
            )

    def _read(self, size: int) -> bytes:
        try:
            return self._fh.read(size) or b""
        except OSError as exc:
            raise FileReadError("tag file read failed") from exc

    def _seek(self, offset: int):
        try:
            self._fh.seek(offset)
        except OSError as exc:
            raise FileAccessError("tag file seek failed") from exc


def _line_end(data: bytes) -> int:
    """Index of the first line end in data, or -1."""
    ends = [i for i in (data.find(b"\n"), data.find(b"\r")) if i >= 0]
    return min(ends) if ends else -1
