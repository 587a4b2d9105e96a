"""
Tag Store (File-Backed Hardware Registers)
===========================================
Stands in for device registers while the instrument software runs
without hardware. Every tag lives as one fixed-width line in a
shared text file, so any number of simulator processes can open the
same file and see one consistent "hardware" state:

    1. Lock the file (shared to read, exclusive to write)
    2. Locate the record by exact tag name
    3. Encode / decode the fixed-width value field
    4. Bump or compare the write count
    5. Unlock

Each store also remembers, per tag, the last write count it saw, so
a read can report whether the value is new to this process.
"""

import logging
import os
import threading
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from hwsim.core.codec import (
    COUNT_OFFSET,
    COUNT_WIDTH,
    FIELD_SEPARATOR,
    VALUE_WIDTH,
    TagField,
    TagType,
    check_tag_name,
    decode_count,
    decode_value,
    encode_count,
    encode_record,
    encode_value,
    resolve_type,
)
from hwsim.core.errors import (
    DuplicateTagError,
    FileAccessError,
    FileOpenError,
    FileReadError,
    FileWriteError,
    InvalidArgsError,
    NoFilenameError,
    PathTooLongError,
    SequenceError,
    TagNotFoundError,
)
from hwsim.core.file_lock import FileLockGuard
from hwsim.core.locator import FieldLocator
from hwsim.core.tag_cache import LocalTagCache

logger = logging.getLogger(__name__)

MAX_FILE_PATH_LEN = 255

TagValue = Union[int, float, str]


@dataclass(frozen=True)
class TagRecord:
    """Raw view of one record, as printed by the console."""
    name: str
    value: str
    count: int


class TagStore:
    """
    Typed create/read/write access to the tags of one tag file.

    The constructor opens (creating if needed) the file and raises
    on failure, so a TagStore that exists is always usable until
    close(). Calls on one instance are serialised with a thread
    lock; other processes are excluded with the file lock.

    atomic_updates=False reproduces the historical two-step write:
    the count is incremented after the file lock is dropped, and the
    "is new" check re-reads the count outside the read lock. Keep it
    off unless a peer depends on that exact timing.

    Closing any descriptor of the file drops every POSIX lock the
    process holds on it, so share one TagStore per file per process.
    """

    def __init__(
        self,
        path: Union[str, os.PathLike, None],
        atomic_updates: bool = True,
        index_offsets: bool = False,
        file_mode: int = 0o666,
    ):
        if path is None or not os.fspath(path):
            raise NoFilenameError("no tag file name supplied")
        self.path = os.fspath(path)
        if len(os.fsencode(self.path)) > MAX_FILE_PATH_LEN:
            raise PathTooLongError(f"path exceeds {MAX_FILE_PATH_LEN} bytes", tag=self.path)

        try:
            fd = os.open(self.path, os.O_RDWR | os.O_CREAT, file_mode)
        except OSError as exc:
            raise FileOpenError(f"cannot open tag file ({exc.strerror})", tag=self.path) from exc

        # Unbuffered: peers rewrite fields in place between our reads
        self._fh = open(fd, "r+b", buffering=0)
        self.atomic_updates = atomic_updates
        self._mutex = threading.Lock()
        self._locator = FieldLocator(self._fh, index_offsets=index_offsets)
        self._cache = LocalTagCache()
        self._pending_increment: Optional[int] = None
        self._warned_unprotected = False
        logger.debug(
            "Opened tag file %s (atomic=%s, index=%s)",
            self.path, atomic_updates, index_offsets,
        )

    @classmethod
    def from_settings(cls, settings) -> "TagStore":
        """Open the store described by a StoreSettings instance."""
        return cls(
            settings.tag_file,
            atomic_updates=settings.atomic_updates,
            index_offsets=settings.index_offsets,
            file_mode=settings.file_mode,
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def __repr__(self):
        state = "closed" if self.closed else "open"
        return f"TagStore({self.path!r}, {state})"

    @property
    def closed(self) -> bool:
        return self._fh is None

    @property
    def cache(self) -> LocalTagCache:
        return self._cache

    def close(self):
        """Close the tag file. Safe to call more than once."""
        with self._mutex:
            if self._fh is not None:
                self._fh.close()
                self._fh = None
                logger.debug("Closed tag file %s", self.path)

    # ── Public Operations ────────────────────────────────────

    def create_tag(self, name: str, value: TagValue,
                   tag_type: Union[TagType, int, str, None] = None):
        """
        Append a new tag with its initial value and a count of 1.

        The type is inferred from the value when not given. Raises
        DuplicateTagError, leaving the file untouched, if the name
        already exists.
        """
        if value is None:
            raise InvalidArgsError("initial value is required", tag=name)
        tag_type = resolve_type(tag_type, value)
        raw_name = check_tag_name(name)
        record = encode_record(name, tag_type, value)

        with self._mutex:
            self._check_open()
            with FileLockGuard(self._fh, exclusive=True):
                try:
                    self._locator.locate(name, TagField.VALUE)
                except TagNotFoundError:
                    pass
                else:
                    raise DuplicateTagError("tag already exists", tag=name)

                start = self._seek_end()
                if start > 0 and not self._ends_with_newline(start):
                    record = b"\n" + record
                    start += 1
                    self._seek(start - 1)
                self._write(record)
                self._sync()
                self._locator.remember(name, start + len(raw_name) + len(FIELD_SEPARATOR))
            self._cache.touch(name)
        logger.debug("Created %s = %r (%s)", name, value, tag_type.name)

    def write_value(self, name: str, value: TagValue,
                    tag_type: Union[TagType, int, str, None] = None):
        """Overwrite a tag's value and increment its write count by one."""
        if value is None:
            raise InvalidArgsError("value is required", tag=name)
        tag_type = resolve_type(tag_type, value)
        check_tag_name(name)
        field = encode_value(tag_type, value)

        with self._mutex:
            self._check_open()
            with FileLockGuard(self._fh, exclusive=True):
                offset = self._locator.locate(name, TagField.VALUE)
                self._write(field)
                self._sync()
                self._cache.touch(name)
                if self.atomic_updates:
                    self._pending_increment = offset
                    self._increment_count()

            if not self.atomic_updates:
                # Armed only after the write lock was released cleanly
                self._pending_increment = offset
                self._warn_unprotected()
                self._increment_count()
        logger.debug("Wrote %s = %r", name, value)

    def read_value(self, name: str,
                   tag_type: Union[TagType, int, str, None] = None) -> Tuple[TagValue, bool]:
        """
        Read a tag's value and whether it changed since this store last read it.

        Without a type the value comes back as text with the padding
        stripped. Returns (value, is_new).
        """
        check_tag_name(name)
        tag_type = TagType.STRING if tag_type is None else resolve_type(tag_type)

        with self._mutex:
            self._check_open()
            with FileLockGuard(self._fh, exclusive=False):
                offset = self._locator.locate(name, TagField.VALUE)
                value = decode_value(tag_type, self._read(VALUE_WIDTH))
                self._cache.touch(name)
                if self.atomic_updates:
                    self._seek(offset + COUNT_OFFSET)
                    is_new = self._cache.observe(name, decode_count(self._read(COUNT_WIDTH)))

            if not self.atomic_updates:
                is_new = self._cache.observe(name, self._get_count(name))
        return value, is_new

    def get_count(self, name: str) -> int:
        """Current write count of a tag (1 after creation)."""
        check_tag_name(name)
        with self._mutex:
            self._check_open()
            with FileLockGuard(self._fh, exclusive=False):
                return self._get_count(name)

    def has_tag(self, name: str) -> bool:
        check_tag_name(name)
        with self._mutex:
            self._check_open()
            with FileLockGuard(self._fh, exclusive=False):
                try:
                    self._locator.locate(name, TagField.VALUE)
                except TagNotFoundError:
                    return False
                return True

    def tag_names(self) -> List[str]:
        """Names of all records, in file order."""
        with self._mutex:
            self._check_open()
            with FileLockGuard(self._fh, exclusive=False):
                return [name for name, _ in self._locator.iter_records()]

    def snapshot(self) -> List[TagRecord]:
        """
        Raw text value and count of every record.

        Does not touch the change-detection cache.
        """
        with self._mutex:
            self._check_open()
            with FileLockGuard(self._fh, exclusive=False):
                offsets = list(self._locator.iter_records())
                records = []
                for name, offset in offsets:
                    self._seek(offset)
                    value = decode_value(TagType.STRING, self._read(VALUE_WIDTH))
                    self._seek(offset + COUNT_OFFSET)
                    count = decode_count(self._read(COUNT_WIDTH))
                    records.append(TagRecord(name, value, count))
                return records

    # ── Internal ─────────────────────────────────────────────

    def _check_open(self):
        if self._fh is None:
            raise SequenceError("tag store is closed", tag=self.path)

    def _get_count(self, name: str) -> int:
        self._locator.locate(name, TagField.COUNT)
        return decode_count(self._read(COUNT_WIDTH))

    def _increment_count(self):
        """Add one to the count of the record whose value was just written."""
        offset = self._pending_increment
        if offset is None:
            raise SequenceError("count increment without a value write")
        self._pending_increment = None

        self._seek(offset + COUNT_OFFSET)
        count = decode_count(self._read(COUNT_WIDTH)) + 1
        self._seek(offset + COUNT_OFFSET)
        self._write(encode_count(count))
        self._sync()

    def _warn_unprotected(self):
        if not self._warned_unprotected:
            self._warned_unprotected = True
            logger.warning(
                "Tag file %s: legacy mode increments counts outside the file lock",
                self.path,
            )

    def _ends_with_newline(self, end: int) -> bool:
        self._seek(end - 1)
        return self._read(1) == b"\n"

    def _seek(self, offset: int):
        try:
            self._fh.seek(offset)
        except OSError as exc:
            raise FileAccessError("tag file seek failed", tag=self.path) from exc

    def _seek_end(self) -> int:
        try:
            return self._fh.seek(0, os.SEEK_END)
        except OSError as exc:
            raise FileAccessError("tag file seek failed", tag=self.path) from exc

    def _read(self, size: int) -> bytes:
        try:
            data = self._fh.read(size)
        except OSError as exc:
            raise FileReadError("tag file read failed", tag=self.path) from exc
        if data is None or len(data) < size:
            raise FileReadError(f"short read ({len(data or b'')} of {size} bytes)", tag=self.path)
        return data

    def _write(self, data: bytes):
        try:
            written = self._fh.write(data)
        except OSError as exc:
            raise FileWriteError("tag file write failed", tag=self.path) from exc
        if written is None or written < len(data):
            raise FileWriteError("short write", tag=self.path)

    def _sync(self):
        try:
            os.fsync(self._fh.fileno())
        except OSError as exc:
            raise FileWriteError("tag file sync failed", tag=self.path) from exc
