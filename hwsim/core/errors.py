"""
Tag Store Errors
=================
Every failure of the tag store is raised as a TagStoreError
subclass. Each one carries an ErrorKind whose integer value is the
numeric code the hardware file interface has always reported, so
shims that log or forward codes keep working.
"""

from enum import IntEnum
from typing import Optional


class ErrorKind(IntEnum):
    NO_FILENAME = -1
    PATH_TOO_LONG = -2
    FILE_ACCESS = -3
    FILE_OPEN = -4
    FILE_READ = -5
    FILE_WRITE = -6
    INVALID_ARGS = -7
    TAG_TOO_LONG = -8
    TAG_NOT_FOUND = -9
    PARSE = -10
    DUPLICATE_TAG = -11
    INVALID_TAG_FORMAT = -12
    INTERNAL = -13
    MEMORY = -14
    COUNT = -15
    SEQUENCE = -16        # Internal step invoked out of order
    LOCK = -17
    VALUE_TOO_LONG = -18


class TagStoreError(Exception):
    """Base class for all tag store failures."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str = "", tag: Optional[str] = None):
        self.tag = tag
        if tag and message:
            message = f"{message}: {tag}"
        elif tag:
            message = tag
        super().__init__(message or self.kind.name.replace("_", " ").lower())

    @property
    def code(self) -> int:
        return int(self.kind)


class NoFilenameError(TagStoreError):
    kind = ErrorKind.NO_FILENAME


class PathTooLongError(TagStoreError):
    kind = ErrorKind.PATH_TOO_LONG


class FileAccessError(TagStoreError):
    kind = ErrorKind.FILE_ACCESS


class FileOpenError(TagStoreError):
    kind = ErrorKind.FILE_OPEN


class FileReadError(TagStoreError):
    kind = ErrorKind.FILE_READ


class FileWriteError(TagStoreError):
    kind = ErrorKind.FILE_WRITE


class InvalidArgsError(TagStoreError):
    kind = ErrorKind.INVALID_ARGS


class TagTooLongError(TagStoreError):
    kind = ErrorKind.TAG_TOO_LONG


class TagNotFoundError(TagStoreError):
    kind = ErrorKind.TAG_NOT_FOUND


class ParseError(TagStoreError):
    kind = ErrorKind.PARSE


class DuplicateTagError(TagStoreError):
    kind = ErrorKind.DUPLICATE_TAG


class InvalidTagFormatError(TagStoreError):
    kind = ErrorKind.INVALID_TAG_FORMAT


class InternalError(TagStoreError):
    kind = ErrorKind.INTERNAL


class TagMemoryError(TagStoreError):
    kind = ErrorKind.MEMORY


class CountError(TagStoreError):
    kind = ErrorKind.COUNT


class SequenceError(TagStoreError):
    kind = ErrorKind.SEQUENCE


class LockError(TagStoreError):
    kind = ErrorKind.LOCK


class ValueTooLongError(TagStoreError):
    kind = ErrorKind.VALUE_TOO_LONG

