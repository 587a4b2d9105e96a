"""
Tag Record Codec
=================
Fixed-width text encoding of tag values and write counts.

Record layout (one tag per line):

    <function>:<type>:<value, 255 bytes>,<count, 30 bytes>\\n

Numeric values and counts are right-justified with an explicit sign,
strings are right-justified and left-padded with spaces. The widths
below are the only place the layout is defined; the field locator
derives all of its seek offsets from them.
"""

from enum import Enum, IntEnum
from typing import Any, Optional, Union

from hwsim.core.errors import (
    CountError,
    InvalidArgsError,
    InvalidTagFormatError,
    ParseError,
    TagTooLongError,
    ValueTooLongError,
)

# ── Record Layout ────────────────────────────────────────────
MAX_TAG_LEN = 50            # Bytes, including the field separator
VALUE_WIDTH = 255           # Value field, sign included
COUNT_WIDTH = 30            # Count field, sign included
FLOAT_PRECISION = 15        # Fractional digits in scientific notation
FIELD_SEPARATOR = ":"
VALUE_SEPARATOR = ","
TAG_INIT_COUNT = 1

# Offsets relative to the start of a record's value field
COUNT_OFFSET = VALUE_WIDTH + len(VALUE_SEPARATOR)
RECORD_TAIL = COUNT_OFFSET + COUNT_WIDTH

_FORBIDDEN_NAME_CHARS = ("\n", "\r", VALUE_SEPARATOR)


class TagType(IntEnum):
    INT = 0
    FLOAT = 1
    STRING = 2

    @classmethod
    def parse(cls, text: str) -> "TagType":
        """Resolve 'int', 'float', 'str'/'string' (any case) to a TagType."""
        key = text.strip().upper()
        if key == "STR":
            key = "STRING"
        try:
            return cls[key]
        except KeyError:
            raise InvalidArgsError(f"unknown tag type {text!r}") from None


class TagField(Enum):
    VALUE = "value"
    COUNT = "count"


def infer_type(value: Any) -> TagType:
    """Pick the tag type matching a Python value."""
    if isinstance(value, str):
        return TagType.STRING
    if isinstance(value, float):
        return TagType.FLOAT
    if isinstance(value, int):
        return TagType.INT
    raise InvalidArgsError(f"no tag type for {type(value).__name__} values")


def resolve_type(tag_type: Union[TagType, int, str, None], value: Any = None) -> TagType:
    """Normalise an explicit type, or infer one from the value."""
    if tag_type is None:
        if value is None:
            raise InvalidArgsError("tag type or value required")
        return infer_type(value)
    if isinstance(tag_type, str):
        return TagType.parse(tag_type)
    try:
        return TagType(tag_type)
    except ValueError:
        raise InvalidArgsError(f"unknown tag type {tag_type!r}") from None


def check_tag_name(name: Optional[str]) -> bytes:
    """
    Validate a tag name and return its encoded form.

    A name holds exactly one field separator, not in last position,
    and encodes to at most MAX_TAG_LEN bytes.
    """
    if name is None or not isinstance(name, str):
        raise InvalidArgsError("tag name must be a string")
    raw = name.encode("utf-8")
    if len(raw) > MAX_TAG_LEN:
        raise TagTooLongError(f"tag exceeds {MAX_TAG_LEN} bytes", tag=name)
    if name.count(FIELD_SEPARATOR) != 1:
        raise InvalidTagFormatError("tag needs exactly one separator", tag=name)
    if name.endswith(FIELD_SEPARATOR):
        raise InvalidTagFormatError("tag ends with separator", tag=name)
    if any(ch in name for ch in _FORBIDDEN_NAME_CHARS):
        raise InvalidTagFormatError("tag contains a record delimiter", tag=name)
    return raw


# ── Values ───────────────────────────────────────────────────

def encode_value(tag_type: TagType, value: Any) -> bytes:
    """Encode a value into a VALUE_WIDTH byte field."""
    if value is None:
        raise InvalidArgsError("value is required")

    if tag_type == TagType.INT:
        if isinstance(value, float) or not isinstance(value, int):
            raise InvalidArgsError(f"integer tag cannot hold {value!r}")
        text = f"{value:+{VALUE_WIDTH}d}"
    elif tag_type == TagType.FLOAT:
        if isinstance(value, str) or not isinstance(value, (int, float)):
            raise InvalidArgsError(f"float tag cannot hold {value!r}")
        text = f"{float(value):+{VALUE_WIDTH}.{FLOAT_PRECISION}e}"
    elif tag_type == TagType.STRING:
        if not isinstance(value, str):
            raise InvalidArgsError(f"string tag cannot hold {value!r}")
        if "\n" in value or "\r" in value:
            raise InvalidArgsError("string value cannot contain a line end")
        raw = value.encode("utf-8")
        if len(raw) > VALUE_WIDTH:
            raise ValueTooLongError(f"string of {len(raw)} bytes exceeds {VALUE_WIDTH}")
        return b" " * (VALUE_WIDTH - len(raw)) + raw
    else:
        raise InvalidArgsError(f"unknown tag type {tag_type!r}")

    if len(text) > VALUE_WIDTH:
        raise ValueTooLongError(f"value exceeds {VALUE_WIDTH} characters")
    return text.encode("ascii")


def decode_value(tag_type: TagType, field: bytes) -> Union[int, float, str]:
    """Decode a value field read from the tag file."""
    if tag_type == TagType.STRING:
        try:
            text = field.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError("value field is not valid UTF-8") from exc
        return text.lstrip(" ")

    text = field[:VALUE_WIDTH].decode("ascii", errors="replace").strip()
    try:
        if tag_type == TagType.INT:
            return int(text)
        if tag_type == TagType.FLOAT:
            return float(text)
    except ValueError as exc:
        raise ParseError(f"cannot read {text!r} as {tag_type.name.lower()}") from exc
    raise InvalidArgsError(f"unknown tag type {tag_type!r}")


# ── Counts ───────────────────────────────────────────────────

def encode_count(count: int) -> bytes:
    """Encode a write count into a COUNT_WIDTH byte field."""
    text = f"{count:+{COUNT_WIDTH}d}"
    if len(text) > COUNT_WIDTH:
        raise CountError(f"count {count} exceeds {COUNT_WIDTH} characters")
    return text.encode("ascii")


def decode_count(field: bytes) -> int:
    """Decode a count field; a negative count means the file is corrupt."""
    text = field[:COUNT_WIDTH].decode("ascii", errors="replace").strip()
    try:
        count = int(text)
    except ValueError as exc:
        raise ParseError(f"cannot read count {text!r}") from exc
    if count < 0:
        raise CountError(f"negative count {count}")
    return count


def encode_record(name: str, tag_type: TagType, value: Any,
                  count: int = TAG_INIT_COUNT) -> bytes:
    """Build a complete newline-terminated record."""
    return b"".join((
        check_tag_name(name),
        FIELD_SEPARATOR.encode("ascii"),
        encode_value(tag_type, value),
        VALUE_SEPARATOR.encode("ascii"),
        encode_count(count),
        b"\n",
    ))
