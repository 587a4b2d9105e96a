"""
Tests for the field locator scan.
"""

import pytest

from hwsim.core.codec import (
    COUNT_OFFSET,
    COUNT_WIDTH,
    VALUE_WIDTH,
    TagField,
    TagType,
    decode_count,
    decode_value,
    encode_record,
)
from hwsim.core.errors import (
    InvalidArgsError,
    InvalidTagFormatError,
    TagNotFoundError,
    TagTooLongError,
)
from hwsim.core.locator import FieldLocator


@pytest.fixture
def tag_fh(tag_file):
    tag_file.write_bytes(
        encode_record("TEST:TAG", TagType.FLOAT, 1.115)
        + encode_record("TEST:TAG1", TagType.INT, 20)
        + encode_record("TEST:TAG10", TagType.STRING, "/dev/can0", count=7)
    )
    with open(tag_file, "r+b", buffering=0) as fh:
        yield fh


def _record_len(name):
    return len(name) + 1 + VALUE_WIDTH + 1 + COUNT_WIDTH + 1


class TestFieldLocator:
    """Test record lookup by exact name."""

    def test_locate_value_of_first_record(self, tag_fh):
        loc = FieldLocator(tag_fh)
        offset = loc.locate("TEST:TAG", TagField.VALUE)
        assert offset == len("TEST:TAG:")
        assert tag_fh.tell() == offset
        assert decode_value(TagType.FLOAT, tag_fh.read(VALUE_WIDTH)) == pytest.approx(1.115)

    def test_locate_value_of_later_record(self, tag_fh):
        loc = FieldLocator(tag_fh)
        offset = loc.locate("TEST:TAG1", TagField.VALUE)
        assert offset == _record_len("TEST:TAG") + len("TEST:TAG1:")
        assert decode_value(TagType.INT, tag_fh.read(VALUE_WIDTH)) == 20

    def test_locate_count(self, tag_fh):
        loc = FieldLocator(tag_fh)
        value_offset = loc.locate("TEST:TAG10", TagField.VALUE)
        count_offset = loc.locate("TEST:TAG10", TagField.COUNT)
        assert count_offset == value_offset + COUNT_OFFSET
        assert decode_count(tag_fh.read(COUNT_WIDTH)) == 7

    def test_prefix_is_not_a_match(self, tag_fh):
        loc = FieldLocator(tag_fh)
        loc.locate("TEST:TAG1", TagField.VALUE)
        assert decode_value(TagType.STRING, tag_fh.read(VALUE_WIDTH)) == "+20"

    def test_missing_tag(self, tag_fh):
        with pytest.raises(TagNotFoundError):
            FieldLocator(tag_fh).locate("TEST:TAG2", TagField.VALUE)

    def test_names_are_case_sensitive(self, tag_fh):
        with pytest.raises(TagNotFoundError):
            FieldLocator(tag_fh).locate("test:tag", TagField.VALUE)

    def test_empty_file(self, tag_file):
        tag_file.write_bytes(b"")
        with open(tag_file, "r+b", buffering=0) as fh:
            with pytest.raises(TagNotFoundError):
                FieldLocator(fh).locate("TEST:TAG", TagField.VALUE)

    def test_invalid_name_rejected(self, tag_fh):
        with pytest.raises(InvalidTagFormatError):
            FieldLocator(tag_fh).locate("NOSEPARATOR", TagField.VALUE)

    def test_invalid_field(self, tag_fh):
        with pytest.raises(InvalidArgsError):
            FieldLocator(tag_fh).locate("TEST:TAG", "value")

    def test_skips_partial_lines(self, tag_file):
        tag_file.write_bytes(
            b"garbage without separator\r\n"
            + encode_record("DEV:REG", TagType.INT, 5)
        )
        with open(tag_file, "r+b", buffering=0) as fh:
            FieldLocator(fh).locate("DEV:REG", TagField.VALUE)
            assert decode_value(TagType.INT, fh.read(VALUE_WIDTH)) == 5

    def test_skips_torn_record(self, tag_file):
        tag_file.write_bytes(
            encode_record("DEV:A", TagType.INT, 1)
            + b"DEV:TORN:" + b" " * 40 + b"\n"
            + encode_record("DEV:B", TagType.INT, 2)
        )
        with open(tag_file, "r+b", buffering=0) as fh:
            loc = FieldLocator(fh)
            assert [name for name, _ in loc.iter_records()] == ["DEV:A", "DEV:B"]
            with pytest.raises(TagNotFoundError):
                loc.locate("DEV:TORN", TagField.VALUE)
            loc.locate("DEV:B", TagField.VALUE)
            assert decode_value(TagType.INT, fh.read(VALUE_WIDTH)) == 2

    def test_skips_record_cut_by_eof(self, tag_file):
        tag_file.write_bytes(encode_record("DEV:A", TagType.INT, 1) + b"DEV:CUT:   +4")
        with open(tag_file, "r+b", buffering=0) as fh:
            assert [name for name, _ in FieldLocator(fh).iter_records()] == ["DEV:A"]

    def test_last_record_without_newline(self, tag_file):
        tag_file.write_bytes(encode_record("DEV:A", TagType.INT, 1)[:-1])
        with open(tag_file, "r+b", buffering=0) as fh:
            FieldLocator(fh).locate("DEV:A", TagField.VALUE)
            assert decode_value(TagType.INT, fh.read(VALUE_WIDTH)) == 1

    def test_overlong_name_in_file(self, tag_file):
        tag_file.write_bytes(b"X" * 60 + b"\n" + encode_record("DEV:REG", TagType.INT, 5))
        with open(tag_file, "r+b", buffering=0) as fh:
            with pytest.raises(TagTooLongError):
                FieldLocator(fh).locate("DEV:REG", TagField.VALUE)

    def test_first_duplicate_wins(self, tag_file):
        tag_file.write_bytes(
            encode_record("DEV:REG", TagType.INT, 1)
            + encode_record("DEV:REG", TagType.INT, 2)
        )
        with open(tag_file, "r+b", buffering=0) as fh:
            FieldLocator(fh).locate("DEV:REG", TagField.VALUE)
            assert decode_value(TagType.INT, fh.read(VALUE_WIDTH)) == 1

    def test_iter_records(self, tag_fh):
        records = list(FieldLocator(tag_fh).iter_records())
        assert [name for name, _ in records] == ["TEST:TAG", "TEST:TAG1", "TEST:TAG10"]
        assert records[0][1] == len("TEST:TAG:")


class TestOffsetIndex:
    """Test the optional offset index."""

    def test_index_disabled_by_default(self, tag_fh):
        assert FieldLocator(tag_fh).indexed is False

    def test_hit_skips_scan(self, tag_fh, monkeypatch):
        loc = FieldLocator(tag_fh, index_offsets=True)
        first = loc.locate("TEST:TAG10", TagField.VALUE)

        def no_scan():
            raise AssertionError("scanned despite index hit")

        monkeypatch.setattr(loc, "_scan", no_scan)
        assert loc.locate("TEST:TAG10", TagField.VALUE) == first
        # Records passed during the first scan were indexed too
        loc.locate("TEST:TAG", TagField.COUNT)
        assert decode_count(tag_fh.read(COUNT_WIDTH)) == 1

    def test_miss_falls_back_to_scan(self, tag_file, tag_fh):
        loc = FieldLocator(tag_fh, index_offsets=True)
        loc.locate("TEST:TAG", TagField.VALUE)
        with open(tag_file, "ab") as peer:
            peer.write(encode_record("LATE:TAG", TagType.INT, 99))
        loc.locate("LATE:TAG", TagField.VALUE)
        assert decode_value(TagType.INT, tag_fh.read(VALUE_WIDTH)) == 99

    def test_remembered_offset_skips_scan(self, tag_fh, monkeypatch):
        loc = FieldLocator(tag_fh, index_offsets=True)
        loc.remember("TEST:TAG1", _record_len("TEST:TAG") + len("TEST:TAG1:"))
        monkeypatch.setattr(loc, "_scan", lambda: iter(()))
        loc.locate("TEST:TAG1", TagField.VALUE)
        assert decode_value(TagType.INT, tag_fh.read(VALUE_WIDTH)) == 20

    def test_remember_ignored_without_index(self, tag_fh, monkeypatch):
        loc = FieldLocator(tag_fh)
        loc.remember("TEST:TAG1", 0)
        monkeypatch.setattr(loc, "_scan", lambda: iter(()))
        with pytest.raises(TagNotFoundError):
            loc.locate("TEST:TAG1", TagField.VALUE)
