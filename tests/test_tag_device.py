"""
Tests for the tag-backed simulated device shim.
"""

import pytest

from hwsim.core.codec import TagType
from hwsim.core.errors import InvalidArgsError, TagTooLongError
from hwsim.core.tag_store import TagStore
from hwsim.drivers.tag_device import RegisterSpec, TagDevice


class TestTagDevice:
    """Test register mapping, creation and polling."""

    def test_tag_names(self, heater):
        assert heater.tag("SETPOINT") == "HEATER1:SETPOINT"
        assert heater.registers == ["SETPOINT", "ENABLE", "MODE"]

    def test_ensure_creates_registers(self, heater, store):
        assert heater.ensure() == ["SETPOINT", "ENABLE", "MODE"]
        assert store.tag_names() == ["HEATER1:SETPOINT", "HEATER1:ENABLE", "HEATER1:MODE"]
        assert heater.ensure() == []

    def test_ensure_keeps_existing_values(self, heater, store):
        store.create_tag("HEATER1:ENABLE", 1)
        assert heater.ensure() == ["SETPOINT", "MODE"]
        assert heater.read("ENABLE") == (1, True)

    def test_read_defaults(self, heater):
        heater.ensure()
        value, is_new = heater.read("SETPOINT")
        assert value == pytest.approx(120.0)
        assert is_new is True
        assert heater.read("MODE") == ("IDLE", True)

    def test_poll_reports_only_changes(self, heater):
        heater.ensure()
        first = heater.poll()
        assert set(first) == {"SETPOINT", "ENABLE", "MODE"}
        assert heater.poll() == {}
        heater.write("ENABLE", 1)
        assert heater.poll() == {"ENABLE": 1}

    def test_peer_device_sees_writes(self, heater, tag_file):
        heater.ensure()
        with TagStore(tag_file) as other:
            board = TagDevice(other, "HEATER1", {"SETPOINT": 0.0, "ENABLE": 0, "MODE": ""})
            board.poll()
            heater.write("MODE", "RAMP")
            assert board.poll() == {"MODE": "RAMP"}

    def test_explicit_register_type(self, store):
        dev = TagDevice(store, "EPC", {"PRESSURE": RegisterSpec(default=0, tag_type=TagType.FLOAT)})
        dev.ensure()
        dev.write("PRESSURE", 14.7)
        assert dev.read("PRESSURE")[0] == pytest.approx(14.7)

    def test_unknown_register(self, heater):
        with pytest.raises(InvalidArgsError):
            heater.read("NOPE")
        with pytest.raises(InvalidArgsError):
            heater.tag("NOPE")

    @pytest.mark.parametrize("function", ["", "BAD:NAME"])
    def test_invalid_function(self, store, function):
        with pytest.raises(InvalidArgsError):
            TagDevice(store, function, {"REG": 0})

    def test_register_name_too_long(self, store):
        with pytest.raises(TagTooLongError):
            TagDevice(store, "DEV", {"R" * 60: 0})
