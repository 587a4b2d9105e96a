"""
Tag-Backed Simulated Device
============================
Shim that lets a simulated board present its registers through a
shared tag file instead of real CAN/SPI/UDP I/O.

A device owns a function name (e.g. "HEATER1") and a set of named
registers; register "SETPOINT" lives in tag "HEATER1:SETPOINT".
All per-device state stays on the instance, so several devices of
the same kind can run side by side in one process.

Use this from simulator processes and from the code under test
alike: one side writes, the other polls for new data.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from hwsim.core.codec import FIELD_SEPARATOR, TagType, check_tag_name, resolve_type
from hwsim.core.errors import DuplicateTagError, InvalidArgsError
from hwsim.core.tag_store import TagStore, TagValue

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegisterSpec:
    """Default value and (optionally) explicit type of one register."""
    default: Any
    tag_type: Optional[TagType] = None

    @property
    def resolved_type(self) -> TagType:
        return resolve_type(self.tag_type, self.default)


class TagDevice:
    """A group of registers stored as `<function>:<register>` tags."""

    def __init__(
        self,
        store: TagStore,
        function: str,
        registers: Mapping[str, Union[RegisterSpec, Any]],
    ):
        if not function or FIELD_SEPARATOR in function:
            raise InvalidArgsError(f"invalid device function name {function!r}")
        self.store = store
        self.function = function
        self._registers: Dict[str, RegisterSpec] = {}
        for register, spec in registers.items():
            if not isinstance(spec, RegisterSpec):
                spec = RegisterSpec(default=spec)
            check_tag_name(self._tag_name(register))
            self._registers[register] = spec

    @property
    def registers(self) -> List[str]:
        return list(self._registers)

    def tag(self, register: str) -> str:
        """Full tag name of a register."""
        self._spec(register)
        return self._tag_name(register)

    def ensure(self) -> List[str]:
        """Create any register tag missing from the file; return the ones created."""
        created = []
        for register, spec in self._registers.items():
            try:
                self.store.create_tag(self._tag_name(register), spec.default, spec.resolved_type)
            except DuplicateTagError:
                continue
            created.append(register)
        if created:
            logger.info("%s: created registers %s", self.function, ", ".join(created))
        return created

    def read(self, register: str) -> Tuple[TagValue, bool]:
        """Read a register. Returns (value, is_new)."""
        spec = self._spec(register)
        return self.store.read_value(self._tag_name(register), spec.resolved_type)

    def write(self, register: str, value: TagValue):
        spec = self._spec(register)
        self.store.write_value(self._tag_name(register), value, spec.resolved_type)

    def poll(self) -> Dict[str, TagValue]:
        """Read every register; return those written since the last read."""
        changed = {}
        for register in self._registers:
            value, is_new = self.read(register)
            if is_new:
                changed[register] = value
        return changed

    # ── Internal ─────────────────────────────────────────────

    def _tag_name(self, register: str) -> str:
        return f"{self.function}{FIELD_SEPARATOR}{register}"

    def _spec(self, register: str) -> RegisterSpec:
        try:
            return self._registers[register]
        except KeyError:
            raise InvalidArgsError(f"{self.function} has no register {register!r}") from None
