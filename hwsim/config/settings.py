"""
Tag Store Settings
===================
Where the tag file lives and how the store treats it. Settings can
be changed from the command line or a JSON file and persisted back
to disk.
"""

from dataclasses import dataclass, field
import json
from pathlib import Path

DEFAULT_CONFIG_PATH = "config/hwsim.json"


@dataclass
class StoreSettings:
    """Options used to open a TagStore."""

    # ── Tag File ─────────────────────────────────────────────
    tag_file: str = "tags.txt"          # Shared by every simulator process
    file_mode: int = 0o666              # Permissions when the file is created

    # ── Behaviour ────────────────────────────────────────────
    atomic_updates: bool = True         # Value + count under one lock
    index_offsets: bool = False         # Cache record offsets between lookups

    # ── Persistence ──────────────────────────────────────────
    _config_path: str = field(
        default=DEFAULT_CONFIG_PATH, repr=False
    )

    def save(self, path: str = None):
        """Persist current settings to JSON."""
        filepath = Path(path or self._config_path)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        filepath.write_text(json.dumps(self.as_dict(), indent=2))

    @classmethod
    def load(cls, path: str = None) -> "StoreSettings":
        """Load settings from JSON, falling back to defaults."""
        filepath = Path(path or DEFAULT_CONFIG_PATH)
        settings = cls(_config_path=str(filepath))
        if filepath.exists():
            data = json.loads(filepath.read_text())
            for key, value in data.items():
                settings.update(key, value)
        return settings

    def update(self, key: str, value) -> bool:
        """Update a single setting, returning True on success."""
        if not hasattr(self, key) or key.startswith("_"):
            return False
        expected_type = type(getattr(self, key))
        try:
            if expected_type is bool and isinstance(value, str):
                value = value.strip().lower() in ("1", "true", "yes", "on")
            elif expected_type is int and isinstance(value, str):
                value = int(value, 0)
            setattr(self, key, expected_type(value))
            return True
        except (ValueError, TypeError):
            return False

    def as_dict(self) -> dict:
        """Return all settings as a flat dictionary."""
        return {
            k: v for k, v in self.__dict__.items()
            if not k.startswith("_")
        }
