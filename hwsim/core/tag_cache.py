"""
Local Tag Cache
================
Remembers, per process, the last write count observed for each tag
touched through a TagStore. It stores counts only, never values;
its sole purpose is to tell a reader whether a tag was written
since that reader last looked at it.
"""

from typing import Dict, Iterator, Optional

from hwsim.core.errors import CountError, InternalError

INITIAL_SEEN_COUNT = 0


class LocalTagCache:
    """Map of tag name -> last seen write count."""

    def __init__(self):
        self._seen: Dict[str, int] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._seen

    def __len__(self) -> int:
        return len(self._seen)

    def __iter__(self) -> Iterator[str]:
        return iter(self._seen)

    def touch(self, name: str):
        """Start tracking a tag; existing entries are left as they are."""
        self._seen.setdefault(name, INITIAL_SEEN_COUNT)

    def last_seen(self, name: str) -> Optional[int]:
        return self._seen.get(name)

    def observe(self, name: str, count: int) -> bool:
        """
        Compare the current write count with the last one seen.

        Returns True (and remembers the count) when it is newer,
        False when unchanged. A count lower than the remembered one
        means the record went backwards and raises CountError.
        """
        if name not in self._seen:
            raise InternalError("tag not tracked by this process", tag=name)
        seen = self._seen[name]
        if count > seen:
            self._seen[name] = count
            return True
        if count == seen:
            return False
        raise CountError(f"count {count} below last seen {seen}", tag=name)
