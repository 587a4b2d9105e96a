from hwsim.core.codec import TagType, TagField
from hwsim.core.errors import ErrorKind, TagStoreError
from hwsim.core.tag_cache import LocalTagCache
from hwsim.core.tag_store import TagStore, TagRecord

__all__ = [
    "TagType",
    "TagField",
    "ErrorKind",
    "TagStoreError",
    "LocalTagCache",
    "TagStore",
    "TagRecord",
]
