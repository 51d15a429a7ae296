"""Application service layer.

Stable import surface for routers:
    from directory_api.services import ...
"""

from .oplog import OperationLog
from .directory import DirectoryService
from .sessions import SessionStore, InMemorySessionStore
from . import membership

__all__ = [
    "OperationLog",
    "DirectoryService",
    "SessionStore",
    "InMemorySessionStore",
    "membership",
]
