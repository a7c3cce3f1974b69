"""State, mutations, backups and reports for the donor CRM."""

from .backup import BackupManager
from .clock import FixedClock, SequentialIdFactory, SystemClock, UUIDIdFactory
from .config import StoreConfig
from .results import CRMError, Err, ErrorKind, Ok
from .state import EntityStore, StateSnapshot
from .store import CRMStore

__all__ = [
    "BackupManager",
    "CRMError",
    "CRMStore",
    "EntityStore",
    "Err",
    "ErrorKind",
    "FixedClock",
    "Ok",
    "SequentialIdFactory",
    "StateSnapshot",
    "StoreConfig",
    "SystemClock",
    "UUIDIdFactory",
]
