from .gate import UploadGate
from .notifier import Notifier, build_summary
from .reconciler import reconcile_csv, reconcile_rows
from .sessions import InMemorySessionStore, Session, SessionStore
from .sheets import GoogleSheetsStore, TabularStore
from .upload import UPLOAD_COMMAND, SpendeeUploadService
from .writer import IdempotentSheetWriter

__all__ = [
    "UploadGate",
    "Notifier",
    "build_summary",
    "reconcile_csv",
    "reconcile_rows",
    "InMemorySessionStore",
    "Session",
    "SessionStore",
    "GoogleSheetsStore",
    "TabularStore",
    "UPLOAD_COMMAND",
    "SpendeeUploadService",
    "IdempotentSheetWriter",
]
