from .expense import (
    SHEET_HEADER,
    ExpenseRecord,
    MonthGroup,
    ReconcileResult,
    WriteOutcome,
    WriteStatus,
)

__all__ = [
    "SHEET_HEADER",
    "ExpenseRecord",
    "MonthGroup",
    "ReconcileResult",
    "WriteOutcome",
    "WriteStatus",
]
