from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

SHEET_HEADER: list[str] = ["date", "category", "amount", "note", "label"]
SHEET_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ExpenseRecord(BaseModel):
    """One row of a Spendee CSV export."""

    occurred_at: datetime
    category: str = ""
    amount: str = ""
    note: str = ""
    label: str = ""

    @property
    def month_code(self) -> str:
        return self.occurred_at.strftime("%m")

    def to_sheet_row(self) -> list[Any]:
        return [
            self.occurred_at.strftime(SHEET_DATE_FORMAT),
            self.category,
            self.amount,
            self.note,
            self.label,
        ]


class MonthGroup(BaseModel):
    """Records of a single calendar month, in the order they were read."""

    month: str = Field(min_length=2, max_length=2)
    records: list[ExpenseRecord] = Field(default_factory=list)

    @property
    def target_range(self) -> str:
        return f"{self.month}!A1"

    def to_sheet_rows(self) -> list[list[Any]]:
        """Rows to append, starting with the fixed header row."""
        return [list(SHEET_HEADER), *(record.to_sheet_row() for record in self.records)]


class ReconcileResult(BaseModel):
    groups: dict[str, MonthGroup] = Field(default_factory=dict)
    notes: list[str] = Field(default_factory=list)

    def add(self, record: ExpenseRecord) -> None:
        month = record.month_code
        group = self.groups.get(month)
        if group is None:
            group = self.groups[month] = MonthGroup(month=month)
        group.records.append(record)


class WriteStatus(str, Enum):
    WRITTEN = "written"
    SKIPPED = "skipped"
    FAILED = "failed"


class WriteOutcome(BaseModel):
    month: str
    status: WriteStatus
    note: Optional[str] = None
