"""Spendee CSV parsing: month filtering and per-month grouping."""

from __future__ import annotations

import csv
import io
import logging
import re
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from typing import Optional

from ..errors import ParseError
from ..schemas.expense import ExpenseRecord, ReconcileResult

logger = logging.getLogger(__name__)

HEADER_MARKER = "Date"
DATE_COLUMN = 0
CATEGORY_COLUMN = 3
AMOUNT_COLUMN = 4
NOTE_COLUMN = 6
LABEL_COLUMN = 7

_FRACTION_RE = re.compile(r"(T\d{2}:\d{2}:\d{2})\.(\d+)")


def parse_spendee_date(value: str) -> datetime:
    """Parse an RFC3339 timestamp such as ``2024-01-15T08:30:00+07:00``."""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    # fromisoformat on 3.10 only takes 3 or 6 fractional digits.
    text = _FRACTION_RE.sub(lambda m: f"{m.group(1)}.{m.group(2)[:6].ljust(6, '0')}", text)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise ParseError(f"invalid date '{value}'") from exc
    if parsed.tzinfo is None:
        raise ParseError(f"date '{value}' has no UTC offset")
    return parsed


def current_month_start(now: Optional[datetime] = None) -> datetime:
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return datetime(now.year, now.month, 1, tzinfo=timezone.utc)


def normalise_amount(raw: str) -> str:
    # Spendee exports expenses as negative numbers; the sheet stores magnitudes.
    return raw.replace("-", "", 1)


def parse_record(row: Sequence[str]) -> ExpenseRecord:
    if len(row) <= LABEL_COLUMN:
        raise ParseError(f"expected at least {LABEL_COLUMN + 1} columns, got {len(row)}")
    return ExpenseRecord(
        occurred_at=parse_spendee_date(row[DATE_COLUMN]),
        category=row[CATEGORY_COLUMN],
        amount=normalise_amount(row[AMOUNT_COLUMN]),
        note=row[NOTE_COLUMN],
        label=row[LABEL_COLUMN],
    )


def reconcile_rows(rows: Iterable[Sequence[str]], *, now: Optional[datetime] = None) -> ReconcileResult:
    """Group CSV rows by month, keeping only months that have already ended.

    Reading stops at the first record dated on or after the start of the
    current month: exports are chronological, so everything after it belongs
    to the running month as well. A malformed row also ends the read; the
    records collected so far are kept.
    """
    boundary = current_month_start(now)
    result = ReconcileResult()
    iterator = iter(rows)
    line_number = 0
    while True:
        line_number += 1
        try:
            row = next(iterator)
        except StopIteration:
            break
        except (csv.Error, UnicodeDecodeError) as exc:
            logger.warning("Stopped reading CSV at line %d: %s", line_number, exc)
            break

        if not row or row[DATE_COLUMN] == HEADER_MARKER:
            continue

        try:
            record = parse_record(row)
        except ParseError as exc:
            logger.warning("Stopped reading CSV at line %d: %s", line_number, exc)
            break

        if record.occurred_at >= boundary:
            note = f"can only process ended month: {record.occurred_at.strftime('%Y-%m-%d')}"
            result.notes.append(note)
            logger.warning(note)
            break

        result.add(record)

    logger.info(
        "Parsed CSV into %d month group(s): %s",
        len(result.groups),
        ", ".join(f"{month}={len(group.records)}" for month, group in result.groups.items()) or "none",
    )
    return result


def reconcile_csv(content: bytes | str, *, now: Optional[datetime] = None) -> ReconcileResult:
    if isinstance(content, bytes):
        # Decoded per line so a bad byte only ends the read where it occurs.
        lines = (line.decode("utf-8-sig") for line in io.BytesIO(content))
        reader = csv.reader(lines)
    else:
        reader = csv.reader(io.StringIO(content, newline=""))
    return reconcile_rows(reader, now=now)
