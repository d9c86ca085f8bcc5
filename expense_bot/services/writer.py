from __future__ import annotations

import logging
from collections.abc import Mapping

from ..errors import StoreError
from ..schemas.expense import MonthGroup, WriteOutcome, WriteStatus
from .sheets import TabularStore

logger = logging.getLogger(__name__)


class IdempotentSheetWriter:
    """Appends each month group to its own sheet, once.

    A sheet whose ``A1`` already holds a value is treated as written and left
    alone. The check and the append are separate API calls, so two uploads of
    the same month racing each other can both append.
    """

    def __init__(self, store: TabularStore) -> None:
        self.store = store

    async def write_group(self, group: MonthGroup) -> WriteOutcome:
        target_range = group.target_range
        existing = await self.store.get_values(target_range)
        if existing:
            note = f"data already written: {target_range}, skipping..."
            logger.warning(note)
            return WriteOutcome(month=group.month, status=WriteStatus.SKIPPED, note=note)

        await self.store.append_rows(group.month, group.to_sheet_rows())
        return WriteOutcome(month=group.month, status=WriteStatus.WRITTEN)

    async def write(self, groups: Mapping[str, MonthGroup]) -> list[WriteOutcome]:
        """Write every group, stopping at the first store failure.

        On failure the raised ``StoreError`` carries the outcomes gathered so
        far, including a ``failed`` outcome for the group that broke.
        """
        outcomes: list[WriteOutcome] = []
        for month, group in groups.items():
            try:
                outcomes.append(await self.write_group(group))
            except StoreError as exc:
                outcomes.append(
                    WriteOutcome(
                        month=month,
                        status=WriteStatus.FAILED,
                        note=f"failed to write {group.target_range}: {exc}",
                    )
                )
                raise StoreError(str(exc), outcomes=outcomes) from exc
        return outcomes
