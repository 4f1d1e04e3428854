import logging
import time
from typing import List

from krishi.config import Config
from krishi.models import (
    ActivityRecord,
    TransactionRecord,
    TransactionSummary,
    TransactionType,
)
from krishi.storage import StorageKey
from krishi.utility import now_ms, today_iso

logger = logging.getLogger("ledger")


class IdClock:
    """Millisecond ids that never repeat or go backwards."""

    def __init__(self, clock=now_ms):
        self._clock = clock
        self._last = 0

    def next_id(self) -> int:
        self._last = max(self._clock(), self._last + 1)
        return self._last


class FarmLedger:
    """Append-only activity and transaction log for one farmer."""

    def __init__(self, storage, farmer_id=None, id_clock=None, today=today_iso):
        self.storage = storage
        self.farmer_id = farmer_id if farmer_id is not None else Config.farmer_id
        self.id_clock = id_clock or IdClock()
        self.today = today

    async def add_activity(self, activity_type="General", crop="Unknown", area_acres=None, date=None) -> ActivityRecord:
        record = ActivityRecord(
            id=self.id_clock.next_id(),
            farmer_id=self.farmer_id,
            date=date or self.today(),
            activity_type=activity_type or "General",
            crop=crop or "Unknown",
            area_acres=area_acres,
        )
        await self._append(StorageKey["ACTIVITIES"], record.to_dict())
        return record

    async def add_transaction(self, type=None, category="General", amount=0, date=None) -> TransactionRecord:
        record = TransactionRecord(
            id=self.id_clock.next_id(),
            farmer_id=self.farmer_id,
            date=date or self.today(),
            type=type or TransactionType["EXPENSE"],
            category=category or "General",
            amount=amount or 0,
        )
        await self._append(StorageKey["TRANSACTIONS"], record.to_dict())
        return record

    async def _append(self, key, payload):
        start = time.perf_counter()
        try:
            await self.storage.append(key, payload)
        finally:
            ms = (time.perf_counter() - start) * 1000.0
            logger.info("[timing] step=ledger.append ms=%.2f key=%s id=%s", ms, key, payload.get("id"))

    async def list_activities(self) -> List[ActivityRecord]:
        rows = await self.storage.list_all(StorageKey["ACTIVITIES"])
        return [ActivityRecord.from_dict(row) for row in rows]

    async def list_transactions(self) -> List[TransactionRecord]:
        rows = await self.storage.list_all(StorageKey["TRANSACTIONS"])
        return [TransactionRecord.from_dict(row) for row in rows]

    async def get_transaction_summary(self) -> TransactionSummary:
        summary = TransactionSummary()
        for tx in await self.list_transactions():
            if tx.type == TransactionType["INCOME"]:
                summary.total_income += tx.amount
            else:
                summary.total_expense += tx.amount

        summary.net_profit = summary.total_income - summary.total_expense
        return summary
