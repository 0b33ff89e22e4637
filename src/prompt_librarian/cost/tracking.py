"""
Cost tracking - where embedding usage gets reported.

Sinks never raise. A ledger outage is logged and reported back as
TrackCostResult(success=False), so embedding is never blocked by accounting.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from prompt_librarian.core.protocols import CostRecord, TrackCostResult

logger = logging.getLogger(__name__)


class PgCostSink:
    """Production cost sink writing to a cost_records table."""

    def __init__(self, executor: Any, table_name: str = "cost_records"):
        self._executor = executor
        self._table = table_name

    async def create_schema(self) -> None:
        await self._executor.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self._table} (
                id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                owner_id TEXT NOT NULL,
                session_id TEXT,
                model_id TEXT NOT NULL,
                prompt_tokens INTEGER NOT NULL,
                completion_tokens INTEGER NOT NULL,
                total_tokens INTEGER NOT NULL,
                cost_usd DOUBLE PRECISION NOT NULL,
                operation_type TEXT NOT NULL,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            )
            """
        )

    async def track(self, record: CostRecord) -> TrackCostResult:
        try:
            rows = await self._executor.fetch_all(
                f"""
                INSERT INTO {self._table}
                    (owner_id, session_id, model_id, prompt_tokens, completion_tokens,
                     total_tokens, cost_usd, operation_type)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING id
                """,
                [
                    record.owner_id,
                    record.session_id,
                    record.model_id,
                    record.prompt_tokens,
                    record.completion_tokens,
                    record.total_tokens,
                    record.cost_usd,
                    record.operation_type,
                ],
            )
        except Exception as e:
            logger.error(f"Failed to track cost for {record.owner_id}: {e}")
            return TrackCostResult(success=False, error=str(e))

        record_id = str(rows[0]["id"]) if rows else None
        logger.debug(
            f"Tracked {record.operation_type} cost: {record.total_tokens} tokens, "
            f"${record.cost_usd:.6f} ({record.model_id})"
        )
        return TrackCostResult(success=True, record_id=record_id)


class InMemoryCostSink:
    """Test cost sink - records are kept in a list for assertions."""

    def __init__(self):
        self.records: list[CostRecord] = []

    @property
    def total_cost_usd(self) -> float:
        return sum(r.cost_usd for r in self.records)

    @property
    def total_tokens(self) -> int:
        return sum(r.total_tokens for r in self.records)

    async def track(self, record: CostRecord) -> TrackCostResult:
        self.records.append(record)
        return TrackCostResult(success=True, record_id=str(uuid.uuid4()))
