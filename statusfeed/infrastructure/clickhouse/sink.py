from __future__ import annotations

from typing import Sequence

from statusfeed.domain.errors import SinkError
from statusfeed.domain.models import DurableRecord
from statusfeed.infrastructure.clickhouse.client import ClickHouseClient


class ClickHouseSink:
    """DurableSink writing finalized records into the engagement table."""

    def __init__(self, client: ClickHouseClient):
        self.client = client

    def insert_records(self, records: Sequence[DurableRecord]) -> None:
        rows = [r.model_dump() for r in records]
        for row in rows:
            row["is_complete_show"] = int(row["is_complete_show"])
        try:
            self.client.insert_rows(self.client.table, rows)
        except Exception as e:  # noqa: BLE001
            raise SinkError(f"insert into {self.client.table} failed: {e}") from e
