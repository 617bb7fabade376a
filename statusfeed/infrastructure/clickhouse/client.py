"""ClickHouse client wrapper."""

from __future__ import annotations

import threading

from clickhouse_driver import Client

from statusfeed.core.config import settings
from statusfeed.core.logger import get_logger
from statusfeed.infrastructure.clickhouse.ddl import all_ddls

logger = get_logger("statusfeed.clickhouse")


class ClickHouseClient:
    def __init__(self, table: str | None = None):
        self.table = table or settings.sink_table
        self.client = Client(
            host=settings.clickhouse_host,
            port=settings.clickhouse_port,
            user=settings.clickhouse_user,
            password=settings.clickhouse_password,
            database=settings.clickhouse_db,
        )
        # clickhouse-driver connections are not safe for overlapping queries;
        # inserts arrive from asyncio.to_thread workers.
        self._lock = threading.RLock()

    def ensure_tables(self) -> None:
        with self._lock:
            for ddl in all_ddls(self.table):
                self.client.execute(ddl)
        logger.info("clickhouse_tables_ready", extra={"table": self.table})

    def insert_rows(self, table: str, rows: list[dict]) -> None:
        if not rows:
            return
        # Column order comes from the first row; ClickHouse expects positional
        # tuples.
        columns = list(rows[0].keys())
        query = f"INSERT INTO {table} ({', '.join(columns)}) VALUES"
        data = [tuple(r.get(col) for col in columns) for r in rows]
        with self._lock:
            self.client.execute(query, data)

    def close(self) -> None:
        with self._lock:
            self.client.disconnect()
