"""Interfaces the flush pipeline consumes from its collaborators."""

from __future__ import annotations

from typing import Protocol, Sequence

from .models import DurableRecord


class DurableSink(Protocol):
    """Long-term storage for finalized engagement records."""

    def insert_records(self, records: Sequence[DurableRecord]) -> None:
        """Insert one batch; raise on failure. Blocking."""
        ...
