"""In-memory storage of analytics records."""

import dataclasses
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Protocol

from bugexplorer.models import AnalyticsRecord


class RepositoryStore(Protocol):
    """Keyed collection of the latest analytics record per repository."""

    def get(self, full_name: str) -> AnalyticsRecord | None: ...

    def upsert(self, record: AnalyticsRecord) -> AnalyticsRecord: ...

    def list_all(self) -> list[AnalyticsRecord]: ...


class MemoryStore:
    """Process-lifetime store keyed by "owner/name".

    Each upsert replaces the previous record for the key wholesale.
    Nothing is evicted or persisted.

    Attributes:
        clock: Returns the current time used to stamp analyzed_at.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None):
        """Initialize an empty store.

        Args:
            clock: Time source, defaults to the current UTC time.
        """
        self.clock = clock or (lambda: datetime.now(UTC))
        self._records: dict[str, AnalyticsRecord] = {}

    def get(self, full_name: str) -> AnalyticsRecord | None:
        return self._records.get(full_name)

    def upsert(self, record: AnalyticsRecord) -> AnalyticsRecord:
        """Insert or replace the record for its repository.

        Args:
            record: Freshly computed record.

        Returns:
            The stored record, stamped with analyzed_at.
        """
        stored = dataclasses.replace(record, analyzed_at=self.clock())
        self._records[stored.full_name] = stored
        return stored

    def list_all(self) -> list[AnalyticsRecord]:
        return list(self._records.values())

    def __len__(self) -> int:
        return len(self._records)
