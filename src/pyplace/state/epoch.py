"""Ingestion epoch."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Epoch(BaseModel):
    """One ingestion-and-composite run.

    ``epoch_id`` is the start time in epoch milliseconds and prefixes every
    artifact the run writes.
    """

    model_config = ConfigDict(extra="forbid")

    epoch_id: int
    started_at: datetime
    expected_indices: list[int] = Field(default_factory=list)

    @classmethod
    def start(cls, *, clock: Callable[[], datetime] = _utcnow) -> Epoch:
        now = clock()
        return cls(epoch_id=int(now.timestamp() * 1000), started_at=now)

    def expect(self, indices: Iterable[int]) -> None:
        """Append indices not yet expected, keeping announcement order."""
        for index in indices:
            if index not in self.expected_indices:
                self.expected_indices.append(index)
