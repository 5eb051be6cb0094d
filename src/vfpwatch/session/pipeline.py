"""Interest filter and allow/block classification for raw trace records."""

from __future__ import annotations

from collections.abc import Iterable

from vfpwatch.session.models import Category, DisplayRecord
from vfpwatch.trace.models import RawRecord

ALLOW_TOKEN = "allow"
BLOCK_TOKEN = "block"


def classify(message: str) -> Category:
    """Categorise a filtering decision by the token the message starts with.

    Matching is case-insensitive and ignores leading whitespace, so
    "Allowed", "ALLOW" and "allowing" all classify as ALLOW.
    """
    head = message.lstrip().lower()
    if head.startswith(ALLOW_TOKEN):
        return Category.ALLOW
    if head.startswith(BLOCK_TOKEN):
        return Category.BLOCK
    return Category.OTHER


def matches_interest(message: str, interest: frozenset[str]) -> bool:
    """An empty interest set matches everything; otherwise substring match."""
    if not interest:
        return True
    return any(address in message for address in interest)


class EventFilterPipeline:
    """Stateless mapping from a batch of RawRecords to DisplayRecords.

    Order is preserved. Records that do not mention any interest address
    are dropped here but still count toward watermark advancement, which
    is the scheduler's concern.
    """

    def __init__(self, interest: Iterable[str] = ()) -> None:
        self._interest = frozenset(interest)

    @property
    def interest(self) -> frozenset[str]:
        return self._interest

    def apply(self, records: Iterable[RawRecord]) -> list[DisplayRecord]:
        return [
            DisplayRecord(
                timestamp=record.created,
                message=record.message,
                category=classify(record.message),
            )
            for record in records
            if matches_interest(record.message, self._interest)
        ]
