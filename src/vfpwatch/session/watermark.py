"""Event-time watermark separating processed from unprocessed trace records."""

from __future__ import annotations

import logging
from datetime import datetime

logger = logging.getLogger(__name__)


class Watermark:
    """Creation time of the most recently processed record.

    Only ever moves forward. Owned by the polling tick; nothing else
    reads or writes it while the monitor is running, so it carries no lock.
    """

    def __init__(self, initial: datetime) -> None:
        self._value = initial

    @property
    def value(self) -> datetime:
        return self._value

    def advance(self, to: datetime) -> bool:
        """Move the watermark to ``to``. Returns False if that would move it back."""
        if to < self._value:
            logger.debug(
                "Ignoring watermark regression %s -> %s", self._value, to
            )
            return False
        self._value = to
        return True

    def __repr__(self) -> str:
        return f"Watermark({self._value.isoformat()})"
