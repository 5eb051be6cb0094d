"""Monitor data models — display records, lifecycle state and run statistics."""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field
from datetime import datetime


class Category(enum.Enum):
    """How a filtering decision is presented on the console."""

    ALLOW = "allow"
    BLOCK = "block"
    OTHER = "other"


class MonitorState(enum.Enum):
    """Lifecycle state of a Monitor. STOPPED is terminal."""

    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


@dataclass(frozen=True)
class DisplayRecord:
    """A trace record that passed the interest filter, ready for output."""

    timestamp: datetime
    message: str
    category: Category = Category.OTHER


@dataclass
class MonitorStats:
    """Counters accumulated by the polling loop over a monitor's lifetime."""

    ticks: int = 0
    failed_ticks: int = 0
    records_scanned: int = 0
    records_displayed: int = 0
    start_time: float = field(default_factory=time.time)
    end_time: float | None = None
