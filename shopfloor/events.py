"""Append-only audit trail of job state changes."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable, List
from uuid import uuid4

from .domain import Job, JobLog, LogType

logger = logging.getLogger(__name__)


class EventLogRecorder:
    """Creates log entries and appends them to a job.

    The recorder works on the job object it is handed. The lifecycle engine
    passes a working copy so the entry only becomes visible together with
    the rest of the transition.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now) -> None:
        self.clock = clock

    def record(self, job: Job, log_type: LogType, message: str, user: str) -> JobLog:
        entry = JobLog(
            id=f"LOG-{uuid4().hex[:12]}",
            timestamp=self.clock(),
            type=LogType(log_type),
            message=message,
            user=user,
        )
        job.logs.append(entry)
        logger.debug("Job %s: %s %r by %s", job.id, entry.type.value, message, user)
        return entry


def chronological(logs: Iterable[JobLog]) -> List[JobLog]:
    """Return logs ordered by timestamp, keeping insertion order on ties."""

    return sorted(logs, key=lambda entry: entry.timestamp)


__all__ = ["EventLogRecorder", "chronological"]
