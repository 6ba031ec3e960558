"""Keeps machine occupancy consistent with the status of the bound job."""

from __future__ import annotations

import copy
import logging
from datetime import datetime
from typing import Callable, List, Optional

from .domain import Job, JobStatus, Machine, MachineStatus
from .errors import InvalidArgumentError, RecordNotFoundError
from .ledger import MACHINE, LedgerStore

logger = logging.getLogger(__name__)

MANUAL_STATUSES = frozenset(
    {MachineStatus.IDLE, MachineStatus.DOWN, MachineStatus.MAINTENANCE}
)


def running_other_job(machine: Machine, job_id: str) -> Optional[str]:
    """Return the id of a different job the machine is busy with, if any."""

    if machine.status is MachineStatus.RUNNING and machine.current_job_id not in (
        None,
        job_id,
    ):
        return machine.current_job_id
    return None


class MachineStatusSynchronizer:
    """Maps job transitions onto the machine a job is bound to.

    ``sync`` and ``release`` expect the caller to hold the machine lock; they
    are only invoked from the lifecycle engine. ``set_status`` is the manual
    maintenance override and takes the lock itself.
    """

    def __init__(
        self, store: LedgerStore, clock: Callable[[], datetime] = datetime.now
    ) -> None:
        self._store = store
        self.clock = clock

    def sync(self, machine_id: str, job: Job) -> List[str]:
        """Apply ``job.status`` to the machine and return any warnings."""

        try:
            machine = self._store.machines.get(machine_id)
        except RecordNotFoundError:
            warning = (
                f"Machine {machine_id!r} not found; job {job.id} moved to "
                f"{job.status.value} without machine update"
            )
            logger.warning(warning)
            return [warning]

        working = copy.deepcopy(machine)
        if job.status is JobStatus.RUNNING:
            self._bind(working, job)
        elif working.current_job_id == job.id:
            self._release(working)
        else:
            logger.debug(
                "Machine %s not bound to job %s; left as %s",
                machine_id,
                job.id,
                working.status.value,
            )
            return []
        self._store.machines.upsert(working.id, working)
        return []

    def release(self, machine_id: str, job_id: str) -> List[str]:
        """Free a machine that was running ``job_id``."""

        try:
            machine = self._store.machines.get(machine_id)
        except RecordNotFoundError:
            warning = f"Machine {machine_id!r} not found; nothing to release"
            logger.warning(warning)
            return [warning]
        if machine.current_job_id != job_id:
            return []
        working = copy.deepcopy(machine)
        self._release(working)
        self._store.machines.upsert(working.id, working)
        return []

    def set_status(self, machine_id: str, status: MachineStatus) -> Machine:
        try:
            status = MachineStatus(status)
        except ValueError as exc:
            raise InvalidArgumentError(f"Unknown machine status {status!r}") from exc
        if status not in MANUAL_STATUSES:
            raise InvalidArgumentError(
                f"Machine status {status.value} can only be set by starting a job"
            )
        with self._store.locks.hold(MACHINE, machine_id):
            machine = self._store.machines.get(machine_id)
            working = copy.deepcopy(machine)
            if working.current_job_id is not None:
                logger.warning(
                    "Machine %s set to %s while bound to job %s",
                    machine_id,
                    status.value,
                    working.current_job_id,
                )
                self._release(working)
            working.status = status
            self._store.machines.upsert(working.id, working)
            logger.info("Machine %s status set to %s", machine_id, status.value)
            return copy.deepcopy(working)

    def _bind(self, machine: Machine, job: Job) -> None:
        if machine.current_job_id != job.id or machine.running_since is None:
            machine.running_since = self.clock()
        machine.status = MachineStatus.RUNNING
        machine.current_job_id = job.id
        machine.current_operator_id = job.assigned_operator_id

    def _release(self, machine: Machine) -> None:
        if machine.running_since is not None:
            elapsed = self.clock() - machine.running_since
            machine.total_run_hours += max(elapsed.total_seconds(), 0.0) / 3600
        machine.status = MachineStatus.IDLE
        machine.current_job_id = None
        machine.current_operator_id = None
        machine.running_since = None


__all__ = ["MachineStatusSynchronizer", "running_other_job", "MANUAL_STATUSES"]
