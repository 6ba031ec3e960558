"""Job lifecycle state machine.

The engine validates a requested status change against the transition
table, applies it to a working copy of the job together with its log entry,
commits the copy and then synchronises the machine bound to the job.

Lock order is operator -> job -> machine. A job lock is never held while
waiting for the lock of a different job.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import FrozenSet, List, Mapping, Optional, Tuple

from .config import ShopFloorOptions
from .domain import Job, JobLog, JobStatus, LogType, OperationStatus
from .errors import (
    ConflictError,
    InvalidArgumentError,
    InvalidTransitionError,
    RecordNotFoundError,
)
from .events import EventLogRecorder
from .ledger import JOB, MACHINE, OPERATOR, LedgerStore
from .machines import MachineStatusSynchronizer, running_other_job

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Mapping[JobStatus, FrozenSet[JobStatus]] = {
    JobStatus.PENDING: frozenset(
        {JobStatus.RUNNING, JobStatus.HOLD, JobStatus.CANCELLED}
    ),
    JobStatus.RUNNING: frozenset(
        {JobStatus.PAUSED, JobStatus.QC_PENDING, JobStatus.HOLD, JobStatus.CANCELLED}
    ),
    JobStatus.PAUSED: frozenset(
        {JobStatus.RUNNING, JobStatus.HOLD, JobStatus.CANCELLED}
    ),
    JobStatus.QC_PENDING: frozenset(
        {JobStatus.COMPLETED, JobStatus.HOLD, JobStatus.CANCELLED}
    ),
    JobStatus.HOLD: frozenset({JobStatus.PENDING, JobStatus.CANCELLED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.CANCELLED: frozenset(),
}

REASON_REQUIRED: FrozenSet[JobStatus] = frozenset({JobStatus.PAUSED, JobStatus.HOLD})

_LOG_TYPES: Mapping[JobStatus, LogType] = {
    JobStatus.RUNNING: LogType.START,
    JobStatus.PAUSED: LogType.PAUSE,
    JobStatus.QC_PENDING: LogType.QC_SUBMIT,
    JobStatus.COMPLETED: LogType.COMPLETE,
}


def log_type_for(target: JobStatus) -> LogType:
    """Log type written for a transition into ``target``."""
    return _LOG_TYPES.get(target, LogType.INFO)


def can_transition(current: JobStatus, target: JobStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


@dataclass(frozen=True, slots=True)
class ProductionReport:
    """Good and scrap units reported when a job is submitted to QC.

    Both quantities are increments added to the job's cumulative counters.
    """

    completed_qty: int = 0
    scrap_qty: int = 0

    def __post_init__(self) -> None:
        for name in ("completed_qty", "scrap_qty"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidArgumentError(f"{name} must be an integer, got {value!r}")
            if value < 0:
                raise InvalidArgumentError(f"{name} cannot be negative")


# Closed set of field-update payloads and the only status each may accompany.
UPDATE_TARGETS: Mapping[type, JobStatus] = {
    ProductionReport: JobStatus.QC_PENDING,
}


@dataclass(frozen=True, slots=True)
class TransitionResult:
    """Snapshot of a job after a committed change.

    ``warnings`` carries partial failures (a bound machine that could not be
    updated). The job change itself is committed regardless.
    """

    job: Job
    log: JobLog
    warnings: Tuple[str, ...] = ()

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)


def coerce_status(value: object) -> JobStatus:
    try:
        return JobStatus(value)
    except ValueError as exc:
        raise InvalidArgumentError(f"Unknown job status {value!r}") from exc


class JobLifecycleEngine:
    """Coordinates job status changes with machines and the audit trail."""

    def __init__(
        self,
        store: LedgerStore,
        recorder: EventLogRecorder,
        synchronizer: MachineStatusSynchronizer,
        options: Optional[ShopFloorOptions] = None,
    ) -> None:
        self._store = store
        self._recorder = recorder
        self._synchronizer = synchronizer
        self.options = options or ShopFloorOptions()

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------
    def transition(
        self,
        job_id: str,
        target: JobStatus,
        message: str,
        *,
        update: Optional[ProductionReport] = None,
        actor: Optional[str] = None,
    ) -> TransitionResult:
        target = coerce_status(target)
        actor = actor or self.options.system_user
        with self._store.locks.hold(JOB, job_id):
            current = self._store.jobs.get(job_id)
            if current.status.is_terminal:
                raise InvalidTransitionError(
                    current.id, current.status.value, target.value, "job is closed"
                )
        self._check_update(target, update)
        if target in REASON_REQUIRED and not (message or "").strip():
            raise InvalidArgumentError(f"A reason is required to move a job to {target.value}")

        operator_id: Optional[str] = None
        guard_operator = (
            target is JobStatus.RUNNING and self.options.enforce_single_running_job
        )
        if guard_operator:
            operator_id = self._store.jobs.get(job_id).assigned_operator_id

        with self._store.locks.hold(OPERATOR, operator_id):
            with self._store.locks.hold(JOB, job_id):
                job = self._store.jobs.get(job_id)
                if guard_operator and job.assigned_operator_id != operator_id:
                    raise ConflictError(
                        f"Job {job_id!r} was reassigned while starting; retry"
                    )
                self._check_edge(job, target)
                machine_id = job.current_machine_id
                with self._store.locks.hold(MACHINE, machine_id):
                    if target is JobStatus.RUNNING:
                        self._check_start(job, job.assigned_operator_id, machine_id)
                    working = copy.deepcopy(job)
                    previous = working.status
                    working.status = target
                    if update is not None:
                        self._apply_report(working, update)
                    entry = self._recorder.record(
                        working, log_type_for(target), message, actor
                    )
                    self._store.jobs.upsert(working.id, working)
                    warnings: List[str] = []
                    if machine_id:
                        warnings.extend(self._synchronizer.sync(machine_id, working))
                    snapshot = copy.deepcopy(working)

        logger.info(
            "Job %s %s -> %s by %s", job_id, previous.value, target.value, actor
        )
        return TransitionResult(job=snapshot, log=entry, warnings=tuple(warnings))

    def transfer(
        self,
        job_id: str,
        *,
        machine_id: Optional[str] = None,
        operator_id: Optional[str] = None,
        message: str = "",
        actor: Optional[str] = None,
    ) -> TransitionResult:
        """Re-point a job to another machine and/or operator.

        The status is unchanged. A running job releases its old machine and
        binds the new one in the same step.
        """

        actor = actor or self.options.system_user
        if machine_id is None and operator_id is None:
            raise InvalidArgumentError("A transfer needs a target machine or operator")
        if machine_id is not None and machine_id not in self._store.machines:
            raise RecordNotFoundError(f"Machine {machine_id!r} not found")
        if operator_id is not None:
            self._store.users.get(operator_id)

        old_operator = self._store.jobs.get(job_id).assigned_operator_id
        with self._store.locks.hold(OPERATOR, old_operator, operator_id):
            with self._store.locks.hold(JOB, job_id):
                job = self._store.jobs.get(job_id)
                if job.assigned_operator_id != old_operator:
                    raise ConflictError(f"Job {job_id!r} was reassigned concurrently; retry")
                if job.status.is_terminal:
                    raise InvalidTransitionError(
                        job.id, job.status.value, job.status.value, "job is closed"
                    )
                old_machine = job.current_machine_id
                new_machine = machine_id if machine_id is not None else old_machine
                new_operator = operator_id if operator_id is not None else old_operator
                with self._store.locks.hold(MACHINE, old_machine, new_machine):
                    if job.status is JobStatus.RUNNING:
                        self._check_start(
                            job,
                            new_operator if new_operator != old_operator else None,
                            new_machine if new_machine != old_machine else None,
                        )
                    working = copy.deepcopy(job)
                    working.current_machine_id = new_machine
                    working.assigned_operator_id = new_operator
                    text = message or self._describe_transfer(new_machine, new_operator)
                    entry = self._recorder.record(working, LogType.TRANSFER, text, actor)
                    self._store.jobs.upsert(working.id, working)
                    warnings: List[str] = []
                    if working.status is JobStatus.RUNNING:
                        if old_machine and old_machine != new_machine:
                            warnings.extend(self._synchronizer.release(old_machine, job.id))
                        if new_machine:
                            warnings.extend(self._synchronizer.sync(new_machine, working))
                    snapshot = copy.deepcopy(working)

        logger.info(
            "Job %s transferred to machine %s, operator %s by %s",
            job_id,
            new_machine,
            new_operator,
            actor,
        )
        return TransitionResult(job=snapshot, log=entry, warnings=tuple(warnings))

    # ------------------------------------------------------------------
    # Log and routing updates
    # ------------------------------------------------------------------
    def append_log(
        self, job_id: str, log_type: LogType, message: str, user: Optional[str] = None
    ) -> JobLog:
        try:
            log_type = LogType(log_type)
        except ValueError as exc:
            raise InvalidArgumentError(f"Unknown log type {log_type!r}") from exc
        with self._store.locks.hold(JOB, job_id):
            working = copy.deepcopy(self._store.jobs.get(job_id))
            entry = self._recorder.record(
                working, log_type, message, user or self.options.system_user
            )
            self._store.jobs.upsert(working.id, working)
        return entry

    def complete_operation(
        self, job_id: str, operation_id: str, *, actor: Optional[str] = None
    ) -> Job:
        actor = actor or self.options.system_user
        with self._store.locks.hold(JOB, job_id):
            job = self._store.jobs.get(job_id)
            if job.status.is_terminal:
                raise InvalidTransitionError(
                    job.id, job.status.value, job.status.value, "job is closed"
                )
            working = copy.deepcopy(job)
            for operation in working.operations:
                if operation.id == operation_id:
                    break
            else:
                raise RecordNotFoundError(
                    f"Operation {operation_id!r} not found on job {job_id!r}"
                )
            if operation.status is OperationStatus.COMPLETED:
                return working
            operation.status = OperationStatus.COMPLETED
            self._recorder.record(
                working,
                LogType.INFO,
                f"Operation {operation.sequence} completed: {operation.description}",
                actor,
            )
            self._store.jobs.upsert(working.id, working)
            return copy.deepcopy(working)

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------
    def running_job_of(self, operator_id: str, *, exclude: Optional[str] = None) -> Optional[str]:
        for job in self._store.jobs:
            if (
                job.assigned_operator_id == operator_id
                and job.status is JobStatus.RUNNING
                and job.id != exclude
            ):
                return job.id
        return None

    @staticmethod
    def _check_update(target: JobStatus, update: Optional[ProductionReport]) -> None:
        if update is None:
            return
        allowed = UPDATE_TARGETS.get(type(update))
        if allowed is None:
            raise InvalidArgumentError(f"Unsupported job update {type(update).__name__}")
        if allowed is not target:
            raise InvalidArgumentError(
                f"{type(update).__name__} can only accompany a move to {allowed.value}"
            )

    @staticmethod
    def _check_edge(job: Job, target: JobStatus) -> None:
        if job.status.is_terminal:
            raise InvalidTransitionError(
                job.id, job.status.value, target.value, "job is closed"
            )
        if not can_transition(job.status, target):
            raise InvalidTransitionError(job.id, job.status.value, target.value)

    def _check_start(
        self, job: Job, operator_id: Optional[str], machine_id: Optional[str]
    ) -> None:
        if operator_id and self.options.enforce_single_running_job:
            other = self.running_job_of(operator_id, exclude=job.id)
            if other is not None:
                raise InvalidTransitionError(
                    job.id,
                    job.status.value,
                    JobStatus.RUNNING.value,
                    f"operator {operator_id} is already running job {other}",
                )
        if machine_id and self.options.reject_busy_machine:
            try:
                machine = self._store.machines.get(machine_id)
            except RecordNotFoundError:
                return
            other = running_other_job(machine, job.id)
            if other is not None:
                raise InvalidTransitionError(
                    job.id,
                    job.status.value,
                    JobStatus.RUNNING.value,
                    f"machine {machine_id} is already running job {other}",
                )

    @staticmethod
    def _apply_report(job: Job, report: ProductionReport) -> None:
        job.completed_qty += report.completed_qty
        job.scrap_qty += report.scrap_qty
        if job.completed_qty + job.scrap_qty > job.qty:
            logger.warning(
                "Job %s reported %s good + %s scrap against ordered %s",
                job.id,
                job.completed_qty,
                job.scrap_qty,
                job.qty,
            )

    @staticmethod
    def _describe_transfer(machine_id: Optional[str], operator_id: Optional[str]) -> str:
        parts = []
        if machine_id:
            parts.append(f"machine {machine_id}")
        if operator_id:
            parts.append(f"operator {operator_id}")
        return "Transferred to " + " and ".join(parts)


__all__ = [
    "ALLOWED_TRANSITIONS",
    "REASON_REQUIRED",
    "UPDATE_TARGETS",
    "JobLifecycleEngine",
    "ProductionReport",
    "TransitionResult",
    "can_transition",
    "coerce_status",
    "log_type_for",
]
