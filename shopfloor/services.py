"""Service layer that exposes the shop-floor core to its callers."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Sequence
from uuid import uuid4

from .config import ShopFloorOptions
from .domain import (
    CustomerType,
    Job,
    JobLog,
    JobPriority,
    JobStatus,
    LogType,
    Machine,
    MachineStatus,
    MaintenanceLog,
    MaintenanceType,
    Material,
    MaterialTransaction,
    MovementType,
    Operation,
    OperationStatus,
    Role,
    StockStatus,
    User,
)
from .errors import InvalidArgumentError, RecordNotFoundError
from .events import EventLogRecorder
from .inventory import MaterialStockManager, StockMovement
from .ledger import JOB, MACHINE, MATERIAL, LedgerStore
from .lifecycle import JobLifecycleEngine, ProductionReport, TransitionResult
from .machines import MachineStatusSynchronizer

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProductionSummary:
    """Aggregate production figures across all jobs."""

    total_jobs: int
    completed_jobs: int
    running_jobs: int
    produced_qty: int
    scrap_qty: int
    reject_rate: float


@dataclass(frozen=True, slots=True)
class MaterialConsumption:
    material_id: str
    name: str
    unit: str
    inward: float
    outward: float
    stock: float


def _coerce(enum_type, value, label: str):
    try:
        return enum_type(value)
    except ValueError as exc:
        raise InvalidArgumentError(f"Unknown {label} {value!r}") from exc


def _require_text(value: Optional[str], label: str) -> str:
    if value is None or not str(value).strip():
        raise InvalidArgumentError(f"{label} is required")
    return str(value).strip()


class ShopFloorService:
    """Facade that exposes shop-floor use-cases to clients.

    Each instance owns its own :class:`LedgerStore`; nothing is shared between
    instances. Every read returns a copy, so callers can never mutate the
    ledger behind the service's back.
    """

    def __init__(
        self,
        store: Optional[LedgerStore] = None,
        options: Optional[ShopFloorOptions] = None,
    ) -> None:
        self.store = store or LedgerStore()
        self.options = options or ShopFloorOptions()
        self.recorder = EventLogRecorder(clock=self._now)
        self.machine_sync = MachineStatusSynchronizer(self.store, clock=self._now)
        self.stock = MaterialStockManager(self.store, clock=self._now)
        self.lifecycle = JobLifecycleEngine(
            self.store, self.recorder, self.machine_sync, self.options
        )

    def _now(self) -> datetime:
        return self.options.clock()

    def update_options(
        self,
        *,
        system_user: Optional[str] = None,
        enforce_single_running_job: Optional[bool] = None,
        reject_busy_machine: Optional[bool] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> ShopFloorOptions:
        """Replace the runtime options; omitted values keep their setting."""

        current = self.options
        self.options = ShopFloorOptions(
            system_user=system_user or current.system_user,
            enforce_single_running_job=(
                current.enforce_single_running_job
                if enforce_single_running_job is None
                else enforce_single_running_job
            ),
            reject_busy_machine=(
                current.reject_busy_machine
                if reject_busy_machine is None
                else reject_busy_machine
            ),
            clock=clock or current.clock,
        )
        self.lifecycle.options = self.options
        return self.options

    # ------------------------------------------------------------------
    # Master data
    # ------------------------------------------------------------------
    def register_machine(
        self,
        name: str,
        machine_type: str,
        *,
        machine_id: Optional[str] = None,
        efficiency: float = 0.0,
        last_maintenance: Optional[date] = None,
        next_maintenance: Optional[date] = None,
        total_run_hours: float = 0.0,
    ) -> Machine:
        machine = Machine(
            id=machine_id or f"M-{uuid4().hex[:6].upper()}",
            name=_require_text(name, "Machine name"),
            type=_require_text(machine_type, "Machine type"),
            efficiency=efficiency,
            last_maintenance=last_maintenance,
            next_maintenance=next_maintenance,
            total_run_hours=total_run_hours,
        )
        self.store.machines.add(machine.id, machine)
        return copy.deepcopy(machine)

    def register_material(
        self,
        name: str,
        sku: str,
        unit: str,
        *,
        stock: float = 0.0,
        min_level: float = 0.0,
        material_id: Optional[str] = None,
    ) -> Material:
        return self.stock.register(
            _require_text(name, "Material name"),
            sku,
            unit,
            stock=stock,
            min_level=min_level,
            material_id=material_id,
        )

    def create_user(
        self,
        name: str,
        role: Role,
        *,
        user_id: Optional[str] = None,
        avatar: str = "",
    ) -> User:
        user = User(
            id=user_id or f"USR-{uuid4().hex[:8].upper()}",
            name=_require_text(name, "User name"),
            role=_coerce(Role, role, "role"),
            avatar=avatar,
        )
        self.store.users.add(user.id, user)
        logger.info("User %s (%s) created", user.id, user.role.value)
        return copy.deepcopy(user)

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------
    @staticmethod
    def build_operation(
        sequence: int,
        description: str,
        work_center: str,
        *,
        est_minutes: float,
        operation_id: Optional[str] = None,
        status: OperationStatus = OperationStatus.PENDING,
    ) -> Operation:
        if est_minutes < 0:
            raise InvalidArgumentError("Estimated time cannot be negative")
        return Operation(
            id=operation_id or f"OP-{uuid4().hex[:8]}",
            sequence=sequence,
            description=description,
            work_center=work_center,
            est_minutes=est_minutes,
            status=_coerce(OperationStatus, status, "operation status"),
        )

    def create_job(
        self,
        customer_type: CustomerType,
        customer: str,
        part_name: str,
        drawing_no: str,
        revision: str,
        qty: int,
        due_date: date,
        operations: Sequence[Operation],
        *,
        contract_id: Optional[str] = None,
        contact_person: Optional[str] = None,
        priority: JobPriority = JobPriority.MEDIUM,
        current_machine_id: Optional[str] = None,
        assigned_operator_id: Optional[str] = None,
        material_id: Optional[str] = None,
        special_instructions: str = "",
        job_id: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> Job:
        customer_type = _coerce(CustomerType, customer_type, "customer type")
        if customer_type is CustomerType.CONTRACT:
            contract_id = _require_text(contract_id, "Contract id")
            if contact_person:
                raise InvalidArgumentError("Contract jobs do not take a contact person")
        else:
            contact_person = _require_text(contact_person, "Contact person")
            if contract_id:
                raise InvalidArgumentError("Individual jobs do not take a contract id")
        if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
            raise InvalidArgumentError(f"Ordered quantity must be a positive integer, got {qty!r}")
        if not operations:
            raise InvalidArgumentError("Jobs must contain at least one operation")
        operation_ids = [operation.id for operation in operations]
        if len(set(operation_ids)) != len(operation_ids):
            raise InvalidArgumentError("Operation ids must be unique within a job")
        if current_machine_id is not None and current_machine_id not in self.store.machines:
            raise RecordNotFoundError(f"Machine {current_machine_id!r} not found")
        if assigned_operator_id is not None and assigned_operator_id not in self.store.users:
            raise RecordNotFoundError(f"User {assigned_operator_id!r} not found")
        if material_id is not None and material_id not in self.store.materials:
            raise RecordNotFoundError(f"Material {material_id!r} not found")

        job = Job(
            id=job_id or f"JOB-{uuid4().hex[:8].upper()}",
            customer_type=customer_type,
            customer=_require_text(customer, "Customer"),
            contract_id=contract_id,
            contact_person=contact_person,
            part_name=_require_text(part_name, "Part name"),
            drawing_no=drawing_no,
            revision=revision,
            qty=qty,
            due_date=due_date,
            priority=_coerce(JobPriority, priority, "priority"),
            current_machine_id=current_machine_id,
            assigned_operator_id=assigned_operator_id,
            material_id=material_id,
            special_instructions=special_instructions,
            operations=sorted(
                copy.deepcopy(list(operations)), key=lambda operation: operation.sequence
            ),
            created_at=self._now(),
        )
        self.recorder.record(
            job, LogType.INFO, "Job created", actor or self.options.system_user
        )
        self.store.jobs.add(job.id, job)
        logger.info("Job %s created for %s (%s pcs)", job.id, job.customer, job.qty)
        return copy.deepcopy(job)

    def transition_job(
        self,
        job_id: str,
        target: JobStatus,
        message: str = "",
        *,
        update: Optional[ProductionReport] = None,
        actor: Optional[str] = None,
    ) -> TransitionResult:
        return self.lifecycle.transition(
            job_id, target, message, update=update, actor=actor
        )

    def start_job(
        self, job_id: str, *, actor: Optional[str] = None, message: str = "Operator started job"
    ) -> TransitionResult:
        return self.transition_job(job_id, JobStatus.RUNNING, message, actor=actor)

    def pause_job(
        self, job_id: str, reason: str, *, actor: Optional[str] = None
    ) -> TransitionResult:
        reason = _require_text(reason, "Pause reason")
        return self.transition_job(
            job_id, JobStatus.PAUSED, f"Paused: {reason}", actor=actor
        )

    def resume_job(self, job_id: str, *, actor: Optional[str] = None) -> TransitionResult:
        return self.transition_job(
            job_id, JobStatus.RUNNING, "Operator resumed job", actor=actor
        )

    def report_production(
        self,
        job_id: str,
        completed_qty: int,
        scrap_qty: int = 0,
        *,
        actor: Optional[str] = None,
    ) -> TransitionResult:
        report = ProductionReport(completed_qty=completed_qty, scrap_qty=scrap_qty)
        return self.transition_job(
            job_id,
            JobStatus.QC_PENDING,
            f"Production reported. Qty: {completed_qty}, Scrap: {scrap_qty}",
            update=report,
            actor=actor,
        )

    def approve_qc(
        self,
        job_id: str,
        *,
        approved_qty: Optional[int] = None,
        actor: Optional[str] = None,
    ) -> TransitionResult:
        message = "QC Approved"
        if approved_qty is not None:
            message = f"QC Approved. Good: {approved_qty}"
        return self.transition_job(job_id, JobStatus.COMPLETED, message, actor=actor)

    def reject_qc(
        self,
        job_id: str,
        reason: str = "Rework Required",
        *,
        actor: Optional[str] = None,
    ) -> TransitionResult:
        return self.transition_job(
            job_id, JobStatus.HOLD, f"QC Rejected - {reason}", actor=actor
        )

    def hold_job(
        self, job_id: str, reason: str, *, actor: Optional[str] = None
    ) -> TransitionResult:
        return self.transition_job(job_id, JobStatus.HOLD, reason, actor=actor)

    def recall_job(
        self, job_id: str, reason: str = "", *, actor: Optional[str] = None
    ) -> TransitionResult:
        message = f"Recalled: {reason}" if reason else "Recalled to queue"
        return self.transition_job(job_id, JobStatus.PENDING, message, actor=actor)

    def cancel_job(
        self, job_id: str, reason: str = "", *, actor: Optional[str] = None
    ) -> TransitionResult:
        message = f"Cancelled: {reason}" if reason else "Cancelled"
        return self.transition_job(job_id, JobStatus.CANCELLED, message, actor=actor)

    def transfer_job(
        self,
        job_id: str,
        *,
        machine_id: Optional[str] = None,
        operator_id: Optional[str] = None,
        message: str = "",
        actor: Optional[str] = None,
    ) -> TransitionResult:
        return self.lifecycle.transfer(
            job_id,
            machine_id=machine_id,
            operator_id=operator_id,
            message=message,
            actor=actor,
        )

    def complete_operation(
        self, job_id: str, operation_id: str, *, actor: Optional[str] = None
    ) -> Job:
        return self.lifecycle.complete_operation(job_id, operation_id, actor=actor)

    def append_log(
        self, job_id: str, log_type: LogType, message: str, user: Optional[str] = None
    ) -> JobLog:
        return self.lifecycle.append_log(job_id, log_type, message, user)

    # ------------------------------------------------------------------
    # Materials
    # ------------------------------------------------------------------
    def move_stock(
        self,
        material_id: str,
        qty: float,
        direction: MovementType,
        reference: str,
        performed_by: Optional[str] = None,
    ) -> StockMovement:
        return self.stock.move(
            material_id,
            qty,
            direction,
            reference,
            performed_by or self.options.system_user,
        )

    def set_material_min_level(self, material_id: str, min_level: float) -> Material:
        return self.stock.set_min_level(material_id, min_level)

    def ledger_balance(self, material_id: str) -> float:
        return self.stock.ledger_balance(material_id)

    # ------------------------------------------------------------------
    # Machines and maintenance
    # ------------------------------------------------------------------
    def set_machine_status(self, machine_id: str, status: MachineStatus) -> Machine:
        return self.machine_sync.set_status(machine_id, status)

    def schedule_maintenance(
        self,
        machine_id: str,
        maintenance_type: MaintenanceType,
        description: str,
        scheduled_on: date,
        *,
        technician: str = "Internal",
    ) -> MaintenanceLog:
        if machine_id not in self.store.machines:
            raise RecordNotFoundError(f"Machine {machine_id!r} not found")
        entry = MaintenanceLog(
            id=f"MT-{uuid4().hex[:8].upper()}",
            machine_id=machine_id,
            type=_coerce(MaintenanceType, maintenance_type, "maintenance type"),
            description=_require_text(description, "Maintenance description"),
            date=scheduled_on,
            technician=technician,
        )
        self.store.maintenance_logs.add(entry.id, entry)
        logger.info(
            "Maintenance %s scheduled for machine %s on %s",
            entry.type.value,
            machine_id,
            scheduled_on,
        )
        return entry

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_job(self, job_id: str) -> Job:
        with self.store.locks.hold(JOB, job_id):
            return copy.deepcopy(self.store.jobs.get(job_id))

    def list_jobs(self, *, status: Optional[JobStatus] = None) -> List[Job]:
        if status is not None:
            status = _coerce(JobStatus, status, "job status")
        jobs = [self.get_job(job.id) for job in self.store.jobs]
        if status is None:
            return jobs
        return [job for job in jobs if job.status is status]

    def get_machine(self, machine_id: str) -> Machine:
        with self.store.locks.hold(MACHINE, machine_id):
            return copy.deepcopy(self.store.machines.get(machine_id))

    def list_machines(self) -> List[Machine]:
        return [self.get_machine(machine.id) for machine in self.store.machines]

    def get_material(self, material_id: str) -> Material:
        with self.store.locks.hold(MATERIAL, material_id):
            return copy.deepcopy(self.store.materials.get(material_id))

    def list_materials(self) -> List[Material]:
        return [self.get_material(material.id) for material in self.store.materials]

    def list_transactions(
        self, *, material_id: Optional[str] = None
    ) -> List[MaterialTransaction]:
        if material_id is not None:
            return self.stock.transactions_for(material_id)
        return self.store.transactions.list()

    def list_maintenance_logs(
        self, *, machine_id: Optional[str] = None
    ) -> List[MaintenanceLog]:
        return [
            entry
            for entry in self.store.maintenance_logs
            if machine_id is None or entry.machine_id == machine_id
        ]

    def get_user(self, user_id: str) -> User:
        return copy.deepcopy(self.store.users.get(user_id))

    def list_users(self, *, role: Optional[Role] = None) -> List[User]:
        if role is not None:
            role = _coerce(Role, role, "role")
        return [
            copy.deepcopy(user)
            for user in self.store.users
            if role is None or user.role is role
        ]

    # ------------------------------------------------------------------
    # Work queues
    # ------------------------------------------------------------------
    def operator_queue(self, operator_id: str) -> List[Job]:
        """Open jobs assigned to an operator, most urgent first."""

        closed = {JobStatus.COMPLETED, JobStatus.QC_PENDING, JobStatus.CANCELLED}
        jobs = [
            job
            for job in self.list_jobs()
            if job.assigned_operator_id == operator_id and job.status not in closed
        ]
        jobs.sort(key=lambda job: (job.priority.rank, job.due_date, job.created_at))
        return jobs

    def active_job(self, operator_id: str) -> Optional[Job]:
        job_id = self.lifecycle.running_job_of(operator_id)
        return self.get_job(job_id) if job_id else None

    def qc_queue(self) -> List[Job]:
        jobs = self.list_jobs(status=JobStatus.QC_PENDING)
        jobs.sort(key=lambda job: (job.priority.rank, job.due_date))
        return jobs

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------
    def production_summary(self) -> ProductionSummary:
        jobs = self.list_jobs()
        produced = sum(job.completed_qty for job in jobs)
        scrap = sum(job.scrap_qty for job in jobs)
        reject_rate = round(scrap / produced * 100, 1) if produced > 0 else 0.0
        return ProductionSummary(
            total_jobs=len(jobs),
            completed_jobs=sum(1 for job in jobs if job.status is JobStatus.COMPLETED),
            running_jobs=sum(1 for job in jobs if job.status is JobStatus.RUNNING),
            produced_qty=produced,
            scrap_qty=scrap,
            reject_rate=reject_rate,
        )

    def material_consumption(self) -> List[MaterialConsumption]:
        totals: Dict[str, Dict[MovementType, float]] = {}
        for transaction in self.store.transactions:
            per_type = totals.setdefault(transaction.material_id, {})
            per_type[transaction.type] = per_type.get(transaction.type, 0.0) + transaction.qty
        report: List[MaterialConsumption] = []
        for material in self.list_materials():
            per_type = totals.get(material.id, {})
            report.append(
                MaterialConsumption(
                    material_id=material.id,
                    name=material.name,
                    unit=material.unit,
                    inward=per_type.get(MovementType.INWARD, 0.0),
                    outward=per_type.get(MovementType.OUTWARD, 0.0),
                    stock=material.stock,
                )
            )
        return report

    def low_stock_materials(self) -> List[Material]:
        return [
            material
            for material in self.list_materials()
            if material.status is not StockStatus.IN_STOCK
        ]

    def machine_status_counts(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in MachineStatus}
        for machine in self.list_machines():
            counts[machine.status.value] += 1
        return counts


__all__ = [
    "ShopFloorService",
    "ProductionSummary",
    "MaterialConsumption",
]
