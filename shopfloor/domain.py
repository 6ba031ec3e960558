"""Core data structures for shop-floor production tracking."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional


class MachineStatus(str, Enum):
    """Operating state of a machine."""

    IDLE = "IDLE"
    RUNNING = "RUNNING"
    DOWN = "DOWN"
    MAINTENANCE = "MAINTENANCE"


class JobStatus(str, Enum):
    """Lifecycle stages for a job on the shop floor."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    PAUSED = "PAUSED"
    QC_PENDING = "QC_PENDING"
    COMPLETED = "COMPLETED"
    HOLD = "HOLD"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.CANCELLED)


class CustomerType(str, Enum):
    CONTRACT = "CONTRACT"
    INDIVIDUAL = "INDIVIDUAL"


class JobPriority(str, Enum):
    """Priority levels used to order operator queues."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        return {
            JobPriority.HIGH: 0,
            JobPriority.MEDIUM: 1,
            JobPriority.LOW: 2,
        }[self]


class OperationStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"


class LogType(str, Enum):
    """Kinds of entries in a job's audit trail."""

    START = "START"
    PAUSE = "PAUSE"
    RESUME = "RESUME"
    QC_SUBMIT = "QC_SUBMIT"
    QC_APPROVE = "QC_APPROVE"
    COMPLETE = "COMPLETE"
    HOLD = "HOLD"
    TRANSFER = "TRANSFER"
    INFO = "INFO"


class StockStatus(str, Enum):
    IN_STOCK = "IN_STOCK"
    LOW_STOCK = "LOW_STOCK"
    CRITICAL = "CRITICAL"


class MovementType(str, Enum):
    """Direction of a material movement."""

    INWARD = "INWARD"
    OUTWARD = "OUTWARD"


class Role(str, Enum):
    ADMIN = "ADMIN"
    PLANNER = "PLANNER"
    OPERATOR = "OPERATOR"
    QUALITY = "QUALITY"


class MaintenanceType(str, Enum):
    PREVENTIVE = "PREVENTIVE"
    BREAKDOWN = "BREAKDOWN"


class MaintenanceStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    COMPLETED = "COMPLETED"


def classify_stock(stock: float, min_level: float) -> StockStatus:
    """Derive the stock classification of a material.

    Every mutator of ``Material.stock`` or ``Material.min_level`` goes through
    this function so the stored status cannot drift from the quantities.
    """

    if stock <= 0:
        return StockStatus.CRITICAL
    if stock < min_level:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


@dataclass(slots=True)
class Machine:
    """A physical resource that runs at most one job at a time."""

    id: str
    name: str
    type: str
    status: MachineStatus = MachineStatus.IDLE
    current_operator_id: Optional[str] = None
    current_job_id: Optional[str] = None
    efficiency: float = 0.0
    last_maintenance: Optional[date] = None
    next_maintenance: Optional[date] = None
    total_run_hours: float = 0.0
    running_since: Optional[datetime] = None


@dataclass(slots=True)
class Operation:
    """One routing step of a job's process plan."""

    id: str
    sequence: int
    description: str
    work_center: str
    est_minutes: float
    status: OperationStatus = OperationStatus.PENDING


@dataclass(frozen=True, slots=True)
class JobLog:
    """Immutable audit trail entry attached to a job."""

    id: str
    timestamp: datetime
    type: LogType
    message: str
    user: str


@dataclass(slots=True)
class Job:
    """A manufacturing work order tracked from creation to completion."""

    id: str
    customer_type: CustomerType
    customer: str
    part_name: str
    drawing_no: str
    revision: str
    qty: int
    due_date: date
    contract_id: Optional[str] = None
    contact_person: Optional[str] = None
    completed_qty: int = 0
    scrap_qty: int = 0
    status: JobStatus = JobStatus.PENDING
    current_machine_id: Optional[str] = None
    assigned_operator_id: Optional[str] = None
    priority: JobPriority = JobPriority.MEDIUM
    material_id: Optional[str] = None
    special_instructions: str = ""
    operations: List[Operation] = field(default_factory=list)
    logs: List[JobLog] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def total_cycle_time(self) -> float:
        """Estimated minutes of the whole routing."""
        return sum(operation.est_minutes for operation in self.operations)

    @property
    def remaining_qty(self) -> int:
        return self.qty - self.completed_qty - self.scrap_qty


@dataclass(slots=True)
class Material:
    """A stocked input tracked by a quantity ledger."""

    id: str
    name: str
    sku: str
    stock: float
    unit: str
    min_level: float = 0.0
    status: StockStatus = StockStatus.IN_STOCK
    opening_stock: float = 0.0


@dataclass(frozen=True, slots=True)
class MaterialTransaction:
    """Immutable record of a single inward or outward movement."""

    id: str
    material_id: str
    type: MovementType
    qty: float
    date: date
    reference: str
    performed_by: str


@dataclass(slots=True)
class User:
    id: str
    name: str
    role: Role
    avatar: str = ""


@dataclass(frozen=True, slots=True)
class MaintenanceLog:
    """Scheduled or recorded maintenance work on a machine."""

    id: str
    machine_id: str
    type: MaintenanceType
    description: str
    date: date
    technician: str = "Internal"
    status: MaintenanceStatus = MaintenanceStatus.SCHEDULED


__all__ = [
    "MachineStatus",
    "JobStatus",
    "CustomerType",
    "JobPriority",
    "OperationStatus",
    "LogType",
    "StockStatus",
    "MovementType",
    "Role",
    "MaintenanceType",
    "MaintenanceStatus",
    "classify_stock",
    "Machine",
    "Operation",
    "JobLog",
    "Job",
    "Material",
    "MaterialTransaction",
    "User",
    "MaintenanceLog",
]
