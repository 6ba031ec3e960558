"""Shop-floor production tracking core.

This package keeps manufacturing jobs, machine occupancy and the material
stock ledger consistent in memory for concurrent operator, planner and
quality terminals.
"""

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
    Role,
    StockStatus,
    User,
)
from .errors import (
    ConflictError,
    ErrorKind,
    InvalidArgumentError,
    InvalidTransitionError,
    NotFoundError,
    ShopFloorError,
)
from .inventory import StockMovement
from .lifecycle import ProductionReport, TransitionResult
from .services import ShopFloorService

__all__ = [
    "ShopFloorOptions",
    "CustomerType",
    "Job",
    "JobLog",
    "JobPriority",
    "JobStatus",
    "LogType",
    "Machine",
    "MachineStatus",
    "MaintenanceLog",
    "MaintenanceType",
    "Material",
    "MaterialTransaction",
    "MovementType",
    "Operation",
    "Role",
    "StockStatus",
    "User",
    "ConflictError",
    "ErrorKind",
    "InvalidArgumentError",
    "InvalidTransitionError",
    "NotFoundError",
    "ShopFloorError",
    "StockMovement",
    "ProductionReport",
    "TransitionResult",
    "ShopFloorService",
]
