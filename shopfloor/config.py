"""Runtime options of the shop-floor service."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

DEFAULT_SYSTEM_USER = "System"


@dataclass(slots=True)
class ShopFloorOptions:
    """Tunable behaviour of the lifecycle engine and recorders.

    ``system_user`` is written to logs and transactions when a caller does
    not identify itself. ``clock`` is injectable so tests can pin time.
    """

    system_user: str = DEFAULT_SYSTEM_USER
    enforce_single_running_job: bool = True
    reject_busy_machine: bool = True
    clock: Callable[[], datetime] = field(default=datetime.now)


__all__ = ["ShopFloorOptions", "DEFAULT_SYSTEM_USER"]
