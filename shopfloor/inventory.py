"""Material stock ledger: movements, classification and transactions."""

from __future__ import annotations

import copy
import logging
import math
import numbers
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional
from uuid import uuid4

from .domain import Material, MaterialTransaction, MovementType, classify_stock
from .errors import InvalidArgumentError
from .ledger import MATERIAL, LedgerStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StockMovement:
    """Result of a stock movement: the updated material and its transaction."""

    material: Material
    transaction: MaterialTransaction


def _require_finite(value: float, label: str) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidArgumentError(f"{label} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise InvalidArgumentError(f"{label} must be finite, got {value!r}")
    return value


def _require_positive(quantity: float) -> float:
    quantity = _require_finite(quantity, "Quantity")
    if quantity <= 0:
        raise InvalidArgumentError(f"Quantity must be positive, got {quantity!r}")
    return quantity


def _require_min_level(min_level: float) -> float:
    min_level = _require_finite(min_level, "Minimum level")
    if min_level < 0:
        raise InvalidArgumentError("Minimum level cannot be negative")
    return min_level


class MaterialStockManager:
    """Applies inward/outward movements and appends ledger transactions.

    Stock may go negative; an outward movement larger than the stock on hand
    is recorded as-is and only reported through the CRITICAL status.
    """

    def __init__(
        self, store: LedgerStore, clock: Callable[[], datetime] = datetime.now
    ) -> None:
        self._store = store
        self.clock = clock

    def register(
        self,
        name: str,
        sku: str,
        unit: str,
        *,
        stock: float = 0.0,
        min_level: float = 0.0,
        material_id: Optional[str] = None,
    ) -> Material:
        min_level = _require_min_level(min_level)
        stock = _require_finite(stock, "Opening stock")
        material = Material(
            id=material_id or f"MAT-{uuid4().hex[:8].upper()}",
            name=name,
            sku=sku,
            stock=stock,
            unit=unit,
            min_level=min_level,
            status=classify_stock(stock, min_level),
            opening_stock=stock,
        )
        self._store.materials.add(material.id, material)
        return copy.deepcopy(material)

    def move(
        self,
        material_id: str,
        quantity: float,
        direction: MovementType,
        reference: str,
        performed_by: str,
    ) -> StockMovement:
        quantity = _require_positive(quantity)
        try:
            direction = MovementType(direction)
        except ValueError as exc:
            raise InvalidArgumentError(f"Unknown movement type {direction!r}") from exc

        with self._store.locks.hold(MATERIAL, material_id):
            material = copy.deepcopy(self._store.materials.get(material_id))
            if direction is MovementType.INWARD:
                material.stock += quantity
            else:
                material.stock -= quantity
            material.status = classify_stock(material.stock, material.min_level)
            transaction = MaterialTransaction(
                id=f"TRX-{uuid4().hex[:10].upper()}",
                material_id=material.id,
                type=direction,
                qty=quantity,
                date=self.clock().date(),
                reference=reference,
                performed_by=performed_by,
            )
            self._store.transactions.add(transaction.id, transaction)
            self._store.materials.upsert(material.id, material)

        logger.info(
            "Material %s %s %s (%s) -> stock %s %s",
            material.id,
            direction.value,
            quantity,
            reference,
            material.stock,
            material.status.value,
        )
        if material.stock < 0:
            logger.warning("Material %s stock is negative: %s", material.id, material.stock)
        return StockMovement(material=copy.deepcopy(material), transaction=transaction)

    def set_min_level(self, material_id: str, min_level: float) -> Material:
        min_level = _require_min_level(min_level)
        with self._store.locks.hold(MATERIAL, material_id):
            material = copy.deepcopy(self._store.materials.get(material_id))
            material.min_level = min_level
            material.status = classify_stock(material.stock, material.min_level)
            self._store.materials.upsert(material.id, material)
            return copy.deepcopy(material)

    def transactions_for(self, material_id: str) -> List[MaterialTransaction]:
        return [
            transaction
            for transaction in self._store.transactions
            if transaction.material_id == material_id
        ]

    def ledger_balance(self, material_id: str) -> float:
        """Fold the transaction ledger of a material from its opening stock."""

        with self._store.locks.hold(MATERIAL, material_id):
            material = self._store.materials.get(material_id)
            balance = material.opening_stock
            for transaction in self.transactions_for(material_id):
                if transaction.type is MovementType.INWARD:
                    balance += transaction.qty
                else:
                    balance -= transaction.qty
            return balance


__all__ = ["MaterialStockManager", "StockMovement"]
