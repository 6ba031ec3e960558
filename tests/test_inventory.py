"""Tests for the material stock ledger."""

import pytest

from shopfloor import (
    InvalidArgumentError,
    JobStatus,
    MovementType,
    NotFoundError,
    StockStatus,
)
from shopfloor.domain import classify_stock


@pytest.mark.parametrize(
    "stock,min_level,expected",
    [
        (0, 10, StockStatus.CRITICAL),
        (-1, 0, StockStatus.CRITICAL),
        (5, 10, StockStatus.LOW_STOCK),
        (9.5, 10, StockStatus.LOW_STOCK),
        (10, 10, StockStatus.IN_STOCK),
        (1, 0, StockStatus.IN_STOCK),
    ],
)
def test_classify_stock(stock, min_level, expected):
    assert classify_stock(stock, min_level) is expected


class TestStockMovements:
    def test_inward_raises_stock(self, shop, clock):
        movement = shop.move_stock("MAT-01", 10, MovementType.INWARD, "PO-9921")

        assert movement.material.stock == 15
        assert movement.material.status is StockStatus.LOW_STOCK
        transactions = shop.list_transactions(material_id="MAT-01")
        assert transactions == [movement.transaction]
        assert movement.transaction.type is MovementType.INWARD
        assert movement.transaction.qty == 10
        assert movement.transaction.reference == "PO-9921"
        assert movement.transaction.date == clock.now.date()

    def test_outward_may_go_negative(self, shop):
        shop.move_stock("MAT-01", 10, MovementType.INWARD, "PO-9921")
        movement = shop.move_stock("MAT-01", 20, "OUTWARD", "JOB-101")

        assert movement.material.stock == -5
        assert movement.material.status is StockStatus.CRITICAL
        assert len(shop.list_transactions(material_id="MAT-01")) == 2

    @pytest.mark.parametrize(
        "qty", [0, -3, True, "5", None, float("nan"), float("inf"), float("-inf")]
    )
    def test_invalid_quantity_changes_nothing(self, shop, qty):
        with pytest.raises(InvalidArgumentError):
            shop.move_stock("MAT-01", qty, MovementType.OUTWARD, "JOB-101")

        assert shop.get_material("MAT-01").stock == 5
        assert shop.list_transactions() == []

    def test_unknown_direction(self, shop):
        with pytest.raises(InvalidArgumentError):
            shop.move_stock("MAT-01", 1, "SIDEWAYS", "X")

    def test_unknown_material(self, shop):
        with pytest.raises(NotFoundError):
            shop.move_stock("MAT-99", 1, MovementType.INWARD, "PO-1")
        assert shop.list_transactions() == []

    def test_performer_defaults_to_system_user(self, shop):
        movement = shop.move_stock("MAT-01", 1, MovementType.OUTWARD, "JOB-1")
        assert movement.transaction.performed_by == "System"

        movement = shop.move_stock(
            "MAT-01", 1, MovementType.OUTWARD, "JOB-1", performed_by="Store Keeper"
        )
        assert movement.transaction.performed_by == "Store Keeper"

    def test_fractional_quantities(self, shop):
        movement = shop.move_stock("MAT-01", 2.5, MovementType.OUTWARD, "JOB-1")
        assert movement.material.stock == pytest.approx(2.5)

    def test_ledger_balance_matches_stock(self, shop):
        shop.move_stock("MAT-01", 50, MovementType.INWARD, "PO-1")
        shop.move_stock("MAT-01", 12, MovementType.OUTWARD, "JOB-1")
        shop.move_stock("MAT-01", 3, MovementType.OUTWARD, "JOB-2")

        assert shop.ledger_balance("MAT-01") == shop.get_material("MAT-01").stock == 40


class TestMaterialMaster:
    def test_register_classifies(self, shop):
        material = shop.register_material(
            "Brass Rod 20mm", "BR-20", "kg", stock=0, min_level=10
        )
        assert material.id.startswith("MAT-")
        assert material.status is StockStatus.CRITICAL
        assert material.opening_stock == 0

    def test_min_level_reclassifies(self, shop):
        material = shop.set_material_min_level("MAT-01", 5)
        assert material.status is StockStatus.IN_STOCK

        material = shop.set_material_min_level("MAT-01", 6)
        assert material.status is StockStatus.LOW_STOCK

    @pytest.mark.parametrize("min_level", [-1, float("nan"), float("inf"), "10"])
    def test_invalid_min_level(self, shop, min_level):
        with pytest.raises(InvalidArgumentError):
            shop.set_material_min_level("MAT-01", min_level)
        assert shop.get_material("MAT-01").min_level == 20

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"min_level": float("nan")},
            {"min_level": -5},
            {"stock": float("nan")},
            {"stock": float("inf")},
        ],
    )
    def test_register_rejects_non_finite(self, shop, kwargs):
        with pytest.raises(InvalidArgumentError):
            shop.register_material("Brass Rod 20mm", "BR-20", "kg", material_id="MAT-BR", **kwargs)
        assert len(shop.list_materials()) == 1

    def test_low_stock_report(self, shop):
        shop.register_material("Steel Plate", "ST-PL", "pcs", stock=100, min_level=10)
        low = shop.low_stock_materials()
        assert [material.id for material in low] == ["MAT-01"]

    def test_consumption_report(self, shop):
        shop.move_stock("MAT-01", 50, MovementType.INWARD, "PO-1")
        shop.move_stock("MAT-01", 5, MovementType.OUTWARD, "JOB-1")

        (row,) = shop.material_consumption()
        assert row.material_id == "MAT-01"
        assert row.inward == 50
        assert row.outward == 5
        assert row.stock == 50


def test_job_transitions_leave_stock_alone(shop, make_job):
    """Material is only consumed by explicit stock movements."""
    job = make_job()
    shop.start_job(job.id)
    shop.report_production(job.id, 50)
    shop.approve_qc(job.id)

    assert shop.get_job(job.id).status is JobStatus.COMPLETED
    assert shop.get_material("MAT-01").stock == 5
    assert shop.list_transactions() == []
