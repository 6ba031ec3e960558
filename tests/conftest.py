"""Shared fixtures for the shop-floor test suite."""

from datetime import date, datetime, timedelta

import pytest

from shopfloor import CustomerType, Role, ShopFloorOptions, ShopFloorService


class FakeClock:
    """Deterministic clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2024, 3, 4, 8, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def shop(clock):
    """Service with two operators, a quality inspector, two machines and one material."""
    service = ShopFloorService(options=ShopFloorOptions(clock=clock))
    service.create_user("Ramesh Kumar", Role.OPERATOR, user_id="OP-01")
    service.create_user("Suresh Yadav", Role.OPERATOR, user_id="OP-02")
    service.create_user("Anita Rao", Role.QUALITY, user_id="QC-01")
    service.register_machine("VMC-Haas-VF2", "VMC", machine_id="M-001")
    service.register_machine("CNC-Turn-01", "Turning", machine_id="M-002")
    service.register_material(
        "Aluminium 6061 Block",
        "AL-6061-BLK",
        "pcs",
        stock=5,
        min_level=20,
        material_id="MAT-01",
    )
    return service


@pytest.fixture
def make_job(shop):
    """Factory creating a contract job on M-001 for OP-01 unless overridden."""

    def _make(**overrides):
        params = dict(
            customer_type=CustomerType.CONTRACT,
            customer="Tata Motors",
            part_name="Gear Box Housing",
            drawing_no="TM-GBH-001",
            revision="v2",
            qty=50,
            due_date=date(2024, 3, 20),
            operations=[
                shop.build_operation(10, "Rough Facing", "VMC", est_minutes=15),
                shop.build_operation(20, "Drill & Tap M10", "VMC", est_minutes=8),
            ],
            contract_id="CTR-2023-001",
            current_machine_id="M-001",
            assigned_operator_id="OP-01",
            material_id="MAT-01",
        )
        params.update(overrides)
        return shop.create_job(**params)

    return _make
