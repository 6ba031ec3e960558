"""Seed records describing a small machining shop."""

from __future__ import annotations

from datetime import date, timedelta

from .domain import (
    CustomerType,
    JobPriority,
    MachineStatus,
    MaintenanceType,
    MovementType,
    OperationStatus,
    Role,
)
from .services import ShopFloorService


def ensure_demo_data(service: ShopFloorService) -> None:
    """Populate an empty service; does nothing once jobs exist.

    Records go through the public operations so machine bindings, stock
    classification and audit logs start out consistent.
    """

    if len(service.store.jobs) > 0:
        return

    today = date.today()

    service.create_user("Vikram Seth", Role.PLANNER, user_id="ADMIN-01")
    service.create_user("Ramesh Kumar", Role.OPERATOR, user_id="OP-01")
    service.create_user("Suresh Yadav", Role.OPERATOR, user_id="OP-02")
    service.create_user("Anita Rao", Role.QUALITY, user_id="QC-01")

    service.register_machine(
        "VMC-Haas-VF2",
        "VMC",
        machine_id="M-001",
        efficiency=92,
        last_maintenance=today - timedelta(days=20),
        next_maintenance=today + timedelta(days=10),
        total_run_hours=1240,
    )
    service.register_machine(
        "CNC-Turn-01",
        "Turning",
        machine_id="M-002",
        efficiency=85,
        last_maintenance=today - timedelta(days=34),
        next_maintenance=today - timedelta(days=4),
        total_run_hours=850,
    )
    service.register_machine(
        "Wirecut-Sodic",
        "Wirecut",
        machine_id="M-003",
        efficiency=45,
        last_maintenance=today - timedelta(days=45),
        next_maintenance=today - timedelta(days=15),
        total_run_hours=2100,
    )
    service.register_machine(
        "Grinder-Surface",
        "Grinding",
        machine_id="M-004",
        efficiency=78,
        last_maintenance=today - timedelta(days=10),
        next_maintenance=today + timedelta(days=20),
        total_run_hours=430,
    )
    service.set_machine_status("M-003", MachineStatus.DOWN)
    service.set_machine_status("M-004", MachineStatus.MAINTENANCE)
    service.schedule_maintenance(
        "M-004",
        MaintenanceType.PREVENTIVE,
        "Monthly Lubrication & Alignment",
        today + timedelta(days=1),
        technician="Service Team A",
    )
    service.schedule_maintenance(
        "M-003",
        MaintenanceType.BREAKDOWN,
        "Wire Guide Replacement",
        today,
        technician="External Vendor",
    )

    service.register_material(
        "Aluminium 6061 Block", "AL-6061-BLK", "pcs", stock=0, min_level=20, material_id="MAT-01"
    )
    service.register_material(
        "SS 304 Rod Ø20mm", "SS-304-R20", "meters", stock=130, min_level=50, material_id="MAT-02"
    )
    service.register_material(
        "Coolant Oil - Synthetic", "COOL-SYN-200", "liters", stock=15, min_level=40, material_id="MAT-03"
    )
    service.register_material(
        "Carbide Insert TNMG", "INS-TNMG-16", "box", stock=24, min_level=30, material_id="MAT-04"
    )
    service.move_stock("MAT-01", 50, MovementType.INWARD, "PO-9921", "Store Keeper")
    service.move_stock("MAT-02", 10, MovementType.OUTWARD, "JOB-101", "Ramesh Kumar")
    service.move_stock("MAT-01", 5, MovementType.OUTWARD, "JOB-101", "Ramesh Kumar")

    build = service.build_operation
    service.create_job(
        CustomerType.CONTRACT,
        "Tata Motors",
        "Gear Box Housing",
        "TM-GBH-001",
        "v2",
        50,
        today + timedelta(days=12),
        [
            build(10, "Rough Facing", "VMC", est_minutes=15, status=OperationStatus.COMPLETED),
            build(20, "Drill & Tap M10", "VMC", est_minutes=8),
            build(30, "Final Inspection", "QC", est_minutes=5),
        ],
        contract_id="CTR-2023-001",
        priority=JobPriority.HIGH,
        current_machine_id="M-001",
        assigned_operator_id="OP-01",
        material_id="MAT-01",
        special_instructions="Ensure surface finish Ra 1.6 on mating faces.",
        job_id="JOB-101",
        actor="Vikram Seth",
    )
    service.create_job(
        CustomerType.CONTRACT,
        "Mahindra",
        "Axle Shaft",
        "MM-AX-22",
        "v1",
        100,
        today + timedelta(days=17),
        [
            build(10, "Turning OD", "Turning", est_minutes=12, status=OperationStatus.COMPLETED),
            build(20, "Grooving", "Turning", est_minutes=4, status=OperationStatus.COMPLETED),
        ],
        contract_id="CTR-2023-045",
        priority=JobPriority.MEDIUM,
        current_machine_id="M-002",
        assigned_operator_id="OP-01",
        material_id="MAT-02",
        special_instructions="Check concentricity after turning.",
        job_id="JOB-102",
        actor="Vikram Seth",
    )
    service.create_job(
        CustomerType.INDIVIDUAL,
        "Bosch",
        "Fuel Pump Base",
        "B-FP-99",
        "v3",
        200,
        today + timedelta(days=23),
        [build(10, "Profile Cutting", "Wirecut", est_minutes=45)],
        contact_person="Mr. Adithya",
        priority=JobPriority.LOW,
        current_machine_id="M-002",
        assigned_operator_id="OP-02",
        job_id="JOB-103",
        actor="Vikram Seth",
    )

    service.start_job("JOB-102", actor="Ramesh Kumar", message="Job Started")
    service.report_production("JOB-102", 100, 2, actor="Ramesh Kumar")
    service.start_job("JOB-103", actor="Suresh Yadav", message="Job Started")
    service.hold_job("JOB-103", "Material shortage detected", actor="Supervisor")
    service.start_job("JOB-101", actor="Ramesh Kumar", message="Job Started")


__all__ = ["ensure_demo_data"]
