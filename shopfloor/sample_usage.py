"""Demonstration script for the shop-floor production tracking core."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from pprint import pprint

from . import CustomerType, JobPriority, MovementType, ShopFloorService
from .demo_data import ensure_demo_data
from .errors import ShopFloorError
from .events import chronological


def main() -> None:
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    shop = ShopFloorService()
    ensure_demo_data(shop)

    # Planning a new job
    build = shop.build_operation
    job = shop.create_job(
        CustomerType.CONTRACT,
        "Ashok Leyland",
        "Brake Caliper Bracket",
        "AL-BCB-310",
        "v1",
        40,
        date.today() + timedelta(days=9),
        [
            build(20, "Rough Turning (OD/ID)", "Turning", est_minutes=25),
            build(10, "Raw Material Cutting", "Wirecut", est_minutes=45),
            build(30, "Final Quality Inspection", "QC", est_minutes=15),
        ],
        contract_id="CTR-2024-112",
        priority=JobPriority.HIGH,
        current_machine_id="M-002",
        assigned_operator_id="OP-02",
        material_id="MAT-02",
        actor="Vikram Seth",
    )
    print(f"Created {job.id}, routing {[op.sequence for op in job.operations]}")

    # Operator terminal
    shop.start_job(job.id, actor="Suresh Yadav")
    shop.move_stock("MAT-02", 12, MovementType.OUTWARD, job.id, "Suresh Yadav")
    shop.pause_job(job.id, "Tool change", actor="Suresh Yadav")
    shop.resume_job(job.id, actor="Suresh Yadav")
    shop.report_production(job.id, 38, 2, actor="Suresh Yadav")

    # Quality gate
    result = shop.approve_qc(job.id, approved_qty=38, actor="Anita Rao")
    print(f"{result.job.id} is {result.job.status.value}")

    try:
        shop.start_job(job.id, actor="Suresh Yadav")
    except ShopFloorError as exc:
        print(f"Rejected ({exc.kind.value}): {exc}")

    print("\nAudit trail")
    for entry in chronological(shop.get_job(job.id).logs):
        print(f" - {entry.timestamp:%H:%M} {entry.type.value:<9} {entry.message} ({entry.user})")

    print("\nMachines")
    for machine in shop.list_machines():
        print(f" - {machine.id} {machine.name}: {machine.status.value} {machine.current_job_id or ''}")

    print("\nProduction summary")
    pprint(shop.production_summary())
    print("\nMaterial consumption")
    for row in shop.material_consumption():
        print(f" - {row.name}: +{row.inward} / -{row.outward} -> {row.stock} {row.unit}")


if __name__ == "__main__":  # pragma: no cover - manual execution
    main()
