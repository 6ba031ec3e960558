"""FastAPI-based HTTP adapter for the shop-floor core.

The routes only translate form fields into service calls and render the
resulting records as JSON; all rules live in :mod:`shopfloor.services`.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from fastapi import FastAPI, Form, Request
from fastapi.responses import JSONResponse

from ..config import ShopFloorOptions
from ..demo_data import ensure_demo_data
from ..domain import Operation
from ..errors import ErrorKind, InvalidArgumentError, ShopFloorError
from ..services import ShopFloorService

STATUS_CODES = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_TRANSITION: 409,
    ErrorKind.INVALID_ARGUMENT: 422,
    ErrorKind.CONFLICT: 409,
}


def create_app(
    *, seed_demo_data: bool = True, options: Optional[ShopFloorOptions] = None
) -> FastAPI:
    service = ShopFloorService(options=options)
    if seed_demo_data:
        ensure_demo_data(service)

    app = FastAPI(title="Shop Floor Production Tracking")
    app.state.shop = service

    @app.exception_handler(ShopFloorError)
    async def shop_floor_error(request: Request, exc: ShopFloorError):
        return JSONResponse(
            status_code=STATUS_CODES.get(exc.kind, 400),
            content={"error": exc.kind.value, "detail": str(exc)},
        )

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------
    @app.get("/jobs")
    async def list_jobs(request: Request, status: Optional[str] = None):
        shop: ShopFloorService = request.app.state.shop
        return shop.list_jobs(status=status)

    @app.get("/jobs/{job_id}")
    async def get_job(job_id: str, request: Request):
        shop: ShopFloorService = request.app.state.shop
        return shop.get_job(job_id)

    @app.post("/jobs", status_code=201)
    async def create_job(
        request: Request,
        customer_type: str = Form(...),
        customer: str = Form(...),
        part_name: str = Form(...),
        drawing_no: str = Form(""),
        revision: str = Form(""),
        qty: int = Form(...),
        due_date: str = Form(...),
        operations: str = Form(...),
        contract_id: Optional[str] = Form(None),
        contact_person: Optional[str] = Form(None),
        priority: str = Form("MEDIUM"),
        machine_id: Optional[str] = Form(None),
        operator_id: Optional[str] = Form(None),
        material_id: Optional[str] = Form(None),
        special_instructions: str = Form(""),
        actor: Optional[str] = Form(None),
    ):
        shop: ShopFloorService = request.app.state.shop
        return shop.create_job(
            customer_type,
            customer,
            part_name,
            drawing_no,
            revision,
            qty,
            parse_date(due_date),
            parse_operation_definitions(shop, operations),
            contract_id=contract_id or None,
            contact_person=contact_person or None,
            priority=priority,
            current_machine_id=machine_id or None,
            assigned_operator_id=operator_id or None,
            material_id=material_id or None,
            special_instructions=special_instructions,
            actor=actor,
        )

    @app.post("/jobs/{job_id}/start")
    async def start_job(job_id: str, request: Request, actor: Optional[str] = Form(None)):
        shop: ShopFloorService = request.app.state.shop
        return shop.start_job(job_id, actor=actor)

    @app.post("/jobs/{job_id}/pause")
    async def pause_job(
        job_id: str,
        request: Request,
        reason: str = Form(""),
        actor: Optional[str] = Form(None),
    ):
        shop: ShopFloorService = request.app.state.shop
        return shop.pause_job(job_id, reason, actor=actor)

    @app.post("/jobs/{job_id}/resume")
    async def resume_job(job_id: str, request: Request, actor: Optional[str] = Form(None)):
        shop: ShopFloorService = request.app.state.shop
        return shop.resume_job(job_id, actor=actor)

    @app.post("/jobs/{job_id}/report")
    async def report_production(
        job_id: str,
        request: Request,
        completed_qty: int = Form(...),
        scrap_qty: int = Form(0),
        actor: Optional[str] = Form(None),
    ):
        shop: ShopFloorService = request.app.state.shop
        return shop.report_production(job_id, completed_qty, scrap_qty, actor=actor)

    @app.post("/jobs/{job_id}/qc")
    async def quality_decision(
        job_id: str,
        request: Request,
        approved: bool = Form(...),
        approved_qty: Optional[int] = Form(None),
        reason: str = Form("Rework Required"),
        actor: Optional[str] = Form(None),
    ):
        shop: ShopFloorService = request.app.state.shop
        if approved:
            return shop.approve_qc(job_id, approved_qty=approved_qty, actor=actor)
        return shop.reject_qc(job_id, reason, actor=actor)

    @app.post("/jobs/{job_id}/hold")
    async def hold_job(
        job_id: str,
        request: Request,
        reason: str = Form(""),
        actor: Optional[str] = Form(None),
    ):
        shop: ShopFloorService = request.app.state.shop
        return shop.hold_job(job_id, reason, actor=actor)

    @app.post("/jobs/{job_id}/recall")
    async def recall_job(
        job_id: str,
        request: Request,
        reason: str = Form(""),
        actor: Optional[str] = Form(None),
    ):
        shop: ShopFloorService = request.app.state.shop
        return shop.recall_job(job_id, reason, actor=actor)

    @app.post("/jobs/{job_id}/cancel")
    async def cancel_job(
        job_id: str,
        request: Request,
        reason: str = Form(""),
        actor: Optional[str] = Form(None),
    ):
        shop: ShopFloorService = request.app.state.shop
        return shop.cancel_job(job_id, reason, actor=actor)

    @app.post("/jobs/{job_id}/transfer")
    async def transfer_job(
        job_id: str,
        request: Request,
        machine_id: Optional[str] = Form(None),
        operator_id: Optional[str] = Form(None),
        reason: str = Form(""),
        actor: Optional[str] = Form(None),
    ):
        shop: ShopFloorService = request.app.state.shop
        message = f"Transferred: {reason}" if reason else ""
        return shop.transfer_job(
            job_id,
            machine_id=machine_id or None,
            operator_id=operator_id or None,
            message=message,
            actor=actor,
        )

    @app.post("/jobs/{job_id}/operations/{operation_id}/complete")
    async def complete_operation(
        job_id: str,
        operation_id: str,
        request: Request,
        actor: Optional[str] = Form(None),
    ):
        shop: ShopFloorService = request.app.state.shop
        return shop.complete_operation(job_id, operation_id, actor=actor)

    @app.get("/operators/{operator_id}/queue")
    async def operator_queue(operator_id: str, request: Request):
        shop: ShopFloorService = request.app.state.shop
        shop.get_user(operator_id)
        return {
            "active": shop.active_job(operator_id),
            "queue": shop.operator_queue(operator_id),
        }

    @app.get("/qc/queue")
    async def qc_queue(request: Request):
        shop: ShopFloorService = request.app.state.shop
        return shop.qc_queue()

    # ------------------------------------------------------------------
    # Machines and maintenance
    # ------------------------------------------------------------------
    @app.get("/machines")
    async def list_machines(request: Request):
        shop: ShopFloorService = request.app.state.shop
        return shop.list_machines()

    @app.post("/machines/{machine_id}/status")
    async def set_machine_status(
        machine_id: str, request: Request, status: str = Form(...)
    ):
        shop: ShopFloorService = request.app.state.shop
        return shop.set_machine_status(machine_id, status)

    @app.get("/maintenance")
    async def list_maintenance(request: Request, machine_id: Optional[str] = None):
        shop: ShopFloorService = request.app.state.shop
        return shop.list_maintenance_logs(machine_id=machine_id)

    @app.post("/machines/{machine_id}/maintenance", status_code=201)
    async def schedule_maintenance(
        machine_id: str,
        request: Request,
        maintenance_type: str = Form("PREVENTIVE"),
        description: str = Form(...),
        scheduled_on: str = Form(...),
        technician: str = Form("Internal"),
    ):
        shop: ShopFloorService = request.app.state.shop
        return shop.schedule_maintenance(
            machine_id,
            maintenance_type,
            description,
            parse_date(scheduled_on),
            technician=technician,
        )

    # ------------------------------------------------------------------
    # Materials
    # ------------------------------------------------------------------
    @app.get("/materials")
    async def list_materials(request: Request):
        shop: ShopFloorService = request.app.state.shop
        return shop.list_materials()

    @app.get("/transactions")
    async def list_transactions(request: Request, material_id: Optional[str] = None):
        shop: ShopFloorService = request.app.state.shop
        return shop.list_transactions(material_id=material_id)

    @app.post("/materials/{material_id}/movements", status_code=201)
    async def move_stock(
        material_id: str,
        request: Request,
        qty: float = Form(...),
        direction: str = Form(...),
        reference: str = Form(""),
        performed_by: Optional[str] = Form(None),
    ):
        shop: ShopFloorService = request.app.state.shop
        return shop.move_stock(material_id, qty, direction, reference, performed_by)

    # ------------------------------------------------------------------
    # Users and reports
    # ------------------------------------------------------------------
    @app.get("/users")
    async def list_users(request: Request, role: Optional[str] = None):
        shop: ShopFloorService = request.app.state.shop
        return shop.list_users(role=role)

    @app.post("/users", status_code=201)
    async def create_user(
        request: Request,
        name: str = Form(...),
        role: str = Form("OPERATOR"),
        avatar: str = Form(""),
    ):
        shop: ShopFloorService = request.app.state.shop
        return shop.create_user(name, role, avatar=avatar)

    @app.get("/reports/production")
    async def production_report(request: Request):
        shop: ShopFloorService = request.app.state.shop
        return shop.production_summary()

    @app.get("/reports/materials")
    async def material_report(request: Request):
        shop: ShopFloorService = request.app.state.shop
        return {
            "consumption": shop.material_consumption(),
            "low_stock": shop.low_stock_materials(),
        }

    @app.get("/reports/machines")
    async def machine_report(request: Request):
        shop: ShopFloorService = request.app.state.shop
        return shop.machine_status_counts()

    return app


def parse_date(value: str) -> date:
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError as exc:
        raise InvalidArgumentError(f"Invalid date {value!r}, expected YYYY-MM-DD") from exc


def parse_operation_definitions(
    service: ShopFloorService, definitions: str
) -> List[Operation]:
    """Parse one routing step per line: ``sequence;description;work center;minutes``."""

    operations: List[Operation] = []
    for line_number, line in enumerate(definitions.splitlines(), start=1):
        if not line.strip():
            continue
        parts = [part.strip() for part in line.split(";")]
        if len(parts) != 4:
            raise InvalidArgumentError(
                f"Operation line {line_number} needs 4 fields separated by ';'"
            )
        sequence_text, description, work_center, minutes_text = parts
        try:
            sequence = int(sequence_text)
            minutes = float(minutes_text)
        except ValueError as exc:
            raise InvalidArgumentError(
                f"Operation line {line_number} has a non-numeric sequence or time"
            ) from exc
        operations.append(
            service.build_operation(
                sequence, description, work_center, est_minutes=minutes
            )
        )
    return operations

