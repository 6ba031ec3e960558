"""HTTP adapter tests using FastAPI's TestClient against the seeded demo shop."""

import pytest
from fastapi.testclient import TestClient

from shopfloor import ErrorKind, ShopFloorError
from shopfloor.web.app import STATUS_CODES, create_app


@pytest.fixture
def client():
    return TestClient(create_app())


def test_list_jobs(client):
    response = client.get("/jobs")
    assert response.status_code == 200
    assert {job["id"] for job in response.json()} == {"JOB-101", "JOB-102", "JOB-103"}

    response = client.get("/jobs", params={"status": "HOLD"})
    assert [job["id"] for job in response.json()] == ["JOB-103"]


def test_unknown_job_is_404(client):
    response = client.get("/jobs/JOB-404")
    assert response.status_code == 404
    assert response.json()["error"] == "NotFound"


def test_illegal_transition_is_409(client):
    response = client.post("/jobs/JOB-101/start", data={"actor": "Ramesh Kumar"})
    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "InvalidTransition"
    assert "JOB-101" in body["detail"]


def test_operator_flow(client):
    response = client.post(
        "/jobs/JOB-101/pause", data={"reason": "Tool change", "actor": "Ramesh Kumar"}
    )
    assert response.status_code == 200
    assert response.json()["job"]["status"] == "PAUSED"
    assert response.json()["log"]["type"] == "PAUSE"

    machine = next(m for m in client.get("/machines").json() if m["id"] == "M-001")
    assert machine["status"] == "IDLE"

    assert client.post("/jobs/JOB-101/resume").json()["job"]["status"] == "RUNNING"

    response = client.post(
        "/jobs/JOB-101/report", data={"completed_qty": 48, "scrap_qty": 2}
    )
    assert response.json()["job"]["status"] == "QC_PENDING"
    assert response.json()["job"]["completed_qty"] == 48

    response = client.post(
        "/jobs/JOB-101/qc", data={"approved": "true", "approved_qty": 48, "actor": "Anita Rao"}
    )
    assert response.status_code == 200
    assert response.json()["job"]["status"] == "COMPLETED"
    assert response.json()["log"]["type"] == "COMPLETE"


def test_pause_without_reason_is_422(client):
    response = client.post("/jobs/JOB-101/pause", data={"reason": ""})
    assert response.status_code == 422
    assert response.json()["error"] == "InvalidArgument"


def test_qc_reject_puts_job_on_hold(client):
    response = client.post("/jobs/JOB-102/qc", data={"approved": "false"})
    assert response.json()["job"]["status"] == "HOLD"
    assert response.json()["log"]["message"] == "QC Rejected - Rework Required"


def test_create_job(client):
    response = client.post(
        "/jobs",
        data={
            "customer_type": "INDIVIDUAL",
            "customer": "Local Workshop",
            "part_name": "Pulley Hub",
            "drawing_no": "LW-PH-7",
            "revision": "v1",
            "qty": 25,
            "due_date": "2030-01-15",
            "operations": "20;Bore;Turning;12\n10;Face;Turning;5\n",
            "contact_person": "Mr. Rao",
            "machine_id": "M-002",
            "operator_id": "OP-02",
        },
    )
    assert response.status_code == 201
    job = response.json()
    assert job["status"] == "PENDING"
    assert [op["sequence"] for op in job["operations"]] == [10, 20]
    assert client.get(f"/jobs/{job['id']}").status_code == 200


@pytest.mark.parametrize(
    "field,value",
    [("due_date", "15/01/2030"), ("operations", "10;Face;Turning"), ("operations", "x;Face;T;5")],
)
def test_create_job_bad_input(client, field, value):
    data = {
        "customer_type": "CONTRACT",
        "customer": "Tata Motors",
        "part_name": "Bracket",
        "qty": 5,
        "due_date": "2030-01-15",
        "operations": "10;Face;VMC;5",
        "contract_id": "CTR-9",
    }
    data[field] = value
    response = client.post("/jobs", data=data)
    assert response.status_code == 422


def test_stock_movement(client):
    response = client.post(
        "/materials/MAT-03/movements",
        data={"qty": 30, "direction": "INWARD", "reference": "PO-1002"},
    )
    assert response.status_code == 201
    assert response.json()["material"]["stock"] == 45
    assert response.json()["material"]["status"] == "IN_STOCK"

    transactions = client.get("/transactions", params={"material_id": "MAT-03"}).json()
    assert len(transactions) == 1


def test_stock_movement_rejects_non_positive(client):
    response = client.post(
        "/materials/MAT-03/movements",
        data={"qty": -1, "direction": "OUTWARD", "reference": "JOB-101"},
    )
    assert response.status_code == 422
    assert response.json()["error"] == "InvalidArgument"


def test_machine_status(client):
    response = client.post("/machines/M-003/status", data={"status": "IDLE"})
    assert response.status_code == 200
    assert response.json()["status"] == "IDLE"

    response = client.post("/machines/M-003/status", data={"status": "RUNNING"})
    assert response.status_code == 422


def test_maintenance(client):
    response = client.post(
        "/machines/M-001/maintenance",
        data={"description": "Ball screw check", "scheduled_on": "2030-02-01"},
    )
    assert response.status_code == 201
    logs = client.get("/maintenance", params={"machine_id": "M-001"}).json()
    assert [entry["description"] for entry in logs] == ["Ball screw check"]


def test_queues(client):
    queue = client.get("/operators/OP-01/queue").json()
    assert queue["active"]["id"] == "JOB-101"
    assert [job["id"] for job in queue["queue"]] == ["JOB-101"]

    assert [job["id"] for job in client.get("/qc/queue").json()] == ["JOB-102"]
    assert client.get("/operators/OP-99/queue").status_code == 404


def test_create_user(client):
    response = client.post("/users", data={"name": "Kiran", "role": "OPERATOR"})
    assert response.status_code == 201
    assert len(client.get("/users", params={"role": "OPERATOR"}).json()) == 3


def test_reports(client):
    production = client.get("/reports/production").json()
    assert production["total_jobs"] == 3
    assert production["produced_qty"] == 100
    assert production["reject_rate"] == 2.0

    materials = client.get("/reports/materials").json()
    assert {row["id"] for row in materials["low_stock"]} == {"MAT-03", "MAT-04"}

    machines = client.get("/reports/machines").json()
    assert machines == {"IDLE": 1, "RUNNING": 1, "DOWN": 1, "MAINTENANCE": 1}


def test_empty_app():
    client = TestClient(create_app(seed_demo_data=False))
    assert client.get("/jobs").json() == []


@pytest.mark.parametrize("qty", ["nan", "inf"])
def test_stock_movement_rejects_non_finite(client, qty):
    response = client.post(
        "/materials/MAT-03/movements",
        data={"qty": qty, "direction": "INWARD", "reference": "PO-1003"},
    )
    assert response.status_code == 422

    materials = client.get("/materials")
    assert materials.status_code == 200
    stock = next(m["stock"] for m in materials.json() if m["id"] == "MAT-03")
    assert stock == 15
    assert client.get("/transactions", params={"material_id": "MAT-03"}).json() == []


def test_bare_error_maps_to_422():
    assert ShopFloorError("unclassified").kind is ErrorKind.INVALID_ARGUMENT
    assert STATUS_CODES[ShopFloorError.kind] == 422
