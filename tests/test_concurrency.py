"""Concurrent access from many terminals against one service."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from shopfloor import InvalidTransitionError, JobStatus, LogType, MovementType


def _race(callables):
    """Run callables on separate threads released together; return outcomes."""
    barrier = threading.Barrier(len(callables))

    def run(fn):
        barrier.wait()
        try:
            return fn()
        except Exception as exc:  # collected for assertions
            return exc

    with ThreadPoolExecutor(max_workers=len(callables)) as pool:
        return list(pool.map(run, callables))


def test_concurrent_outward_movements(shop):
    shop.register_material(
        "Tool Steel D2", "TS-D2", "pcs", stock=100, min_level=10, material_id="MAT-D2"
    )

    with ThreadPoolExecutor(max_workers=16) as pool:
        list(
            pool.map(
                lambda n: shop.move_stock(
                    "MAT-D2", 1, MovementType.OUTWARD, f"JOB-{n}"
                ),
                range(100),
            )
        )

    material = shop.get_material("MAT-D2")
    assert material.stock == 0
    assert len(shop.list_transactions(material_id="MAT-D2")) == 100
    assert shop.ledger_balance("MAT-D2") == 0


def test_mixed_movements_keep_ledger_consistent(shop):
    with ThreadPoolExecutor(max_workers=8) as pool:
        list(
            pool.map(
                lambda n: shop.move_stock(
                    "MAT-01",
                    2,
                    MovementType.INWARD if n % 2 else MovementType.OUTWARD,
                    f"REF-{n}",
                ),
                range(60),
            )
        )

    assert shop.get_material("MAT-01").stock == 5
    assert shop.ledger_balance("MAT-01") == 5


def test_same_job_started_once(shop, make_job):
    job = make_job()
    outcomes = _race([lambda: shop.start_job(job.id)] * 12)

    successes = [o for o in outcomes if not isinstance(o, Exception)]
    failures = [o for o in outcomes if isinstance(o, Exception)]
    assert len(successes) == 1
    assert all(isinstance(o, InvalidTransitionError) for o in failures)
    logs = shop.get_job(job.id).logs
    assert sum(1 for entry in logs if entry.type is LogType.START) == 1


@pytest.mark.parametrize("attempt", range(5))
def test_operator_cannot_start_two_jobs_at_once(shop, make_job, attempt):
    first = make_job()
    second = make_job(current_machine_id="M-002")

    outcomes = _race([lambda: shop.start_job(first.id), lambda: shop.start_job(second.id)])

    assert sum(1 for o in outcomes if isinstance(o, InvalidTransitionError)) == 1
    running = shop.list_jobs(status=JobStatus.RUNNING)
    assert len(running) == 1


@pytest.mark.parametrize("attempt", range(5))
def test_machine_bound_to_one_job(shop, make_job, attempt):
    first = make_job()
    second = make_job(assigned_operator_id="OP-02")

    outcomes = _race([lambda: shop.start_job(first.id), lambda: shop.start_job(second.id)])

    winners = [o for o in outcomes if not isinstance(o, Exception)]
    assert len(winners) == 1
    assert shop.get_machine("M-001").current_job_id == winners[0].job.id


def test_transitions_across_jobs_do_not_interfere(shop, make_job):
    jobs = [make_job(current_machine_id=None, assigned_operator_id=None) for _ in range(20)]

    def drive(job_id):
        shop.start_job(job_id)
        shop.pause_job(job_id, "Break")
        shop.resume_job(job_id)
        shop.report_production(job_id, 10, 1)
        return shop.approve_qc(job_id)

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(drive, [job.id for job in jobs]))

    assert all(result.job.status is JobStatus.COMPLETED for result in results)
    summary = shop.production_summary()
    assert summary.completed_jobs == 20
    assert summary.produced_qty == 200
    assert summary.scrap_qty == 20
