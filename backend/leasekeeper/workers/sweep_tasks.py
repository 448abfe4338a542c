# backend/leasekeeper/workers/sweep_tasks.py
from __future__ import annotations

import logging

from ..db import SessionLocal
from ..services.lease_lifecycle import update_lease_and_tenant_statuses
from .celery_app import celery_app

log = logging.getLogger(__name__)


@celery_app.task(name="leasekeeper.workers.sweep_tasks.run_daily_sweep")
def run_daily_sweep() -> dict:
    """
    Nightly lease expiry.

    Safe to run twice or alongside request traffic: each expiry is a guarded
    write, so a second pass finds nothing left to do. Errors propagate and the
    run is marked failed; the next scheduled run picks up whatever was missed.
    """
    db = SessionLocal()
    try:
        res = update_lease_and_tenant_statuses(db)
        return {"ok": True, "leases_expired": res.leases_expired, "tenants_deactivated": res.tenants_deactivated}
    except Exception:
        log.exception("daily sweep failed")
        raise
    finally:
        db.close()
