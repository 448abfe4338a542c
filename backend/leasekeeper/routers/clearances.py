# backend/leasekeeper/routers/clearances.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal, require_user
from ..db import get_db
from ..schemas import ClearanceCreate, ClearanceInspect, ClearanceOut, InspectorAssign
from ..services import clearance_workflow as cw

router = APIRouter(prefix="/clearances", tags=["clearances"])


@router.post("", response_model=ClearanceOut)
def create_clearance(payload: ClearanceCreate, db: Session = Depends(get_db)):
    return cw.create_clearance(db, payload.model_dump())


@router.get("/uninspected", response_model=list[ClearanceOut])
def uninspected(db: Session = Depends(get_db)):
    return cw.list_uninspected_clearances(db)


@router.get("/inspector/{inspector_id}", response_model=list[ClearanceOut])
def by_inspector(inspector_id: int, db: Session = Depends(get_db)):
    return cw.list_clearances_by_inspector(db, inspector_id)


@router.post("/{clearance_id}/approve", response_model=ClearanceOut)
def approve(clearance_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return cw.approve_clearance(db, clearance_id, p.user_id)


@router.post("/{clearance_id}/reject", response_model=ClearanceOut)
def reject(clearance_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return cw.reject_clearance(db, clearance_id, p.user_id)


@router.post("/{clearance_id}/inspect", response_model=ClearanceOut)
def inspect(
    clearance_id: int,
    payload: ClearanceInspect,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_user),
):
    return cw.inspect_clearance(db, clearance_id, p.user_id, payload.feedback)


@router.post("/{clearance_id}/assign-inspector", response_model=ClearanceOut)
def assign_inspector(clearance_id: int, payload: InspectorAssign, db: Session = Depends(get_db)):
    return cw.assign_inspector(db, clearance_id, payload.inspector_id)
