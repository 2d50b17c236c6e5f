from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from datetime import date
from typing import List

from ..deps import get_db
from ..schemas.agenda import (
    BlockIn,
    BlockOut,
    BlockUpdateIn,
    OverrideIn,
    OverrideOut,
    OverrideUpdateIn,
    TemplateIn,
    TemplateOut,
    TemplateUpdateIn,
    WeekScheduleIn,
)
from ..services import agenda as svc


router = APIRouter(tags=["agenda"])

# -----------------------------------------------------------------------------
# FASCE SETTIMANALI
# -----------------------------------------------------------------------------
@router.post("/templates", response_model=TemplateOut, status_code=201)
def create_template(payload: TemplateIn, db: Session = Depends(get_db)):
    return svc.create_template(db, **payload.model_dump())


@router.put("/templates/{template_id}", response_model=TemplateOut)
def update_template(template_id: int, payload: TemplateUpdateIn, db: Session = Depends(get_db)):
    return svc.update_template(db, template_id, payload.model_dump(exclude_unset=True))


@router.patch("/templates/{template_id}/deactivate", response_model=TemplateOut)
def deactivate_template(template_id: int, db: Session = Depends(get_db)):
    return svc.deactivate_template(db, template_id)


@router.patch("/templates/{template_id}/activate", response_model=TemplateOut)
def activate_template(template_id: int, db: Session = Depends(get_db)):
    return svc.activate_template(db, template_id)


@router.get("/professionals/{professional_id}/templates", response_model=List[TemplateOut])
def list_templates(
    professional_id: str,
    active: bool | None = None,
    current_on: date | None = None,
    db: Session = Depends(get_db),
):
    return svc.list_templates(db, professional_id, active=active, current_on=current_on)


@router.put("/professionals/{professional_id}/week-schedule", response_model=List[TemplateOut])
def replace_week_schedule(
    professional_id: str, payload: WeekScheduleIn, db: Session = Depends(get_db)
):
    entries = [e.model_dump() for e in payload.entries]
    return svc.replace_week_schedule(db, professional_id, entries, payload.from_date)

# -----------------------------------------------------------------------------
# GIORNI PUNTUALI
# -----------------------------------------------------------------------------
@router.post("/overrides", response_model=OverrideOut, status_code=201)
def create_override(payload: OverrideIn, db: Session = Depends(get_db)):
    return svc.create_override(
        db,
        professional_id=payload.professional_id,
        day=payload.date,
        start_time=payload.start_time,
        end_time=payload.end_time,
        slot_duration_minutes=payload.slot_duration_minutes,
        notes=payload.notes,
    )


@router.put("/overrides/{override_id}", response_model=OverrideOut)
def update_override(override_id: int, payload: OverrideUpdateIn, db: Session = Depends(get_db)):
    return svc.update_override(db, override_id, payload.model_dump(exclude_unset=True))


@router.delete("/overrides/{override_id}", status_code=204)
def delete_override(override_id: int, db: Session = Depends(get_db)):
    svc.delete_override(db, override_id)


@router.get("/professionals/{professional_id}/overrides", response_model=List[OverrideOut])
def list_overrides(
    professional_id: str,
    start: date | None = None,
    end: date | None = None,
    db: Session = Depends(get_db),
):
    return svc.list_overrides(db, professional_id, start, end)

# -----------------------------------------------------------------------------
# BLOCCHI
# -----------------------------------------------------------------------------
@router.post("/blocks", response_model=BlockOut, status_code=201)
def create_block(payload: BlockIn, db: Session = Depends(get_db)):
    return svc.create_block(db, **payload.model_dump())


@router.put("/blocks/{block_id}", response_model=BlockOut)
def update_block(block_id: int, payload: BlockUpdateIn, db: Session = Depends(get_db)):
    return svc.update_block(db, block_id, payload.model_dump(exclude_unset=True))


@router.delete("/blocks/{block_id}", status_code=204)
def delete_block(block_id: int, db: Session = Depends(get_db)):
    svc.delete_block(db, block_id)


@router.get("/professionals/{professional_id}/blocks", response_model=List[BlockOut])
def list_blocks(
    professional_id: str,
    start: date | None = None,
    end: date | None = None,
    db: Session = Depends(get_db),
):
    return svc.list_blocks(db, professional_id, start, end)
