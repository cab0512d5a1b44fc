from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date, datetime, timedelta

from dependencies import get_db, get_current_user
from models import User
from schemas import TaskOut
from task_models import TaskDB
from time_slots import TIME_SLOTS

router = APIRouter(
    prefix="/timeline",
    tags=["timeline"]
)


@router.get("")
def get_day_timeline(day: Optional[date] = Query(None, alias="date"), search: Optional[str] = None, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """The caller's tasks starting on one day, bucketed by time slot."""
    day = day or date.today()
    start = datetime.combine(day, datetime.min.time())
    end = start + timedelta(days=1)

    db_tasks = (
        db.query(TaskDB)
        .filter(TaskDB.user_id == user.id, TaskDB.start_time >= start, TaskDB.start_time < end)
        .order_by(TaskDB.start_time, TaskDB.id)
        .all()
    )
    if search:
        search_lower = search.lower()
        db_tasks = [t for t in db_tasks if search_lower in t.title.lower() or (t.short_description and search_lower in t.short_description.lower())]

    slots = {slot: [] for slot in TIME_SLOTS}
    for task in db_tasks:
        slots[task.time_slot].append(TaskOut.model_validate(task))
    return {"date": day.isoformat(), "slots": slots, "total": len(db_tasks)}
