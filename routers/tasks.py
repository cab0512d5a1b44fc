from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from sqlalchemy import or_
from sqlalchemy.orm import Session

from dependencies import get_db, get_current_user, page_params, paginate, PageParams
from models import User
from schemas import TaskCreate, TaskUpdate, TaskOut, TimeSlotUpdate
from task_helpers import resolve_labels, build_subtasks, check_attachments
from task_models import TaskDB, SubtaskDB
from time_slots import TIME_SLOTS, time_slot_for
import uploads

router = APIRouter(
    prefix="/tasks",
    tags=["tasks"]
)


def get_own_task(db: Session, task_id: int, user: User) -> TaskDB:
    db_task = db.query(TaskDB).filter(TaskDB.id == task_id, TaskDB.user_id == user.id).first()
    if not db_task:
        raise HTTPException(status_code=404, detail="Task not found")
    return db_task


def check_time_range(start: datetime, end: datetime):
    if end < start:
        raise HTTPException(status_code=400, detail="endTime must not be before startTime")


def check_time_slot(slot: Optional[str]):
    if slot is not None and slot not in TIME_SLOTS:
        raise HTTPException(status_code=400, detail=f"timeSlot must be one of: {', '.join(TIME_SLOTS)}")


@router.get("")
def read_tasks(
    time_slot: Optional[str] = Query(None, alias="timeSlot"),
    search: Optional[str] = None,
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    params: PageParams = Depends(page_params(100)),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    query = db.query(TaskDB).filter(TaskDB.user_id == user.id)
    if time_slot:
        query = query.filter(TaskDB.time_slot == time_slot)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(TaskDB.title.ilike(pattern), TaskDB.short_description.ilike(pattern)))
    if start_date:
        query = query.filter(TaskDB.start_time >= start_date.replace(tzinfo=None))
    if end_date:
        query = query.filter(TaskDB.start_time <= end_date.replace(tzinfo=None))

    tasks, pagination = paginate(query.order_by(TaskDB.start_time, TaskDB.id), params)
    return {"tasks": [TaskOut.model_validate(t) for t in tasks], "pagination": pagination}


@router.get("/{task_id}")
def read_task(task_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return {"task": TaskOut.model_validate(get_own_task(db, task_id, user))}


@router.post("", status_code=201)
def create_task(task: TaskCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    if not task.title or not task.start_time or not task.end_time:
        raise HTTPException(status_code=400, detail="Title, startTime, and endTime are required")
    check_time_range(task.start_time, task.end_time)

    db_task = TaskDB(
        user_id=user.id,
        title=task.title,
        short_description=task.short_description,
        detailed_description=task.detailed_description,
        start_time=task.start_time,
        end_time=task.end_time,
        time_slot=time_slot_for(task.start_time),
        labels=resolve_labels(db, task.labels),
        attachments=check_attachments([], task.attachments or []),
        subtasks=build_subtasks([], task.subtasks or [], SubtaskDB),
        email_reminder=task.email_reminder,
    )
    db.add(db_task)
    db.commit()
    db.refresh(db_task)
    return {"message": "Task created successfully", "task": TaskOut.model_validate(db_task)}


@router.put("/{task_id}")
def update_task(task_id: int, task: TaskUpdate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    db_task = get_own_task(db, task_id, user)
    provided = task.model_fields_set

    # Only fields present in the body change
    if task.title:
        db_task.title = task.title
    if "short_description" in provided:
        db_task.short_description = task.short_description
    if "detailed_description" in provided:
        db_task.detailed_description = task.detailed_description
    if task.start_time:
        db_task.start_time = task.start_time
        db_task.time_slot = time_slot_for(task.start_time)
    if task.end_time:
        db_task.end_time = task.end_time
    if task.time_slot:
        check_time_slot(task.time_slot)
        db_task.time_slot = task.time_slot
    if task.labels is not None:
        db_task.labels = resolve_labels(db, task.labels)
    if task.attachments is not None:
        db_task.attachments = check_attachments(db_task.attachments, task.attachments)
    if task.subtasks is not None:
        db_task.subtasks = build_subtasks(db_task.subtasks, task.subtasks, SubtaskDB)
    if "email_reminder" in provided:
        db_task.email_reminder = task.email_reminder
        db_task.reminder_sent_at = None
    check_time_range(db_task.start_time, db_task.end_time)

    db.commit()
    db.refresh(db_task)
    return {"message": "Task updated successfully", "task": TaskOut.model_validate(db_task)}


@router.patch("/{task_id}/time-slot")
def update_task_time_slot(task_id: int, body: TimeSlotUpdate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Drag and drop on the timeline: move the task in time and/or into another slot."""
    db_task = get_own_task(db, task_id, user)
    if body.start_time:
        db_task.start_time = body.start_time
        db_task.time_slot = time_slot_for(body.start_time)
    if body.end_time:
        db_task.end_time = body.end_time
    if body.time_slot:
        check_time_slot(body.time_slot)
        db_task.time_slot = body.time_slot
    check_time_range(db_task.start_time, db_task.end_time)

    db.commit()
    db.refresh(db_task)
    return {"message": "Task time slot updated successfully", "task": TaskOut.model_validate(db_task)}


@router.delete("/{task_id}")
def delete_task(task_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    db_task = get_own_task(db, task_id, user)
    attachments = list(db_task.attachments or [])
    db.delete(db_task)
    db.commit()
    for url in attachments:
        uploads.remove_upload(url)
    return {"message": "Task deleted successfully"}


@router.post("/{task_id}/upload")
async def upload_attachment(
    task_id: int,
    file: UploadFile = File(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    db_task = get_own_task(db, task_id, user)
    file_url = await uploads.save_upload(file)
    db_task.attachments = list(db_task.attachments or []) + [file_url]
    db.commit()
    return {"message": "File uploaded successfully", "file": file_url, "attachments": db_task.attachments}


@router.delete("/{task_id}/attachments/{filename}")
def delete_attachment(task_id: int, filename: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    db_task = get_own_task(db, task_id, user)
    file_url = uploads.URL_PREFIX + filename
    if file_url not in (db_task.attachments or []):
        raise HTTPException(status_code=404, detail="Attachment not found")
    db_task.attachments = [a for a in db_task.attachments if a != file_url]
    db.commit()
    uploads.remove_upload(file_url)
    return {"message": "Attachment deleted successfully", "attachments": db_task.attachments}
