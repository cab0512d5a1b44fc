import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

import notifications
from dependencies import get_db, require_admin, page_params, paginate, PageParams
from models import User, LoginHistory, Label, SystemConfig, THEMES, get_config
from project_models import Project
from schemas import UserOut, LoginHistoryOut, StatusToggle, SystemConfigOut, SystemConfigUpdate
from task_models import TaskDB, task_labels

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)]
)


@router.get("/users")
def read_users(
    search: Optional[str] = None,
    role: Optional[str] = None,
    is_active: Optional[bool] = Query(None, alias="isActive"),
    params: PageParams = Depends(page_params()),
    db: Session = Depends(get_db),
):
    query = db.query(User)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
    if role:
        query = query.filter(User.role == role)
    if is_active is not None:
        query = query.filter(User.is_active == is_active)

    users, pagination = paginate(query.order_by(User.created_at.desc(), User.id.desc()), params)
    return {"users": [UserOut.model_validate(u) for u in users], "pagination": pagination}


def root_admin(db: Session) -> Optional[User]:
    """The earliest created admin; it can never be locked."""
    return db.query(User).filter(User.role == "admin").order_by(User.created_at, User.id).first()


@router.patch("/users/{user_id}/status")
def toggle_user_status(user_id: int, body: StatusToggle, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    first_admin = root_admin(db)
    if first_admin is not None and first_admin.id == user.id:
        raise HTTPException(status_code=400, detail="Cannot lock root admin")

    user.is_active = body.is_active if body.is_active is not None else not user.is_active
    db.commit()
    db.refresh(user)
    state = "unlocked" if user.is_active else "locked"
    logger.info("Admin %s %s user %s", admin.email, state, user.email)
    return {"message": f"User {state} successfully", "user": UserOut.model_validate(user)}


@router.get("/statistics")
def get_statistics(db: Session = Depends(get_db)):
    total_users = db.query(func.count(User.id)).scalar()
    active_users = db.query(func.count(User.id)).filter(User.is_active.is_(True)).scalar()
    total_tasks = db.query(func.count(TaskDB.id)).scalar()
    total_projects = db.query(func.count(Project.id)).scalar()

    # Personal tasks per status label
    tasks_by_status = (
        db.query(Label.name, func.count(task_labels.c.task_id))
        .join(task_labels, task_labels.c.label_id == Label.id)
        .filter(Label.type == "status")
        .group_by(Label.name)
        .all()
    )

    owner_count = func.count(Project.id).label("count")
    top_owners = (
        db.query(User.id, User.name, owner_count)
        .join(Project, Project.owner_id == User.id)
        .group_by(User.id, User.name)
        .order_by(owner_count.desc())
        .limit(10)
        .all()
    )

    return {
        "users": {
            "total": total_users,
            "active": active_users,
            "inactive": total_users - active_users,
        },
        "tasks": {"total": total_tasks},
        "projects": {"total": total_projects},
        "tasksByStatus": [{"status": name, "count": count} for name, count in tasks_by_status],
        "topProjectOwners": [
            {"ownerId": owner_id, "ownerName": name, "count": count}
            for owner_id, name, count in top_owners
        ],
    }


@router.get("/config")
def read_system_config(db: Session = Depends(get_db)):
    return {"config": SystemConfigOut.model_validate(get_config(db))}


@router.put("/config")
def update_system_config(body: SystemConfigUpdate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    config: SystemConfig = get_config(db)
    if body.theme is not None and body.theme not in THEMES:
        raise HTTPException(status_code=400, detail=f"Theme must be one of: {', '.join(THEMES)}")

    if body.app_name:
        config.app_name = body.app_name
    if body.theme:
        config.theme = body.theme
    if body.primary_color:
        config.primary_color = body.primary_color
    config.updated_by = admin.id
    db.commit()
    db.refresh(config)
    return {"message": "System configuration updated successfully", "config": SystemConfigOut.model_validate(config)}


@router.get("/users/{user_id}/login-history")
def read_user_login_history(
    user_id: int,
    params: PageParams = Depends(page_params()),
    db: Session = Depends(get_db),
):
    query = db.query(LoginHistory).filter(LoginHistory.user_id == user_id).order_by(LoginHistory.login_at.desc(), LoginHistory.id.desc())
    history, pagination = paginate(query, params)
    return {"history": [LoginHistoryOut.model_validate(h) for h in history], "pagination": pagination}


@router.post("/reminders/dispatch")
def dispatch_reminders(db: Session = Depends(get_db)):
    sent = notifications.dispatch_due_reminders(db)
    return {"message": f"{sent} reminder(s) sent", "sent": sent}
