"""
Project access rules.

Anyone who owns a project or is listed as a member may read it and comment
on its tasks. Structural changes (columns, tasks, members, attachments) need
the owner or a member with the "editor" role. Renaming or deleting the
project itself is reserved to the owner.
"""
from fastapi import HTTPException
from sqlalchemy.orm import Session

from models import User
from project_models import Project, BoardColumn, ProjectTask


def is_member(project: Project, user: User) -> bool:
    return project.owner_id == user.id or project.member_for(user.id) is not None


def can_edit(project: Project, user: User) -> bool:
    if project.owner_id == user.id:
        return True
    member = project.member_for(user.id)
    return member is not None and member.role == "editor"


def require_editor(project: Project, user: User) -> None:
    if not can_edit(project, user):
        raise HTTPException(status_code=403, detail="Access denied")


def require_member(project: Project, user: User) -> None:
    if not is_member(project, user):
        raise HTTPException(status_code=403, detail="Access denied")


def get_project_for_member(db: Session, project_id: int, user: User) -> Project:
    project = db.get(Project, project_id)
    # Projects outside the caller's scope look the same as missing ones
    if not project or not is_member(project, user):
        raise HTTPException(status_code=404, detail="Project not found")
    return project


def get_project_for_owner(db: Session, project_id: int, user: User) -> Project:
    project = get_project_for_member(db, project_id, user)
    if project.owner_id != user.id:
        raise HTTPException(status_code=403, detail="Only the project owner can do this")
    return project


def get_column(db: Session, column_id: int, user: User, edit: bool = True) -> BoardColumn:
    column = db.get(BoardColumn, column_id)
    if not column:
        raise HTTPException(status_code=404, detail="Column not found")
    if edit:
        require_editor(column.project, user)
    else:
        require_member(column.project, user)
    return column


def get_project_task(db: Session, task_id: int, user: User, edit: bool = True) -> ProjectTask:
    task = db.get(ProjectTask, task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    if edit:
        require_editor(task.project, user)
    else:
        require_member(task.project, user)
    return task
