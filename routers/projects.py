import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy import func, select, or_
from sqlalchemy.orm import Session

import notifications
import uploads
from dependencies import get_db, get_current_user, page_params, paginate, PageParams
from models import User
from permissions import (
    get_project_for_member,
    get_project_for_owner,
    get_column,
    get_project_task,
    require_editor,
)
from project_models import (
    MEMBER_ROLES,
    Project,
    ProjectMember,
    BoardColumn,
    ProjectTask,
    ProjectSubtask,
    ProjectTaskComment,
)
from schemas import (
    ProjectCreate,
    ProjectUpdate,
    ProjectOut,
    MemberAdd,
    MemberInvite,
    RoleUpdate,
    ColumnCreate,
    ColumnUpdate,
    ColumnOut,
    ProjectTaskCreate,
    ProjectTaskUpdate,
    ProjectTaskOut,
    TaskMove,
    CommentCreate,
    AttachmentDelete,
)
from task_helpers import resolve_labels, build_subtasks, check_attachments

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/projects",
    tags=["projects"]
)


def _role_or_default(role: Optional[str]) -> str:
    role = role or "editor"
    if role not in MEMBER_ROLES:
        raise HTTPException(status_code=400, detail="Valid role (viewer or editor) is required")
    return role


def _next_order(db: Session, column, *criteria) -> int:
    # Read max, add one. Concurrent inserts may still pick the same value.
    current = db.query(func.max(column)).filter(*criteria).scalar()
    return 0 if current is None else current + 1


def _task_attachments(tasks) -> list:
    return [url for task in tasks for url in (task.attachments or [])]


# ---------------------------------------------------------------- columns


@router.post("/{project_id}/columns", status_code=201)
def create_column(project_id: int, body: ColumnCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    project = get_project_for_member(db, project_id, user)
    require_editor(project, user)
    if not body.name:
        raise HTTPException(status_code=400, detail="Column name is required")

    column = BoardColumn(
        project_id=project.id,
        name=body.name,
        order=_next_order(db, BoardColumn.order, BoardColumn.project_id == project.id),
    )
    db.add(column)
    db.commit()
    db.refresh(column)
    return {"message": "Column created successfully", "column": ColumnOut.model_validate(column)}


@router.get("/columns/{column_id}")
def read_column(column_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    column = get_column(db, column_id, user, edit=False)
    return {"column": ColumnOut.model_validate(column)}


@router.put("/columns/{column_id}")
def update_column(column_id: int, body: ColumnUpdate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    column = get_column(db, column_id, user)
    if body.name:
        column.name = body.name
    if body.order is not None:
        column.order = body.order
        taken = db.query(BoardColumn.id).filter(
            BoardColumn.project_id == column.project_id,
            BoardColumn.order == body.order,
            BoardColumn.id != column.id,
        ).first()
        if taken is not None:
            logger.warning("Column %s moved to order %s in project %s which is already taken", column.id, body.order, column.project_id)
    db.commit()
    db.refresh(column)
    return {"message": "Column updated successfully", "column": ColumnOut.model_validate(column)}


@router.delete("/columns/{column_id}")
def delete_column(column_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    column = get_column(db, column_id, user)
    attachments = _task_attachments(column.tasks)
    db.delete(column)
    db.commit()
    for url in attachments:
        uploads.remove_upload(url)
    return {"message": "Column deleted successfully"}


# ---------------------------------------------------------------- tasks


@router.post("/columns/{column_id}/tasks", status_code=201)
def create_project_task(column_id: int, body: ProjectTaskCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    column = get_column(db, column_id, user)
    if not body.title:
        raise HTTPException(status_code=400, detail="Task title is required")

    task = ProjectTask(
        project_id=column.project_id,
        column_id=column.id,
        title=body.title,
        short_description=body.short_description,
        detailed_description=body.detailed_description,
        labels=resolve_labels(db, body.labels),
        attachments=check_attachments([], body.attachments or []),
        subtasks=build_subtasks([], body.subtasks or [], ProjectSubtask),
        email_reminder=body.email_reminder,
        order=_next_order(db, ProjectTask.order, ProjectTask.column_id == column.id),
    )
    db.add(task)
    db.commit()
    db.refresh(task)
    return {"message": "Task created successfully", "task": ProjectTaskOut.model_validate(task)}


@router.get("/tasks/{task_id}")
def read_project_task(task_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    task = get_project_task(db, task_id, user, edit=False)
    return {"task": ProjectTaskOut.model_validate(task)}


@router.put("/tasks/{task_id}")
def update_project_task(task_id: int, body: ProjectTaskUpdate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    task = get_project_task(db, task_id, user)
    provided = body.model_fields_set

    if body.title:
        task.title = body.title
    if "short_description" in provided:
        task.short_description = body.short_description
    if "detailed_description" in provided:
        task.detailed_description = body.detailed_description
    if body.labels is not None:
        task.labels = resolve_labels(db, body.labels)
    if body.attachments is not None:
        task.attachments = check_attachments(task.attachments, body.attachments)
    if body.subtasks is not None:
        task.subtasks = build_subtasks(task.subtasks, body.subtasks, ProjectSubtask)
    if "email_reminder" in provided:
        task.email_reminder = body.email_reminder
        task.reminder_sent_at = None

    db.commit()
    db.refresh(task)
    return {"message": "Task updated successfully", "task": ProjectTaskOut.model_validate(task)}


@router.delete("/tasks/{task_id}")
def delete_project_task(task_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    task = get_project_task(db, task_id, user)
    attachments = list(task.attachments or [])
    db.delete(task)
    db.commit()
    for url in attachments:
        uploads.remove_upload(url)
    return {"message": "Task deleted successfully"}


@router.patch("/tasks/{task_id}/move")
def move_project_task(task_id: int, body: TaskMove, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """
    Move a task to another column and/or overwrite its order.

    The order value is written as given; other tasks are not renumbered.
    A collision with another task's order in the target column is reported
    as orderConflict and logged, not prevented.
    """
    task = get_project_task(db, task_id, user)

    if body.column_id is not None and body.column_id != task.column_id:
        target = db.get(BoardColumn, body.column_id)
        if not target or target.project_id != task.project_id:
            raise HTTPException(status_code=404, detail="Column not found")
        task.column = target
    if body.new_order is not None:
        task.order = body.new_order
    db.flush()

    conflict = db.query(ProjectTask.id).filter(
        ProjectTask.column_id == task.column_id,
        ProjectTask.order == task.order,
        ProjectTask.id != task.id,
    ).first() is not None
    if conflict:
        logger.warning("Task %s moved to order %s in column %s which is already taken", task.id, task.order, task.column_id)

    db.commit()
    db.refresh(task)
    return {"message": "Task moved successfully", "task": ProjectTaskOut.model_validate(task), "orderConflict": conflict}


# ---------------------------------------------------------------- comments


@router.post("/tasks/{task_id}/comments")
def add_comment(task_id: int, body: CommentCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    # Viewers may comment too
    task = get_project_task(db, task_id, user, edit=False)
    if not body.content:
        raise HTTPException(status_code=400, detail="Comment content is required")

    task.comments.append(ProjectTaskComment(user_id=user.id, content=body.content))
    db.commit()
    db.refresh(task)
    return {"message": "Comment added successfully", "task": ProjectTaskOut.model_validate(task)}


@router.delete("/tasks/{task_id}/comments/{comment_id}")
def delete_comment(task_id: int, comment_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    task = get_project_task(db, task_id, user)
    comment = next((c for c in task.comments if c.id == comment_id), None)
    if not comment:
        raise HTTPException(status_code=404, detail="Comment not found")
    task.comments.remove(comment)
    db.commit()
    return {"message": "Comment deleted successfully"}


# ---------------------------------------------------------------- attachments


@router.post("/tasks/{task_id}/upload")
async def upload_attachment(
    task_id: int,
    file: UploadFile = File(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    task = get_project_task(db, task_id, user)
    file_url = await uploads.save_upload(file)
    task.attachments = list(task.attachments or []) + [file_url]
    db.commit()
    return {"message": "File uploaded successfully", "file": file_url, "attachments": task.attachments}


@router.delete("/tasks/{task_id}/attachments")
def delete_attachment(task_id: int, body: AttachmentDelete, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    task = get_project_task(db, task_id, user)
    if not body.attachment_url:
        raise HTTPException(status_code=400, detail="Attachment URL is required")
    if body.attachment_url not in (task.attachments or []):
        raise HTTPException(status_code=404, detail="Attachment not found")
    task.attachments = [a for a in task.attachments if a != body.attachment_url]
    db.commit()
    uploads.remove_upload(body.attachment_url)
    db.refresh(task)
    return {"message": "Attachment deleted successfully", "task": ProjectTaskOut.model_validate(task)}


# ---------------------------------------------------------------- projects


@router.get("")
def read_projects(
    search: Optional[str] = None,
    params: PageParams = Depends(page_params(100)),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    member_of = select(ProjectMember.project_id).where(ProjectMember.user_id == user.id)
    query = db.query(Project).filter(or_(Project.owner_id == user.id, Project.id.in_(member_of)))
    if search:
        query = query.filter(Project.name.ilike(f"%{search}%"))

    projects, pagination = paginate(query.order_by(Project.created_at.desc(), Project.id.desc()), params)
    return {"projects": [ProjectOut.model_validate(p) for p in projects], "pagination": pagination}


@router.get("/{project_id}")
def read_project(project_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """The board: project, then its columns in order, each with its tasks in order."""
    project = get_project_for_member(db, project_id, user)
    return {
        "project": ProjectOut.model_validate(project),
        "columns": [ColumnOut.model_validate(c) for c in project.columns],
    }


@router.post("", status_code=201)
def create_project(body: ProjectCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    if not body.name:
        raise HTTPException(status_code=400, detail="Project name is required")
    project = Project(name=body.name, description=body.description, owner_id=user.id)
    db.add(project)
    db.commit()
    db.refresh(project)
    return {"message": "Project created successfully", "project": ProjectOut.model_validate(project)}


@router.put("/{project_id}")
def update_project(project_id: int, body: ProjectUpdate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    project = get_project_for_owner(db, project_id, user)
    if body.name:
        project.name = body.name
    if "description" in body.model_fields_set:
        project.description = body.description
    db.commit()
    db.refresh(project)
    return {"message": "Project updated successfully", "project": ProjectOut.model_validate(project)}


@router.delete("/{project_id}")
def delete_project(project_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    project = get_project_for_owner(db, project_id, user)
    attachments = _task_attachments(t for c in project.columns for t in c.tasks)
    # Columns, tasks, comments and subtasks go with the project
    db.delete(project)
    db.commit()
    for url in attachments:
        uploads.remove_upload(url)
    return {"message": "Project deleted successfully"}


# ---------------------------------------------------------------- members


@router.post("/{project_id}/members")
def add_member(project_id: int, body: MemberAdd, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    project = get_project_for_member(db, project_id, user)
    require_editor(project, user)
    if not body.user_id:
        raise HTTPException(status_code=400, detail="User ID is required")
    role = _role_or_default(body.role)

    new_member = db.get(User, body.user_id)
    if not new_member:
        raise HTTPException(status_code=404, detail="User not found")
    if project.owner_id == new_member.id or project.member_for(new_member.id):
        raise HTTPException(status_code=400, detail="User is already a member")

    project.members.append(ProjectMember(user_id=new_member.id, role=role))
    db.commit()
    db.refresh(project)
    return {"message": "Member added successfully", "project": ProjectOut.model_validate(project)}


@router.post("/{project_id}/members/invite")
def invite_member(project_id: int, body: MemberInvite, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """
    Invite someone by email.

    Existing accounts are added right away. The invitation email is always
    attempted, and a delivery failure does not fail the request.
    """
    project = get_project_for_member(db, project_id, user)
    require_editor(project, user)
    if not body.email:
        raise HTTPException(status_code=400, detail="Email is required")
    email = body.email.strip().lower()
    role = _role_or_default(body.role)

    invitee = db.query(User).filter(User.email == email).first()
    if invitee:
        if project.owner_id == invitee.id or project.member_for(invitee.id):
            raise HTTPException(status_code=400, detail="User is already a member of this project")
        project.members.append(ProjectMember(user_id=invitee.id, role=role))
        db.commit()
        db.refresh(project)

    try:
        notifications.send_project_invitation(
            email,
            project.name,
            project.owner.name or user.name,
            role,
            project.id,
        )
    except Exception:
        logger.exception("Failed to send invitation email to %s", email)

    if invitee:
        message = "Member invited and added successfully"
    else:
        message = "Invitation email sent successfully. User will be added when they register."
    return {"message": message, "project": ProjectOut.model_validate(project)}


@router.put("/{project_id}/members/{member_id}/role")
def update_member_role(project_id: int, member_id: int, body: RoleUpdate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    project = get_project_for_member(db, project_id, user)
    require_editor(project, user)
    if not body.role or body.role not in MEMBER_ROLES:
        raise HTTPException(status_code=400, detail="Valid role (viewer or editor) is required")

    member = project.member_for(member_id)
    if not member:
        raise HTTPException(status_code=404, detail="Member not found")
    member.role = body.role
    db.commit()
    db.refresh(project)
    return {"message": "Member role updated successfully", "project": ProjectOut.model_validate(project)}


@router.delete("/{project_id}/members/{member_id}")
def remove_member(project_id: int, member_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    project = get_project_for_member(db, project_id, user)
    require_editor(project, user)
    member = project.member_for(member_id)
    if not member:
        raise HTTPException(status_code=404, detail="Member not found")
    project.members.remove(member)
    db.commit()
    db.refresh(project)
    return {"message": "Member removed successfully", "project": ProjectOut.model_validate(project)}
