from typing import List, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

import uploads
from models import Label
from schemas import SubtaskIn


def resolve_labels(db: Session, label_ids: Optional[List[int]]) -> List[Label]:
    if not label_ids:
        return []
    unique_ids = list(dict.fromkeys(label_ids))
    labels = db.query(Label).filter(Label.id.in_(unique_ids)).all()
    if len(labels) != len(unique_ids):
        raise HTTPException(status_code=400, detail="Unknown label id")
    by_id = {label.id: label for label in labels}
    return [by_id[i] for i in unique_ids]


def build_subtasks(current, items: List[SubtaskIn], model_cls) -> list:
    """
    Replace a subtask list with the submitted one.

    Entries carrying the id of an existing subtask update it in place; the
    rest are created. Subtasks left out of the list are dropped.
    """
    by_id = {s.id: s for s in current}
    result = []
    for position, item in enumerate(items):
        subtask = by_id.get(item.id) if item.id is not None else None
        if subtask is None:
            subtask = model_cls()
        subtask.title = item.title
        subtask.completed = item.completed
        subtask.order = item.order if item.order is not None else position
        result.append(subtask)
    return result


def check_attachments(current: Optional[List[str]], submitted: List[str]) -> List[str]:
    """
    Validate an attachment list sent with a create or update.

    Stored files can only enter a task through its upload endpoint, so any
    /uploads/ URL must already be on the task. External links pass through.
    """
    known = set(current or [])
    for url in submitted:
        if url.startswith(uploads.URL_PREFIX) and url not in known:
            raise HTTPException(status_code=400, detail="Unknown attachment; upload files through the task")
    return list(submitted)
