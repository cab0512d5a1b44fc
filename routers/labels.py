from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from dependencies import get_db, require_admin, page_params, paginate, PageParams
from models import Label, LABEL_TYPES, User
from schemas import LabelCreate, LabelUpdate, LabelOut

router = APIRouter(
    prefix="/labels",
    tags=["labels"]
)


def get_label(db: Session, label_id: int) -> Label:
    label = db.get(Label, label_id)
    if not label:
        raise HTTPException(status_code=404, detail="Label not found")
    return label


def check_label_type(label_type: Optional[str]):
    if label_type not in LABEL_TYPES:
        raise HTTPException(status_code=400, detail=f"Invalid label type. Must be one of: {', '.join(LABEL_TYPES)}")


@router.get("")
def read_labels(
    type: Optional[str] = None,
    params: PageParams = Depends(page_params(100)),
    db: Session = Depends(get_db),
):
    query = db.query(Label)
    if type:
        query = query.filter(Label.type == type)
    labels, pagination = paginate(query.order_by(Label.type, Label.name), params)
    return {"labels": [LabelOut.model_validate(l) for l in labels], "pagination": pagination}


@router.get("/{label_id}")
def read_label(label_id: int, db: Session = Depends(get_db)):
    return {"label": LabelOut.model_validate(get_label(db, label_id))}


@router.post("", status_code=201)
def create_label(body: LabelCreate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    if not body.name or not body.color or not body.type:
        raise HTTPException(status_code=400, detail="Name, color, and type are required")
    check_label_type(body.type)

    label = Label(
        name=body.name,
        color=body.color,
        type=body.type,
        icon=body.icon or "mdi:label",
        description=body.description,
        is_default=bool(body.is_default),
    )
    db.add(label)
    db.commit()
    db.refresh(label)
    return {"message": "Label created successfully", "label": LabelOut.model_validate(label)}


@router.put("/{label_id}")
def update_label(label_id: int, body: LabelUpdate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    label = get_label(db, label_id)
    if body.type is not None:
        check_label_type(body.type)
        label.type = body.type
    if body.name:
        label.name = body.name
    if body.color:
        label.color = body.color
    if body.icon:
        label.icon = body.icon
    if "description" in body.model_fields_set:
        label.description = body.description
    if body.is_default is not None:
        label.is_default = body.is_default

    db.commit()
    db.refresh(label)
    return {"message": "Label updated successfully", "label": LabelOut.model_validate(label)}


@router.delete("/{label_id}")
def delete_label(label_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    label = get_label(db, label_id)
    if label.is_default:
        raise HTTPException(status_code=400, detail="Cannot delete default labels")
    # Association rows in task_labels / project_task_labels go with it
    db.delete(label)
    db.commit()
    return {"message": "Label deleted successfully"}
