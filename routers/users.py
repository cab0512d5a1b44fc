from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from dependencies import get_db, get_current_user, page_params, paginate, PageParams
from models import User, LoginHistory
from schemas import ProfileUpdate, UserOut, UserBrief, LoginHistoryOut

router = APIRouter(
    prefix="/users",
    tags=["users"]
)


@router.get("/profile")
def get_profile(user: User = Depends(get_current_user)):
    return {"user": UserOut.model_validate(user)}


@router.put("/profile")
def update_profile(body: ProfileUpdate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    if body.name:
        user.name = body.name
    if body.picture:
        user.picture = body.picture
    db.commit()
    db.refresh(user)
    return {"message": "Profile updated successfully", "user": UserBrief.model_validate(user)}


@router.get("/login-history")
def get_login_history(
    params: PageParams = Depends(page_params()),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    query = db.query(LoginHistory).filter(LoginHistory.user_id == user.id).order_by(LoginHistory.login_at.desc(), LoginHistory.id.desc())
    history, pagination = paginate(query, params)
    return {
        "history": [LoginHistoryOut.model_validate(h) for h in history],
        "pagination": pagination,
    }
