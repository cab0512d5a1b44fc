import math
from typing import Optional

from fastapi import Depends, HTTPException, Header, Query, Request
from jose import JWTError
from sqlalchemy.orm import Session
from slowapi import Limiter
from slowapi.util import get_remote_address

from auth_utils import decode_session_token
from config import SESSION_COOKIE_NAME
from database import SessionLocal
from models import User


# --- Database Dependency ---
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# --- Auth Dependencies ---
def _session_token(request: Request, authorization: Optional[str]) -> Optional[str]:
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if token:
        return token
    # Header fallback for non-browser clients: "Bearer <token>"
    if authorization:
        parts = authorization.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1]
    return None


def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> User:
    token = _session_token(request, authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Authentication required")
    try:
        user_id = decode_session_token(token)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")

    user = db.get(User, user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


# --- Pagination ---
class PageParams:
    def __init__(self, page: int, limit: int):
        self.page = page
        self.limit = limit

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_params(default_limit: int = 20):
    """Build the page/limit query dependency shared by every list endpoint."""
    def dependency(page: int = Query(1, ge=1), limit: int = Query(default_limit, ge=1, le=500)) -> PageParams:
        return PageParams(page, limit)
    return dependency


def paginate(query, params: PageParams):
    """Run a SQLAlchemy query for one page. Returns (items, pagination block)."""
    total = query.order_by(None).count()
    items = query.offset(params.offset).limit(params.limit).all()
    return items, {
        "page": params.page,
        "limit": params.limit,
        "total": total,
        "pages": math.ceil(total / params.limit),
    }


# --- Rate Limiter ---
limiter = Limiter(key_func=get_remote_address)
