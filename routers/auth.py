import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session
from starlette.requests import Request

import auth_utils
from config import ADMIN_EMAILS
from dependencies import get_db, get_current_user, limiter
from models import User, LoginHistory
from schemas import GoogleSignIn, UserBrief

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"]
)


@router.post("/google")
@limiter.limit("10/minute")  # Brute force protection
def google_sign_in(request: Request, response: Response, body: GoogleSignIn, db: Session = Depends(get_db)):
    """
    Signs a user in with a Google ID token and issues the session cookie.

    The local account is created on first sign-in and refreshed with the
    latest name, picture and Google id afterwards. Every successful sign-in
    is appended to the login history.

    Args:
        request (Request): Needed for IP based rate limiting and the audit row.
        response (Response): Receives the HTTP-only session cookie.
        body (GoogleSignIn): The ID token from the Google client library.
        db (Session): Database session.

    Returns:
        dict: {"message": ..., "user": {...}}

    Raises:
        HTTPException(400): Token missing, invalid, or without an email.
        HTTPException(403): The account has been locked by an admin.
    """
    if not body.token:
        raise HTTPException(status_code=400, detail="Google token is required")
    try:
        identity = auth_utils.verify_google_token(body.token)
    except auth_utils.IdentityError as e:
        logger.warning("Rejected Google token: %s", e)
        raise HTTPException(status_code=400, detail="Invalid Google token")

    email = (identity.get("email") or "").strip().lower()
    if not email:
        raise HTTPException(status_code=400, detail="Email not provided by Google")

    user = db.query(User).filter(User.email == email).first()
    if not user:
        user = User(
            email=email,
            name=identity.get("name") or email.split("@")[0],
            picture=identity.get("picture"),
            google_id=identity.get("sub"),
            role="admin" if email in ADMIN_EMAILS else "user",
            is_active=True,
        )
        db.add(user)
        logger.info("Created account for %s", email)
    else:
        user.name = identity.get("name") or user.name
        user.picture = identity.get("picture") or user.picture
        user.google_id = identity.get("sub") or user.google_id
    db.commit()
    db.refresh(user)

    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is locked")

    db.add(LoginHistory(
        user_id=user.id,
        ip_address=request.client.host if request.client else "unknown",
        user_agent=request.headers.get("user-agent") or "unknown",
    ))
    db.commit()

    auth_utils.set_session_cookie(response, auth_utils.create_session_token(user.id))
    logger.info("User %s signed in", user.email)
    return {"message": "Login successful", "user": UserBrief.model_validate(user)}


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    return {"user": UserBrief.model_validate(user)}


@router.post("/logout")
def logout(response: Response):
    auth_utils.clear_session_cookie(response)
    return {"message": "Logout successful"}
