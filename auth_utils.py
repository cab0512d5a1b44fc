from datetime import datetime, timedelta, timezone
from typing import Optional

import requests
from jose import jwt, JWTError
from fastapi import Response

from config import (
    SECRET_KEY,
    ALGORITHM,
    SESSION_EXPIRE_DAYS,
    SESSION_COOKIE_NAME,
    COOKIE_DOMAIN,
    IS_PRODUCTION,
    GOOGLE_CLIENT_ID,
    GOOGLE_CERTS_URL,
    GOOGLE_ISSUERS,
)


class IdentityError(Exception):
    """The identity provider token could not be verified."""


# --- Session token ---
def create_session_token(user_id: int, expires_in: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_in or timedelta(days=SESSION_EXPIRE_DAYS))
    return jwt.encode({"sub": str(user_id), "exp": expire}, SECRET_KEY, algorithm=ALGORITHM)


def decode_session_token(token: str) -> int:
    """Return the user id in a session token. Raises JWTError when invalid or expired."""
    payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    sub = payload.get("sub")
    if sub is None:
        raise JWTError("Token has no subject")
    try:
        return int(sub)
    except ValueError:
        raise JWTError("Token subject is not a user id")


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=SESSION_EXPIRE_DAYS * 24 * 60 * 60,
        path="/",
        domain=COOKIE_DOMAIN if IS_PRODUCTION else None,
        httponly=True,
        secure=IS_PRODUCTION,
        samesite="none" if IS_PRODUCTION else "lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=SESSION_COOKIE_NAME,
        path="/",
        domain=COOKIE_DOMAIN if IS_PRODUCTION else None,
        httponly=True,
        secure=IS_PRODUCTION,
        samesite="none" if IS_PRODUCTION else "lax",
    )


# --- Google Sign-In ---
def fetch_google_certs() -> dict:
    resp = requests.get(GOOGLE_CERTS_URL, timeout=10)
    resp.raise_for_status()
    return resp.json()


def verify_google_token(token: str) -> dict:
    """
    Verify a Google ID token against Google's published signing keys.

    Args:
        token (str): The ID token posted by the client after Google Sign-In.

    Returns:
        dict: email, name, picture and sub (the Google account id).

    Raises:
        IdentityError: On a bad signature, wrong audience or issuer, or expiry.
    """
    try:
        claims = jwt.decode(
            token,
            fetch_google_certs(),
            algorithms=["RS256"],
            audience=GOOGLE_CLIENT_ID,
            issuer=GOOGLE_ISSUERS,
            options={"verify_at_hash": False},
        )
    except JWTError as e:
        raise IdentityError(str(e)) from e
    return {
        "email": claims.get("email"),
        "name": claims.get("name"),
        "picture": claims.get("picture"),
        "sub": claims.get("sub"),
    }
