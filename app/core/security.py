# app/core/security.py
from __future__ import annotations

import time
from typing import Any, Dict, Optional, get_args

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

import jwt  # PyJWT

from app.core.config import settings
from app.core.state import AppState, get_state
from app.schemas.claim import Session, UserRole


def _require_jwt_secret():
    if not settings.JWT_SECRET or len(settings.JWT_SECRET) < 16:
        raise RuntimeError(
            "JWT_SECRET is not set or too short. Set a strong secret (>=16 chars) in environment."
        )


# ---------- JWT creation & validation ----------

def create_access_token(
    session: Session,
    expires_minutes: Optional[int] = None,
) -> str:
    """
    Creates a signed JWT carrying the session's name (sub) and role.
    The token only identifies the active session; it grants nothing on its own.
    """
    _require_jwt_secret()

    now = int(time.time())
    minutes = expires_minutes if expires_minutes is not None else settings.ACCESS_TOKEN_EXPIRE_MINUTES
    exp = now + int(minutes) * 60

    payload: Dict[str, Any] = {
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
        "iat": now,
        "nbf": now,
        "exp": exp,
        "sub": session.name,
        "role": session.role,
        "typ": "access",
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


bearer_scheme = HTTPBearer(auto_error=False)


def decode_and_verify_token(token: str) -> Dict[str, Any]:
    """
    Decodes JWT and validates signature + standard claims.
    Raises HTTP 401 on failure.
    """
    _require_jwt_secret()
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            issuer=settings.JWT_ISSUER,
            audience=settings.JWT_AUDIENCE,
            options={"require": ["exp", "iat", "sub", "iss", "aud"]},
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired.",
        )
    except jwt.InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token.",
        )
    if payload.get("typ") != "access" or payload.get("role") not in get_args(UserRole):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type.",
        )
    return payload


# ---------- Session / role gate ----------

def session_auth(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    state: AppState = Depends(get_state),
) -> Session:
    """
    FastAPI dependency for endpoints that need a logged-in user.
    Requires: Authorization: Bearer <token>, issued for the session that is still active.
    """
    if not creds or not creds.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token.",
        )
    payload = decode_and_verify_token(creds.credentials)
    session = Session(name=payload["sub"], role=payload["role"])
    if state.gate.current != session:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session has ended. Log in again.",
        )
    return session


def employee_auth(session: Session = Depends(session_auth)) -> Session:
    if session.role != "employee":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Filing is available to employees only.",
        )
    return session


def admin_auth(session: Session = Depends(session_auth)) -> Session:
    if session.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Finance administrator access required.",
        )
    return session
