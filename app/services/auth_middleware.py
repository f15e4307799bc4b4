from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.models.user import User
from app.models.user_session import UserSession
from app.services.auth_service import decode_access_token

NOT_AUTHENTICATED = "Not authenticated"


def _get_auth_context(token: str, db: Session):
    payload = decode_access_token(token)
    if payload is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")

    user_id = payload.get("sub")
    jti = payload.get("jti")
    if not user_id or not jti or payload.get("type") != "access":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")

    session = db.query(UserSession).filter(
        UserSession.jti == jti,
        UserSession.is_active == True
    ).first()
    if not session:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session expired or logged out")

    user = db.query(User).filter(User.id == int(user_id), User.is_active == True).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found or inactive")

    return {"user": user, "session": session, "payload": payload}


def _require_token(credentials: Optional[HTTPAuthorizationCredentials]) -> str:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=NOT_AUTHENTICATED)
    return credentials.credentials


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(settings.bearer_scheme),
    db: Session = Depends(get_db)
):
    token = _require_token(credentials)
    auth_context = _get_auth_context(token, db)
    return auth_context["user"]


def get_current_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(settings.bearer_scheme),
    db: Session = Depends(get_db)
):
    token = _require_token(credentials)
    context = _get_auth_context(token, db)
    context["token"] = token
    context["db"] = db
    return context
