import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt
from sqlalchemy.orm import Session

from database.database import get_db
from models.user import User, UserRole
from utils.state import State
from utils.token import decodeJWT


class JWTBearer(HTTPBearer):
    """Bearer scheme that returns the verified token payload."""

    def __init__(self, auto_error: bool = False):
        super(JWTBearer, self).__init__(auto_error=auto_error)

    async def __call__(self, request: Request) -> Dict[str, Any]:
        credentials: HTTPAuthorizationCredentials = await super(
            JWTBearer, self
        ).__call__(request)
        if not credentials or not credentials.credentials:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token missing, user not authenticated",
            )
        payload = decodeJWT(credentials.credentials)
        if not payload or "id" not in payload:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired token",
            )
        return payload


def create_access_token(subject: Dict[str, Any], expires_delta: timedelta = None) -> str:
    if expires_delta is not None:
        expires_at = datetime.now(timezone.utc) + expires_delta
    else:
        expires_at = datetime.now(timezone.utc) + timedelta(
            minutes=int(os.getenv("JWT_ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))
        )
    to_encode = {**subject, "exp": expires_at}
    encoded_jwt = jwt.encode(
        to_encode,
        os.getenv("JWT_SECRET_KEY"),
        algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
    )
    return encoded_jwt


def token_subject(user: User) -> Dict[str, Any]:
    return {
        "id": user.user_id,
        "role": user.role,
        "name": user.name,
        "email": user.email,
    }


def get_current_user(
    payload: Dict[str, Any] = Depends(JWTBearer()),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the token to the stored account; the stored record wins over the token snapshot."""
    user = db.query(User).filter(User.user_id == payload["id"]).first()
    if not user:
        State.logger.warning(f"Token presented for unknown account {payload['id']}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def require_roles(*roles: UserRole):
    allowed = {role.value for role in roles}
    audience = " or ".join(f"{role.value.lower()}s" for role in roles)

    def dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Only {audience} can access this",
            )
        return user

    return dependency
