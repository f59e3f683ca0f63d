from functools import lru_cache
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.database import get_db
from app.core.security import decode_access_token
from app.models.user import User
from app.services.phone_verification_service import PhoneVerificationService
from app.services.sms_service import SmsGateway, build_sms_gateway

# OAuth2 password bearer scheme - extracts token from Authorization header
# auto_error=False so a missing token gets the same 401 body as a bad one
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/login", auto_error=False)


def _user_from_token(token: Optional[str], db: Session) -> Optional[User]:
    if not token:
        return None

    # Returns None if token is invalid, expired, or tampered with
    payload = decode_access_token(token)
    if payload is None:
        return None

    # JWT standard uses 'sub' (subject) claim for user identifier
    user_id = payload.get("sub")
    if not user_id:
        return None

    return db.query(User).filter(User.id == str(user_id)).first()


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    """Require a valid bearer token and return its user (401 otherwise)."""
    user = _user_from_token(token, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def require_verified_email(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.verified:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Email verification required"
        )
    return current_user


@lru_cache
def get_sms_gateway() -> SmsGateway:
    # Built once per process; tests replace it through dependency_overrides
    return build_sms_gateway(settings)


def get_phone_verification_service(
    gateway: SmsGateway = Depends(get_sms_gateway)
) -> PhoneVerificationService:
    return PhoneVerificationService(gateway, settings.phone_code_ttl)
