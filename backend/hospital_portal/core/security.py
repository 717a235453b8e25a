"""
Credential checks and bearer tokens.
Patients log in with registry ID + PIN (bcrypt hash kept on the record);
clinicians log in with a shared passphrase that maps to a role.
"""
import hmac
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from .config import settings
from .permissions import HCP_ROLES, UserRole, has_permission

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"

_bearer = HTTPBearer(auto_error=False)


@dataclass
class Principal:
    subject: str
    role: UserRole
    patient_id: Optional[str] = None

    @property
    def is_patient(self) -> bool:
        return self.role == UserRole.PATIENT


def hash_pin(pin: str) -> str:
    return bcrypt.hashpw(pin.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_pin(pin: str, pin_hash: str) -> bool:
    if not pin or not pin_hash:
        return False
    try:
        return bcrypt.checkpw(pin.encode("utf-8"), pin_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored PIN hash is malformed")
        return False


def authenticate_hcp(passphrase: str) -> Optional[UserRole]:
    """Role for a clinician passphrase, or None. Comparison is constant-time."""
    if not passphrase:
        return None
    for secret, role_name in settings.HCP_ACCESS_KEYS.items():
        if secret and hmac.compare_digest(passphrase.encode("utf-8"), secret.encode("utf-8")):
            try:
                role = UserRole(role_name)
            except ValueError:
                logger.warning("Ignoring access key for unknown role %r", role_name)
                continue
            if role in HCP_ROLES:
                return role
    return None


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


def issue_token(principal: Principal) -> str:
    claims = {"sub": principal.subject, "role": principal.role.value}
    if principal.patient_id:
        claims["pid"] = principal.patient_id
    return create_access_token(claims)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> Principal:
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise unauthorized
    payload = decode_access_token(credentials.credentials)
    if payload is None or payload.get("type") != "access":
        raise unauthorized
    try:
        role = UserRole(payload.get("role"))
    except ValueError:
        raise unauthorized
    return Principal(subject=payload.get("sub", ""), role=role, patient_id=payload.get("pid"))


def require_role(*roles: UserRole):
    """Dependency factory restricting an endpoint to the given roles."""
    def checker(current_user: Principal = Depends(get_current_user)) -> Principal:
        if current_user.role not in roles:
            raise HTTPException(status_code=403, detail="Insufficient role for this operation")
        return current_user
    return checker


def require_permission(permission: str):
    def checker(current_user: Principal = Depends(get_current_user)) -> Principal:
        if not has_permission(current_user.role, permission):
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return current_user
    return checker
