"""Authentication endpoints: patient ID + PIN login, clinician passphrase login, me."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from ..core.permissions import UserRole
from ..core.security import (
    INVALID_CREDENTIALS,
    Principal,
    authenticate_hcp,
    get_current_user,
    issue_token,
    verify_pin,
)
from ..models.patient import CamelModel
from ..services.registry import PatientRegistry, get_registry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


# ── Request / Response schemas ──────────────────────────────────────────────

class PatientLoginRequest(CamelModel):
    patient_id: str
    pin: str


class HCPLoginRequest(BaseModel):
    passphrase: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: str
    patient_id: Optional[str] = None


class PrincipalResponse(BaseModel):
    subject: str
    role: str
    patient_id: Optional[str] = None


def _invalid_credentials() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=INVALID_CREDENTIALS,
        headers={"WWW-Authenticate": "Bearer"},
    )


# ── Endpoints ────────────────────────────────────────────────────────────────

@router.post("/patient/login", response_model=TokenResponse)
def patient_login(req: PatientLoginRequest, registry: PatientRegistry = Depends(get_registry)):
    """Patient portal login. Unknown ID and wrong PIN are indistinguishable."""
    patient = registry.find(req.patient_id.strip().upper())
    if patient is None or not verify_pin(req.pin, patient.pin_hash):
        logger.info("Rejected patient login for %s", req.patient_id)
        raise _invalid_credentials()

    principal = Principal(subject=patient.id, role=UserRole.PATIENT, patient_id=patient.id)
    return TokenResponse(
        access_token=issue_token(principal),
        role=principal.role.value,
        patient_id=patient.id,
    )


@router.post("/hcp/login", response_model=TokenResponse)
def hcp_login(req: HCPLoginRequest):
    """Clinician login with a shared access passphrase."""
    role = authenticate_hcp(req.passphrase)
    if role is None:
        logger.info("Rejected clinician login")
        raise _invalid_credentials()

    principal = Principal(subject=f"hcp:{role.value}", role=role)
    return TokenResponse(access_token=issue_token(principal), role=role.value)


@router.get("/me", response_model=PrincipalResponse)
def get_me(current_user: Principal = Depends(get_current_user)):
    """Return the identity carried by the current token."""
    return PrincipalResponse(
        subject=current_user.subject,
        role=current_user.role.value,
        patient_id=current_user.patient_id,
    )
