from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import ValidationError

from ..core.permissions import (
    PERM_MANAGE_PATIENTS,
    PERM_RESET_REGISTRY,
    PERM_VIEW_ALL_PATIENTS,
    UserRole,
    has_permission,
)
from ..core.security import Principal, get_current_user, require_permission, require_role
from ..models.patient import (
    CamelModel,
    LabResults,
    Medication,
    Patient,
    PatientProfile,
    PatientRegistration,
    PatientStatus,
    Sex,
    SocialHistory,
    VitalSigns,
)
from ..services.registry import (
    PatientNotFoundError,
    PatientRegistry,
    RegistrationError,
    RegistryError,
    VisitNotFoundError,
    get_registry,
)

router = APIRouter(prefix="/patients", tags=["patients"])


class RegisterRequest(PatientRegistration):
    pin: str


class PatientUpdate(CamelModel):
    full_name: Optional[str] = None
    age: Optional[int] = None
    sex: Optional[Sex] = None
    height: Optional[str] = None
    weight: Optional[str] = None
    baseline_vitals: Optional[VitalSigns] = None
    baseline_labs: Optional[LabResults] = None
    social_history: Optional[SocialHistory] = None
    family_history: Optional[str] = None
    medications: Optional[List[Medication]] = None
    complaints: Optional[str] = None
    medical_history: Optional[str] = None
    treatment_context: Optional[str] = None
    other_findings: Optional[str] = None


class StatusUpdate(CamelModel):
    status: PatientStatus


class BulkDeleteRequest(CamelModel):
    ids: List[str]


class BulkDeleteResponse(CamelModel):
    deleted: int


def load_patient_for(current_user: Principal, patient_id: str, registry: PatientRegistry) -> Patient:
    """Patients may only read their own record; clinicians may read any."""
    if current_user.role == UserRole.PATIENT:
        if current_user.patient_id != patient_id:
            raise HTTPException(status_code=403, detail="Patients may only access their own record")
    elif not has_permission(current_user.role, PERM_VIEW_ALL_PATIENTS):
        raise HTTPException(status_code=403, detail="Insufficient permissions to access patient data")
    try:
        return registry.get(patient_id)
    except PatientNotFoundError:
        raise HTTPException(status_code=404, detail="Patient not found")


def raise_for_registry_error(exc: RegistryError):
    if isinstance(exc, PatientNotFoundError):
        raise HTTPException(status_code=404, detail="Patient not found")
    if isinstance(exc, VisitNotFoundError):
        raise HTTPException(status_code=404, detail=str(exc))
    raise HTTPException(status_code=400, detail=str(exc))


@router.post(
    "/",
    response_model=PatientProfile,
    status_code=status.HTTP_201_CREATED,
)
def register_patient(
    req: RegisterRequest,
    registry: PatientRegistry = Depends(get_registry),
    _hcp=Depends(require_permission(PERM_MANAGE_PATIENTS)),
):
    payload = PatientRegistration.model_validate(req.model_dump(exclude={"pin"}))
    try:
        return registry.register(payload, req.pin)
    except RegistrationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.get("/me", response_model=PatientProfile)
def get_my_record(
    registry: PatientRegistry = Depends(get_registry),
    current_user: Principal = Depends(require_role(UserRole.PATIENT)),
):
    return load_patient_for(current_user, current_user.patient_id, registry)


@router.get("/search", response_model=List[PatientProfile])
def search_patients(
    q: str = Query("", description="ID or name substring"),
    registry: PatientRegistry = Depends(get_registry),
    _hcp=Depends(require_permission(PERM_VIEW_ALL_PATIENTS)),
):
    """Search patients by ID or name."""
    return registry.search(q)


@router.post("/delete", response_model=BulkDeleteResponse)
def delete_patients(
    req: BulkDeleteRequest,
    registry: PatientRegistry = Depends(get_registry),
    _hcp=Depends(require_permission(PERM_MANAGE_PATIENTS)),
):
    return BulkDeleteResponse(deleted=registry.delete_many(req.ids))


@router.delete("/", status_code=status.HTTP_204_NO_CONTENT)
def reset_registry(
    registry: PatientRegistry = Depends(get_registry),
    _engineer=Depends(require_permission(PERM_RESET_REGISTRY)),
):
    """Purge every patient record."""
    registry.reset()


@router.get("/", response_model=List[PatientProfile])
def list_patients(
    status_filter: Optional[PatientStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    registry: PatientRegistry = Depends(get_registry),
    _hcp=Depends(require_permission(PERM_VIEW_ALL_PATIENTS)),
):
    patients = registry.list_patients()
    if status_filter is not None:
        patients = [p for p in patients if p.status == status_filter]
    return patients[skip:skip + limit]


@router.get("/{patient_id}", response_model=PatientProfile)
def get_patient(
    patient_id: str,
    registry: PatientRegistry = Depends(get_registry),
    current_user: Principal = Depends(get_current_user),
):
    return load_patient_for(current_user, patient_id, registry)


@router.put("/{patient_id}", response_model=PatientProfile)
def update_patient(
    patient_id: str,
    req: PatientUpdate,
    registry: PatientRegistry = Depends(get_registry),
    _hcp=Depends(require_permission(PERM_MANAGE_PATIENTS)),
):
    try:
        patient = registry.get(patient_id)
        changes = req.model_dump(exclude_unset=True)
        updated = Patient.model_validate({**patient.model_dump(), **changes})
        return registry.update(updated)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False))
    except RegistryError as exc:
        raise_for_registry_error(exc)


@router.patch("/{patient_id}/status", response_model=PatientProfile)
def update_status(
    patient_id: str,
    req: StatusUpdate,
    registry: PatientRegistry = Depends(get_registry),
    _hcp=Depends(require_permission(PERM_MANAGE_PATIENTS)),
):
    try:
        return registry.set_status(patient_id, req.status)
    except RegistryError as exc:
        raise_for_registry_error(exc)
