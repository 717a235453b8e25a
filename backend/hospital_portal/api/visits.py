"""Visit endpoints: follow-up visits, discharge and final diagnosis."""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import Field

from ..core.permissions import PERM_RECORD_VISITS
from ..core.security import Principal, get_current_user, require_permission
from ..models.patient import CamelModel, LabResults, PatientProfile, VitalSigns, Visit
from ..services.diagnosis import parse_report_diagnosis
from ..services.registry import PatientRegistry, RegistryError, VisitNotFoundError, get_registry
from .patients import load_patient_for, raise_for_registry_error

router = APIRouter(prefix="/patients", tags=["visits"])


class VisitCreate(CamelModel):
    summary: str = "Follow-up Visit"
    complaints: Optional[str] = None
    vitals: VitalSigns = Field(default_factory=VitalSigns)
    lab_results: Optional[LabResults] = None


class DischargeRequest(CamelModel):
    improved: bool
    lifestyle_modifications: Optional[str] = None
    discharge_vitals: Optional[VitalSigns] = None
    discharge_labs: Optional[LabResults] = None
    discharge_instructions: Optional[str] = None
    follow_up_plan: Optional[str] = None


class DiagnosisUpdate(CamelModel):
    final_diagnosis: str = Field(min_length=1)
    diagnosis_type: str = "manual"  # "ai" or "manual"
    diagnosis_confidence: Optional[int] = Field(None, ge=0, le=100)
    differential_diagnosis: Optional[str] = None
    treatment_plan: Optional[str] = None


@router.post("/{patient_id}/visits", response_model=Visit, status_code=status.HTTP_201_CREATED)
def add_visit(
    patient_id: str,
    req: VisitCreate,
    registry: PatientRegistry = Depends(get_registry),
    _hcp=Depends(require_permission(PERM_RECORD_VISITS)),
):
    try:
        return registry.new_visit(
            patient_id,
            summary=req.summary,
            vitals=req.vitals,
            lab_results=req.lab_results,
            complaints=req.complaints,
        )
    except RegistryError as exc:
        raise_for_registry_error(exc)


@router.get("/{patient_id}/visits", response_model=List[Visit])
def list_visits(
    patient_id: str,
    registry: PatientRegistry = Depends(get_registry),
    current_user: Principal = Depends(get_current_user),
):
    """Visit history, oldest first. Patients may read their own."""
    return load_patient_for(current_user, patient_id, registry).visits


@router.post("/{patient_id}/discharge", response_model=PatientProfile)
def discharge_patient(
    patient_id: str,
    req: DischargeRequest,
    registry: PatientRegistry = Depends(get_registry),
    _hcp=Depends(require_permission(PERM_RECORD_VISITS)),
):
    try:
        return registry.discharge(
            patient_id,
            improved=req.improved,
            lifestyle_modifications=req.lifestyle_modifications,
            discharge_vitals=req.discharge_vitals,
            discharge_labs=req.discharge_labs,
            discharge_instructions=req.discharge_instructions,
            follow_up_plan=req.follow_up_plan,
        )
    except RegistryError as exc:
        raise_for_registry_error(exc)


@router.put("/{patient_id}/visits/{visit_id}/diagnosis", response_model=Visit)
def set_diagnosis(
    patient_id: str,
    visit_id: str,
    req: DiagnosisUpdate,
    registry: PatientRegistry = Depends(get_registry),
    _hcp=Depends(require_permission(PERM_RECORD_VISITS)),
):
    try:
        return registry.set_diagnosis(patient_id, visit_id, **req.model_dump())
    except RegistryError as exc:
        raise_for_registry_error(exc)


class AIDiagnosisResponse(CamelModel):
    visit: Visit
    primary: str
    differentials: str
    treatment: str
    confidence: int


@router.post("/{patient_id}/visits/{visit_id}/diagnosis/ai", response_model=AIDiagnosisResponse)
def derive_ai_diagnosis(
    patient_id: str,
    visit_id: str,
    registry: PatientRegistry = Depends(get_registry),
    _hcp=Depends(require_permission(PERM_RECORD_VISITS)),
):
    """
    Read the diagnosis out of the clinical report stored on the visit and
    record it as the visit's final diagnosis with type "ai".
    """
    try:
        patient = registry.get(patient_id)
    except RegistryError as exc:
        raise_for_registry_error(exc)
    visit = next((v for v in patient.visits if v.id == visit_id), None)
    if visit is None:
        raise_for_registry_error(VisitNotFoundError(patient_id, visit_id))
    if not visit.ai_report:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Visit has no clinical report; generate one first",
        )

    parsed = parse_report_diagnosis(visit.ai_report)
    try:
        updated = registry.set_diagnosis(
            patient_id,
            visit_id,
            final_diagnosis=parsed.primary,
            diagnosis_type="ai",
            diagnosis_confidence=parsed.confidence,
            differential_diagnosis=parsed.differentials,
            treatment_plan=parsed.treatment,
        )
    except RegistryError as exc:
        raise_for_registry_error(exc)
    return AIDiagnosisResponse(visit=updated, **parsed.to_dict())
