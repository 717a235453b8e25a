"""Clinical report and condition-screening endpoints."""
import logging
from typing import Dict, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..core.permissions import PERM_GENERATE_REPORTS
from ..core.security import Principal, get_current_user, require_permission
from ..services.condition_detector import condition_detector
from ..services.registry import PatientRegistry, RegistryError, get_registry
from ..services.report_service import ClinicalReportService, report_service
from .patients import load_patient_for, raise_for_registry_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/patients", tags=["reports"])


class ReportResponse(BaseModel):
    patient_id: str
    mode: str  # "ai" or "fallback"
    conditions: List[str]
    report: str


class ConditionsResponse(BaseModel):
    patient_id: str
    conditions: List[str]
    flags: Dict[str, bool]


def get_report_service() -> ClinicalReportService:
    return report_service


@router.post("/{patient_id}/report", response_model=ReportResponse)
def generate_report(
    patient_id: str,
    attach: bool = True,
    registry: PatientRegistry = Depends(get_registry),
    service: ClinicalReportService = Depends(get_report_service),
    current_user: Principal = Depends(require_permission(PERM_GENERATE_REPORTS)),
):
    """
    Render the seven-section clinical report.
    The language model is tried first; on failure the template report is
    returned with mode "fallback". With ``attach`` the text is stored on the
    latest visit.
    """
    patient = load_patient_for(current_user, patient_id, registry)
    rendered = service.render(patient)
    if attach:
        try:
            registry.attach_report(patient_id, rendered.text, rendered.mode.value)
        except RegistryError as exc:
            raise_for_registry_error(exc)
    return ReportResponse(
        patient_id=patient_id,
        mode=rendered.mode.value,
        conditions=[tag.value for tag in rendered.conditions],
        report=rendered.text,
    )


@router.get("/{patient_id}/conditions", response_model=ConditionsResponse)
def get_conditions(
    patient_id: str,
    registry: PatientRegistry = Depends(get_registry),
    current_user: Principal = Depends(get_current_user),
):
    patient = load_patient_for(current_user, patient_id, registry)
    tags = condition_detector.detect(patient.current_encounter())
    return ConditionsResponse(
        patient_id=patient_id,
        conditions=[tag.value for tag in tags],
        flags=condition_detector.describe(tags),
    )
