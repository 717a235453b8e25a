from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..core.permissions import PERM_VIEW_INSIGHTS
from ..core.security import require_permission
from ..services.insights import insights_service
from ..services.registry import PatientRegistry, get_registry

router = APIRouter(prefix="/insights", tags=["insights"])


class InsightsResponse(BaseModel):
    total_cases: int
    active: int
    observation: int
    discharged_improved: int
    discharged_not_improved: int
    active_registry: int
    total_visits: int
    patients_with_visits: int
    average_visits_per_patient: float
    success_rate_percentage: int


@router.get("/", response_model=InsightsResponse)
def get_insights(
    registry: PatientRegistry = Depends(get_registry),
    _hcp=Depends(require_permission(PERM_VIEW_INSIGHTS)),
):
    """Registry-wide case and outcome statistics."""
    return InsightsResponse(**insights_service.summarize(registry.list_patients()).to_dict())
