"""
Registry insights - case totals per status, visit load and discharge outcomes.
"""
from dataclasses import asdict, dataclass
from typing import Dict, List

from ..models.patient import Patient, PatientStatus


@dataclass
class RegistryInsights:
    total_cases: int
    active: int
    observation: int
    discharged_improved: int
    discharged_not_improved: int
    active_registry: int  # active + observation
    total_visits: int
    patients_with_visits: int
    average_visits_per_patient: float
    success_rate_percentage: int  # improved / all discharged

    def to_dict(self) -> Dict:
        return asdict(self)


class InsightsService:
    def summarize(self, patients: List[Patient]) -> RegistryInsights:
        counts = {status: 0 for status in PatientStatus}
        for patient in patients:
            counts[patient.status] += 1

        total_visits = sum(len(p.visits) for p in patients)
        improved = counts[PatientStatus.DISCHARGED_IMPROVED]
        not_improved = counts[PatientStatus.DISCHARGED_NOT_IMPROVED]
        discharged = improved + not_improved

        return RegistryInsights(
            total_cases=len(patients),
            active=counts[PatientStatus.ACTIVE],
            observation=counts[PatientStatus.OBSERVATION],
            discharged_improved=improved,
            discharged_not_improved=not_improved,
            active_registry=counts[PatientStatus.ACTIVE] + counts[PatientStatus.OBSERVATION],
            total_visits=total_visits,
            patients_with_visits=sum(1 for p in patients if p.visits),
            average_visits_per_patient=round(total_visits / len(patients), 1) if patients else 0.0,
            success_rate_percentage=round(improved / discharged * 100) if discharged else 0,
        )


insights_service = InsightsService()
