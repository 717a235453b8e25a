"""Patient registry records.

These are plain pydantic models rather than ORM rows: the registry is
persisted as a single JSON document, so every record round-trips through
``model_dump_json`` / ``model_validate``. Aliases are camelCase to keep the
stored document compatible with the browser registry export.
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# Complaint recorded on the first visit when the intake form had none
REGISTRATION_PLACEHOLDER = "Patient Registration"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PatientStatus(str, Enum):
    ACTIVE = "Active"
    OBSERVATION = "Observation"
    DISCHARGED_IMPROVED = "Discharged - Improved"
    DISCHARGED_NOT_IMPROVED = "Discharged - Not Improved"


class Sex(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class VitalSigns(CamelModel):
    """Vital-sign snapshot. Values are free text as entered, e.g. "140/90"."""
    bp: str = ""
    hr: str = ""
    temp: str = ""
    spo2: str = ""

    def is_empty(self) -> bool:
        return not any((self.bp, self.hr, self.temp, self.spo2))


class LabResults(CamelModel):
    wbc: Optional[str] = None
    platelets: Optional[str] = None
    rbc: Optional[str] = None
    creatinine: Optional[str] = None
    # Extended panel
    hemoglobin: Optional[str] = None
    esr: Optional[str] = None
    mch: Optional[str] = None
    mchc: Optional[str] = None
    mcv: Optional[str] = None
    blood_sugar: Optional[str] = None
    sodium: Optional[str] = None
    potassium: Optional[str] = None
    triglycerides: Optional[str] = None
    blood_urea_nitrogen: Optional[str] = None
    sgot: Optional[str] = None
    sgpt: Optional[str] = None


class SocialHistory(CamelModel):
    smoking: bool = False
    alcohol: bool = False
    tobacco: bool = False


class Medication(CamelModel):
    name: str
    dose: str = ""
    route: str = ""
    frequency: str = ""
    is_currently_taking: Optional[bool] = None

    def describe(self) -> str:
        return " ".join(p for p in (self.name, self.dose, self.route, self.frequency) if p)


class Visit(CamelModel):
    """A single encounter. Visits are appended, never removed."""
    id: str
    date: str
    summary: str = ""
    vitals: VitalSigns = Field(default_factory=VitalSigns)
    lab_results: Optional[LabResults] = None
    complaints: Optional[str] = None
    ai_report: Optional[str] = None
    report_mode: Optional[str] = None  # "ai" or "fallback"
    # Discharge data entered by HCP
    lifestyle_modifications: Optional[str] = None
    discharge_vitals: Optional[VitalSigns] = None
    discharge_labs: Optional[LabResults] = None
    discharge_instructions: Optional[str] = None
    follow_up_plan: Optional[str] = None
    # Diagnosis
    diagnosis: Optional[str] = None
    final_diagnosis: Optional[str] = None
    diagnosis_type: Optional[str] = None  # "ai" or "manual"
    diagnosis_confidence: Optional[int] = None
    differential_diagnosis: Optional[str] = None
    treatment_plan: Optional[str] = None


class PatientProfile(CamelModel):
    """Everything about a patient that may leave the server."""
    id: str
    full_name: str
    age: int = Field(ge=0, le=150)
    sex: Sex
    height: str = ""  # cm
    weight: str = ""  # kg
    baseline_vitals: VitalSigns = Field(default_factory=VitalSigns)
    baseline_labs: Optional[LabResults] = None
    social_history: SocialHistory = Field(default_factory=SocialHistory)
    family_history: str = ""
    medications: List[Medication] = []
    complaints: str = ""
    medical_history: str = ""
    treatment_context: str = ""
    other_findings: Optional[str] = None
    status: PatientStatus = PatientStatus.ACTIVE
    visits: List[Visit] = []
    consent_given: bool = False

    @property
    def is_discharged(self) -> bool:
        return self.status in (PatientStatus.DISCHARGED_IMPROVED, PatientStatus.DISCHARGED_NOT_IMPROVED)

    def current_encounter(self):
        """
        Copy of the record with the latest visit's vitals, labs and complaints
        in place of the baseline ones. Fields the visit left blank keep the
        baseline value.
        """
        if not self.visits:
            return self
        latest = self.visits[-1]
        update = {}
        if not latest.vitals.is_empty():
            entered = {k: v for k, v in latest.vitals.model_dump().items() if v}
            update["baseline_vitals"] = self.baseline_vitals.model_copy(update=entered)
        if latest.lab_results is not None:
            update["baseline_labs"] = latest.lab_results
        if latest.complaints and latest.complaints != REGISTRATION_PLACEHOLDER:
            update["complaints"] = latest.complaints
        return self.model_copy(update=update) if update else self


class Patient(PatientProfile):
    """Stored record. Only the bcrypt hash of the PIN is kept."""
    pin_hash: str = ""


class PatientRegistration(CamelModel):
    """Intake form. Identity and PIN are assigned by the registry."""
    full_name: str = Field(min_length=1)
    age: int = Field(ge=0, le=150)
    sex: Sex
    height: str = ""
    weight: str = ""
    baseline_vitals: VitalSigns = Field(default_factory=VitalSigns)
    baseline_labs: Optional[LabResults] = None
    social_history: SocialHistory = Field(default_factory=SocialHistory)
    family_history: str = ""
    medications: List[Medication] = []
    complaints: str = ""
    medical_history: str = ""
    treatment_context: str = ""
    other_findings: Optional[str] = None
    consent_given: bool = False
