"""
Keyword-based condition detector.
Classifies an encounter into coarse clinical categories by substring search over
the complaint, vitals, creatinine and medication names. Tags are triage hints for
report assembly, not diagnoses.
"""
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..models.patient import Patient
from .vitals import BloodPressure, parse_blood_pressure


class ConditionTag(str, Enum):
    CARDIAC = "cardiac_evaluation_needed"
    RESPIRATORY = "respiratory_assessment"
    NEUROLOGICAL = "neurological_evaluation"
    GASTROINTESTINAL = "gastrointestinal_assessment"
    DIABETES = "diabetes_monitoring"
    HYPERTENSION = "blood_pressure_monitoring"
    RENAL = "renal_function_assessment"
    MEDICATION = "medication_review"


# Checked in this order; output order follows it.
CONDITION_KEYWORDS: Tuple[Tuple[ConditionTag, Tuple[str, ...]], ...] = (
    (ConditionTag.CARDIAC, (
        "chest", "heart", "cardiac", "angina", "heart attack", "chest discomfort",
    )),
    (ConditionTag.RESPIRATORY, (
        "breath", "lung", "cough", "asthma", "pneumonia", "shortness of breath",
        "trouble breathing", "wheezing", "cant breathe",
    )),
    (ConditionTag.NEUROLOGICAL, (
        "headache", "migraine", "stroke", "seizure", "dizziness", "numbness",
        "blurry vision", "confusion",
    )),
    (ConditionTag.GASTROINTESTINAL, (
        "stomach", "abdominal", "nausea", "vomiting", "diarrhea", "pain", "hurts",
        "sick", "acid reflux",
    )),
    (ConditionTag.DIABETES, (
        "diabetes", "sugar", "glucose", "insulin", "thirst", "urination",
        "frequent urination",
    )),
    (ConditionTag.HYPERTENSION, (
        "bp", "blood pressure", "hypertension", "high bp",
    )),
    (ConditionTag.RENAL, (
        "kidney", "renal", "creatinine", "urine", "dialysis", "swelling", "edema",
    )),
    (ConditionTag.MEDICATION, (
        "medication", "medicine", "drug", "pill", "tablet", "dose",
    )),
)


class ConditionDetector:
    """
    Pure substring classifier. No tokenisation, stemming or negation handling:
    a single trigger anywhere in the text is enough, and false positives such as
    "pain" in an unrelated sentence are accepted.
    """

    def __init__(self, keywords: Tuple[Tuple[ConditionTag, Tuple[str, ...]], ...] = CONDITION_KEYWORDS):
        self.keywords = keywords

    def detect(self, patient: Patient) -> List[ConditionTag]:
        """Tags for a patient record, in category-check order."""
        text = self.build_text(patient)
        blood_pressure = parse_blood_pressure(patient.baseline_vitals.bp)
        return self.detect_in_text(text, blood_pressure=blood_pressure)

    def detect_in_text(
        self,
        text: Optional[str],
        blood_pressure: Optional[BloodPressure] = None,
    ) -> List[ConditionTag]:
        haystack = (text or "").lower()
        detected: List[ConditionTag] = []
        for tag, triggers in self.keywords:
            if any(trigger in haystack for trigger in triggers):
                detected.append(tag)
            elif tag is ConditionTag.HYPERTENSION and blood_pressure is not None and blood_pressure.is_elevated:
                detected.append(tag)
        return detected

    @staticmethod
    def build_text(patient: Patient) -> str:
        labs = patient.baseline_labs
        parts = [
            patient.complaints,
            patient.baseline_vitals.bp,
            patient.baseline_vitals.hr,
            labs.creatinine if labs and labs.creatinine else "",
            " ".join(m.name for m in patient.medications),
        ]
        return " ".join(p for p in parts if p).lower()

    def describe(self, tags: List[ConditionTag]) -> Dict[str, bool]:
        """Membership map over the full closed tag set."""
        return {tag.value: tag in tags for tag in ConditionTag}


condition_detector = ConditionDetector()


def detect_conditions(patient: Patient) -> List[ConditionTag]:
    return condition_detector.detect(patient)


def detect_conditions_in_text(text: Optional[str]) -> List[ConditionTag]:
    return condition_detector.detect_in_text(text)
