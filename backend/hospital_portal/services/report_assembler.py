"""
Deterministic clinical report assembler.
Fills a fixed seven-section narrative from the patient record and detected
condition tags. Used directly as the fallback when the external language model
is unavailable, so it must never raise and must always emit every section.
"""
from typing import List, Optional

from ..models.patient import Patient
from .condition_detector import ConditionTag
from .vitals import (
    BRADYCARDIA_HR,
    FEVER_F,
    HYPOXIA_SPO2,
    OVERWEIGHT_BMI,
    RENAL_IMPAIRMENT_CREATININE,
    TACHYCARDIA_HR,
    bmi_category,
    calculate_bmi,
    parse_blood_pressure,
    parse_number,
    parse_temperature_f,
)

REPORT_SECTIONS = (
    "Patient Overview",
    "Clinical Interpretation",
    "Contributing Factors",
    "Risk Indicators / Red Flags",
    "Medication & Therapy Considerations",
    "Monitoring & Follow-up",
    "Practical Care Advice",
)

NOT_RECORDED = "not recorded"
NOT_MEASURED = "not measured"

DIURETICS = ("diuretic", "furosemide", "hydrochlorothiazide", "spironolactone", "torsemide", "bumetanide", "chlorthalidone")

TAG_INTERPRETATIONS = {
    ConditionTag.CARDIAC: "Cardiac symptoms are reported and warrant structured evaluation to exclude acute coronary syndrome or arrhythmia.",
    ConditionTag.RESPIRATORY: "Respiratory complaints are present and require assessment of airway, breathing and oxygenation.",
    ConditionTag.NEUROLOGICAL: "Neurological symptoms are described and should be characterised for focal deficits.",
    ConditionTag.GASTROINTESTINAL: "Gastrointestinal symptoms are reported and call for abdominal assessment and hydration review.",
    ConditionTag.DIABETES: "Features suggestive of glycaemic disturbance are present and blood glucose should be reviewed.",
    ConditionTag.HYPERTENSION: "Blood pressure is a documented concern and needs trend monitoring.",
    ConditionTag.RENAL: "Renal involvement is suggested and kidney function should be correlated with medication dosing.",
    ConditionTag.MEDICATION: "Medication-related concerns are mentioned and the current regimen should be reconciled.",
}


def missing_sections(text: Optional[str]) -> List[str]:
    """Required section headers absent from ``text``."""
    body = text or ""
    return [section for section in REPORT_SECTIONS if section not in body]


class ReportAssembler:
    """Builds the seven-section clinical narrative from literal prose fragments."""

    def render(self, patient: Patient, tags: List[ConditionTag]) -> str:
        sections = (
            self._overview(patient),
            self._interpretation(patient, tags),
            self._contributing_factors(patient),
            self._risk_indicators(patient, tags),
            self._medication(patient, tags),
            self._monitoring(patient, tags),
            self._care_advice(patient, tags),
        )
        return "\n\n".join(
            f"{title}\n\n{body}" for title, body in zip(REPORT_SECTIONS, sections)
        )

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def _overview(self, patient: Patient) -> str:
        vitals = patient.baseline_vitals
        labs = patient.baseline_labs
        complaint = patient.complaints.strip().lower() or "a general health assessment"
        return (
            f"{patient.full_name} is a {patient.age}-year-old {patient.sex.value.lower()} "
            f"presenting with {complaint}. "
            f"Current vital signs demonstrate blood pressure of {vitals.bp or NOT_RECORDED}, "
            f"heart rate of {vitals.hr or NOT_RECORDED} beats per minute, "
            f"temperature of {vitals.temp or NOT_RECORDED}, "
            f"and oxygen saturation of {vitals.spo2 or NOT_RECORDED}. "
            f"Laboratory analysis reveals white blood cell count of {_lab(labs, 'wbc')}, "
            f"platelet count of {_lab(labs, 'platelets')}, "
            f"red blood cell count of {_lab(labs, 'rbc')}, "
            f"and creatinine of {_lab(labs, 'creatinine')}. "
            f"Current medication regimen includes {_medication_list(patient)}."
        )

    def _interpretation(self, patient: Patient, tags: List[ConditionTag]) -> str:
        parts = []
        if tags:
            parts.append("Detected clinical concerns include: " + ", ".join(t.value for t in tags) + ".")
            parts.extend(TAG_INTERPRETATIONS[t] for t in tags)
        else:
            parts.append("No specific clinical category was detected from the available information.")

        bp = parse_blood_pressure(patient.baseline_vitals.bp)
        if bp is None:
            parts.append("Blood pressure could not be interpreted because it was not recorded in a systolic/diastolic form.")
        elif bp.is_elevated:
            parts.append(f"Vital sign analysis indicates elevated blood pressure at {bp.systolic}/{bp.diastolic} mmHg requiring attention.")
        else:
            parts.append("Vital sign analysis indicates hemodynamic stability within acceptable parameters.")

        hr = parse_number(patient.baseline_vitals.hr)
        if hr is not None and hr > TACHYCARDIA_HR:
            parts.append(f"Heart rate of {hr:.0f} beats per minute is consistent with tachycardia.")
        elif hr is not None and hr < BRADYCARDIA_HR:
            parts.append(f"Heart rate of {hr:.0f} beats per minute is consistent with bradycardia.")

        temp = parse_temperature_f(patient.baseline_vitals.temp)
        if temp is not None and temp > FEVER_F:
            parts.append(f"Temperature of {temp:.1f} degrees Fahrenheit indicates fever and a possible infective source.")

        if _renal_impairment(patient):
            parts.append("Laboratory parameters demonstrate mild renal impairment that may affect medication dosing.")
        else:
            parts.append("Laboratory parameters demonstrate no recorded renal impairment affecting medication clearance.")
        return " ".join(parts)

    def _contributing_factors(self, patient: Patient) -> str:
        social = patient.social_history
        parts = [
            f"Age-related physiological changes at {patient.age} years influence medication pharmacokinetics and disease manifestation."
        ]
        if social.smoking or social.tobacco:
            parts.append("Current tobacco use substantially increases cardiovascular and respiratory risk.")
        else:
            parts.append("Absence of tobacco use reduces certain respiratory and cardiovascular risks.")
        if social.alcohol:
            parts.append("Alcohol consumption is reported and may interact with medications and liver function.")

        bmi = calculate_bmi(patient.height, patient.weight)
        if bmi is None:
            parts.append("Body mass index could not be calculated because height or weight was not recorded.")
        elif bmi > OVERWEIGHT_BMI:
            parts.append(f"Body mass index of {bmi:.1f} indicates {bmi_category(bmi)} status suggesting lifestyle modification.")
        else:
            parts.append(f"Body mass index of {bmi:.1f} falls in the {bmi_category(bmi)} range.")

        if patient.medical_history.strip():
            parts.append(f"Relevant medical history: {patient.medical_history.strip()}.")
        if patient.family_history.strip():
            parts.append(f"Family history includes {patient.family_history.strip()}.")
        return " ".join(parts)

    def _risk_indicators(self, patient: Patient, tags: List[ConditionTag]) -> str:
        flags = []
        if ConditionTag.CARDIAC in tags:
            flags.append("Chest pain or cardiac symptoms require immediate cardiac evaluation with ECG and cardiac enzymes to exclude acute coronary syndrome.")
        spo2 = parse_number(patient.baseline_vitals.spo2)
        if spo2 is not None and spo2 < HYPOXIA_SPO2:
            flags.append(f"Oxygen saturation of {spo2:.0f} percent is below {HYPOXIA_SPO2} percent and indicates potential respiratory compromise.")
        if ConditionTag.NEUROLOGICAL in tags:
            flags.append("Sudden weakness, facial droop or speech difficulty must be treated as a possible stroke.")
        bp = parse_blood_pressure(patient.baseline_vitals.bp)
        if bp is not None and (bp.systolic >= 180 or bp.diastolic >= 120):
            flags.append(f"Blood pressure of {bp.systolic}/{bp.diastolic} mmHg is in the hypertensive crisis range.")
        temp = parse_temperature_f(patient.baseline_vitals.temp)
        if temp is not None and temp > FEVER_F:
            flags.append("Fever should prompt a search for infection, particularly if accompanied by rigors or confusion.")
        if not flags:
            return "No acute life-threatening symptoms identified in the current presentation. No immediate emergent conditions are apparent based on available clinical data."
        return " ".join(flags)

    def _medication(self, patient: Patient, tags: List[ConditionTag]) -> str:
        parts = [f"Current pharmacotherapy includes {_medication_list(patient)}."]
        if len(patient.medications) > 2:
            parts.append("Polypharmacy requires comprehensive medication reconciliation and interaction review.")
        elif patient.medications:
            parts.append("Medication regimen appears appropriate for the current clinical condition pending review.")
        if ConditionTag.MEDICATION in tags:
            parts.append("Medication concerns raised during the encounter should be addressed with the patient directly.")
        if ConditionTag.DIABETES in tags:
            parts.append("Glucose-lowering therapy should be reviewed against recent glycaemic control.")
        if _renal_impairment(patient):
            parts.append("Renally cleared medications may need dose adjustment given elevated creatinine.")
        parts.append("Consider therapeutic drug monitoring for medications with narrow therapeutic windows.")
        return " ".join(parts)

    def _monitoring(self, patient: Patient, tags: List[ConditionTag]) -> str:
        bp = parse_blood_pressure(patient.baseline_vitals.bp)
        parts = []
        if bp is not None and bp.is_elevated:
            parts.append("Blood pressure should be monitored twice weekly until target values are achieved.")
        else:
            parts.append("Blood pressure should be monitored at routine medical visits every 3-4 months.")
        if any(d in m.name.lower() for m in patient.medications for d in DIURETICS):
            parts.append("Renal function and electrolytes should be evaluated every 4-6 weeks while on diuretic therapy.")
        else:
            parts.append("Laboratory parameters including renal function should be evaluated every 6-12 months.")
        if ConditionTag.RESPIRATORY in tags:
            parts.append("Oxygen saturation should be rechecked at each contact.")
        if ConditionTag.DIABETES in tags:
            parts.append("Blood glucose should be logged daily and HbA1c checked every 3 months.")

        complaint = patient.complaints.lower()
        urgent = ConditionTag.CARDIAC in tags or "pain" in complaint or "acute" in complaint
        parts.append(f"Follow-up evaluation recommended in {'1-2 weeks' if urgent else '4-8 weeks'} to assess therapeutic response.")
        return " ".join(parts)

    def _care_advice(self, patient: Patient, tags: List[ConditionTag]) -> str:
        bp = parse_blood_pressure(patient.baseline_vitals.bp)
        diet = (
            "sodium restriction under 2 grams daily"
            if bp is not None and bp.is_elevated
            else "heart-healthy nutrition"
        )
        parts = [
            "Maintain strict adherence to the prescribed medication schedule and promptly report any adverse effects to healthcare providers.",
            f"Implement dietary modifications including {diet}.",
            "Engage in regular physical activity as tolerated, aiming for 150 minutes of moderate intensity weekly.",
        ]
        if patient.social_history.smoking or patient.social_history.tobacco:
            parts.append("Stopping tobacco use is strongly advised and cessation support is available.")
        if ConditionTag.HYPERTENSION in tags:
            parts.append("Monitor blood pressure at home if equipment is available and keep a log for review.")
        parts.append("Seek immediate medical attention for chest pain, shortness of breath, or neurological symptoms.")
        return " ".join(parts)


def _lab(labs, field: str) -> str:
    value = getattr(labs, field, None) if labs is not None else None
    return value or NOT_MEASURED


def _medication_list(patient: Patient) -> str:
    if not patient.medications:
        return "no current medications"
    return ", ".join(m.describe() for m in patient.medications)


def _renal_impairment(patient: Patient) -> bool:
    labs = patient.baseline_labs
    creatinine = parse_number(labs.creatinine) if labs else None
    return creatinine is not None and creatinine > RENAL_IMPAIRMENT_CREATININE


report_assembler = ReportAssembler()
