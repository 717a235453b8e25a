"""
Demo data seeder for the hospital portal.

Creates one sample patient so the patient portal walkthrough works right after
a fresh start. Clinician access uses the passphrases configured in
HCP_ACCESS_KEYS; none are created here.

Credentials (logged on first run):
  Patient: PAT-1001 / 1234

This seeder is idempotent; it is safe to call on every startup.
"""
import logging

from .core.security import hash_pin
from .models.base import Base, engine
from .models.patient import (
    LabResults,
    Medication,
    Patient,
    Sex,
    SocialHistory,
    VitalSigns,
    Visit,
)
from .services.registry import PatientRegistry

logger = logging.getLogger(__name__)

DEMO_PATIENT_ID = "PAT-1001"
DEMO_PATIENT_PIN = "1234"


def seed_demo_data() -> None:
    """Add the demo patient if it is not already registered."""
    # Ensure tables exist (no-op when already created by main.py)
    Base.metadata.create_all(bind=engine)

    registry = PatientRegistry()
    if registry.find(DEMO_PATIENT_ID) is not None:
        return
    registry.add(_demo_patient())
    logger.info("[seed] Created demo patient: %s / %s", DEMO_PATIENT_ID, DEMO_PATIENT_PIN)


def _demo_patient() -> Patient:
    vitals = VitalSigns(bp="150/95", hr="88", temp="98.6", spo2="97")
    labs = LabResults(wbc="7.2", platelets="250", rbc="4.8", creatinine="1.1")
    return Patient(
        id=DEMO_PATIENT_ID,
        pin_hash=hash_pin(DEMO_PATIENT_PIN),
        full_name="John Demo",
        age=58,
        sex=Sex.MALE,
        height="175",
        weight="84",
        baseline_vitals=vitals,
        baseline_labs=labs,
        social_history=SocialHistory(smoking=True),
        family_history="Father had myocardial infarction at 62",
        medications=[
            Medication(name="Amlodipine", dose="5mg", route="oral", frequency="once daily"),
            Medication(name="Metformin", dose="500mg", route="oral", frequency="twice daily"),
        ],
        complaints="Intermittent chest discomfort on exertion and morning headaches",
        medical_history="Type 2 diabetes, hypertension",
        consent_given=True,
        visits=[
            Visit(
                id=f"INIT-DEMO-{DEMO_PATIENT_ID}",
                date="January 15, 2025",
                summary="Initial Clinical Registration",
                complaints="Intermittent chest discomfort on exertion and morning headaches",
                vitals=vitals,
                lab_results=labs,
            )
        ],
    )
