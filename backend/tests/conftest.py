"""Shared fixtures: sample patients and an isolated in-memory database."""
import os

# Keep the app off the local database file and the network during tests
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SEED_DEMO_DATA"] = "false"
os.environ["LLM_API_KEY"] = ""
os.environ["LLM_MOCK_MODE"] = "false"

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from hospital_portal.models import audit, storage  # noqa: F401, E402
from hospital_portal.models.base import Base  # noqa: E402
from hospital_portal.models.patient import (  # noqa: E402
    LabResults,
    Medication,
    Patient,
    Sex,
    SocialHistory,
    VitalSigns,
)


@pytest.fixture()
def in_memory_db(monkeypatch):
    """Provide an isolated in-memory SQLite database for each test."""
    test_engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestSession = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    Base.metadata.create_all(bind=test_engine)

    # Patch the module-level engine/SessionLocal used by the registry, seeder and middleware
    import hospital_portal.models.base as mb
    import hospital_portal.seed_demo as sd

    monkeypatch.setattr(mb, "engine", test_engine)
    monkeypatch.setattr(mb, "SessionLocal", TestSession)
    monkeypatch.setattr(sd, "engine", test_engine)

    db = TestSession()
    yield db
    db.close()


@pytest.fixture()
def chest_pain_patient():
    return Patient(
        id="PAT-2001",
        full_name="Maria Lopez",
        age=64,
        sex=Sex.FEMALE,
        height="160",
        weight="72",
        baseline_vitals=VitalSigns(bp="165/95", hr="104", temp="98.4", spo2="93"),
        baseline_labs=LabResults(wbc="8.1", platelets="240", rbc="4.2", creatinine="1.6"),
        social_history=SocialHistory(smoking=True),
        family_history="Mother had a stroke at 70",
        medications=[
            Medication(name="Furosemide", dose="40mg", route="oral", frequency="daily"),
            Medication(name="Aspirin", dose="81mg", route="oral", frequency="daily"),
            Medication(name="Atorvastatin", dose="20mg", route="oral", frequency="nightly"),
        ],
        complaints="Crushing chest pain radiating to the left arm",
        medical_history="Hypertension",
        consent_given=True,
    )


@pytest.fixture()
def stomach_patient():
    return Patient(
        id="PAT-2002",
        full_name="Tom Baker",
        age=30,
        sex=Sex.MALE,
        baseline_vitals=VitalSigns(hr="78", temp="98.6", spo2="99"),
        complaints="My stomach hurts and I feel sick",
        consent_given=True,
    )


@pytest.fixture()
def sparse_patient():
    """Only the mandatory fields; every optional value missing."""
    return Patient(id="PAT-2003", full_name="Ann Empty", age=45, sex=Sex.OTHER)
