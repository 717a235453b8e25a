"""Tests for the demo data seeder."""
from hospital_portal.core.security import verify_pin
from hospital_portal.services.condition_detector import ConditionTag, condition_detector
from hospital_portal.services.registry import PatientRegistry
from hospital_portal.seed_demo import DEMO_PATIENT_ID, DEMO_PATIENT_PIN, seed_demo_data


class TestSeedDemoData:
    def test_creates_demo_patient(self, in_memory_db):
        seed_demo_data()
        patient = PatientRegistry().get(DEMO_PATIENT_ID)
        assert patient.consent_given is True
        assert len(patient.visits) == 1

    def test_demo_pin_logs_in(self, in_memory_db):
        seed_demo_data()
        patient = PatientRegistry().get(DEMO_PATIENT_ID)
        assert verify_pin(DEMO_PATIENT_PIN, patient.pin_hash)

    def test_idempotent(self, in_memory_db):
        seed_demo_data()
        seed_demo_data()
        patients = PatientRegistry().list_patients()
        assert [p.id for p in patients] == [DEMO_PATIENT_ID]

    def test_demo_case_exercises_detector(self, in_memory_db):
        seed_demo_data()
        tags = condition_detector.detect(PatientRegistry().get(DEMO_PATIENT_ID))
        assert ConditionTag.CARDIAC in tags
        assert ConditionTag.HYPERTENSION in tags
