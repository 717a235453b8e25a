"""
Patient registry.
The whole registry is one JSON document stored under a fixed key in the
``storage_entries`` table. Every mutation loads the document, applies the
change and writes the full document back while holding a process-wide lock,
so concurrent requests in one worker never overwrite each other.
"""
import json
import logging
import random
import threading
import time
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from pydantic import TypeAdapter, ValidationError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.security import hash_pin
from ..models import base as db_base
from ..models.patient import (
    REGISTRATION_PLACEHOLDER,
    LabResults,
    Patient,
    PatientRegistration,
    PatientStatus,
    VitalSigns,
    Visit,
)
from ..models.storage import StorageEntry

logger = logging.getLogger(__name__)

_patient_list = TypeAdapter(List[Patient])

MIN_PIN_LENGTH = 4

# Every load-modify-save cycle holds this lock; reentrant so composite
# mutations can call update() while holding it.
_write_lock = threading.RLock()


class RegistryError(Exception):
    pass


class PatientNotFoundError(RegistryError):
    def __init__(self, patient_id: str):
        super().__init__(f"Patient {patient_id} not found")
        self.patient_id = patient_id


class VisitNotFoundError(RegistryError):
    def __init__(self, patient_id: str, visit_id: str):
        super().__init__(f"Visit {visit_id} not found for patient {patient_id}")
        self.visit_id = visit_id


class RegistrationError(RegistryError):
    pass


def dumps(patients: Iterable[Patient]) -> str:
    """Serialize patients to the stored document (camelCase keys)."""
    return json.dumps([p.model_dump(mode="json", by_alias=True) for p in patients])


def loads(blob: Optional[str]) -> List[Patient]:
    """Parse a stored document. Missing or unreadable data is an empty registry."""
    if not blob:
        return []
    try:
        return _patient_list.validate_json(blob)
    except ValidationError as exc:
        logger.warning("Stored patient registry is corrupt, starting empty: %s", exc)
        return []


def _today() -> str:
    return datetime.now().strftime("%B %d, %Y")


def _visit_id(prefix: str, patient_id: str) -> str:
    return f"{prefix}-{int(time.time() * 1000)}-{random.randint(0, 99999)}-{patient_id}"


class PatientRegistry:
    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        storage_key: Optional[str] = None,
    ):
        # Resolved at call time so the module-level factory can be swapped.
        self._session_factory = session_factory
        self.storage_key = storage_key or settings.REGISTRY_STORAGE_KEY

    def _session(self) -> Session:
        factory = self._session_factory or db_base.SessionLocal
        return factory()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> List[Patient]:
        db = self._session()
        try:
            entry = db.get(StorageEntry, self.storage_key)
            return loads(entry.value if entry else None)
        finally:
            db.close()

    def save(self, patients: List[Patient]) -> None:
        blob = dumps(patients)
        db = self._session()
        try:
            entry = db.get(StorageEntry, self.storage_key)
            if entry is None:
                db.add(StorageEntry(key=self.storage_key, value=blob))
            else:
                entry.value = blob
            db.commit()
        finally:
            db.close()

    def reset(self) -> None:
        """Delete every record and the stored document itself."""
        with _write_lock:
            db = self._session()
            try:
                entry = db.get(StorageEntry, self.storage_key)
                if entry is not None:
                    db.delete(entry)
                    db.commit()
            finally:
                db.close()
        logger.info("Patient registry reset")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_patients(self) -> List[Patient]:
        return self.load()

    def get(self, patient_id: str) -> Patient:
        for patient in self.load():
            if patient.id == patient_id:
                return patient
        raise PatientNotFoundError(patient_id)

    def find(self, patient_id: str) -> Optional[Patient]:
        try:
            return self.get(patient_id)
        except PatientNotFoundError:
            return None

    def search(self, query: str) -> List[Patient]:
        term = (query or "").strip().lower()
        patients = self.load()
        if not term:
            return patients
        return [p for p in patients if term in p.id.lower() or term in p.full_name.lower()]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, patient: Patient) -> Patient:
        with _write_lock:
            patients = self.load()
            if any(p.id == patient.id for p in patients):
                raise RegistryError(f"Patient {patient.id} already exists")
            patients.append(patient)
            self.save(patients)
        logger.info("Added patient %s", patient.id)
        return patient

    def update(self, patient: Patient) -> Patient:
        with _write_lock:
            patients = self.load()
            for index, existing in enumerate(patients):
                if existing.id == patient.id:
                    patients[index] = patient
                    self.save(patients)
                    logger.info("Updated patient %s", patient.id)
                    return patient
        raise PatientNotFoundError(patient.id)

    def delete_many(self, patient_ids: Iterable[str]) -> int:
        doomed = set(patient_ids)
        with _write_lock:
            patients = self.load()
            kept = [p for p in patients if p.id not in doomed]
            removed = len(patients) - len(kept)
            if removed:
                self.save(kept)
        logger.info("Deleted %d patient(s)", removed)
        return removed

    def register(self, payload: PatientRegistration, pin: str) -> Patient:
        """
        Create a record from an intake form.

        Requires recorded consent and a numeric PIN of at least four digits.
        The first visit snapshots the baseline complaint, vitals and labs.
        """
        if not payload.consent_given:
            raise RegistrationError("Clinical record creation requires patient consent")
        if not pin or len(pin) < MIN_PIN_LENGTH or not pin.isdigit():
            raise RegistrationError(f"PIN must be at least {MIN_PIN_LENGTH} digits")

        pin_hash = hash_pin(pin)
        with _write_lock:
            patients = self.load()
            patient_id = self._allocate_id({p.id for p in patients})
            initial_visit = Visit(
                id=_visit_id("INIT", patient_id),
                date=_today(),
                summary="Initial Clinical Registration",
                complaints=payload.complaints or REGISTRATION_PLACEHOLDER,
                vitals=payload.baseline_vitals.model_copy(),
                lab_results=payload.baseline_labs.model_copy() if payload.baseline_labs else None,
            )
            patient = Patient(
                id=patient_id,
                pin_hash=pin_hash,
                visits=[initial_visit],
                **payload.model_dump(),
            )
            patients.append(patient)
            self.save(patients)
        logger.info("Registered patient %s", patient_id)
        return patient

    def add_visit(self, patient_id: str, visit: Visit) -> Patient:
        with _write_lock:
            patient = self.get(patient_id)
            if not visit.id:
                visit.id = _visit_id("VISIT", patient_id)
            patient.visits.append(visit)
            return self.update(patient)

    def new_visit(
        self,
        patient_id: str,
        summary: str,
        vitals: Optional[VitalSigns] = None,
        lab_results: Optional[LabResults] = None,
        complaints: Optional[str] = None,
    ) -> Visit:
        visit = Visit(
            id=_visit_id("VISIT", patient_id),
            date=_today(),
            summary=summary,
            vitals=vitals or VitalSigns(),
            lab_results=lab_results,
            complaints=complaints,
        )
        self.add_visit(patient_id, visit)
        return visit

    def set_status(self, patient_id: str, status: PatientStatus) -> Patient:
        with _write_lock:
            patient = self.get(patient_id)
            patient.status = status
            logger.info("Patient %s status -> %s", patient_id, status.value)
            return self.update(patient)

    def discharge(
        self,
        patient_id: str,
        improved: bool,
        lifestyle_modifications: Optional[str] = None,
        discharge_vitals: Optional[VitalSigns] = None,
        discharge_labs: Optional[LabResults] = None,
        discharge_instructions: Optional[str] = None,
        follow_up_plan: Optional[str] = None,
    ) -> Patient:
        """Attach discharge data to the latest visit (creating one if none) and close the case."""
        with _write_lock:
            patient = self.get(patient_id)
            if patient.visits:
                visit = patient.visits[-1]
            else:
                visit = Visit(id=_visit_id("VISIT", patient_id), date=_today(), summary="Discharge")
                patient.visits.append(visit)
            visit.lifestyle_modifications = lifestyle_modifications
            visit.discharge_vitals = discharge_vitals
            visit.discharge_labs = discharge_labs
            visit.discharge_instructions = discharge_instructions
            visit.follow_up_plan = follow_up_plan
            patient.status = (
                PatientStatus.DISCHARGED_IMPROVED if improved else PatientStatus.DISCHARGED_NOT_IMPROVED
            )
            logger.info("Discharged patient %s (%s)", patient_id, patient.status.value)
            return self.update(patient)

    def set_diagnosis(
        self,
        patient_id: str,
        visit_id: str,
        final_diagnosis: str,
        diagnosis_type: str = "manual",
        diagnosis_confidence: Optional[int] = None,
        differential_diagnosis: Optional[str] = None,
        treatment_plan: Optional[str] = None,
    ) -> Visit:
        with _write_lock:
            patient = self.get(patient_id)
            for visit in patient.visits:
                if visit.id == visit_id:
                    visit.diagnosis = visit.diagnosis or final_diagnosis
                    visit.final_diagnosis = final_diagnosis
                    visit.diagnosis_type = diagnosis_type
                    visit.diagnosis_confidence = diagnosis_confidence
                    if differential_diagnosis is not None:
                        visit.differential_diagnosis = differential_diagnosis
                    if treatment_plan is not None:
                        visit.treatment_plan = treatment_plan
                    self.update(patient)
                    return visit
        raise VisitNotFoundError(patient_id, visit_id)

    def attach_report(self, patient_id: str, text: str, mode: str) -> Patient:
        """Store a rendered report on the latest visit."""
        with _write_lock:
            patient = self.get(patient_id)
            if not patient.visits:
                patient.visits.append(
                    Visit(id=_visit_id("VISIT", patient_id), date=_today(), summary="Clinical Report")
                )
            patient.visits[-1].ai_report = text
            patient.visits[-1].report_mode = mode
            return self.update(patient)

    @staticmethod
    def _allocate_id(taken: set) -> str:
        free = [n for n in range(1000, 10000) if f"PAT-{n}" not in taken]
        if not free:
            raise RegistrationError("No patient identifiers left")
        return f"PAT-{random.choice(free)}"


def get_registry() -> PatientRegistry:
    """FastAPI dependency."""
    return PatientRegistry()
