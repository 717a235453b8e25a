from datetime import timedelta

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from hospital_portal.core.config import settings
from hospital_portal.core.permissions import (
    PERM_RESET_REGISTRY,
    PERM_VIEW_ALL_PATIENTS,
    PERM_VIEW_OWN_RECORD,
    UserRole,
    has_permission,
)
from hospital_portal.core.security import (
    Principal,
    authenticate_hcp,
    create_access_token,
    decode_access_token,
    get_current_user,
    hash_pin,
    issue_token,
    verify_pin,
)


class TestPinHashing:
    def test_verify(self):
        hashed = hash_pin("1234")
        assert verify_pin("1234", hashed)
        assert not verify_pin("4321", hashed)

    def test_empty_or_malformed_hash(self):
        assert not verify_pin("1234", "")
        assert not verify_pin("1234", "not-a-bcrypt-hash")


class TestHCPAuthentication:
    @pytest.fixture(autouse=True)
    def _keys(self, monkeypatch):
        monkeypatch.setattr(settings, "HCP_ACCESS_KEYS", {
            "alpha-key": "engineer",
            "beta-key": "co_engineer",
            "gamma-key": "patient",
            "delta-key": "janitor",
        })

    def test_known_passphrases(self):
        assert authenticate_hcp("alpha-key") == UserRole.ENGINEER
        assert authenticate_hcp("beta-key") == UserRole.CO_ENGINEER

    def test_unknown_passphrase(self):
        assert authenticate_hcp("nope") is None
        assert authenticate_hcp("") is None

    def test_non_clinician_roles_refused(self):
        assert authenticate_hcp("gamma-key") is None
        assert authenticate_hcp("delta-key") is None


class TestTokens:
    def test_round_trip(self):
        token = issue_token(Principal(subject="PAT-1234", role=UserRole.PATIENT, patient_id="PAT-1234"))
        payload = decode_access_token(token)
        assert payload["sub"] == "PAT-1234"
        assert payload["role"] == "patient"
        assert payload["pid"] == "PAT-1234"

    def test_expired_token_rejected(self):
        token = create_access_token({"sub": "x", "role": "mentor"}, expires_delta=timedelta(minutes=-1))
        assert decode_access_token(token) is None

    def test_get_current_user(self):
        token = issue_token(Principal(subject="hcp:mentor", role=UserRole.MENTOR))
        user = get_current_user(HTTPAuthorizationCredentials(scheme="Bearer", credentials=token))
        assert user.role == UserRole.MENTOR
        assert user.patient_id is None

    def test_garbage_token(self):
        with pytest.raises(HTTPException) as exc_info:
            get_current_user(HTTPAuthorizationCredentials(scheme="Bearer", credentials="garbage"))
        assert exc_info.value.status_code == 401


class TestPermissions:
    def test_patient_reads_only_own(self):
        assert has_permission(UserRole.PATIENT, PERM_VIEW_OWN_RECORD)
        assert not has_permission(UserRole.PATIENT, PERM_VIEW_ALL_PATIENTS)

    def test_only_engineer_resets(self):
        assert has_permission(UserRole.ENGINEER, PERM_RESET_REGISTRY)
        assert not has_permission(UserRole.CO_ENGINEER, PERM_RESET_REGISTRY)
        assert not has_permission(UserRole.MENTOR, PERM_RESET_REGISTRY)
