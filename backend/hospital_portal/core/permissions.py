"""
Role-based permission matrix for the hospital portal.
Patients only ever see their own record; clinician roles share the registry.
"""
from enum import Enum


class UserRole(str, Enum):
    PATIENT = "patient"
    ENGINEER = "engineer"
    CO_ENGINEER = "co_engineer"
    MENTOR = "mentor"


# Permission constants
PERM_VIEW_OWN_RECORD = "view_own_record"
PERM_VIEW_ALL_PATIENTS = "view_all_patients"
PERM_MANAGE_PATIENTS = "manage_patients"
PERM_RECORD_VISITS = "record_visits"
PERM_GENERATE_REPORTS = "generate_reports"
PERM_VIEW_INSIGHTS = "view_insights"
PERM_RESET_REGISTRY = "reset_registry"
PERM_VIEW_AUDIT_LOGS = "view_audit_logs"

_CLINICIAN_PERMISSIONS = {
    PERM_VIEW_ALL_PATIENTS,
    PERM_MANAGE_PATIENTS,
    PERM_RECORD_VISITS,
    PERM_GENERATE_REPORTS,
    PERM_VIEW_INSIGHTS,
}

# Role permission matrix
ROLE_PERMISSIONS: dict = {
    UserRole.PATIENT: {PERM_VIEW_OWN_RECORD},
    UserRole.MENTOR: set(_CLINICIAN_PERMISSIONS),
    UserRole.CO_ENGINEER: set(_CLINICIAN_PERMISSIONS),
    UserRole.ENGINEER: _CLINICIAN_PERMISSIONS | {
        PERM_RESET_REGISTRY,
        PERM_VIEW_AUDIT_LOGS,
    },
}

HCP_ROLES = (UserRole.ENGINEER, UserRole.CO_ENGINEER, UserRole.MENTOR)


def has_permission(role: str, permission: str) -> bool:
    """Check if a role has a specific permission."""
    return permission in ROLE_PERMISSIONS.get(role, set())
