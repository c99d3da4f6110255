"""Role definitions and permission flags for EHS Platform tenants."""
from enum import Enum
from functools import lru_cache
from typing import Optional, Union


class Role(str, Enum):
    """Role a user holds within a single tenant."""

    ADMIN = "ADMIN"
    HMS = "HMS"  # H&S manager
    LEDER = "LEDER"  # Line manager
    VERNEOMBUD = "VERNEOMBUD"  # Safety representative
    ANSATT = "ANSATT"  # Employee
    BHT = "BHT"  # Occupational health service
    REVISOR = "REVISOR"  # Auditor


class Permission(str, Enum):
    """Capability flags granted to tenant roles."""

    # Dashboard
    ACCESS_DASHBOARD = "access_dashboard"
    VIEW_ANALYTICS = "view_analytics"

    # Documents
    READ_DOCUMENTS = "read_documents"
    CREATE_DOCUMENTS = "create_documents"
    APPROVE_DOCUMENTS = "approve_documents"
    DELETE_DOCUMENTS = "delete_documents"

    # Incidents
    READ_INCIDENTS = "read_incidents"
    CREATE_INCIDENTS = "create_incidents"
    INVESTIGATE_INCIDENTS = "investigate_incidents"
    CLOSE_INCIDENTS = "close_incidents"

    # Risks
    READ_RISKS = "read_risks"
    CREATE_RISKS = "create_risks"
    APPROVE_RISKS = "approve_risks"
    DELETE_RISKS = "delete_risks"

    # Actions (measures)
    READ_ACTIONS = "read_actions"
    CREATE_ACTIONS = "create_actions"
    UPDATE_ACTIONS = "update_actions"
    DELETE_ACTIONS = "delete_actions"

    # Forms
    READ_FORMS = "read_forms"
    FILL_FORMS = "fill_forms"
    CREATE_FORMS = "create_forms"
    MANAGE_FORMS = "manage_forms"

    # Chemicals
    READ_CHEMICALS = "read_chemicals"
    CREATE_CHEMICALS = "create_chemicals"
    UPDATE_CHEMICALS = "update_chemicals"
    DELETE_CHEMICALS = "delete_chemicals"

    # Training
    READ_OWN_TRAINING = "read_own_training"
    READ_ALL_TRAINING = "read_all_training"
    CREATE_TRAINING = "create_training"
    ASSIGN_TRAINING = "assign_training"
    EVALUATE_TRAINING = "evaluate_training"

    # Audits
    READ_AUDITS = "read_audits"
    CREATE_AUDITS = "create_audits"
    CONDUCT_AUDITS = "conduct_audits"
    CLOSE_AUDITS = "close_audits"

    # Inspections
    READ_INSPECTIONS = "read_inspections"
    CREATE_INSPECTIONS = "create_inspections"
    CONDUCT_INSPECTIONS = "conduct_inspections"
    CLOSE_INSPECTIONS = "close_inspections"

    # Environment
    READ_ENVIRONMENT = "read_environment"
    CREATE_ENVIRONMENT = "create_environment"
    UPDATE_ENVIRONMENT = "update_environment"
    RECORD_ENVIRONMENTAL_MEASUREMENTS = "record_environmental_measurements"

    # Security
    READ_SECURITY = "read_security"
    CREATE_SECURITY = "create_security"
    UPDATE_SECURITY = "update_security"

    # Goals
    READ_GOALS = "read_goals"
    CREATE_GOALS = "create_goals"
    UPDATE_GOALS = "update_goals"
    MEASURE_GOALS = "measure_goals"

    # Feedback
    READ_OWN_FEEDBACK = "read_own_feedback"
    READ_ALL_FEEDBACK = "read_all_feedback"
    CREATE_FEEDBACK = "create_feedback"
    MANAGE_FEEDBACK = "manage_feedback"

    # Management reviews
    READ_MANAGEMENT_REVIEWS = "read_management_reviews"
    CREATE_MANAGEMENT_REVIEWS = "create_management_reviews"
    APPROVE_MANAGEMENT_REVIEWS = "approve_management_reviews"

    # Meetings
    READ_MEETINGS = "read_meetings"
    CREATE_MEETINGS = "create_meetings"
    ORGANIZE_MEETINGS = "organize_meetings"
    VIEW_ALL_MEETINGS = "view_all_meetings"

    # Whistleblowing
    SUBMIT_WHISTLEBLOWING = "submit_whistleblowing"
    VIEW_WHISTLEBLOWING = "view_whistleblowing"
    HANDLE_WHISTLEBLOWING = "handle_whistleblowing"

    # User management
    READ_USERS = "read_users"
    INVITE_USERS = "invite_users"
    MANAGE_USERS = "manage_users"
    DELETE_USERS = "delete_users"

    # Settings
    READ_SETTINGS = "read_settings"
    UPDATE_SETTINGS = "update_settings"

    # Reports
    EXPORT_REPORTS = "export_reports"
    VIEW_ALL_REPORTS = "view_all_reports"

    # Other
    ACCESS_TIME_REGISTRATION = "access_time_registration"
    READ_LEGAL_REGISTER = "read_legal_register"


_ALL_PERMISSIONS = frozenset(Permission)

# Destructive and governance flags withheld from the H&S manager.
_HMS_EXCLUDED = frozenset({
    Permission.DELETE_DOCUMENTS,
    Permission.DELETE_RISKS,
    Permission.DELETE_ACTIONS,
    Permission.DELETE_CHEMICALS,
    Permission.APPROVE_MANAGEMENT_REVIEWS,
    Permission.DELETE_USERS,
    Permission.UPDATE_SETTINGS,
})


# Role-Permission Mapping
#
# DELETE_DOCUMENTS is granted to ADMIN here, but document deletion is
# revoked for every tenant role when abilities are built (retention policy,
# see ehs.auth.ability.define_abilities).
ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.ADMIN: _ALL_PERMISSIONS,
    Role.HMS: _ALL_PERMISSIONS - _HMS_EXCLUDED,
    Role.LEDER: frozenset({
        Permission.ACCESS_DASHBOARD,
        Permission.VIEW_ANALYTICS,
        Permission.READ_DOCUMENTS,
        Permission.CREATE_DOCUMENTS,
        Permission.READ_INCIDENTS,
        Permission.CREATE_INCIDENTS,
        Permission.INVESTIGATE_INCIDENTS,
        Permission.CLOSE_INCIDENTS,
        Permission.READ_RISKS,
        Permission.CREATE_RISKS,
        Permission.DELETE_RISKS,
        Permission.READ_ACTIONS,
        Permission.CREATE_ACTIONS,
        Permission.UPDATE_ACTIONS,
        Permission.READ_FORMS,
        Permission.FILL_FORMS,
        Permission.CREATE_FORMS,
        Permission.MANAGE_FORMS,
        Permission.READ_CHEMICALS,
        Permission.CREATE_CHEMICALS,
        Permission.UPDATE_CHEMICALS,
        Permission.READ_OWN_TRAINING,
        Permission.READ_ALL_TRAINING,
        Permission.ASSIGN_TRAINING,
        Permission.READ_AUDITS,
        Permission.READ_INSPECTIONS,
        Permission.CREATE_INSPECTIONS,
        Permission.CONDUCT_INSPECTIONS,
        Permission.READ_ENVIRONMENT,
        Permission.CREATE_ENVIRONMENT,
        Permission.UPDATE_ENVIRONMENT,
        Permission.RECORD_ENVIRONMENTAL_MEASUREMENTS,
        Permission.READ_SECURITY,
        Permission.READ_GOALS,
        Permission.CREATE_GOALS,
        Permission.UPDATE_GOALS,
        Permission.MEASURE_GOALS,
        Permission.READ_OWN_FEEDBACK,
        Permission.READ_ALL_FEEDBACK,
        Permission.CREATE_FEEDBACK,
        Permission.MANAGE_FEEDBACK,
        Permission.READ_MANAGEMENT_REVIEWS,
        Permission.READ_MEETINGS,
        Permission.CREATE_MEETINGS,
        Permission.ORGANIZE_MEETINGS,
        Permission.SUBMIT_WHISTLEBLOWING,
        Permission.READ_USERS,
        Permission.READ_SETTINGS,
        Permission.EXPORT_REPORTS,
        Permission.VIEW_ALL_REPORTS,
        Permission.ACCESS_TIME_REGISTRATION,
        Permission.READ_LEGAL_REGISTER,
    }),
    Role.VERNEOMBUD: frozenset({
        Permission.ACCESS_DASHBOARD,
        Permission.VIEW_ANALYTICS,
        Permission.READ_DOCUMENTS,
        Permission.READ_INCIDENTS,
        Permission.CREATE_INCIDENTS,
        Permission.READ_RISKS,
        Permission.CREATE_RISKS,
        Permission.READ_ACTIONS,
        Permission.CREATE_ACTIONS,
        Permission.READ_FORMS,
        Permission.FILL_FORMS,
        Permission.READ_CHEMICALS,
        Permission.READ_OWN_TRAINING,
        Permission.READ_AUDITS,
        Permission.READ_INSPECTIONS,
        Permission.CREATE_INSPECTIONS,
        Permission.CONDUCT_INSPECTIONS,
        Permission.READ_ENVIRONMENT,
        Permission.CREATE_ENVIRONMENT,
        Permission.RECORD_ENVIRONMENTAL_MEASUREMENTS,
        Permission.READ_GOALS,
        Permission.READ_OWN_FEEDBACK,
        Permission.CREATE_FEEDBACK,
        Permission.READ_MEETINGS,
        Permission.SUBMIT_WHISTLEBLOWING,
        Permission.ACCESS_TIME_REGISTRATION,
        Permission.READ_LEGAL_REGISTER,
    }),
    Role.ANSATT: frozenset({
        Permission.ACCESS_DASHBOARD,
        Permission.READ_DOCUMENTS,
        Permission.CREATE_INCIDENTS,
        Permission.READ_FORMS,
        Permission.FILL_FORMS,
        Permission.READ_CHEMICALS,
        Permission.READ_OWN_TRAINING,
        Permission.CREATE_TRAINING,
        Permission.READ_OWN_FEEDBACK,
        Permission.CREATE_FEEDBACK,
        Permission.SUBMIT_WHISTLEBLOWING,
        Permission.ACCESS_TIME_REGISTRATION,
        Permission.READ_LEGAL_REGISTER,
    }),
    Role.BHT: frozenset({
        Permission.ACCESS_DASHBOARD,
        Permission.VIEW_ANALYTICS,
        Permission.READ_DOCUMENTS,
        Permission.READ_INCIDENTS,
        Permission.CREATE_INCIDENTS,
        Permission.READ_RISKS,
        Permission.CREATE_RISKS,
        Permission.READ_ACTIONS,
        Permission.READ_FORMS,
        Permission.FILL_FORMS,
        Permission.READ_CHEMICALS,
        Permission.READ_OWN_TRAINING,
        Permission.READ_ALL_TRAINING,
        Permission.READ_AUDITS,
        Permission.READ_INSPECTIONS,
        Permission.READ_ENVIRONMENT,
        Permission.RECORD_ENVIRONMENTAL_MEASUREMENTS,
        Permission.READ_SECURITY,
        Permission.READ_GOALS,
        Permission.READ_OWN_FEEDBACK,
        Permission.READ_ALL_FEEDBACK,
        Permission.CREATE_FEEDBACK,
        Permission.READ_MANAGEMENT_REVIEWS,
        Permission.READ_MEETINGS,
        Permission.VIEW_ALL_MEETINGS,
        Permission.SUBMIT_WHISTLEBLOWING,
        Permission.EXPORT_REPORTS,
        Permission.VIEW_ALL_REPORTS,
        Permission.ACCESS_TIME_REGISTRATION,
        Permission.READ_LEGAL_REGISTER,
    }),
    Role.REVISOR: frozenset({
        Permission.ACCESS_DASHBOARD,
        Permission.VIEW_ANALYTICS,
        Permission.READ_DOCUMENTS,
        Permission.READ_INCIDENTS,
        Permission.READ_RISKS,
        Permission.READ_ACTIONS,
        Permission.READ_FORMS,
        Permission.READ_CHEMICALS,
        Permission.READ_OWN_TRAINING,
        Permission.READ_ALL_TRAINING,
        Permission.READ_AUDITS,
        Permission.READ_INSPECTIONS,
        Permission.READ_ENVIRONMENT,
        Permission.READ_SECURITY,
        Permission.READ_GOALS,
        Permission.READ_OWN_FEEDBACK,
        Permission.READ_ALL_FEEDBACK,
        Permission.READ_MANAGEMENT_REVIEWS,
        Permission.READ_MEETINGS,
        Permission.VIEW_ALL_MEETINGS,
        Permission.READ_USERS,
        Permission.READ_SETTINGS,
        Permission.EXPORT_REPORTS,
        Permission.VIEW_ALL_REPORTS,
        Permission.ACCESS_TIME_REGISTRATION,
        Permission.READ_LEGAL_REGISTER,
    }),
}


ROLE_DISPLAY_NAMES: dict[Role, str] = {
    Role.ADMIN: "Administrator",
    Role.HMS: "H&S Manager",
    Role.LEDER: "Manager",
    Role.VERNEOMBUD: "Safety Representative",
    Role.ANSATT: "Employee",
    Role.BHT: "Occupational Health Service",
    Role.REVISOR: "Auditor",
}

ROLE_DESCRIPTIONS: dict[Role, str] = {
    Role.ADMIN: "Full access to all features in the organization",
    Role.HMS: "Manages the H&S system with full access to all H&S-related features",
    Role.LEDER: "Can manage their department and handle H&S tasks",
    Role.VERNEOMBUD: "Can report incidents, risk assessments, and participate in H&S work",
    Role.ANSATT: "Can report incidents, fill out forms, and read documents",
    Role.BHT: "Read access to everything and can report incidents and risk assessments",
    Role.REVISOR: "Read-only access to all H&S data for audit purposes",
}


@lru_cache(maxsize=32)
def _role_from_string(value: str) -> Optional[Role]:
    try:
        return Role(value.strip().upper())
    except ValueError:
        return None


def normalize_role(role: Union[Role, str, None]) -> Optional[Role]:
    """Normalize a role value to a Role enum.

    Args:
        role: Role enum, role string (any case) or None.

    Returns:
        Role enum, or None if the value is not a known role.
    """
    if role is None:
        return None
    if isinstance(role, Role):
        return role
    if isinstance(role, str):
        return _role_from_string(role)
    return None


def get_role_permissions(role: Union[Role, str, None]) -> frozenset[Permission]:
    """Get the set of permissions granted to a role.

    Unknown roles yield an empty set.
    """
    role_enum = normalize_role(role)
    if role_enum is None:
        return frozenset()
    return ROLE_PERMISSIONS.get(role_enum, frozenset())


def get_permissions(role: Union[Role, str, None]) -> dict[Permission, bool]:
    """Get the full permission flag map for a role.

    Every permission is present in the result; flags the role does not
    hold are False.
    """
    granted = get_role_permissions(role)
    return {permission: permission in granted for permission in Permission}


def has_permission(role: Union[Role, str, None], permission: Union[Permission, str]) -> bool:
    """Check if a role holds a permission flag."""
    try:
        permission_enum = Permission(permission)
    except ValueError:
        return False
    return permission_enum in get_role_permissions(role)


def get_visible_nav_items(role: Union[Role, str, None]) -> dict[str, bool]:
    """Compute which navigation sections a role can see."""
    p = get_role_permissions(role)
    return {
        "dashboard": Permission.ACCESS_DASHBOARD in p,
        "documents": Permission.READ_DOCUMENTS in p,
        "forms": Permission.READ_FORMS in p,
        "risks": Permission.READ_RISKS in p,
        "risk_register": Permission.READ_RISKS in p,
        "incidents": Permission.READ_INCIDENTS in p or Permission.CREATE_INCIDENTS in p,
        "inspections": Permission.READ_INSPECTIONS in p,
        "chemicals": Permission.READ_CHEMICALS in p,
        "training": Permission.READ_OWN_TRAINING in p or Permission.READ_ALL_TRAINING in p,
        "audits": Permission.READ_AUDITS in p,
        "management_reviews": Permission.READ_MANAGEMENT_REVIEWS in p,
        "annual_hms_plan": Permission.READ_MANAGEMENT_REVIEWS in p,
        "meetings": Permission.READ_MEETINGS in p,
        "whistleblowing": (
            Permission.VIEW_WHISTLEBLOWING in p or Permission.SUBMIT_WHISTLEBLOWING in p
        ),
        "actions": Permission.READ_ACTIONS in p,
        "goals": Permission.READ_GOALS in p,
        "environment": Permission.READ_ENVIRONMENT in p,
        "security": Permission.READ_SECURITY in p,
        "feedback": (
            Permission.READ_OWN_FEEDBACK in p
            or Permission.READ_ALL_FEEDBACK in p
            or Permission.CREATE_FEEDBACK in p
        ),
        "complaints": Permission.CREATE_INCIDENTS in p,
        "settings": Permission.READ_SETTINGS in p,
        "time_registration": Permission.ACCESS_TIME_REGISTRATION in p,
        "legal_register": Permission.READ_LEGAL_REGISTER in p,
    }


def get_role_display_name(role: Union[Role, str, None]) -> str:
    """Human-readable role name."""
    role_enum = normalize_role(role)
    if role_enum is None:
        return str(role) if role else ""
    return ROLE_DISPLAY_NAMES[role_enum]


def get_role_description(role: Union[Role, str, None]) -> str:
    role_enum = normalize_role(role)
    if role_enum is None:
        return ""
    return ROLE_DESCRIPTIONS[role_enum]
