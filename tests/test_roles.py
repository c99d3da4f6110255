"""Tests for tenant roles, permission flags and navigation."""
import pytest

from ehs.auth.roles import (
    ROLE_PERMISSIONS,
    Permission,
    Role,
    get_permissions,
    get_role_description,
    get_role_display_name,
    get_role_permissions,
    get_visible_nav_items,
    has_permission,
    normalize_role,
)

EXPECTED_FLAGS: dict[Role, set[str]] = {
    Role.LEDER: {
        "access_dashboard", "view_analytics",
        "read_documents", "create_documents",
        "read_incidents", "create_incidents", "investigate_incidents", "close_incidents",
        "read_risks", "create_risks", "delete_risks",
        "read_actions", "create_actions", "update_actions",
        "read_forms", "fill_forms", "create_forms", "manage_forms",
        "read_chemicals", "create_chemicals", "update_chemicals",
        "read_own_training", "read_all_training", "assign_training",
        "read_audits",
        "read_inspections", "create_inspections", "conduct_inspections",
        "read_environment", "create_environment", "update_environment",
        "record_environmental_measurements",
        "read_security",
        "read_goals", "create_goals", "update_goals", "measure_goals",
        "read_own_feedback", "read_all_feedback", "create_feedback", "manage_feedback",
        "read_management_reviews",
        "read_meetings", "create_meetings", "organize_meetings",
        "submit_whistleblowing",
        "read_users", "read_settings",
        "export_reports", "view_all_reports",
        "access_time_registration", "read_legal_register",
    },
    Role.VERNEOMBUD: {
        "access_dashboard", "view_analytics",
        "read_documents",
        "read_incidents", "create_incidents",
        "read_risks", "create_risks",
        "read_actions", "create_actions",
        "read_forms", "fill_forms",
        "read_chemicals",
        "read_own_training",
        "read_audits",
        "read_inspections", "create_inspections", "conduct_inspections",
        "read_environment", "create_environment", "record_environmental_measurements",
        "read_goals",
        "read_own_feedback", "create_feedback",
        "read_meetings",
        "submit_whistleblowing",
        "access_time_registration", "read_legal_register",
    },
    Role.ANSATT: {
        "access_dashboard",
        "read_documents",
        "create_incidents",
        "read_forms", "fill_forms",
        "read_chemicals",
        "read_own_training", "create_training",
        "read_own_feedback", "create_feedback",
        "submit_whistleblowing",
        "access_time_registration", "read_legal_register",
    },
    Role.BHT: {
        "access_dashboard", "view_analytics",
        "read_documents",
        "read_incidents", "create_incidents",
        "read_risks", "create_risks",
        "read_actions",
        "read_forms", "fill_forms",
        "read_chemicals",
        "read_own_training", "read_all_training",
        "read_audits",
        "read_inspections",
        "read_environment", "record_environmental_measurements",
        "read_security",
        "read_goals",
        "read_own_feedback", "read_all_feedback", "create_feedback",
        "read_management_reviews",
        "read_meetings", "view_all_meetings",
        "submit_whistleblowing",
        "export_reports", "view_all_reports",
        "access_time_registration", "read_legal_register",
    },
    Role.REVISOR: {
        "access_dashboard", "view_analytics",
        "read_documents",
        "read_incidents",
        "read_risks",
        "read_actions",
        "read_forms",
        "read_chemicals",
        "read_own_training", "read_all_training",
        "read_audits",
        "read_inspections",
        "read_environment",
        "read_security",
        "read_goals",
        "read_own_feedback", "read_all_feedback",
        "read_management_reviews",
        "read_meetings", "view_all_meetings",
        "read_users", "read_settings",
        "export_reports", "view_all_reports",
        "access_time_registration", "read_legal_register",
    },
}


class TestRoleDefinitions:
    """Tests for role and permission definitions."""

    def test_role_enum_values(self) -> None:
        assert [r.value for r in Role] == [
            "ADMIN", "HMS", "LEDER", "VERNEOMBUD", "ANSATT", "BHT", "REVISOR",
        ]

    def test_permission_enum_values_are_snake_case(self) -> None:
        assert Permission.READ_DOCUMENTS.value == "read_documents"
        assert Permission.RECORD_ENVIRONMENTAL_MEASUREMENTS.value == "record_environmental_measurements"
        assert all(p.value == p.name.lower() for p in Permission)

    def test_every_role_has_an_entry(self) -> None:
        assert set(ROLE_PERMISSIONS) == set(Role)

    def test_admin_has_all_permissions(self) -> None:
        assert get_role_permissions(Role.ADMIN) == frozenset(Permission)

    def test_hms_has_everything_except_destructive_governance_flags(self) -> None:
        hms = get_role_permissions(Role.HMS)
        excluded = frozenset(Permission) - hms

        assert excluded == {
            Permission.DELETE_DOCUMENTS,
            Permission.DELETE_RISKS,
            Permission.DELETE_ACTIONS,
            Permission.DELETE_CHEMICALS,
            Permission.APPROVE_MANAGEMENT_REVIEWS,
            Permission.DELETE_USERS,
            Permission.UPDATE_SETTINGS,
        }

    @pytest.mark.parametrize("role", sorted(EXPECTED_FLAGS, key=lambda r: r.value))
    def test_role_flag_set(self, role: Role) -> None:
        granted = {p.value for p in get_role_permissions(role)}

        assert granted == EXPECTED_FLAGS[role]

    @pytest.mark.parametrize("role", list(Role))
    def test_flag_object_matches_flag_set(self, role: Role) -> None:
        flags = get_permissions(role)

        assert set(flags) == set(Permission)
        assert {p for p, allowed in flags.items() if allowed} == get_role_permissions(role)

    @pytest.mark.parametrize("role", list(Role))
    def test_admin_is_superset(self, role: Role) -> None:
        assert get_role_permissions(role) <= get_role_permissions(Role.ADMIN)

    def test_ansatt_permissions(self) -> None:
        ansatt = get_role_permissions(Role.ANSATT)

        assert Permission.READ_DOCUMENTS in ansatt
        assert Permission.CREATE_INCIDENTS in ansatt
        assert Permission.FILL_FORMS in ansatt
        assert Permission.READ_CHEMICALS in ansatt

        # Employees report incidents but do not browse them
        assert Permission.READ_INCIDENTS not in ansatt
        assert Permission.READ_RISKS not in ansatt
        assert Permission.MANAGE_USERS not in ansatt

    def test_revisor_is_read_only(self) -> None:
        revisor = get_role_permissions(Role.REVISOR)
        writes = [
            p for p in revisor
            if p.value.split("_", 1)[0] in {"create", "update", "delete", "approve", "manage", "close"}
        ]
        assert writes == []

    def test_no_tenant_role_other_than_admin_deletes_documents(self) -> None:
        holders = [r for r in Role if has_permission(r, Permission.DELETE_DOCUMENTS)]
        assert holders == [Role.ADMIN]


class TestRoleNormalization:
    """Tests for role parsing."""

    @pytest.mark.parametrize("value", ["ADMIN", "admin", " Admin "])
    def test_normalize_role_case_insensitive(self, value: str) -> None:
        assert normalize_role(value) == Role.ADMIN

    @pytest.mark.parametrize("value", [None, "", "owner", "superadmin"])
    def test_normalize_role_unknown(self, value) -> None:
        assert normalize_role(value) is None

    def test_unknown_role_has_no_permissions(self) -> None:
        assert get_role_permissions("owner") == frozenset()
        assert not has_permission("owner", Permission.READ_DOCUMENTS)

    def test_has_permission_accepts_strings(self) -> None:
        assert has_permission("leder", "investigate_incidents")
        assert not has_permission("ansatt", "investigate_incidents")

    def test_has_permission_unknown_flag(self) -> None:
        assert not has_permission(Role.ADMIN, "launch_rockets")


class TestPermissionMap:
    """Tests for the full flag map and navigation."""

    def test_get_permissions_covers_every_flag(self) -> None:
        flags = get_permissions(Role.VERNEOMBUD)

        assert set(flags) == set(Permission)
        assert flags[Permission.CREATE_INCIDENTS] is True
        assert flags[Permission.DELETE_RISKS] is False

    def test_get_permissions_without_role_is_all_false(self) -> None:
        assert not any(get_permissions(None).values())

    def test_nav_for_ansatt(self) -> None:
        nav = get_visible_nav_items(Role.ANSATT)

        assert nav["dashboard"] is True
        assert nav["documents"] is True
        assert nav["incidents"] is True  # via create_incidents
        assert nav["chemicals"] is True
        assert nav["risks"] is False
        assert nav["audits"] is False
        assert nav["settings"] is False

    def test_nav_for_admin_shows_everything(self) -> None:
        assert all(get_visible_nav_items(Role.ADMIN).values())

    def test_nav_without_role_hides_everything(self) -> None:
        assert not any(get_visible_nav_items(None).values())

    def test_display_names(self) -> None:
        assert get_role_display_name(Role.HMS) == "H&S Manager"
        assert get_role_display_name("verneombud") == "Safety Representative"
        assert get_role_display_name(None) == ""
        assert get_role_description(Role.REVISOR).startswith("Read-only")
