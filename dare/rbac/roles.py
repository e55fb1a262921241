# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Default roles and their grant sets, seeded once at deploy time."""

from dare.models.enums import PermissionAction, PermissionResource

from .permissions import ACTIONS, MODULES

A = PermissionAction
R = PermissionResource

ADMIN_ROLE_NAME = "admin"

_USER_MANAGEMENT = MODULES["user_management"]
_YOUTH_PROFILE = [
    R.YOUTH_PROFILES,
    R.YOUTH_EDUCATION,
    R.YOUTH_CERTIFICATIONS,
    R.YOUTH_SKILLS,
]
_BUSINESS = [R.BUSINESSES, R.BUSINESS_YOUTH]
_MENTOR = MODULES["mentor"]
_ADMIN = [R.REPORTS, R.SYSTEM_SETTINGS]


def _grants(
    resources: list[PermissionResource], *actions: PermissionAction
) -> list[tuple[str, str]]:
    return [(r.value, a.value) for r in resources for a in actions]


# Admin is allowed everything through the evaluator bypass. The explicit rows
# keep listings and exports meaningful.
ADMIN_PERMISSIONS = [
    (resource.value, action)
    for resource in _USER_MANAGEMENT + _YOUTH_PROFILE + _BUSINESS + _MENTOR + _ADMIN
    for action in ACTIONS
]

MENTOR_PERMISSIONS = _grants(_YOUTH_PROFILE + _BUSINESS + _MENTOR, A.VIEW) + _grants(
    [R.MENTORSHIP_MESSAGES, R.BUSINESS_ADVICE], A.EDIT, A.CREATE
)

REVIEWER_PERMISSIONS = _grants(_BUSINESS + _YOUTH_PROFILE + [R.REPORTS], A.VIEW) + [
    (R.REPORTS.value, A.CREATE.value)
]

MANAGER_PERMISSIONS = _grants(
    _USER_MANAGEMENT + _YOUTH_PROFILE + _BUSINESS + _MENTOR + [R.REPORTS], A.VIEW
) + _grants(
    _YOUTH_PROFILE + _BUSINESS + [R.MENTORS, R.MENTOR_ASSIGNMENTS, R.REPORTS],
    A.EDIT,
    A.CREATE,
)

# Only admin is a true system role; the rest can be edited or removed later
DEFAULT_ROLES = [
    {
        "name": ADMIN_ROLE_NAME,
        "description": "Full access to every module of the program tracker.",
        "is_system": True,
        "is_editable": True,
        "permissions": ADMIN_PERMISSIONS,
    },
    {
        "name": "mentor",
        "description": "Views assigned youth and businesses, writes advice.",
        "is_system": False,
        "is_editable": True,
        "permissions": MENTOR_PERMISSIONS,
    },
    {
        "name": "reviewer",
        "description": "Read-only access to profiles and businesses, creates reports.",
        "is_system": False,
        "is_editable": True,
        "permissions": REVIEWER_PERMISSIONS,
    },
    {
        "name": "manager",
        "description": "Runs day-to-day program operations.",
        "is_system": False,
        "is_editable": True,
        "permissions": MANAGER_PERMISSIONS,
    },
    {
        "name": "user",
        "description": "Authenticated account without any grants.",
        "is_system": False,
        "is_editable": True,
        "permissions": [],
    },
]
