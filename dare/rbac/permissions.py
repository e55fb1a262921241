# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Permission catalog: the closed vocabulary of resources and actions."""

from collections.abc import Iterator

from dare.exceptions import ValidationError
from dare.models.enums import PermissionAction, PermissionResource

R = PermissionResource

# Resources grouped the way the program screens group them
MODULES: dict[str, list[PermissionResource]] = {
    "user_management": [R.USERS, R.ROLES, R.PERMISSIONS],
    "youth_profile": [
        R.YOUTH_PROFILES,
        R.YOUTH_EDUCATION,
        R.YOUTH_CERTIFICATIONS,
        R.YOUTH_SKILLS,
        R.PORTFOLIO,
        R.EDUCATION,
    ],
    "business": [
        R.BUSINESSES,
        R.BUSINESS_YOUTH,
        R.BUSINESS_MAKERSPACE,
        R.FEASIBILITY_ASSESSMENT,
        R.BUSINESS_TRACKING,
    ],
    "mentor": [
        R.MENTORS,
        R.MENTOR_ASSIGNMENTS,
        R.MENTORSHIP_MESSAGES,
        R.BUSINESS_ADVICE,
    ],
    "training": [R.TRAINING],
    "dashboard": [R.DASHBOARD, R.ACTIVITIES],
    "admin": [R.REPORTS, R.SYSTEM_SETTINGS, R.DIAGNOSTICS, R.UPLOADS],
    "system": [
        R.SKILLS,
        R.MAKERSPACES,
        R.CERTIFICATES,
        R.SYSTEM,
        R.ADMIN_PANEL,
    ],
}

RESOURCES: list[str] = [r.value for r in PermissionResource]
ACTIONS: list[str] = [a.value for a in PermissionAction]

_RESOURCE_SET = frozenset(RESOURCES)
_ACTION_SET = frozenset(ACTIONS)
_MODULE_BY_RESOURCE = {
    resource.value: module
    for module, resources in MODULES.items()
    for resource in resources
}


def is_valid_resource(resource: str) -> bool:
    return resource in _RESOURCE_SET


def is_valid_action(action: str) -> bool:
    return action in _ACTION_SET


def validate_pair(resource: str, action: str) -> None:
    """Raise ValidationError unless both strings are catalog members."""
    if not is_valid_resource(resource):
        raise ValidationError(f"Unknown resource '{resource}'")
    if not is_valid_action(action):
        raise ValidationError(f"Unknown action '{action}'")


def module_for(resource: str) -> str:
    return _MODULE_BY_RESOURCE[resource]


def describe(resource: str, action: str) -> str:
    """Human readable label, e.g. ``edit youth profiles``."""
    return f"{action} {resource}".replace("_", " ")


def catalog_entries() -> Iterator[dict[str, str]]:
    """Yield every grantable resource/action combination."""
    for resource in RESOURCES:
        for action in ACTIONS:
            yield {
                "resource": resource,
                "action": action,
                "module": module_for(resource),
                "description": describe(resource, action),
            }


def resources_and_actions() -> dict[str, list[str]]:
    return {"resources": list(RESOURCES), "actions": list(ACTIONS)}
