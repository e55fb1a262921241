# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Enumeration types for the permission catalog."""

from enum import Enum


class PermissionAction(str, Enum):
    """Operation class a grant authorizes.

    MANAGE is a separate grantable action. It does not imply the others.
    """

    VIEW = "view"
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"
    MANAGE = "manage"


class PermissionResource(str, Enum):
    """Protected entity categories of the tracking program."""

    # User management
    USERS = "users"
    ROLES = "roles"
    PERMISSIONS = "permissions"

    # Youth profiles
    YOUTH_PROFILES = "youth_profiles"
    YOUTH_EDUCATION = "youth_education"
    YOUTH_CERTIFICATIONS = "youth_certifications"
    YOUTH_SKILLS = "youth_skills"
    PORTFOLIO = "portfolio"
    EDUCATION = "education"

    # Businesses
    BUSINESSES = "businesses"
    BUSINESS_YOUTH = "business_youth"
    BUSINESS_MAKERSPACE = "business_makerspace"
    FEASIBILITY_ASSESSMENT = "feasibility_assessment"
    BUSINESS_TRACKING = "business_tracking"

    # Mentors
    MENTORS = "mentors"
    MENTOR_ASSIGNMENTS = "mentor_assignments"
    MENTORSHIP_MESSAGES = "mentorship_messages"
    BUSINESS_ADVICE = "business_advice"

    # Training
    TRAINING = "training"

    # Dashboard
    DASHBOARD = "dashboard"
    ACTIVITIES = "activities"

    # Administration
    REPORTS = "reports"
    SYSTEM_SETTINGS = "system_settings"
    DIAGNOSTICS = "diagnostics"
    UPLOADS = "uploads"

    # System
    SKILLS = "skills"
    MAKERSPACES = "makerspaces"
    CERTIFICATES = "certificates"
    SYSTEM = "system"
    ADMIN_PANEL = "admin_panel"
