# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Error taxonomy for the access control layer.

Every mutating service operation raises one of these instead of returning a
sentinel. The API layer maps ``status_code`` and ``kind`` onto the response so
clients can tell a denied request apart from a missing role or a bad payload.
"""


class RBACError(Exception):
    """Base exception for access control errors."""

    status_code = 500
    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(RBACError):
    """Referenced role or grant does not exist."""

    status_code = 404
    kind = "not_found"


class ConflictError(RBACError):
    """A role with the requested name already exists."""

    status_code = 409
    kind = "conflict"


class ForbiddenError(RBACError):
    """Operation refused: protected role or missing administrative grant."""

    status_code = 403
    kind = "forbidden"


class ValidationError(RBACError):
    """Resource or action outside the permission catalog."""

    status_code = 400
    kind = "validation_error"


class StorageError(RBACError):
    """The underlying database is unavailable or failed."""

    status_code = 500
    kind = "storage_error"
