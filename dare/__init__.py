# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""DARE youth entrepreneurship program tracker: access control service."""

__version__ = "0.1.0"
