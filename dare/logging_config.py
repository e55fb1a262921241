# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Logging setup shared by the API and the management CLI."""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger with a single stream handler.

    Calling it again only adjusts the level, so the lifespan handler and the
    CLI can both call it safely.
    """
    root = logging.getLogger()
    root.setLevel(level)

    if any(getattr(h, "_dare_handler", False) for h in root.handlers):
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._dare_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)

    # SQL echo is controlled by settings.sql_echo, keep the engine logger quiet
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
