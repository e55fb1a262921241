# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Management commands run at deploy time, never from request handlers."""

import argparse
import logging
import sys
from collections.abc import Callable

from sqlalchemy.orm import Session

from dare.config import settings
from dare.database import SessionLocal, engine, transaction
from dare.exceptions import RBACError
from dare.logging_config import setup_logging
from dare.models import Base, User
from dare.services import rbac_seed_service, rbac_service

logger = logging.getLogger("dare.cli")


def cmd_init_db(db: Session, args: argparse.Namespace) -> int:
    """Create tables directly, for development databases without Alembic."""
    Base.metadata.create_all(bind=engine)
    logger.info("Created tables on %s", engine.url.render_as_string(hide_password=True))
    return 0


def cmd_seed(db: Session, args: argparse.Namespace) -> int:
    if rbac_seed_service.seed_rbac_data(db):
        logger.info("RBAC seed completed")
    else:
        logger.info("RBAC seed already completed, nothing to do")
    return 0


def cmd_reset_admin(db: Session, args: argparse.Namespace) -> int:
    count = rbac_seed_service.reset_admin_permissions(db)
    logger.info("Admin role now holds %d permissions", count)
    return 0


def cmd_sync_catalog(db: Session, args: argparse.Namespace) -> int:
    result = rbac_seed_service.sync_permission_catalog(db)
    logger.info("Catalog: %(created)d created, %(total_possible)d total", result)
    return 0


def cmd_create_user(db: Session, args: argparse.Namespace) -> int:
    role = rbac_service.get_role_by_name(db, args.role)
    if role is None:
        logger.error("Role %r not found", args.role)
        return 1
    if db.query(User).filter(User.username == args.username).first():
        logger.error("User %r already exists", args.username)
        return 1

    with transaction(db):
        db.add(
            User(
                username=args.username,
                full_name=args.full_name or args.username,
                email=args.email,
                role_id=role.id,
            )
        )
    logger.info("Created user %r with role %r", args.username, role.name)
    return 0


COMMANDS: dict[str, Callable[[Session, argparse.Namespace], int]] = {
    "init-db": cmd_init_db,
    "seed": cmd_seed,
    "reset-admin": cmd_reset_admin,
    "sync-catalog": cmd_sync_catalog,
    "create-user": cmd_create_user,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dare", description="DARE access control management commands."
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        help="Logging level (default: %(default)s).",
    )
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("init-db", help="Create all tables without running migrations.")
    sub.add_parser("seed", help="Seed default roles and grants once.")
    sub.add_parser("reset-admin", help="Grant every catalog entry to admin.")
    sub.add_parser("sync-catalog", help="Insert missing permission catalog rows.")

    user = sub.add_parser("create-user", help="Create a staff account.")
    user.add_argument("username")
    user.add_argument("--role", required=True, help="Role name to assign.")
    user.add_argument("--full-name", default=None)
    user.add_argument("--email", default=None)
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point for the management CLI."""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level.upper())

    db = SessionLocal()
    try:
        return COMMANDS[args.command](db, args)
    except RBACError as exc:
        logger.error("%s", exc.message)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
