"""
Provision an account and its group memberships (e.g. the first admin or a
service bot). Run from project root:
  python -m tracker.scripts.create_user EMAIL [PASSWORD] [--name NAME]
      [--group GROUP ...] [--bless GROUP ...] [--iam-username NAME]
Example:
  python -m tracker.scripts.create_user admin@example.com your-secure-password \
      --name "Site Admin" --group editusers --bless editusers

Re-running is safe: an existing account is kept and only missing memberships
are added.
"""
import argparse
import logging
import sys

from sqlalchemy.orm import Session

from tracker.core.config import get_settings
from tracker.core.database import SessionLocal
from tracker.models import User, UserGroupMap
from tracker.services.accounts import insert_user
from tracker.services.errors import UserServiceError
from tracker.services.groups import check_groups_by_name
from tracker.services.resolver import get_user_by_login

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def _grant(db: Session, user: User, group_names: list[str], isbless: bool) -> int:
    """Add missing memberships (or bless rights); returns how many were added."""
    have = {r.group_id for r in user.group_rows if r.isbless == isbless}
    added = 0
    for group in check_groups_by_name(db, group_names):
        if group.id in have:
            continue
        user.group_rows.append(UserGroupMap(group=group, isbless=isbless))
        have.add(group.id)
        added += 1
    return added


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a user account (no registration UI).")
    parser.add_argument("email", help="Login name")
    parser.add_argument("password", nargs="?", default=None, help="Password (omit for no password login)")
    parser.add_argument("--name", default="", help="Full name")
    parser.add_argument("--iam-username", default=None, help="IAM username")
    parser.add_argument("--group", action="append", default=[], help="Group to join (repeatable)")
    parser.add_argument("--bless", action="append", default=[], help="Group to grant bless rights on (repeatable)")
    args = parser.parse_args(argv)

    settings = get_settings()
    db = SessionLocal()
    try:
        user = get_user_by_login(db, args.email)
        if user is None:
            user = insert_user(
                db,
                settings,
                args.email,
                full_name=args.name,
                password=args.password,
                iam_username=args.iam_username,
            )
            logger.info("Created user '%s' (id=%s).", user.login_name, user.id)
        else:
            logger.info("User '%s' already exists (id=%s); keeping it.", user.login_name, user.id)

        joined = _grant(db, user, args.group, isbless=False)
        blessed = _grant(db, user, args.bless, isbless=True)
        db.commit()
        logger.info("Memberships added: groups=%s bless=%s", joined, blessed)
        return 0
    except UserServiceError as e:
        db.rollback()
        logger.error("Cannot provision '%s': %s", args.email, e.message)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
