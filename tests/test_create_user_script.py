"""Tests for the account provisioning script."""

import unittest
from unittest.mock import patch

from helpers import add_group, make_session_factory

from tracker.core.security import verify_password
from tracker.scripts import create_user
from tracker.services.resolver import get_user_by_login


class TestCreateUserScript(unittest.TestCase):
    def setUp(self) -> None:
        self.factory = make_session_factory()
        db = self.factory()
        add_group(db, "editusers")
        add_group(db, "editbugs")
        db.close()
        patcher = patch("tracker.scripts.create_user.SessionLocal", self.factory)
        patcher.start()
        self.addCleanup(patcher.stop)

    def _user(self):
        db = self.factory()
        self.addCleanup(db.close)
        return get_user_by_login(db, "admin@x.com")

    def test_creates_account_with_memberships(self) -> None:
        code = create_user.main(
            [
                "admin@x.com",
                "a-secure-password",
                "--name",
                "Site Admin",
                "--group",
                "editusers",
                "--group",
                "editbugs",
                "--bless",
                "editusers",
            ]
        )
        self.assertEqual(code, 0)
        user = self._user()
        self.assertEqual(user.realname, "Site Admin")
        self.assertTrue(verify_password("a-secure-password", user.cryptpassword))
        self.assertEqual([g.name for g in user.groups], ["editbugs", "editusers"])
        self.assertEqual([g.name for g in user.bless_groups], ["editusers"])

    def test_rerun_keeps_account_and_adds_missing_groups(self) -> None:
        self.assertEqual(create_user.main(["admin@x.com", "--group", "editusers"]), 0)
        self.assertEqual(create_user.main(["admin@x.com", "--group", "editusers", "--group", "editbugs"]), 0)
        user = self._user()
        self.assertEqual([g.name for g in user.groups], ["editbugs", "editusers"])
        self.assertEqual(len(user.group_rows), 2)

    def test_unknown_group_fails_without_creating(self) -> None:
        self.assertEqual(create_user.main(["admin@x.com", "--group", "no-such-group"]), 1)
        self.assertIsNone(self._user())


if __name__ == "__main__":
    unittest.main()
