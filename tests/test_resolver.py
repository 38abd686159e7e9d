"""Unit tests for tracker.services.resolver: sources, dedupe, permissive faults and access rules."""

import unittest

from helpers import add_group, add_user, caller_for, join, make_session, make_settings

from tracker.services.errors import AccessDenied, MissingParameter, NotFound
from tracker.services.resolver import resolve_users


class TestResolveUsersAnonymous(unittest.TestCase):
    """Logged-out callers may only resolve by login name."""

    def setUp(self) -> None:
        self.db = make_session()
        self.settings = make_settings()
        self.alice = add_user(self.db, "alice@x.com", "Alice")

    def tearDown(self) -> None:
        self.db.close()

    def test_requires_a_source(self) -> None:
        with self.assertRaises(MissingParameter):
            resolve_users(self.db, caller_for(None), self.settings)

    def test_ids_denied(self) -> None:
        with self.assertRaises(AccessDenied):
            resolve_users(
                self.db, caller_for(None), self.settings, names=["alice@x.com"], ids=[self.alice.id]
            )

    def test_match_denied(self) -> None:
        with self.assertRaises(AccessDenied):
            resolve_users(self.db, caller_for(None), self.settings, match=["ali"])

    def test_names_resolve_case_insensitively(self) -> None:
        result = resolve_users(self.db, caller_for(None), self.settings, names=["ALICE@x.com"])
        self.assertEqual([u.id for u in result.users], [self.alice.id])
        self.assertEqual(result.faults, [])


class TestResolveUsersAuthenticated(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session()
        self.settings = make_settings()
        self.alice = add_user(self.db, "alice@x.com", "Alice Liddell", active_days_ago=1)
        self.bob = add_user(self.db, "bob@x.com", "Bob Builder", active_days_ago=2)
        self.caller = caller_for(self.alice)

    def tearDown(self) -> None:
        self.db.close()

    def test_unknown_name_fails(self) -> None:
        with self.assertRaises(NotFound):
            resolve_users(self.db, self.caller, self.settings, names=["nobody@x.com"])

    def test_permissive_collects_faults(self) -> None:
        result = resolve_users(
            self.db,
            self.caller,
            self.settings,
            names=["nobody@x.com", "bob@x.com"],
            permissive=True,
        )
        self.assertEqual([u.id for u in result.users], [self.bob.id])
        self.assertEqual(len(result.faults), 1)
        self.assertEqual(result.faults[0]["name"], "nobody@x.com")
        self.assertTrue(result.faults[0]["error"])
        self.assertIn("nobody@x.com", result.faults[0]["message"])

    def test_unknown_id_fails(self) -> None:
        with self.assertRaises(NotFound):
            resolve_users(self.db, self.caller, self.settings, ids=[9999])

    def test_same_user_from_every_source_appears_once(self) -> None:
        result = resolve_users(
            self.db,
            self.caller,
            self.settings,
            names=["bob@x.com"],
            ids=[self.bob.id],
            match=["bob", "Bob B"],
        )
        self.assertEqual([u.id for u in result.users], [self.bob.id])

    def test_limit_is_per_match_string(self) -> None:
        add_user(self.db, "bobby@x.com", "Bobby Tables", active_days_ago=3)
        result = resolve_users(
            self.db, self.caller, self.settings, match=["bob", "ali"], limit=1
        )
        self.assertEqual(
            [u.login_name for u in result.users], ["bob@x.com", "alice@x.com"]
        )

    def test_visibility_groups_hide_unrelated_users(self) -> None:
        settings = make_settings(USE_VISIBILITY_GROUPS=True)
        with self.assertRaises(AccessDenied) as ctx:
            resolve_users(self.db, self.caller, settings, ids=[self.bob.id])
        self.assertIn(str(self.bob.id), ctx.exception.message)

    def test_visibility_groups_allow_shared_group_and_self(self) -> None:
        settings = make_settings(USE_VISIBILITY_GROUPS=True)
        team = add_group(self.db, "team")
        join(self.db, self.alice, team)
        join(self.db, self.bob, team)
        caller = caller_for(self.alice)
        result = resolve_users(self.db, caller, settings, ids=[self.alice.id, self.bob.id])
        self.assertEqual({u.id for u in result.users}, {self.alice.id, self.bob.id})


if __name__ == "__main__":
    unittest.main()
