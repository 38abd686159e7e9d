"""Unit tests for tracker.services.group_filter: group constraints and membership disclosure."""

import unittest

from helpers import add_group, add_user, caller_for, join, make_session, make_settings

from tracker.services.errors import InvalidGroupReference
from tracker.services.group_filter import disclosable_groups, filter_users_by_group


class TestFilterUsersByGroup(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session()
        self.admins = add_group(self.db, "admins")
        self.qa = add_group(self.db, "qa")
        self.secret = add_group(self.db, "secret")
        self.caller_user = add_user(self.db, "caller@x.com")
        join(self.db, self.caller_user, self.qa)
        self.ann = add_user(self.db, "ann@x.com")
        join(self.db, self.ann, self.admins)
        self.ben = add_user(self.db, "ben@x.com")
        join(self.db, self.ben, self.qa)
        self.cat = add_user(self.db, "cat@x.com")
        self.users = [self.ann, self.ben, self.cat]
        self.caller = caller_for(self.caller_user)

    def tearDown(self) -> None:
        self.db.close()

    def test_no_constraint_returns_input(self) -> None:
        out = filter_users_by_group(self.db, self.caller, self.users)
        self.assertEqual(out, self.users)

    def test_group_ids_or_group_names_are_ored(self) -> None:
        out = filter_users_by_group(
            self.db,
            self.caller,
            self.users,
            group_ids=[self.admins.id],
            group_names=["qa"],
        )
        self.assertEqual([u.id for u in out], [self.ann.id, self.ben.id])

    def test_unknown_group_id_fails(self) -> None:
        with self.assertRaises(InvalidGroupReference):
            filter_users_by_group(self.db, self.caller, self.users, group_ids=[9999])

    def test_unknown_group_name_fails(self) -> None:
        with self.assertRaises(InvalidGroupReference):
            filter_users_by_group(self.db, self.caller, self.users, group_names=["nope"])

    def test_group_name_caller_is_not_in_fails(self) -> None:
        with self.assertRaises(InvalidGroupReference):
            filter_users_by_group(self.db, self.caller, self.users, group_names=["admins"])

    def test_no_member_gives_empty_list(self) -> None:
        out = filter_users_by_group(
            self.db, self.caller, [self.ann, self.cat], group_names=["qa"]
        )
        self.assertEqual(out, [])


class TestDisclosableGroups(unittest.TestCase):
    """Which of a user's memberships the caller may see."""

    def setUp(self) -> None:
        self.db = make_session()
        self.settings = make_settings()
        self.editbugs = add_group(self.db, "editbugs")
        self.security = add_group(self.db, "core-security")
        self.target = add_user(self.db, "target@x.com")
        join(self.db, self.target, self.editbugs)
        join(self.db, self.target, self.security)

    def tearDown(self) -> None:
        self.db.close()

    def _names(self, caller_user) -> list[str]:
        return [g.name for g in disclosable_groups(caller_for(caller_user), self.target, self.settings)]

    def test_self_sees_everything(self) -> None:
        self.assertEqual(self._names(self.target), ["core-security", "editbugs"])

    def test_confidential_group_sees_everything(self) -> None:
        viewer = add_user(self.db, "viewer@x.com")
        join(self.db, viewer, add_group(self.db, self.settings.CONFIDENTIAL_GROUP))
        self.assertEqual(self._names(viewer), ["core-security", "editbugs"])

    def test_account_admin_sees_everything(self) -> None:
        admin = add_user(self.db, "admin@x.com")
        join(self.db, admin, add_group(self.db, self.settings.ACCOUNT_ADMIN_GROUP))
        self.assertEqual(self._names(admin), ["core-security", "editbugs"])

    def test_bless_rights_disclose_only_that_group(self) -> None:
        blesser = add_user(self.db, "blesser@x.com")
        join(self.db, blesser, self.editbugs, isbless=True)
        self.assertEqual(self._names(blesser), ["editbugs"])

    def test_others_see_nothing(self) -> None:
        other = add_user(self.db, "other@x.com")
        self.assertEqual(self._names(other), [])


if __name__ == "__main__":
    unittest.main()
