"""Unit tests for tracker.services.matching: shape classification, matchers, limits and suggest."""

import unittest
from unittest.mock import patch

from helpers import add_user, caller_for, make_session, make_settings

from tracker.services.errors import AccessDenied
from tracker.services.matching import (
    MatchKind,
    classify,
    effective_limit,
    match_users,
    suggest_users,
)


class TestClassify(unittest.TestCase):
    """classify picks the matcher from the shape of the match string."""

    def test_colon_prefix_is_nickname(self) -> None:
        self.assertEqual(classify(":jdoe"), (MatchKind.NICKNAME, "jdoe"))

    def test_at_prefix_is_nickname(self) -> None:
        self.assertEqual(classify("@jdoe"), (MatchKind.NICKNAME, "jdoe"))

    def test_contains_at_is_login(self) -> None:
        self.assertEqual(classify("jdoe@exa"), (MatchKind.LOGIN, "jdoe@exa"))

    def test_whitespace_is_phrase(self) -> None:
        self.assertEqual(classify("Jane Do")[0], MatchKind.PHRASE)

    def test_non_ascii_is_phrase(self) -> None:
        self.assertEqual(classify("Zoë")[0], MatchKind.PHRASE)

    def test_plain_text(self) -> None:
        self.assertEqual(classify("jdo"), (MatchKind.TEXT, "jdo"))


class TestEffectiveLimit(unittest.TestCase):
    """The caller may lower the installation maximum but never raise it."""

    def test_default_is_installation_maximum(self) -> None:
        settings = make_settings(USER_MATCH_MAX_RESULTS=50)
        self.assertEqual(effective_limit(None, settings), 50)

    def test_lower_limit_is_honoured(self) -> None:
        settings = make_settings(USER_MATCH_MAX_RESULTS=50)
        self.assertEqual(effective_limit(5, settings), 5)

    def test_higher_limit_is_capped(self) -> None:
        settings = make_settings(USER_MATCH_MAX_RESULTS=50)
        self.assertEqual(effective_limit(500, settings), 50)


class TestMatchUsers(unittest.TestCase):
    """match_users against an in-memory user store."""

    def setUp(self) -> None:
        self.db = make_session()
        self.john = add_user(self.db, "john@x.com", "John Smith", active_days_ago=3)
        self.joanna = add_user(self.db, "jlee@y.com", "Joanna Lee", active_days_ago=1)
        self.jordan = add_user(self.db, "jordan@x.com", "Jordan Park", enabled=False)
        self.jane = add_user(self.db, "jane@z.com", "Jane Doe [:jdoe]", active_days_ago=2)
        add_user(self.db, "alice@x.com", "Alice Liddell", active_days_ago=0)

    def tearDown(self) -> None:
        self.db.close()

    def test_login_and_display_name_matches_exclude_disabled(self) -> None:
        users = match_users(self.db, "jo", limit=25)
        self.assertEqual([u.login_name for u in users], ["jlee@y.com", "john@x.com"])

    def test_include_disabled(self) -> None:
        users = match_users(self.db, "jo", limit=25, exclude_disabled=False)
        self.assertIn("jordan@x.com", [u.login_name for u in users])

    def test_exact_login_returns_disabled_account(self) -> None:
        users = match_users(self.db, "  JORDAN@x.com ", limit=25)
        self.assertEqual([u.id for u in users], [self.jordan.id])

    def test_nickname_prefix(self) -> None:
        users = match_users(self.db, ":jd", limit=25)
        self.assertEqual([u.id for u in users], [self.jane.id])

    def test_login_prefix_only_matches_logins(self) -> None:
        users = match_users(self.db, "jo@", limit=25)
        self.assertEqual(users, [])
        users = match_users(self.db, "john@", limit=25)
        self.assertEqual([u.id for u in users], [self.john.id])

    def test_like_wildcards_are_literal(self) -> None:
        self.assertEqual(match_users(self.db, "j%", limit=25), [])
        self.assertEqual(match_users(self.db, "j_hn", limit=25), [])

    def test_blank_match_returns_nothing(self) -> None:
        self.assertEqual(match_users(self.db, "   ", limit=25), [])

    def test_limit_applies(self) -> None:
        users = match_users(self.db, "j", limit=2)
        self.assertEqual([u.login_name for u in users], ["jlee@y.com", "jane@z.com"])

    def test_phrase_orders_by_relevance(self) -> None:
        smith = add_user(self.db, "jsmith@y.com", "Joanna Smith", active_days_ago=0)
        users = match_users(self.db, "Joanna Le", limit=25)
        self.assertEqual([u.id for u in users], [self.joanna.id, smith.id])

    def test_phrase_scores_a_bounded_candidate_set(self) -> None:
        smith = add_user(self.db, "jsmith@y.com", "Joanna Smith", active_days_ago=0)
        users = match_users(self.db, "Joanna Le", limit=1)
        self.assertEqual([u.id for u in users], [self.joanna.id])
        # only the most recently active candidate is scored
        with patch("tracker.services.matching.RANKED_CANDIDATE_FACTOR", 1):
            users = match_users(self.db, "Joanna Le", limit=1)
        self.assertEqual([u.id for u in users], [smith.id])


class TestSuggestUsers(unittest.TestCase):
    """suggest_users: logged-in only, at least three characters, enabled accounts."""

    def setUp(self) -> None:
        self.db = make_session()
        self.john = add_user(self.db, "john@x.com", "John Smith", active_days_ago=3)
        add_user(self.db, "johanna@x.com", "Johanna Old", enabled=False)

    def tearDown(self) -> None:
        self.db.close()

    def test_anonymous_denied(self) -> None:
        with self.assertRaises(AccessDenied):
            suggest_users(self.db, caller_for(None), "john")

    def test_short_text_returns_empty(self) -> None:
        self.assertEqual(suggest_users(self.db, caller_for(self.john), "jo"), [])

    def test_returns_enabled_matches(self) -> None:
        users = suggest_users(self.db, caller_for(self.john), "joh")
        self.assertEqual([u.id for u in users], [self.john.id])


if __name__ == "__main__":
    unittest.main()
