"""
Free-text user matching.

A match string is classified by its shape and handed to a matcher that
builds the SQL condition (and, for phrases, a relevance score):

  ":jdoe" / "@jdoe"   nickname prefix
  "jdoe@ex"           login prefix
  "Jane Do"           phrase: word prefixes of the real name, ranked by relevance
  "jdo"               real-name word, nickname or login prefix
"""

import logging
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from tracker.models import User
from tracker.services.context import CallerContext
from tracker.services.errors import AccessDenied

if TYPE_CHECKING:
    from tracker.core.config import Settings

logger = logging.getLogger(__name__)

# suggest() is an autocomplete: short prefixes are too broad to be useful.
SUGGEST_MIN_LENGTH = 3
SUGGEST_LIMIT = 25
# Ranked matchers score at most this many times limit candidates
RANKED_CANDIDATE_FACTOR = 10

LIKE_ESCAPE = "\\"


class MatchKind(str, Enum):
    NICKNAME = "nickname"
    LOGIN = "login"
    PHRASE = "phrase"
    TEXT = "text"


def classify(term: str) -> tuple[MatchKind, str]:
    """Return the matcher kind for a trimmed match string and the text to match on."""
    if len(term) > 1 and term[0] in ":@":
        return MatchKind.NICKNAME, term[1:]
    if "@" in term:
        return MatchKind.LOGIN, term
    if any(ch.isspace() for ch in term) or not term.isascii():
        return MatchKind.PHRASE, term
    return MatchKind.TEXT, term


def _escape_like(value: str) -> str:
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def _prefix(column, value: str) -> ColumnElement:
    return column.ilike(_escape_like(value) + "%", escape=LIKE_ESCAPE)


def _word_prefix(column, value: str) -> ColumnElement:
    """value prefixes the column or any space-separated word in it."""
    escaped = _escape_like(value)
    return or_(
        column.ilike(escaped + "%", escape=LIKE_ESCAPE),
        column.ilike("% " + escaped + "%", escape=LIKE_ESCAPE),
    )


class Matcher:
    """Builds the WHERE condition for one kind of match string."""

    ranked = False

    def condition(self, term: str) -> ColumnElement:
        raise NotImplementedError

    def relevance(self, user: User, term: str) -> int:
        return 0


class NicknameMatcher(Matcher):
    def condition(self, term: str) -> ColumnElement:
        return _prefix(User.nickname, term)


class LoginMatcher(Matcher):
    def condition(self, term: str) -> ColumnElement:
        return _prefix(User.login_name, term)


class TextMatcher(Matcher):
    def condition(self, term: str) -> ColumnElement:
        return or_(
            _word_prefix(User.realname, term),
            _prefix(User.nickname, term),
            _prefix(User.login_name, term),
        )


class PhraseMatcher(Matcher):
    """Any word of the phrase prefixing a real-name word; more matched words rank higher."""

    ranked = True

    def condition(self, term: str) -> ColumnElement:
        return or_(*(_word_prefix(User.realname, word) for word in term.split()))

    def relevance(self, user: User, term: str) -> int:
        name_words = (user.realname or "").casefold().split()
        return sum(
            1
            for word in term.casefold().split()
            if any(nw.startswith(word) for nw in name_words)
        )


MATCHERS: dict[MatchKind, Matcher] = {
    MatchKind.NICKNAME: NicknameMatcher(),
    MatchKind.LOGIN: LoginMatcher(),
    MatchKind.PHRASE: PhraseMatcher(),
    MatchKind.TEXT: TextMatcher(),
}


def effective_limit(requested: int | None, settings: "Settings") -> int:
    """Caller may lower the installation maximum but never raise it."""
    ceiling = settings.USER_MATCH_MAX_RESULTS
    if requested is None:
        return ceiling
    return min(requested, ceiling)


def search_users(
    db: Session, term: str, limit: int, exclude_disabled: bool = True
) -> list[User]:
    """Run the matcher for term's shape; most recently active first (or most relevant)."""
    kind, needle = classify(term)
    matcher = MATCHERS[kind]
    query = db.query(User).filter(matcher.condition(needle))
    if exclude_disabled:
        query = query.filter(User.is_enabled.is_(True))
    query = query.order_by(User.last_activity_ts.desc().nulls_last(), User.id)

    if matcher.ranked:
        # sorted() is stable, so ties keep last-activity order
        candidates = query.limit(limit * RANKED_CANDIDATE_FACTOR).all()
        ranked = sorted(candidates, key=lambda u: matcher.relevance(u, needle), reverse=True)
        return ranked[:limit]
    return query.limit(limit).all()


def match_users(
    db: Session, text: str, limit: int, exclude_disabled: bool = True
) -> list[User]:
    """
    Users matching one match string.

    An exact (case-insensitive) login match wins outright and is returned even
    when the account is disabled.
    """
    term = (text or "").strip()
    if not term:
        return []
    exact = (
        db.query(User)
        .filter(func.lower(User.login_name) == term.lower())
        .first()
    )
    if exact is not None:
        return [exact]
    users = search_users(db, term, limit, exclude_disabled=exclude_disabled)
    logger.debug(
        "User match completed",
        extra={"match_kind": classify(term)[0].value, "limit": limit, "result_count": len(users)},
    )
    return users


def suggest_users(db: Session, caller: CallerContext, text: str) -> list[User]:
    """Autocomplete over enabled accounts for logged-in callers."""
    if not caller.is_authenticated:
        raise AccessDenied("You must log in before using the user match feature.")
    term = (text or "").strip()
    if len(term) < SUGGEST_MIN_LENGTH:
        return []
    return search_users(db, term, SUGGEST_LIMIT, exclude_disabled=True)
