"""Feed search syntax.

A search string is split into terms, each matched case-insensitively as a
substring of the message or the type:

- ``deploy failed``: either term matches
- ``deploy AND failed``: both terms must match; ``OR`` separates alternatives,
  so ``a AND b OR c`` means (a and b) or c
- ``-spam``: excluded, whatever the other terms say
- ``"build failed"``: a quoted phrase is one term
- ``type:security``: adds ``security`` to the type filter instead of matching text
"""

import re
from dataclasses import dataclass, field

from sqlalchemy import ColumnElement, and_, not_, or_

from herald.db.models.notification import NotificationRow

_TOKEN = re.compile(r'-?"[^"]*"|\S+')
_TYPE_PREFIX = "type:"


@dataclass
class SearchQuery:
    # Alternatives; each is a group of terms that must all match
    alternatives: list[tuple[str, ...]] = field(default_factory=list)
    excluded: list[str] = field(default_factory=list)
    types: list[str] = field(default_factory=list)


def _unquote(token: str) -> str:
    if len(token) >= 2 and token.startswith('"') and token.endswith('"'):
        return token[1:-1].strip()
    return token


def _close_clause(query: SearchQuery, terms: list[str], joined: bool) -> None:
    if not terms:
        return
    if joined:
        query.alternatives.append(tuple(terms))
    else:
        query.alternatives.extend((t,) for t in terms)


def parse_search(text: str | None) -> SearchQuery:
    query = SearchQuery()
    if not text:
        return query

    terms: list[str] = []
    joined = False
    for token in _TOKEN.findall(text):
        if token == "OR":
            _close_clause(query, terms, joined)
            terms, joined = [], False
        elif token == "AND":
            joined = True
        elif token.lower().startswith(_TYPE_PREFIX) and len(token) > len(_TYPE_PREFIX):
            value = token[len(_TYPE_PREFIX):].lower()
            if value not in query.types:
                query.types.append(value)
        elif token.startswith("-"):
            term = _unquote(token[1:])
            if term:
                query.excluded.append(term)
        else:
            term = _unquote(token)
            if term:
                terms.append(term)
    _close_clause(query, terms, joined)
    return query


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def term_matches(term: str) -> ColumnElement[bool]:
    pattern = f"%{_escape_like(term)}%"
    return or_(
        NotificationRow.message.ilike(pattern, escape="\\"),
        NotificationRow.type.ilike(pattern, escape="\\"),
    )


def search_conditions(query: SearchQuery) -> list[ColumnElement[bool]]:
    """Text predicates for a parsed search; the type filter is applied by the caller."""
    conditions = []
    if query.alternatives:
        conditions.append(
            or_(*(and_(*(term_matches(t) for t in group)) for group in query.alternatives))
        )
    conditions.extend(not_(term_matches(t)) for t in query.excluded)
    return conditions
