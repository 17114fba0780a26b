"""
auth/rules.py -- Ordered route rule table.

Rules are evaluated strictly in declared order and the first match wins.
A more specific pattern declared after a broader wildcard that covers it is
unreachable. The table does NOT reorder rules to fix that; it logs a
warning at construction and keeps the declared order.

Matching is by path segment, not raw string prefix: "/admin/**" covers
"/admin" and "/admin/reports" but not "/administrator".

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from auth.errors import ConfigurationError
from auth.models import RouteRule

logger = logging.getLogger("rolegate.auth")

# Governs any path no declared rule matches: authentication only.
DEFAULT_RULE = RouteRule("/**")


def _normalize(path: str) -> str:
    return path.rstrip("/") or "/"


def rule_matches(rule: RouteRule, path: str) -> bool:
    """Return True if the request path falls under the rule's pattern."""
    path = _normalize(path)
    prefix = rule.prefix
    if not rule.is_wildcard:
        return path == prefix
    if prefix == "/":
        return True
    return path == prefix or path.startswith(prefix + "/")


def _covers(earlier: RouteRule, later: RouteRule) -> bool:
    # Every path the later rule could match is already taken by the earlier one.
    return rule_matches(earlier, later.prefix) and (earlier.is_wildcard or not later.is_wildcard)


class RouteRuleTable:
    """First-match-wins lookup from request path to RouteRule."""

    def __init__(self, rules: Iterable[RouteRule]) -> None:
        self._rules = tuple(rules)
        if not self._rules:
            raise ConfigurationError("Route rule table needs at least one rule")
        for i, rule in enumerate(self._rules):
            if not isinstance(rule, RouteRule):
                raise ConfigurationError(f"Not a RouteRule: {rule!r}")
            for earlier in self._rules[:i]:
                if _covers(earlier, rule):
                    logger.warning(
                        "Route rule %r is unreachable: %r is declared earlier and covers it",
                        rule.pattern,
                        earlier.pattern,
                    )
                    break

    def __iter__(self):
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def match(self, path: str) -> RouteRule:
        """Return the first rule matching path, or DEFAULT_RULE if none does."""
        for rule in self._rules:
            if rule_matches(rule, path):
                return rule
        return DEFAULT_RULE
