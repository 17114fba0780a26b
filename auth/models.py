"""
auth/models.py -- Domain dataclasses for authentication and authorization.

Pattern: Data class (pure data container, near-zero logic). Stores, rule
tables and the policy do the work; these types only own shape and the
construction-time checks that keep a malformed literal out of the tables.

All types are frozen. The credential store and rule table are shared by every
request without locking, which is only safe because nothing here can change
after construction.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

from auth.errors import ConfigurationError

# A stored hash always starts with its scheme id, e.g. "{bcrypt}$2b$10$...".
HASH_PREFIX_RE = re.compile(r"^\{([a-z0-9_]+)\}")


def _role_set(roles) -> frozenset[str]:
    if isinstance(roles, str):
        roles = (roles,)
    result = frozenset(roles)
    for role in result:
        if not isinstance(role, str) or not role.strip() or role != role.strip():
            raise ConfigurationError(f"Invalid role name: {role!r}")
    return result


@dataclass(frozen=True)
class User:
    """A known identity in the credential store.

    password_hash is the full encoded form including its {scheme} prefix,
    never the plaintext. roles may be given as any iterable of names and is
    normalized to a frozenset.
    """

    username: str
    password_hash: str = field(repr=False)
    roles: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        if not self.username or self.username != self.username.strip():
            raise ConfigurationError(f"Invalid username: {self.username!r}")
        if not HASH_PREFIX_RE.match(self.password_hash or ""):
            raise ConfigurationError(f"Password hash for {self.username!r} has no {{scheme}} prefix")
        # frozen dataclass: bypass __setattr__ to store the normalized set
        object.__setattr__(self, "roles", _role_set(self.roles))

    def has_any_role(self, roles: frozenset[str]) -> bool:
        return not self.roles.isdisjoint(roles)


class MatchMode(str, Enum):
    ANY = "ANY"  # caller must hold at least one listed role


@dataclass(frozen=True)
class RouteRule:
    """Maps a path pattern to the roles allowed to reach it.

    A pattern ending in "/**" (or "/*") covers the prefix itself and its
    whole subtree; any other pattern is a literal path. An empty
    required_roles means any authenticated caller is allowed.
    """

    pattern: str
    required_roles: frozenset[str] = frozenset()
    match_mode: MatchMode = MatchMode.ANY

    def __post_init__(self) -> None:
        if not self.pattern.startswith("/"):
            raise ConfigurationError(f"Route pattern must start with '/': {self.pattern!r}")
        body = self.pattern.removesuffix("/**") if self.pattern.endswith("/**") else self.pattern.removesuffix("/*")
        if "*" in body:
            raise ConfigurationError(f"Wildcards are only allowed as a trailing segment: {self.pattern!r}")
        object.__setattr__(self, "required_roles", _role_set(self.required_roles))

    @property
    def is_wildcard(self) -> bool:
        return self.pattern.endswith(("/*", "/**"))

    @property
    def prefix(self) -> str:
        """Pattern with the wildcard marker and trailing slash removed ("/" for the root)."""
        base = self.pattern.rstrip("*") if self.is_wildcard else self.pattern
        return base.rstrip("/") or "/"


class Outcome(str, Enum):
    ALLOW = "ALLOW"
    DENY_UNAUTHENTICATED = "DENY_UNAUTHENTICATED"
    DENY_FORBIDDEN = "DENY_FORBIDDEN"


@dataclass(frozen=True)
class AuthDecision:
    """Result of one AccessPolicy.decide() call.

    matched_rule is None when the request was rejected before rule lookup
    (missing or failed credentials). user is set whenever identity was
    verified, including for DENY_FORBIDDEN.
    """

    outcome: Outcome
    matched_rule: RouteRule | None = None
    user: User | None = None

    @property
    def allowed(self) -> bool:
        return self.outcome is Outcome.ALLOW


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class AccessRequest:
    """The slice of an HTTP request the policy needs: path and claimed identity."""

    path: str
    credentials: Credentials | None = None
