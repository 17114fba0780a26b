"""
auth/store.py -- Read-only in-memory credential store.

Pattern: Repository. CredentialStore is the only thing that knows where users
live; the policy and HTTP layers ask it to verify an identity and never touch
the underlying mapping.

The store is filled once at construction and never mutated, so it can be
shared across concurrent requests without locking. All validation happens in
__init__: a store that constructed successfully is well-formed.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from types import MappingProxyType

from auth.errors import BadCredential, ConfigurationError, UnknownUser
from auth.models import User
from auth.passwords import DUMMY_HASH, SUPPORTED_SCHEMES, scheme_of, verify_password

logger = logging.getLogger("rolegate.auth")


class CredentialStore:
    """Repository for User entities keyed by username.

    Usage:
        store = CredentialStore([User("admin", hash_password("secret"), {"ADMIN"})])
        user = store.verify("admin", "secret")
    """

    def __init__(self, users: Iterable[User]) -> None:
        by_name: dict[str, User] = {}
        for user in users:
            if user.username in by_name:
                raise ConfigurationError(f"Duplicate username: {user.username!r}")
            scheme = scheme_of(user.password_hash)
            if scheme not in SUPPORTED_SCHEMES:
                raise ConfigurationError(f"Unsupported password scheme {scheme!r} for user {user.username!r}")
            by_name[user.username] = user
        if not by_name:
            raise ConfigurationError("Credential store needs at least one user")
        self._users = MappingProxyType(by_name)

    def __contains__(self, username: object) -> bool:
        return username in self._users

    def __len__(self) -> int:
        return len(self._users)

    @property
    def usernames(self) -> tuple[str, ...]:
        return tuple(self._users)

    def get(self, username: str) -> User | None:
        return self._users.get(username)

    def roles(self) -> frozenset[str]:
        """Return every role held by at least one user."""
        return frozenset().union(*(u.roles for u in self._users.values()))

    def verify(self, username: str, password: str) -> User:
        """Verify a claimed identity and return the matching User.

        Always runs the password check whether or not the user exists:
        - Unknown username: checks against DUMMY_HASH (same cost as a real check)
        - Wrong password: checks against the real hash (same cost)

        Raises UnknownUser or BadCredential on failure.
        """
        user = self._users.get(username)
        if user is None:
            # Equalize timing -- do NOT return early before hashing
            verify_password(password, DUMMY_HASH)
            raise UnknownUser(username)
        if not verify_password(password, user.password_hash):
            raise BadCredential(username)
        return user
