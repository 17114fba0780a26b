"""
auth/seed.py -- Literal startup configuration: demo users and route rules.

The plaintext passwords below exist only long enough to be hashed in
build_credential_store(); the store itself holds encoded hashes.

Rule order matters. "/admin/**" and "/managers" do not overlap, but any rule
added later that is more specific than an existing wildcard must be inserted
before that wildcard or it will never match.
"""

from __future__ import annotations

import logging

from auth.models import RouteRule, User
from auth.passwords import hash_password
from auth.policy import AccessPolicy
from auth.rules import RouteRuleTable
from auth.store import CredentialStore
from core.config import get_settings

logger = logging.getLogger("rolegate.auth")

# (username, plaintext password, roles)
SEED_USERS: tuple[tuple[str, str, tuple[str, ...]], ...] = (
    ("paul", "password", ("USER",)),
    ("artemas", "StrongPassword!", ("USER", "ADMIN")),
    ("james", "James1234", ("USER", "MANAGER")),
)

SEED_RULES: tuple[RouteRule, ...] = (
    RouteRule("/admin/**", frozenset({"ADMIN"})),
    RouteRule("/managers", frozenset({"MANAGER", "ADMIN"})),
)


def build_credential_store(seed=SEED_USERS) -> CredentialStore:
    """Hash each seed password and return a populated CredentialStore."""
    settings = get_settings()
    users = []
    for username, password, roles in seed:
        user = User(username, hash_password(password), frozenset(roles))
        if settings.log_password_hashes:
            logger.info("Seeded %s with hash %s", username, user.password_hash)
        users.append(user)
    return CredentialStore(users)


def build_policy(seed=SEED_USERS, rules=SEED_RULES) -> AccessPolicy:
    """Build the AccessPolicy used by the app and the CLI."""
    store = build_credential_store(seed)
    policy = AccessPolicy(store, RouteRuleTable(rules))
    logger.info("Access policy ready (%d users, %d rules)", len(store), len(policy.rules))
    return policy
