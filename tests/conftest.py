"""
tests/conftest.py -- Shared test fixtures for RoleGate.

This module provides:
  - store / rules / policy: the seed configuration built directly, for unit tests
  - client: TestClient running the real app (real lifespan, real middleware)
  - basic(): helper building an HTTP Basic Authorization header

Hash cost is lowered through the environment BEFORE any app module is
imported: get_settings() is cached on first call, and auth/passwords.py
computes its dummy hash at import time with whatever rounds it sees then.
"""

from __future__ import annotations

import base64
import os
from collections.abc import Generator

# CRITICAL: Set before any auth/core import so the cached Settings pick them up.
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("PBKDF2_ITERATIONS", "1000")
# Low enough that tests/test_rate_limit.py can exhaust it quickly.
os.environ.setdefault("REQUEST_RATE_LIMIT", "20/minute")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.policy import AccessPolicy
from auth.rules import RouteRuleTable
from auth.seed import SEED_RULES, SEED_USERS, build_credential_store
from auth.store import CredentialStore

PASSWORDS = {username: password for username, password, _roles in SEED_USERS}


def basic(username: str, password: str) -> dict[str, str]:
    """Return an Authorization header for HTTP Basic credentials."""
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return {"Authorization": f"Basic {token}"}


@pytest.fixture(scope="session")
def store() -> CredentialStore:
    """Seed credential store. Session-scoped: hashing three passwords per test adds up."""
    return build_credential_store()


@pytest.fixture
def rules() -> RouteRuleTable:
    return RouteRuleTable(SEED_RULES)


@pytest.fixture
def policy(store: CredentialStore, rules: RouteRuleTable) -> AccessPolicy:
    return AccessPolicy(store, rules)


@pytest.fixture(autouse=True)
def _reset_rate_limits() -> None:
    """Clear rate-limit counters so request counts never leak between tests."""
    limiter.reset()


@pytest.fixture(scope="module")
def client() -> Generator[TestClient, None, None]:
    """Yield a TestClient with the app's lifespan running.

    The context manager form is required: lifespan is what builds
    app.state.policy, and without it every gated request would fail.
    """
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c
