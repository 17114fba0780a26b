"""
auth/policy.py -- Access policy evaluator.

AccessPolicy combines the credential store and the route rule table into a
single allow/deny decision per request. It is constructed once at startup
and stored on app.state; there is no process-wide singleton.

decide() is a pure function of (credentials, path, static config): it holds
no per-request state, never retries, and never raises for an auth failure.
UnknownUser and BadCredential both come back as DENY_UNAUTHENTICATED so the
caller cannot tell which half of the credential was wrong.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging

from auth.errors import AuthFailure
from auth.models import AccessRequest, AuthDecision, Outcome
from auth.rules import RouteRuleTable
from auth.store import CredentialStore

logger = logging.getLogger("rolegate.auth")


class AccessPolicy:
    def __init__(self, store: CredentialStore, rules: RouteRuleTable) -> None:
        self._store = store
        self._rules = rules
        self._warn_unheld_roles()

    @property
    def store(self) -> CredentialStore:
        return self._store

    @property
    def rules(self) -> RouteRuleTable:
        return self._rules

    def _warn_unheld_roles(self) -> None:
        """Log rules that name a role no user holds.

        Such a role is usually a typo ("MANAGERS" for "MANAGER"). The rule is
        kept as declared; only admins holding another listed role can pass it.
        """
        held = self._store.roles()
        for rule in self._rules:
            unheld = sorted(rule.required_roles - held)
            if unheld:
                logger.warning("Route rule %r requires roles no user holds: %s", rule.pattern, ", ".join(unheld))

    def decide(self, request: AccessRequest) -> AuthDecision:
        """Authenticate the caller, then authorize them for request.path."""
        creds = request.credentials
        if creds is None:
            logger.debug("No credentials for %s", request.path)
            return AuthDecision(Outcome.DENY_UNAUTHENTICATED)

        try:
            user = self._store.verify(creds.username, creds.password)
        except AuthFailure as exc:
            logger.info("Authentication failed for %s: %s", request.path, exc)
            return AuthDecision(Outcome.DENY_UNAUTHENTICATED)

        rule = self._rules.match(request.path)
        if not rule.required_roles or user.has_any_role(rule.required_roles):
            return AuthDecision(Outcome.ALLOW, matched_rule=rule, user=user)

        logger.info(
            "User %r forbidden on %s (rule %r requires any of %s)",
            user.username,
            request.path,
            rule.pattern,
            ", ".join(sorted(rule.required_roles)),
        )
        return AuthDecision(Outcome.DENY_FORBIDDEN, matched_rule=rule, user=user)
