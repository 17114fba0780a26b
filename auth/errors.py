"""
auth/errors.py -- Exception types for authentication and static configuration.

AuthFailure and its subclasses are per-request outcomes. AccessPolicy.decide()
catches them and collapses both into DENY_UNAUTHENTICATED, so callers outside
auth/ never learn whether the username or the password was wrong.

ConfigurationError is a startup-time failure. It subclasses ValueError so it
reads like the validation errors raised by core.config.Settings.

Layer rule: no imports from api/ or core/.
"""


class AuthFailure(Exception):
    """Base class for a failed identity verification."""

    def __init__(self, username: str) -> None:
        super().__init__(username)
        self.username = username


class UnknownUser(AuthFailure):
    """No user with the claimed username exists."""

    def __str__(self) -> str:
        return f"unknown user {self.username!r}"


class BadCredential(AuthFailure):
    """The user exists but the supplied password does not match."""

    def __str__(self) -> str:
        return f"bad credential for {self.username!r}"


class ConfigurationError(ValueError):
    """Static user or rule configuration is malformed; the app must not start."""
