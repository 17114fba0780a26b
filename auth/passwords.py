"""
auth/passwords.py -- Delegating password encoder.

Every stored hash carries its scheme id as a prefix: "{bcrypt}$2b$10$..." or
"{pbkdf2_sha256}310000$<salt>$<digest>". verify_password() reads the prefix
and dispatches to that scheme, so hashes from several schemes can live in the
same credential store and the default scheme can change without
invalidating anything already stored.

Security design decisions:
  bcrypt: used directly (no passlib wrapper). Cost factor comes from
       Settings.bcrypt_rounds. The salt is generated per call and embedded
       in the bcrypt string, so the same password never hashes the same
       way twice.

  pbkdf2_sha256: hashlib.pbkdf2_hmac with a 16-byte random salt. Iteration
       count is stored in the hash so it can be raised later without
       breaking old hashes. Digests are compared with hmac.compare_digest.

  Failure mode: verify_password() returns False on anything it cannot
       parse. A malformed hash is a configuration problem, not a reason to
       let a request through or to crash it.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import secrets

import bcrypt

from auth.models import HASH_PREFIX_RE
from core.config import get_settings

logger = logging.getLogger("rolegate.auth")

_PBKDF2_SALT_BYTES = 16
BCRYPT_MAX_BYTES = 72


# ---------------------------------------------------------------------------
# bcrypt
# ---------------------------------------------------------------------------


def _bcrypt_encode(plain: str) -> str:
    """bcrypt only reads the first 72 bytes. Longer passwords are refused, not truncated."""
    raw = plain.encode("utf-8")
    if len(raw) > BCRYPT_MAX_BYTES:
        raise ValueError(f"bcrypt passwords cannot be longer than {BCRYPT_MAX_BYTES} bytes (got {len(raw)})")
    rounds = get_settings().bcrypt_rounds
    return bcrypt.hashpw(raw, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def _bcrypt_verify(plain: str, body: str) -> bool:
    raw = plain.encode("utf-8")
    if len(raw) > BCRYPT_MAX_BYTES:
        # No stored bcrypt hash can come from a password this long.
        logger.debug("Rejecting %d-byte password for bcrypt hash", len(raw))
        return False
    return bcrypt.checkpw(raw, body.encode("utf-8"))


# ---------------------------------------------------------------------------
# PBKDF2-HMAC-SHA256
# ---------------------------------------------------------------------------


def _b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def _pbkdf2_encode(plain: str) -> str:
    iterations = get_settings().pbkdf2_iterations
    salt = secrets.token_bytes(_PBKDF2_SALT_BYTES)
    digest = hashlib.pbkdf2_hmac("sha256", plain.encode("utf-8"), salt, iterations)
    return f"{iterations}${_b64(salt)}${_b64(digest)}"


def _pbkdf2_verify(plain: str, body: str) -> bool:
    iterations, salt_b64, digest_b64 = body.split("$")
    salt = base64.b64decode(salt_b64, validate=True)
    expected = base64.b64decode(digest_b64, validate=True)
    actual = hashlib.pbkdf2_hmac("sha256", plain.encode("utf-8"), salt, int(iterations))
    return hmac.compare_digest(actual, expected)


# scheme id -> (encode, verify)
_SCHEMES = {
    "bcrypt": (_bcrypt_encode, _bcrypt_verify),
    "pbkdf2_sha256": (_pbkdf2_encode, _pbkdf2_verify),
}

SUPPORTED_SCHEMES: frozenset[str] = frozenset(_SCHEMES)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def scheme_of(encoded: str) -> str | None:
    """Return the {scheme} id of an encoded hash, or None if it has no prefix."""
    m = HASH_PREFIX_RE.match(encoded)
    return m.group(1) if m else None


def hash_password(plain: str, scheme: str | None = None) -> str:
    """Return "{scheme}<encoded>" for the plaintext password.

    scheme defaults to Settings.password_scheme. Raises ValueError for an
    unsupported scheme, or for a bcrypt password over BCRYPT_MAX_BYTES.
    Callers pass these from static config or the CLI, never from request
    input.
    """
    scheme = scheme or get_settings().password_scheme
    if scheme not in _SCHEMES:
        raise ValueError(f"Unsupported password scheme: {scheme!r}")
    encode, _verify = _SCHEMES[scheme]
    return f"{{{scheme}}}{encode(plain)}"


def verify_password(plain: str, encoded: str) -> bool:
    """Return True if the plaintext matches the encoded hash, False otherwise."""
    scheme = scheme_of(encoded)
    if scheme not in _SCHEMES:
        logger.warning("No password encoder mapped for scheme %r", scheme)
        return False
    _encode, verify = _SCHEMES[scheme]
    try:
        return verify(plain, encoded[len(scheme) + 2 :])
    except ValueError:
        # bcrypt raises ValueError on a bad salt; pbkdf2 on bad split/base64/int.
        # Over-long bcrypt input is filtered out above and never reaches here.
        logger.warning("Malformed %s password hash", scheme)
        return False


# Timing equalization dummy hash.
# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones. CredentialStore.verify() checks against this
# when the username does not exist, so an unknown user costs the same as a
# wrong password.
DUMMY_HASH: str = hash_password("rolegate_timing_dummy")
