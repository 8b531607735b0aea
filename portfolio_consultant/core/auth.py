from __future__ import annotations

import base64
import hashlib
import hmac
import json
import os
import time
from typing import Any, Final, Optional, Tuple

from portfolio_consultant.core.config import Settings

PASSWORD_ALGORITHM: Final = "pbkdf2_sha256"
PASSWORD_ITERATIONS: Final = 260_000
PASSWORD_SALT_BYTES: Final = 16

SESSION_ALGORITHM: Final = "hs256"
SESSION_COOKIE_NAME: Final = "pc_session"


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _b64decode(data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode((data + padding).encode("ascii"))


def _derive(password: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)


def hash_password(password: str) -> str:
    """Hash a password with PBKDF2-HMAC-SHA256 and a random salt.

    Stored as ``algorithm$iterations$salt_b64$hash_b64`` so the iteration
    count can be raised later without invalidating existing hashes.
    """

    if not isinstance(password, str) or password == "":
        raise ValueError("Password must be a non-empty string.")

    salt = os.urandom(PASSWORD_SALT_BYTES)
    digest = _derive(password, salt, PASSWORD_ITERATIONS)
    return (
        f"{PASSWORD_ALGORITHM}${PASSWORD_ITERATIONS}"
        f"${_b64encode(salt)}${_b64encode(digest)}"
    )


def verify_password(password: str, hashed: str) -> bool:
    """Return True when ``password`` matches the stored hash."""

    try:
        algorithm, iter_str, salt_b64, hash_b64 = hashed.split("$", 3)
        if algorithm != PASSWORD_ALGORITHM:
            return False
        iterations = int(iter_str)
        salt = _b64decode(salt_b64)
        expected = _b64decode(hash_b64)
    except (ValueError, TypeError):
        return False

    return hmac.compare_digest(_derive(password, salt, iterations), expected)


def _session_secret(settings: Settings) -> bytes:
    if not settings.session_secret:
        raise RuntimeError(
            "Session secret not configured. Set PC_SESSION_SECRET to sign cookies.",
        )
    return settings.session_secret.encode("utf-8")


def _sign(settings: Settings, payload_bytes: bytes) -> bytes:
    return hmac.new(_session_secret(settings), payload_bytes, hashlib.sha256).digest()


def create_session_token(
    settings: Settings,
    user_id: int,
    ttl_seconds: Optional[int] = None,
) -> str:
    """Create an HMAC-signed session token for ``user_id``.

    Format: ``base64url(payload).base64url(signature)``; the JSON payload
    carries ``sub`` (user id), ``exp`` (Unix timestamp) and ``alg``.
    """

    if ttl_seconds is None:
        ttl_seconds = settings.session_ttl_seconds

    payload: dict[str, Any] = {
        "sub": user_id,
        "exp": int(time.time()) + int(ttl_seconds),
        "alg": SESSION_ALGORITHM,
    }
    payload_bytes = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode(
        "utf-8",
    )
    return f"{_b64encode(payload_bytes)}.{_b64encode(_sign(settings, payload_bytes))}"


def decode_session_token(
    settings: Settings,
    token: str,
) -> Tuple[int, dict[str, Any]]:
    """Validate a session token and return ``(user_id, payload)``.

    Raises ``ValueError`` for malformed, tampered or expired tokens.
    """

    try:
        payload_b64, sig_b64 = token.split(".", 1)
        payload_bytes = _b64decode(payload_b64)
        signature = _b64decode(sig_b64)
    except ValueError as exc:
        raise ValueError("Invalid session token format.") from exc

    if not hmac.compare_digest(signature, _sign(settings, payload_bytes)):
        raise ValueError("Invalid session token signature.")

    try:
        payload = json.loads(payload_bytes.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValueError("Invalid session token payload.") from exc

    if payload.get("alg") != SESSION_ALGORITHM:
        raise ValueError("Invalid session token algorithm.")

    if int(payload.get("exp", 0)) < int(time.time()):
        raise ValueError("Session token has expired.")

    return int(payload.get("sub")), payload


__all__ = [
    "hash_password",
    "verify_password",
    "create_session_token",
    "decode_session_token",
    "SESSION_COOKIE_NAME",
]
