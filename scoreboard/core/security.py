"""Shared-secret gate and signed token helpers.

The gate is a confirmation step, not access control: anyone who knows the
shared password passes it. Tokens only save the caller from re-entering the
password within one session and carry workflow step state between requests.
"""

import hmac
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from scoreboard.core.config import settings

GATE_TOKEN_TYPE = "gate"
STEP_TOKEN_TYPE = "step"


def verify_gate_password(password: str | None) -> bool:
    """Compare a submitted password with the configured gate password."""
    if not password:
        return False
    return hmac.compare_digest(
        password.encode("utf-8"),
        settings.GATE_PASSWORD.encode("utf-8"),
    )


def _encode(claims: dict[str, Any], expires_delta: timedelta | None) -> str:
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.GATE_TOKEN_EXPIRE_MINUTES)
    to_encode = dict(claims)
    to_encode["exp"] = datetime.now(timezone.utc) + expires_delta
    return jwt.encode(
        to_encode,
        settings.GATE_TOKEN_SECRET,
        algorithm=settings.GATE_TOKEN_ALGORITHM,
    )


def decode_token(token: str) -> dict[str, Any] | None:
    """Decode and validate a token."""
    try:
        return jwt.decode(
            token,
            settings.GATE_TOKEN_SECRET,
            algorithms=[settings.GATE_TOKEN_ALGORITHM],
        )
    except JWTError:
        return None


def create_gate_token(expires_delta: timedelta | None = None) -> str:
    """Create a token proving the gate password was entered."""
    return _encode({"type": GATE_TOKEN_TYPE}, expires_delta)


def verify_gate_token(token: str | None) -> bool:
    if not token:
        return False
    payload = decode_token(token)
    return bool(payload and payload.get("type") == GATE_TOKEN_TYPE)


def create_step_token(
    step: str,
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Serialize a workflow step state into a signed token."""
    return _encode({"type": STEP_TOKEN_TYPE, "step": step, "data": data}, expires_delta)


def read_step_token(token: str) -> tuple[str, dict[str, Any]] | None:
    """Return (step, data) from a step token, or None if invalid/expired."""
    payload = decode_token(token)
    if not payload or payload.get("type") != STEP_TOKEN_TYPE:
        return None
    return payload.get("step"), payload.get("data") or {}
