"""FastAPI dependency injection utilities."""

from datetime import date, datetime
from typing import Annotated
from zoneinfo import ZoneInfo

from fastapi import Depends, Header

from scoreboard.core.config import settings
from scoreboard.core.exceptions import GatePasswordError
from scoreboard.core.security import verify_gate_password, verify_gate_token
from scoreboard.services.storage import FileStorage, get_storage


def get_today() -> date:
    """Current date in SCHEDULER_TIMEZONE, the zone the daily sweep runs in."""
    return datetime.now(ZoneInfo(settings.SCHEDULER_TIMEZONE)).date()


def require_gate(
    x_gate_token: Annotated[str | None, Header(description="Token from /gate/verify")] = None,
    x_gate_password: Annotated[str | None, Header(description="Shared gate password")] = None,
) -> None:
    """Pass if the caller already verified the gate or sends the password now."""
    if verify_gate_token(x_gate_token):
        return
    if verify_gate_password(x_gate_password):
        return
    if x_gate_token or x_gate_password:
        raise GatePasswordError()
    raise GatePasswordError("Password confirmation required")


# Type aliases for dependency injection
Today = Annotated[date, Depends(get_today)]
Storage = Annotated[FileStorage, Depends(get_storage)]
GateVerified = Depends(require_gate)
