"""Shared-password confirmation endpoint."""

from fastapi import APIRouter

from scoreboard.core.config import settings
from scoreboard.core.exceptions import GatePasswordError
from scoreboard.core.security import create_gate_token, verify_gate_password
from scoreboard.schemas.registration import GateRequest
from scoreboard.schemas.security import GateTokenResponse

router = APIRouter()


@router.post("/verify", response_model=GateTokenResponse)
def verify_gate(request: GateRequest):
    """
    Check the shared password once per session.
    The returned token is sent as X-Gate-Token on later gated calls.
    """
    if not verify_gate_password(request.password):
        raise GatePasswordError()
    return GateTokenResponse(
        token=create_gate_token(),
        expires_in=settings.GATE_TOKEN_EXPIRE_MINUTES * 60,
    )
