"""Gate token schemas."""

from scoreboard.schemas.common import BaseSchema


class GateTokenResponse(BaseSchema):
    """Token proving the shared password was confirmed."""

    token: str
    token_type: str = "gate"
    expires_in: int
