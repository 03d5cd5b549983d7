"""Player token endpoint."""

from fastapi import APIRouter

from api.schemas import TokenResponse
from api.session import issue_player_token

router = APIRouter()


@router.post("/session")
async def new_session() -> TokenResponse:
    """Issue a signed token for a new player."""
    token, user_id = issue_player_token()
    return TokenResponse(token=token, user_id=user_id)
