"""Player identity: signed tokens issued by the API and checked per request."""

from typing import Annotated
from uuid import uuid4

from fastapi import Header
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from config import config
from core.errors import Unauthenticated

TOKEN_SALT = "arcade21.player"


class PlayerTokenSigner:
    """Sign and verify player ids using itsdangerous."""

    def __init__(self, secret_key: str | None = None) -> None:
        """Initialize the signer with a secret key."""
        self._secret_key = secret_key or config.security.secret_key
        self._serializer = URLSafeTimedSerializer(self._secret_key, salt=TOKEN_SALT)

    def sign(self, user_id: str) -> str:
        """Create a signed token from a user id."""
        return self._serializer.dumps(user_id)

    def unsign(self, token: str, max_age: int | None = None) -> str | None:
        """
        Verify and extract the user id from a signed token.

        Args:
            token: The signed token to verify
            max_age: Maximum age in seconds (defaults to the configured token TTL)

        Returns:
            The user id if valid, None otherwise
        """
        max_age = max_age or config.security.token_ttl
        try:
            return self._serializer.loads(token, max_age=max_age)
        except (BadSignature, SignatureExpired):
            return None


# Global signer instance
_token_signer: PlayerTokenSigner | None = None


def get_token_signer() -> PlayerTokenSigner:
    """Get or create the token signer."""
    global _token_signer
    if _token_signer is None:
        _token_signer = PlayerTokenSigner()
    return _token_signer


def new_user_id() -> str:
    """Generate a fresh player id."""
    return f"usr_{uuid4().hex}"


def issue_player_token(user_id: str | None = None) -> tuple[str, str]:
    """
    Create a signed token for a player.

    Returns:
        (token, user_id)
    """
    user_id = user_id or new_user_id()
    return get_token_signer().sign(user_id), user_id


def resolve_player(token: str | None) -> str:
    """
    Extract the player id from a token.

    Raises:
        Unauthenticated: If the token is missing, forged or expired
    """
    if not token:
        raise Unauthenticated()
    user_id = get_token_signer().unsign(token)
    if user_id is None:
        raise Unauthenticated()
    return user_id


async def get_current_user(
    player_token: Annotated[str | None, Header(alias="X-Player-Token")] = None,
) -> str:
    """FastAPI dependency resolving the caller's player id."""
    return resolve_player(player_token)
