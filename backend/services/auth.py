"""
Token Authentication for the chat service.

Tokens are HS256 JWTs issued by the login service (out of scope here); this
module only verifies them and resolves the identity they carry.

- Identity is the `sub` claim; tokens from the legacy login service carry a
  `userId` claim instead and are still accepted
- Expired or tampered tokens fail verification
- `verify_user` is the FastAPI dependency for REST routes
"""

import logging
import time
from typing import Optional

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config import runtime_config
from errors import AuthenticationError

logger = logging.getLogger(__name__)

TOKEN_EXPIRY_HOURS = 24 * 7

# Optional Bearer token extractor (doesn't auto-raise on missing)
_bearer_scheme = HTTPBearer(auto_error=False)


class TokenVerifier:
    """Verifies JWTs and resolves the identity they carry."""

    _instance: Optional["TokenVerifier"] = None

    def __init__(self, secret: Optional[str] = None, algorithm: Optional[str] = None):
        self._secret = secret or runtime_config.jwt_secret
        self._algorithm = algorithm or runtime_config.jwt_algorithm

    @classmethod
    def get_instance(cls) -> "TokenVerifier":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def create_token(self, identity: str, expires_in: float = TOKEN_EXPIRY_HOURS * 3600, **claims) -> str:
        """Create a signed token for an identity (used by tooling and tests)."""
        now = time.time()
        payload = {"sub": identity, "iat": now, "exp": now + expires_in, **claims}
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify_token(self, token: str) -> Optional[str]:
        """Verify a token. Returns the identity or None."""
        if not token or not self._secret:
            return None
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError:
            logger.debug("Token rejected: expired")
            return None
        except jwt.InvalidTokenError:
            logger.debug("Token rejected: invalid")
            return None

        identity = payload.get("sub") or payload.get("userId")
        return str(identity) if identity else None

    def authenticate(self, token: str) -> str:
        """Like verify_token but raises AuthenticationError on failure."""
        identity = self.verify_token(token)
        if identity is None:
            raise AuthenticationError("Authentication failed", details="Invalid or expired token")
        return identity


def get_token_verifier() -> TokenVerifier:
    """Get the singleton token verifier."""
    return TokenVerifier.get_instance()


# =============================================================================
# FastAPI Dependencies
# =============================================================================


async def verify_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> str:
    """
    Auth dependency for any signed-in user.

    Returns:
        The caller's identity.

    Raises:
        HTTPException 401 if auth fails
    """
    if credentials and credentials.credentials:
        identity = verifier.verify_token(credentials.credentials)
        if identity:
            return identity
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    raise HTTPException(status_code=401, detail="Authentication required")
