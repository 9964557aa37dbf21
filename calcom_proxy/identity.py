"""
Firebase ID token verification via JWKS.
The caller's identity comes only from the Authorization: Bearer header.
"""
import logging
from dataclasses import dataclass
from typing import Annotated

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient

from calcom_proxy.config import FIREBASE_ISSUER_PREFIX, FIREBASE_JWKS_URI
from calcom_proxy.errors import InvalidToken

logger = logging.getLogger(__name__)

# Firebase uids are at most 128 characters
_MAX_UID_LENGTH = 128


@dataclass(frozen=True)
class Identity:
    uid: str
    email: str | None = None


class IdentityVerifier:
    """Verifies Firebase ID tokens for one project. PyJWKClient caches the key set."""

    def __init__(self, project_id: str, jwks_uri: str = FIREBASE_JWKS_URI):
        self.project_id = project_id
        self.issuer = f"{FIREBASE_ISSUER_PREFIX}{project_id}"
        self._jwks_client = PyJWKClient(uri=jwks_uri, cache_jwk_set=True, lifespan=300)

    def verify(self, token: str) -> Identity:
        """
        Verify signature, iss, aud, exp and iat. Returns the token subject.
        Raises InvalidToken on any failure.
        """
        try:
            signing_key = self._jwks_client.get_signing_key_from_jwt(token)
            claims = jwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256"],
                audience=self.project_id,
                issuer=self.issuer,
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise InvalidToken("Auth token expired")
        except (jwt.PyJWTError, ValueError) as e:
            logger.warning("Auth token verification failed: %s", e)
            raise InvalidToken()

        uid = claims.get("sub")
        if not isinstance(uid, str) or not uid or len(uid) > _MAX_UID_LENGTH:
            logger.warning("Auth token has an unusable subject")
            raise InvalidToken()
        return Identity(uid=uid, email=claims.get("email"))


security = HTTPBearer(auto_error=False)


def get_bearer_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str:
    """Extract Bearer token from Authorization header. Missing header and other schemes are both 401."""
    if credentials is None or credentials.scheme != "Bearer" or not credentials.credentials:
        raise InvalidToken("Missing auth token")
    return credentials.credentials


def get_caller(
    request: Request,
    token: Annotated[str, Depends(get_bearer_token)],
) -> Identity:
    """Dependency: valid Bearer token -> caller identity. Runs in the threadpool (JWKS fetch blocks)."""
    verifier = request.app.state.verifier
    return verifier.verify(token)


Caller = Annotated[Identity, Depends(get_caller)]
