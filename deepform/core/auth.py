"""Owner authentication.

Owners run interviews and campaigns; they sign in with Clerk and send the
session JWT as a bearer token. Respondents never authenticate: shared-link
and campaign routes are keyed by an unguessable token instead.
"""

import base64
from dataclasses import dataclass
from functools import lru_cache

import jwt as pyjwt
import structlog
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient
from jwt.exceptions import PyJWKClientConnectionError, PyJWKClientError

from deepform.core.config import get_settings
from deepform.core.logging import bind_request_context

logger = structlog.get_logger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)

# Most specific first: every entry subclasses InvalidTokenError
_TOKEN_ERRORS: tuple[tuple[type[pyjwt.InvalidTokenError], str], ...] = (
    (pyjwt.ExpiredSignatureError, "Token expired"),
    (pyjwt.ImmatureSignatureError, "Token not yet valid (immature)"),
    (pyjwt.InvalidIssuerError, "Invalid issuer (iss mismatch)"),
    (pyjwt.InvalidAudienceError, "Unauthorized audience (aud mismatch)"),
)


@dataclass(frozen=True)
class ClerkInstance:
    """The Clerk frontend API that issues this deployment's tokens."""

    domain: str

    @classmethod
    def from_publishable_key(cls, publishable_key: str) -> "ClerkInstance":
        """Decode ``pk_(test|live)_<base64 of "domain$">``."""
        parts = publishable_key.split("_", 2)
        if len(parts) != 3 or parts[0] != "pk":
            raise ValueError("Invalid Clerk publishable key format")
        try:
            domain = base64.b64decode(parts[2] + "==").decode("utf-8").rstrip("$")
        except ValueError as exc:
            raise ValueError("Invalid Clerk publishable key: cannot decode") from exc
        if not domain:
            raise ValueError("Invalid Clerk publishable key: empty domain")
        return cls(domain)

    @property
    def issuer(self) -> str:
        return f"https://{self.domain}"

    @property
    def jwks_url(self) -> str:
        return f"{self.issuer}/.well-known/jwks.json"


@lru_cache
def get_clerk_instance() -> ClerkInstance:
    return ClerkInstance.from_publishable_key(get_settings().clerk_publishable_key)


@lru_cache
def get_jwks_client() -> PyJWKClient:
    return PyJWKClient(get_clerk_instance().jwks_url, cache_keys=True, lifespan=300)


@dataclass(frozen=True)
class ClerkUser:
    """Authenticated owner; ``user_id`` is the Clerk subject stored on sessions."""

    user_id: str
    claims: dict


def verify_owner_token(token: str) -> ClerkUser:
    """Verify a Clerk session JWT and return the owner it names.

    Signature, time claims, issuer and (when configured) audience are checked
    by PyJWT; the authorized party must be one of the allowed frontends.

    Raises:
        HTTPException(401): The token is missing a claim or fails a check
        HTTPException(500): The publishable key is unusable
        HTTPException(503): Clerk's JWKS endpoint cannot be reached
    """
    settings = get_settings()
    try:
        instance = get_clerk_instance()
    except ValueError as exc:
        raise HTTPException(status_code=500, detail="Authentication is misconfigured") from exc

    audiences = settings.clerk_allowed_audiences
    try:
        signing_key = get_jwks_client().get_signing_key_from_jwt(token)
        claims = pyjwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            issuer=instance.issuer,
            audience=audiences or None,
            options={
                "require": ["sub", "exp", "nbf", "iat", "iss"],
                "verify_aud": bool(audiences),
            },
        )
    except PyJWKClientConnectionError as exc:
        logger.error("jwks_unreachable", jwks_url=instance.jwks_url, error=str(exc))
        raise HTTPException(status_code=503, detail="Authentication unavailable")
    except PyJWKClientError as exc:
        raise HTTPException(status_code=401, detail=f"Invalid token: {exc}")
    except pyjwt.MissingRequiredClaimError as exc:
        raise HTTPException(status_code=401, detail=f"Missing required claim: {exc.claim}")
    except pyjwt.InvalidTokenError as exc:
        for error_type, detail in _TOKEN_ERRORS:
            if isinstance(exc, error_type):
                raise HTTPException(status_code=401, detail=detail)
        raise HTTPException(status_code=401, detail=f"Invalid token: {exc}")

    azp = claims.get("azp")
    if not azp:
        raise HTTPException(status_code=401, detail="Missing azp claim")
    if azp not in settings.clerk_allowed_origins:
        raise HTTPException(status_code=401, detail="Unauthorized origin (azp mismatch)")

    return ClerkUser(user_id=claims["sub"], claims=claims)


async def require_auth(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> ClerkUser:
    """FastAPI dependency for owner-only routes."""
    if credentials is None:
        raise HTTPException(status_code=401, detail="Missing authorization header")

    user = verify_owner_token(credentials.credentials)

    # Error handlers read this for audit logging
    request.state.user_id = user.user_id
    bind_request_context(clerk_user_id=user.user_id)
    return user
