"""Clerk JWT authentication for FastAPI."""

import base64
from dataclasses import dataclass
from functools import lru_cache

import jwt as pyjwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient

from arena.core.config import get_settings
from arena.core.exceptions import Unauthenticated

_bearer_scheme = HTTPBearer(auto_error=False)


def _extract_frontend_api_domain(pk: str) -> str:
    """Extract the Clerk frontend API domain from a publishable key.

    Clerk publishable keys are formatted as ``pk_(test|live)_<base64>`` where the
    base64 payload decodes to ``<domain>$``.
    """
    parts = pk.split("_", 2)
    if len(parts) != 3 or parts[0] != "pk":
        raise ValueError("Invalid Clerk publishable key format")

    try:
        raw = base64.b64decode(parts[2] + "==")
        domain = raw.decode("utf-8").rstrip("$")
    except Exception as exc:
        raise ValueError("Invalid Clerk publishable key: cannot decode") from exc

    if not domain:
        raise ValueError("Invalid Clerk publishable key: empty domain")

    return domain


@lru_cache
def get_jwks_client() -> PyJWKClient:
    """Create a cached JWKS client pointing at the Clerk JWKS endpoint."""
    settings = get_settings()
    domain = _extract_frontend_api_domain(settings.clerk_publishable_key)
    return PyJWKClient(f"https://{domain}/.well-known/jwks.json", cache_keys=True, lifespan=300)


@dataclass(frozen=True)
class ClerkUser:
    """Authenticated user extracted from a Clerk JWT."""

    user_id: str
    claims: dict

    @property
    def email_verified(self) -> bool:
        return self.claims.get("email_verified") is True


def decode_clerk_jwt(token: str) -> ClerkUser:
    """Verify and decode a Clerk session JWT.

    Raises ``Unauthenticated`` on any validation failure.
    """
    try:
        client = get_jwks_client()
        signing_key = client.get_signing_key_from_jwt(token)

        payload = pyjwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            options={
                "verify_exp": True,
                "verify_nbf": True,
                "verify_iat": True,
                "require": ["sub", "exp", "nbf", "iat"],
            },
        )
    except pyjwt.ExpiredSignatureError:
        raise Unauthenticated("Token expired")
    except pyjwt.MissingRequiredClaimError as exc:
        raise Unauthenticated(f"Missing required claim: {exc}")
    except pyjwt.InvalidTokenError as exc:
        raise Unauthenticated(f"Invalid token: {exc}")

    sub = payload.get("sub")
    if not sub:
        raise Unauthenticated("Token missing sub claim")

    return ClerkUser(user_id=sub, claims=payload)


def _validate_audience_claim(aud_claim: object, allowed_audiences: list[str]) -> None:
    """Validate aud claim against configured allowed audiences."""
    if aud_claim is None:
        raise Unauthenticated("Missing aud claim")

    if isinstance(aud_claim, str):
        audiences = {aud_claim}
    elif isinstance(aud_claim, list) and all(isinstance(v, str) for v in aud_claim):
        audiences = set(aud_claim)
    else:
        raise Unauthenticated("Invalid aud claim format")

    if not audiences.intersection(allowed_audiences):
        raise Unauthenticated("Unauthorized audience (aud mismatch)")


def _verify_session_claims(claims: dict, settings) -> None:
    """Check issuer, authorized party, and (optionally) audience of a decoded token.

    Raises:
        Unauthenticated: A claim does not match this deployment
        HTTPException(500): The publishable key cannot be parsed
    """
    try:
        expected_issuer = f"https://{_extract_frontend_api_domain(settings.clerk_publishable_key)}"
    except ValueError as exc:
        raise HTTPException(status_code=500, detail="Authentication is misconfigured") from exc
    if claims.get("iss") != expected_issuer:
        raise Unauthenticated("Invalid issuer (iss mismatch)")

    azp = claims.get("azp")
    if not azp:
        raise Unauthenticated("Missing azp claim")
    if azp not in settings.clerk_allowed_origins:
        raise Unauthenticated("Unauthorized origin (azp mismatch)")

    if settings.clerk_allowed_audiences:
        _validate_audience_claim(claims.get("aud"), settings.clerk_allowed_audiences)


async def require_auth(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> ClerkUser:
    """FastAPI dependency returning the caller's ClerkUser.

    The ``email_verified`` claim is carried on the user and read by the
    entitlement gate; it is not enforced here.
    """
    if credentials is None:
        raise Unauthenticated("Missing authorization header")

    user = decode_clerk_jwt(credentials.credentials)
    _verify_session_claims(user.claims, get_settings())

    # Error handlers log this
    request.state.user_id = user.user_id
    return user
