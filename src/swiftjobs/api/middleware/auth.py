"""JWT Bearer authentication middleware.

Tokens are issued by the external identity provider. The claims are resolved
once into an ``Identity`` on ``request.state``; routes never re-parse them.
"""

import logging

from jose import JWTError, jwt
from pydantic import ValidationError as PydanticValidationError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from swiftjobs.config import settings
from swiftjobs.logging_config import bind_request_context
from swiftjobs.models.identity import Identity

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


def _decode_jwt(token: str) -> dict:
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except JWTError as exc:
        logger.debug("JWT decode failed: %s", exc)
        raise ValueError(f"Invalid token: {exc}") from exc


def identity_from_claims(claims: dict) -> Identity:
    """Map identity-provider claims to the caller capability.

    ``role`` is the marketplace role; admin rights come from an ``admin``
    entry in the ``roles`` claim.
    """
    roles = claims.get("roles") or []
    return Identity(
        user_id=claims["sub"],
        role=claims["role"],
        is_admin=ADMIN_ROLE in roles,
    )


class AuthMiddleware(BaseHTTPMiddleware):
    """Validate the Bearer token and attach the caller's Identity to request.state."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request.state.identity = None
        request.state.auth_error = None

        auth_header = request.headers.get("authorization", "")
        if auth_header.startswith("Bearer "):
            try:
                identity = identity_from_claims(_decode_jwt(auth_header[7:]))
            except (ValueError, KeyError, PydanticValidationError) as exc:
                request.state.auth_error = "invalid_token"
                logger.debug("Rejected bearer token: %s", exc)
            else:
                request.state.identity = identity
                bind_request_context(request.state.trace_id, identity.user_id)

        return await call_next(request)
