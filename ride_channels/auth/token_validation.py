"""
Connection credential validation for ride channel sockets.

Tokens are issued elsewhere (the REST login flow); this module only verifies
them against the shared secret and turns the claims into an identity.
"""

from dataclasses import dataclass, field
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt

from ..config.models import SecurityConfig
from ..error_types import ErrorType
from ..exceptions import AuthenticationError, ErrorContext
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

# Checked in order; the mobile client signs `userId`, the REST middleware `id`.
IDENTITY_CLAIMS = ("userId", "id", "sub")
DISPLAY_NAME_CLAIM = "name"
DEFAULT_DISPLAY_NAME = "Unknown User"


@dataclass(frozen=True)
class AuthenticatedIdentity:
    """The user a verified credential belongs to."""

    user_id: str
    display_name: str
    claims: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


def extract_bearer_token(headers: Any, query_params: Any) -> str | None:
    """
    Pull the bearer credential out of a WebSocket handshake.

    The subprotocol header is preferred when it carries the "bearer" marker
    ("bearer, <token>"), then an Authorization header, then a `token` query
    parameter. Subprotocols offered without the marker are not credentials.

    Args:
        headers: Handshake headers (case-insensitive mapping)
        query_params: Handshake query parameters

    Returns:
        The raw token, or None when the client sent nothing
    """
    subproto_header = headers.get("sec-websocket-protocol")
    if subproto_header:
        parts = [p.strip() for p in subproto_header.split(",") if p and p.strip()]
        if "bearer" in [p.lower() for p in parts]:
            candidates = [p for p in parts if p.lower() != "bearer"]
            if candidates:
                return candidates[0]

    authorization = headers.get("authorization")
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()

    token = query_params.get("token")
    return token or None


def _identity_from_claims(claims: dict[str, Any]) -> str | None:
    for claim in IDENTITY_CLAIMS:
        value = claims.get(claim)
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


def authenticate_token(
    token: str | None,
    security: SecurityConfig,
    default_display_name: str = DEFAULT_DISPLAY_NAME,
    context: ErrorContext | None = None,
) -> AuthenticatedIdentity:
    """
    Verify a bearer credential and extract the identity it carries.

    Args:
        token: Raw JWT presented at handshake time
        security: Secret and algorithm to verify against
        default_display_name: Name used when the token carries no `name` claim
        context: Optional error context for logging

    Returns:
        AuthenticatedIdentity for the token's user

    Raises:
        AuthenticationError: With reason missing-credential, invalid-credential
            or expired-credential
    """
    if token is None or not token.strip():
        raise AuthenticationError(
            "Authentication token required",
            context=context,
            reason=ErrorType.MISSING_CREDENTIAL,
        )

    try:
        claims = jwt.decode(
            token.strip(),
            security.jwt_secret,
            algorithms=[security.jwt_algorithm],
            options={"verify_aud": False},
        )
    except ExpiredSignatureError as e:
        raise AuthenticationError(
            "Authentication token has expired",
            context=context,
            reason=ErrorType.EXPIRED_CREDENTIAL,
            details={"error": str(e)},
        ) from e
    except JWTError as e:
        raise AuthenticationError(
            "Authentication failed",
            context=context,
            reason=ErrorType.INVALID_CREDENTIAL,
            details={"error": str(e), "error_type": type(e).__name__},
        ) from e

    user_id = _identity_from_claims(claims)
    if user_id is None:
        raise AuthenticationError(
            "Authentication token carries no user identity",
            context=context,
            reason=ErrorType.INVALID_CREDENTIAL,
            details={"claims": sorted(claims.keys())},
        )

    display_name = str(claims.get(DISPLAY_NAME_CLAIM) or "").strip() or default_display_name
    logger.debug("Connection credential verified", user_id=user_id)
    return AuthenticatedIdentity(user_id=user_id, display_name=display_name, claims=claims)
