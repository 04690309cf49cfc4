import base64
import binascii
import hmac

from fastapi import Header, Request

from release_notifier.domain.errors import AuthenticationError


def _extract_bearer_token(authorization: str | None) -> str | None:
    """Extract token from 'Bearer <token>' header."""
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


def _extract_basic_token(authorization: str | None) -> str | None:
    """Extract the token from 'Basic <base64(user:password)>'. The password wins over the username."""
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "basic":
        return None
    try:
        decoded = base64.b64decode(parts[1], validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, _, password = decoded.partition(":")
    return password or username or None


def token_matches(expected: str, authorization: str | None) -> bool:
    candidate = _extract_bearer_token(authorization) or _extract_basic_token(authorization)
    if not candidate:
        return False
    return hmac.compare_digest(candidate.encode(), expected.encode())


async def require_token(request: Request, authorization: str | None = Header(None)) -> None:
    """
    Shared-token auth for webhook senders. Open when no token is configured,
    which settings only allow in development.
    """
    expected = request.app.state.settings.token
    if not expected:
        return
    if not authorization:
        raise AuthenticationError("Missing authorization header")
    if not token_matches(expected, authorization):
        raise AuthenticationError("Invalid token")
