"""
Bearer token verification.

Tokens are issued by the identity service and signed with the shared
SECRET_KEY. The core only needs the user id they carry.
"""

import jwt

from campus_events.core.config import get_settings
from campus_events.core.exceptions import AuthError

settings = get_settings()


def decode_access_token(token: str) -> int:
    """Return the user id carried by a valid token, else raise AuthError."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthError("token expired, please sign in again")
    except jwt.InvalidTokenError:
        raise AuthError("invalid token")

    subject = payload.get("sub") or payload.get("id")
    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        raise AuthError("invalid token")
    if user_id <= 0:
        raise AuthError("invalid token")
    return user_id
