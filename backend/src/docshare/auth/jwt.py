"""JWT token generation and validation

Identity is established upstream of the document service; this module only
signs and verifies the bearer tokens that carry it.

JWT Token Claims:
- sub (Subject): Caller id, an opaque string (the document owner id)
- email: Optional, informational only
- iat / exp: Issued-at and expiry as Unix timestamps

Security Properties:
- Algorithm: HS256 (HMAC-SHA256 symmetric signing)
- Secret: JWT_SECRET environment variable
- Stateless validation (no database lookup required for auth)

Example Token Payload:
{
  "sub": "user-42",
  "email": "alice@example.com",
  "iat": 1704368400,
  "exp": 1704372000
}
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt


def _get_jwt_secret() -> str:
    """Get JWT_SECRET from environment.

    Raises:
        ValueError: If JWT_SECRET is not set
    """
    secret = os.getenv('JWT_SECRET')
    if not secret:
        raise ValueError("JWT_SECRET environment variable is not set")
    return secret


def _get_jwt_algorithm() -> str:
    return os.getenv('JWT_ALGORITHM', 'HS256')


def _get_jwt_expiry_minutes() -> int:
    """Get JWT_EXPIRY_MINUTES from environment (default: 60)."""
    expiry = os.getenv('JWT_EXPIRY_MINUTES', '60')
    try:
        return int(expiry)
    except ValueError:
        return 60


def create_access_token(user_id: str, email: Optional[str] = None) -> str:
    """Create a JWT access token for a caller.

    Args:
        user_id: Caller id, stored as the sub claim
        email: Optional email claim

    Returns:
        str: Signed JWT token

    Raises:
        ValueError: If JWT_SECRET is not set or user_id is empty
    """
    if not user_id:
        raise ValueError("user_id must not be empty")

    secret = _get_jwt_secret()
    now = datetime.now(timezone.utc)
    expiration = now + timedelta(minutes=_get_jwt_expiry_minutes())

    payload: Dict[str, Any] = {
        'sub': str(user_id),
        'iat': int(now.timestamp()),
        'exp': int(expiration.timestamp()),
    }
    if email:
        payload['email'] = email

    return jwt.encode(payload, secret, algorithm=_get_jwt_algorithm())


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate a JWT token.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid or tampered
        ValueError: If JWT_SECRET is not set
    """
    secret = _get_jwt_secret()

    try:
        return jwt.decode(token, secret, algorithms=[_get_jwt_algorithm()])
    except jwt.ExpiredSignatureError:
        raise jwt.ExpiredSignatureError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise jwt.InvalidTokenError(f"Invalid token: {str(e)}")
