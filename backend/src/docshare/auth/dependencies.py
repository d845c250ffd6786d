"""FastAPI dependencies for authentication.

The document service never loads users; a caller id is the validated sub
claim of the bearer token and is passed explicitly to the access broker.

Usage:
    @router.get("/documents")
    def list_documents(user_id: str = Depends(get_current_user_id)):
        ...

    @router.get("/documents/{document_id}/download")
    async def download(document_id: UUID, user_id: Optional[str] = Depends(get_optional_user_id)):
        ...
"""

from typing import Annotated, Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .jwt import decode_token


# auto_error=False so optional-auth routes see a missing header as None
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _user_id_from_token(token: str) -> str:
    try:
        payload = decode_token(token)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError as e:
        raise _unauthorized(str(e))
    except ValueError as e:
        raise _unauthorized(f"Invalid token claims: {str(e)}")

    user_id = payload.get("sub")
    if not user_id:
        raise _unauthorized("Invalid token: missing user ID claim")
    return str(user_id)


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """Return the caller id from a required bearer token.

    Raises:
        HTTPException 401: If the token is missing, invalid or expired
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")
    return _user_id_from_token(credentials.credentials)


def get_optional_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    """Return the caller id, or None for anonymous requests.

    A token that is present but invalid is still rejected with 401 rather
    than silently downgraded to anonymous.
    """
    if credentials is None:
        return None
    return _user_id_from_token(credentials.credentials)


# Type aliases for dependency injection
CurrentUserId = Annotated[str, Depends(get_current_user_id)]
OptionalUserId = Annotated[Optional[str], Depends(get_optional_user_id)]
