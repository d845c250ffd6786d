"""Authentication boundary - bearer tokens to caller identities"""

from .jwt import create_access_token, decode_token
from .dependencies import get_current_user_id, get_optional_user_id, CurrentUserId, OptionalUserId

__all__ = [
    "create_access_token",
    "decode_token",
    "get_current_user_id",
    "get_optional_user_id",
    "CurrentUserId",
    "OptionalUserId",
]
