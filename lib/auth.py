from typing import Optional
import logging
from supabase import Client

from lib.error_handler import AppError

logger = logging.getLogger(__name__)


def bearer_token(authorization_header: Optional[str]) -> Optional[str]:
    if not authorization_header:
        return None
    scheme, _, token = authorization_header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()


def get_authenticated_user_id(supabase_client: Client, authorization_header: Optional[str]) -> str:
    """Resolve the Supabase user behind a bearer token, raising a 401 AppError otherwise"""
    token = bearer_token(authorization_header)
    if not token:
        raise AppError("Missing bearer token", status_code=401, user_message="Unauthorized")

    try:
        response = supabase_client.auth.get_user(token)
    except Exception as e:
        logger.warning(f"Token verification failed: {str(e)}")
        raise AppError("Invalid token", status_code=401, user_message="Unauthorized")

    user = getattr(response, 'user', None) if response else None
    if not user:
        raise AppError("No user for token", status_code=401, user_message="Unauthorized")
    return user.id
