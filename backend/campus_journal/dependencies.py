# fastapi dependency injection
# identity -> user -> consent gate -> analytics opt-in, each layer building on the last

import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from campus_journal.errors import AnalyticsNotEnabledError, AuthenticationError
from campus_journal.services import consent_service, user_service
from campus_journal.services.db import Database, get_db
from campus_journal.services.identity_service import decode_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


async def get_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """verified identity claims from the bearer token. the subject is trusted as the user key."""
    if credentials is None:
        raise AuthenticationError("Missing bearer token")

    payload = await decode_token(credentials.credentials)
    if payload is None:
        raise AuthenticationError("Invalid or expired token")

    if not payload.get("sub"):
        raise AuthenticationError("Token missing subject")

    return payload


async def get_current_user(
    identity: dict = Depends(get_identity),
    db: Database = Depends(get_db),
) -> dict:
    """the caller's user document, created on first authentication"""
    return await user_service.get_or_create_user(db, identity)


async def require_consent(current_user: dict = Depends(get_current_user)) -> dict:
    """gate for every data-bearing route, stops before any data is touched"""
    consent_service.check_consent(current_user)
    return current_user


async def require_analytics(current_user: dict = Depends(require_consent)) -> dict:
    """consent plus analytics opt-in, for personal analytics routes"""
    if not (current_user.get("privacySettings") or {}).get("analyticsOptIn"):
        raise AnalyticsNotEnabledError()
    return current_user
