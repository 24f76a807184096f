# identity service — verifies bearer tokens issued by the identity provider
# rs256 against the provider's jwks when auth0 is configured, hs256 otherwise.
# also hashes email claims so they are never stored in plaintext.

import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx
from jose import JWTError, jwt
from passlib.context import CryptContext

from campus_journal.config import settings

logger = logging.getLogger(__name__)

email_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ANONYMOUS_EMAIL = "anonymous@privacy.local"

JWKS_TIMEOUT_SECONDS = 10.0
JWKS_MIN_REFRESH_SECONDS = 60

# cached provider signing keys
_jwks_lock = asyncio.Lock()
_jwks: Optional[dict] = None
_jwks_fetched_at: Optional[float] = None


def hash_email(email: Optional[str]) -> str:
    """one-way hash of an email claim (lowercased)"""
    return email_context.hash((email or ANONYMOUS_EMAIL).strip().lower())


def verify_email(email: str, hashed_email: str) -> bool:
    return email_context.verify(email.strip().lower(), hashed_email)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """create an hs256 identity token (local development and tests)"""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


async def _fetch_jwks() -> dict:
    url = f"https://{settings.AUTH0_DOMAIN}/.well-known/jwks.json"
    logger.info(f"Fetching signing keys from {url}")
    async with httpx.AsyncClient(timeout=JWKS_TIMEOUT_SECONDS) as client:
        response = await client.get(url)
        response.raise_for_status()
        return response.json()


async def _load_jwks(refresh: bool = False) -> Optional[dict]:
    """cached provider keys. fetches at most once per JWKS_MIN_REFRESH_SECONDS,
    failed fetches included; concurrent callers wait for the one fetch in flight."""
    global _jwks, _jwks_fetched_at
    async with _jwks_lock:
        if _jwks is not None and not refresh:
            return _jwks

        now = time.monotonic()
        if _jwks_fetched_at is not None and now - _jwks_fetched_at < JWKS_MIN_REFRESH_SECONDS:
            return _jwks

        _jwks_fetched_at = now
        _jwks = await _fetch_jwks()
        return _jwks


def _find_key(jwks: Optional[dict], kid: Optional[str]) -> Optional[dict]:
    for key in (jwks or {}).get("keys", []):
        if key.get("kid") == kid:
            return key
    return None


async def _signing_key(token: str) -> Optional[dict]:
    kid = jwt.get_unverified_header(token).get("kid")
    key = _find_key(await _load_jwks(), kid)
    if key is None:
        # the provider may have rotated its keys since the last fetch
        key = _find_key(await _load_jwks(refresh=True), kid)
    return key


async def decode_token(token: str) -> Optional[dict]:
    """decode and validate an identity token, returns claims or none"""
    try:
        if settings.AUTH0_DOMAIN:
            key = await _signing_key(token)
            if key is None:
                logger.warning("Token signed with unknown key id")
                return None
            return jwt.decode(
                token,
                key,
                algorithms=["RS256"],
                audience=settings.AUTH0_AUDIENCE,
                issuer=f"https://{settings.AUTH0_DOMAIN}/",
            )
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"Token decode failed: {e}")
        return None
    except httpx.HTTPError as e:
        logger.warning(f"Could not fetch signing keys: {e}")
        return None
