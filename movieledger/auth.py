import secrets
from functools import lru_cache

from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError, VerificationError, InvalidHashError
from fastapi import Request, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .config import SESSION_TOKEN_BYTES
from .database import get_db
from .errors import AuthenticationError
from .models import Account

ph = PasswordHasher()


def hash_password(password: str) -> str:
    return ph.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    if not isinstance(hashed, str) or not hashed:
        return False
    try:
        return ph.verify(hashed, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


@lru_cache(maxsize=1)
def dummy_password_hash() -> str:
    # Verified against when the username is unknown so both login failures cost the same.
    return ph.hash(secrets.token_hex(16))


def new_session_token() -> str:
    return secrets.token_hex(SESSION_TOKEN_BYTES)


def token_from_header(value: str | None) -> str | None:
    raw = (value or "").strip()
    scheme, _, rest = raw.partition(" ")
    if scheme.lower() == "bearer":
        raw = rest.strip()
    return raw or None


async def authenticate(db: AsyncSession, presented_token: str | None) -> Account:
    """Resolve a presented session token to its account.

    Only accounts with an active session can match: the logged-out state is
    stored as NULL and never compares equal to a presented value.
    """
    if not isinstance(presented_token, str) or not presented_token:
        raise AuthenticationError()
    account = (
        await db.execute(
            select(Account).where(
                Account.access_token.is_not(None),
                Account.access_token == presented_token,
            )
        )
    ).scalar_one_or_none()
    if account is None:
        raise AuthenticationError()
    return account


async def get_current_account(request: Request, db: AsyncSession = Depends(get_db)) -> Account:
    token = token_from_header(request.headers.get("Authorization"))
    return await authenticate(db, token)
