import logging
import uuid

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import hash_password, new_session_token
from .config import USERNAME_MIN_LENGTH, USERNAME_MAX_LENGTH
from .errors import DuplicateError, ValidationError
from .models import Account, ActiveSession

logger = logging.getLogger(__name__)


def _normalize_username(value: str | None) -> str:
    if value is None:
        raise ValidationError("username", "Username is required")
    username = str(value).strip()
    if not username:
        raise ValidationError("username", "Username is required")
    if len(username) < USERNAME_MIN_LENGTH:
        raise ValidationError(
            "username",
            f"Username is too short - min length {USERNAME_MIN_LENGTH} characters",
        )
    if len(username) > USERNAME_MAX_LENGTH:
        raise ValidationError(
            "username",
            f"Username is too long - max length {USERNAME_MAX_LENGTH} characters",
        )
    return username


def _normalize_email(value: str | None) -> str:
    email = str(value or "").strip().lower()
    if not email:
        raise ValidationError("email", "Email address is required")
    return email


def _require_password(value: str | None) -> str:
    if not isinstance(value, str) or not value:
        raise ValidationError("password", "Password is required")
    return value


def apply_password(account: Account, new_password: str | None) -> bool:
    """Hash ``new_password`` onto the account; ``None`` leaves the stored hash alone."""
    if new_password is None:
        return False
    account.password_hash = hash_password(_require_password(new_password))
    return True


async def get_account_by_username(db: AsyncSession, username: str) -> Account | None:
    normalized = str(username or "").strip()
    if not normalized:
        return None
    return (
        await db.execute(select(Account).where(Account.username == normalized))
    ).scalar_one_or_none()


async def _email_taken(db: AsyncSession, email: str, exclude_id: uuid.UUID | None = None) -> bool:
    query = select(Account.id).where(func.lower(Account.email) == email)
    if exclude_id is not None:
        query = query.where(Account.id != exclude_id)
    return (await db.execute(query)).first() is not None


async def create_account(db: AsyncSession, username: str, email: str, password: str) -> Account:
    username = _normalize_username(username)
    email = _normalize_email(email)
    password = _require_password(password)

    if await get_account_by_username(db, username):
        logger.info("Signup rejected: username already registered (username=%s)", username)
        raise DuplicateError("Username already registered")
    if await _email_taken(db, email):
        logger.info("Signup rejected: email already registered (username=%s)", username)
        raise DuplicateError("Email already registered")

    account = Account(username=username, email=email)
    apply_password(account, password)
    account.session = ActiveSession(new_session_token())
    db.add(account)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info("Signup lost a uniqueness race (username=%s)", username)
        raise DuplicateError("Username or email already registered")

    logger.info("Account created (id=%s, username=%s)", account.id, account.username)
    return account


async def update_account(
    db: AsyncSession,
    account: Account,
    *,
    email: str | None = None,
    new_password: str | None = None,
) -> Account:
    """Persist account changes.

    The password is re-hashed only when ``new_password`` is given, so saving
    an account with its password untouched never hashes the stored hash.
    """
    if email is not None:
        normalized_email = _normalize_email(email)
        if normalized_email != account.email:
            if await _email_taken(db, normalized_email, exclude_id=account.id):
                raise DuplicateError("Email already registered")
            account.email = normalized_email
    rehashed = apply_password(account, new_password)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise DuplicateError("Email already registered")
    if rehashed:
        logger.info("Password changed (id=%s)", account.id)
    return account
