import logging
from datetime import datetime, timezone

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from .accounts import get_account_by_username
from .auth import dummy_password_hash, new_session_token, verify_password
from .errors import AuthenticationFailed, LogoutError
from .models import Account, ActiveSession, NoSession

logger = logging.getLogger(__name__)


async def login(db: AsyncSession, username: str, password: str) -> tuple[Account, str]:
    """Check the credentials and start a new session.

    The new token replaces whatever token the account held, so at most one
    session per account is ever active. Unknown usernames and wrong passwords
    fail the same way.
    """
    account = await get_account_by_username(db, username)
    if account is None:
        verify_password(password or "", dummy_password_hash())
        logger.info("Login failed (username=%s)", str(username or "").strip())
        raise AuthenticationFailed()
    if not verify_password(password or "", account.password_hash):
        logger.info("Login failed (username=%s)", account.username)
        raise AuthenticationFailed()

    token = new_session_token()
    account.session = ActiveSession(token)
    account.last_login_at = datetime.now(timezone.utc)
    await db.commit()
    logger.info("Login succeeded (id=%s, username=%s)", account.id, account.username)
    return account, token


async def logout(db: AsyncSession, account: Account) -> None:
    """End the account's active session.

    ``account`` must come from ``authenticate``. The update only matches while
    the account still holds the token it was authenticated with.
    """
    state = account.session
    if not isinstance(state, ActiveSession):
        raise LogoutError()
    result = await db.execute(
        update(Account)
        .where(Account.id == account.id, Account.access_token == state.token)
        .values(access_token=None)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise LogoutError()
    await db.commit()
    account.session = NoSession()
    logger.info("Logout (id=%s)", account.id)
