from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, EmailStr
from sqlalchemy.ext.asyncio import AsyncSession

from .accounts import create_account, update_account
from .auth import get_current_account, verify_password
from .config import AUTH_RATE_LIMIT
from .database import get_db
from .errors import AuthenticationFailed
from .models import Account
from .ratelimit import limiter
from .sessions import login, logout

router = APIRouter(tags=["auth"])


class SignupRequest(BaseModel):
    username: str
    email: EmailStr
    password: str


class LoginRequest(BaseModel):
    username: str
    password: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str


def _serialize_account(account: Account) -> dict:
    return {
        "userId": str(account.id),
        "username": account.username,
        "email": account.email,
        "createdAt": account.created_at.isoformat() if account.created_at else None,
        "lastLoginAt": account.last_login_at.isoformat() if account.last_login_at else None,
    }


@router.post("/users", status_code=201)
@limiter.limit(AUTH_RATE_LIMIT)
async def signup(request: Request, body: SignupRequest, db: AsyncSession = Depends(get_db)):
    account = await create_account(db, body.username, body.email, body.password)
    return {
        "userId": str(account.id),
        "accessToken": account.access_token,
        "username": account.username,
    }


@router.post("/sessions", status_code=201)
@limiter.limit(AUTH_RATE_LIMIT)
async def create_session(request: Request, body: LoginRequest, db: AsyncSession = Depends(get_db)):
    account, token = await login(db, body.username, body.password)
    return {
        "login": "success",
        "userId": str(account.id),
        "accessToken": token,
        "username": account.username,
    }


@router.post("/sessions/logout")
async def end_session(account: Account = Depends(get_current_account), db: AsyncSession = Depends(get_db)):
    await logout(db, account)
    return {"ok": True}


@router.get("/users/me")
async def me(account: Account = Depends(get_current_account)):
    return _serialize_account(account)


@router.put("/users/me/password")
async def change_password(
    body: ChangePasswordRequest,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    if not verify_password(body.current_password, account.password_hash):
        raise AuthenticationFailed("Incorrect password")
    await update_account(db, account, new_password=body.new_password)
    return {"ok": True}
