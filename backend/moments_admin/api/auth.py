from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from moments_admin.core.config import settings
from moments_admin.core.database import get_db
from moments_admin.core.rate_limit import limiter
from moments_admin.core.security import SESSION_COOKIE, create_session_token, verify_password, verify_session_token
from moments_admin.models.user import User

router = APIRouter(prefix="/auth", tags=["auth"])
# bare usernames are stored as <name>@example.com
DEFAULT_EMAIL_DOMAIN = "example.com"


class LoginPayload(BaseModel):
    email: str
    password: str


def user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "role": user.role,
    }


async def require_current_user(request: Request, db: AsyncSession = Depends(get_db)) -> User:
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized")

    user_id = verify_session_token(token)
    if not user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


def _login_email(email_or_username: str) -> str:
    value = email_or_username.strip()
    return value if "@" in value else f"{value}@{DEFAULT_EMAIL_DOMAIN}"


@router.post("/login")
@limiter.limit("10/minute")
async def login(
    request: Request,
    response: Response,
    payload: LoginPayload,
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(User).where(User.email == _login_email(payload.email)))
    user = result.scalar_one_or_none()
    if user is None or not user.password_hash or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    response.set_cookie(
        SESSION_COOKIE,
        create_session_token(user.id),
        httponly=True,
        samesite="lax",
        secure=settings.ADMIN_BASE_URL.startswith("https://"),
        max_age=settings.SESSION_MAX_AGE_SECONDS,
        path="/",
    )
    return user_to_dict(user)


@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(SESSION_COOKIE, path="/")
    return {"ok": True}


@router.get("/me")
async def me(current_user: User = Depends(require_current_user)):
    return user_to_dict(current_user)
