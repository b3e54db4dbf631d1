from __future__ import annotations

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from moments_admin.core.security import SESSION_COOKIE, verify_session_token


def user_rate_limit_key(request: Request) -> str:
    token = request.cookies.get(SESSION_COOKIE)
    if token:
        user_id = verify_session_token(token)
        if user_id:
            return f"user:{user_id}"
    return f"anon:{get_remote_address(request)}"


limiter = Limiter(key_func=user_rate_limit_key)
