import base64
import hashlib
import hmac
import time

from passlib.context import CryptContext
from moments_admin.core.config import settings

SESSION_COOKIE = "moments_session"
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

def verify_password(plain_password: str, password_hash: str) -> bool:
    return pwd_context.verify(plain_password, password_hash)

def _signing_key(secret: str) -> bytes:
    return secret.ljust(32, "0")[:32].encode()

def _sign(payload: str, secret: str) -> str:
    digest = hmac.new(_signing_key(secret), payload.encode(), hashlib.sha256).digest()
    return base64.b64encode(digest).decode()

def create_session_token(user_id: str, secret: str | None = None, max_age: int | None = None) -> str:
    secret = secret or settings.SESSION_SECRET
    max_age = max_age if max_age is not None else settings.SESSION_MAX_AGE_SECONDS
    expiry_ms = int(time.time() * 1000) + max_age * 1000
    payload = base64.b64encode(f"{user_id}:{expiry_ms}".encode()).decode()
    return f"{payload}.{_sign(payload, secret)}"

def verify_session_token(token: str, secret: str | None = None) -> str | None:
    secret = secret or settings.SESSION_SECRET
    payload, _, signature = token.partition(".")
    if not payload or not signature:
        return None
    if not hmac.compare_digest(signature, _sign(payload, secret)):
        return None
    try:
        user_id, _, expiry = base64.b64decode(payload).decode().partition(":")
        expiry_ms = int(expiry or "0")
    except (ValueError, UnicodeDecodeError):
        return None
    if not user_id or time.time() * 1000 > expiry_ms:
        return None
    return user_id
