"""Module A: Local accounts - bcrypt password hashes and HS256 access tokens."""
from datetime import datetime, timedelta, timezone
import bcrypt
import jwt
from app.config import get_settings
from app.models.user import UserRole

settings = get_settings()

# bcrypt ignores everything after 72 bytes; newer releases raise instead
BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(plain), hashed.encode("utf-8"))
    except ValueError:
        # Stored hash is not a bcrypt hash
        return False


def create_access_token(user_id: int, email: str, role: UserRole) -> str:
    """Token carrying the local user id as sub, plus email and role for clients."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_access_token_expire_minutes)
    payload = {"sub": str(user_id), "email": email, "role": role.value, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token_with_error(token: str) -> tuple[dict | None, str | None]:
    """(payload, None) for a valid token, otherwise (None, reason)."""
    token = (token or "").strip()
    if not token:
        return None, "empty token"
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]), None
    except jwt.ExpiredSignatureError:
        return None, "token expired"
    except jwt.PyJWTError as e:
        return None, str(e)
