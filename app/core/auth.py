"""Authentication for the users resource.

Implements JWT bearer tokens with revocation and argon2 password hashing.
Endpoints live in ``app.api.users``.
"""
import math
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from app.core.logging import get_logger
from app.core.config import settings, DEVELOPMENT_SECRET
from app.domain.user import TokenData, User
from app.infrastructure.redis import get_token_store

logger = get_logger(__name__)

# JWT Configuration from settings
SECRET_KEY = settings.jwt_secret_key
ALGORITHM = settings.jwt_algorithm
ACCESS_TOKEN_EXPIRE_MINUTES = settings.access_token_expire_minutes

REVOKED_PREFIX = "revoked:"

# Production security check
if settings.is_production:
    if SECRET_KEY == DEVELOPMENT_SECRET:
        raise ValueError("JWT_SECRET_KEY must be set to a secure value in production!")
    if len(SECRET_KEY) < 32:
        logger.warning("JWT_SECRET_KEY should be at least 32 characters for security")

# Bearer scheme; missing credentials are turned into 401 below
security = HTTPBearer(auto_error=False)

password_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    """Hash a password with argon2id.

    Returns:
        PHC string of the form ``$argon2id$v=19$m=...,t=...,p=...$<salt>$<hash>``

    Raises:
        ValueError: If the password is empty
    """
    if not password:
        raise ValueError("Password must not be empty.")
    return password_hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a hash from ``hash_password``."""
    if not password or not password_hash:
        return False
    try:
        return password_hasher.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def password_needs_rehash(password_hash: str) -> bool:
    """True when the hash was made with weaker parameters than the current ones."""
    try:
        return password_hasher.check_needs_rehash(password_hash)
    except InvalidHashError:
        return True


def create_access_token(
    user: User,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create JWT access token for user.

    Args:
        user: Persisted user
        expires_delta: Token expiration time (default: ACCESS_TOKEN_EXPIRE_MINUTES)

    Returns:
        Encoded JWT token
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    now = datetime.now(timezone.utc)
    expire = now + expires_delta

    payload = {
        "sub": str(user.id),
        "email": user.email,
        "role": user.role,
        "jti": uuid.uuid4().hex,
        "exp": expire,
        "iat": now,
    }

    token = jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)

    logger.info(
        f"Access token created for user {user.email}",
        extra={"user_id": user.id, "expires_at": expire.isoformat()}
    )

    return token


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_token(token: str) -> TokenData:
    """Decode and validate JWT token.

    Raises:
        HTTPException: 401 if the token is invalid, expired or revoked
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token attempted")
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError as e:
        logger.warning(f"Invalid token attempted: {e}")
        raise _unauthorized("Invalid authentication token")

    token_data = TokenData(
        sub=payload.get("sub"),
        email=payload.get("email"),
        role=payload.get("role"),
        jti=payload.get("jti"),
        exp=datetime.fromtimestamp(payload.get("exp"), tz=timezone.utc),
        iat=datetime.fromtimestamp(payload.get("iat"), tz=timezone.utc) if payload.get("iat") else None,
    )

    if get_token_store(REVOKED_PREFIX).exists(token_data.jti):
        logger.warning("Revoked token attempted", extra={"user_id": token_data.sub})
        raise _unauthorized("Token has been revoked")

    return token_data


def revoke_token(token_data: TokenData) -> None:
    """Deny a token until it would have expired anyway."""
    remaining = (token_data.exp - datetime.now(timezone.utc)).total_seconds()
    if remaining <= 0:
        return
    stored = get_token_store(REVOKED_PREFIX).set(
        token_data.jti, {"user_id": token_data.sub}, ttl=timedelta(seconds=math.ceil(remaining))
    )
    if not stored:
        logger.warning(
            "Revocation kept in process memory only, Redis write failed",
            extra={"user_id": token_data.sub},
        )
    logger.info("Access token revoked", extra={"user_id": token_data.sub})


def get_token_data(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> TokenData:
    """FastAPI dependency returning the validated token payload."""
    if credentials is None:
        raise _unauthorized("Not authenticated")
    return decode_token(credentials.credentials)


def get_current_user(token_data: TokenData = Depends(get_token_data)) -> User:
    """FastAPI dependency to get current authenticated user.

    Raises:
        HTTPException: 401 if the token is invalid or the account is gone

    Example:
        >>> @router.get("/protected")
        >>> def protected_route(user: User = Depends(get_current_user)):
        ...     return {"user": user.email}
    """
    user = User.objects.find_by(id=int(token_data.sub))
    if user is None:
        raise _unauthorized("Account no longer exists")

    logger.debug(f"User authenticated: {user.email}", extra={"user_id": user.id})
    return user


def authenticate_user(email: str, password: str) -> Optional[User]:
    """Authenticate user with email and password.

    Returns:
        User if the credentials match, None otherwise
    """
    user = User.objects.find_by(email=email.lower())

    if user is None:
        logger.warning(f"Sign-in attempt for unknown email: {email}")
        return None

    if not verify_password(password, user.password_hash):
        logger.warning(f"Invalid password for user: {email}")
        return None

    if password_needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)
        logger.info("Password hash upgraded", extra={"user_id": user.id})

    user.track_sign_in(datetime.now(timezone.utc))
    logger.info(f"User authenticated successfully: {email}", extra={"user_id": user.id})
    return user
