import re
from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlmodel import select
from sqlalchemy.exc import IntegrityError
from passlib.context import CryptContext
from jose import JWTError, jwt
from pydantic import BaseModel
from .models import User, UserOut, AuthSession
from .db import async_session
from .errors import ValidationError, InvalidCredentials, DuplicateUsername, AuthRequired
from . import config
import logging

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
USERNAME_RE = re.compile(r"[A-Za-z0-9_]+")
USERNAME_MIN_LENGTH = 3
PASSWORD_MIN_LENGTH = 6

# prefer a pure-Python, widely-available scheme for tests and portability;
# keep bcrypt so hashes created by bcrypt-based tools still verify.
pwd_context = CryptContext(schemes=["pbkdf2_sha256", "bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


class TokenData(BaseModel):
    username: Optional[str] = None
    user_id: Optional[int] = None


async def get_user_by_username(username: str) -> Optional[User]:
    async with async_session() as sess:
        q = await sess.exec(select(User).where(User.username == username))
        return q.first()


async def get_user_by_id(user_id: int) -> Optional[User]:
    async with async_session() as sess:
        return await sess.get(User, user_id)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # unknown or malformed hash in the DB
        logger.warning('stored password hash could not be identified')
        return False


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    if expires_delta is None:
        expires_delta = timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)
    expire = datetime.now(timezone.utc) + expires_delta
    # RFC 7519 NumericDate (seconds since epoch)
    to_encode.update({"exp": int(expire.timestamp())})
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> TokenData:
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.info('rejected access token: %s', e)
        raise AuthRequired('Invalid or expired token')
    username = payload.get("sub")
    if not username:
        raise AuthRequired('Invalid or expired token')
    return TokenData(username=username, user_id=payload.get("uid"))


def session_for(user: User) -> AuthSession:
    token = create_access_token({"sub": user.username, "uid": user.id})
    return AuthSession(token=token, user=UserOut(id=user.id, username=user.username))


def validate_registration(username: Optional[str], password: Optional[str]) -> None:
    if not username or not password:
        raise ValidationError('Username and password are required')
    if len(username) < USERNAME_MIN_LENGTH:
        raise ValidationError(f'Username must be at least {USERNAME_MIN_LENGTH} characters long')
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationError(f'Password must be at least {PASSWORD_MIN_LENGTH} characters long')
    if not USERNAME_RE.fullmatch(username):
        raise ValidationError('Username can only contain letters, numbers, and underscores')


async def register(username: Optional[str], password: Optional[str]) -> AuthSession:
    """Create a user and return a fresh session.

    Input is validated before storage is touched.
    """
    validate_registration(username, password)
    if await get_user_by_username(username):
        raise DuplicateUsername()
    user = User(username=username, password_hash=hash_password(password))
    async with async_session() as sess:
        sess.add(user)
        try:
            await sess.commit()
        except IntegrityError:
            # lost a race with a concurrent registration
            await sess.rollback()
            raise DuplicateUsername()
        await sess.refresh(user)
    logger.info('registered user id=%s username=%s', user.id, user.username)
    return session_for(user)


async def authenticate_user(username: str, password: str) -> Optional[User]:
    user = await get_user_by_username(username)
    if not user:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


async def authenticate(username: Optional[str], password: Optional[str]) -> AuthSession:
    if not username or not password:
        raise ValidationError('Username and password are required')
    user = await authenticate_user(username, password)
    if not user:
        logger.info('login failed for username=%s', username)
        raise InvalidCredentials()
    logger.info('login ok for user id=%s', user.id)
    return session_for(user)


async def get_current_user(token: Optional[str] = Depends(oauth2_scheme)) -> Optional[User]:
    """Resolve the bearer token to a User, or None when no token was sent.

    A token that is present but invalid, expired or pointing at a deleted
    user is an error, never treated as anonymous.
    """
    if not token:
        return None
    token_data = decode_access_token(token)
    if token_data.user_id is not None:
        user = await get_user_by_id(token_data.user_id)
    else:
        user = await get_user_by_username(token_data.username)
    if user is None or user.username != token_data.username:
        raise AuthRequired('Invalid or expired token')
    return user


async def require_login(user: Optional[User] = Depends(get_current_user)) -> User:
    """Dependency that enforces an authenticated user."""
    if not user:
        raise AuthRequired()
    return user
