"""Authentication routes and helpers.

Issued tokens carry identity only (user id, username, email). The role
is never read from a token: ``get_current_user`` loads the user row on
every request so authorization always sees the role stored right now.
"""

from datetime import timedelta

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from fastapi_limiter.depends import RateLimiter
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from . import crud, schemas
from .core import get_settings
from .database import get_db
from .errors import InvalidCredentialsError
from .models import User
from .timeutil import utcnow

logger = structlog.get_logger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")
router = APIRouter(prefix="/auth", tags=["auth"])

auth_rate_limit = RateLimiter(
    times=get_settings().AUTH_RATE_LIMIT_TIMES,
    seconds=get_settings().AUTH_RATE_LIMIT_SECONDS,
)
"""Rate limit shared by the credential endpoints."""


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Compare a plain password with its hashed value."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Generate a salted password hash using the configured context."""
    return pwd_context.hash(password)


def create_access_token(user: User, expires_delta: timedelta | None = None) -> str:
    """
    Create a signed JWT for a user.

    Args:
        user (User): User the token identifies.
        expires_delta (timedelta | None): Lifetime, defaults to the
            configured access token lifetime.

    Returns:
        str: Encoded token with ``sub``, ``username``, ``email``, ``exp``.
    """
    settings = get_settings()
    now = utcnow()
    expire = now + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {
        "sub": str(user.id),
        "username": user.username,
        "email": user.email,
        "iat": now,
        "exp": expire,
        "scope": "access",
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> schemas.TokenData:
    """Decode and validate a token, raising ``JWTError`` when unusable."""
    settings = get_settings()
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    token_data = schemas.TokenData(**payload)
    if token_data.sub is None or token_data.scope != "access":
        raise JWTError("Invalid token claims")
    return token_data


def authenticate(db: Session, username: str, password: str) -> User:
    """
    Check a username and password pair.

    Raises:
        InvalidCredentialsError: If the user is unknown or the password
            does not match. Both cases share one message.
    """
    user = crud.get_user_by_username(db, username)
    if not user or not verify_password(password, user.hashed_password):
        logger.info("login_failed", username=username)
        raise InvalidCredentialsError()
    return user


def _auth_response(user: User) -> schemas.AuthResponse:
    return schemas.AuthResponse(
        token=create_access_token(user),
        user=schemas.UserPublic.model_validate(user),
    )


def get_current_user(
    token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)
) -> User:
    """Dependency that loads the authenticated user from storage."""

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        token_data = decode_access_token(token)
        user_id = int(token_data.sub)
    except (JWTError, ValueError):
        raise credentials_exception
    user = crud.get_user_by_id(db, user_id)
    if user is None:
        raise credentials_exception
    return user


@router.post(
    "/register",
    response_model=schemas.AuthResponse,
    dependencies=[Depends(auth_rate_limit)],
)
def register(user_in: schemas.RegisterRequest, db: Session = Depends(get_db)):
    """Register a new staff user and return a token for it."""

    hashed_password = get_password_hash(user_in.password)
    user = crud.create_user(db, user_in, hashed_password)
    return _auth_response(user)


@router.post(
    "/login",
    response_model=schemas.AuthResponse,
    dependencies=[Depends(auth_rate_limit)],
)
def login(credentials: schemas.LoginRequest, db: Session = Depends(get_db)):
    """Authenticate with a JSON body and return a token."""

    user = authenticate(db, credentials.username, credentials.password)
    return _auth_response(user)


@router.post(
    "/token",
    response_model=schemas.Token,
    dependencies=[Depends(auth_rate_limit)],
)
def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)
):
    """Authenticate with an OAuth2 password form, as used by the API docs."""

    user = authenticate(db, form_data.username, form_data.password)
    return schemas.Token(access_token=create_access_token(user))
