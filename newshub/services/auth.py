from datetime import datetime, timedelta
import logging
import uuid
from typing import List, Optional, Tuple

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import delete, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from newshub.core.config import settings
from newshub.core.exceptions import (
    Conflict,
    Forbidden,
    InvalidCredentials,
    SessionExpired,
    SessionInactive,
    SessionNotFound,
    Unauthorized,
)
from newshub.core.timezone_utils import utcnow
from newshub.db.session import get_db
from newshub.models.session import AdminSession
from newshub.models.user import AdminUser, RoleEnum

logger = logging.getLogger(__name__)

# Use a scheme without the 72-byte password limit as the preferred hashing algorithm.
# Keep bcrypt in the list so bcrypt hashes imported from elsewhere still verify.
pwd_context = CryptContext(schemes=["pbkdf2_sha256", "bcrypt"], deprecated="auto")
# auto_error is off so requests without a header can fall back to the cookie
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)

ACCESS = "access"
REFRESH = "refresh"


def verify_password(plain_password, hashed_password):
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # malformed or unknown hash format stored for the user
        return False


def get_password_hash(password):
    try:
        return pwd_context.hash(password)
    except ValueError as exc:
        raise ValueError("password too long to hash; choose a shorter password") from exc


def _encode_token(data: dict, secret: str, expire: datetime, token_type: str) -> str:
    to_encode = data.copy()
    # a random jti makes every token unique even for identical claims
    to_encode.update({
        "exp": expire,
        "iat": utcnow(),
        "jti": uuid.uuid4().hex,
        "type": token_type,
        "iss": settings.TOKEN_ISSUER,
        "aud": settings.TOKEN_AUDIENCE,
    })
    return jwt.encode(to_encode, secret, algorithm=settings.ALGORITHM)


def create_access_token(data: dict, expires_at: datetime) -> str:
    return _encode_token(data, settings.SECRET_KEY, expires_at, ACCESS)


def create_refresh_token(data: dict, expires_at: datetime) -> str:
    return _encode_token(data, settings.REFRESH_SECRET_KEY, expires_at, REFRESH)


def decode_token(token: str, token_type: str) -> dict:
    """Check signature, issuer, audience and type of a token.

    Expiry is not checked here: the session row is the authority on whether
    a token is still usable. Any failure surfaces as SessionNotFound.
    """
    secret = settings.SECRET_KEY if token_type == ACCESS else settings.REFRESH_SECRET_KEY
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[settings.ALGORITHM],
            audience=settings.TOKEN_AUDIENCE,
            issuer=settings.TOKEN_ISSUER,
            options={"verify_exp": False},
        )
    except JWTError:
        raise SessionNotFound()
    if payload.get("type") != token_type:
        raise SessionNotFound()
    return payload


def _session_expiries(now: datetime) -> Tuple[datetime, datetime]:
    expires_at = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    refresh_expires_at = now + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    # refresh must outlive access
    if refresh_expires_at <= expires_at:
        refresh_expires_at = expires_at + timedelta(seconds=1)
    return expires_at, refresh_expires_at


def _issue_token_pair(user: AdminUser, expires_at: datetime, refresh_expires_at: datetime) -> Tuple[str, str]:
    role = getattr(user.role, "value", user.role)
    token = create_access_token({"sub": user.username, "uid": user.id, "role": role}, expires_at)
    refresh_token = create_refresh_token({"sub": user.username, "uid": user.id}, refresh_expires_at)
    return token, refresh_token


def _register_failed_attempt(db: Session, user: AdminUser, now: datetime) -> None:
    if user.lock_until and user.lock_until <= now:
        # previous lock has lapsed, start counting again
        user.lock_until = None
        user.login_attempts = 1
    else:
        user.login_attempts = (user.login_attempts or 0) + 1
        if user.login_attempts >= settings.MAX_LOGIN_ATTEMPTS and not user.is_locked(now):
            user.lock_until = now + timedelta(minutes=settings.LOCK_TIME_MINUTES)
            logger.warning("Account %s locked after %s failed logins", user.username, user.login_attempts)
    db.add(user)
    db.commit()


def login(db: Session, username: str, password: str, user_agent: Optional[str] = None, ip_address: Optional[str] = None) -> dict:
    """Authenticate an admin and open a new session.

    Unknown users, wrong passwords, locked and deactivated accounts all fail
    with the same InvalidCredentials error.
    """
    now = utcnow()
    identifier = (username or "").strip().lower()
    user = (
        db.query(AdminUser)
        .filter(AdminUser.username == identifier, AdminUser.is_active.is_(True))
        .first()
    )
    if not user:
        logger.info("Login failed for unknown or inactive user")
        raise InvalidCredentials()
    if user.is_locked(now):
        logger.warning("Login attempt for locked account %s", user.username)
        raise InvalidCredentials()
    if not verify_password(password, user.password_hash):
        _register_failed_attempt(db, user, now)
        raise InvalidCredentials()

    user.login_attempts = 0
    user.lock_until = None
    user.last_login = now

    expires_at, refresh_expires_at = _session_expiries(now)
    token, refresh_token = _issue_token_pair(user, expires_at, refresh_expires_at)
    ses = AdminSession(
        user_id=user.id,
        access_token=token,
        refresh_token=refresh_token,
        expires_at=expires_at,
        refresh_expires_at=refresh_expires_at,
        user_agent=user_agent[:512] if user_agent else None,
        ip_address=ip_address[:64] if ip_address else None,
        is_active=True,
    )
    db.add(user)
    db.add(ses)
    db.commit()
    db.refresh(user)
    logger.info("Admin %s logged in from %s", user.username, ip_address or "unknown")
    return {"token": token, "refresh_token": refresh_token, "expires_at": expires_at, "user": user}


def validate(db: Session, access_token: str) -> AdminUser:
    """Resolve an access token to its user. Read only."""
    if not access_token:
        raise SessionNotFound()
    decode_token(access_token, ACCESS)
    ses = db.query(AdminSession).filter(AdminSession.access_token == access_token).first()
    if ses is None:
        raise SessionNotFound()
    if utcnow() >= ses.expires_at:
        raise SessionExpired()
    if not ses.is_active:
        raise SessionInactive()
    user = ses.user
    if user is None or not user.is_active:
        raise SessionInactive("User account is inactive")
    return user


def refresh(db: Session, refresh_token: str) -> dict:
    """Rotate both tokens of the session owning ``refresh_token``.

    The row is rewritten with a conditional UPDATE keyed on the old refresh
    token, so of two concurrent refreshes only one can match; the other gets
    SessionNotFound. The old refresh token never works again.
    """
    if not refresh_token:
        raise SessionNotFound()
    decode_token(refresh_token, REFRESH)
    now = utcnow()
    ses = db.query(AdminSession).filter(AdminSession.refresh_token == refresh_token).first()
    if ses is None:
        raise SessionNotFound()
    if not ses.is_active:
        raise SessionInactive()
    if now >= ses.refresh_expires_at:
        raise SessionExpired()
    user = ses.user
    if user is None or not user.is_active:
        raise SessionInactive("User account is inactive")

    expires_at, refresh_expires_at = _session_expiries(now)
    new_token, new_refresh_token = _issue_token_pair(user, expires_at, refresh_expires_at)
    try:
        result = db.execute(
            update(AdminSession)
            .where(
                AdminSession.id == ses.id,
                AdminSession.refresh_token == refresh_token,
                AdminSession.is_active.is_(True),
                AdminSession.refresh_expires_at > now,
            )
            .values(
                access_token=new_token,
                refresh_token=new_refresh_token,
                expires_at=expires_at,
                refresh_expires_at=refresh_expires_at,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
    except IntegrityError:
        # the freshly issued pair collided with another session's tokens
        db.rollback()
        logger.warning("Refresh for session %s produced a duplicate token pair", ses.id)
        raise SessionNotFound("Refresh token is stale")
    if result.rowcount != 1:
        db.rollback()
        logger.info("Refresh lost a race for session %s", ses.id)
        raise SessionNotFound("Refresh token is stale")
    db.commit()
    return {"token": new_token, "refresh_token": new_refresh_token, "expires_at": expires_at, "user": user}


def logout(db: Session, access_token: Optional[str]) -> bool:
    """Deactivate the session of ``access_token``.

    Unknown, malformed and already inactive tokens are a no-op. Returns
    whether a session was deactivated.
    """
    if not access_token:
        return False
    result = db.execute(
        update(AdminSession)
        .where(AdminSession.access_token == access_token, AdminSession.is_active.is_(True))
        .values(is_active=False, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount > 0


def deactivate_all_sessions(db: Session, user_id: int) -> int:
    """Deactivate every live session of a user ("log out everywhere").

    Rows already past their refresh expiry cannot be used for anything and
    are left to the sweep.
    """
    now = utcnow()
    result = db.execute(
        update(AdminSession)
        .where(
            AdminSession.user_id == user_id,
            AdminSession.is_active.is_(True),
            AdminSession.refresh_expires_at > now,
        )
        .values(is_active=False, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    logger.info("Deactivated %s sessions for user %s", result.rowcount, user_id)
    return result.rowcount


def cleanup_expired(db: Session) -> int:
    """Delete sessions past either expiry. Safe to run repeatedly."""
    now = utcnow()
    result = db.execute(
        delete(AdminSession)
        .where(or_(AdminSession.expires_at <= now, AdminSession.refresh_expires_at <= now))
        .execution_options(synchronize_session=False)
    )
    db.commit()
    if result.rowcount:
        logger.info("Cleaned up %s expired sessions", result.rowcount)
    return result.rowcount


def list_sessions(db: Session, user_id: int) -> List[AdminSession]:
    return (
        db.query(AdminSession)
        .filter(
            AdminSession.user_id == user_id,
            AdminSession.is_active.is_(True),
            AdminSession.refresh_expires_at > utcnow(),
        )
        .order_by(AdminSession.created_at.desc(), AdminSession.id.desc())
        .all()
    )


def create_admin_user(db: Session, username: str, email: str, password: str, role: str = "admin") -> AdminUser:
    username = username.strip().lower()
    email = email.strip().lower()
    exists = (
        db.query(AdminUser)
        .filter(or_(AdminUser.username == username, AdminUser.email == email))
        .first()
    )
    if exists:
        raise Conflict("Admin user with this username or email already exists")
    user = AdminUser(
        username=username,
        email=email,
        password_hash=get_password_hash(password),
        role=RoleEnum(role),
        is_active=True,
        login_attempts=0,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def get_access_token(request: Request, bearer: Optional[str] = Depends(oauth2_scheme)) -> Optional[str]:
    """Bearer header first, then the auth cookie."""
    if bearer:
        return bearer
    return request.cookies.get(settings.AUTH_COOKIE_NAME)


def get_current_user(token: Optional[str] = Depends(get_access_token), db: Session = Depends(get_db)):
    if not token:
        raise Unauthorized("Authentication required")
    return validate(db, token)


def require_roles(*roles: str):
    """Return a dependency that ensures the current user has one of the provided roles.

    Usage in a route:
        @router.get('/admin/sources')
        def list_sources(current_user=Depends(require_roles('admin', 'super-admin'))):
            ...
    """
    def role_checker(current_user=Depends(get_current_user)):
        user_role = getattr(current_user, 'role', None)
        role_value = user_role.value if hasattr(user_role, 'value') else str(user_role)
        if role_value not in roles:
            raise Forbidden()
        return current_user

    return role_checker


require_admin = require_roles(RoleEnum.admin.value, RoleEnum.super_admin.value)
