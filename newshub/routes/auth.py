from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from newshub.core.config import settings
from newshub.db.session import get_db
from newshub.schemas.base import MessageResponse
from newshub.schemas.user import (
    AdminUserRead,
    AuthResponse,
    LoginRequest,
    LogoutAllResponse,
    RefreshRequest,
    SessionListResponse,
    SessionRead,
)
from newshub.services import auth as auth_service

router = APIRouter(prefix="/auth", tags=["Auth"])


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return request.client.host if request.client else "unknown"


def _set_auth_cookie(response: Response, token: str) -> None:
    # httpOnly so page scripts never see the token
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        path="/",
    )


@router.post("/login", response_model=AuthResponse)
def login(form_data: LoginRequest, request: Request, response: Response, db: Session = Depends(get_db)):
    result = auth_service.login(
        db,
        form_data.username,
        form_data.password,
        user_agent=request.headers.get("user-agent", ""),
        ip_address=_client_ip(request),
    )
    _set_auth_cookie(response, result["token"])
    return AuthResponse(message="Login successful", **result)


@router.post("/refresh", response_model=AuthResponse)
def refresh_token(payload: RefreshRequest, response: Response, db: Session = Depends(get_db)):
    result = auth_service.refresh(db, payload.refresh_token)
    _set_auth_cookie(response, result["token"])
    return AuthResponse(message="Token refreshed successfully", **result)


@router.post("/logout", response_model=MessageResponse)
def logout(response: Response, token=Depends(auth_service.get_access_token), db: Session = Depends(get_db)):
    auth_service.logout(db, token)
    response.delete_cookie(settings.AUTH_COOKIE_NAME, path="/")
    return MessageResponse(message="Logout successful")


@router.post("/logout-all", response_model=LogoutAllResponse)
def logout_all(response: Response, current_user=Depends(auth_service.get_current_user), db: Session = Depends(get_db)):
    count = auth_service.deactivate_all_sessions(db, current_user.id)
    response.delete_cookie(settings.AUTH_COOKIE_NAME, path="/")
    return LogoutAllResponse(message="All sessions logged out successfully", deactivated=count)


@router.get("/me", response_model=AdminUserRead)
def read_users_me(current_user=Depends(auth_service.get_current_user)):
    return current_user


@router.get("/sessions", response_model=SessionListResponse)
def list_sessions(
    token=Depends(auth_service.get_access_token),
    current_user=Depends(auth_service.get_current_user),
    db: Session = Depends(get_db),
):
    rows = auth_service.list_sessions(db, current_user.id)
    sessions = []
    for r in rows:
        item = SessionRead.model_validate(r)
        item.current = r.access_token == token
        sessions.append(item)
    return SessionListResponse(sessions=sessions)
