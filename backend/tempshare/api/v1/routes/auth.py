# tempshare/api/v1/routes/auth.py
from typing import Optional
from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse, RedirectResponse
from tempshare.core.config import settings
from tempshare.core.exceptions import IdentityProviderError
from tempshare.core.limiter import limiter
from tempshare.core.schemas.auth import SessionIdentity, SessionResponse, SignOutResponse
from tempshare.core.security import create_oauth_state, verify_oauth_state
from tempshare.core.utils import get_auth_service, get_identity_provider, get_optional_session
from tempshare.services.auth_service import AuthService
from tempshare.services.github_oauth import IdentityProvider
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


def _callback_url(provider: IdentityProvider) -> str:
    return f"{settings.app_url.rstrip('/')}/api/auth/callback/{provider.name}"


def set_session_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(
        key=settings.security.SESSION_COOKIE_NAME,
        value=session_id,
        max_age=settings.security.SESSION_TTL_DAYS * 24 * 60 * 60,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.security.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
    )


@router.get("/signin/github")
@limiter.limit("10/minute")
async def signin_github(
    request: Request,
    provider: IdentityProvider = Depends(get_identity_provider),
):
    """Редирект на страницу авторизации GitHub"""
    state = create_oauth_state(provider.name)
    return RedirectResponse(provider.authorize_url(_callback_url(provider), state))


@router.get("/callback/github")
async def github_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    provider: IdentityProvider = Depends(get_identity_provider),
    auth_service: AuthService = Depends(get_auth_service),
):
    """OAuth колбэк: обмен кода, вход, установка cookie"""
    if not code:
        return RedirectResponse("/?error=no_code", status_code=status.HTTP_302_FOUND)
    if not verify_oauth_state(state, provider.name):
        logger.warning("OAuth callback with missing or invalid state")
        return RedirectResponse("/?error=invalid_state", status_code=status.HTTP_302_FOUND)

    try:
        identity = await provider.exchange_code(code, _callback_url(provider))
    except IdentityProviderError as e:
        logger.error(f"OAuth callback error: {e.detail}")
        return RedirectResponse("/?error=auth_error", status_code=status.HTTP_302_FOUND)

    client_ip = request.client.host if request.client else None
    _, user_session = await auth_service.sign_in(
        identity,
        ip_address=client_ip,
        user_agent=request.headers.get("user-agent"),
    )

    response = RedirectResponse("/", status_code=status.HTTP_302_FOUND)
    set_session_cookie(response, user_session.id)
    response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
    return response


@router.get("/session", response_model=SessionResponse)
async def get_session(identity: Optional[SessionIdentity] = Depends(get_optional_session)):
    """Текущая сессия; 401 с user=null, если входа нет"""
    if identity is None:
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"user": None})
    return SessionResponse(user=identity.user)


@router.post("/signout", response_model=SignOutResponse)
async def signout(
    response: Response,
    identity: Optional[SessionIdentity] = Depends(get_optional_session),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Выход: удаляем сессию (если была) и сбрасываем cookie"""
    if identity is not None:
        await auth_service.sign_out(identity.session_id)
    clear_session_cookie(response)
    return SignOutResponse(success=True)
