"""
Utilitaires partages entre les routers API.
"""
import logging
from typing import NoReturn, Optional
from uuid import UUID

from fastapi import Depends, Request, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
from jose import JWTError, jwt as jose_jwt
from sqlmodel import Session

from peakplay.auth.jwt import get_current_user_id
from peakplay.core.database import get_session
from peakplay.core.settings import get_settings
from peakplay.domain.entities import User, UserRole
from peakplay.domain.errors import ErrorKind, ServiceError

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)

ERROR_STATUS = {
    ErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.PAYLOAD_TOO_LARGE: status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    ErrorKind.UPSTREAM: status.HTTP_502_BAD_GATEWAY,
}


async def security(request: Request) -> HTTPAuthorizationCredentials:
    """Extrait le JWT depuis le header Bearer ou le cookie access_token."""
    creds = await _bearer_scheme(request)
    if creds:
        return creds

    token = request.cookies.get("access_token")
    if token:
        return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


def _extract_token_from_request(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:]
    return request.cookies.get("access_token")


def _get_user_or_ip(request: Request) -> str:
    """Key function du rate limiter : user_id JWT si present, sinon l'IP."""
    token = _extract_token_from_request(request)
    if token:
        try:
            settings = get_settings()
            payload = jose_jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
            user_id = payload.get("sub")
            if user_id:
                return f"user:{user_id}"
        except JWTError:
            pass
    return get_remote_address(request)


limiter = Limiter(key_func=_get_user_or_ip, default_limits=["100/minute"], headers_enabled=True)


def raise_http_error(error: ServiceError) -> NoReturn:
    """Traduit une ServiceError en HTTPException selon son kind."""
    if error.kind == ErrorKind.UPSTREAM:
        logger.error(f"Erreur service externe: {error.message}")
    raise HTTPException(status_code=ERROR_STATUS[error.kind], detail=error.message) from error


def get_current_user(
    token: HTTPAuthorizationCredentials = Depends(security),
    session: Session = Depends(get_session),
) -> User:
    """Utilisateur actif correspondant au token."""
    user_id = get_current_user_id(token.credentials)
    user = session.get(User, _as_uuid(user_id))
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return user


def require_role(*roles: UserRole):
    """Dependance : 403 si le role de l'utilisateur n'est pas dans `roles`."""
    def _check(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return user
    return _check


def _as_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


def _cookie_options() -> dict:
    settings = get_settings()
    is_prod = settings.ENVIRONMENT == "production"
    # Frontend et backend sur des domaines differents en production
    return {"httponly": True, "secure": is_prod, "samesite": "none" if is_prod else "lax", "path": "/"}


def set_auth_cookies(response: JSONResponse, access_token: str, refresh_token: str) -> JSONResponse:
    """Pose les cookies httpOnly pour access_token et refresh_token."""
    settings = get_settings()
    response.set_cookie(
        key="access_token",
        value=access_token,
        max_age=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        **_cookie_options(),
    )
    response.set_cookie(
        key="refresh_token",
        value=refresh_token,
        max_age=settings.JWT_REFRESH_TOKEN_EXPIRE_DAYS * 86400,
        **_cookie_options(),
    )
    return response


def clear_auth_cookies(response: JSONResponse) -> JSONResponse:
    for key in ("access_token", "refresh_token"):
        response.delete_cookie(key=key, **_cookie_options())
    return response
