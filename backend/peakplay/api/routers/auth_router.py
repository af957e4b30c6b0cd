"""
Routes d'authentification : inscription, login, refresh, logout, me.
Routes = validation + delegation au service. Pas de logique metier ici.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status, Request, Form
from fastapi.responses import JSONResponse
from sqlmodel import Session

from peakplay.core.database import get_session
from peakplay.core.settings import get_settings
from peakplay.auth.jwt import jwt_manager
from peakplay.domain.entities import RegisterRequest, User, UserRead
from peakplay.domain.errors import ServiceError
from peakplay.domain.services.auth_service import auth_service
from peakplay.api.routers._shared import (
    limiter, get_current_user, raise_http_error, set_auth_cookies, clear_auth_cookies,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/auth/register", status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
async def register(
    request: Request,
    data: RegisterRequest,
    session: Session = Depends(get_session)
):
    """Inscription : cree le compte et le profil eleve / coach"""
    try:
        user = auth_service.register(session, data)
    except ServiceError as e:
        raise_http_error(e)
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={"message": "User created successfully", "userId": str(user.id), "role": user.role.value},
    )


@router.post("/auth/login")
@limiter.limit("5/minute")
async def login(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    session: Session = Depends(get_session)
):
    """Connexion utilisateur"""
    try:
        tokens = auth_service.login(session, email, password)
    except ServiceError as e:
        raise_http_error(e)
    response = JSONResponse(content=tokens.model_dump())
    return set_auth_cookies(response, tokens.access_token, tokens.refresh_token)


@router.post("/auth/refresh")
async def refresh_token(request: Request):
    """Rafraichit l'access token a partir du refresh token (cookie ou body JSON)."""
    refresh_tok = request.cookies.get("refresh_token")
    if not refresh_tok:
        try:
            body = await request.json()
        except ValueError:
            body = {}
        refresh_tok = body.get("refresh_token") if isinstance(body, dict) else None
    if not refresh_tok:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Refresh token missing")

    new_access = jwt_manager.refresh_access_token(refresh_tok)
    settings = get_settings()
    is_prod = settings.ENVIRONMENT == "production"
    response = JSONResponse(content={"access_token": new_access})
    response.set_cookie(
        key="access_token",
        value=new_access,
        httponly=True,
        secure=is_prod,
        samesite="none" if is_prod else "lax",
        max_age=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        path="/",
    )
    return response


@router.post("/auth/logout")
async def logout():
    """Supprime les cookies d'authentification."""
    response = JSONResponse(content={"message": "Logged out"})
    return clear_auth_cookies(response)


@router.get("/auth/me", response_model=UserRead)
async def me(user: User = Depends(get_current_user)):
    """Utilisateur connecte"""
    return user
