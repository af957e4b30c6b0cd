"""
Application FastAPI principale pour PeakPlay
Point d'entree de l'API backend
"""
import logging
from logging.handlers import RotatingFileHandler
import sys
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.requests import Request
from starlette.middleware.base import BaseHTTPMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
import sentry_sdk

from peakplay.core.settings import get_settings
from peakplay.api.routers import router, limiter
from peakplay.core.database import create_db_and_tables
from peakplay.core.redis import check_redis_health
from peakplay.domain.services.badge_evaluation_worker import badge_evaluation_worker

settings = get_settings()

APP_VERSION = "1.0.0"

# Initialiser Sentry (uniquement si SENTRY_DSN est configure)
if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENVIRONMENT,
        traces_sample_rate=0.2 if settings.ENVIRONMENT == "production" else 1.0,
        send_default_pii=False,
    )

# Configuration du logging conditionnee par ENVIRONMENT
_log_level = getattr(logging, settings.LOG_LEVEL, logging.INFO)

_handler = logging.StreamHandler(sys.stdout)

if settings.ENVIRONMENT == "production":
    from pythonjsonlogger import jsonlogger
    _handler.setFormatter(jsonlogger.JsonFormatter(
        "%(asctime)s %(name)s %(levelname)s %(message)s",
        rename_fields={"asctime": "timestamp", "levelname": "level"},
    ))
else:
    _handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    ))

_handlers: list[logging.Handler] = [_handler]
if settings.ENVIRONMENT == "development":
    _handlers.append(RotatingFileHandler(
        'peakplay.log', maxBytes=5_000_000, backupCount=3,
    ))

logging.basicConfig(
    level=_log_level,
    handlers=_handlers,
)

if settings.ENVIRONMENT == "production":
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Gestionnaire de cycle de vie de l'application"""
    logger.info(f"Demarrage de PeakPlay API v{APP_VERSION}")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")

    create_db_and_tables()
    logger.info("Base de donnees initialisee")

    redis_ok = check_redis_health()
    if redis_ok is None:
        logger.info("Redis non configure, caches en memoire")
    elif redis_ok:
        logger.info("Redis connecte")
    else:
        logger.warning("Redis non disponible, les caches Redis seront degrades")

    if not settings.storage_enabled:
        logger.warning("Stockage Supabase non configure, les preuves seront stockees en base64")

    queue_mode = settings.BADGE_EVALUATION_MODE == "queue"
    if queue_mode:
        badge_evaluation_worker.start_worker()
        logger.info("Worker d'evaluation des badges demarre")
    else:
        logger.info("Evaluation des badges en mode inline")

    yield

    if queue_mode:
        badge_evaluation_worker.stop_worker()
        logger.info("Worker d'evaluation des badges arrete")


app = FastAPI(
    title="PeakPlay API",
    description="API de coaching sportif pour les jeunes athletes",
    version=APP_VERSION,
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None,
    lifespan=lifespan
)

# Rate limiting
app.state.limiter = limiter


async def _custom_rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Retourne un 429 propre avec headers Retry-After et X-RateLimit-*."""
    response = JSONResponse(
        status_code=429,
        content={
            "detail": "Too many requests",
            "message": f"Rate limit exceeded: {exc.detail}",
        },
    )
    response = request.app.state.limiter._inject_headers(
        response, request.state.view_rate_limit
    )
    return response


app.add_exception_handler(RateLimitExceeded, _custom_rate_limit_handler)
app.add_middleware(SlowAPIMiddleware)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Les entrees invalides sont des 400, pas des 422."""
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request", "errors": jsonable_encoder(exc.errors())},
    )


app.add_exception_handler(RequestValidationError, _validation_error_handler)

# Middlewares de securite en production
if settings.ENVIRONMENT == "production":
    class HTTPSRedirectMiddleware(BaseHTTPMiddleware):
        async def dispatch(self, request: Request, call_next):
            if request.headers.get("x-forwarded-proto") == "http":
                url = request.url.replace(scheme="https")
                return RedirectResponse(url, status_code=301)
            return await call_next(request)

    class SecureCookiesMiddleware(BaseHTTPMiddleware):
        """Force le flag Secure sur tous les cookies en production."""
        async def dispatch(self, request: Request, call_next):
            response = await call_next(request)
            if "set-cookie" in response.headers:
                new_cookies = []
                for header_value in response.headers.getlist("set-cookie"):
                    if "; secure" not in header_value.lower():
                        header_value += "; Secure"
                    new_cookies.append(header_value)
                del response.headers["set-cookie"]
                for cookie in new_cookies:
                    response.headers.append("set-cookie", cookie)
            return response

    class SecurityHeadersMiddleware(BaseHTTPMiddleware):
        """Ajoute les headers de securite sur toutes les reponses en production."""
        async def dispatch(self, request: Request, call_next):
            response = await call_next(request)
            response.headers["Strict-Transport-Security"] = "max-age=63072000; includeSubDomains"
            response.headers["X-Content-Type-Options"] = "nosniff"
            response.headers["X-Frame-Options"] = "DENY"
            return response

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(SecureCookiesMiddleware)
    app.add_middleware(HTTPSRedirectMiddleware)

# Configuration CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api")


@app.get("/health")
@limiter.exempt
async def health_check():
    """Point de sante de l'API"""
    redis_ok = check_redis_health()
    if redis_ok is None:
        redis_status = "not_configured"
    else:
        redis_status = "connected" if redis_ok else "disconnected"
    return JSONResponse(
        content={
            "status": "degraded" if redis_ok is False else "healthy",
            "version": APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "services": {
                "redis": redis_status,
                "storage": "supabase" if settings.storage_enabled else "base64_fallback",
                "badgeEvaluation": settings.BADGE_EVALUATION_MODE,
            },
        }
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc):
    """Gestionnaire global des exceptions"""
    logger.error(f"Erreur non geree: {type(exc).__name__}: {str(exc)}", exc_info=True)
    if settings.DEBUG:
        content = {
            "detail": "Internal server error",
            "type": type(exc).__name__,
            "message": str(exc),
        }
    else:
        content = {
            "detail": "Internal server error",
            "message": "An unexpected error occurred",
        }
    return JSONResponse(status_code=500, content=content)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "peakplay.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
