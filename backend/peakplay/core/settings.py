"""
Configuration centralisee pour l'API PeakPlay
Utilise pydantic-settings pour la gestion des variables d'environnement
"""
from pydantic_settings import BaseSettings
from pydantic import Field, model_validator
from typing import List


class Settings(BaseSettings):
    """Configuration de l'application"""

    # Database
    DATABASE_URL: str = Field(
        description="URL de la base de donnees (PostgreSQL en production)"
    )

    # Session / JWT
    JWT_SECRET_KEY: str = Field(
        description="Cle secrete pour signer les JWT de session (obligatoire, pas de valeur par defaut)"
    )
    JWT_ALGORITHM: str = Field(default="HS256")
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60)
    JWT_REFRESH_TOKEN_EXPIRE_DAYS: int = Field(default=7)

    # Stockage Supabase
    SUPABASE_URL: str = Field(
        default="",
        description="URL de base du projet Supabase (vide = stockage desactive, fallback base64)"
    )
    SUPABASE_SERVICE_KEY: str = Field(
        default="",
        description="Cle service_role utilisee pour les appels Storage cote serveur"
    )
    SUPABASE_BUCKET: str = Field(
        default="peakplay-media",
        description="Bucket par defaut pour les medias"
    )
    SUPABASE_PRO_TIER: bool = Field(
        default=False,
        description="Active les fonctionnalites Pro (TTL de signature plus long, CDN, upload par chunks)"
    )
    SUPABASE_CDN_ENABLED: bool = Field(
        default=False,
        description="Reecrit les URLs signees vers le CDN Supabase"
    )
    SUPABASE_CDN_DOMAIN: str = Field(
        default="",
        description="Domaine CDN personnalise (remplace l'hote Supabase dans les URLs CDN)"
    )
    STORAGE_UPLOAD_TIMEOUT_SECONDS: float = Field(
        default=60.0,
        description="Timeout d'une tentative d'upload vers le stockage"
    )

    # URLs de l'application
    FRONTEND_URL: str = Field(
        default="http://localhost:3000",
        description="URL du frontend (utilisee pour CORS)"
    )

    # CORS
    ALLOWED_ORIGINS: List[str] = Field(
        default=[],
        description="Origines autorisees pour CORS (configure automatiquement selon ENVIRONMENT si vide)"
    )

    # Monitoring (Sentry)
    SENTRY_DSN: str = Field(
        default="",
        description="DSN Sentry pour le error tracking (vide = Sentry desactive)"
    )

    # Redis / cache
    REDIS_URL: str = Field(
        default="",
        description="URL de connexion Redis (vide = pas de Redis, caches en memoire)"
    )
    CACHE_BACKEND: str = Field(
        default="memory",
        description="Backend des caches applicatifs: 'memory' ou 'redis'"
    )
    CACHE_MAX_ENTRIES: int = Field(
        default=1000,
        description="Nombre maximum d'entrees par cache memoire (eviction LRU)"
    )
    CACHE_TTL_SECONDS: int = Field(
        default=300,
        description="TTL des caches badges (catalogue et progression par eleve)"
    )

    # Evaluation des badges
    BADGE_EVALUATION_MODE: str = Field(
        default="",
        description="'inline' (traitement dans la requete) ou 'queue' (worker); auto selon ENVIRONMENT si vide"
    )

    # Application
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="development")
    LOG_LEVEL: str = Field(
        default="",
        description="Niveau de logging (auto-configure selon ENVIRONMENT si vide)"
    )

    @model_validator(mode="after")
    def _configure_environment(self) -> "Settings":
        """Configure DEBUG, LOG_LEVEL et le mode d'evaluation des badges selon ENVIRONMENT."""
        is_prod = self.ENVIRONMENT == "production"
        if is_prod:
            self.DEBUG = False
        if not self.LOG_LEVEL:
            self.LOG_LEVEL = "WARNING" if is_prod else "INFO"
        if not self.BADGE_EVALUATION_MODE:
            self.BADGE_EVALUATION_MODE = "inline" if self.ENVIRONMENT == "development" else "queue"
        return self

    @model_validator(mode="after")
    def _set_default_origins(self) -> "Settings":
        """Definit les origines CORS par defaut selon ENVIRONMENT si non configurees."""
        if not self.ALLOWED_ORIGINS:
            if self.ENVIRONMENT == "production":
                self.ALLOWED_ORIGINS = ["https://peakplay.vercel.app"]
            else:
                self.ALLOWED_ORIGINS = [
                    "http://localhost:3000",
                    "http://127.0.0.1:3000",
                ]
        frontend = self.FRONTEND_URL.rstrip("/")
        if frontend and frontend not in self.ALLOWED_ORIGINS:
            self.ALLOWED_ORIGINS.append(frontend)
        return self

    @property
    def storage_enabled(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_SERVICE_KEY)

    class Config:
        env_file = ".env"
        case_sensitive = True


def get_settings() -> Settings:
    """Recupere la configuration"""
    return Settings()
