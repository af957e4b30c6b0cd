import os
import sys
from logging.config import fileConfig

from alembic import context

# Ajouter le dossier backend pour importer le package peakplay
sys.path.append(os.path.dirname(os.path.abspath(__file__)) + "/..")

# Import des modeles SQLModel (enregistre toutes les tables dans les metadonnees)
from peakplay.domain.entities import (  # noqa: F401
    User, Coach, Student, Team, TeamMember, Skills, SkillHistory,
    Action, Feedback, Badge, BadgeCategory, BadgeRule, StudentBadge,
    BadgeEvaluationQueue,
)
from peakplay.core.database import engine
from sqlmodel import SQLModel

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Metadonnees SQLModel pour l'autogenerate
target_metadata = SQLModel.metadata


def run_migrations_offline() -> None:
    """Genere le SQL sans connexion a la base."""
    from peakplay.core.settings import get_settings
    settings = get_settings()
    context.configure(
        url=settings.DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Applique les migrations avec l'engine de l'application."""
    with engine.connect() as connection:
        context.configure(
            connection=connection, target_metadata=target_metadata
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
