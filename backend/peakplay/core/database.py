"""
Configuration de la base de donnees avec SQLModel
"""
from sqlmodel import create_engine, SQLModel, Session
from peakplay.core.settings import get_settings

settings = get_settings()

# SQLite (tests, dev local) n'accepte pas le partage de connexion entre threads par defaut
_connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
    connect_args=_connect_args,
)


def create_db_and_tables():
    """Creer toutes les tables de la base de donnees"""
    # Import des entites pour enregistrer les tables dans les metadonnees
    import peakplay.domain.entities  # noqa: F401
    SQLModel.metadata.create_all(engine)


def get_session():
    """Generateur de session de base de donnees pour l'injection de dependance"""
    with Session(engine) as session:
        yield session
