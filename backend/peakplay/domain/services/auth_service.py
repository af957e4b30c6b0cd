"""
Service d'authentification : inscription, login, utilisateur courant.
"""
import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from peakplay.auth.jwt import jwt_manager, password_manager, TokenResponse
from peakplay.domain.entities import User, UserRole, RegisterRequest, Student, Coach
from peakplay.domain.errors import ErrorKind, ServiceError, conflict, not_found

logger = logging.getLogger(__name__)


class AuthService:

    def register(self, session: Session, data: RegisterRequest) -> User:
        """Cree le User et son profil (Student ou Coach) dans une meme transaction."""
        if session.exec(select(User).where(User.email == data.email)).first():
            raise conflict("Email already exists")
        if session.exec(select(User).where(User.username == data.username)).first():
            raise conflict("Username already taken")

        user = User(
            email=data.email,
            username=data.username,
            name=data.name,
            hashed_password=password_manager.hash_password(data.password),
            role=data.role,
        )
        session.add(user)
        session.flush()

        if data.role == UserRole.ATHLETE:
            session.add(Student(
                user_id=user.id,
                student_name=data.name,
                username=data.username,
                email=data.email,
                age=18,
                height=0,
                weight=0,
                academy="Not specified",
                sport="CRICKET",
                role="All-rounder",
            ))
        else:
            session.add(Coach(
                user_id=user.id,
                name=data.name,
                email=data.email,
                academy="Not specified",
            ))

        try:
            session.commit()
        except IntegrityError:
            # Inscription concurrente avec le meme email / username
            session.rollback()
            raise conflict("Email or username already exists")

        session.refresh(user)
        logger.info(f"Nouvel utilisateur {user.email} ({user.role.value})")
        return user

    def login(self, session: Session, email: str, password: str) -> TokenResponse:
        user = session.exec(select(User).where(User.email == email.strip().lower())).first()

        if not user or not password_manager.verify_password(password, user.hashed_password):
            raise ServiceError(ErrorKind.UNAUTHENTICATED, "Incorrect email or password")

        if not user.is_active:
            raise ServiceError(ErrorKind.VALIDATION, "Inactive user")

        return jwt_manager.create_token_pair(str(user.id), user.email, user.role.value)

    def get_user(self, session: Session, user_id: str) -> User:
        user = session.get(User, UUID(user_id))
        if not user:
            raise not_found("User not found")
        return user


# Instance globale
auth_service = AuthService()
