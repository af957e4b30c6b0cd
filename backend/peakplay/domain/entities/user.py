"""
Entites User, Coach, Student - Domain Layer
Un User porte l'identite et le role; Coach et Student sont les profils metier.
"""
import re
from sqlmodel import SQLModel, Field, Relationship
from pydantic import field_validator
from typing import Optional, List, TYPE_CHECKING
from datetime import datetime
from uuid import UUID, uuid4
from enum import Enum

from .base import ApiModel

if TYPE_CHECKING:
    from .team import TeamMember

EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
USERNAME_PATTERN = r'^[a-zA-Z0-9_]+$'


class UserRole(str, Enum):
    ATHLETE = "ATHLETE"
    COACH = "COACH"
    ADMIN = "ADMIN"


class User(SQLModel, table=True):
    """Compte utilisateur"""
    id: Optional[UUID] = Field(default_factory=uuid4, primary_key=True)
    email: str = Field(unique=True, index=True, max_length=255)
    username: Optional[str] = Field(default=None, unique=True, index=True, max_length=50)
    name: str
    hashed_password: str
    role: UserRole = Field(default=UserRole.ATHLETE)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Coach(SQLModel, table=True):
    """Profil coach (un par utilisateur)"""
    id: Optional[UUID] = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(foreign_key="user.id", unique=True, index=True)
    name: str
    email: str
    academy: str = Field(default="Not specified")
    created_at: datetime = Field(default_factory=datetime.utcnow)

    students: List["Student"] = Relationship(back_populates="coach")


class Student(SQLModel, table=True):
    """Profil athlete (un par utilisateur)"""
    id: Optional[UUID] = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(foreign_key="user.id", unique=True, index=True)
    student_name: str
    username: Optional[str] = None
    email: str
    age: int = Field(default=18)
    height: float = Field(default=0)
    weight: float = Field(default=0)
    academy: str = Field(default="Not specified")
    sport: str = Field(default="CRICKET")
    role: str = Field(default="All-rounder")
    coach_id: Optional[UUID] = Field(default=None, foreign_key="coach.id", index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    coach: Optional[Coach] = Relationship(back_populates="students")
    team_memberships: List["TeamMember"] = Relationship(back_populates="student")


# ============ SCHEMAS ============

class RegisterRequest(ApiModel):
    """Inscription : cree le User et le profil correspondant au role"""
    email: str
    password: str
    name: str
    username: str
    role: UserRole

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip()
        if not re.match(EMAIL_PATTERN, v):
            raise ValueError('Invalid email address')
        return v.lower()

    @field_validator('password')
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError('Password must be at least 8 characters')
        if not re.search(r'[A-Z]', v) or not re.search(r'[a-z]', v) or not re.search(r'[0-9]', v):
            raise ValueError('Password must contain at least one uppercase letter, one lowercase letter, and one number')
        return v

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError('Name must be at least 2 characters')
        return v

    @field_validator('username')
    @classmethod
    def validate_username(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 3:
            raise ValueError('Username must be at least 3 characters')
        if not re.match(USERNAME_PATTERN, v):
            raise ValueError('Username can only contain letters, numbers, and underscores')
        return v.lower()

    @field_validator('role')
    @classmethod
    def validate_role(cls, v: UserRole) -> UserRole:
        if v == UserRole.ADMIN:
            raise ValueError('Role must be ATHLETE or COACH')
        return v


class UserRead(ApiModel):
    id: UUID
    email: str
    username: Optional[str] = None
    name: str
    role: UserRole
    is_active: bool
    created_at: datetime


class CoachCreate(ApiModel):
    name: Optional[str] = None
    academy: Optional[str] = None


class CoachRead(ApiModel):
    id: UUID
    user_id: UUID
    name: str
    email: str
    academy: str
    created_at: datetime


class StudentCreate(ApiModel):
    """Creation du profil athlete (onboarding). Les champs manquants sont rejetes par le service."""
    name: Optional[str] = None
    age: Optional[int] = None
    height: Optional[float] = None
    weight: Optional[float] = None
    academy: Optional[str] = None
    role: Optional[str] = None


class StudentRead(ApiModel):
    id: UUID
    user_id: UUID
    student_name: str
    username: Optional[str] = None
    email: str
    age: int
    height: float
    weight: float
    academy: str
    sport: str
    role: str
    coach_id: Optional[UUID] = None
    created_at: datetime
