"""
Entites Team et TeamMember - Domain Layer
Une equipe appartient a un coach; les membres sont des eleves.
"""
from sqlmodel import SQLModel, Field, Relationship, UniqueConstraint
from typing import Optional, List, TYPE_CHECKING
from datetime import datetime
from uuid import UUID, uuid4

if TYPE_CHECKING:
    from .user import Student


class Team(SQLModel, table=True):
    id: Optional[UUID] = Field(default_factory=uuid4, primary_key=True)
    name: str
    description: Optional[str] = None
    coach_id: UUID = Field(foreign_key="coach.id", index=True)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    members: List["TeamMember"] = Relationship(back_populates="team")


class TeamMember(SQLModel, table=True):
    __tablename__ = "team_member"
    __table_args__ = (UniqueConstraint("team_id", "student_id", name="uq_team_member"),)

    id: Optional[UUID] = Field(default_factory=uuid4, primary_key=True)
    team_id: UUID = Field(foreign_key="team.id", index=True)
    student_id: UUID = Field(foreign_key="student.id", index=True)
    joined_at: datetime = Field(default_factory=datetime.utcnow)

    team: Team = Relationship(back_populates="members")
    student: "Student" = Relationship(back_populates="team_memberships")
