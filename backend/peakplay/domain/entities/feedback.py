"""
Entite Feedback - Domain Layer
Retour ecrit d'un coach a un eleve (ou a chaque membre d'une equipe).
"""
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from uuid import UUID, uuid4
from enum import Enum

from .base import ApiModel


class FeedbackCategory(str, Enum):
    GENERAL = "GENERAL"
    TECHNICAL = "TECHNICAL"
    PHYSICAL = "PHYSICAL"
    MENTAL = "MENTAL"
    TACTICAL = "TACTICAL"


class FeedbackPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class Feedback(SQLModel, table=True):
    id: Optional[UUID] = Field(default_factory=uuid4, primary_key=True)
    title: str
    content: str
    category: FeedbackCategory = Field(default=FeedbackCategory.GENERAL)
    priority: FeedbackPriority = Field(default=FeedbackPriority.MEDIUM)
    student_id: UUID = Field(foreign_key="student.id", index=True)
    coach_id: UUID = Field(foreign_key="coach.id", index=True)
    team_id: Optional[UUID] = Field(default=None, foreign_key="team.id", index=True)
    is_acknowledged: bool = Field(default=False)
    acknowledged_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


# ============ SCHEMAS ============

class FeedbackCreate(ApiModel):
    title: Optional[str] = None
    content: Optional[str] = None
    category: Optional[FeedbackCategory] = None
    priority: Optional[FeedbackPriority] = None
    student_id: Optional[UUID] = None
    team_id: Optional[UUID] = None


class FeedbackUpdate(ApiModel):
    feedback_id: Optional[UUID] = None
    is_acknowledged: Optional[bool] = None


class FeedbackRead(ApiModel):
    id: UUID
    title: str
    content: str
    category: FeedbackCategory
    priority: FeedbackPriority
    student_id: UUID
    coach_id: UUID
    team_id: Optional[UUID] = None
    is_acknowledged: bool
    acknowledged_at: Optional[datetime] = None
    created_at: datetime
