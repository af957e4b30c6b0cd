"""
Entite BadgeEvaluationQueue - Domain Layer
Outbox des evaluations de badges demandees apres une mise a jour des skills.
"""
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from uuid import UUID, uuid4
from enum import Enum


class EvaluationStatus(str, Enum):
    """Statuts possibles d'une demande d'evaluation"""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class BadgeEvaluationQueue(SQLModel, table=True):
    """Table badge_evaluation_queue : une ligne par demande d'evaluation"""
    __tablename__ = "badge_evaluation_queue"

    id: Optional[UUID] = Field(default_factory=uuid4, primary_key=True)
    student_id: UUID = Field(foreign_key="student.id", index=True)
    reason: str = Field(default="skills_updated")
    status: EvaluationStatus = Field(default=EvaluationStatus.PENDING, index=True)
    attempts: int = Field(default=0)
    max_attempts: int = Field(default=3)
    last_error: Optional[str] = None
    new_badges: int = Field(default=0)
    next_retry_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
