"""
Entite Action - Domain Layer
Tache de coaching assignee a un eleve, avec media de demonstration (coach)
et media de preuve (eleve).
"""
from sqlmodel import SQLModel, Field
from pydantic import field_validator
from typing import Optional
from datetime import datetime
from uuid import UUID, uuid4
from enum import Enum

from .base import ApiModel


class ActionPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class UploadMethod(str, Enum):
    SUPABASE = "supabase"
    FALLBACK_BASE64 = "fallback_base64"


class Action(SQLModel, table=True):
    id: Optional[UUID] = Field(default_factory=uuid4, primary_key=True)
    title: str
    description: str
    category: str = Field(default="GENERAL")
    priority: ActionPriority = Field(default=ActionPriority.MEDIUM)
    due_date: Optional[datetime] = None

    student_id: UUID = Field(foreign_key="student.id", index=True)
    coach_id: UUID = Field(foreign_key="coach.id", index=True)
    team_id: Optional[UUID] = Field(default=None, foreign_key="team.id", index=True)

    is_completed: bool = Field(default=False)
    completed_at: Optional[datetime] = None
    is_acknowledged: bool = Field(default=False)
    acknowledged_at: Optional[datetime] = None
    notes: Optional[str] = None

    # Media de demonstration (coach)
    demo_media_url: Optional[str] = None
    demo_media_type: Optional[str] = None
    demo_file_name: Optional[str] = None
    demo_file_size: Optional[int] = None
    demo_upload_method: Optional[str] = None

    # Media de preuve (eleve)
    proof_media_url: Optional[str] = None
    proof_media_type: Optional[str] = None
    proof_file_name: Optional[str] = None
    proof_file_size: Optional[int] = None
    proof_upload_method: Optional[str] = None
    proof_uploaded_at: Optional[datetime] = None
    proof_processing_time: Optional[int] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


# ============ SCHEMAS ============

class ActionCreate(ApiModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: str = "GENERAL"
    priority: ActionPriority = ActionPriority.MEDIUM
    due_date: Optional[datetime] = None
    student_id: Optional[UUID] = None
    team_id: Optional[UUID] = None
    demo_media_url: Optional[str] = None
    demo_media_type: Optional[str] = None
    demo_file_name: Optional[str] = None
    demo_file_size: Optional[int] = None
    demo_upload_method: Optional[str] = None

    @field_validator('category')
    @classmethod
    def normalize_category(cls, v: str) -> str:
        return (v or "GENERAL").upper()


class ActionUpdate(ApiModel):
    """PATCH /actions par l'eleve"""
    action_id: Optional[UUID] = None
    is_completed: Optional[bool] = None
    is_acknowledged: Optional[bool] = None
    notes: Optional[str] = None


class ActionRead(ApiModel):
    id: UUID
    title: str
    description: str
    category: str
    priority: ActionPriority
    due_date: Optional[datetime] = None
    student_id: UUID
    coach_id: UUID
    team_id: Optional[UUID] = None
    is_completed: bool
    completed_at: Optional[datetime] = None
    is_acknowledged: bool
    acknowledged_at: Optional[datetime] = None
    notes: Optional[str] = None
    demo_media_url: Optional[str] = None
    demo_media_type: Optional[str] = None
    demo_file_name: Optional[str] = None
    demo_file_size: Optional[int] = None
    demo_upload_method: Optional[str] = None
    proof_media_url: Optional[str] = None
    proof_media_type: Optional[str] = None
    proof_file_name: Optional[str] = None
    proof_file_size: Optional[int] = None
    proof_upload_method: Optional[str] = None
    proof_uploaded_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
