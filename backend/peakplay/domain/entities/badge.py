"""
Entites Badge - Domain Layer
BadgeCategory, Badge (definition), BadgeRule (regle ponderee) et StudentBadge
(attribution d'un badge a un eleve, revocable).
"""
from sqlmodel import SQLModel, Field, Relationship, Index
from pydantic import field_validator
from sqlalchemy import text
from typing import Optional, List
from datetime import datetime
from uuid import UUID, uuid4
from enum import Enum

from .base import ApiModel


class RuleType(str, Enum):
    SKILLS_METRIC = "SKILLS_METRIC"
    SKILLS_AVERAGE = "SKILLS_AVERAGE"
    WELLNESS_STREAK = "WELLNESS_STREAK"


class RuleOperator(str, Enum):
    GT = "GT"
    GTE = "GTE"
    LT = "LT"
    LTE = "LTE"
    EQ = "EQ"
    NEQ = "NEQ"
    BETWEEN = "BETWEEN"


class BadgeCategory(SQLModel, table=True):
    __tablename__ = "badge_category"

    id: Optional[UUID] = Field(default_factory=uuid4, primary_key=True)
    name: str = Field(unique=True)
    description: Optional[str] = None
    icon: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Badge(SQLModel, table=True):
    id: Optional[UUID] = Field(default_factory=uuid4, primary_key=True)
    name: str
    description: str = Field(default="")
    motivational_text: str = Field(default="")
    level: str = Field(default="BRONZE")
    icon: str = Field(default="")
    sport: str = Field(default="ALL", index=True)
    is_active: bool = Field(default=True, index=True)
    category_id: UUID = Field(foreign_key="badge_category.id")
    created_by_coach_id: Optional[UUID] = Field(default=None, foreign_key="coach.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    category: Optional[BadgeCategory] = Relationship()
    rules: List["BadgeRule"] = Relationship(
        back_populates="badge",
        sa_relationship_kwargs={"order_by": "BadgeRule.position"},
    )


class BadgeRule(SQLModel, table=True):
    __tablename__ = "badge_rule"

    id: Optional[UUID] = Field(default_factory=uuid4, primary_key=True)
    badge_id: UUID = Field(foreign_key="badge.id", index=True)
    rule_type: RuleType = Field(default=RuleType.SKILLS_METRIC)
    field_name: str = Field(default="")
    operator: RuleOperator = Field(default=RuleOperator.GTE)
    value: str = Field(default="0")
    weight: float = Field(default=1.0)
    is_required: bool = Field(default=False)
    position: int = Field(default=0)

    badge: Optional[Badge] = Relationship(back_populates="rules")


class StudentBadge(SQLModel, table=True):
    """Attribution d'un badge. Au plus une attribution non revoquee par (eleve, badge)."""
    __tablename__ = "student_badge"
    __table_args__ = (
        Index(
            "uq_student_badge_active",
            "student_id",
            "badge_id",
            unique=True,
            postgresql_where=text("is_revoked = false"),
            sqlite_where=text("is_revoked = 0"),
        ),
    )

    id: Optional[UUID] = Field(default_factory=uuid4, primary_key=True)
    student_id: UUID = Field(foreign_key="student.id", index=True)
    badge_id: UUID = Field(foreign_key="badge.id", index=True)
    awarded_at: datetime = Field(default_factory=datetime.utcnow)
    score: float = Field(default=0)
    progress: float = Field(default=100)
    is_revoked: bool = Field(default=False)
    revoked_at: Optional[datetime] = None
    revoked_by: Optional[UUID] = None
    revoke_reason: Optional[str] = None

    badge: Optional[Badge] = Relationship()


# ============ SCHEMAS ============

class BadgeProgress(ApiModel):
    badge_id: UUID
    badge_name: str
    level: str
    category: str
    progress: float
    description: str
    motivational_text: str
    icon: str
    earned: bool
    earned_at: Optional[datetime] = None


class BadgeRevokeRequest(ApiModel):
    reason: str


class BadgeEvaluateRequest(ApiModel):
    """POST /badges/evaluate : un eleve, ou tous les eleves du coach"""
    student_id: Optional[UUID] = None


class BadgeRuleInput(ApiModel):
    rule_type: RuleType = RuleType.SKILLS_METRIC
    field_name: str
    operator: RuleOperator = RuleOperator.GTE
    value: str
    weight: float = 1.0
    is_required: bool = True

    @field_validator('value', mode='before')
    @classmethod
    def stringify_value(cls, v) -> str:
        return str(v)


class BadgeCreate(ApiModel):
    """Definition d'un badge (POST /badges/coach-custom et /badges/admin)"""
    name: Optional[str] = None
    description: Optional[str] = None
    motivational_text: Optional[str] = None
    level: str = "BRONZE"
    icon: str = ""
    sport: Optional[str] = None
    category: Optional[str] = None
    rules: List[BadgeRuleInput] = []
    target_students: List[UUID] = []

    @field_validator('level')
    @classmethod
    def normalize_level(cls, v: str) -> str:
        return v.upper()


class BadgeUpdate(ApiModel):
    """PUT /badges/admin/{id} : les regles fournies remplacent toutes les regles existantes"""
    name: Optional[str] = None
    description: Optional[str] = None
    motivational_text: Optional[str] = None
    level: Optional[str] = None
    icon: Optional[str] = None
    sport: Optional[str] = None
    category: Optional[str] = None
    is_active: Optional[bool] = None
    rules: Optional[List[BadgeRuleInput]] = None
