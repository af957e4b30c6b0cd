"""
Entites Skills et SkillHistory - Domain Layer
Skills : etat courant des mesures d'un eleve (une ligne par eleve).
SkillHistory : scores composites journaliers (une ligne par eleve et par jour).
"""
from sqlmodel import SQLModel, Field, UniqueConstraint
from typing import Optional
from datetime import date as date_type, datetime
from uuid import UUID, uuid4

from .base import ApiModel


class SkillFields(SQLModel):
    """Mesures brutes, toutes optionnelles"""
    # Physique
    pushup_score: Optional[float] = None
    pullup_score: Optional[float] = None
    sprint_time: Optional[float] = None
    run_5k_time: Optional[float] = None
    vertical_jump: Optional[float] = None
    grip_strength: Optional[float] = None
    sprint_50m: Optional[float] = None
    shuttle_run: Optional[float] = None
    yoyo_test: Optional[float] = None
    # Mental (echelle 1-10)
    mood_score: Optional[float] = None
    sleep_score: Optional[float] = None
    # Nutrition
    total_calories: Optional[float] = None
    protein: Optional[float] = None
    carbohydrates: Optional[float] = None
    fats: Optional[float] = None
    water_intake: Optional[float] = None
    # Batting (echelle 0-10)
    batting_grip: Optional[float] = None
    batting_stance: Optional[float] = None
    batting_balance: Optional[float] = None
    cocking_of_wrist: Optional[float] = None
    back_lift: Optional[float] = None
    top_hand_dominance: Optional[float] = None
    high_elbow: Optional[float] = None
    running_between_wickets: Optional[float] = None
    calling: Optional[float] = None
    # Bowling
    bowling_grip: Optional[float] = None
    run_up: Optional[float] = None
    back_foot_landing: Optional[float] = None
    front_foot_landing: Optional[float] = None
    hip_drive: Optional[float] = None
    back_foot_drag: Optional[float] = None
    non_bowling_arm: Optional[float] = None
    release: Optional[float] = None
    follow_through: Optional[float] = None
    # Fielding
    positioning_of_ball: Optional[float] = None
    pick_up: Optional[float] = None
    aim: Optional[float] = None
    throw: Optional[float] = None
    soft_hands: Optional[float] = None
    receiving: Optional[float] = None
    high_catch: Optional[float] = None
    flat_catch: Optional[float] = None


SKILL_FIELD_NAMES = tuple(SkillFields.model_fields.keys())


class Skills(SkillFields, table=True):
    id: Optional[UUID] = Field(default_factory=uuid4, primary_key=True)
    student_id: UUID = Field(foreign_key="student.id", unique=True, index=True)
    category: str = Field(default="PHYSICAL")
    last_updated: datetime = Field(default_factory=datetime.utcnow)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class SkillHistory(SQLModel, table=True):
    __tablename__ = "skill_history"
    __table_args__ = (UniqueConstraint("student_id", "date", name="uq_skill_history_student_date"),)

    id: Optional[UUID] = Field(default_factory=uuid4, primary_key=True)
    student_id: UUID = Field(foreign_key="student.id", index=True)
    date: date_type
    physical_score: float = Field(default=0)
    nutrition_score: float = Field(default=0)
    mental_score: float = Field(default=0)
    wellness_score: float = Field(default=0)
    technique_score: float = Field(default=0)
    tactical_score: float = Field(default=0)
    notes: Optional[str] = None
    is_match_day: bool = Field(default=False)
    match_id: Optional[str] = None
    coach_feedback: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


# ============ SCHEMAS ============

class SkillsUpdate(ApiModel):
    """POST /skills : seuls les champs fournis sont ecrits"""
    student_id: Optional[UUID] = None
    category: Optional[str] = None
    pushup_score: Optional[float] = None
    pullup_score: Optional[float] = None
    sprint_time: Optional[float] = None
    run_5k_time: Optional[float] = None
    vertical_jump: Optional[float] = None
    grip_strength: Optional[float] = None
    sprint_50m: Optional[float] = None
    shuttle_run: Optional[float] = None
    yoyo_test: Optional[float] = None
    mood_score: Optional[float] = None
    sleep_score: Optional[float] = None
    total_calories: Optional[float] = None
    protein: Optional[float] = None
    carbohydrates: Optional[float] = None
    fats: Optional[float] = None
    water_intake: Optional[float] = None
    batting_grip: Optional[float] = None
    batting_stance: Optional[float] = None
    batting_balance: Optional[float] = None
    cocking_of_wrist: Optional[float] = None
    back_lift: Optional[float] = None
    top_hand_dominance: Optional[float] = None
    high_elbow: Optional[float] = None
    running_between_wickets: Optional[float] = None
    calling: Optional[float] = None
    bowling_grip: Optional[float] = None
    run_up: Optional[float] = None
    back_foot_landing: Optional[float] = None
    front_foot_landing: Optional[float] = None
    hip_drive: Optional[float] = None
    back_foot_drag: Optional[float] = None
    non_bowling_arm: Optional[float] = None
    release: Optional[float] = None
    follow_through: Optional[float] = None
    positioning_of_ball: Optional[float] = None
    pick_up: Optional[float] = None
    aim: Optional[float] = None
    throw: Optional[float] = None
    soft_hands: Optional[float] = None
    receiving: Optional[float] = None
    high_catch: Optional[float] = None
    flat_catch: Optional[float] = None

    def provided_skill_values(self) -> dict:
        """Champs de mesure explicitement envoyes par le client (null compris)."""
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if name in SKILL_FIELD_NAMES
        }


class SkillHistoryRead(ApiModel):
    date: date_type
    physical_score: float
    nutrition_score: float
    mental_score: float
    wellness_score: float
    technique_score: float
    tactical_score: float
    is_match_day: bool
    match_id: Optional[str] = None
    coach_feedback: Optional[str] = None
    notes: Optional[str] = None


class SkillsRead(SkillsUpdate):
    id: UUID
    student_id: UUID
    category: str
    last_updated: datetime
