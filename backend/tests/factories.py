"""
Fabriques de donnees de test (utilisateurs, profils, equipes, badges).
"""
import os
from typing import Iterable, List, Optional

from sqlmodel import Session, select

from peakplay.auth.jwt import jwt_manager, password_manager
from peakplay.domain.entities import (
    Action, Badge, BadgeCategory, BadgeRule, Coach, RuleOperator, RuleType,
    Skills, Student, Team, TeamMember, User, UserRole,
)

TEST_PASSWORD = "Password123"


def make_user(session: Session, role: UserRole = UserRole.ATHLETE, email: Optional[str] = None,
              name: str = "Test User", password: str = TEST_PASSWORD) -> User:
    email = email or f"{role.value.lower()}{os.urandom(4).hex()}@example.com"
    user = User(
        email=email,
        username=email.split("@")[0],
        name=name,
        hashed_password=password_manager.hash_password(password),
        role=role,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def make_coach(session: Session, name: str = "Coach Carter", academy: str = "North Academy") -> Coach:
    user = make_user(session, UserRole.COACH, name=name)
    coach = Coach(user_id=user.id, name=name, email=user.email, academy=academy)
    session.add(coach)
    session.commit()
    session.refresh(coach)
    return coach


def make_student(session: Session, coach: Optional[Coach] = None, name: str = "Sam Student",
                 age: int = 12, sport: str = "CRICKET") -> Student:
    user = make_user(session, UserRole.ATHLETE, name=name)
    student = Student(
        user_id=user.id,
        student_name=name,
        username=user.username,
        email=user.email,
        age=age,
        academy="North Academy",
        sport=sport,
        coach_id=coach.id if coach else None,
    )
    session.add(student)
    session.commit()
    session.refresh(student)
    return student


def make_skills(session: Session, student: Student, **values) -> Skills:
    skills = Skills(student_id=student.id, **values)
    session.add(skills)
    session.commit()
    session.refresh(skills)
    return skills


def make_team(session: Session, coach: Coach, students: Iterable[Student] = (), name: str = "Under 13") -> Team:
    team = Team(name=name, coach_id=coach.id)
    session.add(team)
    session.flush()
    for student in students:
        session.add(TeamMember(team_id=team.id, student_id=student.id))
    session.commit()
    session.refresh(team)
    return team


def make_action(session: Session, coach: Coach, student: Student, **fields) -> Action:
    action = Action(
        title=fields.pop("title", "Catching drill"),
        description=fields.pop("description", "50 high catches"),
        student_id=student.id,
        coach_id=coach.id,
        **fields,
    )
    session.add(action)
    session.commit()
    session.refresh(action)
    return action


def rule(field_name: str = "pushup_score", operator: str = "GTE", value: str = "20",
         weight: float = 1.0, is_required: bool = False, rule_type: str = "SKILLS_METRIC") -> dict:
    return {
        "rule_type": RuleType(rule_type),
        "field_name": field_name,
        "operator": RuleOperator(operator),
        "value": value,
        "weight": weight,
        "is_required": is_required,
    }


def make_badge(session: Session, name: str, rules: List[dict], sport: str = "ALL",
               category: str = "Fitness", level: str = "BRONZE") -> Badge:
    badge_category = session.exec(select(BadgeCategory).where(BadgeCategory.name == category)).first()
    if badge_category is None:
        badge_category = BadgeCategory(name=category)
        session.add(badge_category)
        session.flush()

    badge = Badge(
        name=name,
        level=level,
        sport=sport,
        category_id=badge_category.id,
        description=f"{name} badge",
        motivational_text="Keep going",
    )
    session.add(badge)
    session.flush()
    for position, spec in enumerate(rules):
        session.add(BadgeRule(badge_id=badge.id, position=position, **spec))
    session.commit()
    session.refresh(badge)
    return badge


def user_of(session: Session, profile) -> User:
    return session.get(User, profile.user_id)


def auth_headers(user: User) -> dict:
    token = jwt_manager.create_access_token(
        {"sub": str(user.id), "email": user.email, "role": user.role.value}
    )
    return {"Authorization": f"Bearer {token}"}
