"""
Service des badges : catalogue, evaluation et attribution, progression par
eleve, revocation.

Le catalogue (par sport) et la progression par eleve sont memorises dans un
CacheBackend injecte (TTL 5 minutes par defaut). La progression d'un eleve est
invalidee a chaque nouvelle evaluation.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select, or_

from peakplay.core.cache import CacheBackend, get_badge_cache
from peakplay.domain.entities import (
    Badge, BadgeCategory, BadgeCreate, BadgeRule, BadgeRuleInput, BadgeUpdate,
    Skills, Student, StudentBadge, Coach, User, UserRole,
)
from peakplay.domain.errors import forbidden, invalid, not_found
from peakplay.domain.services.badge_engine import RuleSpec, evaluate_badge
from peakplay.domain.services.profile_service import find_coach

logger = logging.getLogger(__name__)

CATALOG_KEY = "all_badges"
CUSTOM_CATEGORY = "Custom"


def progress_key(student_id: UUID) -> str:
    return f"badge_progress_{student_id}"


class BadgeService:
    """Evaluation et suivi des badges d'un eleve."""

    def __init__(self, cache: CacheBackend):
        self.cache = cache

    # ------------------------------------------------------------------
    # Catalogue
    # ------------------------------------------------------------------

    def get_catalog(self, session: Session, sport: str) -> List[Dict[str, Any]]:
        """Badges actifs applicables a un sport (sport exact ou 'ALL')."""
        key = f"{CATALOG_KEY}:{sport}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        badges = session.exec(
            select(Badge).where(
                Badge.is_active == True,  # noqa: E712
                or_(Badge.sport == sport, Badge.sport == "ALL"),
            ).order_by(Badge.created_at)
        ).all()

        catalog = []
        for badge in badges:
            category = session.get(BadgeCategory, badge.category_id) if badge.category_id else None
            catalog.append({
                "id": str(badge.id),
                "name": badge.name,
                "level": badge.level,
                "category": category.name if category else "General",
                "description": badge.description,
                "motivational_text": badge.motivational_text,
                "icon": badge.icon,
                "sport": badge.sport,
                "rules": [
                    {
                        "rule_type": rule.rule_type.value,
                        "field_name": rule.field_name,
                        "operator": rule.operator.value,
                        "value": rule.value,
                        "weight": rule.weight,
                        "is_required": rule.is_required,
                    }
                    for rule in badge.rules
                ],
            })

        self.cache.set(key, catalog)
        return catalog

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def _active_awards(self, session: Session, student_id: UUID) -> Dict[str, StudentBadge]:
        awards = session.exec(
            select(StudentBadge).where(
                StudentBadge.student_id == student_id,
                StudentBadge.is_revoked == False,  # noqa: E712
            )
        ).all()
        return {str(award.badge_id): award for award in awards}

    @staticmethod
    def _progress_entry(badge: Dict[str, Any], progress: float, earned: bool,
                        earned_at: Optional[datetime]) -> Dict[str, Any]:
        return {
            "badgeId": badge["id"],
            "badgeName": badge["name"],
            "level": badge["level"],
            "category": badge["category"],
            "progress": progress,
            "description": badge["description"],
            "motivationalText": badge["motivational_text"],
            "icon": badge["icon"],
            "earned": earned,
            "earnedAt": earned_at.isoformat() if earned_at else None,
        }

    def evaluate_student(self, session: Session, student_id: UUID) -> Dict[str, Any]:
        """Evalue tous les badges non obtenus d'un eleve et attribue ceux qui sont gagnes."""
        student = session.get(Student, student_id)
        if not student:
            raise not_found("Student not found")

        skills = session.exec(select(Skills).where(Skills.student_id == student_id)).first()
        awarded = self._active_awards(session, student_id)

        new_badges: List[str] = []
        updated_progress: List[Dict[str, Any]] = []

        for badge in self.get_catalog(session, student.sport):
            if badge["id"] in awarded:
                continue

            rules = [RuleSpec(**rule) for rule in badge["rules"]]
            evaluation = evaluate_badge(rules, skills)
            earned_at = None

            if evaluation.earned:
                award = StudentBadge(
                    student_id=student_id,
                    badge_id=UUID(badge["id"]),
                    score=evaluation.score,
                    progress=100,
                )
                session.add(award)
                try:
                    session.commit()
                except IntegrityError:
                    # Deja attribue par une evaluation concurrente
                    session.rollback()
                    logger.info(f"Badge {badge['name']} deja attribue a l'eleve {student_id}")
                    continue
                earned_at = award.awarded_at
                new_badges.append(badge["id"])
                logger.info(f"Badge {badge['name']} attribue a l'eleve {student_id}")

            updated_progress.append(
                self._progress_entry(badge, 100 if evaluation.earned else evaluation.progress,
                                     evaluation.earned, earned_at)
            )

        self.cache.delete(progress_key(student_id))
        return {"newBadges": new_badges, "updatedProgress": updated_progress}

    def get_badge_progress(self, session: Session, student_id: UUID) -> List[Dict[str, Any]]:
        """Progression de l'eleve sur chaque badge applicable (lecture seule, mise en cache)."""
        key = progress_key(student_id)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        student = session.get(Student, student_id)
        if not student:
            return []

        skills = session.exec(select(Skills).where(Skills.student_id == student_id)).first()
        awarded = self._active_awards(session, student_id)

        progress = []
        for badge in self.get_catalog(session, student.sport):
            award = awarded.get(badge["id"])
            if award:
                progress.append(self._progress_entry(badge, 100, True, award.awarded_at))
                continue
            evaluation = evaluate_badge([RuleSpec(**rule) for rule in badge["rules"]], skills)
            progress.append(self._progress_entry(badge, evaluation.progress, evaluation.earned, None))

        self.cache.set(key, progress)
        return progress

    def evaluate_all_students(self, session: Session, student_ids: Optional[List[UUID]] = None) -> Dict[str, Any]:
        """Evalue une liste d'eleves (tous ceux ayant des skills par defaut)."""
        if student_ids is None:
            student_ids = list(session.exec(select(Skills.student_id)).all())

        students_evaluated = 0
        total_new_badges = 0
        errors: List[str] = []

        for student_id in student_ids:
            try:
                result = self.evaluate_student(session, student_id)
            except Exception as e:
                session.rollback()
                logger.error(f"Erreur evaluation badges eleve {student_id}: {e}")
                errors.append(f"Error evaluating student {student_id}: {e}")
                continue
            students_evaluated += 1
            total_new_badges += len(result["newBadges"])

        logger.info(
            f"Evaluation groupee terminee: {students_evaluated} eleves, "
            f"{total_new_badges} nouveaux badges, {len(errors)} erreurs"
        )
        return {
            "studentsEvaluated": students_evaluated,
            "totalNewBadges": total_new_badges,
            "errors": errors,
        }

    # ------------------------------------------------------------------
    # Acces coach
    # ------------------------------------------------------------------

    def get_coach_students_progress(self, session: Session, coach: Coach) -> Dict[str, Any]:
        """Resume des badges de chaque eleve du coach, trie par progression."""
        students = session.exec(select(Student).where(Student.coach_id == coach.id)).all()
        thirty_days_ago = datetime.utcnow() - timedelta(days=30)

        students_progress = []
        for student in students:
            catalog = self.get_catalog(session, student.sport)
            awards = list(self._active_awards(session, student.id).values())
            total = len(catalog)
            percentage = round(len(awards) / total * 100) if total else 0
            recent = [award for award in awards if award.awarded_at > thirty_days_ago]

            category_breakdown: Dict[str, int] = {}
            names = {badge["id"]: badge for badge in catalog}
            for award in awards:
                category = names.get(str(award.badge_id), {}).get("category", "General")
                category_breakdown[category] = category_breakdown.get(category, 0) + 1

            students_progress.append({
                "student": {
                    "id": str(student.id),
                    "name": student.student_name,
                    "email": student.email,
                    "sport": student.sport,
                    "academy": student.academy,
                    "age": student.age,
                },
                "badges": {
                    "earned": len(awards),
                    "total": total,
                    "progressPercentage": percentage,
                    "recent": len(recent),
                    "categoryBreakdown": category_breakdown,
                },
                "allBadgeProgress": self.get_badge_progress(session, student.id),
            })

        students_progress.sort(key=lambda sp: sp["badges"]["progressPercentage"], reverse=True)
        count = len(students_progress)
        return {
            "coach": {"id": str(coach.id), "name": coach.name, "academy": coach.academy, "totalStudents": count},
            "students": students_progress,
            "summary": {
                "totalStudents": count,
                "averageProgress": round(
                    sum(sp["badges"]["progressPercentage"] for sp in students_progress) / count
                ) if count else 0,
                "totalBadgesEarned": sum(sp["badges"]["earned"] for sp in students_progress),
                "topPerformer": students_progress[0]["student"] if students_progress else None,
            },
        }

    def revoke_award(self, session: Session, user: User, award_id: UUID, reason: str) -> StudentBadge:
        """Revoque une attribution (coach de l'eleve ou admin)."""
        award = session.get(StudentBadge, award_id)
        if not award or award.is_revoked:
            raise not_found("Badge award not found")

        if user.role != UserRole.ADMIN:
            coach = find_coach(session, user.id) if user.role == UserRole.COACH else None
            student = session.get(Student, award.student_id)
            if not coach or not student or student.coach_id != coach.id:
                raise forbidden("Not authorized to revoke this badge")

        award.is_revoked = True
        award.revoked_at = datetime.utcnow()
        award.revoked_by = user.id
        award.revoke_reason = reason
        session.add(award)
        session.commit()
        session.refresh(award)

        self.cache.delete(progress_key(award.student_id))
        logger.info(f"Badge {award.badge_id} revoque pour l'eleve {award.student_id} par {user.id}")
        return award

    # ------------------------------------------------------------------
    # Definitions de badges
    # ------------------------------------------------------------------

    @staticmethod
    def _get_or_create_category(session: Session, name: str, description: Optional[str] = None) -> BadgeCategory:
        category = session.exec(select(BadgeCategory).where(BadgeCategory.name == name)).first()
        if category is None:
            category = BadgeCategory(name=name, description=description)
            session.add(category)
            session.flush()
        return category

    @staticmethod
    def _replace_rules(session: Session, badge: Badge, rules: List[BadgeRuleInput]) -> None:
        for existing in session.exec(select(BadgeRule).where(BadgeRule.badge_id == badge.id)).all():
            session.delete(existing)
        for position, spec in enumerate(rules):
            session.add(BadgeRule(
                badge_id=badge.id,
                position=position,
                rule_type=spec.rule_type,
                field_name=spec.field_name,
                operator=spec.operator,
                value=spec.value,
                weight=spec.weight,
                is_required=spec.is_required,
            ))

    def _invalidate_definitions(self) -> None:
        # Un badge 'ALL' figure dans le catalogue de chaque sport et dans toutes les progressions
        self.cache.clear()

    def badge_detail(self, session: Session, badge: Badge) -> Dict[str, Any]:
        category = session.get(BadgeCategory, badge.category_id) if badge.category_id else None
        award_count = session.exec(
            select(func.count()).select_from(StudentBadge).where(
                StudentBadge.badge_id == badge.id,
                StudentBadge.is_revoked == False,  # noqa: E712
            )
        ).one()
        return {
            "id": str(badge.id),
            "name": badge.name,
            "description": badge.description,
            "motivationalText": badge.motivational_text,
            "level": badge.level,
            "icon": badge.icon,
            "sport": badge.sport,
            "isActive": badge.is_active,
            "category": category.name if category else "General",
            "createdByCoachId": str(badge.created_by_coach_id) if badge.created_by_coach_id else None,
            "rules": [
                {
                    "id": str(rule.id),
                    "ruleType": rule.rule_type.value,
                    "fieldName": rule.field_name,
                    "operator": rule.operator.value,
                    "value": rule.value,
                    "weight": rule.weight,
                    "isRequired": rule.is_required,
                }
                for rule in badge.rules
            ],
            "awardCount": award_count,
        }

    def get_badge(self, session: Session, badge_id: UUID) -> Badge:
        badge = session.get(Badge, badge_id)
        if not badge:
            raise not_found("Badge not found")
        return badge

    def create_badge(self, session: Session, data: BadgeCreate, coach: Optional[Coach] = None) -> Badge:
        """Cree un badge actif.

        Cree par un coach : categorie "Custom", created_by_coach_id renseigne,
        sport CRICKET par defaut et eleves cibles obligatoirement les siens.
        Cree par un admin : categorie demandee (General par defaut), sport ALL par defaut.
        """
        if not data.name or not data.description or not data.rules:
            raise invalid("Missing required fields")

        if coach is not None:
            if data.target_students:
                owned = session.exec(
                    select(Student.id).where(
                        Student.id.in_(data.target_students),
                        Student.coach_id == coach.id,
                    )
                ).all()
                if len(set(owned)) != len(set(data.target_students)):
                    raise forbidden("Some selected students are not assigned to you")
            category = self._get_or_create_category(session, CUSTOM_CATEGORY, "Custom badges created by coaches")
            sport = (data.sport or "CRICKET").upper()
        else:
            category = self._get_or_create_category(session, data.category or "General")
            sport = (data.sport or "ALL").upper()

        badge = Badge(
            name=data.name,
            description=data.description,
            motivational_text=data.motivational_text or "Keep up the great work!",
            level=data.level,
            icon=data.icon,
            sport=sport,
            category_id=category.id,
            created_by_coach_id=coach.id if coach else None,
        )
        session.add(badge)
        session.flush()
        self._replace_rules(session, badge, data.rules)
        session.commit()
        session.refresh(badge)

        self._invalidate_definitions()
        logger.info(f"Badge {badge.name} cree ({badge.sport}, {len(data.rules)} regles)")
        return badge

    def update_badge(self, session: Session, badge_id: UUID, data: BadgeUpdate) -> Badge:
        """Met a jour un badge; les regles fournies remplacent les anciennes."""
        badge = self.get_badge(session, badge_id)
        if data.name is not None and not data.name:
            raise invalid("Name, description, and level are required")
        if data.rules is not None and not data.rules:
            raise invalid("A badge needs at least one rule")

        for field in ("name", "description", "motivational_text", "icon", "is_active"):
            value = getattr(data, field)
            if value is not None:
                setattr(badge, field, value)
        if data.level is not None:
            badge.level = data.level.upper()
        if data.sport is not None:
            badge.sport = data.sport.upper()
        if data.category is not None:
            badge.category_id = self._get_or_create_category(session, data.category).id
        if data.rules is not None:
            self._replace_rules(session, badge, data.rules)

        badge.updated_at = datetime.utcnow()
        session.add(badge)
        session.commit()
        session.refresh(badge)

        self._invalidate_definitions()
        logger.info(f"Badge {badge.id} mis a jour")
        return badge

    def deactivate_badge(self, session: Session, badge_id: UUID) -> Badge:
        """Retire un badge du catalogue. Les attributions existantes sont conservees."""
        badge = self.get_badge(session, badge_id)
        badge.is_active = False
        badge.updated_at = datetime.utcnow()
        session.add(badge)
        session.commit()
        session.refresh(badge)

        self._invalidate_definitions()
        logger.info(f"Badge {badge.id} desactive")
        return badge

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("Cache des badges vide")

    def get_cache_stats(self) -> Dict[str, Any]:
        return self.cache.stats()


def get_badge_service() -> BadgeService:
    """Dependance FastAPI : service de badges branche sur le cache partage."""
    return BadgeService(get_badge_cache())
