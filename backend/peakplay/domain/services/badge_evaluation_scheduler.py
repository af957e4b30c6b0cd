"""
Outbox des evaluations de badges.

Une mise a jour des skills enregistre une demande (une seule demande en attente
par eleve). Le worker reclame les demandes par lots, puis les marque terminees
ou echouees avec backoff exponentiel.
"""
import logging
from typing import Any, Dict, List, Optional
from datetime import datetime, timedelta
from uuid import UUID

from sqlmodel import Session, select, or_
from sqlalchemy import func

from peakplay.domain.entities.badge_evaluation_queue import BadgeEvaluationQueue, EvaluationStatus

logger = logging.getLogger(__name__)

# Backoff : 30s, 60s puis FAILED (max_attempts=3)
BASE_RETRY_DELAY = 30


def _ready_filter(now: datetime):
    return [
        BadgeEvaluationQueue.status == EvaluationStatus.PENDING,
        or_(
            BadgeEvaluationQueue.next_retry_at.is_(None),
            BadgeEvaluationQueue.next_retry_at <= now,
        ),
    ]


class BadgeEvaluationScheduler:
    """Gestion de la table badge_evaluation_queue."""

    def enqueue(self, session: Session, student_id: UUID, reason: str = "skills_updated") -> Optional[BadgeEvaluationQueue]:
        """Ajoute une demande. Retourne None si une demande est deja en attente pour l'eleve."""
        existing = session.exec(
            select(BadgeEvaluationQueue).where(
                BadgeEvaluationQueue.student_id == student_id,
                BadgeEvaluationQueue.status == EvaluationStatus.PENDING,
            )
        ).first()
        if existing:
            return None

        item = BadgeEvaluationQueue(student_id=student_id, reason=reason)
        session.add(item)
        session.commit()
        session.refresh(item)
        logger.info(f"Evaluation des badges demandee pour l'eleve {student_id} ({reason})")
        return item

    def claim_batch(self, session: Session, batch_size: int) -> List[BadgeEvaluationQueue]:
        """Passe en IN_PROGRESS les plus anciennes demandes pretes."""
        items = session.exec(
            select(BadgeEvaluationQueue)
            .where(*_ready_filter(datetime.utcnow()))
            .order_by(BadgeEvaluationQueue.created_at)
            .limit(batch_size)
        ).all()
        return self._claim(session, items)

    def claim_for_student(self, session: Session, student_id: UUID) -> List[BadgeEvaluationQueue]:
        """Passe en IN_PROGRESS les demandes pretes d'un seul eleve."""
        items = session.exec(
            select(BadgeEvaluationQueue)
            .where(BadgeEvaluationQueue.student_id == student_id, *_ready_filter(datetime.utcnow()))
            .order_by(BadgeEvaluationQueue.created_at)
        ).all()
        return self._claim(session, items)

    @staticmethod
    def _claim(session: Session, items) -> List[BadgeEvaluationQueue]:
        for item in items:
            item.status = EvaluationStatus.IN_PROGRESS
            item.updated_at = datetime.utcnow()
            session.add(item)

        if items:
            session.commit()
            for item in items:
                session.refresh(item)
        return list(items)

    def mark_completed(self, session: Session, item_id: UUID, new_badges: int = 0) -> None:
        item = session.get(BadgeEvaluationQueue, item_id)
        if not item:
            return
        item.status = EvaluationStatus.COMPLETED
        item.new_badges = new_badges
        item.last_error = None
        item.updated_at = datetime.utcnow()
        session.add(item)
        session.commit()

    def mark_failed(self, session: Session, item_id: UUID, error: str) -> None:
        """Remet en PENDING avec backoff tant que attempts < max_attempts, sinon FAILED."""
        item = session.get(BadgeEvaluationQueue, item_id)
        if not item:
            return

        item.attempts += 1
        item.last_error = error
        item.updated_at = datetime.utcnow()

        if item.attempts < item.max_attempts:
            delay_seconds = BASE_RETRY_DELAY * (2 ** (item.attempts - 1))
            item.status = EvaluationStatus.PENDING
            item.next_retry_at = datetime.utcnow() + timedelta(seconds=delay_seconds)
            logger.info(
                f"Evaluation {item_id} echouee (tentative {item.attempts}/{item.max_attempts}), "
                f"retry dans {delay_seconds}s"
            )
        else:
            item.status = EvaluationStatus.FAILED
            item.next_retry_at = None
            logger.warning(f"Evaluation {item_id} echouee definitivement apres {item.attempts} tentatives: {error}")

        session.add(item)
        session.commit()

    def get_pending_count(self, session: Session) -> int:
        return session.exec(
            select(func.count()).select_from(BadgeEvaluationQueue).where(*_ready_filter(datetime.utcnow()))
        ).one()

    def get_queue_status(self, session: Session) -> Dict[str, Any]:
        counts = dict(
            session.exec(
                select(BadgeEvaluationQueue.status, func.count()).group_by(BadgeEvaluationQueue.status)
            ).all()
        )
        return {
            "pending": counts.get(EvaluationStatus.PENDING, 0),
            "inProgress": counts.get(EvaluationStatus.IN_PROGRESS, 0),
            "completed": counts.get(EvaluationStatus.COMPLETED, 0),
            "failed": counts.get(EvaluationStatus.FAILED, 0),
        }
