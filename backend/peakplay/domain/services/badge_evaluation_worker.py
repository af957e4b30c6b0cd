"""
Worker d'evaluation des badges.

Les mises a jour de skills deposent une demande dans badge_evaluation_queue
(request_evaluation). En mode "queue", le worker background (asyncio.Task
demarre dans le lifespan de l'application) depile la queue par lots. En mode
"inline" (developpement), la demande est traitee immediatement dans la requete.

Une evaluation en echec n'est jamais remontee a l'appelant HTTP : l'erreur est
loggee et enregistree sur la ligne de la queue.
"""
import asyncio
import logging
from typing import Optional
from uuid import UUID

from sqlmodel import Session

from peakplay.core.database import get_session
from peakplay.core.settings import get_settings
from peakplay.domain.entities.badge_evaluation_queue import BadgeEvaluationQueue
from peakplay.domain.services.badge_evaluation_scheduler import BadgeEvaluationScheduler
from peakplay.domain.services.badge_service import BadgeService, get_badge_service

logger = logging.getLogger(__name__)

# Intervalle entre deux lots quand la queue est active (secondes)
WORKER_INTERVAL = 1
# Attente d'un signal quand la queue est vide (secondes)
WORKER_IDLE_TIMEOUT = 60
# Pause apres une erreur inattendue (secondes)
ERROR_WAIT = 30


class BadgeEvaluationWorker:
    """Traitement des demandes d'evaluation de badges."""

    def __init__(self, badge_service: Optional[BadgeService] = None, batch_size: int = 10):
        self.scheduler = BadgeEvaluationScheduler()
        self.batch_size = batch_size
        self.is_running = False
        self._badge_service = badge_service
        self._task: Optional[asyncio.Task] = None
        self._wake_event = asyncio.Event()

    @property
    def badge_service(self) -> BadgeService:
        if self._badge_service is None:
            self._badge_service = get_badge_service()
        return self._badge_service

    # ------------------------------------------------------------------
    # Demandes
    # ------------------------------------------------------------------

    def request_evaluation(self, session: Session, student_id: UUID, reason: str = "skills_updated") -> None:
        """Enregistre une demande d'evaluation, traitee tout de suite en mode inline.

        En mode inline, une demande deja en attente pour l'eleve (echec precedent
        dont le backoff est ecoule) est reprise a la place d'une nouvelle ligne.
        Seules les demandes de cet eleve sont traitees dans la requete.
        """
        try:
            item = self.scheduler.enqueue(session, student_id, reason)
        except Exception as e:
            session.rollback()
            logger.error(f"Impossible d'enregistrer l'evaluation des badges de l'eleve {student_id}: {e}")
            return

        if get_settings().BADGE_EVALUATION_MODE == "inline":
            for claimed_item in self.scheduler.claim_for_student(session, student_id):
                self.process_item(session, claimed_item)
        elif item is not None:
            self.notify()

    def process_item(self, session: Session, item: BadgeEvaluationQueue) -> bool:
        """Evalue l'eleve d'une demande IN_PROGRESS et met a jour son statut."""
        item_id, student_id = item.id, item.student_id
        try:
            result = self.badge_service.evaluate_student(session, student_id)
        except Exception as e:
            session.rollback()
            logger.error(f"Erreur evaluation badges eleve {student_id}: {e}")
            self.scheduler.mark_failed(session, item_id, str(e))
            return False

        new_badges = len(result["newBadges"])
        if new_badges:
            logger.info(f"{new_badges} nouveau(x) badge(s) pour l'eleve {student_id}")
        self.scheduler.mark_completed(session, item_id, new_badges)
        return True

    # ------------------------------------------------------------------
    # Lifecycle du worker
    # ------------------------------------------------------------------

    def start_worker(self) -> None:
        """Demarre le worker background. Idempotent."""
        if self._task and not self._task.done():
            return
        self._task = asyncio.get_event_loop().create_task(self._run_loop())
        logger.info("Worker d'evaluation des badges demarre")

    def stop_worker(self) -> None:
        self.is_running = False
        self._wake_event.set()
        if self._task and not self._task.done():
            self._task.cancel()
        logger.info("Worker d'evaluation des badges arrete")

    def notify(self) -> None:
        """Reveille le worker apres l'ajout d'une demande."""
        self._wake_event.set()

    async def _run_loop(self) -> None:
        self.is_running = True
        logger.info("Demarrage de la boucle d'evaluation des badges")

        while self.is_running:
            try:
                had_work = await asyncio.to_thread(self.process_batch)
                if had_work:
                    await asyncio.sleep(WORKER_INTERVAL)
                else:
                    self._wake_event.clear()
                    try:
                        await asyncio.wait_for(self._wake_event.wait(), timeout=WORKER_IDLE_TIMEOUT)
                    except asyncio.TimeoutError:
                        pass
            except asyncio.CancelledError:
                logger.info("Worker d'evaluation des badges annule")
                break
            except Exception as e:
                logger.error(f"Erreur dans le worker d'evaluation des badges: {e}")
                await asyncio.sleep(ERROR_WAIT)

        self.is_running = False
        logger.info("Boucle d'evaluation des badges terminee")

    def process_batch(self) -> bool:
        """Traite un lot de demandes. Retourne True si au moins une demande a ete reclamee."""
        session = next(get_session())
        try:
            batch = self.scheduler.claim_batch(session, self.batch_size)
            if not batch:
                return False

            done = sum(1 for item in batch if self.process_item(session, item))
            logger.info(f"Lot d'evaluation termine: {done}/{len(batch)} demandes traitees")
            return True
        finally:
            session.close()


# Instance globale
badge_evaluation_worker = BadgeEvaluationWorker()
