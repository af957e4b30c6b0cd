"""
Routers API pour PeakPlay.

Ce module regroupe tous les sous-routers et expose un router principal
a inclure dans l'application FastAPI.
"""
from fastapi import APIRouter

from peakplay.api.routers.auth_router import router as auth_router
from peakplay.api.routers.profile_router import router as profile_router
from peakplay.api.routers.action_router import router as action_router
from peakplay.api.routers.skill_router import router as skill_router
from peakplay.api.routers.feedback_router import router as feedback_router
from peakplay.api.routers.badge_router import router as badge_router
from peakplay.api.routers.storage_router import router as storage_router
from peakplay.api.routers._shared import limiter

router = APIRouter()

router.include_router(auth_router)
router.include_router(profile_router)
router.include_router(action_router)
router.include_router(skill_router)
router.include_router(feedback_router)
router.include_router(badge_router)
router.include_router(storage_router)

__all__ = ["router", "limiter"]
