"""
HTTP routes for the InvestMate API.
"""

from fastapi import APIRouter

from investmate.routes import ai, auth, connections, profiles, uploads

router = APIRouter()
router.include_router(auth.router)
router.include_router(profiles.router)
router.include_router(connections.router)
router.include_router(uploads.router)
router.include_router(ai.router)
