"""API route definitions."""

from fastapi import APIRouter

from fpl_advisor.api import advisor, teams

router = APIRouter()
router.include_router(teams.router)
router.include_router(advisor.router)
