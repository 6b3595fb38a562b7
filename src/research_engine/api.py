from fastapi import APIRouter

from research_engine.modules.applications.router import router as applications_router
from research_engine.modules.projects.router import router as projects_router

api_router = APIRouter()

api_router.include_router(projects_router, prefix="/projects", tags=["Projects"])

api_router.include_router(applications_router, tags=["Applications"])
