from fastapi import APIRouter

from redirect_categories.api.routes import health, hooks, jobs, transform

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(transform.router, prefix="/transform", tags=["wiki"])
api_router.include_router(hooks.router, prefix="/hooks", tags=["wiki"])
api_router.include_router(jobs.router, prefix="/jobs", tags=["processor"])
