from fastapi import APIRouter

from carecall.api.routes import call_reports, health, profile

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(call_reports.router, tags=["phone-call-reports"])
api_router.include_router(profile.router, tags=["user-info"])
