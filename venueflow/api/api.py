from fastapi import APIRouter

from .endpoints import admin, approvals, auth, events

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(admin.router, prefix="/admin", tags=["inventory"])
api_router.include_router(events.router, prefix="/events", tags=["events"])
api_router.include_router(approvals.router, prefix="/approvals", tags=["approvals"])
