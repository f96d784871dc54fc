from fastapi import APIRouter, Depends
from edfolio.api import deps
from edfolio.api.v1.endpoints import (
    auth, health, folios, notes, publish, note_shares, page_shares, shares, public, cron
)

api_router = APIRouter()

# Mutations on session-authenticated resources must carry a CSRF token
csrf = [Depends(deps.require_csrf_token)]

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])

# Resource endpoints
api_router.include_router(folios.router, prefix="/folios", tags=["folios"], dependencies=csrf)
api_router.include_router(notes.router, prefix="/notes", tags=["notes"], dependencies=csrf)
api_router.include_router(publish.router, prefix="/notes", tags=["publish"], dependencies=csrf)
api_router.include_router(note_shares.router, prefix="/notes", tags=["shares"], dependencies=csrf)
api_router.include_router(page_shares.router, prefix="/pages", tags=["shares"], dependencies=csrf)
api_router.include_router(shares.router, prefix="/shares", tags=["shares"], dependencies=csrf)

# Token-authenticated routes
api_router.include_router(public.router, prefix="/public", tags=["public"])
api_router.include_router(cron.router, prefix="/cron", tags=["cron"])
