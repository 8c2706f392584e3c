from fastapi import APIRouter
from app.modules.identity.router import router as identity_router
from app.modules.organizations.router import router as organizations_router
from app.modules.invitations.router import router as invitations_router
from app.modules.tickets.router import router as tickets_router
from app.modules.comments.router import router as comments_router
from app.modules.activity.router import router as activity_router

api_router = APIRouter()
api_router.include_router(identity_router)
api_router.include_router(organizations_router, tags=["organizations"])
api_router.include_router(invitations_router, tags=["invitations"])
api_router.include_router(tickets_router, tags=["tickets"])
api_router.include_router(comments_router, tags=["comments"])
api_router.include_router(activity_router, tags=["activity"])

@api_router.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
