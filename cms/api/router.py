from fastapi import APIRouter

from cms.api.routers import articles, auth, users

api_router = APIRouter()

api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(articles.router)
