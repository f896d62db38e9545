from fastapi import APIRouter, Depends

from cms.pages import articles, auth, home, users
from cms.pages.common import load_navigation_user

page_router = APIRouter(dependencies=[Depends(load_navigation_user)])

page_router.include_router(home.router)
page_router.include_router(auth.router)
page_router.include_router(users.router)
page_router.include_router(articles.router)
