from fastapi import APIRouter, Request

from cms.pages.common import render

router = APIRouter(include_in_schema=False)


@router.get("/")
def home(request: Request):
    return render(request, "pages/home.html", {"title": "Articles CMS"})


@router.get("/about")
def about(request: Request):
    return render(request, "pages/about.html", {"title": "About"})
