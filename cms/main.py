from urllib.parse import urlparse

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from cms.api.exception_handlers import register_exception_handlers
from cms.api.router import api_router
from cms.core.config import settings
from cms.core.logging import configure_logging
from cms.pages.router import page_router

configure_logging(settings.log_level)

app = FastAPI(title="Articles CMS")

if settings.frontend_url:
    parsed = urlparse(settings.frontend_url)
    origin = f"{parsed.scheme}://{parsed.netloc}"
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# Carries flash messages between a form post and the page it redirects to
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.secret_key,
    session_cookie="flash",
    same_site="lax",
    https_only=settings.cookie_secure,
)

register_exception_handlers(app)
app.include_router(api_router, prefix="/api")
app.include_router(page_router)


@app.get("/health")
def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)
