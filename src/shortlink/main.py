from fastapi import FastAPI, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.middleware.sessions import SessionMiddleware
from typing import Optional
import sys

from src.shortlink.api.deps import get_db, get_settings
from src.shortlink.api.endpoints import auth, links
from src.shortlink.core.config import Settings, get_settings as load_settings, logger
from src.shortlink.core.exceptions import StorageUnavailableError
from src.shortlink.db.session import open_db
from src.shortlink.services.auth_service import AuthGate, SESSION_KEY, generate_secret
from src.shortlink.services.link_service import add_hit, get_longurl

VERSION = "1.0.0"


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application.

    Opens the link database and generates the session secret. Both live as
    long as the returned app, so a restart invalidates every login.

    Raises:
        StorageUnavailableError: If the database cannot be opened
    """
    settings = settings or load_settings()
    logger.setLevel(settings.log_level.upper())

    secret = generate_secret()

    app = FastAPI(
        title="Shortlink",
        description="""
        A self-hosted URL shortener.

        ## Features
        * Create short links with custom or generated names
        * Edit and delete links
        * Count visits per link
        """,
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/api/openapi.json",
        license_info={
            "name": "MIT",
        },
    )
    app.state.settings = settings
    app.state.session_factory = open_db(settings.db_url)
    app.state.auth_gate = AuthGate.from_settings(settings, secret)

    app.add_middleware(
        SessionMiddleware,
        secret_key=secret,
        session_cookie=SESSION_KEY,
        max_age=settings.session_max_age,
        same_site="strict",
        https_only=False,
    )

    @app.exception_handler(SQLAlchemyError)
    async def storage_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"Storage error while handling {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Storage unavailable"},
        )

    app.include_router(auth.router, prefix="/api", tags=["auth"])
    app.include_router(links.router, prefix="/api", tags=["links"])

    @app.get("/", tags=["root"])
    def root():
        return {
            "message": "Welcome to Shortlink",
            "docs_url": "/docs",
            "redoc_url": "/redoc",
        }

    @app.get("/api/siteurl", tags=["meta"], response_class=PlainTextResponse)
    def siteurl(settings: Settings = Depends(get_settings)):
        return settings.site_url or "unset"

    @app.get("/api/version", tags=["meta"], response_class=PlainTextResponse)
    def version():
        return VERSION

    @app.get("/{shortlink}", tags=["redirect"])
    def redirect_to_url(
        shortlink: str,
        db: Session = Depends(get_db),
        settings: Settings = Depends(get_settings),
    ):
        longlink = get_longurl(db, shortlink)
        if longlink is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found!")

        add_hit(db, shortlink)

        if settings.redirect_method == "TEMPORARY":
            return RedirectResponse(longlink, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
        return RedirectResponse(longlink, status_code=status.HTTP_308_PERMANENT_REDIRECT)

    return app


def run() -> None:
    """Start the server with uvicorn, exiting if the database cannot be opened."""
    import uvicorn

    settings = load_settings()
    try:
        app = create_app(settings)
    except StorageUnavailableError as e:
        logger.critical(f"Cannot start: {e}")
        sys.exit(1)

    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
