import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from auth import router as auth_router
from core import uploads
from core.config import env_int, env_str
from core.db import Database
from core.errors import CatchServerErrorsMiddleware, install_exception_handlers
from core.log import configure_logging
from core.schema import ensure_schema
from products import router as products_router
from users import router as users_router

logger = logging.getLogger(__name__)

DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://localhost:5173"


def cors_origins() -> list[str]:
    raw = env_str("CORS_ORIGINS", DEFAULT_CORS_ORIGINS)
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def listen_port() -> int:
    return env_int("PORT", 5001)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    uploads.ensure_upload_dirs()
    # One pool per process, handed to routes through `core.db.get_db`.
    app.state.db = await Database.connect()
    try:
        await ensure_schema(app.state.db)
        logger.info("database_ready")
        yield
    finally:
        await app.state.db.close()
        app.state.db = None


def create_app() -> FastAPI:
    app = FastAPI(title="catalog-api", lifespan=lifespan)

    # Added first so it runs inside CORS and error responses keep CORS headers.
    app.add_middleware(CatchServerErrorsMiddleware)
    # Allow the local frontend dev servers to call this API from the browser.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_exception_handlers(app)

    # Directories are created in the lifespan; don't require them at import time.
    app.mount(
        uploads.PROFILE_URL_PREFIX,
        StaticFiles(directory=uploads.profile_dir(), check_dir=False),
        name="profile-images",
    )
    app.mount(
        uploads.PRODUCT_URL_PREFIX,
        StaticFiles(directory=uploads.product_dir(), check_dir=False),
        name="product-images",
    )

    app.include_router(auth_router.router, tags=["auth"])
    app.include_router(users_router.router, tags=["users"])
    app.include_router(products_router.router, tags=["products"])

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.get("/")
    def root() -> dict:
        return {"message": "catalog api"}

    return app


app = create_app()


def run() -> None:
    uvicorn.run("main:app", host="0.0.0.0", port=listen_port())


if __name__ == "__main__":
    run()
