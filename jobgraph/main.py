# main.py
from pathlib import Path

from dotenv import load_dotenv

# Ensure repo-root .env is loaded for the running server process.
load_dotenv(dotenv_path=Path(__file__).resolve().parents[1] / ".env", override=False)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from jobgraph.config import build_sqlalchemy_db_url, is_sqlite_url, settings
from jobgraph.database import Base, engine
import jobgraph.models  # noqa: F401  # register all ORM models
from jobgraph.api.routes.health import router as health_router
from jobgraph.routers.matching import router as matching_router


def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.app_name,
        version=settings.version,
        debug=settings.debug,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health endpoints (do not depend on API_PREFIX)
    application.include_router(health_router)
    application.include_router(matching_router, prefix=settings.api_prefix)

    # Shared MySQL schemas are owned by migrations; only local/test sqlite is auto-created.
    if is_sqlite_url(build_sqlalchemy_db_url(settings)):
        Base.metadata.create_all(bind=engine)
    return application


app = create_app()
