"""
Coachie Social API

Friends, circles, direct messages, forums, notifications and live
subscriptions, all served under /api/v1.

Run locally with ``python api.py`` or ``uvicorn api:app --reload``.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from common.auth import FirebaseAuth
from common.database import MongoDB
from common.utils import register_exception_handlers, success_response

from social.config import Settings, settings
from social.database import ensure_indexes
from social.dependencies import init_all_services
from social.routers import (
    friends_router,
    circles_router,
    conversations_router,
    forums_router,
    notifications_router,
    live_router,
)

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
VERSION = "1.0.0"

ROUTERS = (
    friends_router,
    circles_router,
    conversations_router,
    forums_router,
    notifications_router,
    live_router,
)


# =============================================================================
# Lifespan
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect the store, make sure indexes exist, then wire the services."""
    app_settings: Settings = app.state.settings
    app_settings.validate_required()

    mongo = MongoDB()
    await mongo.connect(
        uri=app_settings.MONGODB_URI,
        database_name=app_settings.MONGODB_DATABASE,
        server_selection_timeout_ms=app_settings.MONGODB_SERVER_SELECTION_TIMEOUT_MS,
    )
    app.state.mongo = mongo

    try:
        await ensure_indexes(mongo.db)
        auth_provider = FirebaseAuth(
            credentials_path=app_settings.FIREBASE_CREDENTIALS_PATH,
            service_account_json=app_settings.FIREBASE_SERVICE_ACCOUNT_JSON,
            project_id=app_settings.FIREBASE_PROJECT_ID,
            check_revoked=app_settings.FIREBASE_CHECK_REVOKED,
        )
        init_all_services(app, mongo.db, auth_provider, app_settings)
        logger.info(f"Coachie Social API {VERSION} ready ({app_settings.ENVIRONMENT})")

        yield
    finally:
        await mongo.disconnect()
        logger.info("Coachie Social API stopped")


# =============================================================================
# Application
# =============================================================================
def create_app(app_settings: Settings = settings) -> FastAPI:
    show_docs = app_settings.is_development()
    app = FastAPI(
        title="Coachie Social API",
        description="Friends, circles, direct messages, forums and notifications",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs" if show_docs else None,
        redoc_url="/redoc" if show_docs else None,
    )
    app.state.settings = app_settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.get_cors_origins(),
        allow_credentials=app_settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    for router in ROUTERS:
        app.include_router(router, prefix=API_PREFIX)

    @app.get("/health", tags=["Health"])
    async def health():
        mongo = getattr(app.state, "mongo", None)
        return success_response({
            "status": "ok",
            "version": VERSION,
            "database": bool(mongo and mongo.is_connected),
        })

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.is_development(),
    )
