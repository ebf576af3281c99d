import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from vatofotsy_api.config import poll_settings, settings, storage_settings
from vatofotsy_api.db import async_session_maker, engine
from vatofotsy_api.error_handlers import register_error_handlers
from vatofotsy_api.models import Base
from vatofotsy_api.routes import (
    auth_router,
    files_router,
    invites_router,
    organizations_router,
    polls_router,
    users_router,
)
from vatofotsy_api.services.polls import close_expired_polls

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables on startup
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    if poll_settings.close_expired_on_startup:
        async with async_session_maker() as session:
            await close_expired_polls(session)
    logger.info("Vatofotsy API started")
    yield


app = FastAPI(
    title="Vatofotsy API",
    description="API for organizations, polls and voting",
    version="0.1.0",
    debug=settings.debug,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Upload routes first so /polls/upload/... is not taken for a poll id
app.include_router(files_router, prefix="/api/v1")
app.include_router(auth_router, prefix="/api/v1")
app.include_router(invites_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")
app.include_router(organizations_router, prefix="/api/v1")
app.include_router(polls_router, prefix="/api/v1")

app.mount(
    "/uploads",
    StaticFiles(directory=storage_settings.upload_dir, check_dir=False),
    name="uploads",
)


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
