"""FastAPI application for the Jira integration service."""
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1 import jira, tasks
from app.config import settings
from app.core.logging import setup_logging
from app.database import close_db, get_db, init_db, ping
from app.integrations.jira import JiraIntegrationError
from app.middleware.metrics import setup_metrics

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await init_db()
    logger.info("%s %s started", settings.APP_NAME, settings.APP_VERSION)
    yield
    await close_db()
    logger.info("%s stopped", settings.APP_NAME)


app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
setup_metrics(app)

app.include_router(jira.router, prefix=f"{settings.API_V1_PREFIX}/jira", tags=["jira"])
app.include_router(tasks.router, prefix=f"{settings.API_V1_PREFIX}/tasks", tags=["tasks"])


@app.exception_handler(JiraIntegrationError)
async def jira_error_handler(request: Request, exc: JiraIntegrationError):
    """Remote Jira failures surface as 502 with the upstream status attached."""
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": str(exc), "jira_status_code": exc.status_code},
    )


@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    database = "ok"
    try:
        await ping(db)
    except SQLAlchemyError as exc:
        logger.error("Health check database ping failed: %s", exc)
        database = f"error: {exc}"
    return {
        "status": "ok" if database == "ok" else "degraded",
        "version": settings.APP_VERSION,
        "checks": {"database": database},
    }
