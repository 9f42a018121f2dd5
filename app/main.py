import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.ai.oracle import OpenRouterOracle
from app.ai.research_agent import CrewResearchOracle
from app.config import get_settings
from app.db import connect_to_mongo, close_mongo_connection, ensure_indexes, get_db
from app.errors import VisaPathError, issues_from_pydantic
from models.common import fail
from routes.chat import router as chat_router
from routes.documents import router as documents_router
from routes.eligibility import router as eligibility_router
from routes.profiles import router as profiles_router
from routes.research import router as research_router
from routes.sessions import router as sessions_router
from routes.visa_types import router as visa_types_router

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    app.state.settings = settings
    connect_to_mongo(app, settings.mongo_url, settings.db_name)
    app.state.oracle = OpenRouterOracle(
        api_key=settings.openrouter_api_key,
        model=settings.openrouter_model,
        base_url=settings.openrouter_base_url,
        timeout=settings.oracle_timeout_seconds,
    )
    if settings.research_web_search:
        app.state.research_oracle = CrewResearchOracle(
            api_key=settings.openrouter_api_key,
            model=settings.openrouter_research_model,
            base_url=settings.openrouter_base_url,
        )
    else:
        app.state.research_oracle = app.state.oracle
    try:
        await ensure_indexes(app.state.mongo_client[settings.db_name])
    except Exception as e:
        # Mongo may come up after the API; queries will report their own errors
        logger.warning("Could not ensure MongoDB indexes at startup: %s", e)
    yield
    await app.state.oracle.aclose()
    close_mongo_connection(app)


settings = get_settings()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    lifespan=lifespan,
    title="VisaPath API",
    version=VERSION,
    docs_url="/api/v1/docs",
    redoc_url="/api/v1/redoc",
    openapi_url="/api/v1/openapi.json",
)

app.include_router(eligibility_router, prefix="/api/v1")
app.include_router(research_router, prefix="/api/v1")
app.include_router(sessions_router, prefix="/api/v1")
app.include_router(visa_types_router, prefix="/api/v1")
app.include_router(chat_router, prefix="/api/v1")
app.include_router(documents_router, prefix="/api/v1")
app.include_router(profiles_router, prefix="/api/v1")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(VisaPathError)
async def visapath_error_handler(request: Request, exc: VisaPathError):
    if exc.status_code >= 500:
        # OracleError / PersistenceError messages can carry provider details
        logger.error("%s on %s %s: %s", exc.__class__.__name__, request.method, request.url.path, exc.message)
        body = fail(exc.public_message)
    else:
        body = fail(exc.message, exc.details)
    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content=fail("Invalid request data", issues_from_pydantic(exc)))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content=fail(str(exc.detail)), headers=exc.headers)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=fail("Internal server error"))


@app.get("/health")
@app.get("/api/v1/health")
async def health(request: Request, db=Depends(get_db)):
    db_status = "unknown"
    visa_types_count = 0
    try:
        visa_types_count = await db.visa_types.count_documents({})
        db_status = "connected" if visa_types_count > 0 else "empty"
    except Exception:
        db_status = "error"

    oracle = getattr(request.app.state, "oracle", None)
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": VERSION,
        "services": {
            "api": "operational",
            "ai": "configured" if oracle is not None and oracle.configured else "missing-key",
            "database": db_status,
        },
        "data": {"visa_types_loaded": visa_types_count},
    }
