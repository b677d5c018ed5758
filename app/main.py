from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.routers import resumes, matching

from app.utils.logging_config import configure_for_environment, get_logger
from app.middleware.error_handlers import (
    ExceptionHandlerMiddleware,
    RequestTimingMiddleware,
    register_exception_handlers,
)
from app.models.settings import load_settings
from app.services.collection import ResumeCollection
from app.services.db import ResumeStore, create_collection
from app.services.extraction import ExtractionService
from app.services.resume_service import ResumeService
from app.services.storage import FILES_ROUTE, FileStorage

# Configure logging first
configure_for_environment()
logger = get_logger(__name__)

settings = load_settings()
storage = FileStorage(settings.storage)
storage.ensure_root()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the resume service and warm the collection from MongoDB"""
    logger.info(f"Resume Parser API starting up (model {settings.llm.model_name} at {settings.llm.base_url})")

    store = ResumeStore(create_collection(settings.database))
    service = ResumeService(
        extractor=ExtractionService(settings.llm, max_concurrent=settings.processing.max_concurrent),
        collection=ResumeCollection(),
        store=store,
        storage=storage,
        processing=settings.processing,
    )
    app.state.resume_service = service

    try:
        await store.init_indexes()
        await service.load()
    except Exception as e:
        logger.warning(f"Could not load resumes from the database: {e}")
        logger.info("Continuing with an empty collection")

    yield

    logger.info("Resume Parser API shutting down...")


app = FastAPI(title="Resume Parser API", version="1.0.0", lifespan=lifespan)

register_exception_handlers(app)

# Added last is outermost: CORS, then request ids, then timing
app.add_middleware(RequestTimingMiddleware, slow_request_threshold=2.0)
app.add_middleware(ExceptionHandlerMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
@app.head("/")
async def root():
    return {"message": "Welcome to the Resume Parser API", "version": "1.0.0", "status": "ok"}


@app.get("/health")
@app.head("/health")
async def health_check():
    """Liveness check (GET and HEAD)"""
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


app.include_router(resumes.router, prefix="/api/resumes", tags=["resumes"])
app.include_router(matching.router, prefix="/api/match-jd", tags=["matching"])
app.mount(FILES_ROUTE, StaticFiles(directory=str(storage.root)), name="files")
