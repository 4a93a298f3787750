"""Main FastAPI application for feedback sentiment analytics."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Depends, HTTPException, Header, Query, Request, status
from fastapi.responses import JSONResponse

from analytics import AnalyticsService, FormAccessError, InvalidQueryError
from config import config
from database import Database, FeedbackRepository
from enrichment import FeedbackEnricher
from schemas import (
    AnalyticsSnapshot,
    FeedbackSubmission,
    FeedbackSubmissionResponse,
    Form,
    FormCreateRequest,
    InsightsResponse,
)
from sentiment_classifier import SentimentClassifier

# Configure logging
logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    logger.info("Initializing database...")
    await app.state.database.init_db()
    logger.info("Application started successfully")
    yield
    # Shutdown
    logger.info("Application shutting down")
    await app.state.database.dispose()


def create_app(
    database_url: str = config.DATABASE_URL,
    classifier: Optional[SentimentClassifier] = None,
    api_key: str = config.API_KEY
) -> FastAPI:
    """Build the application with explicitly constructed services.

    Args:
        database_url: SQLAlchemy async URL
        classifier: Sentiment classifier (defaults to one built from config)
        api_key: Expected value of the X-API-Key header

    Returns:
        FastAPI application
    """
    app = FastAPI(
        title="Feedback Sentiment Analytics API",
        description="Sentiment enrichment and analytics over collected form feedback",
        version="1.0.0",
        lifespan=lifespan
    )

    database = Database(database_url)
    repository = FeedbackRepository(database)
    classifier = classifier or SentimentClassifier.from_config(config)
    enricher = FeedbackEnricher(classifier, repository)

    app.state.database = database
    app.state.repository = repository
    app.state.classifier = classifier
    app.state.analytics = AnalyticsService(repository, enricher)
    app.state.api_key = api_key

    register_routes(app)
    register_error_handlers(app)
    return app


async def verify_api_key(request: Request, x_api_key: str = Header(...)) -> None:
    """Verify API key authentication.

    Shared-key check; user identity comes from the userId parameter.
    """
    if x_api_key != request.app.state.api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key"
        )


def get_analytics_service(request: Request) -> AnalyticsService:
    return request.app.state.analytics


def get_repository(request: Request) -> FeedbackRepository:
    return request.app.state.repository


def register_routes(app: FastAPI) -> None:

    @app.get(
        "/analytics",
        response_model=AnalyticsSnapshot,
        response_model_exclude_none=True,
        dependencies=[Depends(verify_api_key)]
    )
    async def get_analytics(
        user_id: Optional[str] = Query(None, alias="userId"),
        form_id: Optional[str] = Query(None, alias="formId"),
        hourly: bool = Query(False, description="Include hourly sentiment per day"),
        service: AnalyticsService = Depends(get_analytics_service)
    ):
        """Analytics snapshot for a form owner.

        Unclassified feedback in scope is enriched (and persisted) before
        aggregation, so the response always reflects post-enrichment state.
        """
        return await service.get_analytics(user_id, form_id, include_hourly=hourly)

    @app.get("/ai/insights", response_model=InsightsResponse, dependencies=[Depends(verify_api_key)])
    async def get_ai_insights(
        user_id: Optional[str] = Query(None, alias="userId"),
        form_id: Optional[str] = Query(None, alias="formId"),
        service: AnalyticsService = Depends(get_analytics_service)
    ):
        """Insights over the owner's most recent feedback."""
        return await service.get_insights(user_id, form_id)

    @app.post(
        "/forms",
        response_model=Form,
        status_code=status.HTTP_201_CREATED,
        dependencies=[Depends(verify_api_key)]
    )
    async def create_form(
        request: FormCreateRequest,
        repository: FeedbackRepository = Depends(get_repository)
    ):
        return await repository.save_form(request.user_id, request.title, request.is_active)

    @app.post(
        "/feedback",
        response_model=FeedbackSubmissionResponse,
        status_code=status.HTTP_201_CREATED,
        dependencies=[Depends(verify_api_key)]
    )
    async def submit_feedback(
        request: FeedbackSubmission,
        repository: FeedbackRepository = Depends(get_repository)
    ):
        """Store a raw submission. Sentiment is added later by enrichment."""
        form = await repository.get_form(request.form_id)
        if form is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Form not found")
        if form.user_id != request.user_id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Form not owned by user")

        record = await repository.save_feedback(
            request.form_id,
            request.user_id,
            request.responses,
            created_at=request.created_at
        )
        logger.info(f"Feedback {record.id} stored for form {record.form_id}")
        return FeedbackSubmissionResponse(id=record.id, created_at=record.created_at.isoformat())

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint.

        Returns system status including AI availability and cache stats.
        """
        classifier: SentimentClassifier = request.app.state.classifier
        cache_stats = classifier.cache.get_stats() if classifier.cache else None

        return {
            "status": "healthy",
            "ai_provider": "healthy" if classifier.ai_available else "degraded",
            "cache_stats": cache_stats
        }

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "service": "Feedback Sentiment Analytics API",
            "version": "1.0.0",
            "endpoints": {
                "analytics": "GET /analytics?userId=&formId=",
                "insights": "GET /ai/insights?userId=&formId=",
                "submit": "POST /feedback",
                "forms": "POST /forms",
                "health": "GET /health"
            }
        }


def register_error_handlers(app: FastAPI) -> None:

    @app.exception_handler(InvalidQueryError)
    async def invalid_query_handler(request: Request, exc: InvalidQueryError):
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"detail": f"Unauthorized: {exc}"}
        )

    @app.exception_handler(FormAccessError)
    async def form_access_handler(request: Request, exc: FormAccessError):
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={"detail": f"Unauthorized: {exc}"}
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler for unexpected errors."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"}
        )


app = create_app()
