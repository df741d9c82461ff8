"""Main FastAPI application and server startup."""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from .. import __version__
from ..config.settings import Settings
from ..ops import (
    JobCoordinator,
    JobError,
    JobStore,
    NotFoundError,
    REQUIRED_FIELDS,
    ValidationError,
    build_extract_operation,
    describe_error,
)
from ..persist import ArtifactNotFoundError, ArtifactStore
from ..telemetry import configure_logging, get_logger
from .schemas import (
    DocEntry,
    DocListResponse,
    ErrorResponse,
    ExtractRequest,
    ExtractResponse,
    HealthResponse,
    JobListResponse,
    JobResponse,
    JobSummary,
)

logger = get_logger(__name__)

SERVER_ERROR = {500: {"model": ErrorResponse, "description": "Internal server error"}}


def get_settings(request: Request) -> Settings:
    """Dependency to get application settings."""
    return request.app.state.settings


def get_coordinator(request: Request) -> JobCoordinator:
    """Dependency to get the job coordinator."""
    return request.app.state.coordinator


def get_artifacts(request: Request) -> ArtifactStore:
    """Dependency to get the generated document store."""
    return request.app.state.artifacts


def create_app(
    settings: Optional[Settings] = None,
    coordinator: Optional[JobCoordinator] = None,
    artifacts: Optional[ArtifactStore] = None,
) -> FastAPI:
    """
    Build the API application.

    Args:
        settings: Settings; read from the environment when omitted
        coordinator: Job coordinator; defaults to one running extractions
        artifacts: Generated document store; defaults to ``paths.generated_docs``
    """
    settings = settings or Settings.from_env()
    artifacts = artifacts or ArtifactStore(Path(settings.paths.generated_docs))
    coordinator = coordinator or JobCoordinator(
        store=JobStore(),
        operation=build_extract_operation(settings, artifacts),
        required_fields=REQUIRED_FIELDS,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level, settings.log_json)
        logger.info("api_started", docs_dir=str(artifacts.root))
        yield
        await coordinator.shutdown()

    app = FastAPI(
        title="Docs Extractor API",
        description="Background documentation extraction with job polling",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.coordinator = coordinator
    app.state.artifacts = artifacts

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    _register_error_handlers(app)
    _register_routes(app)
    return app


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": "Invalid request body"})

    @app.exception_handler(NotFoundError)
    async def job_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"error": "Job not found"})

    @app.exception_handler(ArtifactNotFoundError)
    async def document_not_found(request: Request, exc: ArtifactNotFoundError):
        return JSONResponse(status_code=404, content={"error": "Document not found"})

    @app.exception_handler(JobError)
    async def job_invariant_error(request: Request, exc: JobError):
        logger.error("job_state_error", error=str(exc), path=request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.error(
            "unhandled_error",
            error=describe_error(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


def _register_routes(app: FastAPI) -> None:
    @app.get("/", response_model=dict)
    async def root():
        """Root endpoint."""
        return {
            "message": "Docs Extractor API is running",
            "version": __version__,
        }

    @app.get("/health", response_model=HealthResponse)
    async def health(
        settings: Settings = Depends(get_settings),
        coordinator: JobCoordinator = Depends(get_coordinator),
        artifacts: ArtifactStore = Depends(get_artifacts),
    ):
        """Health check endpoint."""
        return HealthResponse(
            status="ok",
            components={
                "jobs": True,
                "artifacts": artifacts.root.is_dir(),
                "api_keys": bool(settings.anthropic_api_key and settings.firecrawl_api_key),
            },
            jobs=coordinator.store.counts(),
        )

    @app.post(
        "/api/extract",
        response_model=ExtractResponse,
        responses={
            400: {"model": ErrorResponse, "description": "Missing or invalid fields"},
            **SERVER_ERROR,
        },
    )
    async def extract(
        request: ExtractRequest,
        coordinator: JobCoordinator = Depends(get_coordinator),
    ):
        """
        Start a documentation extraction job.

        Returns as soon as the job is registered; poll /api/job/{jobId}
        for the outcome.
        """
        job_id = coordinator.submit(request.model_dump(exclude_none=True))
        return ExtractResponse(jobId=job_id, status="processing")

    @app.get(
        "/api/job/{job_id}",
        response_model=JobResponse,
        response_model_exclude_unset=True,
        responses={404: {"model": ErrorResponse, "description": "Unknown job"}, **SERVER_ERROR},
    )
    async def job_status(job_id: str, coordinator: JobCoordinator = Depends(get_coordinator)):
        """Get status of a job, with its result or error once finished."""
        job = coordinator.status(job_id)
        return JobResponse(**job.to_dict())

    @app.get("/api/jobs", response_model=JobListResponse, responses=SERVER_ERROR)
    async def job_list(
        status: Optional[str] = None,
        coordinator: JobCoordinator = Depends(get_coordinator),
    ):
        """
        List jobs.

        Query params:
            status: Filter by status (processing, completed, failed)
        """
        return JobListResponse(
            jobs=[
                JobSummary(
                    id=j.id,
                    status=j.status,
                    created_at=j.created_at,
                    finished_at=j.finished_at,
                    error=j.error,
                )
                for j in coordinator.list(status=status)
            ]
        )

    @app.get("/api/docs", response_model=DocListResponse, responses=SERVER_ERROR)
    async def docs_list(artifacts: ArtifactStore = Depends(get_artifacts)):
        """List generated markdown documents."""
        try:
            entries = artifacts.list()
        except OSError as e:
            logger.error("docs_list_failed", error=str(e))
            entries = []
        return DocListResponse(docs=[DocEntry(**a.to_dict()) for a in entries])

    @app.get(
        "/api/docs/{filename}",
        responses={
            200: {"content": {"text/markdown": {}}},
            404: {"model": ErrorResponse, "description": "Unknown document"},
            **SERVER_ERROR,
        },
    )
    async def docs_get(filename: str, artifacts: ArtifactStore = Depends(get_artifacts)):
        """Serve one generated document as markdown."""
        try:
            content = artifacts.read(filename)
        except OSError:
            raise ArtifactNotFoundError(filename)
        return PlainTextResponse(content, media_type="text/markdown")


app = create_app()


def run():
    """Run the development server."""
    settings = app.state.settings
    uvicorn.run(
        "docs_extractor.api.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=True,
    )


if __name__ == "__main__":
    run()
