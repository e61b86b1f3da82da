"""FastAPI application serving repository analytics."""

import logging

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from bugexplorer.config import Settings, get_settings
from bugexplorer.github_client import NotFoundError
from bugexplorer.service import AnalysisService, RepositoryURLError

logger = logging.getLogger(__name__)

router = APIRouter()

INVALID_BODY_MESSAGE = 'Invalid request body. Expected JSON of the form {"url": "<repository URL>"}'


class AnalyzeRequest(BaseModel):
    url: str


def get_service(request: Request) -> AnalysisService:
    return request.app.state.service


@router.post("/analyze")
async def analyze(payload: AnalyzeRequest, service: AnalysisService = Depends(get_service)):
    """Analyze a GitHub repository, or return its fresh cached analytics."""
    try:
        record = await service.analyze_url(payload.url)
    except (RepositoryURLError, NotFoundError) as exc:
        return JSONResponse(status_code=400, content={"error": str(exc)})
    except Exception as exc:
        logger.exception("Analysis of %s failed", payload.url)
        return JSONResponse(
            status_code=500,
            content={"error": str(exc) or "Failed to analyze repository"},
        )
    return record.to_dict()


@router.get("/repositories")
async def list_repositories(service: AnalysisService = Depends(get_service)):
    """List every analyzed repository."""
    return [record.to_dict() for record in service.list_repositories()]


@router.get("/health")
async def health(service: AnalysisService = Depends(get_service)):
    return {"status": "ok", "repositories": len(service.list_repositories())}


async def _invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": INVALID_BODY_MESSAGE})


def create_app(
    settings: Settings | None = None,
    service: AnalysisService | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Application settings, loaded from the environment by default.
        service: Analysis service to use; built from settings when omitted.

    Returns:
        Configured FastAPI app.
    """
    if service is None:
        service = AnalysisService.from_settings(settings or get_settings())

    app = FastAPI(
        title="Bug Explorer API",
        description="Commit, bug-fix and contributor analytics for GitHub repositories",
        version="0.1.0",
    )
    app.state.service = service
    app.add_exception_handler(RequestValidationError, _invalid_request)
    app.include_router(router, tags=["Analytics"])
    return app
