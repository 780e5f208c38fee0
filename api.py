"""FastAPI application: region search endpoints and health check."""
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from administrative_regions_repository import AdministrativeRegionsRepository
from config import Settings, get_settings
from errors import ErrorKind, RegionSearchError, StoreFailureError
from region_search import RegionSearchService

logger = logging.getLogger(__name__)

STORE_FAILURE_MESSAGE = "Database query failed"


class RegionResponse(BaseModel):
    """Region search result."""
    id: str
    subdistrict: str
    district: str
    city: str
    province: str
    postal_code: Optional[str] = None
    full_text: str


def get_search_service(request: Request) -> RegionSearchService:
    """Search service bound to this application."""
    return request.app.state.search_service


router = APIRouter(prefix="/v1/search", tags=["Search"])


@router.get("", response_model=List[RegionResponse])
def search(q: Optional[str] = None, service: RegionSearchService = Depends(get_search_service)):
    """Substring search over "province city district subdistrict"."""
    return [r.to_dict() for r in service.search(q)]


@router.get("/district", response_model=List[RegionResponse])
def search_district(q: Optional[str] = None, service: RegionSearchService = Depends(get_search_service)):
    """Fuzzy search by district name."""
    return [r.to_dict() for r in service.search_by_district(q)]


@router.get("/subdistrict", response_model=List[RegionResponse])
def search_subdistrict(q: Optional[str] = None, service: RegionSearchService = Depends(get_search_service)):
    """Fuzzy search by subdistrict (kelurahan/desa) name."""
    return [r.to_dict() for r in service.search_by_subdistrict(q)]


@router.get("/city", response_model=List[RegionResponse])
def search_city(q: Optional[str] = None, service: RegionSearchService = Depends(get_search_service)):
    """Fuzzy search by city or regency name, without the Kota/Kabupaten prefix."""
    return [r.to_dict() for r in service.search_by_city(q)]


@router.get("/province", response_model=List[RegionResponse])
def search_province(q: Optional[str] = None, service: RegionSearchService = Depends(get_search_service)):
    """Fuzzy search by province name."""
    return [r.to_dict() for r in service.search_by_province(q)]


@router.get("/postal/{postal_code}", response_model=List[RegionResponse])
def search_postal_code(postal_code: str, service: RegionSearchService = Depends(get_search_service)):
    """Exact lookup by 5-digit postal code."""
    return [r.to_dict() for r in service.search_by_postal_code(postal_code)]


def error_response(exc: RegionSearchError) -> JSONResponse:
    """Map a search error to its HTTP response."""
    if exc.kind is ErrorKind.INVALID_INPUT:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": exc.message})
    if exc.kind is ErrorKind.NOT_FOUND:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": exc.message})
    if exc.kind is ErrorKind.STORE_FAILURE:
        # detail was logged where it happened
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": STORE_FAILURE_MESSAGE},
        )
    raise AssertionError(f"unhandled error kind: {exc.kind!r}")


async def _handle_search_error(request: Request, exc: RegionSearchError) -> JSONResponse:
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.kind.value, exc.message)
    return error_response(exc)


def create_app(service: Optional[RegionSearchService] = None, settings: Optional[Settings] = None) -> FastAPI:
    """Build the application.

    When no service is given, the region store at ``settings.DB_PATH`` is
    opened read-only on startup and closed on shutdown.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events."""
        repository = None
        if app.state.search_service is None:
            repository = AdministrativeRegionsRepository(settings.DB_PATH, read_only=True)
            app.state.search_service = RegionSearchService(repository)
        logger.info("Starting %s (region store: %s)", settings.APP_NAME, settings.DB_PATH)
        yield
        logger.info("Shutting down %s", settings.APP_NAME)
        if repository is not None:
            repository.close()

    app = FastAPI(
        title=settings.APP_NAME,
        description="Typo-tolerant lookup of Indonesian provinces, cities, districts and subdistricts",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.search_service = service
    app.add_exception_handler(RegionSearchError, _handle_search_error)
    app.include_router(router)

    @app.get("/healthz")
    def health_check(service: RegionSearchService = Depends(get_search_service)):
        """Health check endpoint; verifies the region store is readable."""
        try:
            service.repository.ping()
        except StoreFailureError as e:
            logger.error("Database connection failed in health check: %s", e)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"status": "error", "message": "Database connection failed"},
            )
        return {"status": "ok", "message": "Service is healthy"}

    return app
