import logging

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from blurb_studio.api.errors import error_response, status_for
from blurb_studio.api.parsing import parse_generation_request
from blurb_studio.api.schemas import CoverResponse, ErrorResponse, GenerateResponse
from blurb_studio.config import Settings, get_settings
from blurb_studio.errors import AppError, ErrorCode
from blurb_studio.security.rate_limit import RateLimiter, client_key
from blurb_studio.service.covers import CoverLookupService
from blurb_studio.service.generator import GenerateService

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

router = APIRouter()
ERROR_RESPONSES = {
    status: {"model": ErrorResponse}
    for status in (400, 404, 408, 413, 415, 422, 429, 500, 502, 503, 504)
}


def build_limiter(settings: Settings, limit: int, name: str) -> RateLimiter:
    return RateLimiter(
        limit=limit,
        window_seconds=settings.rate_limit_window_seconds,
        retry_after_seconds=settings.rate_limit_retry_after_seconds,
        max_keys=settings.rate_limit_max_keys,
        sweep_every=settings.rate_limit_sweep_every,
        name=name,
    )


def create_app(
    settings: Settings | None = None,
    generate_service: GenerateService | None = None,
    cover_service: CoverLookupService | None = None,
    generate_limiter: RateLimiter | None = None,
    cover_limiter: RateLimiter | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="blurb-studio", version="0.1.0")
    app.state.settings = settings
    app.state.generate_service = generate_service or GenerateService(settings=settings)
    app.state.cover_service = cover_service or CoverLookupService(settings)
    app.state.generate_limiter = generate_limiter or build_limiter(settings, settings.generate_rate_limit, "generate")
    app.state.cover_limiter = cover_limiter or build_limiter(settings, settings.cover_rate_limit, "cover")
    app.include_router(router)
    return app


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_generate_service(request: Request) -> GenerateService:
    return request.app.state.generate_service


def get_cover_service(request: Request) -> CoverLookupService:
    return request.app.state.cover_service


def get_generate_limiter(request: Request) -> RateLimiter:
    return request.app.state.generate_limiter


def get_cover_limiter(request: Request) -> RateLimiter:
    return request.app.state.cover_limiter


def app_error_response(exc: AppError, endpoint: str) -> JSONResponse:
    status_code = status_for(exc.code)
    if status_code >= 500:
        logger.warning("%s.failed code=%s status=%d detail=%s", endpoint, exc.code.value, status_code, exc.detail)
    else:
        logger.info("%s.rejected code=%s status=%d detail=%s", endpoint, exc.code.value, status_code, exc.detail)
    return error_response(exc.code)


@router.get("/healthz")
async def healthz() -> dict:
    return {"status": "ok"}


@router.post("/generate", response_model=GenerateResponse, responses=ERROR_RESPONSES)
@router.post("/api/generate", response_model=GenerateResponse, include_in_schema=False)
async def generate(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    service: GenerateService = Depends(get_generate_service),
    limiter: RateLimiter = Depends(get_generate_limiter),
) -> JSONResponse:
    decision = limiter.check(client_key(request))
    if not decision.allowed:
        return error_response(ErrorCode.RATE_LIMITED, retry_after=decision.retry_after)

    try:
        generation_request = await parse_generation_request(request, settings)
        result = await service.generate(generation_request)
    except AppError as exc:
        return app_error_response(exc, "generate")
    except Exception:
        logger.exception("generate.failed code=internal")
        return error_response(ErrorCode.INTERNAL)
    return JSONResponse(result.as_response())


@router.get("/cover-lookup", response_model=CoverResponse, responses=ERROR_RESPONSES)
@router.get("/api/cover", response_model=CoverResponse, include_in_schema=False)
async def cover_lookup(
    request: Request,
    isbn: str | None = Query(default=None),
    settings: Settings = Depends(get_app_settings),
    service: CoverLookupService = Depends(get_cover_service),
    limiter: RateLimiter = Depends(get_cover_limiter),
) -> JSONResponse:
    decision = limiter.check(client_key(request))
    if not decision.allowed:
        return error_response(ErrorCode.RATE_LIMITED, retry_after=decision.retry_after)

    try:
        thumbnail_url = await service.lookup(isbn)
    except AppError as exc:
        return app_error_response(exc, "cover")
    except Exception:
        logger.exception("cover.failed code=internal")
        return error_response(ErrorCode.INTERNAL)
    return JSONResponse(
        {"thumbnailUrl": thumbnail_url},
        headers={"Cache-Control": f"public, max-age={settings.cover_cache_seconds}"},
    )


app = create_app()


def main() -> None:
    import uvicorn

    uvicorn.run("blurb_studio.api.app:app", host="0.0.0.0", port=8000)
