"""FastAPI application exposing the health check and the binarization endpoint."""

from __future__ import annotations

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from otsu_backend import __version__
from otsu_backend.config.settings import OtsuSettings, get_settings
from otsu_backend.errors import ConversionError
from otsu_backend.imaging.codec import ImageCodec, PillowCodec
from otsu_backend.pipeline import process_upload
from otsu_backend.utils.log_utils import logger

from .multipart import multipart_parts
from .schemas import ErrorResponse, HealthResponse, ProcessingResponse


router = APIRouter()

_ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    return HealthResponse(status="healthy", message="Image processing service is running")


@router.post("/process", response_model=ProcessingResponse, responses=_ERROR_RESPONSES)
async def process_image(request: Request) -> ProcessingResponse:
    """Binarize the multipart ``image`` field with Otsu's threshold."""
    settings: OtsuSettings = request.app.state.settings
    codec: ImageCodec = request.app.state.codec
    try:
        async with multipart_parts(request, settings.processing.chunk_size) as parts:
            outcome = await process_upload(parts, settings, codec)
    except ConversionError:
        raise
    except Exception as exc:
        logger.exception(f"Unexpected failure while processing upload: {exc}")
        raise ConversionError("Internal server error") from exc

    return ProcessingResponse(
        message="Image processed successfully",
        threshold_value=outcome.result.threshold_value,
        output_filename=outcome.output_filename,
        processed_image_base64=outcome.result.data_url,
    )


async def _conversion_error_handler(request: Request, exc: ConversionError) -> JSONResponse:
    logger.error(f"{request.method} {request.url.path} failed ({exc.status_code}): {exc.public_message}")
    body = ErrorResponse(error=exc.public_message)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


def create_app(settings: OtsuSettings | None = None, codec: ImageCodec | None = None) -> FastAPI:
    """Build the application; ``settings`` defaults to the cached environment snapshot."""
    settings = settings or get_settings()
    app = FastAPI(title="Otsu Binarization Backend", version=__version__)
    app.state.settings = settings
    app.state.codec = codec or PillowCodec(jpeg_quality=settings.processing.jpeg_quality)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.server.cors_origins),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ConversionError, _conversion_error_handler)  # type: ignore[arg-type]
    app.include_router(router)
    return app


__all__ = ["create_app", "router"]
