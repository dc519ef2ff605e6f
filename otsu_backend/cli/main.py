from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from functools import wraps
from pathlib import Path
from typing import Any, ParamSpec, TypeVar

import typer  # type: ignore[import]

from otsu_backend.config.settings import get_settings
from otsu_backend.errors import ConversionError
from otsu_backend.imaging.formats import FormatTag
from otsu_backend.ingest.manager import parts_from_file
from otsu_backend.pipeline import process_upload
from otsu_backend.utils.log_utils import logger


app = typer.Typer(
    help="Otsu binarization backend command-line interface",
)


_P = ParamSpec("_P")
_T = TypeVar("_T")


def _synchronous(handler: Callable[_P, Coroutine[Any, Any, _T]]) -> Callable[_P, _T]:
    @wraps(handler)
    def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _T:
        try:
            return asyncio.run(handler(*args, **kwargs))
        except KeyboardInterrupt as err:
            logger.info("Interrupted by user")
            raise typer.Exit(code=130) from err

    return wrapper


def default_output_path(input_path: Path) -> Path:
    """``scan.PNG`` becomes ``scan_binary.png``; anything not ending in .png gets ``.jpg``."""
    format_tag = FormatTag.from_filename(input_path.name)
    return input_path.with_name(f"{input_path.stem}_binary{format_tag.extension}")


@app.command("serve")
def serve_command(
    host: str | None = typer.Option(
        None,
        "--host",
        help="Interface to bind. Defaults to OTSU_HOST.",
    ),
    port: int | None = typer.Option(
        None,
        "--port",
        help="Port to listen on. Defaults to OTSU_PORT.",
    ),
    reload: bool = typer.Option(
        False,
        "--reload",
        help="Restart the server when source files change.",
    ),
) -> int:
    import uvicorn

    settings = get_settings()
    bind_host = host or settings.server.host
    bind_port = port or settings.server.port

    logger.info("Starting image processing backend")
    logger.info(f"Server: http://{bind_host}:{bind_port}")
    logger.info("Available endpoints:")
    logger.info("   GET  /health  - Health check")
    logger.info("   POST /process - Process image (multipart form with 'image' field)")

    uvicorn.run(
        "otsu_backend.api.app:create_app",
        factory=True,
        host=bind_host,
        port=bind_port,
        reload=reload,
    )
    return 0


@app.command("binarize")
@_synchronous
async def binarize_command(
    input_path: Path = typer.Argument(
        ...,
        help="Image to binarize. A .png name keeps PNG output; anything else is written as JPEG.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Destination file. Defaults to <name>_binary.<ext> next to the input.",
        dir_okay=False,
        writable=True,
    ),
) -> int:
    settings = get_settings()
    try:
        outcome = await process_upload(
            parts_from_file(input_path, settings.processing.chunk_size), settings
        )
    except ConversionError as exc:
        logger.error(f"Failed to binarize {input_path}: {exc.public_message}")
        raise typer.Exit(code=1) from exc

    destination = output or default_output_path(input_path)
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_bytes(outcome.result.encoded_bytes)
    logger.info(
        f"Threshold {outcome.result.threshold_value:.0f} applied to {outcome.width}x{outcome.height} "
        f"image; wrote {outcome.result.mime_type} output to {destination}"
    )
    return 0


def main() -> None:
    app()


if __name__ == "__main__":
    main()
