"""Centralised environment configuration for the binarization service.

`.env` loading happens here and nowhere else. Downstream modules call
`get_settings()` for a typed snapshot of the server address, CORS origins and
processing knobs instead of reading `os.environ` directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import os
from pathlib import Path
import tempfile

from dotenv import load_dotenv


_DEFAULT_ENV_PATH = Path(__file__).resolve().parents[2] / ".env"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080
DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_JPEG_QUALITY = 75
MAX_JPEG_QUALITY = 95


def _coerce_int(value: str | None) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _coerce_csv(value: str | None, default: tuple[str, ...]) -> tuple[str, ...]:
    if value is None:
        return default
    parts = tuple(part.strip() for part in value.split(",") if part.strip())
    return parts or default


@dataclass(frozen=True)
class ServerSettings:
    host: str
    port: int
    cors_origins: tuple[str, ...]


@dataclass(frozen=True)
class ProcessingSettings:
    scratch_root: Path
    chunk_size: int
    jpeg_quality: int


@dataclass(frozen=True)
class OtsuSettings:
    """Top-level snapshot of configuration values."""

    env_file: Path
    server: ServerSettings
    processing: ProcessingSettings


def _resolve_env_path(env_file: os.PathLike[str] | str | None) -> Path:
    if env_file is None:
        return _DEFAULT_ENV_PATH
    return Path(env_file).resolve()


@lru_cache(maxsize=4)
def _load_settings(env_path: Path) -> OtsuSettings:
    # Existing environment variables take precedence over `.env` defaults.
    load_dotenv(dotenv_path=env_path, override=False)

    port = _coerce_int(os.getenv("OTSU_PORT"))
    server = ServerSettings(
        host=(os.getenv("OTSU_HOST") or DEFAULT_HOST).strip() or DEFAULT_HOST,
        port=port if port is not None and 0 < port < 65536 else DEFAULT_PORT,
        cors_origins=_coerce_csv(os.getenv("OTSU_CORS_ORIGINS"), ("*",)),
    )

    chunk_size = _coerce_int(os.getenv("OTSU_CHUNK_SIZE"))
    jpeg_quality = _coerce_int(os.getenv("OTSU_JPEG_QUALITY"))
    scratch_dir = (os.getenv("OTSU_SCRATCH_DIR") or "").strip()
    processing = ProcessingSettings(
        scratch_root=Path(scratch_dir).expanduser().resolve()
        if scratch_dir
        else Path(tempfile.gettempdir()),
        chunk_size=chunk_size if chunk_size and chunk_size > 0 else DEFAULT_CHUNK_SIZE,
        jpeg_quality=min(max(jpeg_quality, 1), MAX_JPEG_QUALITY)
        if jpeg_quality is not None
        else DEFAULT_JPEG_QUALITY,
    )

    return OtsuSettings(env_file=env_path, server=server, processing=processing)


def get_settings(
    env_file: os.PathLike[str] | str | None = None,
    *,
    reload: bool = False,
) -> OtsuSettings:
    """Return the cached settings snapshot.

    Args:
        env_file: Optional explicit path to a `.env` file. When omitted the repo
            root `.env` file is used.
        reload: When True the cached snapshot is cleared before loading.
    """
    env_path = _resolve_env_path(env_file)
    if reload:
        _load_settings.cache_clear()
    return _load_settings(env_path)
