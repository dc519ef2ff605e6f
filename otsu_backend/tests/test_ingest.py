from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Sequence
from pathlib import Path

import pytest

from otsu_backend.errors import IOFailure, MalformedStream, NoImageField
from otsu_backend.imaging.formats import FormatTag
from otsu_backend.ingest.manager import UploadPart, ingest, parts_from_file
from otsu_backend.ingest.storage import SCRATCH_PREFIX, scratch_space


StreamFactory = Callable[[Sequence[tuple[str, str | None, Sequence[object]]]], AsyncIterator[UploadPart]]


@pytest.mark.asyncio
async def test_chunks_are_written_in_arrival_order(
    scratch_root: Path, make_stream: StreamFactory
) -> None:
    stream = make_stream([("image", "photo.PNG", [b"ab", b"", b"cd", b"ef"])])
    with scratch_space(scratch_root) as scratch:
        stored = await ingest(stream, scratch)

        assert stored.path.read_bytes() == b"abcdef"
        assert stored.size_bytes == 6
        assert stored.format_tag is FormatTag.PNG
        assert stored.path.name.startswith("input_")
        assert stored.path.suffix == ".png"
        assert stored.path.parent == scratch.directory
        assert [path.name for path in scratch.files()] == [stored.path.name]


@pytest.mark.asyncio
async def test_missing_filename_defaults_to_jpeg(
    scratch_root: Path, make_stream: StreamFactory
) -> None:
    stream = make_stream([("image", None, [b"data"])])
    with scratch_space(scratch_root) as scratch:
        stored = await ingest(stream, scratch)

    assert stored.format_tag is FormatTag.JPEG
    assert stored.path.suffix == ".jpg"
    assert stored.original_filename is None


@pytest.mark.asyncio
async def test_other_fields_are_skipped(scratch_root: Path, make_stream: StreamFactory) -> None:
    stream = make_stream(
        [
            ("caption", None, [b"hello"]),
            ("image", "scan.jpeg", [b"first"]),
            ("image", "second.png", [b"second"]),
        ]
    )
    with scratch_space(scratch_root) as scratch:
        stored = await ingest(stream, scratch)

        assert stored.path.read_bytes() == b"first"
        assert stored.format_tag is FormatTag.JPEG
        assert len(scratch.files()) == 1


@pytest.mark.asyncio
async def test_missing_image_field_raises(scratch_root: Path, make_stream: StreamFactory) -> None:
    stream = make_stream([("file", "photo.png", [b"data"])])
    with scratch_space(scratch_root) as scratch:
        with pytest.raises(NoImageField) as excinfo:
            await ingest(stream, scratch)

    assert excinfo.value.status_code == 400
    assert excinfo.value.public_message == "No image field found in request"


@pytest.mark.asyncio
async def test_aborted_upload_leaves_no_partial_file(
    scratch_root: Path, make_stream: StreamFactory
) -> None:
    stream = make_stream(
        [("image", "photo.png", [b"abc", IOFailure("Upload interrupted before completion")])]
    )
    with scratch_space(scratch_root) as scratch:
        with pytest.raises(IOFailure):
            await ingest(stream, scratch)
        assert scratch.files() == []

    assert list(scratch_root.iterdir()) == []


@pytest.mark.asyncio
async def test_framing_errors_propagate(scratch_root: Path, make_stream: StreamFactory) -> None:
    stream = make_stream([("image", "photo.png", [b"abc", MalformedStream()])])
    with scratch_space(scratch_root) as scratch:
        with pytest.raises(MalformedStream):
            await ingest(stream, scratch)
        assert scratch.files() == []


@pytest.mark.asyncio
async def test_write_errors_become_io_failures(
    scratch_root: Path, make_stream: StreamFactory, monkeypatch: pytest.MonkeyPatch
) -> None:
    def broken_fsync(_: int) -> None:
        raise OSError(28, "No space left on device")

    monkeypatch.setattr("otsu_backend.ingest.manager.os.fsync", broken_fsync)
    stream = make_stream([("image", "photo.png", [b"abc"])])
    with scratch_space(scratch_root) as scratch:
        with pytest.raises(IOFailure) as excinfo:
            await ingest(stream, scratch)
        assert scratch.files() == []

    assert excinfo.value.status_code == 500


@pytest.mark.asyncio
async def test_parts_from_file_presents_single_image_field(
    tmp_path: Path, scratch_root: Path
) -> None:
    source = tmp_path / "Scan.PNG"
    source.write_bytes(b"x" * 10_000)

    with scratch_space(scratch_root) as scratch:
        stored = await ingest(parts_from_file(source, chunk_size=4096), scratch)
        assert stored.path.read_bytes() == source.read_bytes()

    assert stored.original_filename == "Scan.PNG"
    assert stored.format_tag is FormatTag.PNG


def test_scratch_space_is_private_and_removed(scratch_root: Path) -> None:
    with scratch_space(scratch_root) as first, scratch_space(scratch_root) as second:
        assert first.directory != second.directory
        assert first.directory.name.startswith(SCRATCH_PREFIX)
        allocated = first.allocate("input", ".png")
        assert allocated != first.allocate("input", ".png")
        allocated.write_bytes(b"data")

    assert list(scratch_root.iterdir()) == []


def test_scratch_space_removed_when_body_raises(scratch_root: Path) -> None:
    with pytest.raises(RuntimeError):
        with scratch_space(scratch_root) as scratch:
            scratch.allocate("processed", ".jpg").write_bytes(b"data")
            raise RuntimeError("boom")

    assert list(scratch_root.iterdir()) == []


def test_unusable_scratch_root_raises_io_failure(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-directory"
    blocker.write_text("occupied", encoding="utf-8")

    with pytest.raises(IOFailure):
        with scratch_space(blocker):
            pass
