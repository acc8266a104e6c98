"""Tests for roomrender.core.storage — result files and staged uploads."""

from __future__ import annotations

import asyncio
import io
import re
import threading
from pathlib import Path

import pytest
from fastapi import UploadFile

import roomrender.core.storage as storage_module
from roomrender.core.errors import UploadTooLargeError
from roomrender.core.storage import (
    discard_upload,
    new_result_filename,
    save_result,
    staged_upload,
)

RESULT_NAME = re.compile(r"^render_\d{13}_[0-9a-f]{8}\.png$")


def _upload(data: bytes, filename: str = "room.PNG") -> UploadFile:
    return UploadFile(file=io.BytesIO(data), filename=filename)


class TestResultNaming:
    def test_filename_format(self):
        assert RESULT_NAME.match(new_result_filename())

    def test_filenames_unique_within_same_millisecond(self):
        names = {new_result_filename() for _ in range(500)}
        assert len(names) == 500


class TestSaveResult:
    def test_bytes_written_verbatim(self, temp_dir: Path, png_bytes: bytes):
        stored = save_result(temp_dir, png_bytes)

        assert stored.path.read_bytes() == png_bytes
        assert stored.path.parent == temp_dir
        assert stored.url == f"/results/{stored.filename}"
        assert RESULT_NAME.match(stored.filename)

    def test_each_save_creates_new_file(self, temp_dir: Path):
        first = save_result(temp_dir, b"one")
        second = save_result(temp_dir, b"two")

        assert first.filename != second.filename
        assert first.path.read_bytes() == b"one"
        assert second.path.read_bytes() == b"two"


class TestStagedUpload:
    def test_upload_staged_then_removed(self, temp_dir: Path, png_bytes: bytes):
        seen: dict = {}

        async def scenario():
            async with staged_upload(_upload(png_bytes), temp_dir, 1024) as path:
                seen["path"] = path
                seen["exists"] = path.exists()
                seen["data"] = path.read_bytes()

        asyncio.run(scenario())

        assert seen["exists"] is True
        assert seen["data"] == png_bytes
        assert seen["path"].parent == temp_dir
        assert seen["path"].suffix == ".png"
        assert not seen["path"].exists()
        assert list(temp_dir.iterdir()) == []

    def test_upload_removed_when_block_raises(self, temp_dir: Path):
        async def scenario():
            async with staged_upload(_upload(b"data"), temp_dir, 1024):
                raise RuntimeError("vendor exploded")

        with pytest.raises(RuntimeError):
            asyncio.run(scenario())

        assert list(temp_dir.iterdir()) == []

    def test_upload_at_limit_accepted(self, temp_dir: Path):
        async def scenario():
            async with staged_upload(_upload(b"a" * 100), temp_dir, 100) as path:
                return path.stat().st_size

        assert asyncio.run(scenario()) == 100

    def test_upload_over_limit_rejected_and_removed(self, temp_dir: Path):
        async def scenario():
            async with staged_upload(_upload(b"a" * 101), temp_dir, 100):
                pytest.fail("block should not run for oversized uploads")

        with pytest.raises(UploadTooLargeError) as exc_info:
            asyncio.run(scenario())

        assert exc_info.value.status_code == 413
        assert list(temp_dir.iterdir()) == []

    def test_upload_without_filename_has_no_suffix(self, temp_dir: Path):
        async def scenario():
            async with staged_upload(_upload(b"x", filename=""), temp_dir, 10) as path:
                return path

        path = asyncio.run(scenario())
        assert path.suffix == ""

    def test_chunks_written_off_event_loop(self, temp_dir: Path, monkeypatch):
        loop_thread = threading.get_ident()
        write_threads: list[int] = []
        real_run_in_threadpool = storage_module.run_in_threadpool

        async def recording_run_in_threadpool(func, *args, **kwargs):
            def call():
                write_threads.append(threading.get_ident())
                return func(*args, **kwargs)

            return await real_run_in_threadpool(call)

        monkeypatch.setattr(storage_module, "run_in_threadpool", recording_run_in_threadpool)
        data = b"z" * (storage_module.UPLOAD_CHUNK_SIZE * 2 + 1)

        async def scenario():
            async with staged_upload(_upload(data), temp_dir, len(data)) as path:
                return path.read_bytes()

        assert asyncio.run(scenario()) == data
        assert len(write_threads) == 3
        assert loop_thread not in write_threads


class TestDiscardUpload:
    def test_missing_file_is_ignored(self, temp_dir: Path):
        discard_upload(temp_dir / "never-existed.png")

    def test_os_error_is_swallowed(self, temp_dir: Path):
        # Unlinking a directory fails with an OSError subclass.
        directory = temp_dir / "not-a-file"
        directory.mkdir()
        discard_upload(directory)
        assert directory.exists()
