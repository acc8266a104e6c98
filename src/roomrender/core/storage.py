"""File storage helpers for rendered results and staged uploads.

Two directories are involved:

- ``results/`` holds every PNG the vendor returned.  Files are written once,
  never modified, and never cleaned up by the application.  They are served
  statically under ``/results``.
- ``uploads/`` holds the room image of a request in flight.  The file exists
  only for the duration of that request: :func:`staged_upload` removes it on
  every exit path.

Result names combine the current time in milliseconds with a random token
(``render_1718000000000_3f9a2c1b.png``), so two renders in the same
millisecond still get different files.
"""

from __future__ import annotations

import logging
import secrets
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path

from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from roomrender.core.errors import UploadTooLargeError

logger = logging.getLogger(__name__)

RESULTS_URL_PREFIX = "/results"
UPLOAD_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class StoredImage:
    """A rendered PNG on disk.

    Attributes:
        filename: Bare file name inside the results directory.
        path: Absolute or working-directory-relative path to the file.
        url: Path under which the static mount serves the file.
    """

    filename: str
    path: Path
    url: str


def new_result_filename() -> str:
    """Return a fresh ``render_<millis>_<token>.png`` file name."""
    millis = time.time_ns() // 1_000_000
    return f"render_{millis}_{secrets.token_hex(4)}.png"


def save_result(results_dir: Path, data: bytes) -> StoredImage:
    """Write rendered image bytes to a new file in *results_dir*.

    The file is opened in exclusive-create mode; a name clash raises
    ``FileExistsError`` instead of overwriting an earlier render.

    Args:
        results_dir: Directory served under ``/results``.
        data: Image bytes exactly as they should appear on disk.

    Returns:
        The :class:`StoredImage` describing the new file.
    """
    filename = new_result_filename()
    path = results_dir / filename
    with open(path, "xb") as handle:
        handle.write(data)

    logger.info("Saved render %s (%d bytes)", filename, len(data))
    return StoredImage(filename=filename, path=path, url=f"{RESULTS_URL_PREFIX}/{filename}")


def discard_upload(path: Path) -> None:
    """Remove a staged upload, ignoring any filesystem error."""
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.debug("Could not remove staged upload %s: %s", path, exc)


@asynccontextmanager
async def staged_upload(
    upload: UploadFile, uploads_dir: Path, max_bytes: int
) -> AsyncIterator[Path]:
    """Copy an uploaded file into *uploads_dir* for the duration of a block.

    The upload is streamed to ``uploads/<random hex><suffix>`` in chunks so
    the size cap is enforced without holding more than one chunk in memory.
    Chunks are written from the threadpool so the event loop never waits on
    disk I/O.  Whatever happens inside the ``async with`` block (or while copying), the
    staged file is removed afterwards.

    Args:
        upload: The ``roomImage`` form file.
        uploads_dir: Directory for staged uploads.
        max_bytes: Largest accepted upload.

    Yields:
        Path of the staged copy.

    Raises:
        UploadTooLargeError: If the upload is larger than *max_bytes*.
    """
    suffix = Path(upload.filename or "").suffix.lower()
    path = uploads_dir / f"{secrets.token_hex(16)}{suffix}"

    try:
        written = 0
        with open(path, "wb") as handle:
            while chunk := await upload.read(UPLOAD_CHUNK_SIZE):
                written += len(chunk)
                if written > max_bytes:
                    raise UploadTooLargeError(
                        detail=f"roomImage exceeds the {max_bytes} byte limit"
                    )
                await run_in_threadpool(handle.write, chunk)

        logger.debug("Staged upload %s (%d bytes)", path.name, written)
        yield path
    finally:
        discard_upload(path)
