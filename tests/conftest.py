"""Shared pytest fixtures for RoomRender tests."""

import base64
import shutil
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Generator

import httpx
import pytest
from fastapi.testclient import TestClient

from roomrender.api.main import create_app
from roomrender.core.config import RoomRenderConfig

# A valid 1x1 transparent PNG.
PNG_1X1 = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)
PNG_1X1_B64 = base64.b64encode(PNG_1X1).decode("ascii")

TEST_API_KEY = "sk-test-key"


class VendorStub:
    """Stand-in for the Stability API behind an ``httpx.MockTransport``.

    Every outbound request is recorded in :attr:`requests`.  The response is
    produced by :attr:`handler`, which defaults to a successful generate
    response carrying :data:`PNG_1X1_B64`.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = (
            lambda request: httpx.Response(200, json={"image": PNG_1X1_B64})
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    @property
    def last_request(self) -> httpx.Request:
        assert self.requests, "no vendor request was made"
        return self.requests[-1]


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def public_dir(temp_dir: Path) -> Path:
    """Public directory containing a minimal landing page."""
    path = temp_dir / "public"
    path.mkdir()
    (path / "index.html").write_text("<html><body><h1>RoomRender</h1></body></html>")
    (path / "app.css").write_text("body { margin: 0; }")
    return path


@pytest.fixture
def test_config(temp_dir: Path, public_dir: Path) -> RoomRenderConfig:
    """Create a test configuration with a credential and temporary directories.

    Args:
        temp_dir: Temporary directory from fixture
        public_dir: Landing page directory from fixture

    Returns:
        RoomRenderConfig instance for testing
    """
    return RoomRenderConfig(
        _env_file=None,
        stability_api_key=TEST_API_KEY,
        stability_engine="core",
        stability_api_base="https://vendor.test",
        results_dir=temp_dir / "results",
        uploads_dir=temp_dir / "uploads",
        public_dir=public_dir,
    )


@pytest.fixture
def unconfigured_config(temp_dir: Path, public_dir: Path) -> RoomRenderConfig:
    """Test configuration without a vendor credential."""
    return RoomRenderConfig(
        _env_file=None,
        stability_api_key=None,
        stability_api_base="https://vendor.test",
        results_dir=temp_dir / "results",
        uploads_dir=temp_dir / "uploads",
        public_dir=public_dir,
    )


@pytest.fixture
def png_bytes() -> bytes:
    """Bytes of a valid 1x1 PNG."""
    return PNG_1X1


@pytest.fixture
def png_b64() -> str:
    """Base64 text of :func:`png_bytes`, as the generate endpoint returns it."""
    return PNG_1X1_B64


@pytest.fixture
def vendor() -> VendorStub:
    """Recording fake of the vendor API."""
    return VendorStub()


@pytest.fixture
def test_client(test_config: RoomRenderConfig, vendor: VendorStub) -> Generator[TestClient, None, None]:
    """TestClient for an app wired to the vendor stub.

    The client is used as a context manager so the lifespan handler runs and
    the renderer is available on ``app.state``.
    """
    app = create_app(test_config, transport=vendor.transport)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def unconfigured_client(
    unconfigured_config: RoomRenderConfig, vendor: VendorStub
) -> Generator[TestClient, None, None]:
    """TestClient for an app started without ``STABILITY_API_KEY``."""
    app = create_app(unconfigured_config, transport=vendor.transport)
    with TestClient(app) as client:
        yield client
