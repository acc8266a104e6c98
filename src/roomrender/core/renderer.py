"""Stability API adapter for the RoomRender relay.

This module provides :class:`Renderer`, which turns a normalised render
request into one vendor call and one PNG file under ``results/``.

Vendor Protocols
----------------
The request type alone decides which endpoint is used:

- :class:`~roomrender.core.render_request.EditRequest` →
  ``POST /v2beta/stable-image/edit/<engine>`` with a multipart body
  (``prompt``, ``output_format``, ``strength``, ``mode`` and the ``image``
  file).  The vendor answers with the raw image bytes.
- :class:`~roomrender.core.render_request.GenerateRequest` →
  ``POST /v2beta/stable-image/generate/core`` with a JSON body
  (``prompt``, ``output_format``, ``width``, ``height``).  The vendor answers
  with JSON carrying the image as a base64 string in ``image``.

Failure Handling
----------------
- Any vendor status >= 400 raises :class:`VendorError` carrying that status
  and the vendor's payload as text.
- Timeouts and transport errors raise :class:`VendorError` without a status.
- A 2xx generate response without a usable ``image`` raises
  :class:`VendorContractError`.

Nothing is retried.

Usage
-----
::

    async with httpx.AsyncClient(timeout=cfg.request_timeout) as client:
        renderer = Renderer(cfg, client)
        stored = await renderer.render(GenerateRequest(prompt="a red chair"))
        print(stored.url)
"""

from __future__ import annotations

import base64
import binascii
import logging

import httpx
from fastapi.concurrency import run_in_threadpool

from roomrender.core.config import RoomRenderConfig
from roomrender.core.errors import VendorContractError, VendorError
from roomrender.core.render_request import (
    EDIT_MODE,
    OUTPUT_FORMAT,
    EditRequest,
    GenerateRequest,
)
from roomrender.core.storage import StoredImage, save_result

logger = logging.getLogger(__name__)

EDIT_PATH = "/v2beta/stable-image/edit/{engine}"
GENERATE_PATH = "/v2beta/stable-image/generate/core"


class Renderer:
    """Sends render requests to the Stability API and stores the results.

    Attributes:
        _config (RoomRenderConfig):
            Credential, engine, base URL, timeout and results directory.
        _client (httpx.AsyncClient):
            Shared client owned by the application lifespan.
    """

    def __init__(self, config: RoomRenderConfig, client: httpx.AsyncClient) -> None:
        self._config = config
        self._client = client

    # ------------------------------------------------------------------
    # Endpoint URLs
    # ------------------------------------------------------------------

    @property
    def edit_url(self) -> str:
        """Image-edit endpoint for the configured engine."""
        base = self._config.stability_api_base.rstrip("/")
        return base + EDIT_PATH.format(engine=self._config.stability_engine)

    @property
    def generate_url(self) -> str:
        """Text-to-image endpoint."""
        return self._config.stability_api_base.rstrip("/") + GENERATE_PATH

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def render(self, request: EditRequest | GenerateRequest) -> StoredImage:
        """Run the vendor operation matching *request* and store the image.

        Args:
            request: A normalised edit or generate request.

        Returns:
            The stored PNG.

        Raises:
            ConfigurationError: If no credential is configured.
            VendorError: On a vendor HTTP error, timeout or transport error.
            VendorContractError: If a generate response carries no image.
        """
        if isinstance(request, EditRequest):
            return await self.edit(request)
        if isinstance(request, GenerateRequest):
            return await self.generate(request)
        raise TypeError(f"Unsupported render request: {type(request).__name__}")

    # ------------------------------------------------------------------
    # Vendor operations
    # ------------------------------------------------------------------

    async def edit(self, request: EditRequest) -> StoredImage:
        """Restyle an uploaded room image and store the returned bytes."""
        api_key = self._config.require_api_key()
        data = {
            "prompt": request.prompt,
            "output_format": OUTPUT_FORMAT,
            "strength": request.strength,
            "mode": EDIT_MODE,
        }
        files = {
            "image": (
                request.image_filename,
                await run_in_threadpool(request.image_path.read_bytes),
                request.image_content_type,
            )
        }
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Accept": "image/*",
        }

        logger.info("Vendor edit call (engine=%s)", self._config.stability_engine)
        response = await self._post(self.edit_url, headers=headers, data=data, files=files)
        return await self._store(response.content)

    async def generate(self, request: GenerateRequest) -> StoredImage:
        """Render a prompt from scratch and store the decoded image."""
        api_key = self._config.require_api_key()
        body = {
            "prompt": request.prompt,
            "output_format": OUTPUT_FORMAT,
            "width": request.width,
            "height": request.height,
        }
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

        logger.info("Vendor generate call (%dx%d)", request.width, request.height)
        response = await self._post(self.generate_url, headers=headers, json=body)
        return await self._store(_decode_image(response))

    async def _store(self, data: bytes) -> StoredImage:
        """Write result bytes from the threadpool, off the event loop."""
        return await run_in_threadpool(save_result, self._config.results_dir, data)

    # ------------------------------------------------------------------
    # HTTP helper
    # ------------------------------------------------------------------

    async def _post(self, url: str, **kwargs) -> httpx.Response:
        """POST to the vendor and turn every failure into :class:`VendorError`."""
        try:
            response = await self._client.post(
                url, timeout=self._config.request_timeout, **kwargs
            )
        except httpx.TimeoutException as exc:
            logger.warning("Vendor call to %s timed out", url)
            raise VendorError(
                f"Vendor request timed out after {self._config.request_timeout:g}s"
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("Vendor call to %s failed: %s", url, exc)
            raise VendorError(str(exc) or type(exc).__name__) from exc

        logger.info("Vendor responded %d", response.status_code)
        if response.status_code >= 400:
            logger.warning("Vendor error %d: %s", response.status_code, response.text)
            raise VendorError(response.text, upstream_status=response.status_code)
        return response


def _decode_image(response: httpx.Response) -> bytes:
    """Extract and decode the base64 ``image`` field of a generate response."""
    try:
        payload = response.json()
    except ValueError as exc:
        raise VendorContractError(detail="Vendor response was not valid JSON") from exc

    encoded = payload.get("image") if isinstance(payload, dict) else None
    if not encoded or not isinstance(encoded, str):
        raise VendorContractError(detail="Vendor response did not include a base64 image")

    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise VendorContractError(detail="Vendor image was not valid base64") from exc
