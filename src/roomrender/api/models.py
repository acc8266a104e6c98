"""Pydantic response models for the RoomRender API.

FastAPI uses these for serialisation and OpenAPI documentation.  Request
input arrives as multipart form fields and is normalised by
:mod:`roomrender.core.render_request` instead.

Models
------
HealthResponse
    Body of ``GET /health``.
RenderResponse
    Success body of ``POST /render``.
ErrorResponse
    Failure body of ``POST /render`` (and other error responses).
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    """Liveness payload.

    Attributes:
        ok: Always ``True`` while the process serves requests.
        provider: Name of the image vendor behind the relay.
        time: Current server time (UTC).
    """

    ok: bool = True
    provider: str = "stability"
    time: datetime


class RenderResponse(BaseModel):
    """Success body of ``POST /render``.

    Attributes:
        image_url: Path of the stored PNG under ``/results``.  Serialised as
            ``imageUrl``.
    """

    model_config = ConfigDict(populate_by_name=True)

    image_url: str = Field(
        ...,
        alias="imageUrl",
        description="URL path of the rendered PNG (e.g. '/results/render_...png').",
    )


class ErrorResponse(BaseModel):
    """Failure body.

    ``status`` and ``detail`` are omitted from the JSON when unknown.

    Attributes:
        error: Short error description.
        status: Vendor HTTP status, when the vendor produced the failure.
        detail: Vendor payload or further explanation.
    """

    error: str = Field(..., description="Short error description.")
    status: int | None = Field(default=None, description="Upstream HTTP status, if any.")
    detail: str | None = Field(default=None, description="Vendor payload or explanation.")
