"""Normalised render requests.

A ``POST /render`` call becomes exactly one of two request types:

EditRequest
    A room image was uploaded.  The vendor's image-edit endpoint restyles it
    according to the prompt and ``strength``.
GenerateRequest
    No image was uploaded.  The vendor's text-to-image endpoint renders the
    prompt at a fixed 1024x768.

:data:`RenderRequest` is the union of the two, tagged by ``kind``.  Both
models are frozen: a request is built once from the form fields and then
only read.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_PROMPT = "modern interior, soft natural side light, photorealistic"
DEFAULT_STRENGTH = "0.45"
OUTPUT_FORMAT = "png"
EDIT_MODE = "image-to-image"
GENERATE_WIDTH = 1024
GENERATE_HEIGHT = 768


class EditRequest(BaseModel):
    """Image-to-image edit of an uploaded room photo."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["edit"] = "edit"
    prompt: str
    strength: str = DEFAULT_STRENGTH
    image_path: Path
    image_filename: str = Field(
        default="image.png",
        description="Original client-side filename, forwarded to the vendor.",
    )
    image_content_type: str = "application/octet-stream"


class GenerateRequest(BaseModel):
    """Text-to-image generation."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["generate"] = "generate"
    prompt: str
    width: int = GENERATE_WIDTH
    height: int = GENERATE_HEIGHT


RenderRequest = Annotated[Union[EditRequest, GenerateRequest], Field(discriminator="kind")]


def normalize_prompt(prompt: str | None, max_length: int) -> str:
    """Apply the default prompt and the length cap.

    A missing or empty prompt falls back to :data:`DEFAULT_PROMPT`.  Any other
    value is forwarded as sent, whitespace included, except that anything
    longer than *max_length* characters is cut to exactly *max_length*.

    Args:
        prompt: Raw form value.
        max_length: Maximum number of characters sent to the vendor.

    Returns:
        The prompt to send.
    """
    return (prompt or DEFAULT_PROMPT)[:max_length]


def normalize_strength(strength: str | None) -> str:
    """Apply the default strength.

    Any non-empty value is forwarded verbatim; the vendor judges whether it is
    acceptable and its rejection comes back as a vendor error.
    """
    return strength or DEFAULT_STRENGTH


def build_generate_request(prompt: str | None, *, max_prompt_length: int) -> GenerateRequest:
    """Build a text-to-image request from raw form values."""
    return GenerateRequest(prompt=normalize_prompt(prompt, max_prompt_length))


def build_edit_request(
    prompt: str | None,
    strength: str | None,
    *,
    image_path: Path,
    image_filename: str | None,
    image_content_type: str | None,
    max_prompt_length: int,
) -> EditRequest:
    """Build an image-edit request from raw form values and a staged upload."""
    return EditRequest(
        prompt=normalize_prompt(prompt, max_prompt_length),
        strength=normalize_strength(strength),
        image_path=image_path,
        image_filename=image_filename or image_path.name,
        image_content_type=image_content_type or "application/octet-stream",
    )
