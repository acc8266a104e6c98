"""Core components of RoomRender: configuration, request models, storage and the vendor adapter."""

from roomrender.core.config import RoomRenderConfig
from roomrender.core.errors import (
    ConfigurationError,
    RenderError,
    UploadTooLargeError,
    VendorContractError,
    VendorError,
)
from roomrender.core.render_request import EditRequest, GenerateRequest, RenderRequest
from roomrender.core.renderer import Renderer
from roomrender.core.storage import StoredImage

__all__ = [
    "RoomRenderConfig",
    "RenderError",
    "ConfigurationError",
    "UploadTooLargeError",
    "VendorError",
    "VendorContractError",
    "EditRequest",
    "GenerateRequest",
    "RenderRequest",
    "Renderer",
    "StoredImage",
]
