"""Configuration management for RoomRender.

This module provides the application configuration using Pydantic Settings.
Values are loaded from environment variables (no prefix, case-insensitive),
falling back to a ``.env`` file in the working directory and finally to the
defaults declared on :class:`RoomRenderConfig`.

Environment Variable Loading
----------------------------
Configuration values are loaded in the following priority order:

1. Keyword arguments passed to ``RoomRenderConfig(...)``
2. Environment variables (``STABILITY_API_KEY``, ``PORT``, ...)
3. ``.env`` file in the working directory
4. Default values defined in :class:`RoomRenderConfig`

Example .env file::

    STABILITY_API_KEY=sk-...
    STABILITY_ENGINE=core
    PORT=10000

Explicit Configuration
----------------------
There is deliberately no module-level ``config`` instance.  The entry point
builds one ``RoomRenderConfig`` at startup and hands it to
:func:`roomrender.api.main.create_app`, which passes it on to the renderer.
The object is frozen, so nothing can mutate it after startup.

Usage Example
-------------
::

    from roomrender.core.config import RoomRenderConfig

    cfg = RoomRenderConfig()
    print(cfg.stability_engine)
    print(cfg.results_dir)

Directory Management
--------------------
The results and uploads directories are created on initialisation.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from roomrender.core.errors import ConfigurationError

#: Bundled landing page assets shipped inside the package.
PACKAGE_PUBLIC_DIR: Path = Path(__file__).resolve().parent.parent / "public"


class RoomRenderConfig(BaseSettings):
    """Main configuration for the RoomRender relay.

    Attributes
    ----------
    Vendor Settings:
        stability_api_key : str | None
            Bearer credential for the Stability API.  ``/render`` refuses to
            run without it.
        stability_engine : str
            Engine path segment of the image-edit endpoint.
        stability_api_base : str
            Scheme and host of the vendor API.
        request_timeout : float
            Ceiling in seconds for a single vendor call.

    Input Limits:
        max_upload_bytes : int
            Largest accepted ``roomImage`` upload.
        max_prompt_length : int
            Prompts are truncated to this many characters.

    Paths:
        results_dir : Path
            Generated PNGs, served under ``/results``.
        uploads_dir : Path
            Staged uploads, removed after each request.
        public_dir : Path
            Landing page and other static assets.

    Server Settings:
        host : str
            Bind address.
        port : int
            Listen port.
        log_level : str
            Log level for the application and uvicorn.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Vendor settings
    stability_api_key: str | None = Field(
        default=None,
        description="Stability API key (required for POST /render)",
    )
    stability_engine: str = Field(
        default="core",
        description="Engine used by the image-edit endpoint",
    )
    stability_api_base: str = Field(
        default="https://api.stability.ai",
        description="Base URL of the Stability API",
    )
    request_timeout: float = Field(
        default=120.0,
        description="Timeout in seconds for each vendor call",
        gt=0,
    )

    # Input limits
    max_upload_bytes: int = Field(
        default=8 * 1024 * 1024,
        description="Maximum accepted size of an uploaded room image",
        ge=1,
    )
    max_prompt_length: int = Field(
        default=800,
        description="Prompts longer than this are truncated",
        ge=1,
    )

    # Paths
    results_dir: Path = Field(
        default=Path("results"),
        description="Directory for generated images",
    )
    uploads_dir: Path = Field(
        default=Path("uploads"),
        description="Directory for transient uploads",
    )
    public_dir: Path = Field(
        default=PACKAGE_PUBLIC_DIR,
        description="Directory holding index.html and other static assets",
    )

    # Server settings
    host: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    port: int = Field(
        default=10000,
        description="Server port",
        ge=1,
        le=65535,
    )
    log_level: Literal["critical", "error", "warning", "info", "debug"] = Field(
        default="info",
        description="Log level for the application and uvicorn",
    )

    def __init__(self, **kwargs):
        """Initialise configuration and create the output directories.

        Args:
            **kwargs: Configuration overrides.
        """
        super().__init__(**kwargs)

        self.results_dir.mkdir(parents=True, exist_ok=True)
        self.uploads_dir.mkdir(parents=True, exist_ok=True)

    @property
    def has_credential(self) -> bool:
        """Whether a non-blank vendor credential is configured."""
        return bool(self.stability_api_key and self.stability_api_key.strip())

    def require_api_key(self) -> str:
        """Return the vendor credential or fail before any network traffic.

        Raises:
            ConfigurationError: If ``STABILITY_API_KEY`` is unset or blank.
        """
        if not self.has_credential:
            raise ConfigurationError()
        return self.stability_api_key.strip()
