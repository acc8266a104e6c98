"""Error taxonomy shared by the renderer and the HTTP layer.

Every failure that reaches a caller is a :class:`RenderError`.  The router
registers a single exception handler for the base class and turns it into
the ``{error, status?, detail?}`` response body, so the subclasses only need
to decide the HTTP status and the message.
"""

from __future__ import annotations


class RenderError(Exception):
    """Base class for failures surfaced to the HTTP caller.

    Attributes:
        message: Short, stable description used as the ``error`` field.
        status_code: HTTP status for the response.
        detail: Optional free-form detail (vendor payload, validation hint).
        upstream_status: Vendor HTTP status, when the failure came from it.
    """

    status_code: int = 500
    message: str = "Render failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int | None = None,
        detail: str | None = None,
        upstream_status: int | None = None,
    ) -> None:
        self.message = message or self.message
        if status_code is not None:
            self.status_code = status_code
        self.detail = detail
        self.upstream_status = upstream_status
        super().__init__(self.message if detail is None else f"{self.message}: {detail}")


class ConfigurationError(RenderError):
    """The vendor credential is missing."""

    status_code = 400
    message = "Missing STABILITY_API_KEY credential in environment"


class UploadTooLargeError(RenderError):
    """The uploaded image exceeds the configured size cap."""

    status_code = 413
    message = "Upload too large"


class VendorError(RenderError):
    """The vendor call failed with an HTTP error, a timeout, or a transport error.

    When the vendor answered, its status code becomes the response status and
    its payload (as text) becomes ``detail``.  Without a vendor status the
    response status is 500.
    """

    def __init__(self, detail: str | None, *, upstream_status: int | None = None) -> None:
        super().__init__(
            status_code=upstream_status or 500,
            detail=detail,
            upstream_status=upstream_status,
        )


class VendorContractError(RenderError):
    """The vendor answered 2xx but the body lacked what the protocol promises."""
