"""Exception hierarchy for the MOPS service.

Every request-scoped failure the report handler translates into an HTTP
error response derives from ``MopsError``. Anything else reaching the
middleware chain is an unexpected fault and is handled by the recovery
boundary.
"""


class MopsError(Exception):
    """Base exception for MOPS errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class TemplateInitError(MopsError):
    """Raised when the template set cannot be discovered or parsed."""

    pass


class TemplateRenderError(MopsError):
    """Raised when a named template is missing or fails to execute."""

    def __init__(self, template: str, message: str, details: dict | None = None):
        super().__init__(message, details={"template": template, **(details or {})})
        self.template = template


class CIDRError(MopsError, ValueError):
    """Raised by the template helpers on a malformed CIDR string."""

    pass


class MetalError(MopsError):
    """Base exception for metal backend failures."""

    pass


class MetalDialError(MetalError):
    """Raised when the backend cannot be reached or refuses authorization."""

    pass


class MetalRequestError(MetalError):
    """Raised when a backend call fails after the client was connected."""

    def __init__(self, message: str, status_code: int | None = None, details: dict | None = None):
        super().__init__(message, details=details)
        self.status_code = status_code


class PayloadError(MopsError):
    """Raised when the backend returns a report payload that is not valid JSON."""

    pass
