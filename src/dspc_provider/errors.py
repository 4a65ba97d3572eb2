"""Exception hierarchy for the DSPC client and reconciler."""


class DspcError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(DspcError):
    """Endpoint configuration is missing or invalid."""


class TransportError(DspcError):
    """The HTTP call could not be performed."""

    def __init__(self, message: str, operation: str | None = None, name: str | None = None) -> None:
        super().__init__(message)
        self.operation = operation
        self.name = name


class InvalidURLError(TransportError):
    """The endpoint or request path is not a valid HTTP URL."""


class EncodeError(TransportError):
    """The request body could not be serialized to JSON."""


class ConnectionFailedError(TransportError):
    """The connection to the remote API failed."""


class RequestInterruptedError(TransportError):
    """The call was cancelled or ran past its deadline."""


class RequestCancelledError(RequestInterruptedError):
    """The caller cancelled the request context."""


class RequestTimeoutError(RequestInterruptedError):
    """The request deadline or timeout was exceeded."""


class DecodeError(DspcError):
    """The response body does not match the expected shape."""

    def __init__(self, message: str, operation: str | None = None, name: str | None = None) -> None:
        super().__init__(message)
        self.operation = operation
        self.name = name


class APIError(DspcError):
    """The remote API rejected the request with a non-success status."""

    def __init__(
        self,
        status: int,
        body: str,
        operation: str | None = None,
        name: str | None = None,
    ) -> None:
        super().__init__(f"API error {status}: {body}")
        self.status = status
        self.body = body
        self.operation = operation
        self.name = name


class NotFoundError(DspcError):
    """No VM with the given name exists in a successful listing."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"VM '{name}' not found. Please verify the VM name exists or check your API endpoint"
        )
        self.name = name


class UpdateNotSupportedError(DspcError):
    """VMs cannot be changed in place."""

    def __init__(self) -> None:
        super().__init__(
            "Update not supported: VM updates are not supported by the DSPC API. "
            "Changes require VM recreation (destroy and create)."
        )
