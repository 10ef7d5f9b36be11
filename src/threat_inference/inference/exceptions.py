"""
Custom exceptions for the inference client layer.

The router treats every InferenceClientError as "no result" for the
sub-call that raised it; the subclasses exist for logging, metrics and the
HTTP error handlers, and to decide which failures are worth a
connection-level retry inside the client.
"""


class InferenceClientError(Exception):
    """
    Base exception for all inference client errors.

    All client-specific exceptions inherit from this to allow catching
    any inference failure with a single except clause.
    """
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InferenceConnectionError(InferenceClientError):
    """
    Unable to reach the inference service (DNS, TLS, reset connections).

    Retried inside the client with exponential backoff.
    """
    pass


class InferenceTimeoutError(InferenceConnectionError):
    """The service did not answer within the configured timeout."""
    pass


class InferenceGenerationError(InferenceClientError):
    """
    The service answered with an error or an unusable envelope.

    Examples:
    - 5xx from the gateway
    - {"success": false, "errors": [...]}
    - response body that is not JSON
    """
    pass


class InferenceModelNotAvailableError(InferenceGenerationError):
    """The requested model does not exist for this account (HTTP 404)."""
    pass


class InferenceRateLimitError(InferenceClientError):
    """
    The service rate-limited the request (HTTP 429).

    On Workers AI this is also what the daily neuron allocation running out
    looks like from the client side.
    """
    pass


class InferenceAuthError(InferenceClientError):
    """API token missing, invalid or lacking Workers AI permission (HTTP 401/403)."""
    pass
