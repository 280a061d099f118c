"""Custom exception hierarchy."""


class AppError(Exception):
    """Base exception for application errors."""

    status_code: int = 500
    title: str = "Internal Server Error"

    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class APIClientError(AppError):
    """Raised when an external API call fails."""

    status_code = 502
    title = "Upstream Service Error"


class APITimeoutError(APIClientError):
    """Raised when an external API call times out."""

    status_code = 504
    title = "Upstream Timeout"


class ValidationError(AppError):
    """Raised when input validation fails."""

    status_code = 422
    title = "Validation Error"


class ConfigurationError(AppError):
    """Raised when configuration is invalid or missing."""
    pass


class StorageError(AppError):
    """Raised when blob storage rejects an operation."""

    status_code = 502
    title = "Storage Error"


# Access control


class UnauthenticatedError(AppError):
    """Raised when no identity is attached to the request."""

    status_code = 401
    title = "Unauthenticated"

    def __init__(self, message: str = "Not authenticated", original_error: Exception = None):
        super().__init__(message, original_error)


class NoMembershipError(AppError):
    """Raised when the identity does not belong to any practice."""

    status_code = 403
    title = "No Practice Membership"

    def __init__(self, message: str = "User is not a member of any practice", original_error: Exception = None):
        super().__init__(message, original_error)


class AccessDeniedError(AppError):
    """Raised when the identity is not a member of the target practice."""

    status_code = 403
    title = "Access Denied"

    def __init__(self, message: str = "Access denied to this practice", original_error: Exception = None):
        super().__init__(message, original_error)


# Lookups


class NotFoundError(AppError):
    """Raised when a referenced record does not exist."""

    status_code = 404
    title = "Not Found"


class PracticeNotFoundError(NotFoundError):
    """Raised when a practice is not found."""

    title = "Practice Not Found"


class DocumentNotFoundError(NotFoundError):
    """Raised when a document is not found."""

    title = "Document Not Found"


class AnalysisNotFoundError(NotFoundError):
    """Raised when an analysis is not found."""

    title = "Analysis Not Found"


# Analysis pipeline


class AnalysisInProgressError(AppError):
    """Raised when a document already has a queued or processing analysis."""

    status_code = 409
    title = "Analysis In Progress"


class UrlResolutionError(AppError):
    """Raised when a storage reference cannot be resolved to a URL."""

    status_code = 422
    title = "Document URL Unavailable"


class UnsupportedContentTypeError(AppError):
    """Raised when a document's media type cannot be sent to the model."""

    status_code = 415
    title = "Unsupported Content Type"


class ExtractionFailure(AppError):
    """Wraps any model, network or schema error raised during extraction."""

    status_code = 502
    title = "Extraction Failed"
