"""Custom exception hierarchy."""

from typing import Optional


class AppError(Exception):
    """Base exception for application errors."""
    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.original_error = original_error


class APIClientError(AppError):
    """Raised when an external API call fails."""

    def __init__(
        self,
        message: str,
        original_error: Exception = None,
        status_code: Optional[int] = None,
        request_id: Optional[str] = None,
    ):
        super().__init__(message, original_error)
        self.status_code = status_code
        self.request_id = request_id


class APITimeoutError(APIClientError):
    """Raised when an external API call times out."""
    pass


class RemoteNotFoundError(APIClientError):
    """Raised when the remote service answers 404 for a resource."""
    pass


class ConfigurationError(AppError):
    """Raised when configuration is invalid or missing."""
    pass


class InvalidJSONError(AppError):
    """Raised when model output cannot be parsed as a JSON object."""
    pass


class PipelineError(AppError):
    """Base exception for report pipeline errors."""
    pass


class StageFailure(PipelineError):
    """A single generation stage failed."""

    def __init__(self, stage: str, cause: Exception):
        super().__init__(f"Stage '{stage}' failed: {cause}", original_error=cause)
        self.stage = stage
        self.cause = cause


class RequiredStageFailure(StageFailure):
    """A stage the report cannot be built without failed; generation aborts."""
    pass


class OptionalStageFailure(StageFailure):
    """A stage whose output is replaced by an empty default failed."""
    pass
