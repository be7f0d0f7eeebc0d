"""Shared exceptions module."""

from typing import Optional

from pydantic import ValidationError


class IssueStreamException(Exception):
    """Base exception for issuestream."""

    pass


class ConfigurationError(IssueStreamException):
    """Exception raised when a worker is configured incorrectly.

    Raised at worker start, before any poll cycle runs.
    """

    def __init__(self, message: Optional[str] = "Invalid configuration", errors: list = None):
        """Create a new ConfigurationError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.
            errors (list, optional): Field-level errors from validation.

        """
        self.message = message
        self.errors = errors or []
        super().__init__(self.message)


class InvalidStateError(IssueStreamException):
    """Exception raised when resumption state would move backwards."""

    def __init__(self, message: Optional[str] = "Resumption state is invalid"):
        """Create a new InvalidStateError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class IngestCycleError(IssueStreamException):
    """Base for errors that abort a poll cycle.

    A cycle that raises one of these has not changed the resumption state,
    so the next cycle repeats the identical request.
    """

    retryable: bool = False


class TransientFetchError(IngestCycleError):
    """Exception raised for network timeouts, 5xx responses and rate limits."""

    retryable = True

    def __init__(self, message: str, status_code: Optional[int] = None):
        """Create a new TransientFetchError instance.

        Args:
        ----
            message (str): What failed.
            status_code (int, optional): HTTP status, when a response was received.

        """
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class RateLimitedError(TransientFetchError):
    """Exception raised when the upstream API reports an exhausted budget."""

    def __init__(self, retry_after: float, status_code: Optional[int] = None):
        """Create a new RateLimitedError instance.

        Args:
        ----
            retry_after (float): Seconds until the budget resets.
            status_code (int, optional): HTTP status of the rejected response.

        """
        self.retry_after = retry_after
        super().__init__(
            f"Upstream rate limit exceeded. Retry after {retry_after:.1f} seconds",
            status_code=status_code,
        )


class FetchRejectedError(IngestCycleError):
    """Exception raised when the upstream API rejects a request permanently (4xx)."""

    def __init__(self, status_code: int, message: Optional[str] = "Request rejected"):
        """Create a new FetchRejectedError instance.

        Args:
        ----
            status_code (int): HTTP status code.
            message (str, optional): The error message. Has default message.

        """
        self.status_code = status_code
        self.message = message
        super().__init__(f"HTTP {status_code}: {message}")


class EntityDecodeError(IngestCycleError):
    """Exception raised when a page or one of its entities cannot be decoded or translated.

    The whole page is rejected so the watermark never moves past an entity
    that was not emitted.
    """

    def __init__(self, message: str, page: Optional[int] = None):
        """Create a new EntityDecodeError instance.

        Args:
        ----
            message (str): What could not be decoded.
            page (int, optional): Page index the payload belonged to.

        """
        self.message = message
        self.page = page
        prefix = f"Page {page}: " if page is not None else ""
        super().__init__(f"{prefix}{message}")


class IngestionCancelledError(IssueStreamException):
    """Exception raised when shutdown is requested while waiting."""

    pass


class OffsetCommitError(IssueStreamException):
    """Exception raised when an offset store fails to persist an offset."""

    def __init__(self, partition_key: str, message: Optional[str] = "Offset commit failed"):
        """Create a new OffsetCommitError instance.

        Args:
        ----
            partition_key (str): Partition whose offset was being written.
            message (str, optional): The error message. Has default message.

        """
        self.partition_key = partition_key
        self.message = message
        super().__init__(f"{partition_key}: {message}")


def unpack_validation_error(exc: ValidationError) -> dict:
    """Unpack a Pydantic validation error into a dictionary.

    Args:
    ----
        exc (ValidationError): The Pydantic validation error.

    Returns:
    -------
        dict: The dictionary representation of the validation error.

    """
    error_messages = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        message = error["msg"]
        error_messages.append({field: message})

    return {"errors": error_messages}
