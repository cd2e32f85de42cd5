"""
Failure Envelope: Unified Response Classification.

Whatever the deck endpoint returns is an ApiResponse with one outcome:

- success: data holds the built deck
- known_failure: the pipeline raised a KnownError and can say why
- unknown_failure: anything else, reported with a fixed message

INVARIANT: No raw 500 error reaches a client. The application turns
unexpected exceptions into the unknown-failure envelope.

Pipeline errors are KnownError subclasses. Each subclass declares its
FailureKind, HTTP status and suggestion as class attributes, so the API
layer needs a single handler for all of them.
"""

from enum import Enum
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class FailureKind(str, Enum):
    """Why a deck could not be built."""

    INVALID_INPUT = "invalid_input"  # rejected before any external call
    INSUFFICIENT_CANDIDATES = "insufficient_candidates"
    SERVICE_UNAVAILABLE = "service_unavailable"  # embedder or search engine
    UNKNOWN = "unknown"


class OutcomeType(str, Enum):
    SUCCESS = "success"
    KNOWN_FAILURE = "known_failure"
    UNKNOWN_FAILURE = "unknown_failure"


UNKNOWN_FAILURE_MESSAGE = "I failed and I don't know why. Try simplifying the request or retrying."
UNKNOWN_FAILURE_SUGGESTION = "If this keeps happening, report it along with the request."


class FailureDetail(BaseModel):
    """What went wrong, in words a deck builder can act on."""

    kind: FailureKind
    message: str = Field(..., description="Explanation shown to the user")
    detail: str | None = Field(default=None, description="Technical context, if any")
    suggestion: str | None = Field(default=None, description="What to try next")


class ApiResponse(BaseModel, Generic[T]):
    """
    Response envelope for the deck API.

    Success responses carry data; every other outcome carries failure.
    """

    outcome: OutcomeType
    data: T | None = None
    failure: FailureDetail | None = None

    @classmethod
    def success(cls, data: T) -> "ApiResponse[T]":
        return cls(outcome=OutcomeType.SUCCESS, data=data)

    @classmethod
    def known_failure(
        cls,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
    ) -> "ApiResponse[Any]":
        failure = FailureDetail(kind=kind, message=message, detail=detail, suggestion=suggestion)
        return cls(outcome=OutcomeType.KNOWN_FAILURE, failure=failure)

    @classmethod
    def unknown_failure(cls, detail: str | None = None) -> "ApiResponse[Any]":
        """Unknown failures always use the same message and suggestion."""
        failure = FailureDetail(
            kind=FailureKind.UNKNOWN,
            message=UNKNOWN_FAILURE_MESSAGE,
            detail=detail,
            suggestion=UNKNOWN_FAILURE_SUGGESTION,
        )
        return cls(outcome=OutcomeType.UNKNOWN_FAILURE, failure=failure)


def finalize_response(response: ApiResponse[Any]) -> ApiResponse[Any]:
    """
    Check the envelope is consistent before it is sent.

    Raises:
        ValueError: If a success carries failure details, or a failure lacks them
    """
    is_success = response.outcome == OutcomeType.SUCCESS
    if is_success and response.failure is not None:
        raise ValueError("Success response must not have failure details")
    if not is_success and response.failure is None:
        raise ValueError(f"{response.outcome.value} response must have failure details")
    return response


def create_unknown_failure(exception: Exception) -> ApiResponse[Any]:
    """Unknown-failure envelope that names the exception type and nothing else."""
    return finalize_response(ApiResponse.unknown_failure(detail=type(exception).__name__))


# =============================================================================
# ERROR TAXONOMY
# =============================================================================


class KnownError(Exception):
    """
    A failure the pipeline can explain.

    Subclasses set kind, status_code and suggestion; instances add the
    message and optional detail.
    """

    kind: ClassVar[FailureKind]
    status_code: ClassVar[int] = 400
    suggestion: ClassVar[str | None] = None

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_response(self) -> ApiResponse[Any]:
        """Finalized known-failure envelope for this error."""
        response = ApiResponse.known_failure(
            self.kind, self.message, detail=self.detail, suggestion=self.suggestion
        )
        return finalize_response(response)


class InvalidRequestError(KnownError):
    """
    The request is malformed or asks for something unsupported.

    Always raised before the embedder or search engine is called.
    """

    kind = FailureKind.INVALID_INPUT
    status_code = 400
    suggestion = "Check the deck size, format, colors and cost range."


class InsufficientCandidatesError(KnownError):
    """
    The legal, color-matching pool cannot satisfy the deck constraints.

    Covers a pool too small for the deck size under copy caps, an inkable
    band that cannot be met, and an empty pool with no colors to infer.

    Attributes:
        requested: Copies the constraint needed
        available: Copies the pool could supply
        shortfall: requested - available, never negative
    """

    kind = FailureKind.INSUFFICIENT_CANDIDATES
    status_code = 422
    suggestion = "Try a broader theme, different colors, or a wider cost range."

    def __init__(self, requested: int, available: int, detail: str | None = None):
        self.requested = requested
        self.available = available
        self.shortfall = max(requested - available, 0)
        super().__init__(
            f"Not enough matching cards: needed {requested}, found {available} "
            f"(short by {self.shortfall}).",
            detail=detail,
        )


class RetrievalFailureError(KnownError):
    """The embedding provider or the search engine failed or timed out."""

    kind = FailureKind.SERVICE_UNAVAILABLE
    status_code = 503
    suggestion = "The card search service is unavailable. Retry shortly."
