"""
Tests for the response envelope and the pipeline error taxonomy.

A client never sees a bare 500; each failure arrives classified.
"""

import pytest

from inkforge.models.failure import (
    ApiResponse,
    FailureKind,
    InsufficientCandidatesError,
    InvalidRequestError,
    KnownError,
    OutcomeType,
    RetrievalFailureError,
    create_unknown_failure,
    finalize_response,
)


class TestApiResponse:
    """Tests for the envelope constructors."""

    def test_success_carries_data_only(self) -> None:
        envelope = ApiResponse.success({"deck": [1, 2]})

        assert envelope.outcome is OutcomeType.SUCCESS
        assert envelope.data == {"deck": [1, 2]}
        assert envelope.failure is None

    def test_known_failure_carries_failure_only(self) -> None:
        envelope = ApiResponse.known_failure(
            FailureKind.SERVICE_UNAVAILABLE, "Search is down", detail="ConnectError"
        )

        assert envelope.outcome is OutcomeType.KNOWN_FAILURE
        assert envelope.data is None
        assert envelope.failure is not None
        assert envelope.failure.detail == "ConnectError"

    def test_unknown_failure_uses_fixed_wording(self) -> None:
        first = ApiResponse.unknown_failure(detail="KeyError")
        second = ApiResponse.unknown_failure()

        assert first.failure is not None and second.failure is not None
        assert first.failure.message == second.failure.message
        assert "don't know why" in first.failure.message
        assert first.failure.suggestion

    def test_create_unknown_failure_hides_the_message(self) -> None:
        envelope = create_unknown_failure(RuntimeError("db password is hunter2"))

        assert envelope.failure is not None
        assert envelope.failure.kind is FailureKind.UNKNOWN
        assert envelope.failure.detail == "RuntimeError"
        assert "hunter2" not in envelope.model_dump_json()


class TestFinalizeResponse:
    """Tests for envelope consistency checks."""

    def test_consistent_envelope_returned_as_is(self) -> None:
        envelope = ApiResponse.success("ok")

        assert finalize_response(envelope) is envelope

    def test_success_with_failure_rejected(self) -> None:
        envelope = ApiResponse.success("ok")
        envelope.failure = ApiResponse.unknown_failure().failure

        with pytest.raises(ValueError, match="must not have failure"):
            finalize_response(envelope)

    def test_failure_without_detail_rejected(self) -> None:
        envelope: ApiResponse[None] = ApiResponse(outcome=OutcomeType.UNKNOWN_FAILURE)

        with pytest.raises(ValueError, match="unknown_failure response must have"):
            finalize_response(envelope)


class TestErrorTaxonomy:
    """Each pipeline error declares its kind and status."""

    @pytest.mark.parametrize(
        ("error", "kind", "status"),
        [
            (InvalidRequestError("bad"), FailureKind.INVALID_INPUT, 400),
            (
                InsufficientCandidatesError(requested=60, available=48),
                FailureKind.INSUFFICIENT_CANDIDATES,
                422,
            ),
            (RetrievalFailureError("down"), FailureKind.SERVICE_UNAVAILABLE, 503),
        ],
    )
    def test_kind_and_status(self, error: KnownError, kind: FailureKind, status: int) -> None:
        assert error.kind is kind
        assert error.status_code == status

        envelope = error.to_response()
        assert envelope.outcome is OutcomeType.KNOWN_FAILURE
        assert envelope.failure is not None
        assert envelope.failure.kind is kind
        assert envelope.failure.message == error.message
        assert envelope.failure.suggestion == error.suggestion

    def test_detail_is_passed_through(self) -> None:
        error = RetrievalFailureError("Card search timed out.", detail="No result within 10s")

        envelope = error.to_response()

        assert envelope.failure is not None
        assert envelope.failure.detail == "No result within 10s"

    def test_insufficient_candidates_reports_shortfall(self) -> None:
        error = InsufficientCandidatesError(requested=60, available=48, detail="12 unique cards")

        assert error.shortfall == 12
        assert str(error) == error.message
        assert "needed 60" in error.message
        assert "short by 12" in error.message
        assert error.detail == "12 unique cards"

    def test_shortfall_never_negative(self) -> None:
        assert InsufficientCandidatesError(requested=1, available=5).shortfall == 0
