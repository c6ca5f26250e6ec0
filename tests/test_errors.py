import pytest

from remote_e2e.errors import (
    CreateFailed,
    E2eError,
    ErrorKind,
    NotInitialized,
    PollFailed,
    RunInProgress,
    ServiceUnavailable,
    TunnelError,
    TunnelErrorCategory,
    TypeMismatch,
    ValidationError,
)


@pytest.mark.parametrize(
    "error, kind",
    [
        (ValidationError("bad port"), ErrorKind.VALIDATION),
        (ServiceUnavailable(3000), ErrorKind.ENVIRONMENT),
        (CreateFailed("boom"), ErrorKind.GATEWAY),
        (PollFailed("boom"), ErrorKind.GATEWAY),
        (TypeMismatch("commit-suite", "run"), ErrorKind.CLASSIFICATION),
        (TunnelError("boom"), ErrorKind.TUNNEL),
        (NotInitialized(), ErrorKind.PROGRAMMING),
        (RunInProgress(), ErrorKind.PROGRAMMING),
    ],
)
def test_every_error_carries_a_kind(error, kind):
    assert isinstance(error, E2eError)
    assert error.kind is kind
    assert error.to_dict()["kind"] == kind.value
    assert str(error) == error.message


def test_to_dict_shape():
    error = ServiceUnavailable(8080)

    assert error.to_dict() == {
        "kind": "environment",
        "code": "service_unavailable",
        "message": (
            "Service is not active on port 8080. "
            "Please start your application server before running E2E tests."
        ),
        "hint": "start the local server and initialize again",
    }


def test_tunnel_error_scrubs_original_detail():
    error = TunnelError(
        "Failed to create tunnel",
        TunnelErrorCategory.GENERIC,
        original="authtoken: 2abcSECRET rejected",
    )

    assert "2abcSECRET" not in error.original
    assert error.to_dict()["category"] == "generic"


def test_message_scrubs_key_values():
    error = CreateFailed("request failed with api-key=abc123")

    assert "abc123" not in error.message


def test_not_initialized_carries_reason_and_hint():
    error = NotInitialized("Service is not active on port 3000.", hint="start it")

    assert error.message == (
        "Agent is not initialized: Service is not active on port 3000."
    )
    assert error.hint == "start it"
    assert NotInitialized().message.startswith("Agent is not initialized. Please call")
