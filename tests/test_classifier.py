import pytest

from remote_e2e.classifier import classify
from remote_e2e.errors import ClassificationError, EmptyResponse, UnrecognizedShape
from remote_e2e.models import (
    E2eCommitSuite,
    E2eRun,
    E2eTest,
    E2eTestSuite,
    VariantKind,
)

from tests.fixtures.payloads import (
    commit_suite_payload,
    e2e_test_payload,
    message_payload,
    run_payload,
    suite_payload,
)


@pytest.mark.parametrize(
    "payload, expected_type, expected_kind",
    [
        (commit_suite_payload(), E2eCommitSuite, VariantKind.COMMIT_SUITE),
        (run_payload(), E2eRun, VariantKind.RUN),
        (e2e_test_payload(), E2eTest, VariantKind.TEST),
        (suite_payload(), E2eTestSuite, VariantKind.TEST_SUITE),
    ],
)
def test_each_known_shape_maps_to_one_variant(payload, expected_type, expected_kind):
    variant = classify(payload)

    assert type(variant) is expected_type
    assert variant.kind is expected_kind
    assert variant.uuid == payload["uuid"]


def test_commit_suite_scenario():
    variant = classify({"uuid": "a", "runStatus": "completed", "tests": []})

    assert isinstance(variant, E2eCommitSuite)
    assert variant.run_status == "completed"
    assert variant.tests == []


def test_run_scenario():
    variant = classify({"uuid": "b", "status": "running", "outcome": "pending"})

    assert isinstance(variant, E2eRun)
    assert variant.status == "running"
    assert variant.outcome == "pending"


def test_commit_suite_wins_over_run_when_both_match():
    payload = commit_suite_payload(status="running", outcome="pending")

    assert isinstance(classify(payload), E2eCommitSuite)


def test_run_wins_over_test_when_both_match():
    payload = run_payload(name="x", testScript=None)

    assert isinstance(classify(payload), E2eRun)


def test_nested_runs_and_messages_are_typed():
    payload = e2e_test_payload(
        cur_run=run_payload(
            messages=[message_payload("opened page"), message_payload("clicked", "Success - ok")]
        ),
        tunnelKey="tok",
    )

    variant = classify(payload)

    assert isinstance(variant.cur_run, E2eRun)
    messages = variant.cur_run.conversations[0].messages
    assert messages[1].json_content.current_state.evaluation_previous_goal == "Success - ok"
    assert variant.tunnel_key == "tok"


def test_unknown_fields_are_kept():
    variant = classify(run_payload(browser="chromium"))

    assert variant.model_extra["browser"] == "chromium"


@pytest.mark.parametrize(
    "payload",
    [
        {"uuid": "x"},
        {"runStatus": "running", "tests": []},
        {"uuid": "x", "runStatus": "running", "tests": "nope"},
        {"uuid": "x", "status": "running"},
        {"uuid": "x", "name": "missing script and completed"},
        {"uuid": "x", "name": "suite", "completed": "yes"},
        {},
    ],
)
def test_payload_missing_discriminators_is_unrecognized(payload):
    with pytest.raises(UnrecognizedShape) as exc:
        classify(payload)

    assert exc.value.fields == sorted(payload.keys())
    assert isinstance(exc.value, ClassificationError)


def test_unrecognized_shape_lists_received_keys():
    with pytest.raises(UnrecognizedShape) as exc:
        classify({"uuid": "x", "foo": 1})

    assert "foo, uuid" in exc.value.message


def test_matching_shape_with_bad_field_types_is_unrecognized():
    with pytest.raises(UnrecognizedShape):
        classify({"uuid": "x", "runStatus": 5, "tests": [{"uuid": None}]})


def test_none_is_empty_response():
    with pytest.raises(EmptyResponse):
        classify(None)


def test_non_mapping_is_unrecognized():
    with pytest.raises(UnrecognizedShape) as exc:
        classify(["uuid"])

    assert exc.value.fields == []
