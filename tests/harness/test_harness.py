"""Termination assertions that are expected to pass."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from haltpoint import (
    CollectingRecorder,
    HaltpointError,
    Harness,
    TerminationKind,
    assert_fatal_error,
    assert_precondition_failure,
    assert_terminates,
    default_context,
    fatal_error,
    precondition,
    precondition_failure,
)


@pytest.fixture
def harness(context):
    return Harness(context, timeout=1, recorder=CollectingRecorder())


def test_precondition_failure_is_observed(harness, context):
    harness.assert_precondition_failure(lambda: context.precondition_failure("Test failure!"))

    assert harness.issues == []
    assert [e.kind for e in harness.observed] == [TerminationKind.PRECONDITION_FAILURE]
    assert context.is_pristine()


def test_false_precondition_is_observed(harness, context):
    harness.assert_precondition_failure(lambda: context.precondition(False, "Test failure!"))

    assert harness.issues == []
    (event,) = harness.observed
    assert event.kind is TerminationKind.PRECONDITION
    assert event.condition is False
    assert event.message == "Test failure!"


def test_fatal_error_is_observed(harness, context):
    harness.assert_fatal_error(lambda: context.fatal_error("Test failure!"))

    assert harness.issues == []
    assert harness.observed[0].kind is TerminationKind.FATAL_ERROR
    assert context.is_pristine()


def test_fatal_error_assertion_covers_unreachable_state(harness, context):
    harness.assert_fatal_error(lambda: context.precondition_failure("x"))

    assert harness.issues == []
    assert harness.observed[0].kind is TerminationKind.PRECONDITION_FAILURE


def test_block_stops_at_termination_point(harness, context):
    reached = []

    def block():
        context.fatal_error("first")
        reached.append("after first")
        context.fatal_error("second")

    harness.assert_fatal_error(block)

    assert [e.message for e in harness.observed] == ["first"]
    assert reached == []


def test_block_runs_off_the_calling_thread(harness, context):
    threads = []

    def block():
        threads.append(threading.current_thread())
        context.fatal_error()

    harness.assert_fatal_error(block)

    assert threads[0] is not threading.current_thread()
    assert threads[0].name == "haltpoint-worker"


def test_block_runs_on_supplied_executor(harness, context):
    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="suite") as pool:
        harness.assert_precondition_failure(
            lambda: context.precondition(lambda: 1 > 2, "ordering"), executor=pool
        )

    assert harness.issues == []
    assert harness.observed[0].message == "ordering"


def test_single_kind_assertion_ignores_other_points(context):
    harness = Harness(context, timeout=0.2, recorder=CollectingRecorder())

    harness.assert_terminates(
        lambda: context.fatal_error("plain"), [TerminationKind.PRECONDITION_FAILURE]
    )

    assert len(harness.issues) == 1
    assert harness.issues[0].summary.description == "Expected precondition failure in block."
    assert [e.kind for e in context.fired] == [TerminationKind.FATAL_ERROR]
    assert context.is_pristine()


def test_assert_terminates_accepts_kind_values(harness, context):
    harness.assert_terminates(lambda: context.precondition_failure(), "precondition_failure")
    assert harness.issues == []


def test_slots_restored_for_repeated_assertions(harness, context):
    for _ in range(2):
        harness.assert_precondition_failure(lambda: context.precondition(False))
        assert context.is_pristine()
    assert len(harness.observed) == 2


def test_invalid_arguments_leave_slots_untouched(harness, context):
    with pytest.raises(HaltpointError):
        harness.assert_fatal_error(lambda: None, timeout=0)
    with pytest.raises(HaltpointError):
        harness.assert_fatal_error(lambda: None, executor=object())
    with pytest.raises(HaltpointError):
        harness.assert_fatal_error("not callable")
    with pytest.raises(HaltpointError):
        harness.assert_terminates(lambda: None, [])
    with pytest.raises(HaltpointError, match="unknown termination kind 'abort'"):
        harness.assert_terminates(lambda: None, "abort")
    assert context.is_pristine()


def test_module_level_helpers_on_default_context():
    assert_precondition_failure(lambda: precondition_failure("x"), timeout=1)
    assert_precondition_failure(lambda: precondition(False, "x"), timeout=1)
    assert_fatal_error(lambda: fatal_error("x"), timeout=1)
    assert_fatal_error(lambda: precondition_failure("x"), timeout=1)
    assert_terminates(lambda: precondition_failure(), TerminationKind.PRECONDITION_FAILURE)
    assert default_context.is_pristine()


def test_fixture_harness(haltpoint):
    haltpoint.assert_precondition_failure(lambda: precondition(False, "from fixture"))
    haltpoint.assert_fatal_error(lambda: fatal_error("from fixture"))

    assert [e.message for e in haltpoint.observed] == ["from fixture", "from fixture"]
    assert not haltpoint.expects_failures


def test_success_does_not_wait_for_timeout(context):
    harness = Harness(context, timeout=30, recorder=CollectingRecorder())
    start = time.monotonic()
    harness.assert_fatal_error(lambda: context.fatal_error())
    assert time.monotonic() - start < 5
