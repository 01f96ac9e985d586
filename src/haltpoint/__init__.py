"""Interceptable fatal_error / precondition / precondition_failure.

Production code calls the termination points below instead of aborting
directly; tests use the harness (or the ``haltpoint`` pytest fixture) to
assert that a code path reaches one without killing the test process.
"""

from .errors import HaltpointError, TerminationIntercepted
from .harness import (
    Harness,
    assert_fatal_error,
    assert_precondition_failure,
    assert_terminates,
)
from .points import (
    TerminationContext,
    TerminationEvent,
    TerminationKind,
    default_context,
    fatal_error,
    precondition,
    precondition_failure,
)
from .reporting import (
    CollectingRecorder,
    FailureSummary,
    HarnessIssue,
    PytestRecorder,
    TerminationNotObserved,
)

__all__ = [
    "CollectingRecorder",
    "FailureSummary",
    "HaltpointError",
    "Harness",
    "HarnessIssue",
    "PytestRecorder",
    "TerminationContext",
    "TerminationEvent",
    "TerminationIntercepted",
    "TerminationKind",
    "TerminationNotObserved",
    "assert_fatal_error",
    "assert_precondition_failure",
    "assert_terminates",
    "default_context",
    "fatal_error",
    "precondition",
    "precondition_failure",
]
