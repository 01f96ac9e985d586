# harness.py - Assert that a block of code reaches a termination point
#
# The block runs on a worker (a daemon thread by default, or any executor with
# submit()). Replacement handlers on the targeted slots set a completion event
# and the point then raises TerminationIntercepted, which unwinds the worker.
# The caller waits on the event with a timeout and records a HarnessIssue if
# it never fires. Slots are restored on every exit path.

import threading
from contextlib import ExitStack

from . import config
from .errors import HaltpointError, TerminationIntercepted
from .points import TerminationKind, default_context
from .reporting import (
    FATAL_ERROR_EXPECTED,
    PRECONDITION_FAILURE_EXPECTED,
    CollectingRecorder,
    FailureSummary,
    HarnessIssue,
    PytestRecorder,
)

PRECONDITION_KINDS = (TerminationKind.PRECONDITION, TerminationKind.PRECONDITION_FAILURE)
FATAL_KINDS = (TerminationKind.FATAL_ERROR, TerminationKind.PRECONDITION_FAILURE)


def _normalize_kinds(kinds) -> tuple:
    if isinstance(kinds, (TerminationKind, str)):
        kinds = (kinds,)
    normalized = []
    for kind in kinds:
        try:
            kind = TerminationKind(kind)
        except ValueError:
            raise HaltpointError(f"unknown termination kind {kind!r}") from None
        if kind not in normalized:
            normalized.append(kind)
    if not normalized:
        raise HaltpointError("at least one termination kind is required")
    return tuple(normalized)


def _default_description(kinds: tuple) -> str:
    if set(kinds) <= set(PRECONDITION_KINDS):
        return PRECONDITION_FAILURE_EXPECTED
    return FATAL_ERROR_EXPECTED


# Worker owning the current thread; handlers use it to tell their own
# block apart from a stray worker left over from a timed-out assertion.
_running = threading.local()


def _current_worker():
    return getattr(_running, "worker", None)


class _Worker:
    """Runs the block and remembers how it ended."""

    def __init__(self, block):
        self.block = block
        self.error = None
        self.halted_at = None
        self._done = threading.Event()

    def __call__(self):
        _running.worker = self
        try:
            self.block()
        except TerminationIntercepted as e:
            self.halted_at = e.event.location
            config.log(f"worker halted at {self.halted_at}")
        except BaseException as e:
            self.error = e
            config.log(f"worker raised {type(e).__name__}: {e}")
        finally:
            _running.worker = None
            self._done.set()

    @property
    def running(self) -> bool:
        return not self._done.is_set()


def _check_executor(executor):
    if executor is not None and not callable(getattr(executor, "submit", None)):
        raise HaltpointError(f"executor must provide submit(fn), got {executor!r}")


def _submit(worker: _Worker, executor):
    if executor is None:
        thread = threading.Thread(target=worker, name="haltpoint-worker", daemon=True)
        thread.start()
    else:
        executor.submit(worker)


class Harness:
    """Termination assertions bound to one TerminationContext.

    ``observed`` collects the events seen by successful assertions and
    ``issues`` every HarnessIssue recorded, whatever the recorder does with it.
    ``stray`` holds events that reached this harness's handlers from a thread
    other than the worker of the assertion in progress; they are ignored.
    """

    def __init__(self, context=None, timeout=None, recorder=None):
        self.context = context if context is not None else default_context
        self.timeout = config.validate_timeout(timeout) if timeout is not None else None
        self.recorder = recorder if recorder is not None else PytestRecorder()
        self.observed = []
        self.issues = []
        self.stray = []

    def __repr__(self):
        return (
            f"<Harness observed={len(self.observed)} issues={len(self.issues)} "
            f"recorder={type(self.recorder).__name__}>"
        )

    @property
    def expects_failures(self) -> bool:
        return isinstance(self.recorder, CollectingRecorder)

    def assert_precondition_failure(self, block, *, executor=None, timeout=None):
        """Assert ``block`` calls precondition_failure, or precondition with a false condition."""
        __tracebackhide__ = True
        summary = FailureSummary.capture(PRECONDITION_FAILURE_EXPECTED)
        self._assert(block, PRECONDITION_KINDS, executor, timeout, summary)

    def assert_fatal_error(self, block, *, executor=None, timeout=None):
        """Assert ``block`` calls fatal_error or precondition_failure."""
        __tracebackhide__ = True
        summary = FailureSummary.capture(FATAL_ERROR_EXPECTED)
        self._assert(block, FATAL_KINDS, executor, timeout, summary)

    def assert_terminates(self, block, kinds, *, executor=None, timeout=None,
                          description=None):
        """Assert ``block`` reaches one of the termination points in ``kinds``.

        Args:
            block: Zero-argument callable run on the worker.
            kinds: A TerminationKind (or its value) or an iterable of them.
            executor: Object with submit(fn); defaults to a daemon thread.
            timeout: Seconds to wait; defaults to the harness/config timeout.
            description: Failure text; defaults to the per-kind message.
        """
        __tracebackhide__ = True
        kinds = _normalize_kinds(kinds)
        summary = FailureSummary.capture(description or _default_description(kinds))
        self._assert(block, kinds, executor, timeout, summary)

    def _wait_budget(self, timeout) -> float:
        if timeout is not None:
            return config.validate_timeout(timeout)
        if self.timeout is not None:
            return self.timeout
        return config.env_timeout()

    def _assert(self, block, kinds, executor, timeout, summary):
        __tracebackhide__ = True
        if not callable(block):
            raise HaltpointError(f"block must be callable, got {block!r}")
        _check_executor(executor)
        budget = self._wait_budget(timeout)

        completed = threading.Event()
        seen = []

        worker = _Worker(block)

        def on_termination(event):
            if _current_worker() is not worker:
                self.stray.append(event)
                config.warn(
                    f"ignoring {event.describe()} reached outside the block asserted "
                    f"at {summary.location}"
                )
                return
            seen.append(event)
            completed.set()

        with ExitStack() as stack:
            for kind in kinds:
                stack.enter_context(self.context.intercept(kind, on_termination))
            _submit(worker, executor)
            fired = completed.wait(budget)
            if not fired and worker.running:
                config.warn(
                    f"block for assertion at {summary.location} still running after "
                    f"{budget}s; a late termination call is ignored by later assertions "
                    f"and reaches the default handler once none is active"
                )

        if fired:
            event = seen[0]
            self.observed.append(event)
            config.log(f"observed {event.describe()}")
            # fire() is public, so a PRECONDITION event can carry any condition.
            if event.kind is TerminationKind.PRECONDITION and event.condition is not False:
                self._record(HarnessIssue(
                    summary,
                    f"precondition fired with condition {event.condition!r}: {event.message}",
                ))
            return

        if worker.error is not None:
            detail = f"block raised {type(worker.error).__name__}: {worker.error}"
        elif worker.running:
            detail = f"block still running after {budget}s"
        else:
            detail = "block completed without reaching a termination point"
        self._record(HarnessIssue(summary, detail))

    def _record(self, issue: HarnessIssue):
        __tracebackhide__ = True
        self.issues.append(issue)
        self.recorder.record(issue)


def assert_precondition_failure(block, *, executor=None, timeout=None):
    """Module-level form of Harness.assert_precondition_failure on default_context."""
    __tracebackhide__ = True
    summary = FailureSummary.capture(PRECONDITION_FAILURE_EXPECTED)
    Harness()._assert(block, PRECONDITION_KINDS, executor, timeout, summary)


def assert_fatal_error(block, *, executor=None, timeout=None):
    __tracebackhide__ = True
    summary = FailureSummary.capture(FATAL_ERROR_EXPECTED)
    Harness()._assert(block, FATAL_KINDS, executor, timeout, summary)


def assert_terminates(block, kinds, *, executor=None, timeout=None, description=None):
    __tracebackhide__ = True
    kinds = _normalize_kinds(kinds)
    summary = FailureSummary.capture(description or _default_description(kinds))
    Harness()._assert(block, kinds, executor, timeout, summary)
