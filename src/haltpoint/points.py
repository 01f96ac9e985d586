# points.py - Interceptable termination points
#
# fatal_error / precondition / precondition_failure end the process in
# production. Each kind dispatches through a Slot that test code can swap
# for a replacement handler and then restore.

import ctypes
import enum
import sys
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Optional, Union

from .errors import HaltpointError, TerminationIntercepted

Message = Union[str, Callable[[], str]]
Condition = Union[bool, Callable[[], bool]]


class TerminationKind(enum.Enum):
    FATAL_ERROR = "fatal_error"
    PRECONDITION = "precondition"
    PRECONDITION_FAILURE = "precondition_failure"

    @property
    def label(self) -> str:
        if self is TerminationKind.FATAL_ERROR:
            return "Fatal error"
        return "Precondition failed"


@dataclass(frozen=True)
class TerminationEvent:
    """Diagnostic payload handed to a handler when a point fires."""

    kind: TerminationKind
    message: str
    file: str
    line: int
    # Only set for PRECONDITION; always False when the point actually fires.
    condition: Optional[bool] = None

    @property
    def location(self) -> str:
        return f"{self.file}:{self.line}"

    def describe(self) -> str:
        if self.message:
            return f"{self.location}: {self.kind.label}: {self.message}"
        return f"{self.location}: {self.kind.label}"


Handler = Callable[[TerminationEvent], None]


def _evaluate(value):
    return value() if callable(value) else value


def _caller_location(depth: int) -> tuple:
    frame = sys._getframe(depth + 1)
    return frame.f_code.co_filename, frame.f_lineno


def terminate_process(event: TerminationEvent):
    """Default handler: abort through the interpreter's fatal error path.

    Py_FatalError prints the message and the Python traceback of every
    thread, then calls abort(). It does not return.
    """
    sys.stdout.flush()
    sys.stderr.flush()
    ctypes.pythonapi.Py_FatalError(event.describe().encode("utf-8", "replace"))


class Slot:
    """Swappable handler cell for one termination kind.

    install() does not remember the previous handler; restore() always goes
    back to the default.
    """

    def __init__(self, kind: TerminationKind, default: Handler):
        self.kind = kind
        self.default = default
        self._handler = default
        self._lock = threading.Lock()

    def __repr__(self):
        state = "default" if self.is_default else "overridden"
        return f"<Slot {self.kind.value} {state}>"

    @property
    def handler(self) -> Handler:
        with self._lock:
            return self._handler

    @property
    def is_default(self) -> bool:
        return self.handler is self.default

    def install(self, handler: Handler):
        if not callable(handler):
            raise HaltpointError(f"handler must be callable, got {handler!r}")
        with self._lock:
            self._handler = handler

    def restore(self):
        with self._lock:
            self._handler = self.default


class TerminationContext:
    """Owns one Slot per TerminationKind.

    The module-level functions use ``default_context``. Code that wants its
    own, independently interceptable points can create a context and call its
    methods instead.
    """

    def __init__(self, default_handler: Handler = terminate_process):
        self._slots = {kind: Slot(kind, default_handler) for kind in TerminationKind}

    def slot(self, kind) -> Slot:
        return self._slots[TerminationKind(kind)]

    def slots(self) -> list:
        return list(self._slots.values())

    def is_pristine(self) -> bool:
        return all(slot.is_default for slot in self._slots.values())

    def restore_all(self):
        for slot in self._slots.values():
            slot.restore()

    @contextmanager
    def intercept(self, kind, handler: Handler):
        """Install ``handler`` on the slot for ``kind`` for the with-block."""
        slot = self.slot(kind)
        slot.install(handler)
        try:
            yield slot
        finally:
            slot.restore()

    def fire(self, kind: TerminationKind, message: Message, file: str, line: int,
             condition: Optional[bool] = None):
        handler = self.slot(kind).handler
        event = TerminationEvent(kind, str(_evaluate(message)), file, line, condition)
        handler(event)
        # A replacement handler returned; the caller must still not proceed.
        raise TerminationIntercepted(event)

    def fatal_error(self, message: Message = "", *, file: str = None, line: int = None):
        if file is None or line is None:
            file, line = _caller_location(1)
        self.fire(TerminationKind.FATAL_ERROR, message, file, line)

    def precondition(self, condition: Condition, message: Message = "", *,
                     file: str = None, line: int = None):
        if _evaluate(condition):
            return
        if file is None or line is None:
            file, line = _caller_location(1)
        self.fire(TerminationKind.PRECONDITION, message, file, line, condition=False)

    def precondition_failure(self, message: Message = "", *, file: str = None,
                             line: int = None):
        if file is None or line is None:
            file, line = _caller_location(1)
        self.fire(TerminationKind.PRECONDITION_FAILURE, message, file, line)


default_context = TerminationContext()


def fatal_error(message: Message = "", *, file: str = None, line: int = None):
    """Unconditionally report ``message`` and stop.

    In production this aborts the process. Under an assertion helper the
    replacement handler runs and the call raises TerminationIntercepted.
    """
    if file is None or line is None:
        file, line = _caller_location(1)
    default_context.fatal_error(message, file=file, line=line)


def precondition(condition: Condition, message: Message = "", *, file: str = None,
                 line: int = None):
    """Stop like fatal_error when ``condition`` is false; otherwise return.

    ``condition`` and ``message`` may be zero-argument callables. The message
    is only evaluated on the failing path.
    """
    if _evaluate(condition):
        return
    if file is None or line is None:
        file, line = _caller_location(1)
    default_context.fire(TerminationKind.PRECONDITION, message, file, line, condition=False)


def precondition_failure(message: Message = "", *, file: str = None, line: int = None):
    """Mark a state the caller asserts is unreachable."""
    if file is None or line is None:
        file, line = _caller_location(1)
    default_context.precondition_failure(message, file=file, line=line)
