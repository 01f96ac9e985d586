"""Exception types raised by haltpoint."""


class HaltpointError(ValueError):
    """Misuse of the haltpoint API (bad timeout, bad executor, ...)."""


class TerminationIntercepted(BaseException):
    """Raised at a termination point whose replacement handler returned.

    Derives from BaseException so that ``except Exception`` blocks in the code
    under test do not swallow it; the call site never makes forward progress.
    """

    def __init__(self, event):
        super().__init__(event.describe())
        self.event = event
