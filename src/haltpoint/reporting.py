# reporting.py - Failure records for the termination-assertion harness

import sys
from dataclasses import dataclass
from typing import Optional

ISSUE_KIND_TAG = "haltpoint"

PRECONDITION_FAILURE_EXPECTED = "Expected precondition failure in block."
FATAL_ERROR_EXPECTED = "Expected fatal error in block."


@dataclass(frozen=True)
class FailureSummary:
    description: str
    file: str
    line: int

    @classmethod
    def capture(cls, description: str, depth: int = 1) -> "FailureSummary":
        """Build a summary located at the frame ``depth`` levels above the caller."""
        frame = sys._getframe(depth + 1)
        return cls(description, frame.f_code.co_filename, frame.f_lineno)

    @property
    def location(self) -> str:
        return f"{self.file}:{self.line}"


@dataclass(frozen=True)
class HarnessIssue:
    """A harness-level failure, distinguishable from ordinary assertion failures."""

    summary: FailureSummary
    detail: Optional[str] = None
    kind_tag: str = ISSUE_KIND_TAG

    def format(self) -> str:
        text = f"{self.summary.location}: {self.summary.description}"
        if self.detail:
            text += f"\n{self.detail}"
        return text


class TerminationNotObserved(AssertionError):
    """Test failure raised by PytestRecorder; carries the HarnessIssue."""

    def __init__(self, issue: HarnessIssue):
        super().__init__(issue.format())
        self.issue = issue


class IssueRecorder:
    """Failure channel the harness reports through."""

    def record(self, issue: HarnessIssue):
        raise NotImplementedError


class PytestRecorder(IssueRecorder):
    """Fails the running pytest test at the assertion call site."""

    def record(self, issue: HarnessIssue):
        __tracebackhide__ = True
        raise TerminationNotObserved(issue)


class CollectingRecorder(IssueRecorder):
    """Keeps issues instead of failing; used to assert that failures happen."""

    def __init__(self):
        self.issues = []

    def __len__(self):
        return len(self.issues)

    def record(self, issue: HarnessIssue):
        self.issues.append(issue)
