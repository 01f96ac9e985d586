# plugin.py - pytest integration, loaded through the pytest11 entry point

import pytest

from .config import resolve_timeout
from .harness import Harness
from .points import default_context
from .reporting import CollectingRecorder, PytestRecorder

EXPECT_FAILURE_MARKER = "expect_harness_failure"
EXPECTED_FAILURE_MISSING = "Expected at least one termination assertion to fail."

_harness_key = pytest.StashKey[Harness]()


def pytest_addoption(parser):
    group = parser.getgroup("haltpoint", "termination point assertions")
    group.addoption(
        "--haltpoint-timeout",
        action="store",
        dest="haltpoint_timeout",
        default=None,
        metavar="SECONDS",
        help="Seconds to wait for a termination point to fire (default: 2).",
    )
    parser.addini(
        "haltpoint_timeout",
        "Seconds to wait for a termination point to fire.",
        default="",
    )


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        f"{EXPECT_FAILURE_MARKER}: pass only if a haltpoint assertion records a failure",
    )


@pytest.fixture
def haltpoint(request):
    """Harness on the default termination context.

    Under @pytest.mark.expect_harness_failure, issues are collected instead of
    failing the test.
    """
    timeout = resolve_timeout(
        request.config.getoption("haltpoint_timeout"),
        request.config.getini("haltpoint_timeout"),
    )
    if request.node.get_closest_marker(EXPECT_FAILURE_MARKER) is not None:
        recorder = CollectingRecorder()
    else:
        recorder = PytestRecorder()

    harness = Harness(default_context, timeout, recorder)
    request.node.stash[_harness_key] = harness
    yield harness

    leaked = [slot.kind.value for slot in default_context.slots() if not slot.is_default]
    if leaked:
        default_context.restore_all()
        pytest.fail(f"termination slots left overridden: {', '.join(leaked)}", pytrace=False)


@pytest.hookimpl(wrapper=True)
def pytest_runtest_call(item):
    result = yield
    if item.get_closest_marker(EXPECT_FAILURE_MARKER) is None:
        return result

    harness = item.stash.get(_harness_key, None)
    if harness is None:
        pytest.fail(
            f"@pytest.mark.{EXPECT_FAILURE_MARKER} requires the haltpoint fixture",
            pytrace=False,
        )
    if not harness.issues:
        pytest.fail(EXPECTED_FAILURE_MISSING, pytrace=False)
    return result
