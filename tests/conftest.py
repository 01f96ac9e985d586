"""Fixtures for haltpoint tests."""

import pytest

from haltpoint import TerminationContext, default_context


@pytest.fixture
def context():
    """Private context whose default handler records events instead of aborting.

    Because the recording handler returns, a point that reaches it raises
    TerminationIntercepted rather than killing the test process.
    """
    fired = []
    ctx = TerminationContext(default_handler=fired.append)
    ctx.fired = fired
    return ctx


@pytest.fixture(autouse=True)
def default_context_untouched():
    yield
    leaked = [slot for slot in default_context.slots() if not slot.is_default]
    default_context.restore_all()
    assert not leaked, f"default_context slots left overridden: {leaked}"
